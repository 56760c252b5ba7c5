"""Safety and security checks for CarsXE skills.

Two layers, both activated through ``contextvars`` so they are safe to use
from concurrent asyncio tasks:

* :class:`SafetyPolicy` decides whether a skill may run at all, based on
  what its descriptor declares (network access, required imports).
* :class:`SecurityContext` restricts which hosts a running skill may reach.
  Transports call :func:`check_host` right before every network call.

Usage::

    from carsxe_flow.safety import SafetyPolicy, SecurityContext, set_policy, set_security_context

    set_policy(SafetyPolicy(allow_network=False))
    # carsxe_specs.__skill__.invoke(vin="...")  => failed SkillResult

    set_security_context(SecurityContext(allowed_hosts=["api.carsxe.com"]))
"""

import contextvars
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set
from urllib.parse import urlparse


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

@dataclass
class SafetyViolation:
    """A single safety policy violation."""

    kind: str  # "import", "network"
    message: str
    skill_name: str = ""

    def __str__(self) -> str:
        prefix = f"[{self.skill_name}] " if self.skill_name else ""
        return f"{prefix}{self.message}"


class SafetyError(Exception):
    """Raised when a skill violates the active safety policy."""

    def __init__(self, violations: List[SafetyViolation]) -> None:
        self.violations = list(violations)
        messages = [str(v) for v in self.violations]
        super().__init__(f"Safety policy violated: {'; '.join(messages)}")


class SecurityError(Exception):
    """Raised when a host is denied by the active :class:`SecurityContext`."""


# ---------------------------------------------------------------------------
# SecurityContext
# ---------------------------------------------------------------------------

@dataclass
class SecurityContext:
    """Host restrictions for outbound requests.

    ``allowed_hosts=None`` means unrestricted; an empty list denies every
    host.  ``blocked_hosts`` always wins over ``allowed_hosts``.
    """

    allowed_hosts: Optional[List[str]] = None
    blocked_hosts: List[str] = field(default_factory=list)

    def is_host_allowed(self, host: str) -> bool:
        host_lower = host.lower()
        if any(host_lower == bh.lower() for bh in self.blocked_hosts):
            return False
        if self.allowed_hosts is None:
            return True
        return any(host_lower == ah.lower() for ah in self.allowed_hosts)


# ---------------------------------------------------------------------------
# SafetyPolicy
# ---------------------------------------------------------------------------

@dataclass
class SafetyPolicy:
    """What the current runtime permits skills to declare.

    ``allowed_imports=None`` means any import is allowed.  Imports listed in
    ``blocked_imports`` are denied even if they are also allowed.
    """

    allowed_imports: Optional[Set[str]] = None
    blocked_imports: Set[str] = field(default_factory=set)
    allow_network: bool = True

    @classmethod
    def restrictive(cls) -> "SafetyPolicy":
        return cls(allowed_imports=set(), allow_network=False)

    @classmethod
    def permissive(cls) -> "SafetyPolicy":
        return cls()

    def validate(self, target: Any) -> List[SafetyViolation]:
        """Check a :class:`~carsxe_flow.skill.Skill` or descriptor against the policy.

        Returns an empty list when the target complies.
        """
        descriptor = getattr(target, "descriptor", target)
        name = getattr(descriptor, "name", "")
        violations: List[SafetyViolation] = []

        if getattr(descriptor, "requires_network", False) and not self.allow_network:
            violations.append(SafetyViolation(
                kind="network",
                message="Skill requires network access but policy denies it",
                skill_name=name,
            ))

        for imp in getattr(descriptor, "required_imports", []):
            if imp in self.blocked_imports:
                violations.append(SafetyViolation(
                    kind="import",
                    message=f"Import '{imp}' is blocked by policy",
                    skill_name=name,
                ))
            elif self.allowed_imports is not None and imp not in self.allowed_imports:
                violations.append(SafetyViolation(
                    kind="import",
                    message=f"Import '{imp}' is not in the allowed imports list",
                    skill_name=name,
                ))

        return violations

    def enforce(self, target: Any) -> None:
        """Raise :class:`SafetyError` if *target* violates the policy."""
        violations = self.validate(target)
        if violations:
            raise SafetyError(violations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed_imports": sorted(self.allowed_imports) if self.allowed_imports is not None else None,
            "blocked_imports": sorted(self.blocked_imports),
            "allow_network": self.allow_network,
        }


# ---------------------------------------------------------------------------
# Active policy / context (contextvars)
# ---------------------------------------------------------------------------

_active_policy: contextvars.ContextVar[Optional[SafetyPolicy]] = contextvars.ContextVar(
    "carsxe_safety_policy", default=None,
)

_active_security_context: contextvars.ContextVar[Optional[SecurityContext]] = contextvars.ContextVar(
    "carsxe_security_context", default=None,
)


def set_policy(policy: Optional[SafetyPolicy]) -> contextvars.Token:
    """Activate *policy* for the current context; ``None`` clears it."""
    return _active_policy.set(policy)


def get_policy() -> Optional[SafetyPolicy]:
    return _active_policy.get()


def reset_policy(token: contextvars.Token) -> None:
    _active_policy.reset(token)


def set_security_context(ctx: Optional[SecurityContext]) -> contextvars.Token:
    """Activate *ctx* for the current context; ``None`` clears it."""
    return _active_security_context.set(ctx)


def get_security_context() -> Optional[SecurityContext]:
    return _active_security_context.get()


def reset_security_context(token: contextvars.Token) -> None:
    _active_security_context.reset(token)


def check_host(url: str) -> None:
    """Validate the host of *url* against the active SecurityContext.

    No-op when no context is active.

    Raises:
        SecurityError: If the host is not permitted.
    """
    ctx = get_security_context()
    if ctx is None:
        return
    host = urlparse(url).hostname or ""
    if not ctx.is_host_allowed(host):
        raise SecurityError(f"Host access denied: {host}")


__all__ = [
    "SafetyViolation",
    "SafetyError",
    "SecurityError",
    "SecurityContext",
    "SafetyPolicy",
    "set_policy",
    "get_policy",
    "reset_policy",
    "set_security_context",
    "get_security_context",
    "reset_security_context",
    "check_host",
]
