"""Skill contract system - declared-upfront skill descriptors, results, and invocation.

Every CarsXE operation is published to the host as a *skill*: a callable
plus a :class:`SkillDescriptor` that tells the host what the skill needs
(network, imports), how to render its settings (:class:`ConfigParam`) and
what its inputs look like (a JSON Schema).
"""

import inspect
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

R = TypeVar("R")


# ---------------------------------------------------------------------------
# Enums for UI metadata and config
# ---------------------------------------------------------------------------

class RiskLevel(str, Enum):
    """Risk level for a skill, used by frontends to display risk badges.

    ``AUTO`` (the default) derives the level from safety flags:
    - ``side_effects=False`` → ``SAFE``
    - ``side_effects=True`` → ``MODERATE``
    - ``side_effects=True`` and ``requires_network`` → ``DANGEROUS``
    """

    AUTO = "auto"
    SAFE = "safe"
    MODERATE = "moderate"
    DANGEROUS = "dangerous"


class ConfigScope(str, Enum):
    """When a config parameter can be changed.

    ``GLOBAL`` values (the API key) are set once for the plugin;
    ``PER_INVOCATION`` values (the timeout) may differ on every call.
    """

    GLOBAL = "global"
    PER_INVOCATION = "per_call"


# ---------------------------------------------------------------------------
# ConfigParam
# ---------------------------------------------------------------------------

@dataclass
class ConfigParam:
    """A configurable parameter for a skill.

    Frontends can use this metadata to auto-generate settings UIs
    without hardcoding per-tool config dialogs.
    """

    name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    type: str = "string"  # "number", "string", "boolean", "select", "secret", "url"
    default: Any = None
    min: Optional[float] = None
    max: Optional[float] = None
    options: Optional[List[str]] = None  # For type="select"
    unit: Optional[str] = None
    scope: ConfigScope = ConfigScope.PER_INVOCATION
    placeholder: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dict, omitting None values."""
        d: Dict[str, Any] = {"name": self.name, "type": self.type}
        if self.display_name is not None:
            d["displayName"] = self.display_name
        if self.description is not None:
            d["description"] = self.description
        if self.default is not None:
            d["default"] = self.default
        if self.min is not None:
            d["min"] = self.min
        if self.max is not None:
            d["max"] = self.max
        if self.options is not None:
            d["options"] = self.options
        if self.unit is not None:
            d["unit"] = self.unit
        if self.placeholder is not None:
            d["placeholder"] = self.placeholder
        d["scope"] = self.scope.value
        return d


# ---------------------------------------------------------------------------
# Schema check
# ---------------------------------------------------------------------------

def _check_schema(schema: Any) -> Optional[Dict[str, Any]]:
    """Accept ``None`` or a JSON Schema dict."""
    if schema is None or isinstance(schema, dict):
        return schema
    raise TypeError(f"input_schema must be a JSON Schema dict, got {schema!r}")


# ---------------------------------------------------------------------------
# SkillExample / SkillDescriptor
# ---------------------------------------------------------------------------

@dataclass
class SkillExample:
    """A sample input that frontends can offer as a starting point."""

    input: Dict[str, Any]
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"input": self.input, "description": self.description}


@dataclass
class SkillDescriptor:
    """Declared-upfront contract for a skill."""

    # Identity
    name: str
    description: str
    version: str = "0.1.0"

    # Input
    input_schema: Optional[Dict[str, Any]] = None

    # Discovery
    category: str = "general"
    tags: List[str] = field(default_factory=list)
    examples: List[SkillExample] = field(default_factory=list)

    # Operational hints
    is_async: bool = False
    idempotent: bool = False
    side_effects: bool = False

    # Safety declarations
    required_imports: List[str] = field(default_factory=list)
    requires_network: bool = False

    # UI metadata
    display_name: Optional[str] = None
    icon: Optional[str] = None
    risk_level: RiskLevel = RiskLevel.AUTO
    group: Optional[str] = None

    config_params: List[ConfigParam] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.input_schema = _check_schema(self.input_schema)
        self.tags = [t.lower() for t in self.tags]

    @property
    def resolved_display_name(self) -> str:
        if self.display_name:
            return self.display_name
        return self.name.replace("_", " ").title()

    @property
    def resolved_risk_level(self) -> RiskLevel:
        """Return the risk level, auto-deriving from safety flags if ``AUTO``."""
        if self.risk_level != RiskLevel.AUTO:
            return self.risk_level
        if self.side_effects and self.requires_network:
            return RiskLevel.DANGEROUS
        if self.side_effects:
            return RiskLevel.MODERATE
        return RiskLevel.SAFE

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "input_schema": self.input_schema,
            "category": self.category,
            "tags": self.tags,
            "examples": [e.to_dict() for e in self.examples],
            "is_async": self.is_async,
            "idempotent": self.idempotent,
            "side_effects": self.side_effects,
            "required_imports": self.required_imports,
            "requires_network": self.requires_network,
            "display_name": self.resolved_display_name,
            "risk_level": self.resolved_risk_level.value,
        }
        if self.icon is not None:
            d["icon"] = self.icon
        if self.group is not None:
            d["group"] = self.group
        if self.config_params:
            d["config_params"] = [cp.to_dict() for cp in self.config_params]
        return d


# ---------------------------------------------------------------------------
# SkillResult
# ---------------------------------------------------------------------------

@dataclass
class SkillResult(Generic[R]):
    """Container for skill invocation results."""

    value: Optional[R] = None
    error: Optional[str] = None
    success: bool = True
    duration_ms: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return not self.success


# ---------------------------------------------------------------------------
# Skill
# ---------------------------------------------------------------------------

@dataclass
class Skill:
    """Binds a :class:`SkillDescriptor` to a callable and provides ``invoke()``."""

    descriptor: SkillDescriptor
    fn: Callable

    def _check_policy(self, kwargs: dict) -> Optional[SkillResult]:
        """Validate against ``policy=`` or the active policy.

        Returns a failed result on violation, ``None`` when the skill may run.
        """
        policy = kwargs.pop("policy", None)
        if policy is None:
            from .safety import get_policy
            policy = get_policy()
        if policy is None:
            return None
        from .safety import SafetyError
        violations = policy.validate(self.descriptor)
        if not violations:
            return None
        return SkillResult(
            error=str(SafetyError(violations)),
            success=False,
            metadata={"safety_violations": [str(v) for v in violations]},
        )

    def invoke(self, *args: Any, **kwargs: Any) -> SkillResult:
        """Invoke the skill, timing execution and catching exceptions.

        Pass ``policy=<SafetyPolicy>`` to validate against a specific policy;
        otherwise the active policy (if any) applies.
        """
        blocked = self._check_policy(kwargs)
        if blocked is not None:
            return blocked

        start = time.perf_counter()
        try:
            raw = self.fn(*args, **kwargs)
            elapsed_ms = (time.perf_counter() - start) * 1000
            return SkillResult(value=raw, success=True, duration_ms=elapsed_ms)
        except Exception as exc:
            elapsed_ms = (time.perf_counter() - start) * 1000
            return SkillResult(error=str(exc), success=False, duration_ms=elapsed_ms)

    async def ainvoke(self, *args: Any, **kwargs: Any) -> SkillResult:
        """Async version of :meth:`invoke`; awaits coroutine results."""
        blocked = self._check_policy(kwargs)
        if blocked is not None:
            return blocked

        start = time.perf_counter()
        try:
            raw = self.fn(*args, **kwargs)
            if inspect.isawaitable(raw):
                raw = await raw
            elapsed_ms = (time.perf_counter() - start) * 1000
            return SkillResult(value=raw, success=True, duration_ms=elapsed_ms)
        except Exception as exc:
            elapsed_ms = (time.perf_counter() - start) * 1000
            return SkillResult(error=str(exc), success=False, duration_ms=elapsed_ms)


# ---------------------------------------------------------------------------
# @skill decorator
# ---------------------------------------------------------------------------


def skill(
    fn=None,
    *,
    name=None,
    description=None,
    version="0.1.0",
    input_schema=None,
    category="general",
    tags=None,
    examples=None,
    idempotent=False,
    side_effects=False,
    required_imports=None,
    requires_network=False,
    display_name=None,
    icon=None,
    risk_level=RiskLevel.AUTO,
    group=None,
    config_params=None,
):
    """Decorator that turns a function into a skill.

    Supports ``@skill``, ``@skill()`` and ``@skill(name=..., ...)``.  The
    decorated function remains directly callable; a :class:`Skill` is
    attached as ``fn.__skill__``.
    """

    def _attach(func):
        descriptor = SkillDescriptor(
            name=name if name is not None else func.__name__,
            description=description if description is not None else (func.__doc__ or "").strip(),
            version=version,
            input_schema=input_schema,
            category=category,
            tags=tags if tags is not None else [],
            examples=examples if examples is not None else [],
            is_async=inspect.iscoroutinefunction(func),
            idempotent=idempotent,
            side_effects=side_effects,
            required_imports=required_imports if required_imports is not None else [],
            requires_network=requires_network,
            display_name=display_name,
            icon=icon,
            risk_level=risk_level,
            group=group,
            config_params=config_params if config_params is not None else [],
        )
        func.__skill__ = Skill(descriptor=descriptor, fn=func)
        return func

    if fn is not None:
        return _attach(fn)
    return _attach


__all__ = [
    "RiskLevel",
    "ConfigScope",
    "ConfigParam",
    "SkillExample",
    "SkillDescriptor",
    "SkillResult",
    "Skill",
    "skill",
]
