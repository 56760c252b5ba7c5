"""Normalized outcomes of a single CarsXE request.

Every input item produces exactly one of:

* :class:`Success` - the upstream body, passed through untouched.
* :class:`ApplicationFailure` - status below 400 but ``success: false``.
* :class:`HttpFailure` - status 400 or above.
* :class:`TransportFailure` - the HTTP call itself failed.
* :class:`ConfigurationFailure` - unknown operation or invalid parameters.

Consumers can match on the class instead of probing output dicts for
marker fields.  :meth:`to_record` renders the host-facing record.
"""

import json
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional, Type, Union

from .exceptions import (
    UNKNOWN_STATUS,
    ApplicationError,
    CarsXEError,
    ConfigurationError,
    HttpStatusError,
    StatusCode,
    TransportError,
)


@dataclass(frozen=True)
class Success:
    """The upstream API answered successfully."""

    index: int
    payload: Any
    operation: Optional[str] = None
    resource: Optional[str] = None

    success: ClassVar[bool] = True

    @property
    def failed(self) -> bool:
        return False

    def to_record(self) -> Any:
        return self.payload


@dataclass(frozen=True)
class Failure:
    """Common shape of every failed outcome."""

    index: int
    message: str
    detail: str = ""
    status_code: StatusCode = UNKNOWN_STATUS
    payload: Any = None
    operation: Optional[str] = None
    resource: Optional[str] = None
    timestamp: str = ""

    success: ClassVar[bool] = False
    classification: ClassVar[str] = "Error"
    exception_class: ClassVar[Type[CarsXEError]] = CarsXEError

    @property
    def failed(self) -> bool:
        return True

    def error_message(self) -> str:
        """One-line message used when the failure aborts a run."""
        return self._with_detail(self.message)

    def _with_detail(self, text: str) -> str:
        if self.detail and self.detail != self.message:
            return f"{text} - {self.detail}"
        return text

    def to_exception(self) -> CarsXEError:
        description = ""
        if self.payload is not None:
            description = "Full API Response:\n" + json.dumps(self.payload, indent=2, default=str)
        return self.exception_class(
            self.error_message(),
            item_index=self.index,
            operation=self.operation,
            resource=self.resource,
            status_code=self.status_code,
            response=self.payload,
            description=description,
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": True,
            "error_type": self.classification,
            "error_message": self.message,
            "error_detail": self.detail,
            "status_code": self.status_code,
            "response_data": self.payload,
            "_metadata": {
                "resource": self.resource,
                "operation": self.operation,
                "timestamp": self.timestamp,
                "item_index": self.index,
            },
        }


@dataclass(frozen=True)
class ApplicationFailure(Failure):
    classification: ClassVar[str] = "ApplicationError"
    exception_class: ClassVar[Type[CarsXEError]] = ApplicationError

    def error_message(self) -> str:
        return self._with_detail(f"CarsXE API Error: {self.message}")


@dataclass(frozen=True)
class HttpFailure(Failure):
    classification: ClassVar[str] = "HttpError"
    exception_class: ClassVar[Type[CarsXEError]] = HttpStatusError

    def error_message(self) -> str:
        return self._with_detail(f"CarsXE API Error ({self.status_code}): {self.message}")


@dataclass(frozen=True)
class TransportFailure(Failure):
    classification: ClassVar[str] = "TransportError"
    exception_class: ClassVar[Type[CarsXEError]] = TransportError

    def error_message(self) -> str:
        return self._with_detail(f"CarsXE request failed: {self.message}")


@dataclass(frozen=True)
class ConfigurationFailure(Failure):
    classification: ClassVar[str] = "ConfigurationError"
    exception_class: ClassVar[Type[CarsXEError]] = ConfigurationError


NormalizedResult = Union[
    Success,
    ApplicationFailure,
    HttpFailure,
    TransportFailure,
    ConfigurationFailure,
]


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def _pick(body: Any, *keys: str) -> str:
    """First non-empty value among *keys* in *body*, as a string."""
    if not isinstance(body, dict):
        return ""
    for key in keys:
        value = body.get(key)
        if value:
            return value if isinstance(value, str) else json.dumps(value, default=str)
    return ""


def classify_response(
    status_code: int,
    body: Any,
    *,
    index: int,
    operation: Optional[str] = None,
    resource: Optional[str] = None,
    timestamp: str = "",
) -> NormalizedResult:
    """Classify a completed HTTP exchange.

    Status 400 and above is an :class:`HttpFailure`.  Below that, a dict
    body with ``success`` explicitly ``False`` is an
    :class:`ApplicationFailure`.  Anything else is a :class:`Success`.
    """
    if status_code >= 400:
        return HttpFailure(
            index=index,
            message=_pick(body, "error", "message") or f"HTTP {status_code} Error",
            detail=_pick(body, "error_description", "details", "message"),
            status_code=status_code,
            payload=body,
            operation=operation,
            resource=resource,
            timestamp=timestamp,
        )

    if isinstance(body, dict) and body.get("success") is False:
        return ApplicationFailure(
            index=index,
            message=_pick(body, "error", "message") or "API request failed",
            detail=_pick(body, "error_description", "details"),
            status_code=status_code,
            payload=body,
            operation=operation,
            resource=resource,
            timestamp=timestamp,
        )

    return Success(index=index, payload=body, operation=operation, resource=resource)


__all__ = [
    "Success",
    "Failure",
    "ApplicationFailure",
    "HttpFailure",
    "TransportFailure",
    "ConfigurationFailure",
    "NormalizedResult",
    "classify_response",
]
