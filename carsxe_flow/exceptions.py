"""Error taxonomy for CarsXE requests.

Every failure that crosses an item boundary in strict mode is one of the
classes below.  They all carry enough context (operation, resource, item
index and, where available, the upstream response body) to diagnose the
failure without re-running the workflow.
"""

from typing import Any, Optional, Union

StatusCode = Union[int, str]

UNKNOWN_STATUS = "unknown"


class CarsXEError(Exception):
    """Base class for all errors raised by the dispatcher."""

    classification = "CarsXEError"

    def __init__(
        self,
        message: str,
        *,
        item_index: Optional[int] = None,
        operation: Optional[str] = None,
        resource: Optional[str] = None,
        status_code: StatusCode = UNKNOWN_STATUS,
        response: Any = None,
        description: str = "",
    ):
        super().__init__(message)
        self.message = message
        self.item_index = item_index
        self.operation = operation
        self.resource = resource
        self.status_code = status_code
        self.response = response
        self.description = description

    def __str__(self) -> str:
        if self.item_index is None:
            return self.message
        return f"{self.message} [item {self.item_index}]"


class ConfigurationError(CarsXEError):
    """The requested operation is unknown or its parameters are invalid."""

    classification = "ConfigurationError"


class TransportError(CarsXEError):
    """The HTTP call itself failed (DNS, refused connection, timeout)."""

    classification = "TransportError"


class HttpStatusError(CarsXEError):
    """The API answered with a status code of 400 or above."""

    classification = "HttpError"


class ApplicationError(CarsXEError):
    """The API answered below 400 but reported ``success: false``."""

    classification = "ApplicationError"


__all__ = [
    "StatusCode",
    "UNKNOWN_STATUS",
    "CarsXEError",
    "ConfigurationError",
    "TransportError",
    "HttpStatusError",
    "ApplicationError",
]
