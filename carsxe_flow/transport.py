"""HTTP transport used by the dispatcher.

The dispatcher only depends on the :class:`Transport` protocol, so tests
and host integrations can inject their own.  :class:`HttpxTransport` is the
default implementation on top of ``httpx.AsyncClient``.

A transport returns the full response (status code, body and headers) and
never raises for an HTTP error status; classifying statuses is the
dispatcher's job.  It raises only when the call itself fails.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Union

import httpx

from .exceptions import UNKNOWN_STATUS, TransportError
from .request import OutboundRequest
from .safety import check_host


@dataclass(frozen=True)
class TransportResponse:
    """Status code, parsed body and headers of one HTTP response."""

    status_code: int
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)


class Transport(Protocol):
    async def send(self, request: OutboundRequest) -> TransportResponse:
        ...


def salvage_status_code(exc: BaseException) -> Union[int, str]:
    """Best-effort status code from a failed call, or ``"unknown"``."""
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    response = getattr(exc, "response", None)
    for attr in ("status_code", "status"):
        status = getattr(response, attr, None)
        if isinstance(status, int):
            return status
    return UNKNOWN_STATUS


def _parse_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class HttpxTransport:
    """Send requests with ``httpx``.

    Args:
        client: Optional shared ``httpx.AsyncClient``.  When omitted a
            short-lived client is opened for every request.
        timeout: Request timeout in seconds.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 30.0):
        self._client = client
        self.timeout = timeout

    async def send(self, request: OutboundRequest) -> TransportResponse:
        url = request.base_url.rstrip("/") + request.path
        check_host(url)

        kwargs = {
            "method": request.method,
            "url": url,
            "timeout": self.timeout,
        }
        if request.params:
            kwargs["params"] = dict(request.params)
        if request.headers:
            kwargs["headers"] = dict(request.headers)
        if request.json is not None:
            kwargs["json"] = dict(request.json)

        try:
            if self._client is not None:
                response = await self._client.request(**kwargs)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.request(**kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(
                str(exc) or exc.__class__.__name__,
                status_code=salvage_status_code(exc),
            ) from exc

        return TransportResponse(
            status_code=response.status_code,
            body=_parse_body(response),
            headers=dict(response.headers),
        )


__all__ = [
    "TransportResponse",
    "Transport",
    "salvage_status_code",
    "HttpxTransport",
]
