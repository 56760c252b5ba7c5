"""Request dispatcher: one CarsXE call per input item, normalized outcomes out.

Items are processed strictly in input order, one at a time.  For each item
the dispatcher looks up the operation, validates its parameters, builds
the request, awaits the transport and classifies the result.

Two failure policies:

* tolerant (``continue_on_fail=True``) - every failure becomes a result and
  processing moves on to the next item;
* strict (the default) - the first failure aborts the run by raising the
  matching :class:`~carsxe_flow.exceptions.CarsXEError`.

Usage::

    dispatcher = Dispatcher(settings=Settings(api_key="..."))
    results = await dispatcher.run(
        [{"resource": "vin", "operation": "specs", "vin": "WBAFR7C57CC811956"}],
        continue_on_fail=True,
    )
"""

from datetime import datetime, timezone
from logging import getLogger
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from .catalog import Catalog
from .config import Settings
from .exceptions import CarsXEError, ConfigurationError
from .request import (
    MappingParameters,
    ParameterResolver,
    RequestItem,
    build_request,
)
from .results import (
    ConfigurationFailure,
    NormalizedResult,
    TransportFailure,
    classify_response,
)
from .transport import HttpxTransport, Transport, salvage_status_code

logger = getLogger(__name__)

Params = Union[ParameterResolver, Sequence[Mapping[str, Any]]]


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _name_or_none(value: Any, name: str, index: int) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    raise ConfigurationError(
        f"Parameter '{name}' must be a string, got {type(value).__name__}",
        item_index=index,
    )


class Dispatcher:
    """Builds, sends and classifies CarsXE requests.

    Args:
        transport: HTTP collaborator; defaults to :class:`HttpxTransport`.
        settings: Base URL, source tag, timeout, default API key and
            catalog variant.
        catalog: Operation catalog; defaults to one built from
            ``settings.variant``.
        clock: Returns the timestamp stamped on failure records.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        *,
        settings: Optional[Settings] = None,
        catalog: Optional[Catalog] = None,
        clock: Optional[Callable[[], str]] = None,
    ):
        self.settings = settings or Settings()
        self.catalog = catalog or Catalog(self.settings.variant)
        self.transport = transport or HttpxTransport(timeout=self.settings.timeout)
        self._clock = clock or _utc_timestamp

    # ------------------------------------------------------------------
    # Single item
    # ------------------------------------------------------------------

    def prepare(
        self,
        params: Mapping[str, Any],
        *,
        operation: str,
        resource: Optional[str] = None,
        api_key: Optional[str] = None,
        index: int = 0,
    ) -> RequestItem:
        """Look up *operation* and validate *params* into a :class:`RequestItem`.

        Raises:
            ConfigurationError: Unknown operation, missing API key or
                invalid parameters.
        """
        key = api_key or self.settings.api_key
        if not key:
            raise ConfigurationError(
                "No CarsXE API key configured", operation=operation, resource=resource, item_index=index,
            )
        spec = self.catalog.lookup(resource, operation)
        return RequestItem.from_params(
            spec,
            params,
            api_key=key,
            source_tag=self.settings.source_tag,
            index=index,
            resource=resource,
        )

    async def dispatch(self, item: RequestItem) -> NormalizedResult:
        """Send one prepared item and classify the outcome.  Never raises."""
        request = build_request(item, self.settings.base_url)
        logger.debug(
            "CarsXE %s %s (operation=%s, item=%d)",
            request.method, item.spec.path, item.operation, item.index,
        )
        try:
            response = await self.transport.send(request)
        except Exception as exc:
            message = exc.message if isinstance(exc, CarsXEError) else str(exc)
            return TransportFailure(
                index=item.index,
                message=message or exc.__class__.__name__,
                status_code=salvage_status_code(exc),
                payload=exc.response if isinstance(exc, CarsXEError) else None,
                operation=item.operation,
                resource=item.resource,
                timestamp=self._clock(),
            )

        return classify_response(
            response.status_code,
            response.body,
            index=item.index,
            operation=item.operation,
            resource=item.resource,
            timestamp=self._clock(),
        )

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    async def _process(
        self,
        resolver: ParameterResolver,
        index: int,
        api_key: Optional[str],
        resource: Optional[str],
    ) -> NormalizedResult:
        operation = None
        try:
            if resource is None:
                resource = _name_or_none(resolver.get("resource", index, None), "resource", index)
            operation = _name_or_none(resolver.get("operation", index), "operation", index)
            spec = self.catalog.lookup(resource, operation)
            values = {b.source: resolver.get(b.source, index, None) for b in spec.bindings}
            item = self.prepare(
                values, operation=spec.key, resource=resource, api_key=api_key, index=index,
            )
        except ConfigurationError as exc:
            return ConfigurationFailure(
                index=index,
                message=exc.message,
                operation=exc.operation or operation,
                resource=exc.resource or resource,
                timestamp=self._clock(),
            )
        return await self.dispatch(item)

    async def run(
        self,
        params: Params,
        api_key: Optional[str] = None,
        *,
        continue_on_fail: bool = False,
        resource: Optional[str] = None,
    ) -> List[NormalizedResult]:
        """Process every item in order and return one result per item.

        Args:
            params: A :class:`ParameterResolver` or a sequence of dicts.
                Each item names its ``operation`` (and, in grouped mode,
                its ``resource``) next to the operation's fields.
            api_key: Overrides ``settings.api_key``.
            continue_on_fail: Tolerant mode; see the module docstring.
            resource: Fixes the resource for every item (grouped mode).

        Raises:
            CarsXEError: In strict mode, for the first failed item.
        """
        resolver = params if isinstance(params, ParameterResolver) else MappingParameters(params)
        results: List[NormalizedResult] = []
        for index in range(len(resolver)):
            result = await self._process(resolver, index, api_key, resource)
            if result.failed:
                logger.warning(
                    "CarsXE item %d failed (%s): %s",
                    index, result.classification, result.message,
                )
                if not continue_on_fail:
                    raise result.to_exception()
            results.append(result)
        return results

    async def run_records(
        self,
        params: Params,
        api_key: Optional[str] = None,
        *,
        continue_on_fail: bool = False,
        resource: Optional[str] = None,
    ) -> List[Any]:
        """Like :meth:`run`, rendered as host-facing output records."""
        results = await self.run(
            params, api_key, continue_on_fail=continue_on_fail, resource=resource,
        )
        return [r.to_record() for r in results]


__all__ = [
    "Dispatcher",
]
