"""Request building: parameter bags in, outbound HTTP descriptions out.

``bind_parameters`` is the single validated entry point for user input.
Required fields are checked, values are coerced to the kind each binding
declares, and anything malformed is rejected with a
:class:`~carsxe_flow.exceptions.ConfigurationError` before a request is
ever built.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Protocol, Sequence, runtime_checkable
from urllib.parse import urlencode

from .catalog import GET, Kind, Location, OperationSpec, ParameterBinding
from .exceptions import ConfigurationError

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off", ""}

_MISSING = object()


# ---------------------------------------------------------------------------
# Parameter resolution
# ---------------------------------------------------------------------------

@runtime_checkable
class ParameterResolver(Protocol):
    """Pulls named parameter values for the item at a given position."""

    def __len__(self) -> int:
        ...

    def get(self, name: str, index: int, default: Any = ...) -> Any:
        ...


class MappingParameters:
    """Resolve named parameters from a sequence of plain dicts.

    Each item is a mapping of parameter names to values.  Optional fields
    may also be nested under an ``additional_options`` mapping, the way
    workflow editors group rarely used settings.
    """

    def __init__(self, items: Sequence[Mapping[str, Any]]):
        self._items = list(items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, name: str, index: int, default: Any = _MISSING) -> Any:
        item = self._items[index]
        if not isinstance(item, Mapping):
            raise ConfigurationError(
                f"Item must be a mapping of parameters, got {type(item).__name__}",
                item_index=index,
            )
        if name in item:
            return item[name]
        options = item.get("additional_options") or {}
        if not isinstance(options, Mapping):
            raise ConfigurationError(
                f"additional_options must be a mapping, got {type(options).__name__}",
                item_index=index,
            )
        if name in options:
            return options[name]
        if default is _MISSING:
            raise ConfigurationError(f"Could not get parameter: {name}", item_index=index)
        return default


# ---------------------------------------------------------------------------
# Validation / coercion
# ---------------------------------------------------------------------------

def _is_empty(value: Any) -> bool:
    if isinstance(value, bool):
        return not value
    if isinstance(value, (int, float)):
        return value == 0
    return value is None or (isinstance(value, str) and value == "")


def _coerce(binding: ParameterBinding, value: Any, operation: str) -> Any:
    if binding.kind is Kind.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise ConfigurationError(
            f"Parameter '{binding.source}' of operation '{operation}' must be a boolean, got {value!r}",
            operation=operation,
        )

    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConfigurationError(
            f"Parameter '{binding.source}' of operation '{operation}' must be a string, got {value!r}",
            operation=operation,
        )
    if not isinstance(value, str):
        value = str(value)
    if binding.choices is not None and value and value not in binding.choices:
        raise ConfigurationError(
            f"Parameter '{binding.source}' of operation '{operation}' must be one of "
            f"{', '.join(binding.choices)}; got {value!r}",
            operation=operation,
        )
    return value


def bind_parameters(spec: OperationSpec, values: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate *values* against *spec* and return the fields to send.

    The result maps each binding's ``source`` name to its coerced value.
    Optional fields that are missing, empty, false or numeric zero are left
    out; a binding with a default is filled in from it.  Keys in *values*
    that no binding mentions are ignored.

    Raises:
        ConfigurationError: A required field is missing or a value has the
            wrong type or is not one of the allowed choices.
    """
    bound: Dict[str, Any] = {}
    for binding in spec.bindings:
        raw = values.get(binding.source)
        if binding.required:
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                raise ConfigurationError(
                    f"Missing required parameter '{binding.source}' for operation '{spec.key}'",
                    operation=spec.key,
                    resource=spec.resource,
                )
            bound[binding.source] = _coerce(binding, raw, spec.key)
            continue

        value = None if _is_empty(raw) else _coerce(binding, raw, spec.key)
        if _is_empty(value):
            value = binding.default
        if not _is_empty(value):
            bound[binding.source] = value
    return bound


# ---------------------------------------------------------------------------
# RequestItem / OutboundRequest
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RequestItem:
    """One unit of work: a validated operation call for a single input item."""

    spec: OperationSpec
    values: Mapping[str, Any]
    api_key: str = field(repr=False)
    source_tag: str
    index: int = 0
    resource: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        if self.resource is None:
            object.__setattr__(self, "resource", self.spec.resource)

    @property
    def operation(self) -> str:
        return self.spec.key

    @classmethod
    def from_params(
        cls,
        spec: OperationSpec,
        params: Mapping[str, Any],
        *,
        api_key: str,
        source_tag: str,
        index: int = 0,
        resource: Optional[str] = None,
    ) -> "RequestItem":
        """Validate *params* and build an item in one step."""
        return cls(
            spec=spec,
            values=bind_parameters(spec, params),
            api_key=api_key,
            source_tag=source_tag,
            index=index,
            resource=resource,
        )


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class OutboundRequest:
    """A fully described HTTP request, ready for a transport."""

    method: str
    base_url: str
    path: str
    params: Mapping[str, Any] = field(default_factory=dict)
    json: Optional[Mapping[str, Any]] = None
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def url(self) -> str:
        url = self.base_url.rstrip("/") + self.path
        if self.params:
            query = urlencode({k: _query_value(v) for k, v in self.params.items()})
            url += ("&" if "?" in url else "?") + query
        return url


def build_request(item: RequestItem, base_url: str) -> OutboundRequest:
    """Turn a :class:`RequestItem` into an :class:`OutboundRequest`.

    GET requests carry every field as a query parameter, after the API key
    and the source tag.  POST requests carry only the body fields as JSON;
    the API key and source tag are appended to the path instead.
    """
    spec = item.spec
    auth = {"key": item.api_key, "source": item.source_tag}

    if spec.method == GET:
        params: Dict[str, Any] = dict(auth)
        for binding in spec.bindings:
            if binding.source in item.values:
                params[binding.target_name] = item.values[binding.source]
        return OutboundRequest(method=spec.method, base_url=base_url, path=spec.path, params=params)

    body = {
        b.target_name: item.values[b.source]
        for b in spec.bindings
        if b.location is Location.BODY and b.source in item.values
    }
    return OutboundRequest(
        method=spec.method,
        base_url=base_url,
        path=f"{spec.path}?{urlencode(auth)}",
        json=body,
        headers={"Content-Type": "application/json"},
    )


__all__ = [
    "ParameterResolver",
    "MappingParameters",
    "bind_parameters",
    "RequestItem",
    "OutboundRequest",
    "build_request",
]
