"""API key credentials and the credential test request."""

from dataclasses import dataclass, field

from .catalog import Catalog
from .request import OutboundRequest, RequestItem, build_request
from .results import NormalizedResult

# Known-good VIN used to check that a key is accepted.
TEST_VIN = "WBAFR7C57CC811956"


def mask_key(api_key: str) -> str:
    """Show only the last four characters of a key."""
    if len(api_key) <= 4:
        return "*" * len(api_key)
    return "*" * (len(api_key) - 4) + api_key[-4:]


@dataclass(frozen=True)
class ApiKeyCredentials:
    api_key: str = field(repr=False)

    def __post_init__(self) -> None:
        if not self.api_key or not self.api_key.strip():
            raise ValueError("API key must not be empty")

    def __repr__(self) -> str:
        return f"ApiKeyCredentials(api_key={mask_key(self.api_key)!r})"

    def test_item(self, source_tag: str) -> RequestItem:
        spec = Catalog().get("specs")
        return RequestItem.from_params(
            spec, {"vin": TEST_VIN}, api_key=self.api_key, source_tag=source_tag,
        )

    def test_request(self, base_url: str, source_tag: str) -> OutboundRequest:
        """The ``GET /specs`` request used to validate the key."""
        return build_request(self.test_item(source_tag), base_url)

    async def verify(self, dispatcher) -> NormalizedResult:
        """Send the test request through *dispatcher* and return its outcome."""
        return await dispatcher.dispatch(self.test_item(dispatcher.settings.source_tag))


__all__ = [
    "TEST_VIN",
    "mask_key",
    "ApiKeyCredentials",
]
