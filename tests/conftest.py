import pytest

from carsxe_flow.config import Settings
from carsxe_flow.dispatcher import Dispatcher
from carsxe_flow.registry import reset_shared_registry
from carsxe_flow.safety import set_policy, set_security_context
from carsxe_flow.transport import TransportResponse

FIXED_TIMESTAMP = "2024-01-01T00:00:00+00:00"


class FakeTransport:
    """Transport double: records requests and replays queued outcomes.

    Each queued outcome is a :class:`TransportResponse` or an exception to
    raise.  When the queue runs dry, ``default`` is returned.
    """

    def __init__(self, *outcomes, default=None):
        self.outcomes = list(outcomes)
        self.default = default or TransportResponse(200, {"ok": True})
        self.requests = []

    async def send(self, request):
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def settings():
    return Settings(api_key="test-key", source_tag="test_tag")


@pytest.fixture
def make_dispatcher(settings):
    """Build a dispatcher around a FakeTransport with a fixed clock."""

    def _make(*outcomes, **overrides):
        transport = FakeTransport(*outcomes)
        dispatcher = Dispatcher(
            transport,
            settings=settings.with_overrides(**overrides),
            clock=lambda: FIXED_TIMESTAMP,
        )
        return dispatcher, transport

    return _make


@pytest.fixture(autouse=True)
def _clean_context():
    """Reset active policy, security context and shared registry."""
    set_policy(None)
    set_security_context(None)
    yield
    set_policy(None)
    set_security_context(None)
    reset_shared_registry()
