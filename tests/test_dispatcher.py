"""Tests for the request dispatcher."""

import httpx
import pytest

from carsxe_flow.catalog import Catalog, CatalogVariant
from carsxe_flow.config import Settings
from carsxe_flow.dispatcher import Dispatcher
from carsxe_flow.exceptions import (
    ApplicationError,
    ConfigurationError,
    HttpStatusError,
    TransportError,
)
from carsxe_flow.request import MappingParameters
from carsxe_flow.results import (
    ApplicationFailure,
    ConfigurationFailure,
    HttpFailure,
    Success,
    TransportFailure,
)
from carsxe_flow.transport import TransportResponse

FIXED_TIMESTAMP = "2024-01-01T00:00:00+00:00"

VIN = "WBAFR7C57CC811956"


# ── Single item ──────────────────────────────────────────────────────────


class TestSingleItem:
    @pytest.mark.asyncio
    async def test_success_passthrough(self, make_dispatcher):
        body = {"make": "BMW", "model": "5 Series"}
        dispatcher, transport = make_dispatcher(TransportResponse(200, body))
        results = await dispatcher.run([{"operation": "specs", "vin": VIN}])
        assert len(results) == 1
        assert isinstance(results[0], Success)
        assert results[0].to_record() == body

        request = transport.requests[0]
        assert request.method == "GET"
        assert request.path == "/specs"
        assert request.params["key"] == "test-key"
        assert request.params["source"] == "test_tag"
        assert request.params["vin"] == VIN

    @pytest.mark.asyncio
    async def test_http_error_strict(self, make_dispatcher):
        dispatcher, _ = make_dispatcher(TransportResponse(404, {"error": "not found"}))
        with pytest.raises(HttpStatusError) as exc_info:
            await dispatcher.run([{"operation": "specs", "vin": VIN}])
        assert "404" in str(exc_info.value)
        assert "not found" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_http_error_tolerant(self, make_dispatcher):
        dispatcher, _ = make_dispatcher(TransportResponse(404, {"error": "not found"}))
        records = await dispatcher.run_records(
            [{"operation": "specs", "vin": VIN}], continue_on_fail=True,
        )
        record = records[0]
        assert record["error"] is True
        assert record["success"] is False
        assert record["status_code"] == 404
        assert record["error_message"] == "not found"
        assert record["_metadata"] == {
            "resource": "vin",
            "operation": "specs",
            "timestamp": FIXED_TIMESTAMP,
            "item_index": 0,
        }

    @pytest.mark.asyncio
    async def test_application_error(self, make_dispatcher):
        body = {"success": False, "error": "Invalid VIN"}
        dispatcher, _ = make_dispatcher(TransportResponse(200, body))
        results = await dispatcher.run(
            [{"operation": "specs", "vin": "BAD"}], continue_on_fail=True,
        )
        assert isinstance(results[0], ApplicationFailure)
        assert results[0].to_record()["response_data"] == body

    @pytest.mark.asyncio
    async def test_application_error_strict(self, make_dispatcher):
        dispatcher, _ = make_dispatcher(TransportResponse(200, {"success": False, "error": "Invalid VIN"}))
        with pytest.raises(ApplicationError, match="CarsXE API Error: Invalid VIN"):
            await dispatcher.run([{"operation": "specs", "vin": "BAD"}])

    @pytest.mark.asyncio
    async def test_transport_failure(self, make_dispatcher):
        dispatcher, _ = make_dispatcher(TransportError("connection refused"))
        results = await dispatcher.run(
            [{"operation": "history", "vin": VIN}], continue_on_fail=True,
        )
        assert isinstance(results[0], TransportFailure)
        assert results[0].status_code == "unknown"
        assert results[0].message == "connection refused"

    @pytest.mark.asyncio
    async def test_transport_failure_salvages_status(self, make_dispatcher):
        request = httpx.Request("GET", "https://api.carsxe.com/history")
        response = httpx.Response(503, request=request)
        error = httpx.HTTPStatusError("unavailable", request=request, response=response)
        dispatcher, _ = make_dispatcher(error)
        results = await dispatcher.run(
            [{"operation": "history", "vin": VIN}], continue_on_fail=True,
        )
        assert results[0].status_code == 503

    @pytest.mark.asyncio
    async def test_post_operation(self, make_dispatcher):
        dispatcher, transport = make_dispatcher(TransportResponse(200, {"vin": VIN}))
        await dispatcher.run([{"operation": "vinOcr", "upload_url": "https://x/v.jpg"}])
        request = transport.requests[0]
        assert request.method == "POST"
        assert request.path == "/v1/vinocr?key=test-key&source=test_tag"
        assert request.json == {"upload_url": "https://x/v.jpg"}


# ── Configuration failures ───────────────────────────────────────────────


class TestConfigurationFailures:
    @pytest.mark.asyncio
    async def test_unknown_operation_tolerant(self, make_dispatcher):
        dispatcher, transport = make_dispatcher()
        results = await dispatcher.run([{"operation": "teleport"}], continue_on_fail=True)
        assert isinstance(results[0], ConfigurationFailure)
        assert results[0].message == "Unknown operation: teleport for resource: None"
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_unknown_operation_strict(self, make_dispatcher):
        dispatcher, _ = make_dispatcher()
        with pytest.raises(ConfigurationError, match="Unknown operation"):
            await dispatcher.run([{"operation": "teleport"}])

    @pytest.mark.asyncio
    async def test_wrong_resource(self, make_dispatcher):
        dispatcher, transport = make_dispatcher()
        results = await dispatcher.run(
            [{"operation": "specs", "vin": VIN}], continue_on_fail=True, resource="plate",
        )
        assert isinstance(results[0], ConfigurationFailure)
        assert results[0].resource == "plate"
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_resource_from_item(self, make_dispatcher):
        dispatcher, _ = make_dispatcher()
        results = await dispatcher.run(
            [{"resource": "vin", "operation": "recalls", "vin": VIN}], continue_on_fail=True,
        )
        assert isinstance(results[0], Success)
        assert results[0].resource == "vin"

    @pytest.mark.asyncio
    async def test_missing_operation(self, make_dispatcher):
        dispatcher, _ = make_dispatcher()
        results = await dispatcher.run([{"vin": VIN}], continue_on_fail=True)
        assert isinstance(results[0], ConfigurationFailure)
        assert "operation" in results[0].message

    @pytest.mark.asyncio
    async def test_missing_required_field(self, make_dispatcher):
        dispatcher, transport = make_dispatcher()
        results = await dispatcher.run([{"operation": "obd_decode"}], continue_on_fail=True)
        assert isinstance(results[0], ConfigurationFailure)
        assert "code" in results[0].message
        assert results[0].operation == "obd_decode"
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        dispatcher = Dispatcher(object(), settings=Settings())
        results = await dispatcher.run(
            [{"operation": "specs", "vin": VIN}], continue_on_fail=True,
        )
        assert results[0].message == "No CarsXE API key configured"

    @pytest.mark.asyncio
    async def test_api_key_argument(self, make_dispatcher):
        dispatcher, transport = make_dispatcher()
        await dispatcher.run([{"operation": "specs", "vin": VIN}], api_key="other-key")
        assert transport.requests[0].params["key"] == "other-key"


# ── Sequences ────────────────────────────────────────────────────────────


class TestSequences:
    @pytest.mark.asyncio
    async def test_order_and_tolerance(self, make_dispatcher):
        dispatcher, transport = make_dispatcher(
            TransportResponse(200, {"n": 0}),
            TransportError("boom"),
            TransportResponse(200, {"n": 2}),
        )
        items = [{"operation": "history", "vin": f"V{i}"} for i in range(3)]
        records = await dispatcher.run_records(items, continue_on_fail=True)
        assert len(records) == 3
        assert records[0] == {"n": 0}
        assert records[1]["error_type"] == "TransportError"
        assert records[1]["_metadata"]["item_index"] == 1
        assert records[2] == {"n": 2}
        assert [r.params["vin"] for r in transport.requests] == ["V0", "V1", "V2"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_item", [
        None,
        "specs",
        {"operation": ["specs"]},
        {"operation": "specs", "resource": 7, "vin": VIN},
        {"operation": "specs", "vin": VIN, "additional_options": "deepdata"},
    ])
    async def test_malformed_item_tolerant(self, make_dispatcher, bad_item):
        dispatcher, transport = make_dispatcher(
            TransportResponse(200, {"n": 0}),
            TransportResponse(200, {"n": 2}),
        )
        items = [
            {"operation": "specs", "vin": "A"},
            bad_item,
            {"operation": "specs", "vin": "B"},
        ]
        results = await dispatcher.run(items, continue_on_fail=True)
        assert len(results) == 3
        assert isinstance(results[0], Success)
        assert isinstance(results[1], ConfigurationFailure)
        assert results[1].index == 1
        assert isinstance(results[2], Success)
        assert [r.params["vin"] for r in transport.requests] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_malformed_item_strict(self, make_dispatcher):
        dispatcher, _ = make_dispatcher()
        with pytest.raises(ConfigurationError, match="mapping") as exc_info:
            await dispatcher.run([None])
        assert exc_info.value.item_index == 0

    @pytest.mark.asyncio
    async def test_strict_stops_at_first_failure(self, make_dispatcher):
        dispatcher, transport = make_dispatcher(
            TransportResponse(200, {"n": 0}),
            TransportResponse(500, {"error": "server"}),
        )
        items = [{"operation": "history", "vin": f"V{i}"} for i in range(3)]
        with pytest.raises(HttpStatusError) as exc_info:
            await dispatcher.run(items)
        assert exc_info.value.item_index == 1
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_empty_input(self, make_dispatcher):
        dispatcher, transport = make_dispatcher()
        assert await dispatcher.run([]) == []
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_idempotent(self, make_dispatcher):
        items = [
            {"operation": "specs", "vin": VIN},
            {"operation": "teleport"},
        ]
        first, _ = make_dispatcher(TransportResponse(404, {"error": "not found"}))
        second, _ = make_dispatcher(TransportResponse(404, {"error": "not found"}))
        a = await first.run_records(items, continue_on_fail=True)
        b = await second.run_records(items, continue_on_fail=True)
        assert a == b

    @pytest.mark.asyncio
    async def test_additional_options(self, make_dispatcher):
        dispatcher, transport = make_dispatcher()
        params = MappingParameters([{
            "operation": "images",
            "make": "BMW",
            "model": "X5",
            "additional_options": {"angle": "side", "transparent": True},
        }])
        await dispatcher.run(params)
        request = transport.requests[0]
        assert request.params["angle"] == "side"
        assert request.params["transparent"] is True

    @pytest.mark.asyncio
    async def test_variant_from_settings(self, make_dispatcher):
        variant = CatalogVariant(plate_country_required=True, image_field="image_url")
        dispatcher, transport = make_dispatcher(variant=variant)
        assert dispatcher.catalog.variant == variant
        await dispatcher.run([{"operation": "plate_image_recognition", "upload_url": "u"}])
        assert transport.requests[0].json == {"image_url": "u"}


# ── prepare / dispatch ───────────────────────────────────────────────────


class TestPrepare:
    def test_prepare(self, make_dispatcher):
        dispatcher, _ = make_dispatcher()
        item = dispatcher.prepare({"vin": VIN}, operation="marketValue", index=4)
        assert item.operation == "market_value"
        assert item.index == 4
        assert item.source_tag == "test_tag"

    def test_prepare_custom_catalog(self, settings):
        catalog = Catalog(CatalogVariant(plate_country_required=True))
        dispatcher = Dispatcher(object(), settings=settings, catalog=catalog)
        with pytest.raises(ConfigurationError, match="country"):
            dispatcher.prepare({"plate": "P", "state": "CA"}, operation="plate_decode")

    @pytest.mark.asyncio
    async def test_dispatch_never_raises(self, make_dispatcher):
        dispatcher, _ = make_dispatcher(RuntimeError("unexpected"))
        item = dispatcher.prepare({"vin": VIN}, operation="history")
        result = await dispatcher.dispatch(item)
        assert isinstance(result, TransportFailure)
        assert result.message == "unexpected"
        assert result.timestamp == FIXED_TIMESTAMP


class TestHttpFailureShape:
    @pytest.mark.asyncio
    async def test_payload_kept(self, make_dispatcher):
        dispatcher, _ = make_dispatcher(TransportResponse(422, {"message": "bad plate"}))
        results = await dispatcher.run(
            [{"operation": "plate_decode", "plate": "X", "state": "CA"}], continue_on_fail=True,
        )
        assert isinstance(results[0], HttpFailure)
        assert results[0].payload == {"message": "bad plate"}
