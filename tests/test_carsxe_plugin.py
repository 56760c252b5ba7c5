"""Tests for the CarsXE plugin."""

import json

import httpx
import pytest

from carsxe_flow.catalog import CatalogVariant
from carsxe_flow.plugins import carsxe as carsxe_module
from carsxe_flow.plugins.carsxe import (
    CarsXEPlugin,
    carsxe_batch,
    carsxe_obd_decode,
    carsxe_plate_decode,
    carsxe_specs,
    carsxe_vehicle_images,
    carsxe_verify_credentials,
    carsxe_vin_ocr,
)
from carsxe_flow.safety import SafetyPolicy
from carsxe_flow.transport import HttpxTransport


@pytest.fixture
def http_log(monkeypatch):
    """Route every plugin request through an httpx MockTransport.

    Responses are looked up by URL path; unknown paths answer 404.
    """
    log = {"requests": [], "responses": {}}

    def handler(request):
        log["requests"].append(request)
        status, body = log["responses"].get(request.url.path, (404, {"error": "not found"}))
        return httpx.Response(status, json=body)

    def make_transport(timeout=30.0):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return HttpxTransport(client=client, timeout=timeout)

    monkeypatch.setattr(carsxe_module, "HttpxTransport", make_transport)
    monkeypatch.setenv("CARSXE_API_KEY", "env-key")
    monkeypatch.delenv("CARSXE_BASE_URL", raising=False)
    monkeypatch.delenv("CARSXE_SOURCE_TAG", raising=False)
    monkeypatch.delenv("CARSXE_PLATE_COUNTRY_REQUIRED", raising=False)
    monkeypatch.delenv("CARSXE_IMAGE_FIELD", raising=False)
    return log


# ── Descriptors ──────────────────────────────────────────────────────────


class TestDescriptors:
    def test_specs_descriptor(self):
        sk = carsxe_specs.__skill__
        assert sk.descriptor.name == "carsxe_specs"
        assert sk.descriptor.requires_network is True
        assert sk.descriptor.is_async is True
        assert sk.descriptor.idempotent is True
        assert sk.descriptor.input_schema["required"] == ["vin"]
        assert "vin" in sk.descriptor.tags

    def test_examples_from_placeholders(self):
        example = carsxe_obd_decode.__skill__.descriptor.examples[0]
        assert example.input == {"code": "P0115"}
        assert example.description == "Decode OBD error/diagnostic codes"
        assert carsxe_vehicle_images.__skill__.descriptor.examples[0].input == {"make": "BMW", "model": "X5"}

    def test_config_params(self):
        names = [cp.name for cp in carsxe_specs.__skill__.descriptor.config_params]
        assert names == ["api_key", "timeout"]

    def test_to_dict(self):
        d = carsxe_vehicle_images.__skill__.descriptor.to_dict()
        assert d["group"] == "Integrations"
        assert d["risk_level"] == "safe"
        assert d["display_name"] == "Get Vehicle Images"
        assert d["config_params"][0]["type"] == "secret"

    def test_blocked_by_policy(self):
        policy = SafetyPolicy(allow_network=False)
        result = carsxe_specs.__skill__.invoke("WBAFR7C57CC811956", policy=policy)
        assert result.failed
        assert "network" in result.error.lower()

    def test_blocked_import(self):
        policy = SafetyPolicy(blocked_imports={"httpx"})
        result = carsxe_obd_decode.__skill__.invoke("P0115", policy=policy)
        assert result.failed
        assert "httpx" in result.error


# ── Plugin registration ──────────────────────────────────────────────────


class TestCarsXEPlugin:
    def test_plugin_name(self):
        assert CarsXEPlugin().name == "carsxe"

    def test_has_skills(self):
        skills = CarsXEPlugin().skills
        assert len(skills) == 13
        for name in (
            "carsxe_specs",
            "carsxe_international_vin_decode",
            "carsxe_plate_decode",
            "carsxe_market_value",
            "carsxe_history",
            "carsxe_vehicle_images",
            "carsxe_recalls",
            "carsxe_plate_image_recognition",
            "carsxe_vin_ocr",
            "carsxe_year_make_model",
            "carsxe_obd_decode",
            "carsxe_batch",
            "carsxe_verify_credentials",
        ):
            assert name in skills

    def test_manifest(self):
        manifest = CarsXEPlugin().manifest
        assert manifest.icon == "car"
        assert manifest.requires.network is True
        assert manifest.requires.env == ["CARSXE_API_KEY"]
        assert manifest.to_dict()["requires"]["imports"] == ["httpx"]

    def test_default_variant_schema(self, monkeypatch):
        monkeypatch.delenv("CARSXE_PLATE_COUNTRY_REQUIRED", raising=False)
        schema = CarsXEPlugin().skills["carsxe_plate_decode"].descriptor.input_schema
        assert schema["required"] == ["plate", "state"]

    def test_explicit_variant_schema(self):
        skills = CarsXEPlugin(CatalogVariant(plate_country_required=True)).skills
        descriptor = skills["carsxe_plate_decode"].descriptor
        assert descriptor.input_schema["required"] == ["plate", "country"]
        assert descriptor.examples[0].input == {"plate": "7XER187", "country": "US"}
        assert skills["carsxe_plate_decode"].fn is carsxe_plate_decode

    def test_environment_variant_schema(self, monkeypatch):
        monkeypatch.setenv("CARSXE_PLATE_COUNTRY_REQUIRED", "true")
        skills = CarsXEPlugin().skills
        assert skills["carsxe_plate_decode"].descriptor.input_schema["required"] == ["plate", "country"]


# ── Skill calls ──────────────────────────────────────────────────────────


class TestSkillCalls:
    @pytest.mark.asyncio
    async def test_specs(self, http_log):
        http_log["responses"]["/specs"] = (200, {"make": "BMW"})
        record = await carsxe_specs("WBAFR7C57CC811956", deepdata=True)
        assert record == {"make": "BMW"}
        params = dict(http_log["requests"][0].url.params)
        assert params["key"] == "env-key"
        assert params["source"] == "carsxe_flow"
        assert params["deepdata"] == "true"
        assert "disableIntVINDecoding" not in params

    @pytest.mark.asyncio
    async def test_api_key_argument(self, http_log):
        http_log["responses"]["/specs"] = (200, {"make": "BMW"})
        await carsxe_specs("WBAFR7C57CC811956", api_key="arg-key")
        assert http_log["requests"][0].url.params["key"] == "arg-key"

    @pytest.mark.asyncio
    async def test_plate_decode_default_country(self, http_log):
        http_log["responses"]["/v2/platedecoder"] = (200, {"plate": "7XER187"})
        await carsxe_plate_decode("7XER187", state="CA")
        params = dict(http_log["requests"][0].url.params)
        assert params["country"] == "US"
        assert "district" not in params

    @pytest.mark.asyncio
    async def test_vehicle_images_renamed_fields(self, http_log):
        http_log["responses"]["/images"] = (200, {"images": []})
        await carsxe_vehicle_images(
            "BMW", "X5", photo_type="interior", license_type="Public", response_format="json",
        )
        params = dict(http_log["requests"][0].url.params)
        assert params["photoType"] == "interior"
        assert params["license"] == "Public"
        assert params["format"] == "json"

    @pytest.mark.asyncio
    async def test_vin_ocr_post(self, http_log):
        http_log["responses"]["/v1/vinocr"] = (200, {"vin": "WBAFR7C57CC811956"})
        record = await carsxe_vin_ocr("https://x/vin.jpg")
        request = http_log["requests"][0]
        assert request.method == "POST"
        assert json.loads(request.content) == {"upload_url": "https://x/vin.jpg"}
        assert record["vin"] == "WBAFR7C57CC811956"

    @pytest.mark.asyncio
    async def test_http_error_record(self, http_log):
        record = await carsxe_obd_decode("P0115")
        assert record["error"] is True
        assert record["status_code"] == 404
        assert record["error_message"] == "not found"
        assert record["_metadata"]["operation"] == "obd_decode"

    @pytest.mark.asyncio
    async def test_missing_required_field_record(self, http_log):
        record = await carsxe_plate_decode("7XER187")
        assert record["error_type"] == "ConfigurationError"
        assert http_log["requests"] == []

    @pytest.mark.asyncio
    async def test_ainvoke(self, http_log):
        http_log["responses"]["/obdcodesdecoder"] = (200, {"code": "P0115"})
        result = await carsxe_obd_decode.__skill__.ainvoke("P0115")
        assert result.success
        assert result.value == {"code": "P0115"}


class TestBatchSkill:
    @pytest.mark.asyncio
    async def test_batch_tolerant(self, http_log):
        http_log["responses"]["/history"] = (200, {"records": []})
        records = await carsxe_batch([
            {"operation": "history", "vin": "V1"},
            {"operation": "teleport"},
            {"operation": "recalls", "vin": "V2"},
        ])
        assert records[0] == {"records": []}
        assert records[1]["error_type"] == "ConfigurationError"
        assert records[2]["status_code"] == 404

    @pytest.mark.asyncio
    async def test_batch_strict_via_ainvoke(self, http_log):
        result = await carsxe_batch.__skill__.ainvoke(
            [{"operation": "recalls", "vin": "V"}], continue_on_fail=False,
        )
        assert result.failed
        assert "CarsXE API Error (404)" in result.error

    @pytest.mark.asyncio
    async def test_batch_resource(self, http_log):
        records = await carsxe_batch([{"operation": "specs", "vin": "V"}], resource="plate")
        assert records[0]["error_message"] == "Unknown operation: specs for resource: plate"


class TestVerifyCredentials:
    @pytest.mark.asyncio
    async def test_valid(self, http_log):
        http_log["responses"]["/specs"] = (200, {"make": "BMW"})
        assert await carsxe_verify_credentials() == {"valid": True}
        params = dict(http_log["requests"][0].url.params)
        assert params["vin"] == "WBAFR7C57CC811956"

    @pytest.mark.asyncio
    async def test_rejected(self, http_log):
        http_log["responses"]["/specs"] = (401, {"error": "Invalid key"})
        result = await carsxe_verify_credentials(api_key="bad")
        assert result == {"valid": False, "error": "Invalid key", "status_code": 401}

    @pytest.mark.asyncio
    async def test_no_key(self, http_log, monkeypatch):
        monkeypatch.delenv("CARSXE_API_KEY")
        result = await carsxe_verify_credentials()
        assert result["valid"] is False
        assert http_log["requests"] == []
