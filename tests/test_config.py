"""Tests for Settings and the API key credentials."""

import pytest

from carsxe_flow.catalog import CatalogVariant
from carsxe_flow.config import DEFAULT_BASE_URL, DEFAULT_SOURCE_TAG, Settings
from carsxe_flow.credentials import TEST_VIN, ApiKeyCredentials, mask_key
from carsxe_flow.results import Success
from carsxe_flow.transport import TransportResponse


# ── Settings ─────────────────────────────────────────────────────────────


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.base_url == DEFAULT_BASE_URL == "https://api.carsxe.com"
        assert s.source_tag == DEFAULT_SOURCE_TAG
        assert s.timeout == 30.0
        assert s.api_key is None
        assert s.variant == CatalogVariant()

    def test_from_empty_env(self):
        assert Settings.from_env({}) == Settings()

    def test_from_env(self):
        s = Settings.from_env({
            "CARSXE_API_KEY": "k",
            "CARSXE_BASE_URL": "http://localhost:9000",
            "CARSXE_SOURCE_TAG": "my_workflow",
            "CARSXE_TIMEOUT": "5",
            "CARSXE_PLATE_COUNTRY_REQUIRED": "true",
            "CARSXE_IMAGE_FIELD": "image_url",
        })
        assert s.api_key == "k"
        assert s.base_url == "http://localhost:9000"
        assert s.source_tag == "my_workflow"
        assert s.timeout == 5.0
        assert s.variant == CatalogVariant(plate_country_required=True, image_field="image_url")

    def test_from_env_bad_image_field(self):
        with pytest.raises(ValueError):
            Settings.from_env({"CARSXE_IMAGE_FIELD": "photo"})

    def test_with_overrides_ignores_none(self):
        s = Settings(api_key="a").with_overrides(api_key=None, timeout=10)
        assert s.api_key == "a"
        assert s.timeout == 10

    def test_api_key_hidden_from_repr(self):
        assert "secret" not in repr(Settings(api_key="secret"))


# ── Credentials ──────────────────────────────────────────────────────────


class TestCredentials:
    def test_mask_key(self):
        assert mask_key("abcdefgh") == "****efgh"
        assert mask_key("abc") == "***"

    def test_repr_masks_key(self):
        assert "supersecret" not in repr(ApiKeyCredentials("supersecret"))

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            ApiKeyCredentials("  ")

    def test_test_request(self):
        request = ApiKeyCredentials("K").test_request(DEFAULT_BASE_URL, "tag")
        assert request.method == "GET"
        assert request.url == f"https://api.carsxe.com/specs?key=K&source=tag&vin={TEST_VIN}"

    @pytest.mark.asyncio
    async def test_verify(self, make_dispatcher):
        dispatcher, transport = make_dispatcher(TransportResponse(200, {"make": "BMW"}))
        result = await ApiKeyCredentials("K").verify(dispatcher)
        assert isinstance(result, Success)
        assert transport.requests[0].params == {
            "key": "K",
            "source": "test_tag",
            "vin": TEST_VIN,
        }
