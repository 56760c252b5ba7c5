"""CarsXE plugin.

Provides one async skill per CarsXE operation (``carsxe_specs``,
``carsxe_plate_decode``, ``carsxe_vehicle_images``, ...), plus
``carsxe_batch`` for running a list of workflow items and
``carsxe_verify_credentials`` for checking an API key.

Every skill returns the normalized output record: the upstream body on
success, or a structured error dict (``success: False``) on failure.

Requires ``httpx`` and a ``CARSXE_API_KEY`` environment variable (or an
``api_key`` argument).
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional

from ...catalog import Catalog, CatalogVariant
from ...config import Settings
from ...credentials import ApiKeyCredentials
from ...dispatcher import Dispatcher
from ...plugins.base import Plugin
from ...skill import skill, ConfigParam, ConfigScope, RiskLevel, Skill, SkillExample
from ...transport import HttpxTransport

# Descriptors follow the catalog variant selected by the environment at import.
_CATALOG = Catalog(Settings.from_env().variant)

_GROUP = "Integrations"

_COMMON_CONFIG = [
    ConfigParam(
        name="api_key",
        display_name="API Key",
        description="Your CarsXE API key. Falls back to CARSXE_API_KEY.",
        type="secret",
        scope=ConfigScope.GLOBAL,
        placeholder="CarsXE API key",
    ),
    ConfigParam(
        name="timeout",
        display_name="Timeout",
        description="Request timeout.",
        type="number",
        default=30,
        min=1,
        max=120,
        unit="seconds",
    ),
]


def _dispatcher(api_key: str, timeout: float) -> Dispatcher:
    settings = Settings.from_env().with_overrides(api_key=api_key or None, timeout=timeout)
    return Dispatcher(HttpxTransport(timeout=settings.timeout), settings=settings)


async def _call(operation: str, params: Dict[str, Any], api_key: str, timeout: float) -> Any:
    dispatcher = _dispatcher(api_key, timeout)
    results = await dispatcher.run([dict(params, operation=operation)], continue_on_fail=True)
    return results[0].to_record()


def _examples(catalog: Catalog, key: str) -> List[SkillExample]:
    spec = catalog.get(key)
    return [SkillExample(input=catalog.example_input(key), description=spec.description)]


def _operation_skill(key: str, tags: List[str], icon: str):
    spec = _CATALOG.get(key)
    return skill(
        name=f"carsxe_{key}",
        display_name=spec.display_name,
        description=f"{spec.description} (CarsXE).",
        category="carsxe",
        tags=["carsxe", "vehicle", spec.resource] + tags,
        icon=icon,
        risk_level=RiskLevel.SAFE,
        group=_GROUP,
        idempotent=True,
        requires_network=True,
        required_imports=["httpx"],
        input_schema=_CATALOG.input_schema(key),
        examples=_examples(_CATALOG, key),
        config_params=_COMMON_CONFIG,
    )


# -- VIN ---------------------------------------------------------------------


@_operation_skill("specs", ["vin", "decode"], "car")
async def carsxe_specs(
    vin: str,
    deepdata: bool = False,
    disable_int_vin_decoding: bool = False,
    api_key: str = "",
    timeout: int = 30,
) -> Any:
    """Decode a VIN into full vehicle specifications."""
    return await _call(
        "specs",
        {"vin": vin, "deepdata": deepdata, "disable_int_vin_decoding": disable_int_vin_decoding},
        api_key,
        timeout,
    )


@_operation_skill("international_vin_decode", ["vin", "decode", "international"], "globe")
async def carsxe_international_vin_decode(vin: str, api_key: str = "", timeout: int = 30) -> Any:
    return await _call("international_vin_decode", {"vin": vin}, api_key, timeout)


@_operation_skill("market_value", ["vin", "price", "valuation"], "dollar-sign")
async def carsxe_market_value(vin: str, state: str = "", api_key: str = "", timeout: int = 30) -> Any:
    """Estimate market value for a VIN, optionally for a given state."""
    return await _call("market_value", {"vin": vin, "state": state}, api_key, timeout)


@_operation_skill("history", ["vin", "history", "report"], "history")
async def carsxe_history(vin: str, api_key: str = "", timeout: int = 30) -> Any:
    return await _call("history", {"vin": vin}, api_key, timeout)


@_operation_skill("recalls", ["vin", "recalls", "safety"], "alert-triangle")
async def carsxe_recalls(vin: str, api_key: str = "", timeout: int = 30) -> Any:
    return await _call("recalls", {"vin": vin}, api_key, timeout)


# -- License plate -----------------------------------------------------------


@_operation_skill("plate_decode", ["plate", "license", "decode"], "rectangle-horizontal")
async def carsxe_plate_decode(
    plate: str,
    state: str = "",
    country: str = "",
    district: str = "",
    api_key: str = "",
    timeout: int = 30,
) -> Any:
    """Decode a license plate.

    ``state`` is needed for US, AU and CA plates; ``district`` for Pakistan.
    """
    return await _call(
        "plate_decode",
        {"plate": plate, "state": state, "country": country, "district": district},
        api_key,
        timeout,
    )


@_operation_skill("plate_image_recognition", ["plate", "image", "ocr"], "scan")
async def carsxe_plate_image_recognition(upload_url: str, api_key: str = "", timeout: int = 30) -> Any:
    return await _call("plate_image_recognition", {"upload_url": upload_url}, api_key, timeout)


# -- Vehicle data ------------------------------------------------------------


@_operation_skill("vehicle_images", ["images", "photos"], "image")
async def carsxe_vehicle_images(
    make: str,
    model: str,
    year: str = "",
    color: str = "",
    trim: str = "",
    transparent: bool = False,
    angle: str = "",
    photo_type: str = "",
    size: str = "",
    license_type: str = "",
    response_format: str = "",
    api_key: str = "",
    timeout: int = 30,
) -> Any:
    """Fetch vehicle images by make and model, narrowed by the optional filters."""
    return await _call(
        "vehicle_images",
        {
            "make": make,
            "model": model,
            "year": year,
            "color": color,
            "trim": trim,
            "transparent": transparent,
            "angle": angle,
            "photo_type": photo_type,
            "size": size,
            "license": license_type,
            "format": response_format,
        },
        api_key,
        timeout,
    )


@_operation_skill("year_make_model", ["ymm", "specs"], "list")
async def carsxe_year_make_model(
    year: str,
    make: str,
    model: str,
    trim: str = "",
    api_key: str = "",
    timeout: int = 30,
) -> Any:
    return await _call(
        "year_make_model",
        {"year": year, "make": make, "model": model, "trim": trim},
        api_key,
        timeout,
    )


# -- Diagnostic --------------------------------------------------------------


@_operation_skill("obd_decode", ["obd", "diagnostic", "code"], "wrench")
async def carsxe_obd_decode(code: str, api_key: str = "", timeout: int = 30) -> Any:
    """Explain an OBD-II diagnostic trouble code such as P0115."""
    return await _call("obd_decode", {"code": code}, api_key, timeout)


@_operation_skill("vin_ocr", ["vin", "image", "ocr"], "scan-text")
async def carsxe_vin_ocr(upload_url: str, api_key: str = "", timeout: int = 30) -> Any:
    return await _call("vin_ocr", {"upload_url": upload_url}, api_key, timeout)


# -- Workflow helpers --------------------------------------------------------


@skill(
    name="carsxe_batch",
    display_name="CarsXE Batch",
    description=(
        "Run one CarsXE request per workflow item, in order. Each item names its "
        "operation (and optionally resource) plus the operation's fields."
    ),
    category="carsxe",
    tags=["carsxe", "vehicle", "batch", "workflow"],
    icon="layers",
    risk_level=RiskLevel.SAFE,
    group=_GROUP,
    requires_network=True,
    required_imports=["httpx"],
    input_schema={
        "type": "object",
        "properties": {
            "items": {"type": "array", "items": {"type": "object"}},
            "resource": {"type": "string"},
            "continue_on_fail": {"type": "boolean", "default": True},
        },
        "required": ["items"],
    },
    config_params=_COMMON_CONFIG,
)
async def carsxe_batch(
    items: list,
    resource: str = "",
    continue_on_fail: bool = True,
    api_key: str = "",
    timeout: int = 30,
) -> list:
    """Process *items* in order and return one output record per item.

    With ``continue_on_fail=False`` the first failure raises, and
    ``Skill.ainvoke`` reports it as a failed result.
    """
    dispatcher = _dispatcher(api_key, timeout)
    return await dispatcher.run_records(
        items, continue_on_fail=continue_on_fail, resource=resource or None,
    )


@skill(
    name="carsxe_verify_credentials",
    display_name="Verify CarsXE API Key",
    description="Check that a CarsXE API key is accepted by decoding a known VIN.",
    category="carsxe",
    tags=["carsxe", "credentials"],
    icon="key",
    risk_level=RiskLevel.SAFE,
    group=_GROUP,
    idempotent=True,
    requires_network=True,
    required_imports=["httpx"],
    input_schema={"type": "object", "properties": {}},
    config_params=_COMMON_CONFIG,
)
async def carsxe_verify_credentials(api_key: str = "", timeout: int = 30) -> dict:
    dispatcher = _dispatcher(api_key, timeout)
    key = dispatcher.settings.api_key
    if not key:
        return {"valid": False, "error": "No CarsXE API key configured"}
    result = await ApiKeyCredentials(key).verify(dispatcher)
    if result.failed:
        return {"valid": False, "error": result.message, "status_code": result.status_code}
    return {"valid": True}


_OPERATION_SKILLS = [
    carsxe_specs,
    carsxe_international_vin_decode,
    carsxe_plate_decode,
    carsxe_market_value,
    carsxe_history,
    carsxe_vehicle_images,
    carsxe_recalls,
    carsxe_plate_image_recognition,
    carsxe_vin_ocr,
    carsxe_year_make_model,
    carsxe_obd_decode,
]


class CarsXEPlugin(Plugin):
    """Plugin providing CarsXE vehicle-data skills.

    Operation skill descriptors (input schema and examples) are rendered
    for *variant*, which defaults to the one the environment selects.
    """

    def __init__(self, variant: Optional[CatalogVariant] = None):
        super().__init__("carsxe")
        self.catalog = Catalog(variant or Settings.from_env().variant)

    def _operation_skill(self, fn) -> Skill:
        descriptor = fn.__skill__.descriptor
        key = descriptor.name[len("carsxe_"):]
        descriptor = replace(
            descriptor,
            input_schema=self.catalog.input_schema(key),
            examples=_examples(self.catalog, key),
        )
        return Skill(descriptor=descriptor, fn=fn)

    @property
    def skills(self) -> Dict[str, Any]:
        skills = {}
        for fn in _OPERATION_SKILLS:
            sk = self._operation_skill(fn)
            skills[sk.descriptor.name] = sk
        skills["carsxe_batch"] = carsxe_batch.__skill__
        skills["carsxe_verify_credentials"] = carsxe_verify_credentials.__skill__
        return skills

    @property
    def manifest(self):
        from ...manifest import PluginManifest, PluginRequirements
        return PluginManifest(
            name="carsxe",
            display_name="CarsXE",
            description="Vehicle data from the CarsXE API: VIN and plate decoding, images, recalls, OBD codes.",
            documentation_url="https://api.carsxe.com/docs",
            icon="car",
            group=_GROUP,
            requires=PluginRequirements(network=True, imports=["httpx"], env=["CARSXE_API_KEY"]),
        )
