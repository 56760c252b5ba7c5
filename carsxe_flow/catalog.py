"""Operation catalog for the CarsXE API.

A static table describing every callable CarsXE endpoint: its HTTP method,
fixed path and the bindings that map logical input fields onto query
parameters or a JSON body.  The catalog is pure data; turning a parameter
bag into an actual request happens in :mod:`carsxe_flow.request`.

Usage::

    from carsxe_flow.catalog import Catalog

    catalog = Catalog()
    spec = catalog.lookup("vin", "specs")
    spec.method, spec.path
    # => ("GET", "/specs")

Two catalog variants exist because integrations disagree on the plate
decoder's country policy and on the name of the image URL body field.
Both are selected through :class:`CatalogVariant`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .exceptions import ConfigurationError


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

GET = "GET"
POST = "POST"

IMAGE_FIELDS = ("upload_url", "image_url")

DEFAULT_COUNTRY = "US"

# Display labels, keyed by resource id.  Used for the grouped presentation only.
RESOURCES: Dict[str, str] = {
    "diagnostic": "Diagnostic",
    "plate": "License Plate",
    "vehicle": "Vehicle Data",
    "vin": "VIN",
}


class Location(str, Enum):
    """Where a bound field ends up in the outbound request."""

    QUERY = "query"
    BODY = "body"


class Kind(str, Enum):
    """Value kind accepted for a bound field."""

    STRING = "string"
    BOOLEAN = "boolean"


# ---------------------------------------------------------------------------
# ParameterBinding / OperationSpec
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParameterBinding:
    """How one logical input field maps onto the outbound request.

    Optional bindings follow an omit-if-empty policy: a missing, empty or
    false value is left out of the request entirely so that the upstream
    API's own default applies.  A binding with a ``default`` is always sent,
    falling back to the default when the input is empty.
    """

    source: str
    target: Optional[str] = None
    location: Location = Location.QUERY
    required: bool = False
    default: Any = None
    kind: Kind = Kind.STRING
    choices: Optional[Tuple[str, ...]] = None
    display_name: Optional[str] = None
    description: str = ""
    placeholder: Optional[str] = None

    @property
    def target_name(self) -> str:
        return self.target or self.source

    @property
    def resolved_display_name(self) -> str:
        if self.display_name:
            return self.display_name
        return self.source.replace("_", " ").title()

    @property
    def example(self) -> Optional[str]:
        """Sample value taken from the placeholder (``"e.g. P0115"`` gives ``"P0115"``)."""
        if not self.placeholder:
            return None
        return self.placeholder[len("e.g. "):] if self.placeholder.startswith("e.g. ") else self.placeholder

    def to_schema(self) -> Dict[str, Any]:
        """Render the binding as a JSON Schema property."""
        prop: Dict[str, Any] = {
            "type": self.kind.value,
            "title": self.resolved_display_name,
        }
        if self.description:
            prop["description"] = self.description
        if self.choices is not None:
            prop["enum"] = list(self.choices)
        if self.default is not None:
            prop["default"] = self.default
        return prop


@dataclass(frozen=True)
class OperationSpec:
    """Identifies one callable CarsXE capability."""

    key: str
    resource: str
    path: str
    method: str = GET
    bindings: Tuple[ParameterBinding, ...] = ()
    display_name: str = ""
    description: str = ""
    aliases: Tuple[str, ...] = ()

    @property
    def required(self) -> Tuple[ParameterBinding, ...]:
        return tuple(b for b in self.bindings if b.required)

    @property
    def optional(self) -> Tuple[ParameterBinding, ...]:
        return tuple(b for b in self.bindings if not b.required)

    def binding(self, source: str) -> Optional[ParameterBinding]:
        for b in self.bindings:
            if b.source == source:
                return b
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "resource": self.resource,
            "method": self.method,
            "path": self.path,
            "display_name": self.display_name,
            "description": self.description,
            "required": [b.source for b in self.required],
            "optional": [b.source for b in self.optional],
        }


# ---------------------------------------------------------------------------
# CatalogVariant
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CatalogVariant:
    """Selects between the two known catalog flavours.

    ``plate_country_required``
        ``False``: ``state`` is required and ``country`` is optional,
        defaulting to ``"US"``.  ``True``: ``country`` is required and
        ``state`` becomes optional.
    ``image_field``
        JSON body field carrying the image URL for the image-based
        operations (``"upload_url"`` or ``"image_url"``).
    """

    plate_country_required: bool = False
    image_field: str = "upload_url"

    def __post_init__(self) -> None:
        if self.image_field not in IMAGE_FIELDS:
            raise ValueError(
                f"image_field must be one of {IMAGE_FIELDS}, got {self.image_field!r}"
            )


# ---------------------------------------------------------------------------
# Operation table
# ---------------------------------------------------------------------------

def _vin() -> ParameterBinding:
    return ParameterBinding(
        "vin",
        required=True,
        display_name="VIN",
        description="Vehicle Identification Number (17 characters)",
        placeholder="e.g. WBAFR7C57CC811956",
    )


def _image_url(variant: CatalogVariant, description: str) -> ParameterBinding:
    return ParameterBinding(
        "upload_url",
        target=variant.image_field,
        location=Location.BODY,
        required=True,
        display_name="Upload URL",
        description=description,
        placeholder="e.g. https://api.carsxe.com/img/apis/plate_recognition.JPG",
    )


def _plate_bindings(variant: CatalogVariant) -> Tuple[ParameterBinding, ...]:
    plate = ParameterBinding(
        "plate",
        required=True,
        display_name="License Plate",
        description="License plate number",
        placeholder="e.g. 7XER187",
    )
    district = ParameterBinding(
        "district",
        description="District (required for Pakistan)",
        placeholder="e.g. Islamabad",
    )
    if variant.plate_country_required:
        return (
            plate,
            ParameterBinding(
                "country",
                required=True,
                description="Country code (US, CA, AU, UK, PK)",
                placeholder="e.g. US",
            ),
            ParameterBinding(
                "state",
                description="State/Province code (required for US, AU, CA)",
                placeholder="e.g. CA",
            ),
            district,
        )
    return (
        plate,
        ParameterBinding(
            "state",
            required=True,
            description="State/Province code (required for US, AU, CA)",
            placeholder="e.g. CA",
        ),
        ParameterBinding(
            "country",
            default=DEFAULT_COUNTRY,
            description="Country code (US, CA, AU, UK, PK) - defaults to US",
            placeholder="e.g. US",
        ),
        district,
    )


def build_operations(variant: CatalogVariant) -> Tuple[OperationSpec, ...]:
    """Return every operation the API supports, configured for *variant*."""
    return (
        OperationSpec(
            key="specs",
            resource="vin",
            path="/specs",
            display_name="Get VIN Specs",
            description="Decode VIN and get full vehicle specifications",
            bindings=(
                _vin(),
                ParameterBinding(
                    "deepdata",
                    kind=Kind.BOOLEAN,
                    display_name="Deep Data",
                    description="Whether to include detailed specifications",
                ),
                ParameterBinding(
                    "disable_int_vin_decoding",
                    target="disableIntVINDecoding",
                    kind=Kind.BOOLEAN,
                    display_name="Disable International VIN Decoding",
                    description="Whether to disable international VIN decoding",
                ),
            ),
        ),
        OperationSpec(
            key="international_vin_decode",
            resource="vin",
            path="/v1/international-vin-decoder",
            display_name="Get International VIN Specs",
            description="Decode VIN with worldwide support",
            bindings=(_vin(),),
            aliases=("intVinDecoder",),
        ),
        OperationSpec(
            key="plate_decode",
            resource="plate",
            path="/v2/platedecoder",
            display_name="Get License Plate Specs",
            description="Decode license plate info (plate, country)",
            bindings=_plate_bindings(variant),
            aliases=("plateDecoder",),
        ),
        OperationSpec(
            key="market_value",
            resource="vin",
            path="/v2/marketvalue",
            display_name="Get a Vehicle Market Value",
            description="Estimate vehicle market value based on VIN",
            bindings=(
                _vin(),
                ParameterBinding(
                    "state",
                    description="State code for more accurate market valuation",
                    placeholder="e.g. CA",
                ),
            ),
            aliases=("marketValue",),
        ),
        OperationSpec(
            key="history",
            resource="vin",
            path="/history",
            display_name="Get a Vehicle History Report",
            description="Retrieve vehicle history",
            bindings=(_vin(),),
        ),
        OperationSpec(
            key="vehicle_images",
            resource="vehicle",
            path="/images",
            display_name="Get Vehicle Images",
            description="Fetch images by make, model, year, trim",
            bindings=(
                ParameterBinding("make", required=True, description="Vehicle make", placeholder="e.g. BMW"),
                ParameterBinding("model", required=True, description="Vehicle model", placeholder="e.g. X5"),
                ParameterBinding("year", description="The vehicle year", placeholder="e.g. 2019"),
                ParameterBinding("color", description="The vehicle color", placeholder="e.g. red"),
                ParameterBinding("trim", description="The vehicle trim level", placeholder="e.g. xDrive35i"),
                ParameterBinding(
                    "transparent",
                    kind=Kind.BOOLEAN,
                    description="Whether to prioritize images with transparent background",
                ),
                ParameterBinding(
                    "angle",
                    choices=("front", "side", "back"),
                    description="The angle to show the car in",
                ),
                ParameterBinding(
                    "photo_type",
                    target="photoType",
                    choices=("exterior", "interior", "engine"),
                    description="Request images of either interior, exterior or engine",
                ),
                ParameterBinding(
                    "size",
                    choices=("All", "Large", "Medium", "Small", "Wallpaper"),
                    description="The image size",
                ),
                ParameterBinding(
                    "license",
                    choices=("Modify", "ModifyCommercially", "Public", "Share", "ShareCommercially"),
                    description="Filter images by license type. Leave blank to return all images.",
                ),
                ParameterBinding(
                    "format",
                    choices=("json", "xml"),
                    description="The format of the response",
                ),
            ),
            aliases=("images",),
        ),
        OperationSpec(
            key="recalls",
            resource="vin",
            path="/v1/recalls",
            display_name="Get Vehicle Safety Recalls",
            description="Get safety recall data for a VIN",
            bindings=(_vin(),),
        ),
        OperationSpec(
            key="plate_image_recognition",
            resource="plate",
            path="/platerecognition",
            method=POST,
            display_name="Get a License Plate From Image",
            description="Read and decode plates from images",
            bindings=(_image_url(variant, "URL of the license plate image to analyze"),),
            aliases=("plateImageRecognition",),
        ),
        OperationSpec(
            key="vin_ocr",
            resource="diagnostic",
            path="/v1/vinocr",
            method=POST,
            display_name="Get a VIN From Image",
            description="Extract VINs from images using OCR",
            bindings=(_image_url(variant, "URL of the VIN image to extract text from"),),
            aliases=("vinOcr",),
        ),
        OperationSpec(
            key="year_make_model",
            resource="vehicle",
            path="/v1/ymm",
            display_name="Get Vehicle Specs by Year/Make/Model",
            description="Query vehicle by year, make, model and trim (optional)",
            bindings=(
                ParameterBinding("year", required=True, description="Vehicle year", placeholder="e.g. 2012"),
                ParameterBinding("make", required=True, description="Vehicle make", placeholder="e.g. BMW"),
                ParameterBinding("model", required=True, description="Vehicle model", placeholder="e.g. X5"),
                ParameterBinding("trim", description="Vehicle trim level", placeholder="e.g. Gran Turismo"),
            ),
            aliases=("yearMakeModel",),
        ),
        OperationSpec(
            key="obd_decode",
            resource="diagnostic",
            path="/obdcodesdecoder",
            display_name="Get OBD Code Specs",
            description="Decode OBD error/diagnostic codes",
            bindings=(
                ParameterBinding(
                    "code",
                    required=True,
                    display_name="OBD Code",
                    description="OBD error/diagnostic code",
                    placeholder="e.g. P0115",
                ),
            ),
            aliases=("obdCodesDecoder",),
        ),
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class Catalog:
    """Lookup table of :class:`OperationSpec` objects.

    ``lookup(None, op)`` resolves by operation alone (flat mode);
    ``lookup(resource, op)`` additionally requires the operation to belong
    to *resource* (grouped mode).  Operation names are accepted as the
    snake_case key, its kebab-case spelling, or a camelCase alias.
    """

    def __init__(self, variant: Optional[CatalogVariant] = None):
        self.variant = variant or CatalogVariant()
        self._operations: Dict[str, OperationSpec] = {}
        self._names: Dict[str, str] = {}
        for spec in build_operations(self.variant):
            self._operations[spec.key] = spec
            for name in (spec.key, spec.key.replace("_", "-"), *spec.aliases):
                self._names[name] = spec.key

    def find(self, resource: Optional[str], operation: str) -> Optional[OperationSpec]:
        """Return the matching spec, or ``None`` if there is none."""
        key = self._names.get(operation)
        if key is None:
            return None
        spec = self._operations[key]
        if resource is not None and spec.resource != resource:
            return None
        return spec

    def lookup(self, resource: Optional[str], operation: str) -> OperationSpec:
        """Return the matching spec.

        Raises:
            ConfigurationError: If no operation matches.
        """
        spec = self.find(resource, operation)
        if spec is None:
            raise ConfigurationError(
                f"Unknown operation: {operation} for resource: {resource}",
                operation=operation,
                resource=resource,
            )
        return spec

    def get(self, key: str) -> OperationSpec:
        return self.lookup(None, key)

    def __contains__(self, operation: object) -> bool:
        return operation in self._names

    def __iter__(self) -> Iterator[OperationSpec]:
        return iter(self._operations.values())

    def __len__(self) -> int:
        return len(self._operations)

    def keys(self) -> List[str]:
        return list(self._operations)

    # -- Presentation --------------------------------------------------------

    def flat(self) -> List[OperationSpec]:
        """All operations, sorted by display name."""
        return sorted(self._operations.values(), key=lambda s: s.display_name)

    def grouped(self) -> Dict[str, List[OperationSpec]]:
        """Operations keyed by resource id (alphabetical), each group sorted by display name."""
        groups: Dict[str, List[OperationSpec]] = {}
        for resource in sorted(RESOURCES):
            members = [s for s in self.flat() if s.resource == resource]
            if members:
                groups[resource] = members
        return groups

    def input_schema(self, operation: str) -> Dict[str, Any]:
        """JSON Schema describing the inputs of *operation*."""
        spec = self.get(operation)
        return {
            "type": "object",
            "properties": {b.source: b.to_schema() for b in spec.bindings},
            "required": [b.source for b in spec.required],
        }

    def example_input(self, operation: str) -> Dict[str, Any]:
        """Sample values for the required inputs of *operation*."""
        spec = self.get(operation)
        return {b.source: b.example for b in spec.required if b.example is not None}


__all__ = [
    "GET",
    "POST",
    "IMAGE_FIELDS",
    "DEFAULT_COUNTRY",
    "RESOURCES",
    "Location",
    "Kind",
    "ParameterBinding",
    "OperationSpec",
    "CatalogVariant",
    "build_operations",
    "Catalog",
]
