"""Runtime settings for the CarsXE integration.

The dispatcher itself reads no environment variables; it is handed a
:class:`Settings` instance.  The plugin skills and the CLI build one with
:meth:`Settings.from_env`.

Environment variables:

``CARSXE_API_KEY``                  API key sent with every request
``CARSXE_BASE_URL``                 API origin (default ``https://api.carsxe.com``)
``CARSXE_SOURCE_TAG``               ``source`` query parameter (default ``carsxe_flow``)
``CARSXE_TIMEOUT``                  request timeout in seconds (default 30)
``CARSXE_PLATE_COUNTRY_REQUIRED``   ``true`` to require ``country`` for plate decoding
``CARSXE_IMAGE_FIELD``              ``upload_url`` (default) or ``image_url``
"""

import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

from .catalog import CatalogVariant

DEFAULT_BASE_URL = "https://api.carsxe.com"
DEFAULT_SOURCE_TAG = "carsxe_flow"
DEFAULT_TIMEOUT = 30.0


def _env_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    base_url: str = DEFAULT_BASE_URL
    source_tag: str = DEFAULT_SOURCE_TAG
    timeout: float = DEFAULT_TIMEOUT
    api_key: Optional[str] = field(default=None, repr=False)
    variant: CatalogVariant = field(default_factory=CatalogVariant)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from *environ* (defaults to ``os.environ``)."""
        env = os.environ if environ is None else environ
        timeout = env.get("CARSXE_TIMEOUT")
        return cls(
            base_url=env.get("CARSXE_BASE_URL") or DEFAULT_BASE_URL,
            source_tag=env.get("CARSXE_SOURCE_TAG") or DEFAULT_SOURCE_TAG,
            timeout=float(timeout) if timeout else DEFAULT_TIMEOUT,
            api_key=env.get("CARSXE_API_KEY") or None,
            variant=CatalogVariant(
                plate_country_required=_env_bool(env.get("CARSXE_PLATE_COUNTRY_REQUIRED")),
                image_field=env.get("CARSXE_IMAGE_FIELD") or "upload_url",
            ),
        )

    def with_overrides(self, **changes) -> "Settings":
        """Copy with the non-``None`` values of *changes* applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_SOURCE_TAG",
    "DEFAULT_TIMEOUT",
    "Settings",
]
