"""Plugin manifests - declarative plugin metadata for discovery and UI.

Usage::

    from carsxe_flow.manifest import PluginManifest, PluginRequirements

    manifest = PluginManifest(
        name="carsxe",
        display_name="CarsXE",
        description="Vehicle data from the CarsXE API.",
        icon="car",
        group="Integrations",
        requires=PluginRequirements(network=True, imports=["httpx"], env=["CARSXE_API_KEY"]),
    )
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class PluginRequirements:
    """What a plugin needs from the environment to function."""

    network: bool = False
    imports: List[str] = field(default_factory=list)
    env: List[str] = field(default_factory=list)  # Environment variables read at call time
    min_python: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {}
        if self.network:
            d["network"] = True
        if self.imports:
            d["imports"] = self.imports
        if self.env:
            d["env"] = self.env
        if self.min_python is not None:
            d["minPython"] = self.min_python
        return d


@dataclass
class PluginManifest:
    """Declarative metadata about a plugin.

    Every :class:`~carsxe_flow.plugins.base.Plugin` exposes a ``manifest``
    property; the base class derives a minimal one from the plugin name.
    """

    name: str
    display_name: str = ""
    description: str = ""
    version: str = "0.1.0"
    documentation_url: Optional[str] = None

    # UI hints
    icon: Optional[str] = None
    color: Optional[str] = None
    group: Optional[str] = None

    requires: PluginRequirements = field(default_factory=PluginRequirements)

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = self.name.replace("_", " ").title()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dict suitable for JSON APIs."""
        d: Dict[str, Any] = {
            "name": self.name,
            "displayName": self.display_name,
            "description": self.description,
            "version": self.version,
        }
        if self.documentation_url is not None:
            d["documentationUrl"] = self.documentation_url
        if self.icon is not None:
            d["icon"] = self.icon
        if self.color is not None:
            d["color"] = self.color
        if self.group is not None:
            d["group"] = self.group
        requires_dict = self.requires.to_dict()
        if requires_dict:
            d["requires"] = requires_dict
        return d


__all__ = [
    "PluginRequirements",
    "PluginManifest",
]
