"""Base classes for the plugin system."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, Optional
from logging import getLogger

if TYPE_CHECKING:
    from ..manifest import PluginManifest
    from ..skill import Skill

logger = getLogger(__name__)


class Plugin(ABC):
    """
    Base class for plugins.

    A plugin is a named collection of related skills that can be registered
    with a :class:`PluginRegistry`.
    """

    def __init__(self, name: str):
        """
        Initialize the plugin.

        Args:
            name: Unique identifier for this plugin
        """
        self.name = name

    @property
    @abstractmethod
    def skills(self) -> Dict[str, "Skill"]:
        """Mapping of skill names to Skill instances."""
        return {}

    @property
    def manifest(self) -> "PluginManifest":
        """Declarative metadata for discovery and UI.

        Subclasses can override to provide icons, groups and requirements.
        """
        from ..manifest import PluginManifest

        return PluginManifest(name=self.name)

    def initialize(self) -> None:
        """Called when the plugin is registered."""
        logger.info(f"Initializing plugin: {self.name}")

    def cleanup(self) -> None:
        """Called when the plugin is unregistered."""
        logger.info(f"Cleaning up plugin: {self.name}")


class PluginRegistry:
    """
    Registry for managing plugins.

    Keeps the loaded plugins and a flat view of every skill they provide.
    """

    def __init__(self):
        self._plugins: Dict[str, Plugin] = {}
        self._skills: Dict[str, "Skill"] = {}

    def _rebuild_skills(self) -> None:
        skills: Dict[str, "Skill"] = {}
        for plugin in self._plugins.values():
            for name, skill_obj in plugin.skills.items():
                if name in skills:
                    logger.debug("Skill '%s' from plugin '%s' shadowed", name, plugin.name)
                    continue
                skills[name] = skill_obj
        self._skills = skills

    def register(self, plugin: Plugin) -> None:
        """
        Register a plugin with the registry.

        Raises:
            ValueError: If a plugin with the same name is already registered
        """
        if plugin.name in self._plugins:
            raise ValueError(f"Plugin already registered: {plugin.name}")

        logger.info(f"Registering plugin: {plugin.name}")
        self._plugins[plugin.name] = plugin
        self._rebuild_skills()
        plugin.initialize()

    def unregister(self, name: str) -> None:
        """Unregister a plugin; unknown names are ignored."""
        plugin = self._plugins.pop(name, None)
        if plugin is None:
            return
        logger.info(f"Unregistering plugin: {name}")
        plugin.cleanup()
        self._rebuild_skills()

    def get_plugin(self, name: str) -> Optional[Plugin]:
        return self._plugins.get(name)

    def get_skill(self, name: str) -> Optional["Skill"]:
        return self._skills.get(name)

    @property
    def plugins(self) -> Dict[str, Plugin]:
        return self._plugins.copy()

    @property
    def skills(self) -> Dict[str, "Skill"]:
        return self._skills.copy()
