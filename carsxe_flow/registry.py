"""Shared singleton PluginRegistry.

The CLI and host integrations call :func:`get_shared_registry` instead of
building their own :class:`PluginRegistry`.  The shared registry is
populated lazily with every built-in plugin on first access.
"""

from typing import Optional
from logging import getLogger

from .plugins.base import PluginRegistry

logger = getLogger(__name__)

_shared_registry: Optional[PluginRegistry] = None


def get_shared_registry() -> PluginRegistry:
    """Return the process-wide shared :class:`PluginRegistry`."""
    global _shared_registry
    if _shared_registry is None:
        _shared_registry = PluginRegistry()
        _load_builtin_plugins(_shared_registry)
    return _shared_registry


def _load_builtin_plugins(registry: PluginRegistry) -> None:
    """Load every built-in plugin into *registry*."""
    from .plugins import BUILTIN_PLUGINS

    for name, plugin_class in BUILTIN_PLUGINS.items():
        logger.debug("Loading built-in plugin %s", name)
        registry.register(plugin_class())


def reset_shared_registry() -> None:
    """Discard the current shared registry (mainly useful for tests)."""
    global _shared_registry
    _shared_registry = None
