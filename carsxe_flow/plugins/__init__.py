"""Plugin system for carsxe_flow."""

import importlib
from typing import Iterator, Tuple, Type

from .base import Plugin, PluginRegistry


# ---------------------------------------------------------------------------
# Lazy built-in plugin loading
# ---------------------------------------------------------------------------

_BUILTIN_PLUGIN_PATHS = {
    'carsxe': ('carsxe_flow.plugins.carsxe', 'CarsXEPlugin'),
}


class _LazyBuiltinPlugins:
    """Dict-like object that imports plugin classes on first access."""

    def __init__(self):
        self._loaded: dict = {}

    def _load(self, key: str) -> Type[Plugin]:
        if key not in self._loaded:
            module_path, class_name = _BUILTIN_PLUGIN_PATHS[key]
            module = importlib.import_module(module_path)
            self._loaded[key] = getattr(module, class_name)
        return self._loaded[key]

    def __getitem__(self, key: str) -> Type[Plugin]:
        if key not in _BUILTIN_PLUGIN_PATHS:
            raise KeyError(key)
        return self._load(key)

    def __contains__(self, key: object) -> bool:
        return key in _BUILTIN_PLUGIN_PATHS

    def __iter__(self) -> Iterator[str]:
        return iter(_BUILTIN_PLUGIN_PATHS)

    def __len__(self) -> int:
        return len(_BUILTIN_PLUGIN_PATHS)

    def keys(self):
        return _BUILTIN_PLUGIN_PATHS.keys()

    def items(self) -> Iterator[Tuple[str, Type[Plugin]]]:
        for key in _BUILTIN_PLUGIN_PATHS:
            yield key, self[key]


BUILTIN_PLUGINS = _LazyBuiltinPlugins()


__all__ = [
    'Plugin',
    'PluginRegistry',
    'BUILTIN_PLUGINS',
]
