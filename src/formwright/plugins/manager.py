"""Plugin discovery, loading and field-type installation.

Plugins come from two places: the ``formwright.plugins`` entry-point group
(pip-installed packages) and single-file modules in ``[plugins] local_dir``.
Each plugin may observe lifecycle events and may contribute field types
through ``register_field_types``; contributed types land in the
:class:`FieldRegistry` the manager was given.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from collections.abc import Iterator
from pathlib import Path
from types import ModuleType

import pluggy

from formwright.domain.fields import FieldRegistry
from formwright.plugins.hookspecs import FormwrightHookSpec

PROJECT_NAME = "formwright"
ENTRY_POINT_GROUP = "formwright.plugins"
LOCAL_MODULE_PREFIX = "formwright_local_plugin_"

logger = logging.getLogger(__name__)


def _is_plugin_class(obj: object) -> bool:
    """A class with at least one public ``@hookimpl`` method."""
    if not inspect.isclass(obj):
        return False
    marker = f"{PROJECT_NAME}_impl"
    return any(
        getattr(getattr(obj, attr, None), marker, None)
        for attr in dir(obj)
        if not attr.startswith("_")
    )


def _import_file(path: Path, module_name: str) -> ModuleType | None:
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        logger.warning("Not importable as a plugin: %s", path)
        return None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        sys.modules.pop(module_name, None)
        logger.warning("Skipping broken local plugin %s", path, exc_info=True)
        return None
    return module


def _local_plugin_classes(module: ModuleType) -> Iterator[type]:
    for _, obj in inspect.getmembers(module, _is_plugin_class):
        if obj.__module__ == module.__name__:
            yield obj


class PluginManager:
    """Wraps a pluggy manager bound to the formwright hook specs."""

    def __init__(self, registry: FieldRegistry | None = None) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(FormwrightHookSpec)
        self._registry = registry if registry is not None else FieldRegistry()
        self._loaded = False

    @property
    def registry(self) -> FieldRegistry:
        return self._registry

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    @property
    def is_loaded(self) -> bool:
        """Whether discover_and_load() has run."""
        return self._loaded

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Load entry-point plugins, then local single-file plugins.

        Returns the names of every registered plugin.
        """
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        # Entry points may name a class; hooks need a bound instance.
        for plugin in self.get_plugins():
            if not isinstance(plugin, type) or not _is_plugin_class(plugin):
                continue
            name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            self._instantiate(plugin, name)

        if local_dir is not None and local_dir.is_dir():
            for path in sorted(local_dir.glob("*.py")):
                if path.name.startswith("_"):
                    continue
                module = _import_file(path, LOCAL_MODULE_PREFIX + path.stem)
                if module is None:
                    continue
                for cls in _local_plugin_classes(module):
                    self._instantiate(cls, module.__name__)

        for plugin in self.get_plugins():
            self._install_field_types(plugin)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register an already-built plugin and install its field types."""
        name = name or type(plugin).__name__
        self._pm.register(plugin, name=name)
        self._install_field_types(plugin)
        logger.debug("Registered plugin: %s", name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    def get_plugins(self) -> list[object]:
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        return [self._name_of(p) for p in self._pm.get_plugins()]

    def _name_of(self, plugin: object) -> str:
        return self._pm.get_name(plugin) or type(plugin).__name__

    def _instantiate(self, cls: type, name: str) -> None:
        try:
            instance = cls()
        except Exception:
            logger.warning("Could not instantiate plugin %s", name, exc_info=True)
            return
        self._pm.register(instance, name=name)
        logger.debug("Loaded plugin %s as %s", cls.__name__, name)

    def _install_field_types(self, plugin: object) -> None:
        contribute = getattr(plugin, "register_field_types", None)
        if contribute is None:
            return
        name = self._name_of(plugin)
        try:
            factories = contribute()
        except Exception:
            logger.warning("Plugin %s failed to list field types", name, exc_info=True)
            return
        if factories is None:
            return
        if not isinstance(factories, dict):
            logger.warning("Plugin %s returned non-dict field type registrations", name)
            return
        for type_name, factory in factories.items():
            try:
                self._registry.register(type_name, factory)
            except (TypeError, ValueError) as exc:
                logger.warning("Field type %r from %s rejected: %s", type_name, name, exc)
