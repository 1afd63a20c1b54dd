"""Plugins — user code that adds to the node tree before it is written.

Plugins are registered explicitly, by name, in a module-level table::

    class AddVersion(Plugin):
        def generate(self, root):
            root.create_constant("VERSION", "T.let('1.0', String)")

    register_plugin("add_version", AddVersion)

The configuration file may also name a plugin by import path
(``package.module:ClassName``); it is imported and registered on load.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from stubsmith.errors import ConfigError
from stubsmith.ir.nodes import Namespace

logger = logging.getLogger(__name__)


class Plugin(ABC):
    """Base class for plugins. ``options`` come from the configuration file."""

    # Overrides the RBI strictness sigil when set
    strictness: str | None = None

    def __init__(self, options: dict[str, Any] | None = None):
        self.options = options or {}

    @abstractmethod
    def generate(self, root: Namespace) -> None:
        """Add nodes to ``root``."""


_REGISTRY: dict[str, type[Plugin]] = {}


def register_plugin(name: str, cls: type[Plugin]) -> type[Plugin]:
    if not (isinstance(cls, type) and issubclass(cls, Plugin)):
        raise TypeError(f"{cls!r} is not a Plugin subclass")
    existing = _REGISTRY.get(name)
    if existing is not None and existing is not cls:
        logger.warning("Plugin %s re-registered with %s", name, cls.__qualname__)
    _REGISTRY[name] = cls
    return cls


def unregister_plugin(name: str) -> None:
    _REGISTRY.pop(name, None)


def registered_plugins() -> dict[str, type[Plugin]]:
    return dict(_REGISTRY)


def resolve_plugin(name: str) -> type[Plugin]:
    """Look up a plugin by registered name, importing ``module:Class`` paths."""
    if name in _REGISTRY:
        return _REGISTRY[name]
    if ":" not in name:
        raise ConfigError(f"unknown plugin {name!r}; register it or use a module:Class path")
    module_name, _, attribute = name.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"could not import plugin module {module_name!r}: {e}") from e
    cls = getattr(module, attribute, None)
    if cls is None:
        raise ConfigError(f"module {module_name!r} has no attribute {attribute!r}")
    try:
        return register_plugin(name, cls)
    except TypeError as e:
        raise ConfigError(str(e)) from e


def load_plugins(plugin_options: dict[str, dict[str, Any] | None]) -> list[Plugin]:
    """Instantiate each configured plugin with its options, in order."""
    return [resolve_plugin(name)(options or {}) for name, options in plugin_options.items()]


def require_files(paths: list[str], base: Path | None = None) -> None:
    """Import Python files by path so that they can register plugins."""
    for path in paths:
        full = Path(base or ".") / path
        if not full.exists():
            raise ConfigError(f"required file not found: {full}")
        spec = importlib.util.spec_from_file_location(full.stem, full)
        module = importlib.util.module_from_spec(spec)
        logger.debug("Requiring %s", full)
        spec.loader.exec_module(module)


def run_plugins(plugins: list[Plugin], root: Namespace) -> None:
    for plugin in plugins:
        logger.info("Running plugin %s", type(plugin).__qualname__)
        plugin.generate(root)
