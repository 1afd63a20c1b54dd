"""Project configuration — read from ``.stubsmith.yaml``.

Example::

    output_file:
      rbi: sorbet/rbi/stubsmith.rbi
      rbs: sig/stubsmith.rbs
    relative_requires:
      - plugins/add_version.py
    plugins:
      add_version: {}
      my_package.plugins:Timestamps:
        format: iso
    parser:
      root: lib
      excluded_paths: [lib/legacy]
    style:
      break_params: 4
      tab_size: 2
      sort_namespaces: false
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from stubsmith.errors import ConfigError
from stubsmith.generators.options import Options

DEFAULT_CONFIG_FILE = ".stubsmith.yaml"


@dataclass
class ParserConfig:
    """Where to find Ruby sources and how strictly to parse them."""

    root: str = "."
    included_paths: list[str] = field(default_factory=list)
    excluded_paths: list[str] = field(default_factory=list)
    unknown_node_errors: bool = False


@dataclass
class StyleConfig:
    break_params: int = 4
    tab_size: int = 2
    sort_namespaces: bool = False

    def to_options(self) -> Options:
        return Options(
            break_params=self.break_params,
            tab_size=self.tab_size,
            sort_namespaces=self.sort_namespaces,
        )


@dataclass
class Config:
    rbi_output: str | None = None
    rbs_output: str | None = None
    relative_requires: list[str] = field(default_factory=list)
    plugins: dict[str, dict[str, Any]] = field(default_factory=dict)
    # None when source loading is disabled
    parser: ParserConfig | None = field(default_factory=ParserConfig)
    style: StyleConfig = field(default_factory=StyleConfig)
    path: Path | None = None

    @property
    def base_dir(self) -> Path:
        return self.path.parent if self.path is not None else Path(".")


def load_config(path: str | Path | None = None) -> Config:
    """Load configuration from ``path`` (default ``.stubsmith.yaml``).

    A missing default file yields the default configuration; a missing
    explicitly-named file is an error.
    """
    explicit = path is not None
    path = Path(path) if explicit else Path(DEFAULT_CONFIG_FILE)
    if not path.exists():
        if explicit:
            raise ConfigError(f"config file not found: {path}")
        return Config()

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e

    config = parse_config(data or {})
    config.path = path
    return config


def parse_config(data: Any) -> Config:
    """Build a ``Config`` from already-loaded YAML data."""
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a mapping")

    config = Config()

    output = data.get("output_file")
    if isinstance(output, str):
        config.rbi_output = output
    elif isinstance(output, dict):
        config.rbi_output = _optional_str(output, "rbi")
        config.rbs_output = _optional_str(output, "rbs")
    elif output is not None:
        raise ConfigError("output_file must be a path or a mapping with rbi/rbs keys")

    config.relative_requires = _str_list(data, "relative_requires")

    plugins = data.get("plugins") or {}
    if not isinstance(plugins, dict):
        raise ConfigError("plugins must be a mapping of plugin name to options")
    for name, options in plugins.items():
        if options is not None and not isinstance(options, dict):
            raise ConfigError(f"options for plugin {name} must be a mapping")
        config.plugins[str(name)] = options or {}

    parser = data.get("parser", {})
    if parser is False:
        config.parser = None
    elif parser is None or isinstance(parser, dict):
        parser = parser or {}
        config.parser = ParserConfig(
            root=str(parser.get("root", ".")),
            included_paths=_str_list(parser, "included_paths"),
            excluded_paths=_str_list(parser, "excluded_paths"),
            unknown_node_errors=bool(parser.get("unknown_node_errors", False)),
        )
    else:
        raise ConfigError("parser must be false or a mapping")

    style = data.get("style") or {}
    if not isinstance(style, dict):
        raise ConfigError("style must be a mapping")
    config.style = StyleConfig(
        break_params=_int(style, "break_params", 4),
        tab_size=_int(style, "tab_size", 2),
        sort_namespaces=bool(style.get("sort_namespaces", False)),
    )

    return config


def _optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ConfigError(f"{key} must be a string")
    return value


def _str_list(data: dict, key: str) -> list[str]:
    value = data.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be a list of strings")
    return list(value)


def _int(data: dict, key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{key} must be a positive integer")
    return value
