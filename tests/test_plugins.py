"""Tests for the plugin registry."""

import tempfile
from pathlib import Path

import pytest

from stubsmith.errors import ConfigError
from stubsmith.ir.nodes import PlainNamespace
from stubsmith.plugins import (
    Plugin,
    load_plugins,
    register_plugin,
    registered_plugins,
    require_files,
    resolve_plugin,
    run_plugins,
    unregister_plugin,
)


class AddVersion(Plugin):
    def generate(self, root):
        version = self.options.get("version", "'0.0.0'")
        root.create_constant("VERSION", f"T.let({version}, String)")


@pytest.fixture
def registered():
    register_plugin("add_version", AddVersion)
    yield
    unregister_plugin("add_version")


def test_register_and_resolve(registered):
    assert resolve_plugin("add_version") is AddVersion
    assert "add_version" in registered_plugins()


def test_registered_plugins_is_a_copy(registered):
    registered_plugins().clear()
    assert "add_version" in registered_plugins()


def test_register_rejects_non_plugins():
    with pytest.raises(TypeError):
        register_plugin("bad", object)


def test_unknown_plugin():
    with pytest.raises(ConfigError, match="unknown plugin"):
        resolve_plugin("does_not_exist")


def test_import_path_plugin():
    try:
        cls = resolve_plugin("stubsmith.plugins:Plugin")
        assert cls is Plugin
    finally:
        unregister_plugin("stubsmith.plugins:Plugin")


def test_import_path_errors():
    with pytest.raises(ConfigError):
        resolve_plugin("no_such_module_anywhere:Thing")
    with pytest.raises(ConfigError):
        resolve_plugin("stubsmith.plugins:Missing")
    with pytest.raises(ConfigError):
        resolve_plugin("stubsmith.errors:ConfigError")


def test_load_and_run_plugins(registered):
    plugins = load_plugins({"add_version": {"version": "'1.2.3'"}})
    root = PlainNamespace()
    run_plugins(plugins, root)
    (constant,) = root.children
    assert constant.value == "T.let('1.2.3', String)"


def test_require_files_registers_plugins():
    with tempfile.TemporaryDirectory() as tmpdir:
        base = Path(tmpdir)
        (base / "my_plugin.py").write_text(
            "from stubsmith.plugins import Plugin, register_plugin\n"
            "\n"
            "class Marker(Plugin):\n"
            "    def generate(self, root):\n"
            "        root.create_module('Marker')\n"
            "\n"
            "register_plugin('marker', Marker)\n"
        )
        try:
            require_files(["my_plugin.py"], base)
            (plugin,) = load_plugins({"marker": None})
            root = PlainNamespace()
            run_plugins([plugin], root)
            assert root.children[0].name == "Marker"
        finally:
            unregister_plugin("marker")


def test_require_missing_file():
    with pytest.raises(ConfigError):
        require_files(["nope.py"], Path("/nonexistent"))
