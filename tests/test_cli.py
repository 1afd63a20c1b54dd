"""Tests for the command-line interface."""

from pathlib import Path
from types import SimpleNamespace

from click.testing import CliRunner

from stubsmith import __version__
from stubsmith.cli import main
from stubsmith.plugins import Plugin, register_plugin, unregister_plugin

GREETER = """# typed: true
class Greeter
  extend T::Sig

  sig { params(name: String).returns(String) }
  def greet(name); end
end
"""


def _project(root: Path, config: str) -> None:
    (root / "lib").mkdir()
    (root / "lib" / "greeter.rb").write_text(GREETER)
    (root / ".stubsmith.yaml").write_text(config)


# --- Generate ---


def test_generate_writes_rbi_and_rbs(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _project(tmp_path, "output_file:\n  rbi: out/greeter.rbi\n  rbs: out/greeter.rbs\nparser:\n  root: lib\n")

    result = CliRunner().invoke(main, ["generate"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "out" / "greeter.rbi").read_text() == (
        "# typed: strong\n"
        "class Greeter\n"
        "  extend T::Sig\n"
        "\n"
        "  sig { params(name: String).returns(String) }\n"
        "  def greet(name); end\n"
        "end\n"
    )
    assert (tmp_path / "out" / "greeter.rbs").read_text() == (
        "class Greeter\n"
        "  extend T::Sig\n"
        "\n"
        "  def greet: (String name) -> String\n"
        "end\n"
    )


def test_generate_flags_override_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _project(tmp_path, "parser:\n  root: lib\n")

    result = CliRunner().invoke(main, ["generate", "--rbs", "types.rbs"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "types.rbs").exists()
    assert not list(tmp_path.glob("*.rbi"))


def test_generate_without_output(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(main, ["generate"])
    assert result.exit_code == 2
    assert "no output file" in result.output


def test_generate_with_plugin_strictness(tmp_path, monkeypatch):
    class Strict(Plugin):
        strictness = "strict"

        def generate(self, root):
            root.create_module("Generated")

    monkeypatch.chdir(tmp_path)
    (tmp_path / ".stubsmith.yaml").write_text("output_file: out.rbi\nparser: false\nplugins:\n  strict_marker: {}\n")
    register_plugin("strict_marker", Strict)
    try:
        result = CliRunner().invoke(main, ["generate"])
    finally:
        unregister_plugin("strict_marker")

    assert result.exit_code == 0, result.output
    assert (tmp_path / "out.rbi").read_text() == "# typed: strict\nmodule Generated\nend\n"


def test_generate_reports_config_errors(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".stubsmith.yaml").write_text("style: [1, 2]\n")
    result = CliRunner().invoke(main, ["generate", "--rbi", "out.rbi"])
    assert result.exit_code == 1
    assert "style must be a mapping" in result.output


def test_generate_drops_unresolvable_conflicts(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "a.rb").write_text("X = 1\n")
    (tmp_path / "b.rb").write_text("X = 2\n")
    (tmp_path / ".stubsmith.yaml").write_text("output_file: out.rbi\n")

    result = CliRunner().invoke(main, ["generate"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "out.rbi").read_text() == "# typed: strong\n\n"



def test_generate_prompts_when_stdin_is_a_terminal(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "a.rb").write_text("X = 1\n")
    (tmp_path / "b.rb").write_text("X = 2\n")
    (tmp_path / ".stubsmith.yaml").write_text("output_file: out.rbi\n")
    asked = []

    def keep_first(description, candidates):
        asked.append(description)
        return candidates[0]

    monkeypatch.setattr("stubsmith.cli.sys", SimpleNamespace(stdin=SimpleNamespace(isatty=lambda: True)))
    monkeypatch.setattr("stubsmith.cli._prompt_resolver", keep_first)

    result = CliRunner().invoke(main, ["generate"])

    assert result.exit_code == 0, result.output
    assert len(asked) == 1
    assert "X = 1" in (tmp_path / "out.rbi").read_text()


# --- Parse ---


def test_parse_prints_rbi(tmp_path):
    path = tmp_path / "greeter.rb"
    path.write_text(GREETER)
    result = CliRunner().invoke(main, ["parse", str(path)])
    assert result.exit_code == 0, result.output
    assert "sig { params(name: String).returns(String) }" in result.output
    assert result.output.startswith("# typed: strong\n")


def test_parse_prints_rbs(tmp_path):
    path = tmp_path / "greeter.rb"
    path.write_text(GREETER)
    result = CliRunner().invoke(main, ["parse", "--rbs", str(path)])
    assert result.exit_code == 0, result.output
    assert "def greet: (String name) -> String" in result.output


def test_parse_error(tmp_path):
    path = tmp_path / "broken.rb"
    path.write_text("sig { params(x: Integer).void }\ndef foo(x, y); end\n")
    result = CliRunner().invoke(main, ["parse", str(path)])
    assert result.exit_code == 1
    assert "mismatching number of arguments" in result.output


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert __version__ in result.output
