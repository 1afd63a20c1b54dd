"""Tests for loading sources and projects."""

import tempfile
from pathlib import Path

import pytest

from stubsmith.errors import ParseError
from stubsmith.ir.nodes import ClassNamespace
from stubsmith.loader import load_file, load_project, load_source, strictness_of


def test_strictness_of():
    assert strictness_of("# typed: strict\nclass A; end\n") == "strict"
    assert strictness_of("# frozen_string_literal: true\n\n# typed: true\n") == "true"
    assert strictness_of("class A; end\n# typed: strict\n") is None
    assert strictness_of("") is None


def test_load_source():
    root = load_source("class A\nend\n")
    assert [c.name for c in root.children] == ["A"]


def test_load_source_strict_by_default():
    with pytest.raises(ParseError):
        load_source("while true\n  work\nend\n")
    assert load_source("while true\n  work\nend\n", unknown_node_errors=False).children == []


def test_load_file_reports_filename():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "broken.rb"
        path.write_text("class Foo\n")
        with pytest.raises(ParseError) as excinfo:
            load_file(path)
        assert excinfo.value.filename == str(path)


def test_load_project_combines_files_unresolved():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "lib").mkdir()
        (root / "lib" / "a.rb").write_text("class Shared\n  def a; end\nend\n")
        (root / "lib" / "b.rb").write_text("class Shared\n  def b; end\nend\n")
        (root / "lib" / "skip.rb").write_text("# typed: ignore\nclass Ignored\nend\n")

        tree = load_project(root)

        assert [c.name for c in tree.children] == ["Shared", "Shared"]
        assert all(isinstance(c, ClassNamespace) for c in tree.children)


def test_load_project_is_lenient_by_default():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "script.rb").write_text("if ENV['X']\n  puts 1\nend\nclass A\nend\n")
        assert [c.name for c in load_project(root).children] == ["A"]


def test_load_project_exclusions():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "lib").mkdir()
        (root / "test").mkdir()
        (root / "lib" / "a.rb").write_text("class A\nend\n")
        (root / "test" / "a_test.rb").write_text("class ATest\nend\n")
        tree = load_project(root, exclusions=["test"])
        assert [c.name for c in tree.children] == ["A"]
