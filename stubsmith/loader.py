"""Loading Ruby source into node trees, from a string, a file, or a project."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from stubsmith.ir.nodes import PlainNamespace, merge_roots
from stubsmith.ir.ruby_parser import RubyParser
from stubsmith.utils.file_scanner import scan_project_files

logger = logging.getLogger(__name__)

STRICTNESS_SIGIL = re.compile(r"^#\s*typed:\s*(\w+)")


def strictness_of(source: str) -> str | None:
    """The ``# typed:`` sigil value of a file, or None if it has none.

    Only the comment header before the first line of code is searched.
    """
    for line in source.splitlines():
        line = line.strip()
        if not line:
            continue
        if not line.startswith("#"):
            break
        match = STRICTNESS_SIGIL.match(line)
        if match:
            return match.group(1)
    return None


def load_source(source: str, filename: str | None = None, **parser_options) -> PlainNamespace:
    """Parse Ruby source into a nameless root namespace.

    ``parser_options`` are passed to ``RubyParser``.
    """
    parser = RubyParser.from_source(source, filename=filename or "(source)", **parser_options)
    return parser.parse_all()


def load_file(path: str | Path, **parser_options) -> PlainNamespace:
    path = Path(path)
    return load_source(path.read_text(errors="replace"), filename=str(path), **parser_options)


def load_project(
    root: str | Path,
    inclusions: list[str] | None = None,
    exclusions: list[str] | None = None,
    **parser_options,
) -> PlainNamespace:
    """Load every Ruby file under ``root`` into one combined tree.

    Files marked ``# typed: ignore`` are skipped. The result is not
    conflict-resolved: the same class declared in two files appears twice.
    """
    root = Path(root)
    parser_options.setdefault("unknown_node_errors", False)
    trees = []
    for path in scan_project_files(root, inclusions, exclusions):
        source = path.read_text(errors="replace")
        if strictness_of(source) == "ignore":
            logger.debug("Skipping %s (typed: ignore)", path)
            continue
        logger.debug("Loading %s", path)
        trees.append(load_source(source, filename=str(path.relative_to(root)), **parser_options))
    return merge_roots(trees)
