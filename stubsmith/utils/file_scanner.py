"""File scanner — discover the Ruby sources of a project."""

from __future__ import annotations

from pathlib import Path

# Directories to always skip
SKIP_DIRS = {
    ".git", ".bundle", "node_modules", "vendor", "tmp", "log", "coverage",
    "dist", "build", "pkg", ".yardoc", "sorbet",
}

# File extensions that hold Ruby source
RUBY_SUFFIXES = {".rb"}


def scan_project_files(
    root: Path,
    inclusions: list[str] | None = None,
    exclusions: list[str] | None = None,
) -> list[Path]:
    """Recursively scan a project directory for Ruby source files.

    Args:
        root: Project root.
        inclusions: Paths relative to ``root``; when given, only files under
            one of them are returned.
        exclusions: Paths relative to ``root`` whose files are skipped.

    Returns files sorted by path so results are stable across runs.
    """
    root = Path(root)
    include_paths = [_parts(p) for p in inclusions or []]
    exclude_paths = [_parts(p) for p in exclusions or []]
    files = []
    for item in root.rglob("*.rb"):
        if item.is_file() and _should_include(item.relative_to(root), include_paths, exclude_paths):
            files.append(item)
    return sorted(files)


def _should_include(relative: Path, include_paths: list[tuple[str, ...]], exclude_paths: list[tuple[str, ...]]) -> bool:
    """Check if a file should be loaded."""
    # Skip files in excluded directories
    for part in relative.parts[:-1]:
        if part in SKIP_DIRS:
            return False

    if relative.suffix not in RUBY_SUFFIXES:
        return False

    if include_paths and not any(_under(relative, p) for p in include_paths):
        return False
    return not any(_under(relative, p) for p in exclude_paths)


def _parts(path: str) -> tuple[str, ...]:
    return tuple(part for part in Path(path).parts if part not in (".", ""))


def _under(relative: Path, prefix: tuple[str, ...]) -> bool:
    return relative.parts[: len(prefix)] == prefix
