"""Formatting options shared by the RBI and RBS generators."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Options:
    """
    Args:
        break_params: Signatures with at least this many parameters are
            split over several lines.
        tab_size: Spaces per indentation level.
        sort_namespaces: Emit namespace children sorted by name rather
            than in insertion order.
    """

    break_params: int = 4
    tab_size: int = 2
    sort_namespaces: bool = False

    def indented(self, level: int, text: str) -> str:
        return " " * (level * self.tab_size) + text
