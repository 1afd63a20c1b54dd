"""Base class for converters between the node trees of two dialects."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from stubsmith.ir.nodes import Namespace, Node, PlainNamespace

logger = logging.getLogger(__name__)


class Converter(ABC):
    """Maps nodes into a new tree, collecting a warning for everything it drops.

    Converters never raise for unsupported constructs. Callers inspect
    ``warnings`` afterwards and decide whether any of them matter.
    """

    def __init__(self):
        self.warnings: list[tuple[str, Node]] = []

    def add_warning(self, message: str, node: Node) -> None:
        logger.debug("Conversion warning for %s: %s", node.describe(), message)
        self.warnings.append((message, node))

    @abstractmethod
    def convert_object(self, node: Node, new_parent: Namespace) -> None:
        """Convert ``node`` and append the result (if any) to ``new_parent``."""

    def convert_all(self, root: Namespace) -> PlainNamespace:
        """Convert every child of ``root`` into a fresh root."""
        new_root = PlainNamespace(root.name)
        for target in root.includes:
            new_root.add_include(target)
        for target in root.extends:
            new_root.add_extend(target)
        for child in root.children:
            self.convert_object(child, new_root)
        return new_root
