"""Shared layout rules for the dialect generators."""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod

from stubsmith.generators.options import Options
from stubsmith.ir.nodes import Namespace, Node, PlainNamespace


class Generator(ABC):
    """Walks a node tree and lays out its lines.

    Subclasses render individual nodes; this class owns comments, blank-line
    separation between children, ordering, and nested plain namespaces.
    """

    def __init__(self, options: Options | None = None):
        self.options = options or Options()

    @abstractmethod
    def generate_node(self, node: Node, level: int) -> list[str]:
        ...

    @abstractmethod
    def mixin_lines(self, namespace: Namespace, level: int) -> list[str]:
        ...

    def generate_body(self, root: Namespace) -> str:
        return "\n".join(self.generate_comments(root, 0) + self.generate_namespace_body(root, 0))

    def generate_comments(self, node: Node, level: int) -> list[str]:
        return [self.options.indented(level, f"# {c}".rstrip()) for c in node.comments]

    def generate_namespace_body(self, namespace: Namespace, level: int, prefix: str = "") -> list[str]:
        """Mixins first, then each child separated by a blank line."""
        lines = self.mixin_lines(namespace, level)
        children = list(namespace.children)
        if self.options.sort_namespaces:
            children.sort(key=lambda c: c.name)
        for child in children:
            if lines:
                lines.append("")
            lines.extend(self.generate_child(child, level, prefix))
        return lines

    def generate_child(self, node: Node, level: int, prefix: str = "") -> list[str]:
        """Render a child, folding named plain namespaces into qualified names.

        ``A`` holding only namespaces renders as ``class A::B``; an ``A``
        with other content becomes a module wrapper.
        """
        if isinstance(node, PlainNamespace) and node.name:
            qualified = f"{prefix}{node.name}::"
            if all(isinstance(c, Namespace) for c in node.children) and not (node.includes or node.extends):
                return self.generate_comments(node, level) + self.generate_namespace_body(node, level, qualified)
            return (
                self.generate_comments(node, level)
                + [self.options.indented(level, f"module {prefix}{node.name}")]
                + self.generate_namespace_body(node, level + 1)
                + [self.options.indented(level, "end")]
            )
        if prefix and isinstance(node, Namespace):
            node = _renamed(node, prefix + node.name)
        return self.generate_node(node, level)


def _renamed(node: Namespace, name: str) -> Namespace:
    return dataclasses.replace(node, name=name)
