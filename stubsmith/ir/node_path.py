"""Index paths into a syntax tree.

A ``NodePath`` names a node by the child indices leading to it from the
root, so the parser can talk about "the statement before this one" or "the
enclosing class" arithmetically instead of holding live tree references.
"""

from __future__ import annotations

from dataclasses import dataclass

import tree_sitter

from stubsmith.ir.syntax import SourceTree


@dataclass(frozen=True)
class NodePath:
    indices: tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "indices", tuple(self.indices))

    def parent(self) -> NodePath:
        if not self.indices:
            raise IndexError("cannot get parent of an empty path")
        return NodePath(self.indices[:-1])

    def child(self, index: int) -> NodePath:
        return NodePath(self.indices + (index,))

    def sibling(self, offset: int) -> NodePath:
        if not self.indices:
            raise IndexError("cannot get sibling of an empty path")
        index = self.indices[-1] + offset
        if index < 0:
            raise ValueError(f"sibling offset {offset} results in a negative index")
        return NodePath(self.indices[:-1] + (index,))

    @property
    def depth(self) -> int:
        return len(self.indices)

    @property
    def last(self) -> int:
        if not self.indices:
            raise IndexError("empty path has no last index")
        return self.indices[-1]

    def traverse(self, tree: SourceTree) -> tree_sitter.Node:
        """Follow the path from ``tree.root``. Raises ``IndexError`` if it leaves the tree."""
        node = tree.root
        for depth, index in enumerate(self.indices):
            children = tree.children(node)
            if index >= len(children):
                raise IndexError(f"path {list(self.indices)} has no node at depth {depth}")
            node = children[index]
        return node

    def exists(self, tree: SourceTree) -> bool:
        try:
            self.traverse(tree)
        except IndexError:
            return False
        return True

    def __str__(self) -> str:
        return "/" + "/".join(str(i) for i in self.indices)
