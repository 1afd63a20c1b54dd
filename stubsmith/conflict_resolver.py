"""Conflict resolution — reconciles same-named siblings in a node tree.

Trees built from several source files routinely declare the same class or
method more than once. ``ConflictResolver`` walks a namespace level by
level, folds together the duplicates it can merge automatically, and hands
the rest to a caller-supplied callback.
"""

from __future__ import annotations

import logging
from typing import Callable, Hashable, Optional

from stubsmith.ir.nodes import (
    ArbitraryCode,
    Constant,
    Extend,
    Include,
    Method,
    Namespace,
    Node,
    PlainNamespace,
)

logger = logging.getLogger(__name__)

# (description, candidates) -> survivor, or None to drop the name entirely
ResolverCallback = Callable[[str, list[Node]], Optional[Node]]

DIFFERENT_KINDS = "Different kinds of definition for the same name"
CANNOT_RESOLVE = "Can't automatically resolve"


def merge_key(node: Node) -> Hashable:
    """The identity two siblings must share to be considered duplicates.

    Methods and namespaces with the same name do not compete, and neither do
    class-level and instance-level members of the same name.

    Identical arbitrary code snippets share a key but are never mergeable, so
    repeated snippets always reach the callback. A callback that returns
    ``None`` removes every copy, not just the duplicates.
    """
    match node:
        case Method(name=name, class_level=class_level):
            return (name, "method", class_level)
        case Namespace(name=name):
            return (name, "declaration", False)
        case Constant(name=name, class_level=class_level):
            return (name, "declaration", class_level)
        case Extend(target=target):
            return ("extend", target)
        case Include(target=target):
            return ("include", target)
        case ArbitraryCode(code=code):
            return ("arbitrary", code)
        case _:
            return (node.name, type(node).__name__)


class ConflictResolver:
    """Deduplicates and merges the children of a namespace, recursively.

    The tree is modified in place. A callback that raises aborts the whole
    pass and leaves levels already processed in their resolved state.
    """

    def resolve_conflicts(self, namespace: Namespace, resolver: ResolverCallback) -> None:
        groups: dict[Hashable, list[Node]] = {}
        for child in namespace.children:
            groups.setdefault(merge_key(child), []).append(child)

        survivors: list[Node] = []
        for child in namespace.children:
            members = groups[merge_key(child)]
            if len(members) == 1:
                survivors.append(child)
                continue
            # Each conflicting group is resolved once, at its first member's position
            if child is not members[0]:
                continue
            survivor = self._resolve_group(namespace, members, resolver)
            if survivor is not None:
                survivors.append(survivor)
        namespace.children[:] = survivors

        for child in namespace.children:
            if isinstance(child, Namespace):
                self.resolve_conflicts(child, resolver)

    def _resolve_group(
        self,
        namespace: Namespace,
        members: list[Node],
        resolver: ResolverCallback,
    ) -> Node | None:
        name = members[0].name
        variant = _single_variant(members)
        if variant is None:
            logger.debug("Conflict on %s in %s: mixed kinds, asking resolver", name, namespace.name or "<root>")
            return resolver(DIFFERENT_KINDS, list(members))

        base = next(m for m in members if type(m) is variant)
        rest = [m for m in members if m is not base and type(m) is variant]
        if not base.mergeable(rest):
            logger.debug("Conflict on %s in %s: not mergeable, asking resolver", name, namespace.name or "<root>")
            return resolver(CANNOT_RESOLVE, list(members))

        logger.debug("Merging %d definitions of %s", len(members), name)
        if isinstance(base, Namespace):
            return base.merge(members)
        return base


def _single_variant(members: list[Node]) -> type | None:
    """The one node class shared by ``members``, if there is one.

    Plain namespaces are absorbed by any other namespace variant, so that
    the ``A`` created for ``class A::B`` merges with a later ``module A``.
    """
    variants = {type(m) for m in members}
    if len(variants) == 1:
        return variants.pop()
    if all(issubclass(v, Namespace) for v in variants):
        variants.discard(PlainNamespace)
        if len(variants) == 1:
            return variants.pop()
    return None
