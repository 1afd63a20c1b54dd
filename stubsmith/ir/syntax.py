"""Ruby syntax trees — the tree-sitter adapter the parser reads from.

The parser never walks tree-sitter nodes through their own parent/sibling
links. It only needs three things from a syntax tree, and this module is the
single place that provides them:

- a type tag for any node (``node.type``)
- an ordered list of child nodes (``SourceTree.children``)
- the source text behind a node (``SourceTree.text``), taken from
  its byte range so literal fragments come back verbatim

Everything else here is a small set of helpers for reading call nodes,
which tree-sitter-ruby spells slightly differently across grammar releases.
"""

from __future__ import annotations

from dataclasses import dataclass

import tree_sitter
import tree_sitter_ruby

RUBY_LANGUAGE = tree_sitter.Language(tree_sitter_ruby.language())

# Node types that are nothing more than an ordered run of statements
SEQUENCE_TYPES = {"program", "body_statement", "block_body", "begin_block", "parenthesized_statements"}

# Node types that represent a call expression
CALL_TYPES = {"call", "method_call", "command_call"}

BLOCK_TYPES = {"block", "do_block"}


@dataclass(frozen=True)
class SourceTree:
    """One parsed source unit. Never mutated after construction."""

    source: bytes
    root: tree_sitter.Node
    filename: str = "(source)"

    def children(self, node: tree_sitter.Node) -> list[tree_sitter.Node]:
        return list(node.named_children)

    def text(self, node: tree_sitter.Node) -> str:
        return self.source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def line(self, node: tree_sitter.Node) -> int:
        return node.start_point[0] + 1

    @property
    def has_error(self) -> bool:
        return self.root.has_error


def parse_ruby(source: str | bytes, filename: str = "(source)") -> SourceTree:
    """Parse Ruby source into an immutable ``SourceTree``."""
    data = source.encode("utf-8") if isinstance(source, str) else source
    parser = tree_sitter.Parser(RUBY_LANGUAGE)
    tree = parser.parse(data)
    return SourceTree(source=data, root=tree.root_node, filename=filename)


# --- Call helpers ---


def is_call(node: tree_sitter.Node) -> bool:
    return node.type in CALL_TYPES


def call_receiver(node: tree_sitter.Node) -> tree_sitter.Node | None:
    if not is_call(node):
        return None
    return node.child_by_field_name("receiver")


def call_name(tree: SourceTree, node: tree_sitter.Node) -> str | None:
    """The method name of a call, or of a bare identifier statement.

    ``foo`` on its own line parses as an identifier rather than a call, so
    both shapes are accepted here.
    """
    if node.type in ("identifier", "constant"):
        return tree.text(node)
    if not is_call(node):
        return None
    method = node.child_by_field_name("method")
    return tree.text(method) if method is not None else None


def call_arguments(node: tree_sitter.Node) -> list[tree_sitter.Node]:
    if not is_call(node):
        return []
    args = node.child_by_field_name("arguments")
    if args is None:
        args = next((c for c in node.named_children if c.type == "argument_list"), None)
    if args is None:
        return []
    return [c for c in args.named_children if c.type != "comment"]


def call_block(node: tree_sitter.Node) -> tree_sitter.Node | None:
    if not is_call(node):
        return None
    block = node.child_by_field_name("block")
    if block is None:
        block = next((c for c in node.named_children if c.type in BLOCK_TYPES), None)
    return block


def block_statements(node: tree_sitter.Node) -> list[tree_sitter.Node]:
    """Statements inside a ``{ ... }`` or ``do ... end`` block, comments excluded."""
    result = []
    for child in node.named_children:
        if child.type == "block_parameters" or child.type == "comment":
            continue
        if child.type in SEQUENCE_TYPES:
            result.extend(c for c in child.named_children if c.type != "comment")
        else:
            result.append(child)
    return result


def symbol_name(tree: SourceTree, node: tree_sitter.Node) -> str | None:
    """``:foo`` / ``:"foo"`` / ``foo:`` hash keys → ``foo``."""
    if node.type in ("simple_symbol", "delimited_symbol", "hash_key_symbol", "string"):
        return tree.text(node).lstrip(":").strip("\"'").rstrip(":")
    return None


def pair_parts(tree: SourceTree, node: tree_sitter.Node) -> tuple[str, tree_sitter.Node] | None:
    """Split a ``key: value`` pair into its key name and value node."""
    if node.type != "pair":
        return None
    key = node.child_by_field_name("key")
    value = node.child_by_field_name("value")
    if key is None or value is None:
        return None
    name = symbol_name(tree, key)
    if name is None:
        name = tree.text(key)
    return name, value


def call_chain(tree: SourceTree, node: tree_sitter.Node):
    """Unwind ``a.b(x).c(y)`` into its root receiver and ``[(a, []), (b, [x]), (c, [y])]``.

    A bare identifier at the bottom of the chain (``override`` in
    ``override.void``) is a zero-argument call, so it joins the chain and the
    returned root is ``None``. Any other receiver (``T`` in ``T.nilable(x)``)
    is returned as the root.
    """
    chain: list[tuple[str | None, list[tree_sitter.Node]]] = []
    current = node
    while current is not None and is_call(current):
        chain.append((call_name(tree, current), call_arguments(current)))
        current = call_receiver(current)
    if current is not None and current.type == "identifier":
        chain.append((tree.text(current), []))
        current = None
    chain.reverse()
    return current, chain


def first_error(node: tree_sitter.Node) -> tree_sitter.Node | None:
    """The first ``ERROR`` or missing node below ``node``, depth first."""
    if node.type == "ERROR" or node.is_missing:
        return node
    if not node.has_error:
        return None
    for child in node.children:
        found = first_error(child)
        if found is not None:
            return found
    return node
