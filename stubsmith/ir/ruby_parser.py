"""Ruby IR parser — builds IR nodes from Sorbet-annotated Ruby source.

Reads a tree-sitter syntax tree and reconstructs namespaces, methods,
attributes and constants from the declaration shapes Sorbet uses:

    class Foo < Bar
      extend T::Sig

      sig { params(x: Integer).returns(String) }
      def foo(x); end
    end

The syntax tree is never modified. Positions are passed around as
``NodePath`` values and resolved against the tree when needed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import NoReturn

import tree_sitter

from stubsmith.errors import ParseError
from stubsmith.ir.node_path import NodePath
from stubsmith.ir.nodes import (
    Attribute,
    AttributeKind,
    ClassNamespace,
    Constant,
    EnumNamespace,
    Extend,
    Include,
    ModuleNamespace,
    Namespace,
    Node,
    Parameter,
    PlainNamespace,
    StructNamespace,
    StructProp,
    Method,
)
from stubsmith.ir.syntax import (
    SEQUENCE_TYPES,
    SourceTree,
    block_statements,
    call_arguments,
    call_block,
    call_chain,
    call_name,
    call_receiver,
    first_error,
    is_call,
    pair_parts,
    parse_ruby,
    symbol_name,
)
from stubsmith.types import Raw, Type, Untyped, node_to_type

logger = logging.getLogger(__name__)

DEFAULT_ENUM_BASES = frozenset({"T::Enum"})
DEFAULT_STRUCT_BASES = frozenset({"T::Struct", "T::InexactStruct"})

ATTRIBUTE_CALLS = {
    "attr_reader": AttributeKind.READER,
    "attr_writer": AttributeKind.WRITER,
    "attr_accessor": AttributeKind.ACCESSOR,
}

VISIBILITY_CALLS = {"private", "protected", "public", "private_class_method", "public_class_method"}

NAMESPACE_MODIFIERS = {"final!", "abstract!", "interface!", "sealed!"}

DEFINITION_TYPES = {"method", "singleton_method"}

# Comments that carry interpreter/tool directives rather than documentation
MAGIC_COMMENT_PREFIXES = (
    "typed:",
    "frozen_string_literal:",
    "encoding:",
    "coding:",
    "warn_indent:",
    "shareable_constant_value:",
)

# Def-side parameter node types and the name prefix each implies
PARAMETER_PREFIX_BY_NODE = {
    "identifier": "",
    "optional_parameter": "",
    "splat_parameter": "*",
    "hash_splat_parameter": "**",
    "block_parameter": "&",
    "keyword_parameter": "",
}


@dataclass
class SigInfo:
    """What a ``sig`` block declares, before it is matched to a definition."""

    abstract: bool = False
    implementation: bool = False
    override: bool = False
    overridable: bool = False
    final: bool = False
    return_type: Type | None = None
    void: bool = False
    # None when the sig has no params(...) call at all
    parameter_types: dict[str, Type] | None = None
    type_parameters: list[str] = field(default_factory=list)


class RubyParser:
    """Turns one Ruby syntax tree into IR nodes.

    Args:
        tree: The parsed source unit.
        unknown_node_errors: Raise on statements the parser does not model.
            When false they are logged and skipped.
        structured_types: Record annotation types as structured ``Type``
            values instead of verbatim ``Raw`` text.
        enum_bases: Superclass names that make a class an enum.
        struct_bases: Superclass names that make a class a struct.
    """

    def __init__(
        self,
        tree: SourceTree,
        unknown_node_errors: bool = True,
        structured_types: bool = False,
        enum_bases: frozenset[str] = DEFAULT_ENUM_BASES,
        struct_bases: frozenset[str] = DEFAULT_STRUCT_BASES,
    ):
        self.tree = tree
        self.unknown_node_errors = unknown_node_errors
        self.structured_types = structured_types
        self.enum_bases = frozenset(enum_bases)
        self.struct_bases = frozenset(struct_bases)

    @classmethod
    def from_source(cls, source: str | bytes, filename: str = "(source)", **options) -> RubyParser:
        return cls(parse_ruby(source, filename=filename), **options)

    # --- Entry points ---

    def parse_all(self) -> PlainNamespace:
        """Parse the whole unit into a nameless root namespace."""
        if self.tree.has_error:
            error = first_error(self.tree.root)
            line = self.tree.line(error) if error is not None else None
            raise ParseError("syntax error in Ruby source", self.tree.filename, line)
        root = PlainNamespace()
        root.children.extend(self.parse_path_to_object(NodePath()))
        return root

    def find_sigs(self) -> list[NodePath]:
        """Paths to every ``sig`` call in the tree, in source order."""
        result: list[NodePath] = []
        self._find_sigs_at(self.tree.root, NodePath(), result)
        return result

    def parse_sig(self, path: NodePath) -> list[Method]:
        """Parse the ``sig`` at ``path`` together with the definition after it."""
        target = self._definition_after_sig(path)
        if target is None:
            self._fail("node after a sig must be a method or attribute definition", path)
        return self._parse_definition(target, path, self._within_eigen(path))

    # --- Dispatch ---

    def parse_path_to_object(self, path: NodePath, is_within_eigen: bool = False) -> list[Node]:
        node = path.traverse(self.tree)
        kind = node.type

        if kind in SEQUENCE_TYPES:
            return self._parse_sequence(self._statement_paths(path), is_within_eigen)

        if kind == "comment":
            return []

        if kind in ("class", "module"):
            return [self._parse_namespace(path, is_module=kind == "module")]

        if kind == "singleton_class":
            value = node.child_by_field_name("value")
            if value is None or self.tree.text(value) != "self":
                return self._unknown(path, "class << on an object other than self")
            return self._parse_sequence(self._statement_paths(path), is_within_eigen=True)

        if kind in DEFINITION_TYPES:
            return self._parse_definition(path, self._sig_before(path), is_within_eigen)

        if kind == "assignment":
            return self._parse_assignment(path, is_within_eigen)

        if self.tree.text(node).strip() in NAMESPACE_MODIFIERS:
            return []

        if is_call(node) or kind == "identifier":
            return self._parse_call(path, is_within_eigen)

        return self._unknown(path, f"don't understand node type {kind}")

    def _parse_sequence(self, paths: list[NodePath], is_within_eigen: bool) -> list[Node]:
        result: list[Node] = []
        for child_path in paths:
            result.extend(self.parse_path_to_object(child_path, is_within_eigen))
        return result

    def _parse_call(self, path: NodePath, is_within_eigen: bool) -> list[Node]:
        node = path.traverse(self.tree)
        name = call_name(self.tree, node)

        if name == "sig" and self._is_sig(node):
            if self._definition_after_sig(path) is None:
                self._fail("node after a sig must be a method or attribute definition", path)
            return []

        if name in ATTRIBUTE_CALLS and call_receiver(node) is None:
            return self._parse_definition(path, self._sig_before(path), is_within_eigen)

        if name in VISIBILITY_CALLS and self._wrapped_definition(path) is not None:
            return self._parse_definition(path, self._sig_before(path), is_within_eigen)

        if name in ("include", "extend") and call_receiver(node) is None and len(call_arguments(node)) == 1:
            # Inside a class body these are collected by the enclosing namespace
            if is_within_eigen:
                logger.warning("%s inside class << self is not represented; dropping it at %s", name, path)
                return []
            target = self.tree.text(call_arguments(node)[0])
            return [Include(target=target) if name == "include" else Extend(target=target)]

        # Modifiers are collected by the enclosing namespace
        # and any other call has no declaration to contribute
        logger.debug("Ignoring call %s at %s", name, path)
        return []

    def _unknown(self, path: NodePath, message: str) -> list[Node]:
        if self.unknown_node_errors:
            self._fail(message, path)
        logger.debug("Skipping unknown node at %s: %s", path, message)
        return []

    # --- Namespaces ---

    def _parse_namespace(self, path: NodePath, is_module: bool) -> Namespace:
        node = path.traverse(self.tree)
        name_node = node.child_by_field_name("name")
        if name_node is None:
            self._fail("class or module without a name", path)
        segments = [s for s in self.tree.text(name_node).split("::") if s]
        superclass = None
        superclass_node = node.child_by_field_name("superclass")
        if superclass_node is not None:
            expression = self.tree.children(superclass_node)
            superclass = self.tree.text(expression[0] if expression else superclass_node).lstrip("<").strip()

        statements = self._statement_paths(path)
        final = abstract = interface = False
        includes: list[str] = []
        extends: list[str] = []
        body: list[NodePath] = []
        for statement_path in statements:
            statement = statement_path.traverse(self.tree)
            text = self.tree.text(statement).strip()
            if text == "final!":
                final = True
                continue
            if text == "abstract!":
                abstract = True
                continue
            if text == "interface!":
                interface = True
                continue
            if is_call(statement) and call_receiver(statement) is None:
                mixin = call_name(self.tree, statement)
                args = call_arguments(statement)
                if mixin in ("include", "extend") and len(args) == 1:
                    target = self.tree.text(args[0])
                    (includes if mixin == "include" else extends).append(target)
                    continue
            body.append(statement_path)

        base = superclass.removeprefix("::") if superclass else None
        if is_module:
            namespace: Namespace = ModuleNamespace(segments[-1], interface=interface)
            namespace.children.extend(self._parse_sequence(body, False))
        elif base in self.enum_bases:
            enums, rest = self._parse_enums(body)
            namespace = EnumNamespace(segments[-1], superclass=superclass, abstract=abstract, final=final, enums=enums)
            namespace.children.extend(self._parse_sequence(rest, False))
        elif base in self.struct_bases:
            props, rest = self._parse_props(body)
            namespace = StructNamespace(segments[-1], superclass=superclass, abstract=abstract, final=final, props=props)
            namespace.children.extend(self._parse_sequence(rest, False))
        else:
            namespace = ClassNamespace(segments[-1], superclass=superclass, abstract=abstract, final=final)
            namespace.children.extend(self._parse_sequence(body, False))

        for target in includes:
            namespace.add_include(target)
        for target in extends:
            namespace.add_extend(target)
        namespace.add_comment(self._comments_before(path))
        logger.debug("Parsed %s at %s", namespace.describe(), path)

        # A::B::C nests C inside plain namespaces A and B
        for segment in reversed(segments[:-1]):
            namespace = PlainNamespace(segment, children=[namespace])
        return namespace

    def _parse_enums(self, body: list[NodePath]) -> tuple[list[tuple[str, str | None]], list[NodePath]]:
        enums: list[tuple[str, str | None]] = []
        rest: list[NodePath] = []
        for statement_path in body:
            statement = statement_path.traverse(self.tree)
            block = call_block(statement)
            if call_name(self.tree, statement) != "enums" or block is None:
                rest.append(statement_path)
                continue
            for entry in block_statements(block):
                left = entry.child_by_field_name("left")
                right = entry.child_by_field_name("right")
                if entry.type != "assignment" or left is None or right is None or left.type != "constant":
                    self._fail("enums block may only contain constant assignments", statement_path)
                if call_name(self.tree, right) != "new":
                    self._fail("enum values must be created with new", statement_path)
                args = call_arguments(right)
                enums.append((self.tree.text(left), self.tree.text(args[0]) if args else None))
        return enums, rest

    def _parse_props(self, body: list[NodePath]) -> tuple[list[StructProp], list[NodePath]]:
        props: list[StructProp] = []
        rest: list[NodePath] = []
        for statement_path in body:
            statement = statement_path.traverse(self.tree)
            name = call_name(self.tree, statement)
            if name not in ("prop", "const") or not is_call(statement) or call_receiver(statement) is not None:
                rest.append(statement_path)
                continue
            args = call_arguments(statement)
            if len(args) < 2 or symbol_name(self.tree, args[0]) is None:
                self._fail(f"{name} needs a symbol name and a type", statement_path)
            options: dict[str, str] = {}
            for extra in args[2:]:
                pairs = self.tree.children(extra) if extra.type == "hash" else [extra]
                for pair in pairs:
                    parts = pair_parts(self.tree, pair)
                    if parts is not None:
                        options[parts[0]] = self.tree.text(parts[1])
            props.append(
                StructProp(
                    symbol_name(self.tree, args[0]),
                    self._type_of(args[1]),
                    optional=options.get("optional") == "true",
                    immutable=name == "const",
                    default=options.get("default"),
                    factory=options.get("factory"),
                )
            )
        return props, rest

    # --- Constants ---

    def _parse_assignment(self, path: NodePath, is_within_eigen: bool) -> list[Node]:
        node = path.traverse(self.tree)
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if left is None or right is None or left.type != "constant":
            return self._unknown(path, "only constant assignments are supported")
        constant = Constant(self.tree.text(left), value=self.tree.text(right), class_level=is_within_eigen)
        constant.add_comment(self._comments_before(path))
        return [constant]

    # --- Methods and attributes ---

    def _parse_definition(self, path: NodePath, sig_path: NodePath | None, is_within_eigen: bool) -> list[Method]:
        """Build methods from a def/attr statement at ``path`` and its optional sig."""
        node = path.traverse(self.tree)
        sig = self._parse_sig_chain(sig_path) if sig_path is not None else None
        comments = self._comments_before(sig_path if sig_path is not None else path)

        if is_call(node) and call_name(self.tree, node) in VISIBILITY_CALLS:
            node = self._wrapped_definition(path)

        if is_call(node) or node.type == "identifier":
            return self._parse_attributes(path, node, sig, is_within_eigen, comments)
        return [self._parse_method(path, node, sig, is_within_eigen, comments)]

    def _parse_method(
        self,
        path: NodePath,
        node: tree_sitter.Node,
        sig: SigInfo | None,
        is_within_eigen: bool,
        comments: list[str],
    ) -> Method:
        class_level = is_within_eigen
        if node.type == "singleton_method":
            if is_within_eigen:
                self._fail("cannot represent a self. method inside class << self", path)
            target = node.child_by_field_name("object")
            if target is None or self.tree.text(target) != "self":
                self._fail("singleton methods on objects other than self are not supported", path)
            class_level = True

        name = self.tree.text(node.child_by_field_name("name"))
        definition = self._def_parameters(path, node)

        if sig is None:
            parameters = [Parameter(full, type=Untyped(), default=default) for full, _, default in definition]
            method = Method(name, parameters=parameters, return_type=Untyped(), class_level=class_level)
        else:
            method = Method(
                name,
                parameters=self._typed_parameters(path, definition, sig),
                return_type=None if sig.void else sig.return_type,
                abstract=sig.abstract,
                implementation=sig.implementation,
                override=sig.override,
                overridable=sig.overridable,
                final=sig.final,
                class_level=class_level,
                type_parameters=list(sig.type_parameters),
            )
        method.add_comment(comments)
        logger.debug("Parsed %s", method.describe())
        return method

    def _typed_parameters(
        self,
        path: NodePath,
        definition: list[tuple[str, str, str | None]],
        sig: SigInfo,
    ) -> list[Parameter]:
        declared = sig.parameter_types or {}
        if len(definition) != len(declared):
            self._fail(
                f"mismatching number of arguments in sig ({len(declared)}) and def ({len(definition)})",
                path,
            )
        parameters = []
        for full_name, base_name, default in definition:
            if base_name not in declared:
                self._fail(f"parameter {base_name} is missing from the sig", path)
            parameters.append(Parameter(full_name, type=declared[base_name], default=default))
        return parameters

    def _def_parameters(self, path: NodePath, node: tree_sitter.Node) -> list[tuple[str, str, str | None]]:
        """``(full_name, bare_name, default_source)`` for each parameter of a def."""
        params_node = node.child_by_field_name("parameters")
        if params_node is None:
            return []
        result = []
        for param in self.tree.children(params_node):
            if param.type == "comment":
                continue
            if param.type not in PARAMETER_PREFIX_BY_NODE:
                self._fail(f"unsupported parameter shape {param.type}", path)
            if param.type == "identifier":
                name_node = param
            else:
                name_node = param.child_by_field_name("name")
            if name_node is None:
                self._fail("anonymous parameters are not supported", path)
            bare = self.tree.text(name_node)
            full = PARAMETER_PREFIX_BY_NODE[param.type] + bare
            if param.type == "keyword_parameter":
                full += ":"
            value = param.child_by_field_name("value")
            default = self.tree.text(value) if value is not None else None
            result.append((full, bare, default))
        return result

    def _parse_attributes(
        self,
        path: NodePath,
        node: tree_sitter.Node,
        sig: SigInfo | None,
        is_within_eigen: bool,
        comments: list[str],
    ) -> list[Method]:
        kind = ATTRIBUTE_CALLS[call_name(self.tree, node)]
        if sig is None:
            attr_type: Type = Untyped()
        elif sig.return_type is not None:
            attr_type = sig.return_type
        elif sig.parameter_types:
            attr_type = next(iter(sig.parameter_types.values()))
        else:
            attr_type = Untyped()

        attributes: list[Method] = []
        for arg in call_arguments(node):
            name = symbol_name(self.tree, arg)
            if name is None:
                self._fail("attribute names must be symbols", path)
            attribute = Attribute(name, return_type=attr_type, kind=kind, class_level=is_within_eigen)
            attribute.add_comment(comments)
            attributes.append(attribute)
            logger.debug("Parsed %s", attribute.describe())
        return attributes

    # --- Sigs ---

    def _is_sig(self, node: tree_sitter.Node) -> bool:
        if not is_call(node) or call_name(self.tree, node) != "sig" or call_block(node) is None:
            return False
        receiver = call_receiver(node)
        return receiver is None or self.tree.text(receiver).removeprefix("::") == "T::Sig::WithoutRuntime"

    def _parse_sig_chain(self, sig_path: NodePath) -> SigInfo:
        node = sig_path.traverse(self.tree)
        info = SigInfo()
        info.final = any(symbol_name(self.tree, a) == "final" for a in call_arguments(node))

        statements = block_statements(call_block(node))
        if len(statements) != 1:
            self._fail("sig block must contain exactly one expression", sig_path)
        _, chain = call_chain(self.tree, statements[0])

        for name, args in chain:
            if name in ("abstract", "implementation", "override", "overridable") and not args:
                setattr(info, name, True)
            elif name == "void":
                info.void = True
            elif name == "returns":
                if len(args) != 1:
                    self._fail('wrong number of arguments in "returns" for sig', sig_path)
                info.return_type = self._type_of(args[0])
            elif name == "params":
                info.parameter_types = self._sig_parameters(sig_path, args)
            elif name == "type_parameters":
                info.type_parameters = [symbol_name(self.tree, a) or self.tree.text(a) for a in args]
        return info

    def _sig_parameters(self, sig_path: NodePath, args: list[tree_sitter.Node]) -> dict[str, Type]:
        if not args:
            self._fail('wrong number of arguments in "params" for sig', sig_path)
        if len(args) == 1 and args[0].type == "hash":
            args = [a for a in self.tree.children(args[0]) if a.type != "comment"]
        result: dict[str, Type] = {}
        for arg in args:
            parts = pair_parts(self.tree, arg)
            if parts is None:
                self._fail('argument to "params" should be a hash', sig_path)
            name, value = parts
            if name in result:
                self._fail(f"argument {name} specified more than once in sig", sig_path)
            result[name] = self._type_of(value)
        return result

    def _type_of(self, node: tree_sitter.Node) -> Type:
        if self.structured_types:
            return node_to_type(self.tree, node)
        return Raw(self.tree.text(node))

    def _find_sigs_at(self, node: tree_sitter.Node, path: NodePath, result: list[NodePath]) -> None:
        for i, child in enumerate(self.tree.children(node)):
            child_path = path.child(i)
            if self._is_sig(child):
                result.append(child_path)
            self._find_sigs_at(child, child_path, result)

    # --- Neighbours ---

    def _statement_paths(self, path: NodePath) -> list[NodePath]:
        """Paths to each statement in a body, looking through body_statement wrappers."""
        node = path.traverse(self.tree)
        header = {
            c.id
            for c in (
                node.child_by_field_name("name"),
                node.child_by_field_name("superclass"),
                node.child_by_field_name("value") if node.type == "singleton_class" else None,
            )
            if c is not None
        }
        result = []
        for i, child in enumerate(self.tree.children(node)):
            if child.id in header:
                continue
            if child.type in SEQUENCE_TYPES:
                result.extend(path.child(i).child(j) for j in range(len(self.tree.children(child))))
            else:
                result.append(path.child(i))
        return result

    def _previous_statement(self, path: NodePath) -> NodePath | None:
        """The nearest preceding sibling that is not a comment."""
        current = path
        while current.last > 0:
            current = current.sibling(-1)
            if current.traverse(self.tree).type != "comment":
                return current
        return None

    def _next_statement(self, path: NodePath) -> NodePath | None:
        parent = path.parent().traverse(self.tree)
        count = len(self.tree.children(parent))
        current = path
        while current.last + 1 < count:
            current = current.sibling(1)
            if current.traverse(self.tree).type != "comment":
                return current
        return None

    def _sig_before(self, path: NodePath) -> NodePath | None:
        previous = self._previous_statement(path)
        if previous is not None and self._is_sig(previous.traverse(self.tree)):
            return previous
        return None

    def _definition_after_sig(self, sig_path: NodePath) -> NodePath | None:
        following = self._next_statement(sig_path)
        if following is None:
            return None
        node = following.traverse(self.tree)
        if node.type in DEFINITION_TYPES:
            return following
        name = call_name(self.tree, node)
        if name in ATTRIBUTE_CALLS and (node.type == "identifier" or call_receiver(node) is None):
            return following
        if name in VISIBILITY_CALLS and self._wrapped_definition(following) is not None:
            return following
        return None

    def _wrapped_definition(self, path: NodePath) -> tree_sitter.Node | None:
        """The def inside ``private def foo; end``, if that is what ``path`` holds."""
        args = call_arguments(path.traverse(self.tree))
        if len(args) == 1 and args[0].type in DEFINITION_TYPES:
            return args[0]
        return None

    def _within_eigen(self, path: NodePath) -> bool:
        current = path
        while current.depth > 0:
            current = current.parent()
            kind = current.traverse(self.tree).type
            if kind == "singleton_class":
                return True
            if kind in ("class", "module"):
                return False
        return False

    def _comments_before(self, path: NodePath) -> list[str]:
        """Documentation comments directly above the statement at ``path``."""
        comments: list[str] = []
        current = path
        while current.depth > 0:
            if current.last == 0:
                parent = current.parent()
                # Comments leading a body are siblings of the body node, not its children
                if parent.depth > 0 and parent.traverse(self.tree).type in SEQUENCE_TYPES:
                    current = parent
                    continue
                break
            current = current.sibling(-1)
            node = current.traverse(self.tree)
            if node.type != "comment":
                break
            text = self.tree.text(node).removeprefix("#")
            text = text[1:] if text.startswith(" ") else text
            if text.strip().startswith(MAGIC_COMMENT_PREFIXES):
                break
            comments.insert(0, text)
        return comments

    def _fail(self, message: str, path: NodePath) -> NoReturn:
        node = path.traverse(self.tree)
        raise ParseError(message, self.tree.filename, self.tree.line(node))
