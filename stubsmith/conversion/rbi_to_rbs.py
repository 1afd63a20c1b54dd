"""RBI → RBS conversion.

RBS has no notion of abstract or final classes, enums, structs, or
class-level constants, so those are degraded or dropped with a warning.
Sorbet's ``&blk`` parameters become RBS block descriptors.
"""

from __future__ import annotations

import dataclasses

from stubsmith.conversion.converter import Converter
from stubsmith.ir.nodes import (
    ArbitraryCode,
    Attribute,
    Block,
    ClassNamespace,
    Constant,
    EnumNamespace,
    Extend,
    Include,
    Method,
    ModuleNamespace,
    Namespace,
    Node,
    Parameter,
    ParameterKind,
    PlainNamespace,
    Signature,
    StructNamespace,
)
from stubsmith.ir.syntax import call_arguments, call_chain, parse_ruby
from stubsmith.types import (
    Nilable,
    Proc,
    Raw,
    Type,
    is_untyped,
    node_to_type,
    parse_type,
)


class RbiToRbs(Converter):
    """Converts an RBI node tree into an RBS node tree."""

    def convert_object(self, node: Node, new_parent: Namespace) -> None:
        match node:
            case ArbitraryCode():
                self.add_warning("converting type of Arbitrary is likely to cause syntax errors", node)
                new_parent.create_arbitrary(node.code).add_comment(node.comments)

            case EnumNamespace():
                self.add_warning("RBS does not support enums; dropping", node)

            case StructNamespace():
                self.add_warning("RBS does not support structs; dropping", node)

            case ClassNamespace():
                if node.abstract:
                    self.add_warning("RBS does not support abstract classes", node)
                if node.final:
                    self.add_warning("RBS does not support final classes", node)
                klass = new_parent.create_class(node.name, superclass=node.superclass)
                self._convert_namespace_body(node, klass)

            case ModuleNamespace():
                if node.interface:
                    self.add_warning("interfaces are not converted; emitting a plain module", node)
                module = new_parent.create_module(node.name)
                self._convert_namespace_body(node, module)

            case PlainNamespace():
                self.add_warning(
                    "unspecialized namespaces are not supposed to be in the tree; you may run into issues",
                    node,
                )
                namespace = new_parent.create_namespace(node.name)
                self._convert_namespace_body(node, namespace)

            case Attribute():
                if node.class_level:
                    self.add_warning("RBS does not support class attributes; dropping", node)
                    return
                new_parent.create_attribute(
                    node.name, node.kind, self._convert_type(node.type)
                ).add_comment(node.comments)

            case Method():
                self._convert_method(node, new_parent)

            case Constant():
                if node.class_level:
                    self.add_warning("RBS does not support constants on eigenclasses; dropping", node)
                    return
                new_parent.create_constant(node.name, self._constant_type(node.value)).add_comment(node.comments)

            case Extend():
                new_parent.create_extend(node.target).add_comment(node.comments)

            case Include():
                new_parent.create_include(node.target).add_comment(node.comments)

            case _:
                self.add_warning(f"no conversion for {type(node).__name__}; dropping", node)

    def _convert_namespace_body(self, node: Namespace, target: Namespace) -> None:
        target.add_comment(node.comments)
        for include in node.includes:
            target.add_include(include)
        for extend in node.extends:
            target.add_extend(extend)
        for child in node.children:
            self.convert_object(child, target)

    def _convert_method(self, node: Method, new_parent: Namespace) -> None:
        parameters = [
            dataclasses.replace(param, type=self._convert_type(param.type))
            for param in node.parameters
            if param.kind != ParameterKind.BLOCK
        ]
        block_param = next((p for p in node.parameters if p.kind == ParameterKind.BLOCK), None)
        block = self._convert_block(node, block_param) if block_param is not None else None
        return_type = self._convert_type(node.return_type) if node.return_type is not None else None

        method = new_parent.create_method(
            node.name,
            parameters=parameters,
            return_type=return_type,
            class_level=node.class_level,
            type_parameters=node.type_parameters,
            signatures=[
                Signature(
                    parameters=list(parameters),
                    return_type=return_type,
                    block=block,
                    type_parameters=list(node.type_parameters),
                )
            ],
        )
        method.add_comment(node.comments)

    def _convert_block(self, node: Method, param: Parameter) -> Block | None:
        block_type = self._convert_type(param.type)
        if is_untyped(block_type):
            return None
        match block_type:
            case Proc():
                return Block(block_type, required=True)
            case Nilable(type=Proc() as inner):
                return Block(inner, required=False)
        self.add_warning("block type must be a Proc (or nilable one); dropping block", node)
        return None

    def _convert_type(self, value: Type | None) -> Type | None:
        """Structure ``Raw`` Sorbet text so it renders as RBS syntax."""
        if isinstance(value, Raw):
            return parse_type(value.text)
        return value

    def _constant_type(self, value: str | Type) -> Type:
        """The declared type of a constant, from ``T.let(value, Type)`` where present."""
        if isinstance(value, Type):
            return self._convert_type(value)
        tree = parse_ruby(value)
        statements = tree.children(tree.root)
        if not tree.has_error and len(statements) == 1:
            root, chain = call_chain(tree, statements[0])
            if root is not None and tree.text(root) == "T" and len(chain) == 1 and chain[0][0] == "let":
                args = call_arguments(statements[0])
                if len(args) == 2:
                    return node_to_type(tree, args[1])
        return Raw(value)
