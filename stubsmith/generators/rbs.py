"""RBS generator — writes a node tree as a Ruby signature file."""

from __future__ import annotations

from stubsmith.generators.base import Generator
from stubsmith.generators.options import Options
from stubsmith.ir.nodes import (
    ArbitraryCode,
    Attribute,
    ClassNamespace,
    Constant,
    Extend,
    Include,
    Method,
    ModuleNamespace,
    Namespace,
    Node,
    ParameterKind,
    PlainNamespace,
    Signature,
)
from stubsmith.types import Type


class RbsGenerator(Generator):
    """Renders nodes as RBS.

    Example output::

        class Greeter
          def greet: (String name) -> String
                   | (Symbol name) -> String
        end
    """

    def generate(self, root: Namespace) -> str:
        return f"{self.generate_body(root)}\n"

    def mixin_lines(self, namespace: Namespace, level: int) -> list[str]:
        lines = [self.options.indented(level, f"include {i}") for i in namespace.includes]
        lines += [self.options.indented(level, f"extend {e}") for e in namespace.extends]
        return lines

    def generate_node(self, node: Node, level: int) -> list[str]:
        indent = self.options.indented
        comments = self.generate_comments(node, level)

        match node:
            case ClassNamespace():
                header = f"class {node.name}"
                if node.superclass:
                    header += f" < {node.superclass}"
                return comments + self._container(header, node, level)

            case ModuleNamespace(interface=True):
                name = node.name if node.name.startswith("_") else f"_{node.name}"
                return comments + self._container(f"interface {name}", node, level)

            case ModuleNamespace():
                return comments + self._container(f"module {node.name}", node, level)

            case PlainNamespace():
                return comments + self.generate_namespace_body(node, level)

            case Attribute():
                prefix = "self." if node.class_level else ""
                type_text = node.type.generate_rbs() if node.type is not None else "untyped"
                return comments + [indent(level, f"attr_{node.kind.value} {prefix}{node.name}: {type_text}")]

            case Method():
                return comments + self._method(node, level)

            case Constant():
                value = node.value.generate_rbs() if isinstance(node.value, Type) else node.value
                return comments + [indent(level, f"{node.name}: {value}")]

            case Extend():
                return comments + [indent(level, f"extend {node.target}")]

            case Include():
                return comments + [indent(level, f"include {node.target}")]

            case ArbitraryCode():
                return comments + [indent(level, line) for line in node.code.splitlines()]

        raise TypeError(f"cannot generate RBS for {type(node).__name__}")

    def _container(self, header: str, node: Namespace, level: int) -> list[str]:
        return (
            [self.options.indented(level, header)]
            + self.generate_namespace_body(node, level + 1)
            + [self.options.indented(level, "end")]
        )

    def _method(self, method: Method, level: int) -> list[str]:
        signatures = method.signatures or [_implicit_signature(method)]
        head = f"def {'self.' if method.class_level else ''}{method.name}:"
        lines = [self.options.indented(level, f"{head} {signatures[0].generate_rbs()}")]
        # Overloads line their | up under the colon
        padding = " " * (len(head) - 1)
        for signature in signatures[1:]:
            lines.append(self.options.indented(level, f"{padding}| {signature.generate_rbs()}"))
        return lines


def _implicit_signature(method: Method) -> Signature:
    """A single signature built from the method's own parameters and return type."""
    return Signature(
        parameters=[p for p in method.parameters if p.kind != ParameterKind.BLOCK],
        return_type=method.return_type,
        type_parameters=list(method.type_parameters),
    )


def generate_rbs(root: Namespace, **options) -> str:
    """Shorthand for ``RbsGenerator(Options(**options)).generate(root)``."""
    return RbsGenerator(Options(**options)).generate(root)
