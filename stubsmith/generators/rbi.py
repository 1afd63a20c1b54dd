"""RBI generator — writes a node tree as a Sorbet interface file."""

from __future__ import annotations

from stubsmith.generators.base import Generator
from stubsmith.generators.options import Options
from stubsmith.ir.nodes import (
    ArbitraryCode,
    Attribute,
    ClassNamespace,
    Constant,
    EnumNamespace,
    Extend,
    Include,
    Method,
    ModuleNamespace,
    Namespace,
    Node,
    PlainNamespace,
    StructNamespace,
)
from stubsmith.types import Type


class RbiGenerator(Generator):
    """Renders nodes as RBI.

    Example output::

        # typed: strong
        class Greeter
          sig { params(name: String).returns(String) }
          def greet(name); end
        end
    """

    def generate(self, root: Namespace, strictness: str = "strong") -> str:
        return f"# typed: {strictness}\n{self.generate_body(root)}\n"

    def mixin_lines(self, namespace: Namespace, level: int) -> list[str]:
        lines = [self.options.indented(level, f"include {i}") for i in namespace.includes]
        lines += [self.options.indented(level, f"extend {e}") for e in namespace.extends]
        return lines

    def generate_node(self, node: Node, level: int) -> list[str]:
        indent = self.options.indented
        comments = self.generate_comments(node, level)

        match node:
            case EnumNamespace():
                enums = [indent(level + 1, "enums do")]
                for name, literal in node.enums:
                    value = f"new({literal})" if literal is not None else "new"
                    enums.append(indent(level + 2, f"{name} = {value}"))
                enums.append(indent(level + 1, "end"))
                return comments + self._class(node, level, enums)

            case StructNamespace():
                props = [indent(level + 1, p.to_prop_call()) for p in node.props]
                return comments + self._class(node, level, props)

            case ClassNamespace():
                return comments + self._class(node, level, [])

            case ModuleNamespace():
                markers = [indent(level + 1, "interface!")] if node.interface else []
                return comments + self._container(f"module {node.name}", node, level, markers)

            case PlainNamespace():
                return comments + self.generate_namespace_body(node, level)

            case Attribute():
                lines = self._sig(node, level) + [indent(level, f"attr_{node.kind.value} :{node.name}")]
                return comments + self._eigen(node.class_level, lines, level)

            case Method():
                return comments + self._sig(node, level) + [self._definition(node, level)]

            case Constant():
                value = node.value.generate_rbi() if isinstance(node.value, Type) else node.value
                return comments + self._eigen(node.class_level, [indent(level, f"{node.name} = {value}")], level)

            case Extend():
                return comments + [indent(level, f"extend {node.target}")]

            case Include():
                return comments + [indent(level, f"include {node.target}")]

            case ArbitraryCode():
                return comments + [indent(level, line) for line in node.code.splitlines()]

        raise TypeError(f"cannot generate RBI for {type(node).__name__}")

    # --- Namespaces ---

    def _class(self, node: ClassNamespace, level: int, extra: list[str]) -> list[str]:
        header = f"class {node.name}"
        if node.superclass:
            header += f" < {node.superclass}"
        markers = []
        if node.abstract:
            markers.append(self.options.indented(level + 1, "abstract!"))
        if node.final:
            markers.append(self.options.indented(level + 1, "final!"))
        return self._container(header, node, level, markers, extra)

    def _container(
        self,
        header: str,
        node: Namespace,
        level: int,
        markers: list[str],
        extra: list[str] | None = None,
    ) -> list[str]:
        sections = [s for s in (markers, extra or [], self.generate_namespace_body(node, level + 1)) if s]
        lines = [self.options.indented(level, header)]
        for i, section in enumerate(sections):
            if i:
                lines.append("")
            lines.extend(section)
        lines.append(self.options.indented(level, "end"))
        return lines

    def _eigen(self, class_level: bool, lines: list[str], level: int) -> list[str]:
        if not class_level:
            return lines
        nested = [" " * self.options.tab_size + line for line in lines]
        return [self.options.indented(level, "class << self")] + nested + [self.options.indented(level, "end")]

    # --- Methods ---

    def _sig(self, method: Method, level: int) -> list[str]:
        indent = self.options.indented
        opener = "sig(:final)" if method.final else "sig"
        qualifiers = method.qualifiers.rstrip(".")
        returns = f"returns({method.return_type.generate_rbi()})" if method.return_type is not None else "void"
        params = [p.to_sig_param() for p in method.parameters]

        if params and len(params) >= self.options.break_params:
            head = f"{qualifiers}.params(" if qualifiers else "params("
            lines = [indent(level, f"{opener} do"), indent(level + 1, head)]
            lines += [indent(level + 2, p + ("," if i < len(params) - 1 else "")) for i, p in enumerate(params)]
            lines += [indent(level + 1, f").{returns}"), indent(level, "end")]
            return lines

        parts = [qualifiers] if qualifiers else []
        if params:
            parts.append(f"params({', '.join(params)})")
        parts.append(returns)
        return [indent(level, f"{opener} {{ {'.'.join(parts)} }}")]

    def _definition(self, method: Method, level: int) -> str:
        prefix = "self." if method.class_level else ""
        params = ", ".join(p.to_def_param() for p in method.parameters)
        signature = f"({params})" if method.parameters else ""
        return self.options.indented(level, f"def {prefix}{method.name}{signature}; end")


def generate_rbi(root: Namespace, strictness: str = "strong", **options) -> str:
    """Shorthand for ``RbiGenerator(Options(**options)).generate(root, strictness)``."""
    return RbiGenerator(Options(**options)).generate(root, strictness)
