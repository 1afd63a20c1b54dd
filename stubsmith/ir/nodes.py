"""IR declaration nodes — the tree the parser builds and the generators read.

A tree is rooted at a ``Namespace`` (usually a nameless ``PlainNamespace``)
whose ``children`` are further namespaces, methods, attributes, constants,
mixins and arbitrary code. Builders on ``Namespace`` create a node, append it
to ``children`` and return it; every node is a context manager so nested
construction reads like the Ruby it describes::

    root = PlainNamespace()
    with root.create_class("Animal", abstract=True) as animal:
        animal.create_method("speak", returns="String", abstract=True)
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

from stubsmith.types import Proc, Type, TypeLike, is_untyped, to_type


class ParameterKind(Enum):
    NORMAL = "normal"
    SPLAT = "splat"  # *args
    DOUBLE_SPLAT = "double_splat"  # **kwargs
    BLOCK = "block"  # &blk
    KEYWORD = "keyword"  # name:


class AttributeKind(Enum):
    READER = "reader"
    WRITER = "writer"
    ACCESSOR = "accessor"


PARAMETER_PREFIXES = {
    "**": ParameterKind.DOUBLE_SPLAT,
    "*": ParameterKind.SPLAT,
    "&": ParameterKind.BLOCK,
}

# Ruby keywords that must be escaped when used as RBS parameter names
RBS_KEYWORDS = {
    "type", "interface", "out", "in", "instance", "extension", "top", "bot",
    "self", "nil", "void",
}

_NAME_PREFIX = re.compile(r"^(\*\*|\*|&)?")


# --- Parameters and signatures ---


@dataclass
class Parameter:
    """One method parameter.

    ``name`` carries Ruby's positional markers (``*rest``, ``**opts``,
    ``&blk``, ``key:``); ``kind`` is derived from them unless given.
    """

    name: str
    type: Type | None = None
    default: str | None = None
    kind: ParameterKind | None = None
    required: bool | None = None

    def __post_init__(self):
        if self.type is not None:
            self.type = to_type(self.type)
        if self.kind is None:
            prefix = _NAME_PREFIX.match(self.name).group(1) or ""
            self.kind = PARAMETER_PREFIXES.get(prefix, ParameterKind.NORMAL)
            if self.kind == ParameterKind.NORMAL and self.name.endswith(":"):
                self.kind = ParameterKind.KEYWORD
        elif isinstance(self.kind, str):
            self.kind = ParameterKind(self.kind)
        if self.required is None:
            self.required = self.default is None

    @property
    def name_without_kind(self) -> str:
        if self.kind == ParameterKind.KEYWORD:
            return self.name.rstrip(":")
        return _NAME_PREFIX.sub("", self.name, count=1)

    def to_def_param(self) -> str:
        """The parameter as written in a ``def`` line."""
        if self.default is None:
            return self.name
        if self.kind == ParameterKind.KEYWORD:
            return f"{self.name} {self.default}"
        return f"{self.name} = {self.default}"

    def to_sig_param(self) -> str:
        """The parameter as written inside ``sig { params(...) }``."""
        type_text = self.type.generate_rbi() if self.type is not None else "T.untyped"
        return f"{self.name_without_kind}: {type_text}"

    def to_rbs_param(self) -> str:
        type_text = self.type.generate_rbs() if self.type is not None else "untyped"
        name = self.name_without_kind
        if name in RBS_KEYWORDS:
            name = f"`{name}`"
        optional = "" if self.required else "?"
        if self.kind == ParameterKind.SPLAT:
            return f"*{type_text} {name}"
        if self.kind == ParameterKind.DOUBLE_SPLAT:
            return f"**{type_text} {name}"
        if self.kind == ParameterKind.KEYWORD:
            return f"{optional}{name}: {type_text}"
        return f"{optional}{type_text} {name}"

    def equivalent_to(self, other: Parameter) -> bool:
        """Equality that treats an untyped parameter as one with no type."""
        if (self.name, self.kind, self.default, self.required) != (
            other.name,
            other.kind,
            other.default,
            other.required,
        ):
            return False
        if is_untyped(self.type) and is_untyped(other.type):
            return True
        return self.type == other.type


@dataclass
class Block:
    """A block descriptor attached to an RBS signature."""

    type: Proc
    required: bool = True

    def generate_rbs(self) -> str:
        prefix = "" if self.required else "?"
        return f"{prefix}{{ {self.type.generate_rbs()} }}"


@dataclass
class Signature:
    """One overload of an RBS method. ``return_type`` of ``None`` means void."""

    parameters: list[Parameter] = field(default_factory=list)
    return_type: Type | None = None
    block: Block | None = None
    type_parameters: list[str] = field(default_factory=list)

    def __post_init__(self):
        if self.return_type is not None:
            self.return_type = to_type(self.return_type)

    def generate_rbs(self) -> str:
        type_params = f"[{', '.join(self.type_parameters)}] " if self.type_parameters else ""
        params = ", ".join(p.to_rbs_param() for p in self.parameters)
        block = f" {self.block.generate_rbs()}" if self.block else ""
        returns = self.return_type.generate_rbs() if self.return_type is not None else "void"
        return f"{type_params}({params}){block} -> {returns}"


@dataclass(frozen=True)
class StructProp:
    """One ``prop``/``const`` field of a ``T::Struct``."""

    name: str
    type: Type
    optional: bool = False
    immutable: bool = False
    default: str | None = None
    factory: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "type", to_type(self.type))

    def to_prop_call(self) -> str:
        call = "const" if self.immutable else "prop"
        result = f"{call} :{self.name}, {self.type.generate_rbi()}"
        if self.optional:
            result += ", optional: true"
        if self.default is not None:
            result += f", default: {self.default}"
        if self.factory is not None:
            result += f", factory: {self.factory}"
        return result


# --- Core IR Nodes ---


@dataclass
class Node:
    """Fields shared by every declaration node."""

    name: str = ""
    comments: list[str] = field(default_factory=list, compare=False)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def add_comment(self, comment: str | Iterable[str]) -> None:
        if isinstance(comment, str):
            self.comments.append(comment)
        else:
            self.comments.extend(comment)

    add_comments = add_comment

    def mergeable(self, others: Sequence[Node]) -> bool:
        """Whether ``others`` can be folded into this node. Default: only exact duplicates."""
        return all(o == self for o in others)

    def describe(self) -> str:
        return f"{type(self).__name__} {self.name}"


@dataclass
class Namespace(Node):
    """A node that owns ordered children plus include/extend directives.

    Abstract: build a ``PlainNamespace`` for an untyped container.
    """

    children: list[Node] = field(default_factory=list)
    extends: list[str] = field(default_factory=list)
    includes: list[str] = field(default_factory=list)
    _next_comments: list[str] = field(default_factory=list, init=False, repr=False, compare=False)

    def __post_init__(self):
        if type(self) is Namespace:
            raise TypeError("Namespace is abstract; instantiate PlainNamespace instead")
        self.extends = _dedupe(self.extends)
        self.includes = _dedupe(self.includes)

    # --- Mixins ---

    def add_extend(self, target: str) -> None:
        if target not in self.extends:
            self.extends.append(target)

    def add_include(self, target: str) -> None:
        if target not in self.includes:
            self.includes.append(target)

    # --- Comments ---

    def add_comment_to_next_child(self, comment: str | Iterable[str]) -> None:
        """Queue comments to attach to whichever child is created next."""
        if isinstance(comment, str):
            self._next_comments.append(comment)
        else:
            self._next_comments.extend(comment)

    def _append(self, node: Node) -> Node:
        if self._next_comments:
            node.comments[:0] = self._next_comments
            self._next_comments = []
        self.children.append(node)
        return node

    # --- Builders ---

    def create_namespace(self, name: str) -> PlainNamespace:
        return self._append(PlainNamespace(name))

    def create_class(
        self,
        name: str,
        superclass: str | None = None,
        abstract: bool = False,
        final: bool = False,
    ) -> ClassNamespace:
        return self._append(ClassNamespace(name, superclass=superclass, abstract=abstract, final=final))

    def create_module(self, name: str, interface: bool = False) -> ModuleNamespace:
        return self._append(ModuleNamespace(name, interface=interface))

    def create_enum_class(
        self,
        name: str,
        enums: Sequence[str | tuple[str, str | None]] | None = None,
        abstract: bool = False,
    ) -> EnumNamespace:
        return self._append(EnumNamespace(name, abstract=abstract, enums=list(enums or [])))

    def create_struct_class(
        self,
        name: str,
        props: Sequence[StructProp] | None = None,
        abstract: bool = False,
    ) -> StructNamespace:
        return self._append(StructNamespace(name, abstract=abstract, props=list(props or [])))

    def create_method(
        self,
        name: str,
        parameters: list[Parameter] | None = None,
        return_type: TypeLike | None = None,
        returns: TypeLike | None = None,
        abstract: bool = False,
        implementation: bool = False,
        override: bool = False,
        overridable: bool = False,
        final: bool = False,
        class_level: bool = False,
        type_parameters: list[str] | None = None,
        signatures: list[Signature] | None = None,
    ) -> Method:
        if return_type is not None and returns is not None:
            raise ValueError("cannot specify both return_type and returns")
        return self._append(
            Method(
                name,
                parameters=list(parameters or []),
                return_type=return_type if return_type is not None else returns,
                abstract=abstract,
                implementation=implementation,
                override=override,
                overridable=overridable,
                final=final,
                class_level=class_level,
                type_parameters=list(type_parameters or []),
                signatures=list(signatures or []),
            )
        )

    def create_attribute(
        self,
        name: str,
        kind: AttributeKind | str,
        type: TypeLike,
        class_level: bool = False,
    ) -> Attribute:
        return self._append(Attribute(name, return_type=type, kind=kind, class_level=class_level))

    create_attr = create_attribute

    def create_attr_reader(self, name: str, type: TypeLike, class_level: bool = False) -> Attribute:
        return self.create_attribute(name, AttributeKind.READER, type, class_level)

    def create_attr_writer(self, name: str, type: TypeLike, class_level: bool = False) -> Attribute:
        return self.create_attribute(name, AttributeKind.WRITER, type, class_level)

    def create_attr_accessor(self, name: str, type: TypeLike, class_level: bool = False) -> Attribute:
        return self.create_attribute(name, AttributeKind.ACCESSOR, type, class_level)

    def create_constant(self, name: str, value: str | Type, class_level: bool = False) -> Constant:
        return self._append(Constant(name, value=value, class_level=class_level))

    def create_extend(self, target: str) -> Extend:
        return self._append(Extend(target=target))

    def create_extends(self, targets: Iterable[str]) -> list[Extend]:
        return [self.create_extend(t) for t in targets]

    def create_include(self, target: str) -> Include:
        return self._append(Include(target=target))

    def create_includes(self, targets: Iterable[str]) -> list[Include]:
        return [self.create_include(t) for t in targets]

    def create_arbitrary(self, code: str) -> ArbitraryCode:
        return self._append(ArbitraryCode(code=code))

    # --- Queries ---

    def find(self, name: str) -> Node | None:
        """First direct child called ``name``."""
        return next((c for c in self.children if c.name == name), None)

    @property
    def namespaces(self) -> list[Namespace]:
        return [c for c in self.children if isinstance(c, Namespace)]

    @property
    def methods(self) -> list[Method]:
        return [c for c in self.children if isinstance(c, Method)]

    @property
    def constants(self) -> list[Constant]:
        return [c for c in self.children if isinstance(c, Constant)]

    # --- Merging ---

    def mergeable(self, others: Sequence[Node]) -> bool:
        return all(isinstance(o, Namespace) for o in others)

    def merge(self, members: Sequence[Namespace]) -> Namespace:
        """Build a fresh namespace holding the union of ``members``.

        ``self`` supplies the variant and its own fields; ``members`` (which
        may include ``self``) supply children and mixins in the order given.
        None of the inputs is modified.
        """
        children: list[Node] = []
        extends: list[str] = []
        includes: list[str] = []
        comments: list[str] = list(self.comments)
        for member in members:
            children.extend(member.children)
            extends.extend(member.extends)
            includes.extend(member.includes)
            comments.extend(c for c in member.comments if c not in comments)
        return dataclasses.replace(
            self,
            children=children,
            extends=_dedupe(extends),
            includes=_dedupe(includes),
            comments=comments,
            **self._merged_fields(members),
        )

    def _merged_fields(self, members: Sequence[Namespace]) -> dict:
        return {}

    def describe(self) -> str:
        return (
            f"Namespace {self.name} - {len(self.children)} children, "
            f"{len(self.includes)} includes, {len(self.extends)} extends"
        )


@dataclass
class PlainNamespace(Namespace):
    """An untyped container, e.g. the outer segments of ``A::B::C``."""


@dataclass
class ClassNamespace(Namespace):
    superclass: str | None = None
    abstract: bool = False
    final: bool = False

    def mergeable(self, others: Sequence[Node]) -> bool:
        if not all(type(o) is type(self) for o in others):
            return False
        group = [self, *others]
        superclasses = {c.superclass for c in group if c.superclass is not None}
        return len({c.abstract for c in group}) == 1 and len(superclasses) <= 1

    def _merged_fields(self, members: Sequence[Namespace]) -> dict:
        classes = [m for m in members if isinstance(m, ClassNamespace)]
        superclass = self.superclass
        if superclass is None:
            superclass = next((c.superclass for c in classes if c.superclass is not None), None)
        return {
            "superclass": superclass,
            "abstract": self.abstract or any(c.abstract for c in classes),
            "final": self.final or any(c.final for c in classes),
        }

    def describe(self) -> str:
        superclass = f"superclass {self.superclass}, " if self.superclass else ""
        abstract = "abstract, " if self.abstract else ""
        final = "final, " if self.final else ""
        return (
            f"Class {self.name} - {superclass}{abstract}{final}{len(self.children)} children, "
            f"{len(self.includes)} includes, {len(self.extends)} extends"
        )


@dataclass
class ModuleNamespace(Namespace):
    interface: bool = False

    def _merged_fields(self, members: Sequence[Namespace]) -> dict:
        return {
            "interface": self.interface or any(getattr(m, "interface", False) for m in members),
        }

    def describe(self) -> str:
        interface = "interface, " if self.interface else ""
        return (
            f"Module {self.name} - {interface}{len(self.children)} children, "
            f"{len(self.includes)} includes, {len(self.extends)} extends"
        )


@dataclass
class EnumNamespace(ClassNamespace):
    """A ``T::Enum`` subclass. ``enums`` holds ``(name, serialized_literal)`` pairs."""

    enums: list[tuple[str, str | None]] = field(default_factory=list)

    def __post_init__(self):
        super().__post_init__()
        if self.superclass is None:
            self.superclass = "T::Enum"
        self.enums = [e if isinstance(e, tuple) else (e, None) for e in self.enums]

    def mergeable(self, others: Sequence[Node]) -> bool:
        if not super().mergeable(others):
            return False
        return _sets_agree([self, *others], lambda e: e.enums)

    def _merged_fields(self, members: Sequence[Namespace]) -> dict:
        fields = super()._merged_fields(members)
        fields["enums"] = list(next((m.enums for m in members if getattr(m, "enums", None)), self.enums))
        return fields

    def describe(self) -> str:
        return f"{super().describe()}, {len(self.enums)} enums"


@dataclass
class StructNamespace(ClassNamespace):
    """A ``T::Struct`` subclass with ordered typed props."""

    props: list[StructProp] = field(default_factory=list)

    def __post_init__(self):
        super().__post_init__()
        if self.superclass is None:
            self.superclass = "T::Struct"

    def mergeable(self, others: Sequence[Node]) -> bool:
        if not super().mergeable(others):
            return False
        return _sets_agree([self, *others], lambda s: s.props)

    def _merged_fields(self, members: Sequence[Namespace]) -> dict:
        fields = super()._merged_fields(members)
        fields["props"] = list(next((m.props for m in members if getattr(m, "props", None)), self.props))
        return fields

    def describe(self) -> str:
        return f"{super().describe()}, {len(self.props)} props"


@dataclass
class Method(Node):
    """A method. ``return_type`` of ``None`` means the method returns void."""

    parameters: list[Parameter] = field(default_factory=list)
    return_type: Type | None = None
    abstract: bool = False
    implementation: bool = False
    override: bool = False
    overridable: bool = False
    final: bool = False
    class_level: bool = False
    type_parameters: list[str] = field(default_factory=list)

    # Overloads, used by RBS output only
    signatures: list[Signature] = field(default_factory=list)

    def __post_init__(self):
        if self.return_type is not None:
            self.return_type = to_type(self.return_type)

    @property
    def qualifiers(self) -> str:
        result = ""
        if self.abstract:
            result += "abstract."
        if self.implementation:
            result += "implementation."
        if self.override:
            result += "override."
        if self.overridable:
            result += "overridable."
        if self.type_parameters:
            result += f"type_parameters({', '.join(':' + t for t in self.type_parameters)})."
        return result

    def equivalent_to(self, other: Node) -> bool:
        if type(other) is not type(self):
            return False
        if len(self.parameters) != len(other.parameters):
            return False
        if not all(a.equivalent_to(b) for a, b in zip(self.parameters, other.parameters)):
            return False
        ignored = {"parameters", "comments"}
        return all(
            getattr(self, f.name) == getattr(other, f.name)
            for f in dataclasses.fields(self)
            if f.name not in ignored
        )

    def mergeable(self, others: Sequence[Node]) -> bool:
        return all(self.equivalent_to(o) for o in others)

    def describe(self) -> str:
        returns = self.return_type.describe() if self.return_type is not None else "void"
        prefix = "self." if self.class_level else ""
        return f"Method {prefix}{self.name} - {len(self.parameters)} parameters, returns {returns}"


@dataclass
class Attribute(Method):
    """``attr_reader``/``attr_writer``/``attr_accessor``. ``return_type`` is the attribute type."""

    kind: AttributeKind = AttributeKind.READER

    def __post_init__(self):
        super().__post_init__()
        if not isinstance(self.kind, AttributeKind):
            try:
                self.kind = AttributeKind(self.kind)
            except ValueError:
                raise ValueError(f"unknown attribute kind: {self.kind!r}") from None
        if self.kind == AttributeKind.WRITER and not self.parameters:
            self.parameters = [Parameter(self.name, type=self.return_type)]

    @property
    def type(self) -> Type | None:
        return self.return_type

    def describe(self) -> str:
        prefix = "self." if self.class_level else ""
        type_text = self.return_type.describe() if self.return_type is not None else "T.untyped"
        return f"Attribute {prefix}{self.name} ({self.kind.value}) - {type_text}"


@dataclass
class Constant(Node):
    """``NAME = value``. ``value`` is source text (RBI) or a ``Type`` (RBS)."""

    value: str | Type = ""
    class_level: bool = False

    def describe(self) -> str:
        value = self.value.describe() if isinstance(self.value, Type) else self.value
        return f"Constant ({self.name} = {value})"


@dataclass
class Extend(Node):
    target: str = ""

    def __post_init__(self):
        if not self.name:
            self.name = self.target

    def describe(self) -> str:
        return f"Extend ({self.target})"


@dataclass
class Include(Node):
    target: str = ""

    def __post_init__(self):
        if not self.name:
            self.name = self.target

    def describe(self) -> str:
        return f"Include ({self.target})"


@dataclass
class ArbitraryCode(Node):
    """Source passed through verbatim. Never merged with anything."""

    code: str = ""

    def mergeable(self, others: Sequence[Node]) -> bool:
        return False

    def describe(self) -> str:
        return f"Arbitrary code ({self.code})"


def merge_roots(roots: Iterable[Namespace]) -> PlainNamespace:
    """Union several detached trees into one fresh nameless root.

    Children are concatenated in order; same-named entries are left for the
    conflict resolver to reconcile.
    """
    root = PlainNamespace()
    for tree in roots:
        root.children.extend(tree.children)
        for target in tree.extends:
            root.add_extend(target)
        for target in tree.includes:
            root.add_include(target)
    return root


def _dedupe(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _sets_agree(group: Sequence[Namespace], get) -> bool:
    """All non-empty collections in ``group`` are set-equal; empty ones are absorbed."""
    non_empty = [frozenset(get(n)) for n in group if get(n)]
    return len(set(non_empty)) <= 1
