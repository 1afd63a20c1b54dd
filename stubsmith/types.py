"""Type expressions — a small closed algebra of Sorbet/RBS types.

Every value is an immutable dataclass with structural equality. Each variant
knows how to render itself as RBI (Sorbet) text, RBS text, and a neutral
human-readable description. Plain strings are accepted anywhere a type is
expected and are wrapped as ``Raw``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Union as _TypingUnion

import tree_sitter

from stubsmith.ir.syntax import (
    SourceTree,
    call_chain,
    is_call,
    pair_parts,
    parse_ruby,
)


class Type(ABC):
    """Base class of every type expression."""

    @abstractmethod
    def generate_rbi(self) -> str:
        ...

    @abstractmethod
    def generate_rbs(self) -> str:
        ...

    @abstractmethod
    def describe(self) -> str:
        ...

    def __str__(self) -> str:
        return self.describe()


TypeLike = _TypingUnion[str, Type]


def to_type(value: TypeLike) -> Type:
    """Wrap bare text as ``Raw``; pass ``Type`` values through unchanged."""
    if isinstance(value, Type):
        return value
    if isinstance(value, str):
        return Raw(value)
    raise TypeError(f"expected a str or Type, got {type(value).__name__}")


def is_untyped(value: Type | None) -> bool:
    """True for a missing type, ``Untyped``, and the literal ``T.untyped``."""
    if value is None:
        return True
    if isinstance(value, Untyped):
        return True
    return isinstance(value, Raw) and value.text.strip() == "T.untyped"


def _types(values: Iterable[TypeLike]) -> tuple[Type, ...]:
    return tuple(to_type(v) for v in values)


def _join(parts: Iterable[str], sep: str = ", ") -> str:
    return sep.join(parts)


# --- Leaves ---


@dataclass(frozen=True)
class Raw(Type):
    """Type text kept verbatim, for anything the algebra does not model."""

    text: str

    def generate_rbi(self) -> str:
        return self.text

    def generate_rbs(self) -> str:
        return self.text

    def describe(self) -> str:
        return self.text


@dataclass(frozen=True)
class Boolean(Type):
    def generate_rbi(self) -> str:
        return "T::Boolean"

    def generate_rbs(self) -> str:
        return "bool"

    def describe(self) -> str:
        return "T::Boolean"


@dataclass(frozen=True)
class Untyped(Type):
    def generate_rbi(self) -> str:
        return "T.untyped"

    def generate_rbs(self) -> str:
        return "untyped"

    def describe(self) -> str:
        return "T.untyped"


# --- Composites ---


@dataclass(frozen=True)
class Nilable(Type):
    type: Type

    def __post_init__(self):
        object.__setattr__(self, "type", to_type(self.type))

    def generate_rbi(self) -> str:
        return f"T.nilable({self.type.generate_rbi()})"

    def generate_rbs(self) -> str:
        return f"{self.type.generate_rbs()}?"

    def describe(self) -> str:
        return f"Nilable<{self.type.describe()}>"


@dataclass(frozen=True)
class Union(Type):
    types: tuple[Type, ...]

    def __post_init__(self):
        object.__setattr__(self, "types", _types(self.types))

    def generate_rbi(self) -> str:
        return f"T.any({_join(t.generate_rbi() for t in self.types)})"

    def generate_rbs(self) -> str:
        return f"({_join((t.generate_rbs() for t in self.types), ' | ')})"

    def describe(self) -> str:
        return f"Union<{_join(t.describe() for t in self.types)}>"


@dataclass(frozen=True)
class Intersection(Type):
    types: tuple[Type, ...]

    def __post_init__(self):
        object.__setattr__(self, "types", _types(self.types))

    def generate_rbi(self) -> str:
        return f"T.all({_join(t.generate_rbi() for t in self.types)})"

    def generate_rbs(self) -> str:
        return f"({_join((t.generate_rbs() for t in self.types), ' & ')})"

    def describe(self) -> str:
        return f"Intersection<{_join(t.describe() for t in self.types)}>"


@dataclass(frozen=True)
class Tuple(Type):
    types: tuple[Type, ...]

    def __post_init__(self):
        object.__setattr__(self, "types", _types(self.types))

    def generate_rbi(self) -> str:
        return f"[{_join(t.generate_rbi() for t in self.types)}]"

    def generate_rbs(self) -> str:
        return f"[{_join(t.generate_rbs() for t in self.types)}]"

    def describe(self) -> str:
        return f"[{_join(t.describe() for t in self.types)}]"


@dataclass(frozen=True)
class _SingleElementCollection(Type):
    """``T::Name[x]`` in RBI, ``::Name[x]`` in RBS."""

    element: Type

    collection_name = ""

    def __post_init__(self):
        object.__setattr__(self, "element", to_type(self.element))

    def generate_rbi(self) -> str:
        return f"T::{self.collection_name}[{self.element.generate_rbi()}]"

    def generate_rbs(self) -> str:
        return f"::{self.collection_name}[{self.element.generate_rbs()}]"

    def describe(self) -> str:
        return f"{self.collection_name}<{self.element.describe()}>"


@dataclass(frozen=True)
class ArrayOf(_SingleElementCollection):
    collection_name = "Array"


@dataclass(frozen=True)
class SetOf(_SingleElementCollection):
    collection_name = "Set"


@dataclass(frozen=True)
class RangeOf(_SingleElementCollection):
    collection_name = "Range"


@dataclass(frozen=True)
class EnumerableOf(_SingleElementCollection):
    collection_name = "Enumerable"


@dataclass(frozen=True)
class EnumeratorOf(_SingleElementCollection):
    collection_name = "Enumerator"


@dataclass(frozen=True)
class HashOf(Type):
    key: Type
    value: Type

    def __post_init__(self):
        object.__setattr__(self, "key", to_type(self.key))
        object.__setattr__(self, "value", to_type(self.value))

    def generate_rbi(self) -> str:
        return f"T::Hash[{self.key.generate_rbi()}, {self.value.generate_rbi()}]"

    def generate_rbs(self) -> str:
        return f"::Hash[{self.key.generate_rbs()}, {self.value.generate_rbs()}]"

    def describe(self) -> str:
        return f"Hash<{self.key.describe()}, {self.value.describe()}>"


@dataclass(frozen=True)
class Generic(Type):
    """A user-defined generic, e.g. ``Box[String]``."""

    base: Type
    params: tuple[Type, ...]

    def __post_init__(self):
        object.__setattr__(self, "base", to_type(self.base))
        object.__setattr__(self, "params", _types(self.params))

    def generate_rbi(self) -> str:
        return f"{self.base.generate_rbi()}[{_join(p.generate_rbi() for p in self.params)}]"

    def generate_rbs(self) -> str:
        return f"{self.base.generate_rbs()}[{_join(p.generate_rbs() for p in self.params)}]"

    def describe(self) -> str:
        return f"{self.base.describe()}<{_join(p.describe() for p in self.params)}>"


@dataclass(frozen=True)
class Record(Type):
    """A fixed-shape hash. Accepts a ``{key: type}`` mapping on construction."""

    pairs: tuple[tuple[str, Type], ...]

    def __post_init__(self):
        items = self.pairs.items() if isinstance(self.pairs, dict) else self.pairs
        object.__setattr__(self, "pairs", tuple((str(k), to_type(v)) for k, v in items))

    @property
    def keys_to_types(self) -> dict[str, Type]:
        return dict(self.pairs)

    def generate_rbi(self) -> str:
        return f"{{ {_join(f'{k}: {v.generate_rbi()}' for k, v in self.pairs)} }}"

    def generate_rbs(self) -> str:
        return f"{{ {_join(f'{k}: {v.generate_rbs()}' for k, v in self.pairs)} }}"

    def describe(self) -> str:
        return f"{{ {_join(f'{k}: {v.describe()}' for k, v in self.pairs)} }}"


@dataclass(frozen=True)
class ProcParameter:
    name: str
    type: Type
    default: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "type", to_type(self.type))


@dataclass(frozen=True)
class Proc(Type):
    """A callable type. ``return_type`` of ``None`` means void."""

    parameters: tuple[ProcParameter, ...] = ()
    return_type: Type | None = None

    def __post_init__(self):
        object.__setattr__(self, "parameters", tuple(self.parameters))
        if self.return_type is not None:
            object.__setattr__(self, "return_type", to_type(self.return_type))

    def generate_rbi(self) -> str:
        result = "T.proc"
        if self.parameters:
            result += f".params({_join(f'{p.name}: {p.type.generate_rbi()}' for p in self.parameters)})"
        if self.return_type is None:
            return result + ".void"
        return result + f".returns({self.return_type.generate_rbi()})"

    def generate_rbs(self) -> str:
        params = _join(
            f"{'?' if p.default is not None else ''}{p.type.generate_rbs()} {p.name}" for p in self.parameters
        )
        returns = self.return_type.generate_rbs() if self.return_type is not None else "void"
        return f"({params}) -> {returns}"

    def describe(self) -> str:
        params = _join(f"{p.name}: {p.type.describe()}" for p in self.parameters)
        returns = self.return_type.describe() if self.return_type is not None else "void"
        return f"({params}) -> {returns}"


# --- Type-string parsing ---

_COLLECTIONS = {
    "T::Array": ArrayOf,
    "T::Set": SetOf,
    "T::Range": RangeOf,
    "T::Enumerable": EnumerableOf,
    "T::Enumerator": EnumeratorOf,
}


def parse_type(text: str) -> Type:
    """Parse a Sorbet type expression into the richest ``Type`` it maps to.

    Anything the algebra has no variant for comes back as ``Raw(text)``.
    """
    tree = parse_ruby(text)
    statements = [c for c in tree.children(tree.root) if c.type != "comment"]
    if tree.has_error or len(statements) != 1:
        return Raw(text.strip())
    return node_to_type(tree, statements[0])


def node_to_type(tree: SourceTree, node: tree_sitter.Node) -> Type:
    """Convert a type-expression syntax node into a ``Type``."""
    text = tree.text(node)
    bare = text.removeprefix("::")

    if node.type in ("constant", "scope_resolution"):
        return Boolean() if bare == "T::Boolean" else Raw(text)

    if node.type == "element_reference":
        children = tree.children(node)
        target = node.child_by_field_name("object") or children[0]
        params = [node_to_type(tree, c) for c in children if c.id != target.id and c.type != "comment"]
        base = tree.text(target).removeprefix("::")
        if base in _COLLECTIONS and len(params) == 1:
            return _COLLECTIONS[base](params[0])
        if base == "T::Hash" and len(params) == 2:
            return HashOf(params[0], params[1])
        return Generic(Raw(tree.text(target)), params)

    if node.type == "array":
        return Tuple([node_to_type(tree, c) for c in tree.children(node) if c.type != "comment"])

    if node.type == "hash":
        pairs = []
        for child in tree.children(node):
            if child.type == "comment":
                continue
            parts = pair_parts(tree, child)
            if parts is None:
                return Raw(text)
            pairs.append((parts[0], node_to_type(tree, parts[1])))
        return Record(pairs)

    if is_call(node):
        return _call_to_type(tree, node) or Raw(text)

    return Raw(text)


def _call_to_type(tree: SourceTree, node: tree_sitter.Node) -> Type | None:
    root, chain = call_chain(tree, node)
    if root is None or tree.text(root).removeprefix("::") != "T" or not chain:
        return None

    head, args = chain[0]
    if len(chain) == 1:
        if head == "untyped" and not args:
            return Untyped()
        if head == "nilable" and len(args) == 1:
            return Nilable(node_to_type(tree, args[0]))
        if head == "any" and args:
            return Union([node_to_type(tree, a) for a in args])
        if head == "all" and args:
            return Intersection([node_to_type(tree, a) for a in args])
        return None

    if head != "proc" or args:
        return None

    parameters: list[ProcParameter] = []
    return_type: Type | None = None
    terminated = False
    for name, call_args in chain[1:]:
        if terminated:
            return None
        if name == "params":
            entries = call_args
            if len(entries) == 1 and entries[0].type == "hash":
                entries = tree.children(entries[0])
            for entry in entries:
                parts = pair_parts(tree, entry)
                if parts is None:
                    return None
                parameters.append(ProcParameter(parts[0], node_to_type(tree, parts[1])))
        elif name == "returns" and len(call_args) == 1:
            return_type = node_to_type(tree, call_args[0])
            terminated = True
        elif name == "void" and not call_args:
            terminated = True
        else:
            return None
    if not terminated:
        return None
    return Proc(parameters, return_type)
