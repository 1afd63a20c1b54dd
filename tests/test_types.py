"""Tests for the type expression algebra."""

import pytest

from stubsmith.types import (
    ArrayOf,
    Boolean,
    EnumerableOf,
    EnumeratorOf,
    Generic,
    HashOf,
    Intersection,
    Nilable,
    Proc,
    ProcParameter,
    RangeOf,
    Raw,
    Record,
    SetOf,
    Tuple,
    Union,
    Untyped,
    is_untyped,
    parse_type,
    to_type,
)


# --- Construction ---


def test_to_type_wraps_strings():
    assert to_type("String") == Raw("String")


def test_to_type_passes_types_through():
    t = Nilable("Integer")
    assert to_type(t) is t


def test_to_type_rejects_other_values():
    with pytest.raises(TypeError):
        to_type(42)


def test_composites_accept_strings():
    assert Nilable("String") == Nilable(Raw("String"))
    assert Union(["String", "Integer"]).types == (Raw("String"), Raw("Integer"))
    assert HashOf("Symbol", "Integer") == HashOf(Raw("Symbol"), Raw("Integer"))


def test_structural_equality():
    assert ArrayOf(Nilable("String")) == ArrayOf(Nilable("String"))
    assert ArrayOf("String") != SetOf("String")
    assert Union(["A", "B"]) != Union(["B", "A"])


def test_types_are_hashable():
    values = {Nilable("String"), Nilable("String"), Record({"a": "Integer"})}
    assert len(values) == 2


def test_record_keys_to_types():
    record = Record({"name": "String", "age": "Integer"})
    assert record.keys_to_types == {"name": Raw("String"), "age": Raw("Integer")}


# --- RBI rendering ---


def test_rbi_rendering():
    assert Raw("Foo").generate_rbi() == "Foo"
    assert Nilable("String").generate_rbi() == "T.nilable(String)"
    assert Union(["String", "Integer"]).generate_rbi() == "T.any(String, Integer)"
    assert Intersection(["A", "B"]).generate_rbi() == "T.all(A, B)"
    assert Tuple(["String", "Integer"]).generate_rbi() == "[String, Integer]"
    assert ArrayOf("String").generate_rbi() == "T::Array[String]"
    assert SetOf("String").generate_rbi() == "T::Set[String]"
    assert RangeOf("Integer").generate_rbi() == "T::Range[Integer]"
    assert EnumerableOf("String").generate_rbi() == "T::Enumerable[String]"
    assert EnumeratorOf("String").generate_rbi() == "T::Enumerator[String]"
    assert HashOf("Symbol", "Integer").generate_rbi() == "T::Hash[Symbol, Integer]"
    assert Generic("Box", ["String"]).generate_rbi() == "Box[String]"
    assert Record({"a": "Integer"}).generate_rbi() == "{ a: Integer }"
    assert Boolean().generate_rbi() == "T::Boolean"
    assert Untyped().generate_rbi() == "T.untyped"


def test_rbi_proc_rendering():
    proc = Proc([ProcParameter("x", "Integer")], "String")
    assert proc.generate_rbi() == "T.proc.params(x: Integer).returns(String)"
    assert Proc([], "String").generate_rbi() == "T.proc.returns(String)"
    assert Proc([ProcParameter("x", "Integer")]).generate_rbi() == "T.proc.params(x: Integer).void"


# --- RBS rendering ---


def test_rbs_rendering():
    assert Nilable("String").generate_rbs() == "String?"
    assert Union(["String", "Integer"]).generate_rbs() == "(String | Integer)"
    assert Intersection(["A", "B"]).generate_rbs() == "(A & B)"
    assert ArrayOf("String").generate_rbs() == "::Array[String]"
    assert HashOf("Symbol", "Integer").generate_rbs() == "::Hash[Symbol, Integer]"
    assert Boolean().generate_rbs() == "bool"
    assert Untyped().generate_rbs() == "untyped"
    assert ArrayOf(Nilable(Boolean())).generate_rbs() == "::Array[bool?]"


def test_rbs_proc_rendering():
    proc = Proc([ProcParameter("x", "Integer")], "String")
    assert proc.generate_rbs() == "(Integer x) -> String"
    assert Proc().generate_rbs() == "() -> void"


# --- Descriptions ---


def test_describe():
    assert Nilable("String").describe() == "Nilable<String>"
    assert Union(["A", "B"]).describe() == "Union<A, B>"
    assert ArrayOf("String").describe() == "Array<String>"
    assert HashOf("K", "V").describe() == "Hash<K, V>"
    assert Generic("Box", ["A", "B"]).describe() == "Box<A, B>"
    assert Proc([ProcParameter("x", "X")], "R").describe() == "(x: X) -> R"
    assert str(SetOf("Integer")) == "Set<Integer>"


def test_rendering_is_deterministic():
    t = HashOf("Symbol", Union([ArrayOf("String"), Nilable("Integer")]))
    assert t.generate_rbi() == t.generate_rbi()
    assert t.generate_rbs() == t.generate_rbs()


# --- is_untyped ---


def test_is_untyped():
    assert is_untyped(None)
    assert is_untyped(Untyped())
    assert is_untyped(Raw("T.untyped"))
    assert not is_untyped(Raw("String"))
    assert not is_untyped(Nilable(Untyped()))


# --- Parsing ---


def test_parse_leaves():
    assert parse_type("String") == Raw("String")
    assert parse_type("Foo::Bar") == Raw("Foo::Bar")
    assert parse_type("T.untyped") == Untyped()
    assert parse_type("T::Boolean") == Boolean()


def test_parse_composites():
    assert parse_type("T.nilable(String)") == Nilable("String")
    assert parse_type("T.any(String, Integer)") == Union(["String", "Integer"])
    assert parse_type("T.all(A, B)") == Intersection(["A", "B"])
    assert parse_type("T::Array[String]") == ArrayOf("String")
    assert parse_type("T::Set[Integer]") == SetOf("Integer")
    assert parse_type("T::Hash[Symbol, T.nilable(String)]") == HashOf("Symbol", Nilable("String"))
    assert parse_type("Box[String]") == Generic("Box", ["String"])
    assert parse_type("[String, Integer]") == Tuple(["String", "Integer"])
    assert parse_type("{ a: String, b: Integer }") == Record({"a": "String", "b": "Integer"})


def test_parse_procs():
    assert parse_type("T.proc.void") == Proc()
    assert parse_type("T.proc.params(x: Integer).returns(String)") == Proc(
        [ProcParameter("x", "Integer")], "String"
    )


def test_parse_round_trips_rendered_raw_composites():
    t = HashOf("Symbol", Union([ArrayOf("String"), Nilable("Integer")]))
    assert parse_type(t.generate_rbi()) == t


def test_parse_falls_back_to_raw():
    assert parse_type("T.proc.bind(Foo).void") == Raw("T.proc.bind(Foo).void")
    assert parse_type("T.class_of(Foo)") == Raw("T.class_of(Foo)")
