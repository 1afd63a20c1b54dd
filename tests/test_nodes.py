"""Tests for IR nodes and the namespace builders."""

import pytest

from stubsmith.ir.nodes import (
    ArbitraryCode,
    Attribute,
    AttributeKind,
    ClassNamespace,
    Constant,
    EnumNamespace,
    Extend,
    Include,
    Method,
    ModuleNamespace,
    Namespace,
    Parameter,
    ParameterKind,
    PlainNamespace,
    StructNamespace,
    StructProp,
    merge_roots,
)
from stubsmith.types import Raw, Untyped


# --- Parameter Tests ---


def test_parameter_kind_from_name():
    assert Parameter("a").kind == ParameterKind.NORMAL
    assert Parameter("*rest").kind == ParameterKind.SPLAT
    assert Parameter("**opts").kind == ParameterKind.DOUBLE_SPLAT
    assert Parameter("&blk").kind == ParameterKind.BLOCK
    assert Parameter("key:").kind == ParameterKind.KEYWORD


def test_parameter_name_without_kind():
    assert Parameter("*rest").name_without_kind == "rest"
    assert Parameter("**opts").name_without_kind == "opts"
    assert Parameter("&blk").name_without_kind == "blk"
    assert Parameter("key:").name_without_kind == "key"


def test_parameter_required_follows_default():
    assert Parameter("a").required
    assert not Parameter("a", default="1").required


def test_parameter_renderings():
    assert Parameter("a", type="Integer", default="1").to_def_param() == "a = 1"
    assert Parameter("key:", type="Integer", default="1").to_def_param() == "key: 1"
    assert Parameter("&blk").to_sig_param() == "blk: T.untyped"
    assert Parameter("a", type="Integer").to_rbs_param() == "Integer a"
    assert Parameter("a", type="Integer", default="1").to_rbs_param() == "?Integer a"
    assert Parameter("key:", type="String").to_rbs_param() == "key: String"
    assert Parameter("*rest", type="String").to_rbs_param() == "*String rest"
    assert Parameter("type", type="String").to_rbs_param() == "String `type`"


def test_parameter_untyped_equivalent_to_no_type():
    assert Parameter("a", type=Raw("T.untyped")).equivalent_to(Parameter("a"))
    assert Parameter("a", type=Untyped()).equivalent_to(Parameter("a", type="T.untyped"))
    assert not Parameter("a", type="String").equivalent_to(Parameter("a"))


# --- Namespace Tests ---


def test_namespace_is_abstract():
    with pytest.raises(TypeError):
        Namespace("Foo")


def test_builders_append_and_return():
    root = PlainNamespace()
    with root.create_class("Animal", superclass="Base", abstract=True) as animal:
        speak = animal.create_method("speak", returns="String", abstract=True)
    assert root.children == [animal]
    assert animal.children == [speak]
    assert animal.superclass == "Base"
    assert speak.return_type == Raw("String")


def test_create_method_rejects_both_return_forms():
    with pytest.raises(ValueError):
        PlainNamespace().create_method("foo", return_type="A", returns="B")


def test_extends_and_includes_are_deduplicated():
    mod = ModuleNamespace("M", extends=["A", "A"])
    mod.add_extend("A")
    mod.add_extend("B")
    mod.add_include("C")
    mod.add_include("C")
    assert mod.extends == ["A", "B"]
    assert mod.includes == ["C"]


def test_mixin_nodes():
    mod = PlainNamespace().create_module("M")
    extends = mod.create_extends(["T::Sig", "T::Helpers"])
    include = mod.create_include("Comparable")
    assert [e.target for e in extends] == ["T::Sig", "T::Helpers"]
    assert isinstance(include, Include)
    assert include.name == "Comparable"
    assert isinstance(mod.children[0], Extend)


def test_comments_for_next_child():
    root = PlainNamespace()
    root.add_comment_to_next_child(["First", "Second"])
    klass = root.create_class("A")
    other = root.create_class("B")
    assert klass.comments == ["First", "Second"]
    assert other.comments == []


def test_enum_and_struct_builders():
    root = PlainNamespace()
    enum = root.create_enum_class("Direction", enums=["North", ("South", "'s'")])
    struct = root.create_struct_class("Point", props=[StructProp("x", "Integer")])
    assert enum.superclass == "T::Enum"
    assert enum.enums == [("North", None), ("South", "'s'")]
    assert struct.superclass == "T::Struct"
    assert struct.props[0].type == Raw("Integer")


def test_arbitrary_and_constant_builders():
    root = PlainNamespace()
    code = root.create_arbitrary("puts 'hi'")
    const = root.create_constant("VERSION", "'1.0'")
    assert isinstance(code, ArbitraryCode)
    assert const.value == "'1.0'"
    assert not const.class_level


# --- Attribute Tests ---


def test_writer_synthesizes_parameter():
    attr = PlainNamespace().create_attr_writer("name", type="String")
    assert attr.kind == AttributeKind.WRITER
    assert attr.parameters == [Parameter("name", type=Raw("String"))]
    assert attr.type == Raw("String")


def test_reader_has_no_parameters():
    attr = PlainNamespace().create_attribute("name", "reader", "String")
    assert attr.kind == AttributeKind.READER
    assert attr.parameters == []


def test_unknown_attribute_kind():
    with pytest.raises(ValueError):
        Attribute("name", return_type="String", kind="observer")


# --- Merging ---


def test_namespace_merge_builds_fresh_node():
    a = ClassNamespace("A", includes=["X"])
    a.create_method("foo")
    b = ClassNamespace("A", superclass="Base", includes=["X", "Y"])
    b.create_method("bar")

    merged = a.merge([a, b])

    assert merged is not a and merged is not b
    assert [c.name for c in merged.children] == ["foo", "bar"]
    assert merged.includes == ["X", "Y"]
    assert merged.superclass == "Base"
    assert [c.name for c in a.children] == ["foo"]


def test_class_mergeable_rules():
    assert ClassNamespace("A").mergeable([ClassNamespace("A", superclass="B")])
    assert not ClassNamespace("A", superclass="B").mergeable([ClassNamespace("A", superclass="C")])
    assert not ClassNamespace("A", abstract=True).mergeable([ClassNamespace("A")])


def test_enum_sets_with_empty_absorbed():
    empty = EnumNamespace("Direction")
    full = EnumNamespace("Direction", enums=["North", "South"])
    reordered = EnumNamespace("Direction", enums=["South", "North"])
    different = EnumNamespace("Direction", enums=["Up"])
    assert empty.mergeable([full])
    assert full.mergeable([reordered])
    assert not full.mergeable([different])


def test_struct_props_must_agree():
    a = StructNamespace("P", props=[StructProp("x", "Integer")])
    b = StructNamespace("P", props=[StructProp("x", "String")])
    assert not a.mergeable([b])
    assert a.mergeable([StructNamespace("P")])


def test_method_mergeable_ignores_untyped_difference():
    a = Method("foo", parameters=[Parameter("a", type="T.untyped")])
    b = Method("foo", parameters=[Parameter("a")])
    c = Method("foo", parameters=[Parameter("a", type="String")])
    assert a.mergeable([b])
    assert not a.mergeable([c])


def test_constant_mergeable_only_when_identical():
    assert Constant("A", value="1").mergeable([Constant("A", value="1")])
    assert not Constant("A", value="1").mergeable([Constant("A", value="2")])


def test_arbitrary_never_mergeable():
    assert not ArbitraryCode(code="x").mergeable([ArbitraryCode(code="x")])


def test_merge_roots():
    first = PlainNamespace()
    first.create_class("A")
    second = PlainNamespace()
    second.create_class("A")
    second.create_module("B")

    root = merge_roots([first, second])

    assert [c.name for c in root.children] == ["A", "A", "B"]
    assert root is not first


# --- Descriptions ---


def test_describe():
    klass = ClassNamespace("A", superclass="B", abstract=True)
    assert klass.describe() == "Class A - superclass B, abstract, 0 children, 0 includes, 0 extends"
    method = Method("foo", parameters=[Parameter("a")], return_type="String")
    assert method.describe() == "Method foo - 1 parameters, returns String"
    assert Method("bar").describe() == "Method bar - 0 parameters, returns void"
    assert Constant("X", value="1").describe() == "Constant (X = 1)"
    assert Include(target="Foo").describe() == "Include (Foo)"
