from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import pytest

from ctrltools.help.docs import (
    Argument,
    CategoryDoc,
    DetailedHelp,
    FieldHelp,
    MarkerDoc,
    by_category,
    for_argument,
    for_definition,
)
from ctrltools.help.sorting import SortByCategory


class Kind(Enum):
    INVALID_TYPE = 0
    INT_TYPE = 1
    STRING_TYPE = 2
    BOOL_TYPE = 3
    ANY_TYPE = 4
    SLICE_TYPE = 5
    RAW_TYPE = 6


@dataclass
class Arg:
    type: Any
    optional: bool = False
    item_type: Optional["Arg"] = None


@dataclass
class Defn:
    name: str
    target: str = "package"
    fields: dict = field(default_factory=dict)


@dataclass
class Help:
    category: str = ""
    summary: str = ""
    details: str = ""
    deprecated_in_favor_of: Optional[str] = None
    field_help: dict = field(default_factory=dict)

    def fields_help(self, defn):
        return {name: self.field_help.get(name, DetailedHelp()) for name in defn.fields}


class Registry:
    def __init__(self, entries):
        self.entries = entries

    def all_definitions(self):
        return [d for d, _ in self.entries]

    def help_for(self, defn):
        for d, h in self.entries:
            if d is defn:
                return h
        return None


@pytest.mark.parametrize(
    "kind,expected",
    [
        (Kind.INT_TYPE, "int"),
        (Kind.STRING_TYPE, "string"),
        (Kind.BOOL_TYPE, "bool"),
        (Kind.ANY_TYPE, "any"),
        (Kind.RAW_TYPE, "raw"),
        (Kind.INVALID_TYPE, "invalid"),
        ("string", "string"),
    ],
)
def test_for_argument_kinds(kind, expected):
    assert for_argument(Arg(kind)).type == expected


def test_for_argument_slice_type_string():
    arg = for_argument(Arg(Kind.SLICE_TYPE, optional=True, item_type=Arg(Kind.STRING_TYPE)))
    assert arg.optional is True
    assert arg.item_type.type == "string"
    assert arg.type_string() == "[]string"


def test_slice_without_item_type_raises():
    with pytest.raises(ValueError):
        Argument(type="slice").type_string()


def test_for_definition_sorts_fields_and_copies_help():
    defn = Defn(
        name="kubebuilder:object:generate",
        target="type",
        fields={"zeta": Arg(Kind.INT_TYPE), "alpha": Arg(Kind.BOOL_TYPE, optional=True)},
    )
    help_ = Help(
        category="object",
        summary="enables generation",
        field_help={"alpha": DetailedHelp(summary="first field")},
    )
    doc = for_definition(defn, help_)
    assert doc.name == "kubebuilder:object:generate"
    assert doc.target == "type"
    assert doc.category == "object"
    assert doc.summary == "enables generation"
    assert [f.name for f in doc.fields] == ["alpha", "zeta"]
    assert doc.fields[0].summary == "first field"
    assert doc.fields[0].optional is True
    assert doc.fields[1].type == "int"


def test_for_definition_without_help():
    defn = Defn(name="paths", fields={"": Arg(Kind.SLICE_TYPE, item_type=Arg(Kind.STRING_TYPE))})
    doc = for_definition(defn, None)
    assert doc.summary == ""
    assert doc.deprecated_in_favor_of is None
    assert doc.anonymous_field()
    assert not doc.empty()


def test_empty_marker():
    doc = MarkerDoc(name="object", target="package")
    assert doc.empty()
    assert not doc.anonymous_field()


def test_named_single_field_is_not_anonymous():
    doc = MarkerDoc(name="x", target="type", fields=[FieldHelp(name="dir", type="string")])
    assert not doc.anonymous_field()


def test_to_dict_omits_empty_values():
    doc = MarkerDoc(name="object", target="package", summary="s")
    assert doc.to_dict() == {"name": "object", "target": "package", "summary": "s", "category": ""}


def test_field_to_dict_inlines_argument_and_help():
    f = FieldHelp(name="dir", type="string", optional=True, summary="where", details="more")
    assert f.to_dict() == {
        "name": "dir",
        "type": "string",
        "optional": True,
        "summary": "where",
        "details": "more",
    }


def test_by_category_groups_and_sorts():
    b = Defn(name="b")
    a = Defn(name="a")
    c = Defn(name="c")
    reg = Registry([(b, Help(category="one")), (a, Help(category="one")), (c, None)])
    docs = by_category(reg, SortByCategory())
    assert [d.category for d in docs] == ["", "one"]
    assert [m.name for m in docs[1].markers] == ["a", "b"]
    assert docs[0].markers[0].name == "c"
    assert isinstance(docs[0], CategoryDoc)
    assert docs[1].to_dict()["markers"][0]["name"] == "a"