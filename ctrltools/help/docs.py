"""Merged views of marker definitions and their help text.

These records feed the terminal help printer and can be serialized to
JSON-compatible dictionaries for other kinds of documentation output.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Any, Optional

_KNOWN_TYPES = ("int", "string", "bool", "any", "slice", "raw", "invalid")


def _type_name(kind: Any) -> str:
    """Normalize a marker argument kind (enum member or string) to its help name."""
    if kind is None:
        return ""
    name = kind if isinstance(kind, str) else getattr(kind, "name", str(kind))
    key = name.lower().replace("_", "")
    if key.endswith("type") and key != "type":
        key = key[: -len("type")]
    return key if key in _KNOWN_TYPES else ""


@dataclass(kw_only=True)
class DetailedHelp:
    """A one-line summary plus optional further details."""

    summary: str = ""
    details: str = ""

    def _help_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"summary": self.summary}
        if self.details:
            out["details"] = self.details
        return out


@dataclass(kw_only=True)
class Argument:
    """Type data for a marker argument."""

    type: str = ""
    optional: bool = False
    item_type: Optional[Argument] = None

    def type_string(self) -> str:
        """Return a user-friendly rendering of the argument's type."""
        if self.type == "slice":
            if self.item_type is None:
                raise ValueError("slice argument has no item type")
            return "[]" + self.item_type.type_string()
        return self.type

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "optional": self.optional}
        if self.item_type is not None:
            out["itemType"] = self.item_type.to_dict()
        return out


@dataclass(kw_only=True)
class FieldHelp(Argument, DetailedHelp):
    """Documentation for a single marker field."""

    name: str

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        out.update(Argument.to_dict(self))
        out.update(self._help_dict())
        return out


@dataclass(kw_only=True)
class MarkerDoc(DetailedHelp):
    """Documentation for a marker."""

    name: str
    target: str
    category: str = ""
    deprecated_in_favor_of: Optional[str] = None
    fields: list[FieldHelp] = field(default_factory=list)

    def empty(self) -> bool:
        """True if the marker takes no arguments."""
        return not self.fields

    def anonymous_field(self) -> bool:
        """True if the marker takes a single unnamed value."""
        return len(self.fields) == 1 and self.fields[0].name == ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "target": self.target}
        out.update(self._help_dict())
        out["category"] = self.category
        if self.deprecated_in_favor_of is not None:
            out["deprecatedInFavorOf"] = self.deprecated_in_favor_of
        if self.fields:
            out["fields"] = [f.to_dict() for f in self.fields]
        return out


@dataclass(kw_only=True)
class CategoryDoc:
    """Help for every marker in one category."""

    category: str
    markers: list[MarkerDoc] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"category": self.category, "markers": [m.to_dict() for m in self.markers]}


def for_argument(arg: Any) -> Argument:
    """Build argument documentation from a marker argument description.

    ``arg`` needs ``type``, ``optional`` and ``item_type`` attributes.
    """
    item = getattr(arg, "item_type", None)
    return Argument(
        type=_type_name(getattr(arg, "type", None)),
        optional=bool(getattr(arg, "optional", False)),
        item_type=for_argument(item) if item is not None else None,
    )


def for_definition(defn: Any, help: Any = None) -> MarkerDoc:
    """Build marker documentation from a definition and its (optional) help."""
    if help is None:
        fields_help = {name: DetailedHelp() for name in defn.fields}
        category, summary, details, deprecated = "", "", "", None
    else:
        fields_help = help.fields_help(defn)
        category = help.category
        summary = help.summary
        details = help.details
        deprecated = help.deprecated_in_favor_of

    fields = []
    for field_name in sorted(fields_help):
        raw_help = fields_help[field_name]
        arg = for_argument(defn.fields[field_name])
        fields.append(
            FieldHelp(
                name=field_name,
                type=arg.type,
                optional=arg.optional,
                item_type=arg.item_type,
                summary=getattr(raw_help, "summary", ""),
                details=getattr(raw_help, "details", ""),
            )
        )

    return MarkerDoc(
        name=defn.name,
        target=str(defn.target),
        summary=summary,
        details=details,
        category=category,
        deprecated_in_favor_of=deprecated,
        fields=fields,
    )


def by_category(registry: Any, sorter: Any) -> list[CategoryDoc]:
    """Group and sort the help for every marker in ``registry``."""
    grouped: dict[str, list[Any]] = {}
    for defn in registry.all_definitions():
        group = sorter.group(defn, registry.help_for(defn))
        grouped.setdefault(group, []).append(defn)

    def compare(a: Any, b: Any) -> int:
        if sorter.less(a, b):
            return -1
        if sorter.less(b, a):
            return 1
        return 0

    result = []
    for group_name in sorted(grouped):
        defs = sorted(grouped[group_name], key=functools.cmp_to_key(compare))
        result.append(
            CategoryDoc(
                category=group_name,
                markers=[for_definition(d, registry.help_for(d)) for d in defs],
            )
        )
    return result