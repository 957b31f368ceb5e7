"""Strategies for sorting and grouping marker definitions in help output."""

from __future__ import annotations

from typing import Any


class SortByCategory:
    """Sort markers by name and group them by their help category."""

    def group(self, defn: Any, help: Any) -> str:
        if help is None:
            return ""
        return help.category

    def less(self, i: Any, j: Any) -> bool:
        return i.name < j.name


def _gen_and_rule(name: str) -> tuple[str, str]:
    parts = name.split(":")
    if len(parts) == 1:
        return parts[0], ""
    if len(parts) == 2:
        # a default output rule
        return "", parts[1]
    if len(parts) == 3:
        return parts[1], parts[2]
    return "", ""


class SortByOption:
    """Sort command-line options by the generator they belong to."""

    def less(self, i: Any, j: Any) -> bool:
        i_gen, i_rule = _gen_and_rule(i.name)
        j_gen, j_rule = _gen_and_rule(j.name)
        if i_gen != j_gen:
            return i_gen > j_gen
        return i_rule < j_rule

    def group(self, defn: Any, help: Any) -> str:
        parts = defn.name.split(":")
        if len(parts) == 1:
            return "generic" if parts[0] == "paths" else "generators"
        if len(parts) == 2:
            return "output rules (optionally as output:<generator>:...)"
        return ""