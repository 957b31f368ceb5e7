"""Helpers for emitting Go source: lines and blocks, imports, type names."""

from __future__ import annotations

import io
import json
import unicodedata
from dataclasses import dataclass
from typing import Callable, Optional

from ctrltools.deepcopy.gotypes import Basic, GoType, Map, Named, Package, Pointer, Slice

_VENDOR = "/vendor/"


class CodeWriter:
    """Accumulates lines of Go code."""

    def __init__(self) -> None:
        self._buf = io.StringIO()

    def line(self, text: str) -> None:
        """Write one line."""
        self._buf.write(text + "\n")

    def if_block(self, setup: str, block: Callable[[], None]) -> None:
        """Write ``if setup { ... }`` with ``block`` producing the body."""
        self.line(f"if {setup} {{")
        block()
        self.line("}")

    def if_else(
        self, setup: str, if_block: Callable[[], None], else_block: Callable[[], None]
    ) -> None:
        """Write an if/else statement with both bodies."""
        self.line(f"if {setup} {{")
        if_block()
        self.line("} else {")
        else_block()
        self.line("}")

    def for_block(self, setup: str, block: Callable[[], None]) -> None:
        """Write ``for setup { ... }`` with ``block`` producing the body."""
        self.line(f"for {setup} {{")
        block()
        self.line("}")

    def text(self) -> str:
        """Everything written so far."""
        return self._buf.getvalue()


def _split(path: str) -> tuple[str, str]:
    """Split after the final slash, keeping the slash on the directory part."""
    index = path.rfind("/")
    return path[: index + 1], path[index + 1 :]


def _is_digit(ch: str) -> bool:
    return unicodedata.category(ch) == "Nd"


def _is_letter(ch: str) -> bool:
    return unicodedata.category(ch).startswith("L")


def _identifier_part(word: str) -> str:
    stripped = word
    while stripped and _is_digit(stripped[0]):
        stripped = stripped[1:]
    return "".join(c if _is_letter(c) or _is_digit(c) or c == "_" else "_" for c in stripped)


def _go_quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


class ImportsList:
    """Tracks needed imports, giving each one a unique alias.

    An alias mapped to ``""`` in :attr:`by_alias` is reserved and never
    handed out.
    """

    def __init__(self, pkg: Optional[Package] = None) -> None:
        self.pkg = pkg
        self.by_path: dict[str, str] = {}
        self.by_alias: dict[str, str] = {}

    def need_import(self, import_path: str) -> str:
        """Mark ``import_path`` as needed and return the alias to refer to it by."""
        index = import_path.rfind(_VENDOR)
        if index != -1:
            import_path = import_path[index + len(_VENDOR) :]

        if import_path in self.by_path:
            return self.by_path[import_path]

        rest, word = _split(import_path)
        alias = ""
        other, exists = "", True
        while exists and other != import_path:
            if not rest:
                # out of path parts but still clashing
                alias += "x"
            alias = _identifier_part(word) + alias
            if rest:
                rest, word = _split(rest[:-1])
            exists = alias in self.by_alias
            other = self.by_alias.get(alias, "")

        self.by_path[import_path] = alias
        self.by_alias[alias] = import_path
        return alias

    def import_specs(self) -> list[str]:
        """Import specs in import-path order, aliased only where needed."""
        imports = self.pkg.imports if self.pkg is not None else {}
        specs = []
        for path, alias in sorted(self.by_path.items()):
            imported = imports.get(path)
            if imported is not None and imported.name == alias:
                specs.append(_go_quote(path))
            else:
                specs.append(f"{alias} {_go_quote(path)}")
        return specs


def _same_package(a: Optional[Package], b: Optional[Package]) -> bool:
    if a is None or b is None:
        return a is b
    return a is b or a.path == b.path


@dataclass
class NamingInfo:
    """How to refer to a type in generated code, registering imports lazily."""

    type_info: Optional[GoType] = None
    name_override: str = ""

    def syntax(self, base_pkg: Package, imports: ImportsList) -> str:
        """Go syntax naming the type from inside ``base_pkg``."""
        if self.name_override:
            return self.name_override

        t = self.type_info
        if isinstance(t, Named):
            if t.pkg is None or _same_package(t.pkg, base_pkg):
                return t.name
            return f"{imports.need_import(t.pkg.path)}.{t.name}"
        if isinstance(t, Basic):
            return str(t)
        if isinstance(t, Pointer):
            return "*" + NamingInfo(t.elem).syntax(base_pkg, imports)
        if isinstance(t, Slice):
            return "[]" + NamingInfo(t.elem).syntax(base_pkg, imports)
        if isinstance(t, Map):
            key = NamingInfo(t.key).syntax(base_pkg, imports)
            elem = NamingInfo(t.elem).syntax(base_pkg, imports)
            return f"map[{key}]{elem}"
        base_pkg.add_error(f"name requested for invalid type: {t}")
        return str(t)