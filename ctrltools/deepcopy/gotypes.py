"""A small model of Go's type system, enough to plan deep-copy code.

Types mirror the parts of Go's static types that matter for copying:
basic types, named (defined) types with their methods, pointers, slices,
maps, structs and interfaces. Named types compare by identity; the other
types compare structurally.
"""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from typing import Any, Optional, Union


class BasicKind(enum.Enum):
    """Kinds of Go basic types, valued by their Go spelling."""

    INVALID = "invalid type"
    BOOL = "bool"
    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    UINTPTR = "uintptr"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    COMPLEX64 = "complex64"
    COMPLEX128 = "complex128"
    STRING = "string"
    UNSAFE_POINTER = "unsafe.Pointer"


class GoType:
    """Base of all Go types."""

    def underlying(self) -> GoType:
        """The underlying type; only named types differ from themselves."""
        return self


@dataclass(frozen=True)
class Basic(GoType):
    """A predeclared basic type. ``name`` allows aliases such as ``byte``."""

    kind: BasicKind
    name: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not self.name:
            object.__setattr__(self, "name", self.kind.value)

    def __str__(self) -> str:
        return self.name


INVALID = Basic(BasicKind.INVALID)


@dataclass(frozen=True)
class Pointer(GoType):
    """A pointer type ``*elem``."""

    elem: GoType

    def __str__(self) -> str:
        return f"*{self.elem}"


@dataclass(frozen=True)
class Slice(GoType):
    """A slice type ``[]elem``."""

    elem: GoType

    def __str__(self) -> str:
        return f"[]{self.elem}"


@dataclass(frozen=True)
class Map(GoType):
    """A map type ``map[key]elem``."""

    key: GoType
    elem: GoType

    def __str__(self) -> str:
        return f"map[{self.key}]{self.elem}"


@dataclass(frozen=True)
class Field:
    """A struct field; embedded fields are named after their type."""

    name: str
    type: GoType
    embedded: bool = False

    def __str__(self) -> str:
        return str(self.type) if self.embedded else f"{self.name} {self.type}"


@dataclass(frozen=True)
class Struct(GoType):
    """A struct type."""

    fields: tuple[Field, ...] = ()

    def __str__(self) -> str:
        return "struct{" + "; ".join(str(f) for f in self.fields) + "}"


@dataclass(frozen=True)
class Signature(GoType):
    """A function or method signature; ``recv`` is set for methods."""

    params: tuple[GoType, ...] = ()
    results: tuple[GoType, ...] = ()
    recv: Optional[GoType] = field(default=None, compare=False)

    def _tail(self) -> str:
        params = "(" + ", ".join(str(p) for p in self.params) + ")"
        if not self.results:
            return params
        if len(self.results) == 1:
            return f"{params} {self.results[0]}"
        return f"{params} (" + ", ".join(str(r) for r in self.results) + ")"

    def __str__(self) -> str:
        return "func" + self._tail()


@dataclass(frozen=True)
class Method:
    """A method name together with its signature."""

    name: str
    signature: Signature


@dataclass(frozen=True)
class Interface(GoType):
    """An interface type with its method set."""

    methods: tuple[Method, ...] = ()

    def __str__(self) -> str:
        body = "; ".join(m.name + m.signature._tail() for m in self.methods)
        return "interface{" + body + "}"


class Named(GoType):
    """A defined type ``type name decl`` in a package.

    ``decl`` may be another named type; :meth:`underlying` follows such
    chains to the first type that is not named.
    """

    def __init__(
        self,
        name: str,
        pkg: Optional[Package] = None,
        decl: Optional[GoType] = None,
        methods: tuple[Method, ...] | list[Method] = (),
    ) -> None:
        self.name = name
        self.pkg = pkg
        self.decl = decl
        self.methods: list[Method] = list(methods)

    def underlying(self) -> GoType:
        seen: set[int] = set()
        current: Optional[GoType] = self
        while isinstance(current, Named):
            if id(current) in seen:
                return INVALID
            seen.add(id(current))
            current = current.decl
        return INVALID if current is None else current

    def add_method(
        self,
        name: str,
        params: tuple[GoType, ...] | list[GoType] = (),
        results: tuple[GoType, ...] | list[GoType] = (),
        pointer_receiver: bool = False,
    ) -> Method:
        """Declare a method on this type and return it."""
        recv: GoType = Pointer(self) if pointer_receiver else self
        method = Method(name, Signature(tuple(params), tuple(results), recv))
        self.methods.append(method)
        return method

    def __str__(self) -> str:
        if self.pkg is not None and self.pkg.path:
            return f"{self.pkg.path}.{self.name}"
        return self.name

    def __repr__(self) -> str:
        return f"Named({str(self)!r})"


class PackageError(Exception):
    """An error recorded against a package."""


@dataclass(eq=False)
class TypeInfo:
    """A type declared in a package, with the markers attached to it."""

    name: str
    type: GoType = INVALID
    markers: dict[str, list[Any]] = field(default_factory=dict)

    def marker(self, name: str) -> Any:
        """The first value of marker ``name``, or None if it is absent."""
        values = self.markers.get(name) or []
        return values[0] if values else None


@dataclass(eq=False)
class Package:
    """A loaded package: its types, markers, imports and collected errors."""

    name: str
    path: str
    imports: dict[str, Package] = field(default_factory=dict)
    type_infos: list[TypeInfo] = field(default_factory=list)
    markers: dict[str, list[Any]] = field(default_factory=dict)
    compiled_go_files: list[str] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)

    def add_error(self, err: Union[Exception, str]) -> None:
        """Record an error; plain messages become :class:`PackageError`."""
        self.errors.append(err if isinstance(err, Exception) else PackageError(err))


def eventual_underlying_type(t: GoType) -> GoType:
    """Follow ``underlying`` until it no longer changes."""
    last = t
    nxt = t.underlying()
    while nxt is not last:
        last, nxt = nxt, nxt.underlying()
    return last


def _find(methods: list[Method] | tuple[Method, ...], name: str) -> Optional[Method]:
    return next((m for m in methods if m.name == name), None)


def lookup_method(t: GoType, name: str) -> Optional[Method]:
    """Find method ``name`` declared directly on ``t`` (or on ``*t``).

    Methods promoted from embedded fields are not returned, and neither are
    methods reached through named pointer types or pointers to pointers.
    """
    is_ptr = isinstance(t, Pointer)
    base = t.elem if isinstance(t, Pointer) else t

    if isinstance(base, Named):
        under = base.underlying()
        if isinstance(under, Pointer):
            return None
        if isinstance(under, Interface):
            if is_ptr:
                return None
            found = _find(under.methods, name)
            if found is None:
                return None
            return dataclasses.replace(
                found, signature=dataclasses.replace(found.signature, recv=base)
            )
        return _find(base.methods, name)

    if isinstance(base, Interface) and not is_ptr:
        found = _find(base.methods, name)
        if found is None:
            return None
        return dataclasses.replace(
            found, signature=dataclasses.replace(found.signature, recv=base)
        )
    return None