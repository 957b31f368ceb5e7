"""Generation of DeepCopy, DeepCopyInto and DeepCopyObject methods for a package.

Copying is scoped to types that may become API objects. Interfaces are not
deep-copied. A package opts in with ``+kubebuilder:object:generate=true``.
A single type can opt in or out with the same marker on the type, and
``+kubebuilder:object:root=true`` asks for a DeepCopyObject implementation.
The older ``k8s:deepcopy-gen`` markers are still understood.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ctrltools.deepcopy.gotypes import GoType, Interface, Package, TypeInfo
from ctrltools.deepcopy.traverse import (
    CopyMethodMaker,
    should_be_copied,
    wants_object_interface,
)
from ctrltools.deepcopy.writer import CodeWriter, ImportsList

OUTPUT_FILE = "zz_generated.deepcopy.go"

ENABLE_MARKER = "kubebuilder:object:generate"
OBJECT_MARKER = "kubebuilder:object:root"
LEGACY_ENABLE_MARKER = "k8s:deepcopy-gen"
LEGACY_OBJECT_MARKER = "k8s:deepcopy-gen:interfaces"

_TARGET_PACKAGE = "package"
_TARGET_TYPE = "type"


@dataclass(frozen=True)
class MarkerArgument:
    """The type of a marker's argument."""

    type: str
    optional: bool = False
    item_type: Optional[MarkerArgument] = None


@dataclass(frozen=True)
class MarkerDefinition:
    """A marker this generator understands."""

    name: str
    target: str
    fields: dict[str, MarkerArgument] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class MarkerHelp:
    """Help text for one of this generator's markers."""

    category: str
    summary: str
    details: str = ""
    deprecated_in_favor_of: Optional[str] = None

    def fields_help(self, defn: MarkerDefinition) -> dict[str, Any]:
        """Help for each field; single-valued markers carry the marker's summary."""
        from ctrltools.help.docs import DetailedHelp

        return {
            name: DetailedHelp(summary=self.summary if name == "" else "")
            for name in defn.fields
        }


def _anonymous(kind: str) -> dict[str, MarkerArgument]:
    return {"": MarkerArgument(type=kind)}


_ENABLE_PKG = MarkerDefinition(ENABLE_MARKER, _TARGET_PACKAGE, _anonymous("bool"))
_ENABLE_TYPE = MarkerDefinition(ENABLE_MARKER, _TARGET_TYPE, _anonymous("bool"))
_IS_OBJECT = MarkerDefinition(OBJECT_MARKER, _TARGET_TYPE, _anonymous("bool"))
_LEGACY_ENABLE_PKG = MarkerDefinition(LEGACY_ENABLE_MARKER, _TARGET_PACKAGE, _anonymous("raw"))
_LEGACY_ENABLE_TYPE = MarkerDefinition(LEGACY_ENABLE_MARKER, _TARGET_TYPE, _anonymous("raw"))
_LEGACY_IS_OBJECT = MarkerDefinition(LEGACY_OBJECT_MARKER, _TARGET_TYPE, _anonymous("string"))

_PKG_SUMMARY = "enables or disables object interface & deepcopy implementation generation for this package"
_TYPE_SUMMARY = "overrides enabling or disabling deepcopy generation for this type"
_OBJECT_SUMMARY = "enables object interface implementation generation for this type"

_MARKER_HELP: list[tuple[MarkerDefinition, MarkerHelp]] = [
    (_ENABLE_PKG, MarkerHelp("object", _PKG_SUMMARY)),
    (_LEGACY_ENABLE_PKG, MarkerHelp("object", _PKG_SUMMARY, deprecated_in_favor_of=ENABLE_MARKER)),
    (_ENABLE_TYPE, MarkerHelp("object", _TYPE_SUMMARY)),
    (_LEGACY_ENABLE_TYPE, MarkerHelp("object", _TYPE_SUMMARY, deprecated_in_favor_of=ENABLE_MARKER)),
    (_IS_OBJECT, MarkerHelp("object", _OBJECT_SUMMARY)),
    (_LEGACY_IS_OBJECT, MarkerHelp("object", _OBJECT_SUMMARY, deprecated_in_favor_of=OBJECT_MARKER)),
]


def _first(markers: dict[str, list[Any]], name: str) -> Any:
    values = markers.get(name) or []
    return values[0] if values else None


def _raw_text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)


def enabled_on_package(pkg: Package) -> bool:
    """Whether the package's markers enable generation for all of its types."""
    value = _first(pkg.markers, ENABLE_MARKER)
    if value is not None:
        return bool(value)
    legacy = _first(pkg.markers, LEGACY_ENABLE_MARKER)
    if legacy is not None:
        return _raw_text(legacy).split(",")[0] == "package"
    return False


def enabled_on_type(all_types: bool, info: TypeInfo) -> bool:
    """Whether generation is enabled for one type, given the package setting."""
    value = info.marker(ENABLE_MARKER)
    if value is not None:
        return bool(value)
    legacy = info.marker(LEGACY_ENABLE_MARKER)
    if legacy is not None:
        return _raw_text(legacy) == "true"
    return all_types or gen_object_interface(info)


def gen_object_interface(info: TypeInfo) -> bool:
    """Whether a DeepCopyObject implementation should be made for the type."""
    return wants_object_interface(info)


def _write_header(package_name: str, imports: ImportsList, header_text: str) -> str:
    specs = "\n".join(imports.import_specs())
    # the blank line after the build tags keeps them apart from comments
    return (
        "//go:build !ignore_autogenerated\n"
        "// +build !ignore_autogenerated\n"
        "\n"
        f"{header_text}\n"
        "\n"
        "// Code generated by controller-gen. DO NOT EDIT.\n"
        "\n"
        f"package {package_name}\n"
        "\n"
        "import (\n"
        f"{specs}\n"
        ")\n"
        "\n"
    )


def _code_part(text: str) -> str:
    """The text of a line with string literals and line comments removed."""
    kept: list[str] = []
    quote: Optional[str] = None
    index = 0
    while index < len(text):
        ch = text[index]
        if quote is not None:
            if ch == "\\" and quote != "`":
                index += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "\"'`":
            quote = ch
        elif text.startswith("//", index):
            break
        else:
            kept.append(ch)
        index += 1
    return "".join(kept)


def _tidy(source: str) -> str:
    """Indent code by nesting depth with tabs and collapse runs of blank lines."""
    lines: list[str] = []
    depth = 0
    in_block_comment = False
    previous_blank = False
    for raw in source.split("\n"):
        text = raw.strip()
        if in_block_comment:
            lines.append(raw.rstrip())
            if "*/" in text:
                in_block_comment = False
            previous_blank = False
            continue
        if not text:
            if lines and not previous_blank:
                lines.append("")
            previous_blank = True
            continue
        previous_blank = False
        if text.startswith("/*") and "*/" not in text:
            in_block_comment = True
            lines.append(raw.rstrip())
            continue

        code = _code_part(text)
        leading_closers = len(code) - len(code.lstrip("})"))
        opens = code.count("{") + code.count("(")
        closes = code.count("}") + code.count(")")
        lines.append("\t" * max(depth - leading_closers, 0) + text)
        depth = max(depth + opens - closes, 0)
    return "\n".join(lines).strip("\n") + "\n"


@dataclass
class ObjectGenCtx:
    """Shared settings for generating deep-copy code for packages."""

    collector: Any = None
    checker: Any = None
    header_text: str = ""

    def generate_for_package(self, root: Package) -> Optional[bytes]:
        """Generate the deep-copy source for ``root``, or None if nothing is needed."""
        all_types = enabled_on_package(root)

        check = getattr(self.checker, "check", None)
        if callable(check):
            check(root)

        imports = ImportsList(root)
        # reserve the package's own name so no import is aliased to it
        imports.by_alias[root.name] = ""

        by_type: dict[str, str] = {}
        for info in root.type_infos:
            if not enabled_on_type(all_types, info):
                continue
            if not should_be_copied(root, info):
                continue
            writer = CodeWriter()
            CopyMethodMaker(root, imports, writer).generate_methods_for(root, info)
            text = writer.text()
            if text:
                by_type[info.name] = text

        if not by_type:
            return None

        source = _write_header(root.name, imports, self.header_text)
        source += "".join(by_type[name] for name in sorted(by_type))
        return _tidy(source).encode("utf-8")


def _write_out(ctx: Any, root: Package, data: bytes) -> None:
    try:
        out = ctx.open(root, OUTPUT_FILE)
    except OSError as err:
        root.add_error(err)
        return
    try:
        written = out.write(data)
        if isinstance(written, int) and written < len(data):
            root.add_error(OSError("short write"))
    except OSError as err:
        root.add_error(err)
    finally:
        out.close()


@dataclass
class Generator:
    """Generates DeepCopy, DeepCopyInto and DeepCopyObject implementations.

    ``header_file`` names a file whose text is put at the top of generated
    files; `` YEAR`` in it is replaced with ``year``.
    """

    header_file: str = ""
    year: str = ""

    def check_filter(self) -> Callable[[Any], bool]:
        """A type-checking filter that skips interfaces."""

        def interesting(node: Any) -> bool:
            return not isinstance(node, Interface)

        return interesting

    def register_markers(self, into: Any) -> None:
        """Register this generator's markers, and their help, into a registry."""
        for defn, _ in _MARKER_HELP:
            into.register(defn)
        add_help = getattr(into, "add_help", None)
        if callable(add_help):
            for defn, help_text in _MARKER_HELP:
                add_help(defn, help_text)

    def generate(self, ctx: Any) -> None:
        """Write ``zz_generated.deepcopy.go`` for every root package that needs one."""
        header_text = ""
        if self.header_file:
            header_text = ctx.read_file(self.header_file).decode("utf-8")
        header_text = header_text.replace(" YEAR", " " + self.year)

        gen_ctx = ObjectGenCtx(
            collector=getattr(ctx, "collector", None),
            checker=getattr(ctx, "checker", None),
            header_text=header_text,
        )
        for root in ctx.roots:
            contents = gen_ctx.generate_for_package(root)
            if contents is None:
                continue
            _write_out(ctx, root, contents)


def _type_of(info: TypeInfo) -> GoType:
    return info.type