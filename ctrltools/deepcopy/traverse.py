"""Planning and emitting DeepCopy, DeepCopyInto and DeepCopyObject methods.

The emitted code follows the layout of the classic Kubernetes deep-copy
generator, so that output can be compared with it line for line.
"""

from __future__ import annotations

from typing import Any, Optional

from ctrltools.deepcopy.gotypes import (
    INVALID,
    Basic,
    BasicKind,
    GoType,
    Map,
    Named,
    Package,
    Pointer,
    Slice,
    Struct,
    TypeInfo,
    eventual_underlying_type,
    lookup_method,
)
from ctrltools.deepcopy.writer import CodeWriter, ImportsList, NamingInfo

RUNTIME_OBJECT_PATH = "k8s.io/apimachinery/pkg/runtime.Object"
RUNTIME_PACKAGE_PATH = "k8s.io/apimachinery/pkg/runtime"
OBJECT_ROOT_MARKER = "kubebuilder:object:root"
LEGACY_OBJECT_MARKER = "k8s:deepcopy-gen:interfaces"

_UNCOPYABLE_KINDS = (BasicKind.INVALID, BasicKind.UNSAFE_POINTER)

_PTR_DEEP_COPY = """
// DeepCopy is an autogenerated deepcopy function, copying the receiver, creating a new {name}.
func (in *{name}) DeepCopy() *{name} {{
\tif in == nil {{ return nil }}
\tout := new({name})
\tin.DeepCopyInto(out)
\treturn out
}}
"""

_BARE_DEEP_COPY = """
// DeepCopy is an autogenerated deepcopy function, copying the receiver, creating a new {name}.
func (in {name}) DeepCopy() {name} {{
\tif in == nil {{ return nil }}
\tout := new({name})
\tin.DeepCopyInto(out)
\treturn *out
}}
"""

_PTR_DEEP_COPY_OBJ = """
// DeepCopyObject is an autogenerated deepcopy function, copying the receiver, creating a new runtime.Object.
func (in *{name}) DeepCopyObject() {runtime}.Object {{
\tif c := in.DeepCopy(); c != nil {{
\t\treturn c
\t}}
\treturn nil
}}
"""

_BARE_DEEP_COPY_OBJ = """
// DeepCopyObject is an autogenerated deepcopy function, copying the receiver, creating a new runtime.Object.
func (in {name}) DeepCopyObject() {runtime}.Object {{
\treturn in.DeepCopy()
}}
"""


def wants_object_interface(info: TypeInfo) -> bool:
    """True if the type asks for a DeepCopyObject implementation."""
    enabled = info.marker(OBJECT_ROOT_MARKER)
    if enabled is not None:
        return bool(enabled)
    return any(v == RUNTIME_OBJECT_PATH for v in info.markers.get(LEGACY_OBJECT_MARKER, []))


def _is_exported(name: str) -> bool:
    return name[:1].isupper()


def use_ptr_receiver(t: GoType) -> bool:
    """True unless the type is already passed by reference."""
    if isinstance(t, (Pointer, Map, Slice)):
        return False
    if isinstance(t, Named):
        return use_ptr_receiver(t.underlying())
    return True


def result_will_be_pointer(t: GoType, has_deep_copy: bool, deep_copy_on_ptr: bool) -> bool:
    """True if deep-copying a value of ``t`` yields a pointer."""
    if has_deep_copy:
        return deep_copy_on_ptr
    if isinstance(t, Pointer):
        return result_will_be_pointer(t.elem, False, False)
    if isinstance(t, (Map, Slice)):
        return False
    if isinstance(t, Named):
        return result_will_be_pointer(t.underlying(), False, False)
    return True


def has_deep_copy_method(pkg: Package, t: GoType) -> tuple[bool, bool]:
    """Whether ``t`` has a proper manual DeepCopy, and whether its receiver is a pointer."""
    method = lookup_method(t, "DeepCopy")
    if method is None:
        return False, False
    sig = method.signature
    if sig.params:
        return False, False
    if len(sig.results) != 1:
        return False, False
    result = sig.results[0]
    recv = sig.recv
    if isinstance(recv, Pointer):
        if not isinstance(result, Pointer):
            return False, False
        if recv.elem != result.elem:
            return False, False
        return True, True
    if result != recv:
        return False, False
    return True, False


def has_deep_copy_into_method(pkg: Package, t: GoType) -> bool:
    """Whether ``t`` has a proper manual DeepCopyInto method."""
    method = lookup_method(t, "DeepCopyInto")
    if method is None:
        return False
    sig = method.signature
    if len(sig.params) != 1:
        return False
    param = sig.params[0]
    if not isinstance(param, Pointer):
        return False
    if sig.results:
        return False
    recv = sig.recv
    if isinstance(recv, Pointer):
        return param.elem == recv.elem
    return recv == param.elem


def has_any_deep_copy_method(pkg: Package, t: GoType) -> bool:
    """True if ``t`` has a manual DeepCopy or DeepCopyInto."""
    return has_deep_copy_method(pkg, t)[0] or has_deep_copy_into_method(pkg, t)


def fine_to_shallow_copy(t: GoType) -> bool:
    """True if a shallow copy of ``t`` is as good as a deep copy."""
    if isinstance(t, Basic):
        return t.kind not in _UNCOPYABLE_KINDS
    if isinstance(t, Named):
        return fine_to_shallow_copy(t.underlying())
    if isinstance(t, Struct):
        return all(fine_to_shallow_copy(f.type) for f in t.fields)
    return False


def passes_by_reference(t: GoType) -> bool:
    """True for slices, maps and pointers."""
    return isinstance(t, (Slice, Map, Pointer))


def should_be_copied(pkg: Package, info: TypeInfo) -> bool:
    """Whether deep-copy methods should be made for the declared type.

    The type must be exported and either have a partial manual
    implementation, alias a non-basic type, or be a struct.
    """
    if not _is_exported(info.name):
        return False

    t: GoType = info.type
    if t == INVALID:
        pkg.add_error(f"unknown type: {info.name}")
        return False

    if isinstance(t, Named):
        under = t.underlying()
        if isinstance(under, Pointer):
            t = under

    last = t
    if isinstance(t, Named):
        if has_any_deep_copy_method(pkg, t):
            return True
        under = t.underlying()
        while under is not last:
            if has_any_deep_copy_method(pkg, under):
                return True
            if not isinstance(under, Basic):
                return True
            last, under = under, under.underlying()

    return isinstance(last, Struct)


class CopyMethodMaker:
    """Writes deep-copy methods for the types of one package."""

    def __init__(
        self,
        pkg: Package,
        imports: Optional[ImportsList] = None,
        writer: Optional[CodeWriter] = None,
    ) -> None:
        self.pkg = pkg
        self.imports = imports if imports is not None else ImportsList(pkg)
        self.writer = writer if writer is not None else CodeWriter()

    def _line(self, text: str) -> None:
        self.writer.line(text)

    def _name(self, t: Any) -> str:
        return NamingInfo(type_info=t).syntax(self.pkg, self.imports)

    def generate_methods_for(self, root: Package, info: TypeInfo) -> None:
        """Write DeepCopyInto, DeepCopy and DeepCopyObject as needed for ``info``."""
        t = info.type
        if t == INVALID:
            root.add_error(f"unknown type: {info.name}")

        ptr_receiver = use_ptr_receiver(t)
        manual_into = has_deep_copy_into_method(root, t)
        manual_copy, copy_on_ptr = has_deep_copy_method(root, t)
        name = info.name

        if not manual_into:
            self._line(
                "// DeepCopyInto is an autogenerated deepcopy function, copying the receiver, "
                "writing into out. in must be non-nil."
            )
            if ptr_receiver:
                self._line(f"func (in *{name}) DeepCopyInto(out *{name}) {{")
            else:
                self._line(f"func (in {name}) DeepCopyInto(out *{name}) {{")
                self._line("{in := &in")

            if manual_copy:
                if copy_on_ptr:
                    self._line("clone := in.DeepCopy()")
                    self._line("*out = *clone")
                else:
                    self._line("*out = in.DeepCopy()")
            else:
                self._gen_deep_copy_into_block(NamingInfo(name_override=name), t)

            if not ptr_receiver:
                self._line("}")
            self._line("}")

        if not manual_copy:
            template = _PTR_DEEP_COPY if ptr_receiver else _BARE_DEEP_COPY
            self._line(template.format(name=name))

            if wants_object_interface(info):
                runtime_alias = self.imports.need_import(RUNTIME_PACKAGE_PATH)
                template = _PTR_DEEP_COPY_OBJ if ptr_receiver else _BARE_DEEP_COPY_OBJ
                self._line(template.format(name=name, runtime=runtime_alias))

    def _gen_deep_copy_into_block(self, actual_name: NamingInfo, t: GoType) -> None:
        last = eventual_underlying_type(t)

        if not isinstance(last, Pointer) and has_any_deep_copy_method(self.pkg, t):
            self._line("*out = in.DeepCopy()")
            return

        if isinstance(last, Basic):
            if last.kind in _UNCOPYABLE_KINDS:
                self.pkg.add_error(f"invalid type: {last}")
            else:
                if has_deep_copy_method(self.pkg, t)[0]:
                    self._line("*out = in.DeepCopy()")
                self._line("*out = *in")
        elif isinstance(last, Map):
            self._gen_map_deep_copy(actual_name, last)
        elif isinstance(last, Slice):
            self._gen_slice_deep_copy(actual_name, last)
        elif isinstance(last, Struct):
            self._gen_struct_deep_copy(last)
        elif isinstance(last, Pointer):
            self._gen_pointer_deep_copy(last)
        elif isinstance(last, Named):
            self.pkg.add_error(f"interface type {last} encountered directly, invalid condition")
        else:
            self.pkg.add_error(f"invalid type: {last}")

    def _gen_map_deep_copy(self, actual_name: NamingInfo, map_type: Map) -> None:
        if not fine_to_shallow_copy(map_type.key):
            self.pkg.add_error(f"invalid map key type: {map_type.key}")
            return

        self._line(f"*out = make({actual_name.syntax(self.pkg, self.imports)}, len(*in))")
        elem = map_type.elem

        def body() -> None:
            has_copy, copy_on_ptr = has_deep_copy_method(self.pkg, elem)
            has_into = has_deep_copy_into_method(self.pkg, elem)
            if has_into or has_copy:
                field_is_ptr = isinstance(elem, Pointer)
                in_is_ptr = result_will_be_pointer(elem, has_copy, copy_on_ptr)
                if has_copy:
                    in_is_ptr = copy_on_ptr
                if in_is_ptr == field_is_ptr:
                    self._line("(*out)[key] = val.DeepCopy()")
                elif field_is_ptr:
                    self._line("{")
                    self._line("x := val.DeepCopy()")
                    self._line("(*out)[key] = &x")
                    self._line("}")
                else:
                    self._line("(*out)[key] = *val.DeepCopy()")
                return

            if fine_to_shallow_copy(elem):
                self._line("(*out)[key] = val")
                return

            underlying = eventual_underlying_type(elem)
            if passes_by_reference(underlying):
                self._line(f"var outVal {self._name(underlying)}")

                def copy_value() -> None:
                    self._line("in, out := &val, &outVal")
                    self._gen_deep_copy_into_block(NamingInfo(type_info=elem), elem)

                self.writer.if_else(
                    "val == nil", lambda: self._line("(*out)[key] = nil"), copy_value
                )
                self._line("(*out)[key] = outVal")
                return

            if isinstance(underlying, Struct):
                self._line("(*out)[key] = *val.DeepCopy()")
            else:
                self.pkg.add_error(f"invalid map value type: {underlying}")

        self.writer.for_block("key, val := range *in", body)

    def _gen_slice_deep_copy(self, actual_name: NamingInfo, slice_type: Slice) -> None:
        elem = slice_type.elem
        underlying = eventual_underlying_type(elem)

        self._line(f"*out = make({actual_name.syntax(self.pkg, self.imports)}, len(*in))")

        if has_any_deep_copy_method(self.pkg, elem):
            self.writer.for_block(
                "i := range *in", lambda: self._line("(*in)[i].DeepCopyInto(&(*out)[i])")
            )
            return
        if fine_to_shallow_copy(underlying):
            self._line("copy(*out, *in)")
            return

        def body() -> None:
            if passes_by_reference(underlying) or has_any_deep_copy_method(self.pkg, elem):

                def copy_element() -> None:
                    self._line("in, out := &(*in)[i], &(*out)[i]")
                    self._gen_deep_copy_into_block(NamingInfo(type_info=elem), elem)

                self.writer.if_block("(*in)[i] != nil", copy_element)
                return
            if isinstance(underlying, Struct):
                self._line("(*in)[i].DeepCopyInto(&(*out)[i])")
            else:
                self.pkg.add_error(f"invalid slice element type: {underlying}")

        self.writer.for_block("i := range *in", body)

    def _delegate_field(self, name: str, field_type: GoType) -> None:
        def copy_field() -> None:
            self._line(f"in, out := &in.{name}, &out.{name}")
            self._gen_deep_copy_into_block(NamingInfo(type_info=field_type), field_type)

        self.writer.if_block(f"in.{name} != nil", copy_field)

    def _gen_struct_deep_copy(self, struct_type: Struct) -> None:
        self._line("*out = *in")

        for fld in struct_type.fields:
            name, field_type = fld.name, fld.type
            has_copy, copy_on_ptr = has_deep_copy_method(self.pkg, field_type)
            has_into = has_deep_copy_into_method(self.pkg, field_type)
            if has_into or has_copy:
                field_is_ptr = isinstance(field_type, Pointer)
                in_is_ptr = result_will_be_pointer(field_type, has_copy, copy_on_ptr)
                if field_is_ptr:
                    self._delegate_field(name, field_type)
                elif in_is_ptr == field_is_ptr:
                    self._line(f"out.{name} = in.{name}.DeepCopy()")
                else:
                    self._line(f"in.{name}.DeepCopyInto(&out.{name})")
                continue

            underlying = eventual_underlying_type(field_type)
            if passes_by_reference(underlying):
                self._delegate_field(name, field_type)
                continue

            if isinstance(underlying, Basic):
                if underlying.kind in _UNCOPYABLE_KINDS:
                    self.pkg.add_error(f"invalid field type: {underlying}")
                    return
            elif isinstance(underlying, Struct):
                if fine_to_shallow_copy(field_type):
                    self._line(f"out.{name} = in.{name}")
                else:
                    self._line(f"in.{name}.DeepCopyInto(&out.{name})")
            else:
                self.pkg.add_error(f"invalid field type: {underlying}")
                return

    def _gen_pointer_deep_copy(self, pointer_type: Pointer) -> None:
        elem = pointer_type.elem
        underlying = eventual_underlying_type(elem)

        has_copy, copy_on_ptr = has_deep_copy_method(self.pkg, elem)
        has_into = has_deep_copy_into_method(self.pkg, elem)
        if has_into or has_copy:
            out_needs_ptr = result_will_be_pointer(elem, has_copy, copy_on_ptr)
            if has_copy:
                out_needs_ptr = copy_on_ptr
            if out_needs_ptr:
                self._line("*out = (*in).DeepCopy()")
            else:
                self._line("x := (*in).DeepCopy()")
                self._line("*out = &x")
            return

        if fine_to_shallow_copy(underlying):
            self._line(f"*out = new({self._name(elem)})")
            self._line("**out = **in")
            return

        if passes_by_reference(underlying):
            self._line(f"*out = new({self._name(underlying)})")

            def copy_target() -> None:
                self._line("in, out := *in, *out")
                self._gen_deep_copy_into_block(
                    NamingInfo(type_info=underlying), eventual_underlying_type(underlying)
                )

            self.writer.if_block("**in != nil", copy_target)
            return

        if isinstance(underlying, Struct):
            self._line(f"*out = new({self._name(elem)})")
            self._line("(*in).DeepCopyInto(*out)")
        else:
            self.pkg.add_error(f"invalid pointer element type: {underlying}")