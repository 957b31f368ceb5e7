import pytest

from ctrltools.deepcopy.gotypes import (
    INVALID,
    Basic,
    BasicKind,
    Field,
    Map,
    Named,
    Package,
    Pointer,
    Slice,
    Struct,
    TypeInfo,
)
from ctrltools.deepcopy.traverse import (
    CopyMethodMaker,
    fine_to_shallow_copy,
    has_any_deep_copy_method,
    has_deep_copy_into_method,
    has_deep_copy_method,
    passes_by_reference,
    result_will_be_pointer,
    should_be_copied,
    use_ptr_receiver,
)

INT = Basic(BasicKind.INT)
STRING = Basic(BasicKind.STRING)
UNSAFE = Basic(BasicKind.UNSAFE_POINTER)


@pytest.fixture
def pkg():
    return Package(name="cronjob", path="testdata.kubebuilder.io/cronjob")


def _generate(pkg, named, markers=None):
    maker = CopyMethodMaker(pkg)
    maker.generate_methods_for(pkg, TypeInfo(name=named.name, type=named, markers=markers or {}))
    return maker, maker.writer.text().splitlines()


def test_passes_by_reference():
    assert passes_by_reference(Slice(INT))
    assert passes_by_reference(Map(STRING, INT))
    assert passes_by_reference(Pointer(INT))
    assert not passes_by_reference(INT)
    assert not passes_by_reference(Struct())


def test_fine_to_shallow_copy(pkg):
    assert fine_to_shallow_copy(INT)
    assert not fine_to_shallow_copy(UNSAFE)
    assert fine_to_shallow_copy(Struct((Field("A", INT), Field("B", STRING))))
    assert not fine_to_shallow_copy(Struct((Field("A", Slice(INT)),)))
    assert fine_to_shallow_copy(Named("TotallyAString", pkg, STRING))
    assert not fine_to_shallow_copy(Pointer(INT))


def test_use_ptr_receiver(pkg):
    assert use_ptr_receiver(Named("Foo", pkg, Struct()))
    assert not use_ptr_receiver(Named("Slice", pkg, Slice(INT)))
    assert not use_ptr_receiver(Named("Map", pkg, Map(STRING, INT)))
    assert not use_ptr_receiver(Named("Pointer", pkg, Pointer(INT)))


def test_result_will_be_pointer(pkg):
    assert result_will_be_pointer(INT, True, False) is False
    assert result_will_be_pointer(INT, True, True) is True
    assert result_will_be_pointer(Named("Foo", pkg, Struct()), False, False) is True
    assert result_will_be_pointer(Named("Slice", pkg, Slice(INT)), False, False) is False
    assert result_will_be_pointer(Pointer(Map(STRING, INT)), False, False) is False


def test_has_deep_copy_method_variants(pkg):
    ptr = Named("DeepCopyPtr", pkg, Struct())
    ptr.add_method("DeepCopy", results=(Pointer(ptr),), pointer_receiver=True)
    assert has_deep_copy_method(pkg, ptr) == (True, True)

    non_ptr = Named("DeepCopyNonPtr", pkg, Struct())
    non_ptr.add_method("DeepCopy", results=(non_ptr,))
    assert has_deep_copy_method(pkg, non_ptr) == (True, False)

    has_params = Named("BadDeepCopyHasParams", pkg, Struct())
    has_params.add_method("DeepCopy", params=(STRING,), results=(Pointer(has_params),), pointer_receiver=True)
    assert has_deep_copy_method(pkg, has_params) == (False, False)

    no_return = Named("BadDeepCopyNoReturn", pkg, Struct())
    no_return.add_method("DeepCopy", pointer_receiver=True)
    assert has_deep_copy_method(pkg, no_return) == (False, False)

    ptr_val = Named("BadDeepCopyPtrVal", pkg, Struct())
    ptr_val.add_method("DeepCopy", results=(Pointer(no_return),), pointer_receiver=True)
    assert has_deep_copy_method(pkg, ptr_val) == (False, False)

    mismatch = Named("BadDeepCopyPtrMismatch", pkg, Struct())
    mismatch.add_method("DeepCopy", results=(Pointer(mismatch),))
    assert has_deep_copy_method(pkg, mismatch) == (False, False)


def test_has_deep_copy_into_method_variants(pkg):
    good_ptr = Named("DeepCopyIntoPtr", pkg, Struct())
    good_ptr.add_method("DeepCopyInto", params=(Pointer(good_ptr),), pointer_receiver=True)
    assert has_deep_copy_into_method(pkg, good_ptr)

    good_val = Named("DeepCopyIntoNonPtr", pkg, Struct())
    good_val.add_method("DeepCopyInto", params=(Pointer(good_val),))
    assert has_deep_copy_into_method(pkg, good_val)

    no_params = Named("BadDeepCopyIntoNoParams", pkg, Struct())
    no_params.add_method("DeepCopyInto")
    assert not has_deep_copy_into_method(pkg, no_params)

    non_ptr_param = Named("BadDeepCopyIntoNonPtrParam", pkg, Struct())
    non_ptr_param.add_method("DeepCopyInto", params=(non_ptr_param,))
    assert not has_deep_copy_into_method(pkg, non_ptr_param)

    has_result = Named("BadDeepCopyIntoHasResult", pkg, Struct())
    has_result.add_method("DeepCopyInto", params=(Pointer(has_result),), results=(STRING,))
    assert not has_deep_copy_into_method(pkg, has_result)

    assert has_any_deep_copy_method(pkg, good_val)
    assert not has_any_deep_copy_method(pkg, has_result)


def test_should_be_copied(pkg):
    assert should_be_copied(pkg, TypeInfo("Foo", Named("Foo", pkg, Struct())))
    assert not should_be_copied(pkg, TypeInfo("foo", Named("foo", pkg, Struct())))
    assert not should_be_copied(pkg, TypeInfo("Builtin", Named("Builtin", pkg, INT)))
    assert should_be_copied(pkg, TypeInfo("Slice", Named("Slice", pkg, Slice(INT))))
    assert pkg.errors == []


def test_should_be_copied_unknown_type(pkg):
    assert not should_be_copied(pkg, TypeInfo("Broken", INVALID))
    assert [str(e) for e in pkg.errors] == ["unknown type: Broken"]


def test_struct_with_basic_field(pkg):
    foo = Named("Foo", pkg, Struct((Field("X", INT),)))
    maker, lines = _generate(pkg, foo)
    assert "func (in *Foo) DeepCopyInto(out *Foo) {" in lines
    assert "*out = *in" in lines
    assert "func (in *Foo) DeepCopy() *Foo {" in lines
    assert not any("DeepCopyObject" in text for text in lines)
    assert pkg.errors == []


def test_object_root_marker_adds_deep_copy_object(pkg):
    foo = Named("Foo", pkg, Struct((Field("X", INT),)))
    maker, lines = _generate(pkg, foo, {"kubebuilder:object:root": [True]})
    assert "func (in *Foo) DeepCopyObject() runtime.Object {" in lines
    assert maker.imports.by_path == {"k8s.io/apimachinery/pkg/runtime": "runtime"}


def test_legacy_object_marker(pkg):
    foo = Named("Foo", pkg, Struct())
    _, lines = _generate(
        pkg, foo, {"k8s:deepcopy-gen:interfaces": ["k8s.io/apimachinery/pkg/runtime.Object"]}
    )
    assert "func (in *Foo) DeepCopyObject() runtime.Object {" in lines


def test_named_slice_uses_value_receiver(pkg):
    sl = Named("Slice", pkg, Slice(INT))
    _, lines = _generate(pkg, sl)
    start = lines.index("func (in Slice) DeepCopyInto(out *Slice) {")
    assert lines[start + 1 : start + 6] == [
        "{in := &in",
        "*out = make(Slice, len(*in))",
        "copy(*out, *in)",
        "}",
        "}",
    ]
    assert "func (in Slice) DeepCopy() Slice {" in lines


def test_named_map_of_strings(pkg):
    m = Named("MapOfStrings", pkg, Map(STRING, STRING))
    _, lines = _generate(pkg, m)
    assert "*out = make(MapOfStrings, len(*in))" in lines
    start = lines.index("for key, val := range *in {")
    assert lines[start + 1] == "(*out)[key] = val"


def test_pointer_field_to_basic(pkg):
    s = Named("Holder", pkg, Struct((Field("P", Pointer(STRING)),)))
    _, lines = _generate(pkg, s)
    start = lines.index("if in.P != nil {")
    assert lines[start + 1 : start + 5] == [
        "in, out := &in.P, &out.P",
        "*out = new(string)",
        "**out = **in",
        "}",
    ]


def test_map_of_slices_field(pkg):
    s = Named("Holder", pkg, Struct((Field("M", Map(STRING, Slice(STRING))),)))
    _, lines = _generate(pkg, s)
    assert "*out = make(map[string][]string, len(*in))" in lines
    assert "var outVal []string" in lines
    assert "in, out := &val, &outVal" in lines
    assert "(*out)[key] = outVal" in lines
    assert pkg.errors == []


def test_manual_deep_copy_is_wrapped(pkg):
    t = Named("DeepCopyPtr", pkg, Struct())
    t.add_method("DeepCopy", results=(Pointer(t),), pointer_receiver=True)
    _, lines = _generate(pkg, t)
    assert "clone := in.DeepCopy()" in lines
    assert "*out = *clone" in lines
    assert "func (in *DeepCopyPtr) DeepCopy() *DeepCopyPtr {" not in lines


def test_manual_deep_copy_into_is_not_regenerated(pkg):
    t = Named("DeepCopyIntoPtr", pkg, Struct())
    t.add_method("DeepCopyInto", params=(Pointer(t),), pointer_receiver=True)
    _, lines = _generate(pkg, t)
    assert not any("DeepCopyInto(out" in text for text in lines)
    assert "func (in *DeepCopyIntoPtr) DeepCopy() *DeepCopyIntoPtr {" in lines


def test_fields_with_manual_methods(pkg):
    ptr = Named("DeepCopyPtr", pkg, Struct())
    ptr.add_method("DeepCopy", results=(Pointer(ptr),), pointer_receiver=True)
    non_ptr = Named("DeepCopyNonPtr", pkg, Struct())
    non_ptr.add_method("DeepCopy", results=(non_ptr,))
    holder = Named(
        "SpecificCases",
        pkg,
        Struct((Field("ManualDeepCopyPtr", ptr), Field("ManualDeepCopyNonPtr", non_ptr))),
    )
    _, lines = _generate(pkg, holder)
    assert "in.ManualDeepCopyPtr.DeepCopyInto(&out.ManualDeepCopyPtr)" in lines
    assert "out.ManualDeepCopyNonPtr = in.ManualDeepCopyNonPtr.DeepCopy()" in lines


def test_pointer_to_external_struct_imports_package(pkg):
    meta = Package(name="v1", path="k8s.io/apimachinery/pkg/apis/meta/v1")
    inner = Named("Inner", meta, Struct((Field("P", Pointer(STRING)),)))
    holder = Named("Holder", pkg, Struct((Field("I", Pointer(inner)),)))
    pkg.imports[meta.path] = meta
    maker, lines = _generate(pkg, holder)
    assert "*out = new(v1.Inner)" in lines
    assert "(*in).DeepCopyInto(*out)" in lines
    assert maker.imports.import_specs() == ['"k8s.io/apimachinery/pkg/apis/meta/v1"']


def test_invalid_map_key_records_error(pkg):
    bad_key = Struct((Field("A", Slice(INT)),))
    holder = Named("Holder", pkg, Struct((Field("M", Map(bad_key, STRING)),)))
    _generate(pkg, holder)
    assert len(pkg.errors) == 1
    assert str(pkg.errors[0]).startswith("invalid map key type:")


def test_unsafe_pointer_field_records_error(pkg):
    holder = Named("Holder", pkg, Struct((Field("P", UNSAFE),)))
    _generate(pkg, holder)
    assert [str(e) for e in pkg.errors] == ["invalid field type: unsafe.Pointer"]