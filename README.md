# ctrltools

A library for marker-driven code generation. It has four parts:

- **`ctrltools.deepcopy`**: writes Go `DeepCopyInto`, `DeepCopy` and
  `DeepCopyObject` methods for types described with a small Go type model
  (`ctrltools.deepcopy.gotypes`: `Basic`, `Named`, `Pointer`, `Slice`, `Map`,
  `Struct`, `Interface`, `TypeInfo`, `Package`). Generation is switched on for
  a package with the `kubebuilder:object:generate` marker (or the older
  `k8s:deepcopy-gen=package`), can be overridden per type, and
  `kubebuilder:object:root` (or `k8s:deepcopy-gen:interfaces` naming
  `runtime.Object`) asks for `DeepCopyObject`. Manually written `DeepCopy` or
  `DeepCopyInto` methods declared on a `Named` type are detected and reused.
- **`ctrltools.genall`**: runs a list of generators (`Generators`) with a
  shared `GenerationContext` through a `Runtime`, sending each generator's
  artifacts through output rules (`OutputToNothing`, `OutputToStdout`,
  `OutputToDirectory`, `OutputArtifacts`, combined in `OutputRules`) and
  reading boilerplate through `InputFromFileSystem`. `GenerationContext.write_yaml`
  writes objects as `---`-separated YAML documents, optionally transformed
  with `with_transform`. `proto_from_options` turns option strings into
  generators, output rules and `InputPaths`, using an options registry that
  the caller supplies.
- **`ctrltools.help`**: turns marker definitions and their help into
  `MarkerDoc`, `FieldHelp` and `CategoryDoc` records (each with `to_dict()`),
  grouped and sorted by `by_category` with `SortByCategory` or `SortByOption`.
- **`ctrltools.pretty`**: renders that help for the terminal. Spans
  (`Text`, `Table`, `SpanWriter`, `indented`, `line`, `newlines`,
  `from_writer`, `Decoration.containing`) report their visual width without
  colour escape codes, so tables stay aligned. Colour is emitted only when
  standard output is a terminal, `NO_COLOR` is unset and `TERM` is not `dumb`.

## Installation

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Examples

### Generating deep-copy methods

```python
from ctrltools.deepcopy.gen import ObjectGenCtx
from ctrltools.deepcopy.gotypes import (
    Basic, BasicKind, Field, Named, Package, Pointer, Struct, TypeInfo,
)

pkg = Package(
    name="v1",
    path="example.com/api/v1",
    markers={"kubebuilder:object:generate": [True]},
)
spec = Named("WidgetSpec", pkg, Struct((Field("Size", Pointer(Basic(BasicKind.INT32))),)))
pkg.type_infos.append(TypeInfo("WidgetSpec", spec))

source = ObjectGenCtx().generate_for_package(pkg)
print(source.decode())
```

`generate_for_package` returns `None` when no type needs methods; problems
are recorded in `pkg.errors`. `deepcopy.gen.Generator` does the same for
every package in a context's `roots`, writing `zz_generated.deepcopy.go`
through the context's output rule, with an optional header file in which
` YEAR` is replaced by `year`.

### Running generators

```python
from ctrltools.deepcopy.gen import Generator
from ctrltools.genall.output import OutputRules, OutputToDirectory
from ctrltools.genall.runtime import GenerationContext, Generators, Runtime

rt = Runtime(
    generators=Generators([Generator()]),
    context=GenerationContext(roots=[pkg]),
    output_rules=OutputRules(default=OutputToDirectory("out")),
)
had_errors = rt.run()
```

`run` prints generator errors and the roots' recorded errors (except
`TypeCheckError`) to `error_writer` (standard error by default) and returns
`True` if there were any.

### Sizing table columns

```python
from ctrltools.pretty.table import TableCalculator

calc = TableCalculator(padding=2)
calc.add_row_sizes(3, 5)
calc.add_row_sizes(4)
calc.column_widths()  # [6, 7]
```

Each column is as wide as its widest cell plus the padding; a positive
`max_width` caps cells at `max_width - padding` first.

### Marker help

`by_category(registry, SortByCategory())` groups every definition of a
marker registry (any object with `all_definitions()` and `help_for(defn)`)
into `CategoryDoc` records. `markers_summary(group_name, markers)` renders a
group as a compact table and `markers_details(full_detail, group_name, markers)`
as a listing with per-field help.

### Output rules

`directory_per_generator("config", generators)` sends each named generator's
configuration to `config/<name>` and its code next to the first of the
package's `compiled_go_files`. `OutputRules.for_generator(gen)` picks the rule
for one generator instance and falls back to the default.

## What it does not do

- It does not read or type-check Go source. Packages and their types are
  built by hand with `ctrltools.deepcopy.gotypes`.
- It has no marker parser or marker registry of its own; registries and
  option definitions are objects the caller provides.
- Generated Go code is indented by nesting depth and has blank-line runs
  collapsed, but is not otherwise reformatted.
- There is no command-line program.