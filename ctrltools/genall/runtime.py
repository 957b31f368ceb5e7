"""Running generators against loaded packages.

Each generator registers its markers into a shared registry and then
produces artifacts from a :class:`GenerationContext`. The context carries
the shared marker collector, the root packages, the partial type-checker,
and the input and output rules used to read boilerplate and write results.

A :class:`Runtime` ties generators, a base context and per-generator
output rules together, runs every generator, and reports errors. Type-check
errors on the root packages are skipped, since partial type-checking
commonly produces them.
"""

from __future__ import annotations

import dataclasses
import json
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, TextIO

import yaml

from ctrltools.genall.inputs import InputFromFileSystem
from ctrltools.genall.output import OutputRules, OutputToNothing

Transform = Callable[[dict[str, Any]], None]


class TypeCheckError(Exception):
    """An error from type-checking a package; not reported by :meth:`Runtime.run`."""


def needs_type_checking(gen: Any) -> bool:
    """True if ``gen`` provides a type-checking node filter."""
    return callable(getattr(gen, "check_filter", None))


class Generators(list):
    """A list of generators.

    Distinct generator instances are treated separately, even when they
    compare equal.
    """

    def register_markers(self, registry: Any) -> None:
        """Register the markers of every generator into ``registry``."""
        for gen in self:
            gen.register_markers(registry)

    def check_filters(self) -> list[Any]:
        """Return the node filters of the generators that need type-checking."""
        return [gen.check_filter() for gen in self if needs_type_checking(gen)]


@dataclass(frozen=True)
class WriteYAMLOptions:
    """Options for :meth:`GenerationContext.write_yaml`."""

    transform: Optional[Transform] = None


def with_transform(transform: Transform) -> WriteYAMLOptions:
    """Apply ``transform`` to each object just before it is written."""
    return WriteYAMLOptions(transform=transform)


def _jsonable(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"object of type {type(obj).__name__} is not serializable")


def _yaml_marshal(obj: Any, options: Iterable[WriteYAMLOptions]) -> bytes:
    try:
        encoded = json.dumps(obj, default=_jsonable)
    except (TypeError, ValueError) as err:
        raise ValueError(f"error marshaling into JSON: {err}") from err

    data = json.loads(encoded)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"cannot write a {type(data).__name__} as a YAML object")

    for option in options:
        if option.transform is not None:
            option.transform(data)

    return yaml.safe_dump(
        data, default_flow_style=False, sort_keys=True, allow_unicode=True
    ).encode("utf-8")


@dataclass
class GenerationContext:
    """Common information each generator needs to run."""

    collector: Any = None
    roots: list[Any] = field(default_factory=list)
    checker: Any = None
    output_rule: Any = field(default_factory=OutputToNothing)
    input_rule: Any = field(default_factory=InputFromFileSystem)

    def open(self, pkg: Any, path: str) -> Any:
        """Open an output artifact via the context's output rule."""
        return self.output_rule.open(pkg, path)

    def open_for_read(self, path: str) -> Any:
        """Open a non-code artifact via the context's input rule."""
        return self.input_rule.open_for_read(path)

    def write_yaml(self, item_path: str, objs: Iterable[Any], *options: WriteYAMLOptions) -> None:
        """Write ``objs`` as YAML documents, each preceded by ``---``."""
        with self.open(None, item_path) as out:
            for obj in objs:
                out.write(b"---\n" + _yaml_marshal(obj, options))

    def read_file(self, path: str) -> bytes:
        """Read a boilerplate artifact in full via the input rule."""
        with self.open_for_read(path) as handle:
            return handle.read()


def _print_root_errors(roots: Iterable[Any], out: TextIO) -> bool:
    found = False
    for root in roots:
        for err in getattr(root, "errors", None) or []:
            if isinstance(err, TypeCheckError):
                continue
            print(err, file=out)
            found = True
    return found


@dataclass
class Runtime:
    """Generators, shared loaded data and output rules, run together."""

    generators: Generators = field(default_factory=Generators)
    context: GenerationContext = field(default_factory=GenerationContext)
    output_rules: OutputRules = field(
        default_factory=lambda: OutputRules(default=OutputToNothing())
    )
    error_writer: Optional[TextIO] = None

    @property
    def roots(self) -> list[Any]:
        return self.context.roots

    def run(self) -> bool:
        """Run every generator; return True if any errors were found."""
        out = self.error_writer if self.error_writer is not None else sys.stderr
        if not self.generators:
            print("no generators to run", file=out)
            return True

        had_errors = False
        for gen in self.generators:
            ctx = dataclasses.replace(
                self.context, output_rule=self.output_rules.for_generator(gen)
            )
            if not needs_type_checking(gen):
                ctx.checker = None
            try:
                gen.generate(ctx)
            except Exception as err:
                print(err, file=out)
                had_errors = True

        return _print_root_errors(self.context.roots, out) or had_errors