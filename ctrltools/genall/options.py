"""Building a runtime's pieces from command-line options.

Each option is a marker looked up in an options registry. Parsed values
are generators, output rules (``output:<rule>`` for the default or
``output:<generator>:<rule>`` for one generator), or :class:`InputPaths`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from ctrltools.genall.output import OutputRules, directory_per_generator
from ctrltools.genall.runtime import Generators

DESCRIBES_PACKAGE = "package"


class InputPaths(list):
    """Paths and path patterns to use as package roots.

    Multiple paths can be given as ``{path1, path2, path3}``.
    """


@dataclass
class ProtoRuntime:
    """The raw pieces of a runtime, as parsed from options."""

    paths: list[str] = field(default_factory=list)
    generators: Generators = field(default_factory=Generators)
    output_rules: OutputRules = field(default_factory=OutputRules)
    generators_by_name: dict[str, Any] = field(default_factory=dict)


def _is_generator(val: Any) -> bool:
    return callable(getattr(val, "register_markers", None)) and callable(
        getattr(val, "generate", None)
    )


def _is_output_rule(val: Any) -> bool:
    return callable(getattr(val, "open", None))


def split_output_rule_option(name: str) -> tuple[str, str]:
    """Split ``output:<gen>:<rule>`` or ``output:<rule>`` into (rule, generator)."""
    parts = name.split(":", 2)
    if len(parts) == 3:
        return parts[2], parts[1]
    if len(parts) < 2:
        raise ValueError(f'not an output rule option: "{name}"')
    return parts[1], ""


def proto_from_options(options_registry: Any, options: Iterable[str]) -> ProtoRuntime:
    """Parse ``options`` with the markers in ``options_registry``."""
    gens = Generators()
    rules = OutputRules()
    paths: list[str] = []
    output_by_gen: dict[str, Any] = {}
    gens_by_name: dict[str, Any] = {}

    for raw_opt in options:
        if not raw_opt.startswith("+"):
            raw_opt = "+" + raw_opt
        defn = options_registry.lookup(raw_opt, DESCRIBES_PACKAGE)
        if defn is None:
            raise ValueError(f'unknown option "{raw_opt[1:]}"')

        try:
            val = defn.parse(raw_opt)
        except Exception as err:
            raise ValueError(f'unable to parse option "{raw_opt[1:]}": {err}') from err

        if _is_generator(val):
            gens.append(val)
            gens_by_name[defn.name] = val
        elif _is_output_rule(val):
            _, gen_name = split_output_rule_option(defn.name)
            if gen_name == "":
                rules.default = val
            else:
                output_by_gen[gen_name] = val
        elif isinstance(val, InputPaths):
            paths.extend(val)
        else:
            raise ValueError(f'unknown option marker "{defn.name}"')

    for gen_name, rule in output_by_gen.items():
        if gen_name not in gens_by_name:
            raise ValueError(f'non-invoked generator "{gen_name}"')
        rules.by_generator[id(gens_by_name[gen_name])] = rule

    return ProtoRuntime(
        paths=paths,
        generators=gens,
        output_rules=rules,
        generators_by_name=gens_by_name,
    )


def _resolve_output_rules(proto: ProtoRuntime, base: str = "config") -> OutputRules:
    """Pick the output rules a runtime built from ``proto`` should use.

    With a default rule given, the parsed rules are used as they are.
    Otherwise each generator writes under its own directory of ``base``,
    except where a rule was given for it.
    """
    if proto.output_rules.default is not None:
        return proto.output_rules
    rules = directory_per_generator(base, proto.generators_by_name)
    rules.by_generator.update(proto.output_rules.by_generator)
    return rules