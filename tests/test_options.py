import os

import pytest

from ctrltools.genall.options import (
    InputPaths,
    ProtoRuntime,
    _resolve_output_rules,
    proto_from_options,
    split_output_rule_option,
)
from ctrltools.genall.output import (
    OutputArtifacts,
    OutputRules,
    OutputToDirectory,
    OutputToNothing,
)


class _Gen:
    def __init__(self, raw):
        self.raw = raw

    def register_markers(self, registry):
        pass

    def generate(self, ctx):
        pass


def _paths(raw):
    return InputPaths(raw.split("=", 1)[1].split(";"))


def _dir_rule(raw):
    return OutputToDirectory(raw.split("=", 1)[1])


class _Defn:
    def __init__(self, name, factory):
        self.name = name
        self.factory = factory

    def parse(self, raw):
        return self.factory(raw)


class _Registry:
    def __init__(self, defs):
        self.defs = {d.name: d for d in defs}
        self.lookups = []

    def lookup(self, raw, target):
        self.lookups.append((raw, target))
        return self.defs.get(raw[1:].split("=", 1)[0])


def _registry():
    def broken(raw):
        raise ValueError("bad args")

    return _Registry(
        [
            _Defn("crd", _Gen),
            _Defn("object", _Gen),
            _Defn("paths", _paths),
            _Defn("output:dir", _dir_rule),
            _Defn("output:crd:dir", _dir_rule),
            _Defn("output:object:none", lambda raw: OutputToNothing()),
            _Defn("broken", broken),
            _Defn("number", lambda raw: 42),
        ]
    )


def test_split_default_rule():
    assert split_output_rule_option("output:dir") == ("dir", "")


def test_split_generator_rule():
    assert split_output_rule_option("output:crd:dir") == ("dir", "crd")
    assert split_output_rule_option("output:crd:artifacts:config") == ("artifacts:config", "crd")


def test_split_without_colon():
    with pytest.raises(ValueError):
        split_output_rule_option("output")


def test_prefixes_plus_and_looks_up_package_markers():
    reg = _registry()
    proto_from_options(reg, ["crd", "+object"])
    assert [raw for raw, _ in reg.lookups] == ["+crd", "+object"]
    assert {target for _, target in reg.lookups} == {"package"}


def test_collects_generators_paths_and_rules():
    proto = proto_from_options(
        _registry(),
        ["crd", "object", "paths=./a;./b", "paths=./c", "output:crd:dir=out/crd"],
    )
    assert [g.raw for g in proto.generators] == ["+crd", "+object"]
    assert proto.paths == ["./a", "./b", "./c"]
    assert set(proto.generators_by_name) == {"crd", "object"}
    crd = proto.generators_by_name["crd"]
    assert proto.output_rules.default is None
    assert proto.output_rules.for_generator(crd) == OutputToDirectory("out/crd")
    assert proto.output_rules.for_generator(proto.generators_by_name["object"]) is None


def test_default_output_rule():
    proto = proto_from_options(_registry(), ["crd", "output:dir=somewhere"])
    assert proto.output_rules.default == OutputToDirectory("somewhere")
    assert proto.output_rules.by_generator == {}


def test_unknown_option():
    with pytest.raises(ValueError, match='unknown option "nope"'):
        proto_from_options(_registry(), ["nope"])


def test_unparsable_option():
    with pytest.raises(ValueError, match='unable to parse option "broken"'):
        proto_from_options(_registry(), ["broken"])


def test_unknown_option_marker_type():
    with pytest.raises(ValueError, match='unknown option marker "number"'):
        proto_from_options(_registry(), ["number"])


def test_rule_for_non_invoked_generator():
    with pytest.raises(ValueError, match='non-invoked generator "crd"'):
        proto_from_options(_registry(), ["object", "output:crd:dir=x"])


def test_resolve_keeps_rules_with_default():
    proto = proto_from_options(_registry(), ["crd", "output:dir=d"])
    assert _resolve_output_rules(proto) is proto.output_rules


def test_resolve_directory_per_generator_with_overrides():
    proto = proto_from_options(_registry(), ["crd", "object", "output:object:none"])
    rules = _resolve_output_rules(proto)
    crd = proto.generators_by_name["crd"]
    obj = proto.generators_by_name["object"]
    assert rules.default == OutputArtifacts(config=OutputToDirectory("config"))
    assert rules.for_generator(crd) == OutputArtifacts(
        config=OutputToDirectory(os.path.join("config", "crd"))
    )
    assert isinstance(rules.for_generator(obj), OutputToNothing)


def test_empty_proto_defaults():
    proto = ProtoRuntime()
    assert proto.paths == [] and list(proto.generators) == []
    assert _resolve_output_rules(proto).by_generator == {}
    assert isinstance(proto.output_rules, OutputRules)