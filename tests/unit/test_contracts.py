"""Unit tests for thaw.validator.contracts."""
from __future__ import annotations

from thaw.validator.collector import Collector
from thaw.validator.contracts import ContractRegistry, ContractValidator, ValidationResult
from thaw.validator.diagnostics import DiagnosticKind, DiagnosticSink

_PAIR = """\
from dataclasses import dataclass

from thaw import generate_mutable
from pkg.mutable_pair import MutablePair


@generate_mutable
@dataclass(frozen=True)
class Pair(MutablePair.Source):
    a: str
    b: Inner

    @generate_mutable
    @dataclass(frozen=True)
    class Inner(MutablePair.MutableInner.Source):
        value: int
"""

_MISSING = """\
from dataclasses import dataclass

from thaw import generate_mutable
from pkg.mutable_good import MutableGood


@generate_mutable
@dataclass(frozen=True)
class Good(MutableGood.Source):
    x: int


@generate_mutable
@dataclass(frozen=True)
class Bad:
    x: int
"""

_IMPOSTOR = """\
from dataclasses import dataclass

from pkg.mutable_pair import MutablePair


@dataclass(frozen=True)
class Impostor(MutablePair.Source):
    a: str
    b: int
"""

_CLASH = """\
from dataclasses import dataclass

from thaw import generate_mutable
from pkg import mutable_http_config


@generate_mutable
@dataclass(frozen=True)
class HTTPConfig(mutable_http_config.MutableHTTPConfig.Source):
    url: str


@generate_mutable
@dataclass(frozen=True)
class HttpConfig(mutable_http_config.MutableHttpConfig.Source):
    url: str
"""

_ORPHANED_NESTED = """\
from dataclasses import dataclass

from thaw import generate_mutable
from pkg.mutable_outer import MutableOuter


@generate_mutable
@dataclass(frozen=True)
class Outer:
    inner: Inner

    @generate_mutable
    @dataclass(frozen=True)
    class Inner(MutableOuter.MutableInner.Source):
        value: int

        @generate_mutable
        @dataclass(frozen=True)
        class Leaf(MutableOuter.MutableInner.MutableLeaf.Source):
            pass
"""


def _validate(build_graph, sources: dict[str, str]) -> tuple[ValidationResult, DiagnosticSink]:
    graph = build_graph(sources)
    sink = DiagnosticSink()
    descriptors = Collector().collect(graph, sink)
    return ContractValidator().validate(graph, descriptors, sink), sink


class TestAcceptance:
    def test_valid_types_accepted(self, build_graph) -> None:
        result, sink = _validate(build_graph, {"pkg.config": _PAIR})
        assert len(sink) == 0
        assert set(result.accepted) == {"pkg.config.Pair", "pkg.config.Pair.Inner"}
        assert result.rejected == set()

    def test_nested_type_is_not_a_root(self, build_graph) -> None:
        result, _ = _validate(build_graph, {"pkg.config": _PAIR})
        assert [r.qualified_name for r in result.roots] == ["pkg.config.Pair"]

    def test_contract_through_module_alias(self, build_graph) -> None:
        source = _PAIR.replace(
            "from pkg.mutable_pair import MutablePair", "from pkg import mutable_pair as mp"
        ).replace("(MutablePair.", "(mp.MutablePair.")
        result, sink = _validate(build_graph, {"pkg.config": source})
        assert len(sink) == 0
        assert len(result.accepted) == 2

    def test_unimported_contract_in_same_package(self, build_graph) -> None:
        source = _PAIR.replace("from pkg.mutable_pair import MutablePair\n", "")
        result, sink = _validate(build_graph, {"pkg.config": source})
        assert len(sink) == 0
        assert len(result.accepted) == 2


class TestMissingContract:
    def test_missing_contract_reported(self, build_graph) -> None:
        result, sink = _validate(build_graph, {"pkg.models": _MISSING})
        (diagnostic,) = list(sink)
        assert diagnostic.kind is DiagnosticKind.MISSING_CONTRACT
        assert diagnostic.subject == "pkg.models.Bad"
        assert "pkg.mutable_bad.MutableBad.Source" in diagnostic.message
        assert diagnostic.suggestion == "add MutableBad.Source to the bases of Bad"

    def test_other_types_still_accepted(self, build_graph) -> None:
        result, _ = _validate(build_graph, {"pkg.models": _MISSING})
        assert [r.name for r in result.roots] == ["Good"]
        assert result.rejected == {"pkg.models.Bad"}

    def test_same_name_in_two_packages(self, build_graph) -> None:
        source = _PAIR.replace("from pkg.mutable_pair import MutablePair\n", "")
        result, sink = _validate(build_graph, {"other.config": source, "pkg.x": _PAIR})
        assert len(sink) == 0
        assert {"other.config.Pair", "pkg.x.Pair"} <= set(result.accepted)
        assert len(result.roots) == 2


class TestSealing:
    def test_foreign_implementer_reported(self, build_graph) -> None:
        _, sink = _validate(build_graph, {"pkg.config": _PAIR, "pkg.impostor": _IMPOSTOR})
        (diagnostic,) = list(sink)
        assert diagnostic.kind is DiagnosticKind.SEALED_CONTRACT_VIOLATION
        assert diagnostic.subject == "pkg.impostor.Impostor"
        assert "sealed to pkg.config.Pair" in diagnostic.message

    def test_owner_still_accepted(self, build_graph) -> None:
        result, _ = _validate(build_graph, {"pkg.config": _PAIR, "pkg.impostor": _IMPOSTOR})
        assert "pkg.config.Pair" in result.accepted


class TestNameClash:
    def test_second_type_reported(self, build_graph) -> None:
        result, sink = _validate(build_graph, {"pkg.config": _CLASH})
        (diagnostic,) = list(sink)
        assert diagnostic.kind is DiagnosticKind.COMPANION_NAME_CLASH
        assert diagnostic.subject == "pkg.config.HttpConfig"
        assert [r.name for r in result.roots] == ["HTTPConfig"]
        assert result.rejected == {"pkg.config.HttpConfig"}

    def test_same_name_in_two_modules_of_one_package(self, build_graph) -> None:
        result, sink = _validate(build_graph, {"pkg.x": _PAIR, "pkg.y": _PAIR})
        assert [(d.kind, d.subject) for d in sink] == [
            (DiagnosticKind.COMPANION_NAME_CLASH, "pkg.y.Pair"),
        ]
        assert [r.qualified_name for r in result.roots] == ["pkg.x.Pair"]
        assert set(result.accepted) == {"pkg.x.Pair", "pkg.x.Pair.Inner"}
        assert result.rejected == {"pkg.y.Pair", "pkg.y.Pair.Inner"}


class TestOrphanedNested:
    def test_nested_types_under_rejected_ancestor_dropped(self, build_graph) -> None:
        result, sink = _validate(build_graph, {"pkg.config": _ORPHANED_NESTED})
        assert [d.subject for d in sink] == ["pkg.config.Outer"]
        assert result.accepted == {}
        assert result.roots == []
        assert result.rejected == {
            "pkg.config.Outer",
            "pkg.config.Outer.Inner",
            "pkg.config.Outer.Inner.Leaf",
        }


class TestRegistry:
    def test_full_name(self, build_graph) -> None:
        graph = build_graph({"pkg.config": _PAIR})
        descriptors = Collector().collect(graph, DiagnosticSink())
        assert ContractRegistry.full_name(descriptors[1]) == (
            "pkg.mutable_pair.MutablePair.MutableInner.Source"
        )

    def test_unrelated_base_names_nothing(self, build_graph) -> None:
        graph = build_graph({"pkg.config": _PAIR})
        registry = ContractRegistry(graph, Collector().collect(graph, DiagnosticSink()))
        assert registry.contract_named("object", "pkg.config") is None
