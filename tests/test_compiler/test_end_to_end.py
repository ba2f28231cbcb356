"""End-to-end tests: Python sources → generate → import and use the companions.

These tests exercise the full pipeline:
  1. Write a small package whose frozen dataclasses carry the tag.
  2. Read it with ``thaw.read`` and generate with ``thaw.generate``.
  3. Write the generated modules next to the sources.
  4. Import the package and convert values in both directions.
"""
from __future__ import annotations

import importlib
from pathlib import Path

import pytest

import thaw
from thaw.compiler import CompilerOutput
from thaw.config import GeneratorConfig

# ---------------------------------------------------------------------------
# Inline sources (``{pkg}`` is replaced by a unique package name)
# ---------------------------------------------------------------------------

_MODELS = """\
from __future__ import annotations

from dataclasses import dataclass

from thaw import generate_mutable
from {pkg}.mutable_outer import MutableOuter
from {pkg}.mutable_pair import MutablePair


@generate_mutable
@dataclass(frozen=True)
class Pair(MutablePair.Source):
    a: str
    b: Inner

    @generate_mutable
    @dataclass(frozen=True)
    class Inner(MutablePair.MutableInner.Source):
        value: int


@generate_mutable
@dataclass(frozen=True)
class Outer(MutableOuter.Source):
    name: str
    middle: Middle
    pair: Pair
    spare: Pair.Inner

    @generate_mutable(use_fancy_method_names=True)
    @dataclass(frozen=True)
    class Middle(MutableOuter.MutableMiddle.Source):
        count: int
        leaf: Leaf

        @generate_mutable(encapsulate_fields=False)
        @dataclass(frozen=True)
        class Leaf(MutableOuter.MutableMiddle.MutableLeaf.Source):
            tags: tuple[str, ...]
"""

_MIXED = """\
from dataclasses import dataclass

from thaw import generate_mutable
from {pkg}.mutable_good import MutableGood


@generate_mutable
@dataclass(frozen=True)
class Good(MutableGood.Source):
    x: int


@generate_mutable
@dataclass(frozen=True)
class NoContract:
    x: int


@generate_mutable
@dataclass
class NotFrozen:
    x: int
"""

_STAMPED = """\
import datetime as dt
from dataclasses import dataclass


@dataclass(frozen=True)
class Stamped:
    created: dt.date
    label: str = ""
"""

_NOTES = """\
from __future__ import annotations

from dataclasses import KW_ONLY
from dataclasses import dataclass as record

from thaw import generate_mutable
from {pkg}.base import Stamped
from {pkg}.mutable_note import MutableNote
from {pkg}.mutable_options import MutableOptions


@generate_mutable
@record(frozen=True)
class Note(Stamped, MutableNote.Source):
    text: str = ""


@generate_mutable
@record(frozen=True)
class Options(MutableOptions.Source):
    a: int
    _: KW_ONLY
    b: int = 0
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _generate(directory: Path) -> CompilerOutput:
    graph = thaw.read([directory], root=directory.parent)
    return thaw.generate(graph, GeneratorConfig(source_root=directory.parent))


def _write(output: CompilerOutput) -> None:
    for path, text in output.files.items():
        Path(path).write_text(text, encoding="utf-8")
    importlib.invalidate_caches()


@pytest.fixture()
def models(source_tree):
    """Generate companions for ``_MODELS`` and import the package's modules."""
    package, directory = source_tree({"models.py": _MODELS})
    output = _generate(directory)
    assert not output.has_errors, output.diagnostics
    _write(output)
    return importlib.import_module(f"{package}.models")


def _sample(models):
    return models.Outer(
        name="outer",
        middle=models.Outer.Middle(count=1, leaf=models.Outer.Middle.Leaf(tags=("x", "y"))),
        pair=models.Pair(a="a", b=models.Pair.Inner(value=2)),
        spare=models.Pair.Inner(value=3),
    )


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------


class TestRoundTrip:
    def test_unchanged_round_trip_is_equal(self, models) -> None:
        original = _sample(models)
        restored = original.to_mutable().to_immutable()
        assert restored == original
        assert restored is not original

    def test_nested_two_levels(self, models) -> None:
        leaf = models.Outer.Middle.Leaf(tags=("t",))
        assert leaf.to_mutable().to_immutable() == leaf
        middle = models.Outer.Middle(count=4, leaf=leaf)
        assert middle.to_mutable().to_immutable() == middle

    def test_mutations_carried_back(self, models) -> None:
        original = _sample(models)
        mutable = original.to_mutable()
        mutable.name = "changed"
        mutable.middle.set_count(5)
        mutable.middle.get_leaf().tags = ("z",)
        mutable.pair.b.value = 9
        mutable.spare.value = 10

        assert mutable.to_immutable() == models.Outer(
            name="changed",
            middle=models.Outer.Middle(count=5, leaf=models.Outer.Middle.Leaf(tags=("z",))),
            pair=models.Pair(a="a", b=models.Pair.Inner(value=9)),
            spare=models.Pair.Inner(value=10),
        )
        assert original == _sample(models)

    def test_nested_values_are_companions(self, models) -> None:
        mutable = _sample(models).to_mutable()
        assert type(mutable.middle).__qualname__ == "MutableOuter.MutableMiddle"
        assert type(mutable.middle.get_leaf()).__qualname__ == (
            "MutableOuter.MutableMiddle.MutableLeaf"
        )
        assert type(mutable.pair).__qualname__ == "MutablePair"
        assert type(mutable.spare).__qualname__ == "MutablePair.MutableInner"

    def test_constructor_takes_any_contract_instance(self, models) -> None:
        companions = importlib.import_module(models.__name__.rpartition(".")[0] + ".mutable_pair")
        original = models.Pair(a="a", b=models.Pair.Inner(value=1))
        mutable = companions.MutablePair(original)
        assert mutable.a == "a"
        assert mutable.to_immutable() == original


# ---------------------------------------------------------------------------
# Naming and field visibility
# ---------------------------------------------------------------------------


class TestNamingAndVisibility:
    def test_companion_module_and_name(self, models) -> None:
        package = models.__name__.rpartition(".")[0]
        mutable = _sample(models).to_mutable()
        assert type(mutable).__name__ == "MutableOuter"
        assert type(mutable).__module__ == f"{package}.mutable_outer"
        assert type(mutable.pair).__module__ == f"{package}.mutable_pair"

    def test_encapsulated_fields(self, models) -> None:
        companion = type(_sample(models).to_mutable())
        assert companion.__slots__ == ("_name", "_middle", "_pair", "_spare")
        assert isinstance(companion.name, property)

    def test_fancy_accessors(self, models) -> None:
        middle = type(_sample(models).to_mutable().middle)
        assert middle.__slots__ == ("_count", "_leaf")
        assert callable(middle.get_count) and callable(middle.set_count)
        assert not hasattr(middle, "count")

    def test_public_fields(self, models) -> None:
        leaf = type(_sample(models).to_mutable().middle.get_leaf())
        assert leaf.__slots__ == ("tags",)
        assert not hasattr(leaf, "get_tags")

    def test_no_undeclared_attributes(self, models) -> None:
        mutable = _sample(models).to_mutable()
        with pytest.raises(AttributeError):
            mutable.extra = 1


# ---------------------------------------------------------------------------
# Contract enforcement
# ---------------------------------------------------------------------------


class TestSealing:
    def test_foreign_subclass_rejected(self, models) -> None:
        companions = importlib.import_module(models.__name__.rpartition(".")[0] + ".mutable_pair")
        with pytest.raises(TypeError, match="sealed to"):

            class Impostor(companions.MutablePair.Source):
                pass

    def test_nested_contract_sealed(self, models) -> None:
        companions = importlib.import_module(models.__name__.rpartition(".")[0] + ".mutable_outer")
        with pytest.raises(TypeError, match=r"sealed to .*\.models\.Outer\.Middle\.Leaf"):
            type("Leaf", (companions.MutableOuter.MutableMiddle.MutableLeaf.Source,), {})

    def test_originals_implement_contracts(self, models) -> None:
        companions = importlib.import_module(models.__name__.rpartition(".")[0] + ".mutable_outer")
        assert issubclass(models.Outer, companions.MutableOuter.Source)
        assert issubclass(models.Outer.Middle, companions.MutableOuter.MutableMiddle.Source)


class TestDiagnosticsEndToEnd:
    def test_valid_type_still_generated(self, source_tree) -> None:
        package, directory = source_tree({"mixed.py": _MIXED})
        output = _generate(directory)
        assert list(output.modules) == [f"{package}.mutable_good"]
        assert [d.code for d in output.diagnostics] == ["THW002", "THW001"]
        assert output.summary() == "Generated 1 module(s) with 2 error(s)"

    def test_valid_type_importable(self, source_tree) -> None:
        package, directory = source_tree({"mixed.py": _MIXED})
        _write(_generate(directory))
        mixed = importlib.import_module(f"{package}.mixed")
        good = mixed.Good(x=1)
        mutable = good.to_mutable()
        mutable.x = 2
        assert mutable.to_immutable() == mixed.Good(x=2)


# ---------------------------------------------------------------------------
# Output shape
# ---------------------------------------------------------------------------


class TestOutput:
    def test_one_module_per_root(self, source_tree) -> None:
        package, directory = source_tree({"models.py": _MODELS})
        output = _generate(directory)
        assert sorted(output.modules) == [
            f"{package}.mutable_outer",
            f"{package}.mutable_pair",
        ]
        assert output.modules[f"{package}.mutable_pair"] == (directory / "mutable_pair.py").as_posix()

    def test_nested_companion_emitted_once(self, source_tree) -> None:
        package, directory = source_tree({"models.py": _MODELS})
        output = _generate(directory)
        texts = "".join(output.files.values())
        assert texts.count("class MutableInner:") == 1
        assert texts.count("class MutableLeaf:") == 1

    def test_deterministic(self, source_tree) -> None:
        _, directory = source_tree({"models.py": _MODELS})
        assert _generate(directory).files == _generate(directory).files

    def test_regeneration_matches_written_files(self, source_tree) -> None:
        _, directory = source_tree({"models.py": _MODELS})
        _write(_generate(directory))
        for path, text in _generate(directory).files.items():
            assert Path(path).read_text(encoding="utf-8") == text

    def test_output_dir(self, source_tree, tmp_path: Path) -> None:
        package, directory = source_tree({"models.py": _MODELS})
        graph = thaw.read([directory], root=directory.parent)
        out = tmp_path / "generated"
        output = thaw.generate(
            graph, GeneratorConfig(source_root=directory.parent, output_dir=out)
        )
        assert (out / package / "mutable_pair.py").as_posix() in output.files


# ---------------------------------------------------------------------------
# Field discovery
# ---------------------------------------------------------------------------


class TestFieldDiscovery:
    @pytest.fixture()
    def notes(self, source_tree):
        package, directory = source_tree({"base.py": _STAMPED, "notes.py": _NOTES})
        output = _generate(directory)
        assert not output.has_errors, output.diagnostics
        _write(output)
        return importlib.import_module(f"{package}.notes")

    def test_inherited_fields_round_trip(self, notes) -> None:
        import datetime

        original = notes.Note(created=datetime.date(2024, 1, 2), label="l", text="t")
        mutable = original.to_mutable()
        assert mutable.created == datetime.date(2024, 1, 2)
        mutable.label = "changed"
        assert mutable.to_immutable() == notes.Note(
            created=datetime.date(2024, 1, 2), label="changed", text="t"
        )

    def test_inherited_fields_in_base_order(self, notes) -> None:
        companion = type(notes.Note(created=None).to_mutable())
        assert companion.__slots__ == ("_created", "_label", "_text")

    def test_keyword_only_marker_skipped(self, notes) -> None:
        original = notes.Options(1, b=2)
        mutable = original.to_mutable()
        assert type(mutable).__slots__ == ("_a", "_b")
        mutable.b = 3
        assert mutable.to_immutable() == notes.Options(1, b=3)
