"""Unit tests for thaw.cli.main: generate, inspect and version commands."""
from __future__ import annotations

import json
import textwrap
from pathlib import Path

import yaml
from click.testing import CliRunner

from thaw.cli.main import cli

_MODELS = """\
from __future__ import annotations

from dataclasses import dataclass

from thaw import generate_mutable
from app.mutable_pair import MutablePair


@generate_mutable
@dataclass(frozen=True)
class Pair(MutablePair.Source):
    a: str
    b: int
"""

_BROKEN = """\
from dataclasses import dataclass

from thaw import generate_mutable


@generate_mutable
@dataclass(frozen=True)
class Orphan:
    x: int
"""


# ===========================================================================
# Helpers
# ===========================================================================


def _make_runner() -> CliRunner:
    return CliRunner()


def _project(root: Path, **files: str) -> Path:
    package = root / "app"
    package.mkdir()
    (package / "__init__.py").write_text("", encoding="utf-8")
    for name, text in files.items():
        (package / f"{name}.py").write_text(textwrap.dedent(text), encoding="utf-8")
    return package


# ===========================================================================
# version
# ===========================================================================


class TestVersionCommand:
    def test_shows_version(self) -> None:
        result = _make_runner().invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "thaw" in result.output
        assert "0.1.0" in result.output


# ===========================================================================
# generate
# ===========================================================================


class TestGenerateCommand:
    def test_writes_companion_next_to_source(self, tmp_path: Path) -> None:
        package = _project(tmp_path, models=_MODELS)
        result = _make_runner().invoke(
            cli, ["generate", str(package), "--root", str(tmp_path)]
        )
        assert result.exit_code == 0, result.output
        generated = package / "mutable_pair.py"
        assert generated.is_file()
        assert "class MutablePair:" in generated.read_text(encoding="utf-8")

    def test_output_directory(self, tmp_path: Path) -> None:
        package = _project(tmp_path, models=_MODELS)
        out = tmp_path / "out"
        result = _make_runner().invoke(
            cli, ["generate", str(package), "--root", str(tmp_path), "--output", str(out)]
        )
        assert result.exit_code == 0, result.output
        assert (out / "app" / "mutable_pair.py").is_file()
        assert not (package / "mutable_pair.py").exists()

    def test_check_fails_before_and_passes_after(self, tmp_path: Path) -> None:
        package = _project(tmp_path, models=_MODELS)
        runner = _make_runner()
        args = ["generate", str(package), "--root", str(tmp_path)]

        before = runner.invoke(cli, [*args, "--check"])
        assert before.exit_code == 1
        assert "OUT OF DATE" in before.output
        assert not (package / "mutable_pair.py").exists()

        assert runner.invoke(cli, args).exit_code == 0

        after = runner.invoke(cli, [*args, "--check"])
        assert after.exit_code == 0, after.output
        assert "up to date" in after.output

    def test_diagnostics_exit_nonzero_but_write_valid_units(self, tmp_path: Path) -> None:
        package = _project(tmp_path, models=_MODELS, broken=_BROKEN)
        result = _make_runner().invoke(
            cli, ["generate", str(package), "--root", str(tmp_path)]
        )
        assert result.exit_code == 1
        assert "THW002" in result.output
        assert (package / "mutable_pair.py").is_file()
        assert not (package / "mutable_orphan.py").exists()

    def test_missing_path(self, tmp_path: Path) -> None:
        result = _make_runner().invoke(
            cli, ["generate", str(tmp_path / "missing"), "--root", str(tmp_path)]
        )
        assert result.exit_code == 1
        assert "Read error" in result.output

    def test_config_file(self, tmp_path: Path) -> None:
        package = _project(tmp_path, models=_MODELS)
        config = tmp_path / "thaw.yaml"
        config.write_text("module_prefix: editable_\nheader: false\n", encoding="utf-8")
        result = _make_runner().invoke(
            cli,
            ["generate", str(package), "--root", str(tmp_path), "--config", str(config)],
        )
        assert result.exit_code == 0, result.output
        text = (package / "editable_pair.py").read_text(encoding="utf-8")
        assert not text.startswith("# Generated by thaw")

    def test_bad_config_file(self, tmp_path: Path) -> None:
        package = _project(tmp_path, models=_MODELS)
        config = tmp_path / "thaw.yaml"
        config.write_text("colour: blue\n", encoding="utf-8")
        result = _make_runner().invoke(
            cli,
            ["generate", str(package), "--root", str(tmp_path), "--config", str(config)],
        )
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_verbose_flag_accepted(self, tmp_path: Path) -> None:
        package = _project(tmp_path, models=_MODELS)
        result = _make_runner().invoke(
            cli, ["--verbose", "generate", str(package), "--root", str(tmp_path)]
        )
        assert result.exit_code == 0, result.output


# ===========================================================================
# inspect
# ===========================================================================


class TestInspectCommand:
    def test_json_to_file(self, tmp_path: Path) -> None:
        package = _project(tmp_path, models=_MODELS)
        out = tmp_path / "graph.json"
        result = _make_runner().invoke(
            cli,
            ["inspect", str(package), "--root", str(tmp_path), "--format", "json", "-o", str(out)],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text(encoding="utf-8"))
        assert [t["qualname"] for t in data["types"]] == ["Pair"]

    def test_yaml_to_file(self, tmp_path: Path) -> None:
        package = _project(tmp_path, models=_MODELS)
        out = tmp_path / "graph.yaml"
        result = _make_runner().invoke(
            cli, ["inspect", str(package), "--root", str(tmp_path), "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        data = yaml.safe_load(out.read_text(encoding="utf-8"))
        assert {m["name"] for m in data["modules"]} == {"app", "app.models"}

    def test_stdout(self, tmp_path: Path) -> None:
        package = _project(tmp_path, models=_MODELS)
        result = _make_runner().invoke(
            cli, ["inspect", str(package), "--root", str(tmp_path)]
        )
        assert result.exit_code == 0, result.output
        assert "FROZEN_DATACLASS" in result.output
