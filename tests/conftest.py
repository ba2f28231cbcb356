"""Shared test fixtures for thaw.

Fixtures defined here are available to all tests in the suite without
needing an explicit import.  Sources used by a single test module stay
in that module as string constants.
"""
from __future__ import annotations

import importlib
import sys
import textwrap
import uuid
from pathlib import Path
from typing import Callable

import pytest

from thaw.graph.nodes import ModuleDecl, TypeDecl, TypeGraph
from thaw.graph.reader import SourceReader


@pytest.fixture()
def expected_version() -> str:
    """Return the current expected version string.

    Update this fixture when cutting a release so that the version
    test immediately catches stale ``__version__`` values.
    """
    return "0.1.0"


@pytest.fixture()
def build_graph() -> Callable[[dict[str, str]], TypeGraph]:
    """Return a function reading ``{module name: source}`` into a graph.

    Nothing touches the filesystem; spans use ``<module name>`` paths.
    """

    def _build(sources: dict[str, str]) -> TypeGraph:
        reader = SourceReader()
        modules: list[ModuleDecl] = []
        types: list[TypeDecl] = []
        for name, text in sources.items():
            module, decls = reader.read_source(textwrap.dedent(text), name, path=f"<{name}>")
            modules.append(module)
            types.extend(decls)
        return TypeGraph(modules, types)

    return _build


@pytest.fixture()
def source_tree(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Write a uniquely named package under ``tmp_path`` and make it importable.

    The returned function takes ``{file name: source}``; the placeholder
    ``{pkg}`` in each source is replaced by the package name.  It returns
    ``(package name, package directory)``.  Modules imported from the
    package are dropped from ``sys.modules`` afterwards.
    """
    package = f"thawpkg_{uuid.uuid4().hex[:10]}"
    monkeypatch.syspath_prepend(str(tmp_path))

    def _write(files: dict[str, str]) -> tuple[str, Path]:
        directory = tmp_path / package
        directory.mkdir(exist_ok=True)
        (directory / "__init__.py").write_text("", encoding="utf-8")
        for name, text in files.items():
            body = textwrap.dedent(text).replace("{pkg}", package)
            (directory / name).write_text(body, encoding="utf-8")
        importlib.invalidate_caches()
        return package, directory

    yield _write

    for name in list(sys.modules):
        if name == package or name.startswith(package + "."):
            del sys.modules[name]
