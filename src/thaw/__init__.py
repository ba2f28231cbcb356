"""thaw — mutable companions for frozen dataclasses.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
::

    import thaw

    # Read the type graph from sources (nothing is imported)
    graph = thaw.read(["src/app"], root="src")

    # Generate companion modules
    output = thaw.generate(graph)
    for path, text in output.files.items():
        Path(path).write_text(text)

    # Problems with individual types are diagnostics, not exceptions
    for diagnostic in output.diagnostics:
        print(diagnostic)

    thaw.__version__
    '0.1.0'
"""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Sequence

from thaw.tag import generate_mutable

__version__: str = "0.1.0"

if TYPE_CHECKING:
    from thaw.compiler.pipeline import CompilerOutput
    from thaw.config import GeneratorConfig
    from thaw.graph.nodes import TypeGraph


def read(
    paths: Iterable[str | Path],
    root: str | Path = ".",
    tag_names: Sequence[str] = ("generate_mutable",),
) -> "TypeGraph":
    """Read Python sources into a ``TypeGraph``.

    Parameters
    ----------
    paths:
        Files or directories to read.  Directories are read recursively.
    root:
        Source root that module names are computed from.
    tag_names:
        Decorator names recognised as the tag.

    Raises
    ------
    thaw.errors.GraphReadError
        If a file cannot be read or is not valid Python.
    """
    from thaw.graph.reader import SourceReader

    return SourceReader(root=root, tag_names=tag_names).read_paths(paths)


def generate(
    graph: "TypeGraph", config: "GeneratorConfig | None" = None
) -> "CompilerOutput":
    """Generate companion modules for every valid tagged type in *graph*.

    Returns
    -------
    CompilerOutput
        Generated files keyed by output path, plus all diagnostics.
    """
    from thaw.compiler.pipeline import compile as _compile

    return _compile(graph, config)


__all__ = [
    "__version__",
    "generate_mutable",
    "read",
    "generate",
]
