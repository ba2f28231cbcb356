"""thaw compiler — turns a type graph into companion modules.

Public API
----------
The stable surface is the ``compile`` function and the ``CompilerOutput``
dataclass.  Everything else inside the compiler subpackage is private.

Example
-------
::

    from thaw.compiler import compile as thaw_compile
    from thaw.graph import SourceReader

    graph = SourceReader(root="src").read_paths(["src/app"])
    output = thaw_compile(graph)

    for filename, content in output.files.items():
        Path(filename).write_text(content)

    for diagnostic in output.diagnostics:
        print(diagnostic)
"""
from __future__ import annotations

from thaw.compiler.emitter import Emitter, EmittedUnit
from thaw.compiler.model import CompanionSpec
from thaw.compiler.pipeline import Compiler, CompilerOutput, compile
from thaw.compiler.source_contract import SourceContractGenerator
from thaw.compiler.synthesizer import Synthesizer

__all__ = [
    "compile",
    "Compiler",
    "CompilerOutput",
    "CompanionSpec",
    "Emitter",
    "EmittedUnit",
    "SourceContractGenerator",
    "Synthesizer",
]
