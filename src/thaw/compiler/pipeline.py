"""The generation pipeline: collect, validate, synthesize, emit.

The contract for :meth:`Compiler.compile` is:

* **Idempotent** — identical inputs always produce identical outputs.
* **Pure** — no side effects (no file I/O); callers write the files.
* **Total** — problems with individual types become diagnostics; the
  remaining types are still generated.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from thaw.compiler.emitter import Emitter
from thaw.compiler.synthesizer import Synthesizer
from thaw.config import GeneratorConfig
from thaw.graph.nodes import TypeGraph
from thaw.validator.collector import Collector
from thaw.validator.contracts import ContractValidator
from thaw.validator.diagnostics import Diagnostic, DiagnosticSink

logger = logging.getLogger(__name__)


@dataclass
class CompilerOutput:
    """Result of one generation pass.

    Parameters
    ----------
    files:
        Mapping of output path (POSIX form) to generated module text.
    modules:
        Mapping of generated module name to its output path.
    diagnostics:
        Every finding of the pass, sorted by source location.
    """

    files: dict[str, str] = field(default_factory=dict)
    modules: dict[str, str] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)

    def summary(self) -> str:
        """Return a one-line human-readable summary of this output."""
        errors = sum(1 for d in self.diagnostics if d.is_error)
        return f"Generated {len(self.files)} module(s) with {errors} error(s)"


class Compiler:
    """Runs the whole pipeline over a type graph.

    Parameters
    ----------
    config:
        Generator settings.  Defaults to ``GeneratorConfig()``.
    """

    def __init__(self, config: GeneratorConfig | None = None) -> None:
        self._config = config or GeneratorConfig()

    def compile(self, graph: TypeGraph) -> CompilerOutput:
        """Generate companion modules for every valid tagged type in *graph*."""
        config = self._config
        sink = DiagnosticSink()

        descriptors = Collector(module_prefix=config.module_prefix).collect(graph, sink)
        validation = ContractValidator().validate(graph, descriptors, sink)
        specs = Synthesizer(graph, validation, sink).run(validation.roots)

        emitter = Emitter(indent_spaces=config.indent, header=config.header)
        output = CompilerOutput()
        for spec in specs:
            unit = emitter.emit(spec)
            path = self.output_path(graph, unit.module, spec.source_module)
            output.files[path] = unit.text
            output.modules[unit.module] = path

        output.diagnostics = sink.sorted()
        logger.info(output.summary())
        return output

    def output_path(self, graph: TypeGraph, module: str, source_module: str) -> str:
        """Where the generated *module* is written.

        Next to the module declaring the original type, unless an
        output directory is configured.
        """
        leaf = module.rpartition(".")[2]
        if self._config.output_dir is not None:
            return (self._config.output_dir.joinpath(*module.split(".")).with_suffix(".py")).as_posix()
        source = graph.module(source_module)
        if source is None or source.path.startswith("<"):
            return self._config.source_root.joinpath(*module.split(".")).with_suffix(".py").as_posix()
        return (Path(source.path).parent / f"{leaf}.py").as_posix()


def compile(graph: TypeGraph, config: GeneratorConfig | None = None) -> CompilerOutput:  # noqa: A001
    """Convenience function: run the pipeline with *config*."""
    return Compiler(config).compile(graph)
