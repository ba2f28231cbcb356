"""Diagnostic types for the collector, validator and synthesizer.

A ``Diagnostic`` is an annotated message attached to the source location
of the offending declaration.  Diagnostics never abort a run: the
affected type simply produces no companion.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto

from thaw.graph.nodes import Span


class DiagnosticSeverity(Enum):
    """Severity levels for diagnostics, aligned with LSP conventions."""

    ERROR = auto()
    WARNING = auto()
    INFORMATION = auto()
    HINT = auto()


class DiagnosticKind(Enum):
    """What went wrong.  The value is the stable diagnostic code."""

    INVALID_TARGET_KIND = "THW001"
    MISSING_CONTRACT = "THW002"
    UNRESOLVED_EFFECTIVE_TYPE = "THW003"
    INVALID_TAG_OPTION = "THW004"
    SEALED_CONTRACT_VIOLATION = "THW005"
    COMPANION_NAME_CLASH = "THW006"

    @property
    def code(self) -> str:
        return self.value

    @property
    def title(self) -> str:
        """CamelCase name, e.g. ``MissingContract``."""
        return "".join(part.capitalize() for part in self.name.split("_"))


@dataclass(frozen=True)
class Diagnostic:
    """A single finding.

    Parameters
    ----------
    severity:
        How serious this finding is.
    kind:
        The category of problem; carries the ``THW`` code.
    message:
        Human-readable description of the problem.
    span:
        Source location of the offending type or component.
    subject:
        Qualified name of the offending type, with ``:component``
        appended when the problem is a single component.
    suggestion:
        Optional human-readable fix suggestion.
    """

    severity: DiagnosticSeverity
    kind: DiagnosticKind
    message: str
    span: Span
    subject: str = field(default="")
    suggestion: str | None = field(default=None)

    def __str__(self) -> str:
        prefix = f"[{self.code}] {self.severity.name}"
        suggestion_part = f" (hint: {self.suggestion})" if self.suggestion else ""
        return f"{prefix} at {self.span}: {self.message}{suggestion_part}"

    @property
    def code(self) -> str:
        return self.kind.code

    @property
    def is_error(self) -> bool:
        """Return True if this diagnostic prevents the subject's companion."""
        return self.severity == DiagnosticSeverity.ERROR


class DiagnosticSink:
    """Append-only collector shared by every stage of one pass."""

    def __init__(self) -> None:
        self._items: list[Diagnostic] = []

    def __iter__(self):
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def report(
        self,
        kind: DiagnosticKind,
        message: str,
        span: Span,
        subject: str = "",
        suggestion: str | None = None,
        severity: DiagnosticSeverity = DiagnosticSeverity.ERROR,
    ) -> Diagnostic:
        """Record a new diagnostic and return it."""
        diagnostic = Diagnostic(
            severity=severity,
            kind=kind,
            message=message,
            span=span,
            subject=subject,
            suggestion=suggestion,
        )
        self._items.append(diagnostic)
        return diagnostic

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self._items)

    def errors(self) -> list[Diagnostic]:
        return [d for d in self._items if d.is_error]

    def sorted(self) -> list[Diagnostic]:
        """Return all diagnostics ordered by file, line, then column."""
        return sorted(
            self._items,
            key=lambda d: (d.span.path, d.span.line, d.span.col, d.code),
        )
