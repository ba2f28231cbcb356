"""Validation stage: collect tagged types and check their contracts.

Exports the ``Collector``, the ``ContractValidator``, descriptor types
and the ``Diagnostic`` types shared by every stage.
"""
from __future__ import annotations

from thaw.validator.collector import DEFAULT_MODULE_PREFIX, Collector
from thaw.validator.contracts import ContractRegistry, ContractValidator, ValidationResult
from thaw.validator.descriptors import Component, TaggedType, TagOptions
from thaw.validator.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    DiagnosticSeverity,
    DiagnosticSink,
)

__all__ = [
    "DEFAULT_MODULE_PREFIX",
    "Collector",
    "ContractRegistry",
    "ContractValidator",
    "ValidationResult",
    "Component",
    "TaggedType",
    "TagOptions",
    "Diagnostic",
    "DiagnosticKind",
    "DiagnosticSeverity",
    "DiagnosticSink",
]
