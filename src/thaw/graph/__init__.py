"""Type graph module.

Exports the graph node types, the source reader that builds a graph
from Python files, and the serializer for JSON/YAML dumps.
"""
from __future__ import annotations

from thaw.graph.nodes import (
    ComponentDecl,
    ImportBinding,
    ModuleDecl,
    Span,
    TagArgument,
    TagUsage,
    TypeDecl,
    TypeGraph,
    TypeKind,
)
from thaw.graph.reader import DEFAULT_TAG_NAMES, SourceReader
from thaw.graph.serializer import GraphSerializer

__all__ = [
    "ComponentDecl",
    "ImportBinding",
    "ModuleDecl",
    "Span",
    "TagArgument",
    "TagUsage",
    "TypeDecl",
    "TypeGraph",
    "TypeKind",
    "DEFAULT_TAG_NAMES",
    "SourceReader",
    "GraphSerializer",
]
