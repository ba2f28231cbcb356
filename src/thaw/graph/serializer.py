"""Type graph serialization and deserialization.

Provides round-trip serialization of ``TypeGraph`` objects to and from
JSON and YAML.  ``thaw inspect`` uses it to show what the reader found;
tests use it to describe graphs without writing Python sources.

Usage
-----
::

    from thaw.graph.serializer import GraphSerializer

    serializer = GraphSerializer()
    text = serializer.to_yaml(graph)
    graph2 = serializer.from_yaml(text)
"""
from __future__ import annotations

import json
from typing import Any

import yaml

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


class GraphSerializer:
    """Converts between ``TypeGraph`` objects and plain Python dicts."""

    # ------------------------------------------------------------------
    # Serialization (graph → dict)
    # ------------------------------------------------------------------

    def to_dict(self, graph: TypeGraph) -> dict[str, Any]:
        """Serialize a ``TypeGraph`` to a JSON-compatible dict."""
        return {
            "modules": [self._module_to_dict(m) for m in graph.modules()],
            "types": [self._type_to_dict(t) for t in graph.types()],
        }

    def _span_to_dict(self, span: Span) -> dict[str, Any]:
        return {"path": span.path, "line": span.line, "col": span.col}

    def _module_to_dict(self, module: ModuleDecl) -> dict[str, Any]:
        return {
            "name": module.name,
            "path": module.path,
            "is_package": module.is_package,
            "imports": [
                {
                    "alias": binding.alias,
                    "target": binding.target,
                    "source_module": binding.source_module,
                }
                for binding in module.imports
            ],
            "names": sorted(module.names),
        }

    def _type_to_dict(self, decl: TypeDecl) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": decl.name,
            "qualname": decl.qualname,
            "module": decl.module,
            "kind": decl.kind.name,
            "components": [
                {
                    "name": c.name,
                    "type": c.type_expr,
                    "span": self._span_to_dict(c.span),
                    "is_init_var": c.is_init_var,
                }
                for c in decl.components
            ],
            "bases": list(decl.bases),
            "span": self._span_to_dict(decl.span),
            "enclosing": decl.enclosing,
            "nested": list(decl.nested),
            "tag": None,
        }
        if decl.tag is not None:
            data["tag"] = {
                "span": self._span_to_dict(decl.tag.span),
                "arguments": [
                    {
                        "name": arg.name,
                        "value": arg.value,
                        "is_literal": arg.is_literal,
                        "span": self._span_to_dict(arg.span),
                    }
                    for arg in decl.tag.arguments
                ],
            }
        return data

    # ------------------------------------------------------------------
    # Deserialization (dict → graph)
    # ------------------------------------------------------------------

    def from_dict(self, data: dict[str, Any]) -> TypeGraph:
        """Deserialize a ``TypeGraph`` from a dict produced by :meth:`to_dict`."""
        modules = [self._module_from_dict(m) for m in data.get("modules", [])]
        types = [self._type_from_dict(t) for t in data.get("types", [])]
        return TypeGraph(modules, types)

    def _span_from_dict(self, data: dict[str, Any] | None) -> Span:
        if not data:
            return Span.unknown()
        return Span(path=str(data["path"]), line=int(data["line"]), col=int(data["col"]))

    def _module_from_dict(self, data: dict[str, Any]) -> ModuleDecl:
        return ModuleDecl(
            name=data["name"],
            path=data.get("path", "<unknown>"),
            is_package=bool(data.get("is_package", False)),
            imports=tuple(
                ImportBinding(
                    alias=item["alias"],
                    target=item["target"],
                    source_module=item.get("source_module"),
                )
                for item in data.get("imports", [])
            ),
            names=frozenset(data.get("names", [])),
        )

    def _type_from_dict(self, data: dict[str, Any]) -> TypeDecl:
        tag: TagUsage | None = None
        raw_tag = data.get("tag")
        if raw_tag is not None:
            tag = TagUsage(
                arguments=tuple(
                    TagArgument(
                        name=arg.get("name"),
                        value=arg.get("value"),
                        is_literal=bool(arg.get("is_literal", True)),
                        span=self._span_from_dict(arg.get("span")),
                    )
                    for arg in raw_tag.get("arguments", [])
                ),
                span=self._span_from_dict(raw_tag.get("span")),
            )
        return TypeDecl(
            name=data["name"],
            qualname=data.get("qualname", data["name"]),
            module=data["module"],
            kind=TypeKind[data.get("kind", "CLASS")],
            components=tuple(
                ComponentDecl(
                    name=c["name"],
                    type_expr=c["type"],
                    span=self._span_from_dict(c.get("span")),
                    is_init_var=bool(c.get("is_init_var", False)),
                )
                for c in data.get("components", [])
            ),
            bases=tuple(data.get("bases", [])),
            span=self._span_from_dict(data.get("span")),
            enclosing=data.get("enclosing"),
            nested=tuple(data.get("nested", [])),
            tag=tag,
        )

    # ------------------------------------------------------------------
    # JSON helpers
    # ------------------------------------------------------------------

    def to_json(self, graph: TypeGraph, indent: int = 2) -> str:
        """Serialize a ``TypeGraph`` to a JSON string."""
        return json.dumps(self.to_dict(graph), indent=indent, ensure_ascii=False)

    def from_json(self, text: str) -> TypeGraph:
        """Deserialize a ``TypeGraph`` from a JSON string."""
        data: dict[str, Any] = json.loads(text)
        return self.from_dict(data)

    # ------------------------------------------------------------------
    # YAML helpers
    # ------------------------------------------------------------------

    def to_yaml(self, graph: TypeGraph) -> str:
        """Serialize a ``TypeGraph`` to a YAML string."""
        return yaml.dump(
            self.to_dict(graph), default_flow_style=False, allow_unicode=True, sort_keys=False
        )

    def from_yaml(self, text: str) -> TypeGraph:
        """Deserialize a ``TypeGraph`` from a YAML string."""
        data: dict[str, Any] = yaml.safe_load(text)
        return self.from_dict(data)
