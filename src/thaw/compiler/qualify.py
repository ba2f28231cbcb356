"""Rewrite declared types so they are valid inside a generated module.

A component annotation is written in the scope of the original class
body, where a nested class can be named bare and imports of the
original module are visible.  The generated module sees neither, so
every name in the annotation is rewritten to a module-level spelling
and the imports that spelling needs are recorded.

``Literal[...]`` arguments and ``Annotated[...]`` metadata are left
untouched; string forward references are parsed and rewritten too.
"""
from __future__ import annotations

import ast

from thaw.compiler.model import ImportSpec
from thaw.graph.nodes import TypeDecl, TypeGraph, dotted_name, parse_annotation


class Qualifier(ast.NodeTransformer):
    """Rewrites one annotation in the scope of *context*."""

    def __init__(self, graph: TypeGraph, context: TypeDecl) -> None:
        self._graph = graph
        self._context = context
        self.imports: set[ImportSpec] = set()

    def qualify(self, type_expr: str) -> str:
        """Return the rewritten annotation text.

        Raises
        ------
        SyntaxError
            If *type_expr* is not a valid expression.
        """
        node = self.visit(parse_annotation(type_expr))
        return ast.unparse(node)

    # ------------------------------------------------------------------
    # Visitors
    # ------------------------------------------------------------------

    def visit_Name(self, node: ast.Name) -> ast.expr:
        return self._qualify_name(node, node.id)

    def visit_Attribute(self, node: ast.Attribute) -> ast.expr:
        name = dotted_name(node)
        if name is None:
            return self.generic_visit(node)
        return self._qualify_name(node, name)

    def visit_Subscript(self, node: ast.Subscript) -> ast.expr:
        node.value = self.visit(node.value)
        head = (dotted_name(node.value) or "").rpartition(".")[2]
        if head == "Literal":
            return node
        if head == "Annotated" and isinstance(node.slice, ast.Tuple) and node.slice.elts:
            node.slice.elts[0] = self.visit(node.slice.elts[0])
            return node
        node.slice = self.visit(node.slice)
        return node

    def visit_Constant(self, node: ast.Constant) -> ast.expr:
        if isinstance(node.value, str):
            return self.visit(parse_annotation(node.value))
        return node

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _qualify_name(self, node: ast.expr, dotted: str) -> ast.expr:
        context = self._context
        decl = self._graph.resolve(dotted, context)
        if decl is not None:
            head = decl.qualname.partition(".")[0]
            self.imports.add(ImportSpec(module=decl.module, name=head))
            return ast.parse(decl.qualname, mode="eval").body

        head = dotted.partition(".")[0]
        module = self._graph.module(context.module)
        if module is None:
            return node
        binding = module.binding(head)
        if binding is not None:
            if binding.is_module_import:
                alias = binding.alias if binding.alias != binding.target else None
                self.imports.add(ImportSpec(module=binding.target, alias=alias))
            else:
                name = binding.target.rpartition(".")[2]
                alias = binding.alias if binding.alias != name else None
                self.imports.add(
                    ImportSpec(module=binding.source_module or "", name=name, alias=alias)
                )
        elif head in module.names:
            self.imports.add(ImportSpec(module=context.module, name=head))
        return node


def qualify(graph: TypeGraph, context: TypeDecl, type_expr: str) -> tuple[str, set[ImportSpec]]:
    """Convenience wrapper: rewrite *type_expr* and return it with its imports."""
    qualifier = Qualifier(graph, context)
    text = qualifier.qualify(type_expr)
    return text, qualifier.imports
