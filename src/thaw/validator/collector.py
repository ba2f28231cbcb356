"""Collector: find tagged declarations and turn them into descriptors.

Only frozen dataclasses are eligible.  A tag on anything else, or a tag
with unusable options, is reported and the declaration is left out;
every other candidate is still collected.
"""
from __future__ import annotations

import logging

from thaw.graph.nodes import ComponentDecl, TypeDecl, TypeGraph, TypeKind
from thaw.validator.descriptors import (
    Component,
    TaggedType,
    TagOptions,
    companion_name,
    snake_case,
)
from thaw.validator.diagnostics import DiagnosticKind, DiagnosticSink

logger = logging.getLogger(__name__)

DEFAULT_MODULE_PREFIX = "mutable_"

_OPTION_NAMES: tuple[str, ...] = ("encapsulate_fields", "use_fancy_method_names")

_KIND_LABELS: dict[TypeKind, str] = {
    TypeKind.DATACLASS: "a mutable dataclass",
    TypeKind.NAMED_TUPLE: "a NamedTuple",
    TypeKind.ENUM: "an enum",
    TypeKind.PROTOCOL: "a protocol",
    TypeKind.CLASS: "a plain class",
}


class Collector:
    """Builds ``TaggedType`` descriptors from a type graph.

    Parameters
    ----------
    module_prefix:
        Prefix of generated module names; ``MutablePair`` for ``Pair``
        is written to ``<prefix>pair``.
    """

    def __init__(self, module_prefix: str = DEFAULT_MODULE_PREFIX) -> None:
        self._module_prefix = module_prefix

    def collect(self, graph: TypeGraph, sink: DiagnosticSink) -> list[TaggedType]:
        """Return descriptors for every eligible tagged type, in discovery order."""
        descriptors: list[TaggedType] = []
        for decl in graph.tagged():
            if not self._check_kind(decl, sink):
                continue
            fields = self._fields(graph, decl, sink)
            if fields is None or not self._check_init_vars(decl, fields, sink):
                continue
            options = self._options(decl, sink)
            if options is None:
                continue
            path, root = self._companion_path(graph, decl)
            descriptor = TaggedType(
                decl=decl,
                components=tuple(self._components(graph, fields)),
                options=options,
                companion_path=path,
                companion_module=self.companion_module(graph, root),
            )
            logger.debug(
                "Collected %s -> %s.%s",
                decl.qualified_name,
                descriptor.companion_module,
                descriptor.companion_ref,
            )
            descriptors.append(descriptor)
        return descriptors

    def companion_module(self, graph: TypeGraph, root: TypeDecl) -> str:
        """Name of the generated module for the outermost tagged *root*."""
        module = graph.module(root.module)
        package = module.package if module is not None else root.module.rpartition(".")[0]
        leaf = f"{self._module_prefix}{snake_case(root.name)}"
        return f"{package}.{leaf}" if package else leaf

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_kind(self, decl: TypeDecl, sink: DiagnosticSink) -> bool:
        if decl.kind is not TypeKind.FROZEN_DATACLASS:
            sink.report(
                DiagnosticKind.INVALID_TARGET_KIND,
                f"@generate_mutable can only be applied to frozen dataclasses; "
                f"{decl.qualname} is {_KIND_LABELS[decl.kind]}",
                decl.span,
                subject=decl.qualified_name,
                suggestion="declare the class with @dataclass(frozen=True)",
            )
            return False
        return True

    def _check_init_vars(
        self, decl: TypeDecl, fields: list[tuple[TypeDecl, ComponentDecl]], sink: DiagnosticSink
    ) -> bool:
        init_vars = [item.name for _, item in fields if item.is_init_var]
        if init_vars:
            sink.report(
                DiagnosticKind.INVALID_TARGET_KIND,
                f"{decl.qualname} declares InitVar pseudo-field(s) "
                f"{', '.join(init_vars)}, which cannot be read back from an instance",
                decl.span,
                subject=decl.qualified_name,
            )
            return False
        return True

    def _fields(
        self, graph: TypeGraph, decl: TypeDecl, sink: DiagnosticSink
    ) -> list[tuple[TypeDecl, ComponentDecl]] | None:
        """Return the init fields of *decl* with the class declaring each.

        Fields of dataclass bases come first, in the order ``dataclasses``
        assigns them (reverse MRO); a redeclared field keeps its first
        position and takes the later declaration.  Returns ``None`` after
        reporting when a base makes the fields unknowable.
        """
        merged: dict[str, tuple[TypeDecl, ComponentDecl]] = {}
        if not self._merge_fields(graph, decl, decl, merged, {decl.qualified_name}, sink):
            return None
        return list(merged.values())

    def _merge_fields(
        self,
        graph: TypeGraph,
        target: TypeDecl,
        decl: TypeDecl,
        merged: dict[str, tuple[TypeDecl, ComponentDecl]],
        seen: set[str],
        sink: DiagnosticSink,
    ) -> bool:
        for base in reversed(decl.bases):
            resolved = graph.resolve_base(base, decl)
            if resolved is None:
                if self._names_missing_type(graph, base, decl):
                    self._report_base(
                        target, f"its base {base} cannot be found in the sources read", sink
                    )
                    return False
                # declared outside the sources read; assumed to add no fields
                logger.debug("Base %s of %s is not in the type graph", base, decl.qualified_name)
                continue
            if resolved.kind is TypeKind.DATACLASS:
                self._report_base(
                    target, f"its base {resolved.qualname} is a mutable dataclass", sink
                )
                return False
            if resolved.is_tagged:
                # the base's contract is sealed to the base itself
                self._report_base(
                    target, f"its base {resolved.qualname} has a companion of its own", sink
                )
                return False
            if resolved.qualified_name in seen:
                continue
            seen.add(resolved.qualified_name)
            if not self._merge_fields(graph, target, resolved, merged, seen, sink):
                return False
        for item in decl.components:
            merged[item.name] = (decl, item)
        return True

    @staticmethod
    def _names_missing_type(graph: TypeGraph, base: str, decl: TypeDecl) -> bool:
        """True when *base* is imported from a module that was read but lacks it."""
        expanded = graph.expand(base.partition("[")[0], decl.module)
        if expanded is None:
            return False
        return graph.module(expanded.rpartition(".")[0]) is not None

    def _report_base(self, decl: TypeDecl, reason: str, sink: DiagnosticSink) -> None:
        sink.report(
            DiagnosticKind.INVALID_TARGET_KIND,
            f"Cannot determine the fields of {decl.qualname}: {reason}",
            decl.span,
            subject=decl.qualified_name,
            suggestion="inherit only from frozen dataclasses declared in the sources read",
        )

    def _options(self, decl: TypeDecl, sink: DiagnosticSink) -> TagOptions | None:
        assert decl.tag is not None
        values: dict[str, bool] = {}
        valid = True
        for arg in decl.tag.arguments:
            if arg.name is None:
                sink.report(
                    DiagnosticKind.INVALID_TAG_OPTION,
                    f"@generate_mutable on {decl.qualname} takes keyword arguments only",
                    arg.span,
                    subject=decl.qualified_name,
                    suggestion=f"use one of: {', '.join(_OPTION_NAMES)}",
                )
                valid = False
            elif arg.name not in _OPTION_NAMES:
                sink.report(
                    DiagnosticKind.INVALID_TAG_OPTION,
                    f"Unknown @generate_mutable option {arg.name!r} on {decl.qualname}",
                    arg.span,
                    subject=decl.qualified_name,
                    suggestion=f"use one of: {', '.join(_OPTION_NAMES)}",
                )
                valid = False
            elif not arg.is_literal or not isinstance(arg.value, bool):
                sink.report(
                    DiagnosticKind.INVALID_TAG_OPTION,
                    f"Option {arg.name!r} on {decl.qualname} must be a literal True or False",
                    arg.span,
                    subject=decl.qualified_name,
                )
                valid = False
            else:
                values[arg.name] = arg.value
        if not valid:
            return None
        return TagOptions(**values)

    def _components(
        self, graph: TypeGraph, fields: list[tuple[TypeDecl, ComponentDecl]]
    ) -> list[Component]:
        components: list[Component] = []
        for owner, item in fields:
            try:
                resolved = graph.resolve_expr(item.type_expr, owner)
            except SyntaxError:
                # reported by the synthesizer, which needs the text itself
                resolved = None
            target = resolved.qualified_name if resolved is not None and resolved.is_tagged else None
            components.append(
                Component(
                    name=item.name,
                    declared_type=item.type_expr,
                    span=item.span,
                    target=target,
                    origin=owner.qualified_name,
                )
            )
        return components

    def _companion_path(
        self, graph: TypeGraph, decl: TypeDecl
    ) -> tuple[tuple[str, ...], TypeDecl]:
        """Return the companion path of *decl* and its outermost tagged ancestor."""
        enclosing = graph.enclosing(decl)
        if enclosing is not None and enclosing.is_tagged:
            path, root = self._companion_path(graph, enclosing)
            return (*path, companion_name(decl.name)), root
        return (companion_name(decl.name),), decl
