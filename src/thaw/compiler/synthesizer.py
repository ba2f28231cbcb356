"""Mutable Type Synthesizer.

Builds a ``CompanionSpec`` for each root descriptor, recursing
depth-first through components whose declared type is itself tagged
and through tagged types declared inside the original class.

Synthesized specs are memoized per pass, keyed by the tagged type's
qualified name, so a companion reached from several components is
derived once and attached under its outermost tagged ancestor only.

Usage
-----
::

    synthesizer = Synthesizer(graph, validation, sink)
    specs = synthesizer.run(validation.roots)
"""
from __future__ import annotations

import logging

from thaw.compiler.model import (
    AccessorSpec,
    CompanionRef,
    CompanionSpec,
    ConstructorSpec,
    ConversionSpec,
    EffectiveType,
    FieldSpec,
    ImportSpec,
    Reference,
)
from thaw.compiler.qualify import Qualifier
from thaw.compiler.source_contract import TO_MUTABLE, SourceContractGenerator
from thaw.graph.nodes import TypeGraph
from thaw.validator.contracts import ValidationResult
from thaw.validator.descriptors import Component, TaggedType
from thaw.validator.diagnostics import DiagnosticKind, DiagnosticSink

logger = logging.getLogger(__name__)

TO_IMMUTABLE = "to_immutable"
SOURCE_PARAMETER = "source"


class _Abort(Exception):
    """Stops synthesis of one descriptor after its diagnostic is reported."""


def accessor_names(component: str, fancy: bool) -> tuple[str, str]:
    """Return ``(getter, setter)`` names for *component*."""
    if fancy:
        return f"get_{component}", f"set_{component}"
    return component, component


class Synthesizer:
    """Derives companion specs for one generation pass.

    Parameters
    ----------
    graph:
        The type graph being compiled.
    validation:
        Output of the contract validator; only accepted descriptors
        get companions.
    sink:
        Receives ``UnresolvedEffectiveType`` diagnostics.
    contracts:
        Source Contract generator.  Defaults to a fresh instance.
    """

    def __init__(
        self,
        graph: TypeGraph,
        validation: ValidationResult,
        sink: DiagnosticSink,
        contracts: SourceContractGenerator | None = None,
    ) -> None:
        self._graph = graph
        self._validation = validation
        self._sink = sink
        self._contracts = contracts or SourceContractGenerator()
        self._arena: dict[str, CompanionSpec] = {}
        self._failed: set[str] = set()
        self._active: list[str] = []

    def run(self, roots: list[TaggedType]) -> list[CompanionSpec]:
        """Synthesize every root and return the specs that can be emitted.

        A root whose companion refers to a companion that will not be
        emitted (because that companion's own root failed) is dropped
        as well, until every remaining reference is satisfied.
        """
        results: list[tuple[TaggedType, CompanionSpec]] = []
        for root in roots:
            spec = self.synthesize(root)
            if spec is not None:
                results.append((root, spec))

        changed = True
        while changed:
            changed = False
            emitted = {
                nested.original for _, spec in results for nested in spec.walk()
            }
            for index, (root, spec) in enumerate(results):
                missing = self._dangling(spec, emitted)
                if missing is None:
                    continue
                owner, component, target = missing
                self._sink.report(
                    DiagnosticKind.UNRESOLVED_EFFECTIVE_TYPE,
                    f"Component {component.name!r} of {owner.decl.qualname} needs the "
                    f"companion of {target}, which is not generated",
                    component.span,
                    subject=f"{owner.qualified_name}:{component.name}",
                )
                del results[index]
                changed = True
                break
        return [spec for _, spec in results]

    def synthesize(self, descriptor: TaggedType) -> CompanionSpec | None:
        """Return the companion spec of *descriptor*, or ``None`` on failure."""
        key = descriptor.qualified_name
        if key in self._arena:
            return self._arena[key]
        if key in self._failed:
            return None
        if key in self._active:
            # re-entered while its own build is still running
            logger.debug("Synthesis of %s re-entered", key)
            return None
        self._active.append(key)
        try:
            spec = self._build(descriptor)
        except _Abort:
            spec = None
        finally:
            self._active.pop()
        if spec is None:
            self._failed.add(key)
            logger.debug("Synthesis of %s aborted", key)
            return None
        self._arena[key] = spec
        logger.debug("Synthesized %s.%s", spec.module, spec.ref)
        return spec

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def _build(self, descriptor: TaggedType) -> CompanionSpec:
        # inherited fields are qualified in the scope of the base declaring them
        qualifiers: dict[str, Qualifier] = {}
        declared: dict[str, str] = {}
        fields: list[FieldSpec] = []
        for component in descriptor.components:
            origin = component.origin or descriptor.qualified_name
            if origin not in qualifiers:
                context = self._graph.get(origin) or descriptor.decl
                qualifiers[origin] = Qualifier(self._graph, context)
            try:
                declared[component.name] = qualifiers[origin].qualify(component.declared_type)
            except SyntaxError:
                self._unresolved(
                    descriptor,
                    component,
                    f"the declared type {component.declared_type!r} is not a valid expression",
                )
            field_type = self._effective_type(descriptor, component, declared[component.name])
            attribute = (
                f"_{component.name}" if descriptor.options.encapsulate_fields else component.name
            )
            fields.append(
                FieldSpec(component=component.name, attribute=attribute, field_type=field_type)
            )

        imports: set[ImportSpec] = set()
        for qualifier in qualifiers.values():
            imports.update(qualifier.imports)
        for item in fields:
            if isinstance(item.field_type, CompanionRef) and item.field_type.module != descriptor.companion_module:
                head = item.field_type.text.partition(".")[0]
                imports.add(ImportSpec(module=item.field_type.module, name=head))

        original = descriptor.decl.qualname
        runtime_import = ImportSpec(module=descriptor.decl.module, name=original.partition(".")[0])
        imports.add(runtime_import)

        nested: list[CompanionSpec] = []
        for qualified_name in descriptor.decl.nested:
            inner = self._validation.accepted.get(qualified_name)
            if inner is None:
                continue
            spec = self.synthesize(inner)
            if spec is None:
                self._nested_failed(descriptor, inner)
            nested.append(spec)

        return CompanionSpec(
            name=descriptor.companion_name,
            path=descriptor.companion_path,
            module=descriptor.companion_module,
            original=descriptor.qualified_name,
            source_module=descriptor.decl.module,
            fields=tuple(fields),
            accessors=self._accessors(descriptor, fields),
            constructor=self._constructor(descriptor, fields),
            conversion=ConversionSpec(
                name=TO_IMMUTABLE,
                return_type=original,
                runtime_import=runtime_import,
                arguments=tuple(
                    (
                        item.component,
                        f"self.{item.attribute}.{TO_IMMUTABLE}()"
                        if item.converts
                        else f"self.{item.attribute}",
                    )
                    for item in fields
                ),
            ),
            contract=self._contracts.generate(descriptor, declared),
            nested=tuple(nested),
            imports=tuple(sorted(imports, key=_import_key)),
        )

    def _effective_type(
        self, descriptor: TaggedType, component: Component, declared: str
    ) -> EffectiveType:
        """Resolve the type a companion field is declared with."""
        if component.target is None:
            return Reference(text=declared)
        target = component.target
        if target in self._active:
            self._unresolved(
                descriptor,
                component,
                f"{target} is already being converted; companions cannot contain themselves",
            )
        inner = self._validation.accepted.get(target)
        if inner is None:
            self._unresolved(
                descriptor,
                component,
                f"{target} is tagged but gets no companion (see its own diagnostics)",
            )
        spec = self.synthesize(inner)
        if spec is None:
            self._unresolved(
                descriptor,
                component,
                f"the companion of {target} could not be synthesized",
            )
        return CompanionRef(text=spec.ref, target=target, module=spec.module)

    def _accessors(
        self, descriptor: TaggedType, fields: list[FieldSpec]
    ) -> tuple[AccessorSpec, ...]:
        if not descriptor.options.encapsulate_fields:
            return ()
        fancy = descriptor.options.use_fancy_method_names
        accessors: list[AccessorSpec] = []
        for item in fields:
            getter, setter = accessor_names(item.component, fancy)
            accessors.append(
                AccessorSpec(field=item, getter=getter, setter=setter, is_property=not fancy)
            )
        return tuple(accessors)

    def _constructor(
        self, descriptor: TaggedType, fields: list[FieldSpec]
    ) -> ConstructorSpec:
        assignments = tuple(
            (
                item.attribute,
                f"{SOURCE_PARAMETER}.{item.component}.{TO_MUTABLE}()"
                if item.converts
                else f"{SOURCE_PARAMETER}.{item.component}",
            )
            for item in fields
        )
        return ConstructorSpec(
            parameter=SOURCE_PARAMETER,
            parameter_type=descriptor.contract_ref,
            assignments=assignments,
        )

    def _unresolved(self, descriptor: TaggedType, component: Component, reason: str) -> None:
        self._sink.report(
            DiagnosticKind.UNRESOLVED_EFFECTIVE_TYPE,
            f"Cannot resolve the field type of {descriptor.decl.qualname}.{component.name}: "
            f"{reason}",
            component.span,
            subject=f"{descriptor.qualified_name}:{component.name}",
        )
        raise _Abort

    def _nested_failed(self, descriptor: TaggedType, inner: TaggedType) -> None:
        """Abort *descriptor*: its module cannot hold the companion of *inner*.

        ``inner`` lists that companion's contract among its bases, so a
        module emitted without it would break the original at import.
        """
        if inner.qualified_name in self._active:
            reason = f"{inner.decl.qualname} refers back to it while its companion is being built"
        else:
            reason = f"the companion of {inner.decl.qualname} could not be synthesized"
        self._sink.report(
            DiagnosticKind.UNRESOLVED_EFFECTIVE_TYPE,
            f"Cannot nest the companion of {inner.decl.qualname} in the companion of "
            f"{descriptor.decl.qualname}: {reason}",
            descriptor.decl.span,
            subject=descriptor.qualified_name,
        )
        raise _Abort

    def _dangling(
        self, spec: CompanionSpec, emitted: set[str]
    ) -> tuple[TaggedType, Component, str] | None:
        """Find a companion reference in *spec* whose target is not emitted."""
        for item in spec.walk():
            for field in item.fields:
                if isinstance(field.field_type, CompanionRef) and field.field_type.target not in emitted:
                    owner = self._validation.accepted[item.original]
                    component = next(c for c in owner.components if c.name == field.component)
                    return owner, component, field.field_type.target
        return None


def _import_key(item: ImportSpec) -> tuple[int, str, str, str]:
    return (0 if item.name is None else 1, item.module, item.name or "", item.alias or "")
