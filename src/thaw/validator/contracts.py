"""Contract Validator: check each tagged type against its Source Contract.

Every tagged type must list its companion's ``Source`` class among its
bases, and no other type may.  The second rule is what makes the
contract sealed: the companion constructor relies on every accessor of
the contract existing with exactly the declared shape, which only holds
for the one originating type.

Usage
-----
::

    from thaw.validator.contracts import ContractValidator

    result = ContractValidator().validate(graph, descriptors, sink)
    for root in result.roots:
        ...
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from thaw.graph.nodes import TypeDecl, TypeGraph
from thaw.validator.descriptors import TaggedType
from thaw.validator.diagnostics import DiagnosticKind, DiagnosticSink

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Outcome of contract validation for one pass.

    Parameters
    ----------
    roots:
        Valid descriptors whose enclosing type is not tagged, in
        discovery order.  Each one becomes one generated module.
    accepted:
        Every valid descriptor, keyed by qualified name.
    rejected:
        Qualified names of tagged types that will get no companion.
    """

    roots: list[TaggedType] = field(default_factory=list)
    accepted: dict[str, TaggedType] = field(default_factory=dict)
    rejected: set[str] = field(default_factory=set)


class ContractRegistry:
    """Maps base-class spellings to the Source Contract they name.

    A base names a contract when it matches it fully qualified
    (``pkg.mutable_pair.MutablePair.Source``), through an imported alias,
    module-relative (``mutable_pair.MutablePair.Source``) or simply
    qualified (``MutablePair.Source``).  The last two only match
    contracts generated into the same package as the implementing type,
    so that an unresolved import is tolerated without confusing two
    packages that both declare a ``Pair``.
    """

    def __init__(self, graph: TypeGraph, descriptors: list[TaggedType]) -> None:
        self._graph = graph
        self._descriptors = list(descriptors)
        self._by_full: dict[str, TaggedType] = {
            self.full_name(d): d for d in self._descriptors
        }

    @staticmethod
    def full_name(descriptor: TaggedType) -> str:
        return f"{descriptor.companion_module}.{descriptor.contract_ref}"

    def contract_named(self, base: str, module: str) -> TaggedType | None:
        """Return the descriptor whose contract *base* names, if any."""
        if base in self._by_full:
            return self._by_full[base]
        expanded = self._graph.expand(base, module)
        if expanded is not None and expanded in self._by_full:
            return self._by_full[expanded]
        mod = self._graph.module(module)
        package = mod.package if mod is not None else module.rpartition(".")[0]
        for descriptor in self._descriptors:
            head, _, leaf = descriptor.companion_module.rpartition(".")
            if head != package:
                continue
            if base in (descriptor.contract_ref, f"{leaf}.{descriptor.contract_ref}"):
                return descriptor
        return None

    def implements(self, decl: TypeDecl, descriptor: TaggedType) -> bool:
        return any(self.contract_named(base, decl.module) is descriptor for base in decl.bases)


class ContractValidator:
    """Checks Source Contracts and picks the roots of generation."""

    def validate(
        self,
        graph: TypeGraph,
        descriptors: list[TaggedType],
        sink: DiagnosticSink,
    ) -> ValidationResult:
        """Validate *descriptors* and return the roots to synthesize.

        Parameters
        ----------
        graph:
            The type graph the descriptors were collected from.
        descriptors:
            Output of the collector.
        sink:
            Receives ``MissingContract``, ``SealedContractViolation`` and
            ``CompanionNameClash`` diagnostics.
        """
        clashing = self._check_clashes(graph, descriptors, sink)
        candidates = [d for d in descriptors if not _within(d.qualified_name, clashing)]
        registry = ContractRegistry(graph, candidates)
        result = ValidationResult()

        for descriptor in candidates:
            if registry.implements(descriptor.decl, descriptor):
                result.accepted[descriptor.qualified_name] = descriptor
                continue
            sink.report(
                DiagnosticKind.MISSING_CONTRACT,
                f"Types with generated mutable companions must implement their source "
                f"contract ({registry.full_name(descriptor)})",
                descriptor.decl.span,
                subject=descriptor.qualified_name,
                suggestion=f"add {descriptor.contract_ref} to the bases of {descriptor.decl.qualname}",
            )

        self._check_sealing(graph, registry, clashing, sink)

        for descriptor in candidates:
            if descriptor.qualified_name in result.accepted and not _is_nested(graph, descriptor):
                result.roots.append(descriptor)

        # outer types precede nested ones, so one pass prunes whole subtrees
        for descriptor in descriptors:
            enclosing = graph.enclosing(descriptor.decl)
            if (
                enclosing is not None
                and enclosing.is_tagged
                and enclosing.qualified_name not in result.accepted
                and descriptor.qualified_name in result.accepted
            ):
                logger.debug(
                    "Dropping %s: enclosing type %s gets no companion",
                    descriptor.qualified_name,
                    enclosing.qualified_name,
                )
                del result.accepted[descriptor.qualified_name]

        result.rejected = {
            decl.qualified_name for decl in graph.tagged()
        } - set(result.accepted)
        logger.debug(
            "Validated %d descriptor(s): %d root(s), %d rejected",
            len(descriptors),
            len(result.roots),
            len(result.rejected),
        )
        return result

    def _check_clashes(
        self, graph: TypeGraph, descriptors: list[TaggedType], sink: DiagnosticSink
    ) -> set[str]:
        """Report roots whose companion module is already taken.

        Returns the qualified names of the later roots, which are left out
        of the registry together with the types nested in them.
        """
        owners: dict[str, TaggedType] = {}
        clashing: set[str] = set()
        for descriptor in descriptors:
            if _is_nested(graph, descriptor):
                continue
            previous = owners.setdefault(descriptor.companion_module, descriptor)
            if previous is descriptor:
                continue
            sink.report(
                DiagnosticKind.COMPANION_NAME_CLASH,
                f"Companion of {descriptor.decl.qualname} would be written to "
                f"{descriptor.companion_module}, which already holds the companion "
                f"of {previous.qualified_name}",
                descriptor.decl.span,
                subject=descriptor.qualified_name,
                suggestion="rename one of the types",
            )
            clashing.add(descriptor.qualified_name)
        return clashing

    def _check_sealing(
        self,
        graph: TypeGraph,
        registry: ContractRegistry,
        clashing: set[str],
        sink: DiagnosticSink,
    ) -> None:
        for decl in graph:
            if _within(decl.qualified_name, clashing):
                continue
            for base in decl.bases:
                owner = registry.contract_named(base, decl.module)
                if owner is None or owner.qualified_name == decl.qualified_name:
                    continue
                sink.report(
                    DiagnosticKind.SEALED_CONTRACT_VIOLATION,
                    f"{decl.qualname} implements {owner.contract_ref}, which is sealed to "
                    f"{owner.qualified_name}",
                    decl.span,
                    subject=decl.qualified_name,
                    suggestion=f"only {owner.decl.qualname} may list {owner.contract_ref} as a base",
                )


def _is_nested(graph: TypeGraph, descriptor: TaggedType) -> bool:
    """True when *descriptor* is generated from a tagged ancestor."""
    enclosing = graph.enclosing(descriptor.decl)
    return enclosing is not None and enclosing.is_tagged


def _within(qualified_name: str, roots: set[str]) -> bool:
    return any(qualified_name == root or qualified_name.startswith(root + ".") for root in roots)
