"""Source Contract Generator.

Each companion carries a nested ``Source`` class that the original type
must list among its bases.  The contract declares one accessor per
component, with the component's declared type, and a default
``to_mutable`` conversion.  It is sealed to the original type: the
generated ``__init_subclass__`` rejects any other subclass, so the
companion constructor can rely on every accessor being present with
exactly the declared shape.
"""
from __future__ import annotations

from thaw.compiler.model import SourceContractSpec
from thaw.validator.descriptors import CONTRACT_NAME, TaggedType

TO_MUTABLE = "to_mutable"


class SourceContractGenerator:
    """Builds the ``SourceContractSpec`` of one tagged type."""

    def generate(
        self,
        descriptor: TaggedType,
        declared_types: dict[str, str],
    ) -> SourceContractSpec:
        """Return the contract for *descriptor*.

        Parameters
        ----------
        descriptor:
            The tagged type the contract belongs to.
        declared_types:
            Component name → declared type, already rewritten for the
            generated module.
        """
        return SourceContractSpec(
            name=CONTRACT_NAME,
            accessors=tuple(
                (component.name, declared_types[component.name])
                for component in descriptor.components
            ),
            companion_ref=descriptor.companion_ref,
            conversion_name=TO_MUTABLE,
            permitted_module=descriptor.decl.module,
            permitted_qualname=descriptor.decl.qualname,
        )
