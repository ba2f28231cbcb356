"""Declarations synthesized for one companion class.

These frozen dataclasses are the hand-off between the synthesizer, which
decides *what* a companion contains, and the emitter, which decides how
it is written out.  Expressions are stored as ready-to-emit Python
source fragments.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class ImportSpec:
    """An import needed by generated code.

    ``name`` is ``None`` for ``import module [as alias]``.
    """

    module: str
    name: str | None = None
    alias: str | None = None

    @property
    def bound_name(self) -> str:
        """The name this import binds in the importing module."""
        if self.alias:
            return self.alias
        if self.name:
            return self.name
        return self.module.partition(".")[0]

    def render(self) -> str:
        if self.name is None:
            return f"import {self.module} as {self.alias}" if self.alias else f"import {self.module}"
        suffix = f" as {self.alias}" if self.alias else ""
        return f"from {self.module} import {self.name}{suffix}"


# ---------------------------------------------------------------------------
# Effective field types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Reference:
    """A field kept at its declared type."""

    text: str


@dataclass(frozen=True, slots=True)
class CompanionRef:
    """A field holding the companion of a tagged type.

    ``target`` is the qualified name of the tagged type, ``module`` the
    generated module its companion lives in.
    """

    text: str
    target: str
    module: str


EffectiveType = Union[Reference, CompanionRef]


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One instance attribute of a companion, mirroring one component."""

    component: str
    attribute: str
    field_type: EffectiveType

    @property
    def type_text(self) -> str:
        return self.field_type.text

    @property
    def converts(self) -> bool:
        """True when the value is converted rather than copied."""
        return isinstance(self.field_type, CompanionRef)


@dataclass(frozen=True, slots=True)
class AccessorSpec:
    """A read/write accessor pair for one field.

    With ``is_property`` the pair is a single ``property`` named
    ``getter`` (``getter == setter``); otherwise two methods.
    """

    field: FieldSpec
    getter: str
    setter: str
    is_property: bool


@dataclass(frozen=True, slots=True)
class ConstructorSpec:
    """``__init__`` taking the Source Contract.

    ``assignments`` pairs each attribute with the expression initializing it.
    """

    parameter: str
    parameter_type: str
    assignments: tuple[tuple[str, str], ...]


@dataclass(frozen=True, slots=True)
class ConversionSpec:
    """``to_immutable``: rebuilds the original type from the fields.

    ``arguments`` pairs each keyword with its value expression;
    ``runtime_import`` is imported inside the method body, since the
    original module imports the generated one.
    """

    name: str
    return_type: str
    runtime_import: ImportSpec
    arguments: tuple[tuple[str, str], ...]


@dataclass(frozen=True, slots=True)
class SourceContractSpec:
    """The sealed ``Source`` class nested in a companion."""

    name: str
    accessors: tuple[tuple[str, str], ...]
    companion_ref: str
    conversion_name: str
    permitted_module: str
    permitted_qualname: str

    @property
    def permitted(self) -> str:
        return f"{self.permitted_module}.{self.permitted_qualname}"


@dataclass(frozen=True, slots=True)
class CompanionSpec:
    """A complete companion class, including nested companions.

    Parameters
    ----------
    name:
        Class name, ``"Mutable" + original name``.
    path:
        Dotted path inside the generated module.
    module:
        Generated module the companion is written to.
    original:
        Qualified name of the immutable type.
    fields, accessors, constructor, conversion, contract:
        The members, in emission order.
    nested:
        Companions of tagged types declared inside the original type.
    imports:
        Annotation-only imports the members of this class need.
    source_module:
        Module the original type is declared in.
    """

    name: str
    path: tuple[str, ...]
    module: str
    original: str
    source_module: str
    fields: tuple[FieldSpec, ...]
    accessors: tuple[AccessorSpec, ...]
    constructor: ConstructorSpec
    conversion: ConversionSpec
    contract: SourceContractSpec
    nested: tuple["CompanionSpec", ...] = ()
    imports: tuple[ImportSpec, ...] = ()

    @property
    def ref(self) -> str:
        return ".".join(self.path)

    def walk(self):
        """Yield this spec and every nested spec, depth first."""
        yield self
        for child in self.nested:
            yield from child.walk()
