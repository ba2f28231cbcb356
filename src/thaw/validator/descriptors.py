"""Tagged Type Descriptors: the validated view of one tagged declaration."""
from __future__ import annotations

import re
from dataclasses import dataclass

from thaw.graph.nodes import Span, TypeDecl

COMPANION_PREFIX = "Mutable"
CONTRACT_NAME = "Source"

_PASCAL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def snake_case(name: str) -> str:
    """PascalCase to snake_case: ``HTTPConfig`` → ``http_config``."""
    return _PASCAL_RE.sub("_", name).lower()


def companion_name(type_name: str) -> str:
    return COMPANION_PREFIX + type_name


@dataclass(frozen=True, slots=True)
class TagOptions:
    """Per-type generation options read from the tag.

    Parameters
    ----------
    encapsulate_fields:
        Private fields plus accessor pairs when true, public fields and
        no accessors when false.
    use_fancy_method_names:
        ``get_x``/``set_x`` methods instead of an ``x`` property.
    """

    encapsulate_fields: bool = True
    use_fancy_method_names: bool = False


@dataclass(frozen=True, slots=True)
class Component:
    """A component of a tagged type.

    ``target`` is the qualified name of the tagged type the declared
    type names, or ``None`` when the declared type is not tagged.
    ``origin`` is the qualified name of the class that declares the
    field, which differs from the tagged type for inherited fields; the
    declared type is written in that class's scope.
    """

    name: str
    declared_type: str
    span: Span
    target: str | None = None
    origin: str | None = None

    @property
    def is_tagged(self) -> bool:
        return self.target is not None


@dataclass(frozen=True, slots=True)
class TaggedType:
    """Everything the synthesizer needs to know about one tagged type.

    Parameters
    ----------
    decl:
        The originating declaration.
    components:
        Components in declaration order.
    options:
        Options from this type's own tag.
    companion_path:
        Dotted path of the companion inside its generated module, e.g.
        ``("MutableOuter", "MutableInner")`` for a type nested in another
        tagged type.
    companion_module:
        Absolute name of the generated module holding the companion.
    """

    decl: TypeDecl
    components: tuple[Component, ...]
    options: TagOptions
    companion_path: tuple[str, ...]
    companion_module: str

    @property
    def qualified_name(self) -> str:
        return self.decl.qualified_name

    @property
    def name(self) -> str:
        return self.decl.name

    @property
    def enclosing(self) -> str | None:
        return self.decl.enclosing

    @property
    def companion_name(self) -> str:
        return self.companion_path[-1]

    @property
    def companion_ref(self) -> str:
        """Dotted reference to the companion within its module."""
        return ".".join(self.companion_path)

    @property
    def contract_ref(self) -> str:
        """Dotted reference to the Source Contract within its module."""
        return f"{self.companion_ref}.{CONTRACT_NAME}"

    @property
    def is_nested_companion(self) -> bool:
        return len(self.companion_path) > 1
