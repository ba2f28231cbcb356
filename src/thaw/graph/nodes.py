"""Type graph node definitions.

The type graph is the read-only view of the declarations ``thaw`` works
from.  Every node is a frozen dataclass so that the graph can be shared
by every stage of a generation pass without defensive copying.

Names come in two flavours throughout the package:

``qualname``
    The module-relative dotted name, as in ``Outer.Inner``.
``qualified_name``
    The absolute dotted name, as in ``pkg.config.Outer.Inner``.
"""
from __future__ import annotations

import ast
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Iterator


# ---------------------------------------------------------------------------
# Source location
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Span:
    """Location of a declaration inside a source file.

    Parameters
    ----------
    path:
        Path of the file, as given to the reader.
    line:
        1-based line number.
    col:
        1-based column number.
    """

    path: str
    line: int
    col: int

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.col}"

    @classmethod
    def unknown(cls) -> "Span":
        """Return a sentinel span used when position info is unavailable."""
        return cls(path="<unknown>", line=0, col=0)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TypeKind(Enum):
    """Structural kind of a class declaration."""

    FROZEN_DATACLASS = auto()
    DATACLASS = auto()
    NAMED_TUPLE = auto()
    ENUM = auto()
    PROTOCOL = auto()
    CLASS = auto()


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TagArgument:
    """One argument passed to the tag decorator.

    ``value`` holds the evaluated literal when ``is_literal`` is true and
    the argument's source text otherwise.  ``name`` is ``None`` for
    positional arguments.
    """

    name: str | None
    value: object
    is_literal: bool
    span: Span


@dataclass(frozen=True, slots=True)
class TagUsage:
    """An application of the tag decorator to a class."""

    arguments: tuple[TagArgument, ...]
    span: Span


@dataclass(frozen=True, slots=True)
class ComponentDecl:
    """A field of a dataclass-like declaration.

    ``type_expr`` is the annotation's source text, with string forward
    references left as written (``'"Inner"'``).  ``is_init_var`` marks
    ``dataclasses.InitVar`` pseudo-fields.
    """

    name: str
    type_expr: str
    span: Span
    is_init_var: bool = False


@dataclass(frozen=True, slots=True)
class TypeDecl:
    """A class declaration found in the type graph."""

    name: str
    qualname: str
    module: str
    kind: TypeKind
    components: tuple[ComponentDecl, ...]
    bases: tuple[str, ...]
    span: Span
    enclosing: str | None = None
    nested: tuple[str, ...] = ()
    tag: TagUsage | None = None

    @property
    def qualified_name(self) -> str:
        """Absolute dotted name of this type."""
        return f"{self.module}.{self.qualname}"

    @property
    def is_tagged(self) -> bool:
        return self.tag is not None


@dataclass(frozen=True, slots=True)
class ImportBinding:
    """A name bound by an import statement at module level.

    ``import a.b as c`` binds ``c`` to module ``a.b``; ``from a.b import c``
    binds ``c`` to ``a.b.c`` with ``source_module`` ``a.b``.
    """

    alias: str
    target: str
    source_module: str | None = None

    @property
    def is_module_import(self) -> bool:
        return self.source_module is None


@dataclass(frozen=True, slots=True)
class ModuleDecl:
    """A module read into the type graph."""

    name: str
    path: str
    is_package: bool = False
    imports: tuple[ImportBinding, ...] = ()
    names: frozenset[str] = field(default_factory=frozenset)

    def binding(self, alias: str) -> ImportBinding | None:
        """Return the import binding for *alias*, if any."""
        for item in self.imports:
            if item.alias == alias:
                return item
        return None

    @property
    def package(self) -> str:
        """Dotted name of the package containing this module."""
        if self.is_package:
            return self.name
        head, _, _ = self.name.rpartition(".")
        return head


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------


def dotted_name(node: ast.expr) -> str | None:
    """Return ``a.b.c`` for a Name/Attribute chain, ``None`` otherwise."""
    parts: list[str] = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return None
    parts.append(node.id)
    return ".".join(reversed(parts))


class TypeGraph:
    """Read-only query surface over declared types.

    Parameters
    ----------
    modules:
        Every module the types were read from.
    types:
        Type declarations in discovery order.  The order is preserved by
        :meth:`types` so that generation output is reproducible.
    """

    def __init__(
        self,
        modules: Iterable[ModuleDecl],
        types: Iterable[TypeDecl],
    ) -> None:
        self._modules: dict[str, ModuleDecl] = {m.name: m for m in modules}
        self._types: dict[str, TypeDecl] = {}
        for decl in types:
            self._types[decl.qualified_name] = decl

    def __iter__(self) -> Iterator[TypeDecl]:
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)

    def types(self) -> list[TypeDecl]:
        """Return every declaration in discovery order."""
        return list(self._types.values())

    def modules(self) -> list[ModuleDecl]:
        return list(self._modules.values())

    def get(self, qualified_name: str) -> TypeDecl | None:
        return self._types.get(qualified_name)

    def module(self, name: str) -> ModuleDecl | None:
        return self._modules.get(name)

    def enclosing(self, decl: TypeDecl) -> TypeDecl | None:
        """Return the type *decl* is declared inside, if any."""
        if decl.enclosing is None:
            return None
        return self._types.get(decl.enclosing)

    def tagged(self) -> list[TypeDecl]:
        """Return every declaration carrying the tag, in discovery order."""
        return [decl for decl in self._types.values() if decl.is_tagged]

    # ------------------------------------------------------------------
    # Name resolution
    # ------------------------------------------------------------------

    def expand(self, dotted: str, module: str) -> str | None:
        """Expand the head of *dotted* through *module*'s imports.

        Returns the absolute dotted name, or ``None`` when the head is
        not bound by an import.
        """
        mod = self._modules.get(module)
        if mod is None:
            return None
        head, _, rest = dotted.partition(".")
        binding = mod.binding(head)
        if binding is None:
            return None
        return f"{binding.target}.{rest}" if rest else binding.target

    def resolve(self, dotted: str, context: TypeDecl) -> TypeDecl | None:
        """Resolve a dotted name used in the body of *context*.

        Lookup follows class-body scoping: names nested in *context*
        first, then module globals, then names bound by imports.
        """
        candidates = [
            f"{context.qualified_name}.{dotted}",
            f"{context.module}.{dotted}",
        ]
        expanded = self.expand(dotted, context.module)
        if expanded is not None:
            candidates.append(expanded)
        for candidate in candidates:
            decl = self._types.get(candidate)
            if decl is not None:
                return decl
        return None

    def resolve_base(self, base: str, decl: TypeDecl) -> TypeDecl | None:
        """Resolve one base-class expression of *decl*.

        Bases are evaluated in the scope around the class statement, so
        lookup starts at the enclosing class (or the module).  Subscripted
        bases such as ``Base[int]`` resolve through their origin.
        """
        try:
            node = ast.parse(base, mode="eval").body
        except SyntaxError:
            return None
        if isinstance(node, ast.Subscript):
            node = node.value
        name = dotted_name(node)
        if name is None:
            return None
        enclosing = self.enclosing(decl)
        if enclosing is not None:
            return self.resolve(name, enclosing)
        found = self._types.get(f"{decl.module}.{name}")
        if found is not None:
            return found
        expanded = self.expand(name, decl.module)
        return self._types.get(expanded) if expanded is not None else None

    def resolve_expr(self, type_expr: str, context: TypeDecl) -> TypeDecl | None:
        """Resolve a whole annotation to a declared type.

        Only bare names and attribute chains resolve; generic aliases
        such as ``list[Inner]`` do not.  String forward references are
        unwrapped first.

        Raises
        ------
        SyntaxError
            If *type_expr* (or the forward reference it wraps) is not a
            valid Python expression.
        """
        node = parse_annotation(type_expr)
        name = dotted_name(node)
        if name is None:
            return None
        return self.resolve(name, context)


def parse_annotation(type_expr: str) -> ast.expr:
    """Parse annotation text, unwrapping one level of string quoting."""
    node = ast.parse(type_expr, mode="eval").body
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        node = ast.parse(node.value, mode="eval").body
    return node
