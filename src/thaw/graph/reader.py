"""Type Graph Reader: build a ``TypeGraph`` from Python source files.

Sources are parsed with :mod:`ast` and never imported, so reading a
package has no side effects and works on code whose dependencies are
not installed.

Usage
-----
::

    from thaw.graph.reader import SourceReader

    reader = SourceReader(root="src")
    graph = reader.read_paths(["src/app/settings.py"])
    for decl in graph.tagged():
        print(decl.qualified_name)
"""
from __future__ import annotations

import ast
import logging
from pathlib import Path
from typing import Iterable, Sequence

from thaw.errors import GraphReadError
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
    dotted_name,
)

logger = logging.getLogger(__name__)

DEFAULT_TAG_NAMES: tuple[str, ...] = ("generate_mutable",)

_NAMED_TUPLE_BASES = frozenset({"NamedTuple", "typing.NamedTuple"})
_ENUM_BASES = frozenset(
    {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}
    | {f"enum.{name}" for name in ("Enum", "IntEnum", "StrEnum", "Flag", "IntFlag")}
)
_PROTOCOL_BASES = frozenset({"Protocol", "typing.Protocol"})


def _last(name: str) -> str:
    return name.rpartition(".")[2]


def _is_dataclass_decorator(
    node: ast.expr, aliases: dict[str, str] | None = None
) -> tuple[bool, bool]:
    """Check one decorator for ``@dataclass``.  Returns (is_dataclass, frozen).

    *aliases* maps names bound by the module's imports to their targets,
    so ``from dataclasses import dataclass as dc`` makes ``@dc`` match.
    """
    target = node.func if isinstance(node, ast.Call) else node
    name = dotted_name(target)
    if name is None:
        return False, False
    head, _, rest = name.partition(".")
    if aliases and head in aliases:
        name = f"{aliases[head]}.{rest}" if rest else aliases[head]
    if name not in ("dataclass", "dataclasses.dataclass"):
        return False, False
    frozen = False
    if isinstance(node, ast.Call):
        for kw in node.keywords:
            if kw.arg == "frozen" and isinstance(kw.value, ast.Constant):
                frozen = kw.value.value is True
    return True, frozen


def _is_class_var(annotation: ast.expr) -> bool:
    target = annotation.value if isinstance(annotation, ast.Subscript) else annotation
    return _last(dotted_name(target) or "") == "ClassVar"


def _is_init_var(annotation: ast.expr) -> bool:
    target = annotation.value if isinstance(annotation, ast.Subscript) else annotation
    return _last(dotted_name(target) or "") == "InitVar"


def _is_kw_only_marker(annotation: ast.expr) -> bool:
    """Return True for the ``_: KW_ONLY`` sentinel, which is not a field."""
    return _last(dotted_name(annotation) or "") == "KW_ONLY"


def _is_excluded_from_init(value: ast.expr | None) -> bool:
    """Return True for ``field(init=False)``."""
    if not isinstance(value, ast.Call):
        return False
    if _last(dotted_name(value.func) or "") != "field":
        return False
    for kw in value.keywords:
        if kw.arg == "init" and isinstance(kw.value, ast.Constant):
            return kw.value.value is False
    return False


def module_name_for(path: Path, root: Path) -> tuple[str, bool]:
    """Compute the dotted module name of *path* relative to *root*.

    Returns ``(name, is_package)``.
    """
    relative = path.resolve().relative_to(root.resolve())
    parts = list(relative.with_suffix("").parts)
    is_package = bool(parts) and parts[-1] == "__init__"
    if is_package:
        parts.pop()
    if not parts:
        raise GraphReadError(f"Cannot derive a module name for {path}", path=str(path))
    return ".".join(parts), is_package


class SourceReader:
    """Reads Python modules into a :class:`TypeGraph`.

    Parameters
    ----------
    root:
        Source root that module names are computed from.  Every path
        handed to :meth:`read_paths` must live below it.
    tag_names:
        Decorator names recognised as the "generate mutable companion"
        tag.  Attribute-qualified spellings (``thaw.generate_mutable``)
        match on their last component.
    """

    def __init__(
        self,
        root: str | Path = ".",
        tag_names: Sequence[str] = DEFAULT_TAG_NAMES,
    ) -> None:
        self._root = Path(root)
        self._tag_names = frozenset(tag_names)

    def read_paths(self, paths: Iterable[str | Path]) -> TypeGraph:
        """Read every ``.py`` file in *paths* (directories recursively)."""
        files: set[Path] = set()
        for item in paths:
            path = Path(item)
            if path.is_dir():
                files.update(p for p in path.rglob("*.py") if p.is_file())
            elif path.is_file():
                files.add(path)
            else:
                raise GraphReadError(f"No such file or directory: {path}", path=str(path))

        modules: list[ModuleDecl] = []
        types: list[TypeDecl] = []
        for path in sorted(files):
            try:
                source = path.read_text(encoding="utf-8")
            except OSError as exc:
                raise GraphReadError(f"Cannot read {path}: {exc}", path=str(path)) from exc
            try:
                name, is_package = module_name_for(path, self._root)
            except ValueError as exc:
                raise GraphReadError(
                    f"{path} is not below the source root {self._root}", path=str(path)
                ) from exc
            module, decls = self.read_source(source, name, str(path), is_package=is_package)
            modules.append(module)
            types.extend(decls)

        logger.debug("Read %d module(s), %d type(s)", len(modules), len(types))
        return TypeGraph(modules, types)

    def read_source(
        self,
        source: str,
        module: str,
        path: str = "<string>",
        is_package: bool = False,
    ) -> tuple[ModuleDecl, list[TypeDecl]]:
        """Parse one module's *source* text.

        Raises
        ------
        GraphReadError
            If *source* is not valid Python.
        """
        try:
            tree = ast.parse(source, filename=path)
        except SyntaxError as exc:
            raise GraphReadError(
                f"Syntax error in {path}:{exc.lineno}: {exc.msg}", path=path
            ) from exc

        package = module if is_package else module.rpartition(".")[0]
        imports: list[ImportBinding] = []
        names: set[str] = set()
        for stmt in tree.body:
            if isinstance(stmt, (ast.Import, ast.ImportFrom)):
                imports.extend(_bindings(stmt, package))
            elif isinstance(stmt, ast.If):
                # ``if TYPE_CHECKING:`` blocks
                for inner in stmt.body:
                    if isinstance(inner, (ast.Import, ast.ImportFrom)):
                        imports.extend(_bindings(inner, package))
            elif isinstance(stmt, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
                names.add(stmt.name)
            elif isinstance(stmt, ast.Assign):
                names.update(t.id for t in stmt.targets if isinstance(t, ast.Name))
            elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
                names.add(stmt.target.id)
            elif hasattr(ast, "TypeAlias") and isinstance(stmt, ast.TypeAlias):
                names.add(stmt.name.id)

        aliases = {item.alias: item.target for item in imports}
        decls: list[TypeDecl] = []
        for stmt in tree.body:
            if isinstance(stmt, ast.ClassDef):
                self._read_class(stmt, module, path, None, decls, aliases)

        module_decl = ModuleDecl(
            name=module,
            path=path,
            is_package=is_package,
            imports=tuple(imports),
            names=frozenset(names),
        )
        return module_decl, decls

    # ------------------------------------------------------------------
    # Classes
    # ------------------------------------------------------------------

    def _read_class(
        self,
        node: ast.ClassDef,
        module: str,
        path: str,
        enclosing: TypeDecl | None,
        out: list[TypeDecl],
        aliases: dict[str, str],
    ) -> None:
        qualname = f"{enclosing.qualname}.{node.name}" if enclosing else node.name
        span = Span(path=path, line=node.lineno, col=node.col_offset + 1)
        bases = tuple(ast.unparse(base) for base in node.bases)
        kind = self._kind(node, bases, aliases)

        components: list[ComponentDecl] = []
        if kind in (TypeKind.FROZEN_DATACLASS, TypeKind.DATACLASS, TypeKind.NAMED_TUPLE):
            for stmt in node.body:
                if not isinstance(stmt, ast.AnnAssign) or not isinstance(stmt.target, ast.Name):
                    continue
                if _is_class_var(stmt.annotation) or _is_excluded_from_init(stmt.value):
                    continue
                if _is_kw_only_marker(stmt.annotation):
                    continue
                components.append(
                    ComponentDecl(
                        name=stmt.target.id,
                        type_expr=ast.unparse(stmt.annotation),
                        span=Span(path=path, line=stmt.lineno, col=stmt.col_offset + 1),
                        is_init_var=_is_init_var(stmt.annotation),
                    )
                )

        nested_nodes = [stmt for stmt in node.body if isinstance(stmt, ast.ClassDef)]
        decl = TypeDecl(
            name=node.name,
            qualname=qualname,
            module=module,
            kind=kind,
            components=tuple(components),
            bases=bases,
            span=span,
            enclosing=enclosing.qualified_name if enclosing else None,
            nested=tuple(f"{module}.{qualname}.{n.name}" for n in nested_nodes),
            tag=self._tag(node, path),
        )
        out.append(decl)
        if decl.is_tagged:
            logger.debug("Discovered tagged type %s (%s)", decl.qualified_name, kind.name)
        for child in nested_nodes:
            self._read_class(child, module, path, decl, out, aliases)

    def _kind(
        self, node: ast.ClassDef, bases: tuple[str, ...], aliases: dict[str, str]
    ) -> TypeKind:
        for decorator in node.decorator_list:
            is_dataclass, frozen = _is_dataclass_decorator(decorator, aliases)
            if is_dataclass:
                return TypeKind.FROZEN_DATACLASS if frozen else TypeKind.DATACLASS
        for base in bases:
            if base in _NAMED_TUPLE_BASES:
                return TypeKind.NAMED_TUPLE
            if base in _ENUM_BASES:
                return TypeKind.ENUM
            if base in _PROTOCOL_BASES or base.startswith(("Protocol[", "typing.Protocol[")):
                return TypeKind.PROTOCOL
        return TypeKind.CLASS

    def _tag(self, node: ast.ClassDef, path: str) -> TagUsage | None:
        for decorator in node.decorator_list:
            target = decorator.func if isinstance(decorator, ast.Call) else decorator
            name = dotted_name(target)
            if name is None or _last(name) not in self._tag_names:
                continue
            span = Span(path=path, line=decorator.lineno, col=decorator.col_offset + 1)
            arguments: list[TagArgument] = []
            if isinstance(decorator, ast.Call):
                for arg in decorator.args:
                    arguments.append(_tag_argument(None, arg, path))
                for kw in decorator.keywords:
                    arguments.append(_tag_argument(kw.arg, kw.value, path))
            return TagUsage(arguments=tuple(arguments), span=span)
        return None


def _tag_argument(name: str | None, value: ast.expr, path: str) -> TagArgument:
    span = Span(path=path, line=value.lineno, col=value.col_offset + 1)
    try:
        return TagArgument(name=name, value=ast.literal_eval(value), is_literal=True, span=span)
    except (ValueError, TypeError):
        return TagArgument(name=name, value=ast.unparse(value), is_literal=False, span=span)


def _bindings(node: ast.Import | ast.ImportFrom, package: str) -> list[ImportBinding]:
    """Return the names bound by one import statement."""
    if isinstance(node, ast.Import):
        result: list[ImportBinding] = []
        for alias in node.names:
            if alias.asname:
                result.append(ImportBinding(alias=alias.asname, target=alias.name))
            else:
                # ``import a.b`` binds ``a``
                head = alias.name.partition(".")[0]
                result.append(ImportBinding(alias=head, target=head))
        return result
    source_module = _absolute_module(node, package)
    return [
        ImportBinding(
            alias=alias.asname or alias.name,
            target=f"{source_module}.{alias.name}",
            source_module=source_module,
        )
        for alias in node.names
        if alias.name != "*"
    ]


def _absolute_module(node: ast.ImportFrom, package: str) -> str:
    """Resolve a possibly relative ``from`` import to an absolute module name."""
    if not node.level:
        return node.module or ""
    parts = package.split(".") if package else []
    if node.level > 1:
        parts = parts[: len(parts) - (node.level - 1)]
    base = ".".join(parts)
    if node.module:
        return f"{base}.{node.module}" if base else node.module
    return base
