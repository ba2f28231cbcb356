"""Emitter: render companion specs to Python modules.

One module is produced per root companion.  The output depends only on
the companion spec and the emitter settings: no timestamps or absolute paths are
written, so regenerating from an unchanged type graph yields
byte-identical text.

Generated module layout
-----------------------
::

    # Generated by thaw from pkg.config. Do not edit.
    \"\"\"Mutable companion of ``Pair``.\"\"\"
    from __future__ import annotations

    from typing import TYPE_CHECKING

    if TYPE_CHECKING:
        from pkg.config import Pair

    __all__ = ["MutablePair"]


    class MutablePair:
        ...
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from thaw.compiler.model import AccessorSpec, CompanionSpec, ImportSpec, SourceContractSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmittedUnit:
    """One generated module."""

    module: str
    text: str
    companion: CompanionSpec


def _string_tuple(items: list[str]) -> str:
    if not items:
        return "()"
    if len(items) == 1:
        return f'("{items[0]}",)'
    return "(" + ", ".join(f'"{item}"' for item in items) + ")"


class Emitter:
    """Serializes ``CompanionSpec`` trees to module source text.

    Parameters
    ----------
    indent_spaces:
        Spaces per indentation level.  Defaults to 4 (PEP 8).
    header:
        Whether to start each module with a "do not edit" comment.
    """

    def __init__(self, indent_spaces: int = 4, header: bool = True) -> None:
        self._unit = " " * indent_spaces
        self._header = header

    def emit(self, spec: CompanionSpec) -> EmittedUnit:
        """Render the module holding root companion *spec*."""
        lines: list[str] = []
        if self._header:
            lines.append(f"# Generated by thaw from {spec.source_module}. Do not edit.")
        original_name = spec.conversion.return_type
        lines.append(f'"""Mutable companion of ``{original_name}``."""')
        lines.append("from __future__ import annotations")
        lines.append("")
        lines.append("from typing import TYPE_CHECKING, Any")
        lines.append("")
        lines.append("if TYPE_CHECKING:")
        for statement in self._imports(spec):
            lines.append(f"{self._unit}{statement}")
        lines.append("")
        lines.append(f'__all__ = ["{spec.name}"]')
        lines.append("")
        lines.append("")
        lines.extend(self._companion(spec, 0))
        text = "\n".join(lines) + "\n"
        logger.debug("Emitted %s (%d lines)", spec.module, text.count("\n"))
        return EmittedUnit(module=spec.module, text=text, companion=spec)

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def _imports(self, spec: CompanionSpec) -> list[str]:
        """Collect, deduplicate and render the unit's annotation imports."""
        plain: set[ImportSpec] = set()
        grouped: dict[str, set[str]] = {}
        for item in spec.walk():
            for imp in item.imports:
                if imp.module == spec.module:
                    continue
                if imp.name is None:
                    plain.add(imp)
                    continue
                name = f"{imp.name} as {imp.alias}" if imp.alias else imp.name
                grouped.setdefault(imp.module, set()).add(name)
        rendered = [imp.render() for imp in sorted(plain, key=lambda i: (i.module, i.alias or ""))]
        for module in sorted(grouped):
            rendered.append(f"from {module} import {', '.join(sorted(grouped[module]))}")
        return rendered

    # ------------------------------------------------------------------
    # Classes
    # ------------------------------------------------------------------

    def _companion(self, spec: CompanionSpec, level: int) -> list[str]:
        pad = self._unit * level
        body = self._unit * (level + 1)
        inner = self._unit * (level + 2)
        original = spec.conversion.return_type
        lines = [
            f"{pad}class {spec.name}:",
            f'{body}"""Mutable companion of :class:`{spec.source_module}.{original}`."""',
            "",
            f"{body}__slots__ = {_string_tuple([f.attribute for f in spec.fields])}",
            "",
        ]

        ctor = spec.constructor
        lines.append(f"{body}def __init__(self, {ctor.parameter}: {ctor.parameter_type}) -> None:")
        if ctor.assignments:
            for attribute, expression in ctor.assignments:
                lines.append(f"{inner}self.{attribute} = {expression}")
        else:
            lines.append(f"{inner}pass")
        lines.append("")

        conversion = spec.conversion
        lines.append(f"{body}def {conversion.name}(self) -> {conversion.return_type}:")
        lines.append(f"{inner}{conversion.runtime_import.render()}")
        lines.append("")
        if conversion.arguments:
            lines.append(f"{inner}return {conversion.return_type}(")
            for keyword, expression in conversion.arguments:
                lines.append(f"{inner}{self._unit}{keyword}={expression},")
            lines.append(f"{inner})")
        else:
            lines.append(f"{inner}return {conversion.return_type}()")

        for accessor in spec.accessors:
            lines.append("")
            lines.extend(self._accessor(accessor, level + 1))

        for child in spec.nested:
            lines.append("")
            lines.extend(self._companion(child, level + 1))

        lines.append("")
        lines.extend(self._contract(spec.contract, level + 1))
        return lines

    def _accessor(self, accessor: AccessorSpec, level: int) -> list[str]:
        pad = self._unit * level
        inner = self._unit * (level + 1)
        item = accessor.field
        if accessor.is_property:
            return [
                f"{pad}@property",
                f"{pad}def {accessor.getter}(self) -> {item.type_text}:",
                f"{inner}return self.{item.attribute}",
                "",
                f"{pad}@{accessor.getter}.setter",
                f"{pad}def {accessor.setter}(self, value: {item.type_text}) -> None:",
                f"{inner}self.{item.attribute} = value",
            ]
        return [
            f"{pad}def {accessor.getter}(self) -> {item.type_text}:",
            f"{inner}return self.{item.attribute}",
            "",
            f"{pad}def {accessor.setter}(self, value: {item.type_text}) -> None:",
            f"{inner}self.{item.attribute} = value",
        ]

    def _contract(self, contract: SourceContractSpec, level: int) -> list[str]:
        pad = self._unit * level
        body = self._unit * (level + 1)
        inner = self._unit * (level + 2)
        permitted = contract.permitted
        lines = [
            f"{pad}class {contract.name}:",
            f'{body}"""Accessors read by :class:`{contract.companion_ref}`.',
            "",
            f"{body}Sealed: only ``{permitted}`` may subclass it.",
            f'{body}"""',
            "",
            f"{body}__slots__ = ()",
            "",
        ]
        for name, type_text in contract.accessors:
            lines.append(f"{body}{name}: {type_text}")
        if contract.accessors:
            lines.append("")
        lines.extend(
            [
                f"{body}def __init_subclass__(cls, **kwargs: Any) -> None:",
                f"{inner}super().__init_subclass__(**kwargs)",
                f"{inner}if (cls.__module__, cls.__qualname__) != "
                f'("{contract.permitted_module}", "{contract.permitted_qualname}"):',
                f"{inner}{self._unit}raise TypeError(",
                f'{inner}{self._unit * 2}f"{{cls.__module__}}.{{cls.__qualname__}} cannot implement "',
                f'{inner}{self._unit * 2}"{contract.companion_ref}.{contract.name}; '
                f'it is sealed to {permitted}"',
                f"{inner}{self._unit})",
                "",
                f"{body}def {contract.conversion_name}(self) -> {contract.companion_ref}:",
                f"{inner}return {contract.companion_ref}(self)",
            ]
        )
        return lines
