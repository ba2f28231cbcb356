"""Generator configuration.

Settings live in a YAML file, ``thaw.yaml`` by default::

    source_root: src
    output_dir: null        # write next to the original modules
    module_prefix: mutable_
    tag_names: [generate_mutable]
    indent: 4
    header: true

Relative paths are resolved against the directory holding the file.
Command-line options override values read from the file.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from thaw.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "thaw.yaml"


@dataclass(frozen=True)
class GeneratorConfig:
    """Settings for one generation run.

    Parameters
    ----------
    source_root:
        Directory module names are computed from.
    output_dir:
        Directory generated modules are written under, mirroring the
        package layout.  ``None`` writes each module next to the module
        declaring its original type.
    module_prefix:
        Prefix of generated module names.
    tag_names:
        Decorator names recognised as the tag.
    indent:
        Spaces per indentation level in generated code.
    header:
        Whether generated modules start with a "do not edit" comment.
    """

    source_root: Path = field(default_factory=lambda: Path("."))
    output_dir: Path | None = None
    module_prefix: str = "mutable_"
    tag_names: tuple[str, ...] = ("generate_mutable",)
    indent: int = 4
    header: bool = True

    def with_overrides(self, **overrides: Any) -> "GeneratorConfig":
        """Return a copy with every non-``None`` override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        if "source_root" in values:
            values["source_root"] = Path(values["source_root"])
        if "output_dir" in values:
            values["output_dir"] = Path(values["output_dir"])
        return replace(self, **values)


def _check(key: str, value: object, expected: type | tuple[type, ...], path: str) -> None:
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        names = (
            " or ".join(t.__name__ for t in expected)
            if isinstance(expected, tuple)
            else expected.__name__
        )
        raise ConfigError(f"{key!r} must be {names}, got {type(value).__name__}", path=path)


def config_from_dict(data: dict[str, Any], base_dir: Path, path: str = "<dict>") -> GeneratorConfig:
    """Build a ``GeneratorConfig`` from parsed YAML.

    Raises
    ------
    ConfigError
        If a key is unknown or a value has the wrong type.
    """
    known = {f.name for f in fields(GeneratorConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"unknown key(s): {', '.join(unknown)}", path=path)

    values: dict[str, Any] = {}
    if "source_root" in data:
        _check("source_root", data["source_root"], str, path)
        values["source_root"] = base_dir / data["source_root"]
    else:
        values["source_root"] = base_dir
    if data.get("output_dir") is not None:
        _check("output_dir", data["output_dir"], str, path)
        values["output_dir"] = base_dir / data["output_dir"]
    if "module_prefix" in data:
        _check("module_prefix", data["module_prefix"], str, path)
        prefix = data["module_prefix"]
        if not prefix or not (prefix + "x").isidentifier():
            raise ConfigError(f"'module_prefix' {prefix!r} is not a valid identifier prefix", path=path)
        values["module_prefix"] = prefix
    if "tag_names" in data:
        _check("tag_names", data["tag_names"], list, path)
        names = data["tag_names"]
        if not names or not all(isinstance(n, str) and n.isidentifier() for n in names):
            raise ConfigError("'tag_names' must be a non-empty list of identifiers", path=path)
        values["tag_names"] = tuple(names)
    if "indent" in data:
        _check("indent", data["indent"], int, path)
        if data["indent"] < 1:
            raise ConfigError("'indent' must be positive", path=path)
        values["indent"] = data["indent"]
    if "header" in data:
        _check("header", data["header"], bool, path)
        values["header"] = data["header"]
    return GeneratorConfig(**values)


def load_config(path: str | Path) -> GeneratorConfig:
    """Load a ``GeneratorConfig`` from the YAML file at *path*.

    Raises
    ------
    ConfigError
        If the file cannot be read, is not valid YAML, or is malformed.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read configuration: {exc}", path=str(path)) from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML: {exc}", path=str(path)) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("top level must be a mapping", path=str(path))
    logger.debug("Loaded configuration from %s", path)
    return config_from_dict(data, path.parent, str(path))


def find_config(start: str | Path = ".") -> Path | None:
    """Return the nearest ``thaw.yaml`` at or above *start*, if any."""
    current = Path(start).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
