"""Exceptions for failures that stop a whole ``thaw`` run.

Problems confined to one tagged type are never raised; they are
reported as diagnostics (see :mod:`thaw.validator.diagnostics`).
"""
from __future__ import annotations


class ThawError(Exception):
    """Base class for every exception raised by ``thaw``."""


class ConfigError(ThawError):
    """Raised when a configuration file is unreadable or malformed."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class GraphReadError(ThawError):
    """Raised when a source file cannot be read into the type graph."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)
