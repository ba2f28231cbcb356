"""thaw command-line interface."""
from __future__ import annotations

from thaw.cli.main import cli

__all__ = ["cli"]
