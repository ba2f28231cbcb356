"""CLI entry point for thaw.

Invoked as::

    thaw [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m thaw.cli.main

Commands
--------
generate    Generate companion modules for tagged frozen dataclasses
inspect     Dump the type graph read from sources as JSON or YAML
version     Show version information
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

if TYPE_CHECKING:
    from thaw.config import GeneratorConfig
    from thaw.graph.nodes import TypeGraph
    from thaw.validator.diagnostics import Diagnostic

console = Console()
err_console = Console(stderr=True)


def _severity_color(severity_name: str) -> str:
    """Map a DiagnosticSeverity name to a Rich color string."""
    colors = {
        "ERROR": "red",
        "WARNING": "yellow",
        "INFORMATION": "blue",
        "HINT": "dim",
    }
    return colors.get(severity_name, "white")


def _load_config_or_exit(config_path: str | None) -> "GeneratorConfig":
    """Load the configuration file, or the defaults when there is none."""
    from thaw.config import GeneratorConfig, find_config, load_config
    from thaw.errors import ConfigError

    path = Path(config_path) if config_path else find_config()
    if path is None:
        return GeneratorConfig()
    try:
        return load_config(path)
    except ConfigError as exc:
        err_console.print(f"[red]Configuration error:[/red] {exc}")
        sys.exit(1)


def _read_or_exit(paths: tuple[str, ...], config: "GeneratorConfig") -> "TypeGraph":
    """Read the type graph, printing errors and exiting on failure."""
    from thaw.errors import GraphReadError
    from thaw.graph.reader import SourceReader

    reader = SourceReader(root=config.source_root, tag_names=config.tag_names)
    try:
        return reader.read_paths(paths)
    except GraphReadError as exc:
        err_console.print(f"[red]Read error:[/red] {exc}")
        sys.exit(1)


def _print_diagnostics(diagnostics: list["Diagnostic"], title: str) -> None:
    table = Table(title=title, show_lines=True)
    table.add_column("Severity", style="bold", min_width=10)
    table.add_column("Code", min_width=8)
    table.add_column("Location", min_width=10)
    table.add_column("Message")

    for d in diagnostics:
        color = _severity_color(d.severity.name)
        table.add_row(
            f"[{color}]{d.severity.name}[/{color}]",
            f"{d.code} {d.kind.title}",
            str(d.span),
            d.message + (f"\n[dim]hint: {d.suggestion}[/dim]" if d.suggestion else ""),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="thaw")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log pipeline progress")
def cli(verbose: bool) -> None:
    """Generate mutable companions for frozen dataclasses."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


# ---------------------------------------------------------------------------
# version command
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from thaw import __version__

    table = Table(show_header=False, box=None)
    table.add_row("[bold]thaw[/bold]", f"v{__version__}")
    table.add_row("Python", f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")
    table.add_row("Platform", sys.platform)
    console.print(table)


# ---------------------------------------------------------------------------
# generate command
# ---------------------------------------------------------------------------


@cli.command(name="generate")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=False))
@click.option("--root", default=None, help="Source root that module names are computed from")
@click.option("--output", "-o", default=None, help="Write generated modules under this directory")
@click.option("--config", "config_path", default=None, help="Path to a thaw.yaml file")
@click.option(
    "--check",
    is_flag=True,
    default=False,
    help="Fail if generated modules are missing or out of date instead of writing them",
)
def generate_command(
    paths: tuple[str, ...],
    root: str | None,
    output: str | None,
    config_path: str | None,
    check: bool,
) -> None:
    """Generate companion modules for tagged frozen dataclasses.

    PATHS are Python files or directories to read.

    Examples:

    \b
        thaw generate src/app --root src
        thaw generate src/app --root src --check
    """
    from thaw.compiler import compile as thaw_compile

    config = _load_config_or_exit(config_path).with_overrides(
        source_root=root, output_dir=output
    )
    graph = _read_or_exit(paths, config)
    result = thaw_compile(graph, config)

    if result.diagnostics:
        _print_diagnostics(result.diagnostics, "thaw diagnostics")

    if check:
        stale = [
            path
            for path, text in result.files.items()
            if not Path(path).is_file() or Path(path).read_text(encoding="utf-8") != text
        ]
        for path in stale:
            console.print(f"[yellow]OUT OF DATE[/yellow] {path}")
        if stale or result.has_errors:
            sys.exit(1)
        console.print(f"[green]OK[/green] {len(result.files)} module(s) up to date")
        return

    for path, text in result.files.items():
        dest = Path(path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(text, encoding="utf-8")
        console.print(f"[green]Written:[/green] {dest}")

    errors = [d for d in result.diagnostics if d.is_error]
    console.print(
        f"\n[bold]Generated[/bold] {len(result.files)} module(s), {len(errors)} error(s)"
    )
    if errors:
        sys.exit(1)


# ---------------------------------------------------------------------------
# inspect command
# ---------------------------------------------------------------------------


@cli.command(name="inspect")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=False))
@click.option("--root", default=None, help="Source root that module names are computed from")
@click.option("--config", "config_path", default=None, help="Path to a thaw.yaml file")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "yaml"], case_sensitive=False),
    default="yaml",
    help="Graph output format",
)
@click.option("--output", "-o", default=None, help="Output file path (defaults to stdout)")
def inspect_command(
    paths: tuple[str, ...],
    root: str | None,
    config_path: str | None,
    output_format: str,
    output: str | None,
) -> None:
    """Read sources and dump the type graph.

    PATHS are Python files or directories to read.
    """
    from thaw.graph.serializer import GraphSerializer

    config = _load_config_or_exit(config_path).with_overrides(source_root=root)
    graph = _read_or_exit(paths, config)
    serializer = GraphSerializer()

    if output_format.lower() == "json":
        text = serializer.to_json(graph, indent=2)
        lang = "json"
    else:
        text = serializer.to_yaml(graph)
        lang = "yaml"

    if output:
        Path(output).write_text(text, encoding="utf-8")
        console.print(f"[green]Type graph written to[/green] {output}")
    else:
        syntax = Syntax(text, lang, line_numbers=False)
        console.print(syntax)


if __name__ == "__main__":
    cli()
