"""Lazy CLI Main Entry Point

Lazy - declarative command launcher engine.
Packages are YAML documents describing parameterized command menus; a host
renderer drives the engine through these verbs:

Usage:
    lazy ls                              # root items, one JSON object per line
    lazy ref '<step-ref>' [query]        # realize a step as a JSON list
    lazy run '<action>'                  # run a command action
    lazy submit '<step-ref>' '<values>'  # render a form's submit action
    lazy serve                           # answer JSON request frames on stdin
    lazy check                           # validate packages and requirements
    lazy schema                          # print the config JSON schema
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from ._version import __version__
from .commands import (
    check_command,
    ls_command,
    ref_command,
    run_command,
    serve_command,
    submit_command,
)
from .commands.utils import setup_logging
from .lib.context import CLIContext
from .lib.loader import config_schema

typer_app = typer.Typer(no_args_is_help=True, add_completion=False)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"lazy {__version__}")
        raise typer.Exit()


@typer_app.callback()
def main(
    ctx: typer.Context,
    config_dir: Optional[Path] = typer.Option(
        None, "-c", "--config-dir", help="Directory holding package YAML files."
    ),
    path: Optional[str] = typer.Option(
        None, "--path", help="Executable search path (leading ~ is expanded)."
    ),
    shell: Optional[str] = typer.Option(None, "--shell", help="Default shell for commands."),
    verbose: bool = typer.Option(False, "--verbose", help="Log to stderr at INFO level."),
    version: bool = typer.Option(
        False, "-v", "--version", callback=_version_callback, is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Declarative command launcher engine."""
    setup_logging(verbose)
    ctx.obj = CLIContext(config_dir=config_dir, path=path, shell=shell, verbose=verbose)


@typer_app.command("ls")
def ls(ctx: typer.Context) -> None:
    """Print root items, one JSON object per line."""
    ls_command(ctx.obj)


@typer_app.command("ref")
def ref(
    ctx: typer.Context,
    reference: str = typer.Argument(..., help="Step reference as JSON."),
    query: Optional[str] = typer.Argument(None, help="Current search text."),
) -> None:
    """Resolve a step reference into a displayable list."""
    ref_command(ctx.obj, reference, query)


@typer_app.command("run")
def run(
    ctx: typer.Context,
    action: str = typer.Argument(..., help="Action as JSON."),
) -> None:
    """Execute a command action."""
    run_command(ctx.obj, action)


@typer_app.command("submit")
def submit(
    ctx: typer.Context,
    reference: str = typer.Argument(..., help="Form step reference as JSON."),
    values: str = typer.Argument(..., help="Submitted field values as a JSON object."),
) -> None:
    """Render a form's submit action with the submitted values."""
    submit_command(ctx.obj, reference, values)


@typer_app.command("serve")
def serve(ctx: typer.Context) -> None:
    """Answer newline-delimited JSON requests on stdin."""
    serve_command(ctx.obj)


@typer_app.command("check")
def check(ctx: typer.Context) -> None:
    """Validate packages and their requirements."""
    check_command(ctx.obj)


@typer_app.command("schema")
def schema() -> None:
    """Print the JSON schema of a package document."""
    typer.echo(config_schema())


def app() -> None:
    """Entry point for the CLI."""
    typer_app()


if __name__ == "__main__":
    app()
