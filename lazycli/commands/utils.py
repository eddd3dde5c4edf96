"""Shared utilities for CLI commands"""

from __future__ import annotations

import logging
import os
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler

from lazycli.lib.context import CLIContext
from lazycli.lib.engine import Engine
from lazycli.lib.executor import Executor
from lazycli.lib.loader import load_configs
from lazycli.lib.models import Model
from lazycli.lib.protocol import encode_frame
from lazycli.lib.registry import Registry
from lazycli.lib.settings import LazySettings, apply_search_path

# stdout carries protocol frames; everything human-facing goes to stderr
console = Console(stderr=True)

log = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the lazy CLI.

    Log levels:
    - Normal: Only warnings/errors shown
    - Verbose (-v): INFO level - shows package loading, failed commands
    - Debug (LAZY_DEBUG=1): DEBUG level - shows every executed command
    """
    if os.environ.get("LAZY_DEBUG"):
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=console,
        show_time=verbose,
        show_path=bool(os.environ.get("LAZY_DEBUG")),
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    lazy_logger = logging.getLogger("lazycli")
    lazy_logger.setLevel(level)
    lazy_logger.handlers = [handler]
    lazy_logger.propagate = False


def get_settings(ctx: CLIContext) -> LazySettings:
    return LazySettings.from_env(config_dir=ctx.config_dir, path=ctx.path, shell=ctx.shell)


def load_registry(settings: LazySettings) -> Registry:
    """Export the search path, then load and check every package."""
    search_path = apply_search_path(settings.path)
    configs = load_configs(settings.config_dir)
    return Registry.load(configs, search_path=search_path)


def build_engine(ctx: CLIContext) -> Engine:
    settings = get_settings(ctx)
    registry = load_registry(settings)
    return Engine(registry, Executor(shell=settings.shell))


def emit(payload: Model | dict[str, Any] | list[Any]) -> None:
    """Write one protocol frame to stdout."""
    typer.echo(encode_frame(payload), nl=False)
