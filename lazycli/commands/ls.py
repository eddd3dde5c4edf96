"""ls command - print root items, one JSON object per line"""

from __future__ import annotations

from lazycli.lib.context import CLIContext
from lazycli.lib.errors import LazyError, handle_error

from .utils import build_engine, emit


def ls_command(ctx: CLIContext) -> None:
    """Print the root menu."""
    try:
        engine = build_engine(ctx)
        for item in engine.ls():
            emit(item)
    except LazyError as e:
        handle_error(e)
