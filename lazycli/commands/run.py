"""run command - execute one action"""

from __future__ import annotations

import asyncio

from lazycli.lib.context import CLIContext
from lazycli.lib.errors import LazyError, handle_error
from lazycli.lib.protocol import parse_action

from .utils import build_engine, emit


def run_command(ctx: CLIContext, action: str) -> None:
    """Run a command action.

    Prints `{"stdout": ...}` when the command wrote output; prints nothing
    otherwise, which tells the host to close back to the root menu.
    """
    try:
        parsed = parse_action(action)
        engine = build_engine(ctx)
        result = asyncio.run(engine.run(parsed))
    except LazyError as e:
        handle_error(e)

    if result.stdout:
        emit(result)
