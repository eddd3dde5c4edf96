"""serve command - answer request frames on stdin until EOF"""

from __future__ import annotations

import asyncio
import sys

from lazycli.lib.context import CLIContext
from lazycli.lib.engine import Engine
from lazycli.lib.errors import LazyError, handle_error
from lazycli.lib.protocol import Server

from .utils import build_engine


async def _serve(engine: Engine) -> None:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)

    def write(frame: str) -> None:
        sys.stdout.write(frame)
        sys.stdout.flush()

    await Server(engine).serve(reader, write)


def serve_command(ctx: CLIContext) -> None:
    """Load packages once, then serve requests."""
    try:
        engine = build_engine(ctx)
    except LazyError as e:
        handle_error(e)
    asyncio.run(_serve(engine))
