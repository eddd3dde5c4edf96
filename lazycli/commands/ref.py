"""ref command - resolve a step reference into a displayable list"""

from __future__ import annotations

import asyncio
from typing import Optional

from lazycli.lib.context import CLIContext
from lazycli.lib.errors import LazyError, handle_error
from lazycli.lib.protocol import parse_reference

from .utils import build_engine, emit


def ref_command(ctx: CLIContext, reference: str, query: Optional[str] = None) -> None:
    """Print the realized step as one JSON object."""
    try:
        step_ref = parse_reference(reference)
        engine = build_engine(ctx)
        emit(asyncio.run(engine.ref(step_ref, query)))
    except LazyError as e:
        handle_error(e)
