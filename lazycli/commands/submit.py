"""submit command - render a form's submit action with field values"""

from __future__ import annotations

import asyncio

from pydantic import TypeAdapter

from lazycli.lib.context import CLIContext
from lazycli.lib.errors import LazyError, handle_error
from lazycli.lib.models import Action
from lazycli.lib.protocol import parse_reference, parse_values

from .utils import build_engine, emit


def submit_command(ctx: CLIContext, reference: str, values: str) -> None:
    """Print the rendered submit action as one JSON object."""
    try:
        step_ref = parse_reference(reference)
        form_values = parse_values(values)
        engine = build_engine(ctx)
        action = asyncio.run(engine.submit(step_ref, form_values))
    except LazyError as e:
        handle_error(e)

    emit(TypeAdapter(Action).dump_python(action, mode="json", by_alias=True, exclude_none=True))
