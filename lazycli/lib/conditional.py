"""Conditional steps: branch on a shell command's exit status."""

from __future__ import annotations

import logging

from lazycli.lib.errors import ExecutionError
from lazycli.lib.executor import Executor
from lazycli.lib.items import step_context
from lazycli.lib.models import IfStep, Step
from lazycli.lib.registry import Registry
from lazycli.lib.template import render_string

log = logging.getLogger(__name__)


async def evaluate_condition(step: IfStep, executor: Executor) -> bool:
    """True when the condition command exits zero."""
    command = render_string(step.condition.command, step_context(step))
    try:
        await executor.run(command, step.condition.shell)
    except ExecutionError as e:
        log.debug("condition `%s` failed: %s", command, e.message)
        return False
    return True


async def resolve_conditional(step: IfStep, registry: Registry, executor: Executor) -> Step:
    """Resolve an `if` step to exactly one of its branches.

    Zero exit resolves `success`; non-zero exit or spawn failure resolves
    `failure`.
    """
    branch = step.success if await evaluate_condition(step, executor) else step.failure
    return registry.get_step(branch, step.package_name)
