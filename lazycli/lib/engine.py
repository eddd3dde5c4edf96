"""Engine - the in-process entry point for the ls/ref/run/submit verbs.

The engine owns a Registry and an Executor and turns step references into
renderer-facing StepList values. Transports (CLI subprocess, `serve` loop,
in-process) all go through this class.
"""

from __future__ import annotations

import logging
from typing import Any

from lazycli.lib.conditional import resolve_conditional
from lazycli.lib.errors import ExecutionError, LazyError, ProtocolError
from lazycli.lib.executor import Executor
from lazycli.lib.items import filter_actions, generate_items, render_action, run_source, step_context
from lazycli.lib.models import (
    Action,
    CommandAction,
    FilterStep,
    FormStep,
    IfStep,
    Item,
    LiteralText,
    PreviewStep,
    QueryStep,
    RunResult,
    StaticStep,
    Step,
    StepList,
    StepReference,
)
from lazycli.lib.registry import ERROR_PACKAGE, Registry
from lazycli.lib.template import render_object, render_string

log = logging.getLogger(__name__)

MAX_CONDITIONAL_DEPTH = 16


class Engine:
    """Resolves and realizes steps against a loaded registry."""

    def __init__(self, registry: Registry, executor: Executor | None = None):
        self.registry = registry
        self.executor = executor or Executor()

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def ls(self) -> list[Item]:
        """Root items of every package."""
        return self.registry.list_roots()

    async def ref(self, reference: StepReference, query: str | None = None) -> StepList:
        """Resolve a reference and realize the step it points at."""
        step = self.registry.get_step(reference, reference.package_name)
        return await self.realize(step, query)

    async def run(self, action: Action) -> RunResult:
        """Execute a command action.

        Raises:
            ProtocolError: If the action is not a command action.
            ExecutionError: If the command fails; carries `errorMessage` when set.
        """
        if not isinstance(action, CommandAction):
            raise ProtocolError("only `run` actions can be executed; use `ref` for step actions")
        try:
            result = await self.executor.run(action.command, action.shell)
        except ExecutionError as e:
            if action.error_message:
                raise ExecutionError(
                    action.command, e.returncode, e.stderr, message=action.error_message
                ) from e
            raise
        return RunResult(stdout=result.stdout)

    async def submit(self, reference: StepReference, values: dict[str, Any]) -> Action:
        """Render a form's submit action with the submitted field values."""
        step = await self.resolve(self.registry.get_step(reference, reference.package_name))
        if not isinstance(step, FormStep):
            raise ProtocolError(f"step `{reference.target}` is not a form")
        context = {**step_context(step), "form": values}
        return render_action(step.submit, context, step.package_name)

    # ------------------------------------------------------------------
    # Realization
    # ------------------------------------------------------------------

    async def resolve(self, step: Step) -> Step:
        """Follow `if` steps until a displayable step is reached."""
        for _ in range(MAX_CONDITIONAL_DEPTH):
            if not isinstance(step, IfStep):
                return step
            step = await resolve_conditional(step, self.registry, self.executor)
        raise LazyError(f"conditional steps nested deeper than {MAX_CONDITIONAL_DEPTH}")

    async def realize(self, step: Step, query: str | None = None) -> StepList:
        """Turn a step into data a host can display."""
        step = await self.resolve(step)
        view = StepList(type=step.type, title=step.title, package_name=step.package_name)

        if isinstance(step, StaticStep):
            view.items = [
                item.model_copy(update={"actions": filter_actions(item.actions, step.package_name)})
                for item in step.items
            ]
        elif isinstance(step, (FilterStep, QueryStep)):
            view.items = await generate_items(step, self.executor, query)
        elif isinstance(step, PreviewStep):
            view.items = [await self._preview_item(step)]
            view.markdown = step.markdown
        elif isinstance(step, FormStep):
            context = step_context(step)
            view.fields = [
                type(f).model_validate(render_object(f.model_dump(), context)) for f in step.fields
            ]
            view.submit = step.submit
        return view

    async def _preview_item(self, step: PreviewStep) -> Item:
        context = step_context(step)
        if step.package_name == ERROR_PACKAGE:
            # placeholder messages quote user input verbatim
            content = step.source.text if isinstance(step.source, LiteralText) else ""
        elif isinstance(step.source, LiteralText):
            content = render_string(step.source.text, context)
        else:
            content = await run_source(step.source, context, self.executor)
        return Item(
            title=step.title,
            preview=content,
            actions=filter_actions(step.actions, step.package_name, context),
        )
