"""Dynamic list generation.

A `filter` or `query` step names a generator command. Its stdout is split
into lines, and every non-empty line becomes an Item rendered from the
step's item template with the per-line binding:

    line    the raw line
    words   the line split on the template delimiter (default: whitespace)
    json    the line parsed as JSON, or None
    params  step parameters
    prefs   package preferences
    query   live search text (query steps only, also bound as QUERY)
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Sequence

from lazycli.lib.errors import ExecutionError
from lazycli.lib.executor import Executor
from lazycli.lib.models import (
    Action,
    BaseStep,
    CommandAction,
    DynamicStep,
    Item,
    ItemTemplate,
    QueryStep,
    ShellCommand,
    StepAction,
)
from lazycli.lib.template import render_object, render_string

log = logging.getLogger(__name__)


def step_context(step: BaseStep, query: str | None = None) -> dict[str, Any]:
    """Base template context of a step."""
    context: dict[str, Any] = {"params": dict(step.params), "prefs": dict(step.prefs)}
    if isinstance(step, QueryStep):
        context["query"] = query or ""
        context["QUERY"] = query or ""
    return context


def parse_json(line: str) -> Any:
    """Parse a line as JSON, or None if it isn't."""
    try:
        return json.loads(line)
    except ValueError:
        return None


def split_words(line: str, delimiter: str | None = None) -> list[str]:
    if delimiter:
        return line.split(delimiter)
    return line.split()


def split_lines(stdout: str, skip_lines: int = 0) -> list[str]:
    """Output lines after `skip_lines` header lines, without empty lines."""
    lines = stdout.splitlines()[skip_lines:]
    return [line for line in lines if line]


def line_binding(line: str, template: ItemTemplate, context: dict[str, Any]) -> dict[str, Any]:
    return {
        **context,
        "line": line,
        "words": split_words(line, template.delimiter),
        "json": parse_json(line),
    }


def is_action_visible(action: Action, binding: dict[str, Any] | None = None, line: str | None = None) -> bool:
    """Whether an action survives its `condition` and `match` filters.

    Without a binding the condition is compared literally, as for static items.
    """
    if action.condition is not None:
        condition = action.condition
        if binding is not None:
            condition = render_string(condition, binding)
        if condition.strip().lower() == "false":
            return False
    if action.match is not None and line is not None:
        if re.search(action.match, line) is None:
            return False
    return True


def render_action(action: Action, context: dict[str, Any], package_name: str) -> Action:
    """Render an action's string fields; filters are dropped once evaluated."""
    data = action.model_dump(exclude={"condition", "match", "params"})
    rendered = render_object(data, context)
    rendered.update(condition=None, match=None)
    if isinstance(action, StepAction):
        rendered["params"] = render_object(action.params, context)
        rendered["package_name"] = rendered.get("package_name") or package_name
        return StepAction.model_validate(rendered)
    return CommandAction.model_validate(rendered)


def filter_actions(
    actions: Sequence[Action],
    package_name: str,
    binding: dict[str, Any] | None = None,
    line: str | None = None,
) -> list[Action]:
    """Visible actions, rendered when a binding is given."""
    result: list[Action] = []
    for action in actions:
        if not is_action_visible(action, binding, line):
            continue
        if binding is not None:
            result.append(render_action(action, binding, package_name))
        elif isinstance(action, StepAction) and not action.package_name:
            result.append(action.model_copy(update={"package_name": package_name}))
        else:
            result.append(action)
    return result


def line_to_item(line: str, step: DynamicStep, context: dict[str, Any]) -> Item:
    """Build one item from one output line."""
    template = step.items
    binding = line_binding(line, template, context)

    def render(field: str | None) -> str | None:
        return render_string(field, binding) if field is not None else None

    return Item(
        title=render(template.title) if template.title else line,
        subtitle=render(template.subtitle),
        icon=render(template.icon),
        preview=render(template.preview),
        actions=filter_actions(template.actions, step.package_name, binding, line),
    )


def lines_to_items(stdout: str, step: DynamicStep, context: dict[str, Any]) -> list[Item]:
    """Turn generator output into items. Pure: same output, same items."""
    lines = split_lines(stdout, step.items.generator.skip_lines)
    return [line_to_item(line, step, context) for line in lines]


async def run_source(command: ShellCommand, context: dict[str, Any], executor: Executor) -> str:
    """Render and run a command, returning its stdout."""
    rendered = render_string(command.command, context)
    try:
        result = await executor.run(rendered, command.shell)
    except ExecutionError as e:
        if command.error_message:
            raise ExecutionError(
                rendered, e.returncode, e.stderr, message=command.error_message
            ) from e
        raise
    return result.stdout


async def generate_items(step: DynamicStep, executor: Executor, query: str | None = None) -> list[Item]:
    """Run a step's generator and build its items.

    A query step with empty search text yields no items and runs nothing.
    """
    if isinstance(step, QueryStep) and not query:
        return []

    context = step_context(step, query)
    stdout = await run_source(step.items.generator, context, executor)
    items = lines_to_items(stdout, step, context)
    log.debug("%s/%s: %d items", step.package_name, step.title, len(items))
    return items
