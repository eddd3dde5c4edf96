"""Template rendering for lazy configs.

Thin facade over Jinja2. Undefined variables fail loudly so that authoring
mistakes surface as errors instead of blank output.
"""

from __future__ import annotations

from typing import Any

from jinja2 import Environment, BaseLoader, StrictUndefined, TemplateError as JinjaTemplateError

from lazycli.lib.errors import TemplateError

_env = Environment(
    loader=BaseLoader(),
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)


def render_string(template: str, context: dict[str, Any] | None = None) -> str:
    """Render a template string against a variable context.

    Raises:
        TemplateError: If the template references an undefined variable or
            fails to parse.

    Example:
        >>> render_string("Hello {{ params.name }}", {"params": {"name": "world"}})
        'Hello world'
    """
    context = context or {}
    if "{" not in template:
        return template
    try:
        return _env.from_string(template).render(**context)
    except JinjaTemplateError as e:
        raise TemplateError(str(e), template, context) from e


def render_object(data: dict[str, Any], context: dict[str, Any] | None = None) -> dict[str, Any]:
    """Render every string value of a mapping; other values pass through."""
    return {
        key: render_string(value, context) if isinstance(value, str) else value
        for key, value in data.items()
    }
