"""Config schema for lazy packages.

A package document (one YAML file) looks like:

    requirements: [git]
    icon: git.png
    prefs: {remote: origin}
    steps:
      branches:
        type: filter
        title: Branches
        items:
          generator: git branch --format='%(refname:short)'
          actions:
            - type: run
              title: Checkout
              command: git checkout {{ line }}
    roots:
      - target: branches
        alias: Git Branches

Steps and actions are tagged unions discriminated by `type`.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    field_validator,
    model_validator,
)


class Model(BaseModel):
    """Base model accepting both the camelCase config spelling and field names."""

    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        """Wire representation (camelCase, no nulls)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# Command sources - literal text or shell command
# =============================================================================


class LiteralText(Model):
    """A literal string used as-is (after template rendering)."""

    kind: Literal["literal"] = "literal"
    text: str


class ShellCommand(Model):
    """A shell command whose stdout provides the value."""

    kind: Literal["shell"] = "shell"
    command: str
    shell: str | None = None
    skip_lines: int = Field(default=0, ge=0)
    error_message: str | None = Field(default=None, alias="errorMessage")


Source = Annotated[Union[LiteralText, ShellCommand], Field(discriminator="kind")]


def normalize_command(value: Any) -> Any:
    """Normalize `"cmd"` or `{command, shell}` into a ShellCommand mapping."""
    if isinstance(value, str):
        return {"kind": "shell", "command": value}
    if isinstance(value, dict) and "kind" not in value:
        return {"kind": "shell", **value}
    return value


# =============================================================================
# Actions
# =============================================================================


class StepReference(Model):
    """Points at a step, optionally in another package."""

    target: str
    package_name: str | None = Field(default=None, alias="packageName")
    alias: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)


class BaseAction(Model):
    title: str | None = None
    condition: str | None = None
    match: str | None = None
    shortcut: str | None = None

    @field_validator("match")
    @classmethod
    def _compile_match(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                re.compile(value)
            except re.error as e:
                raise ValueError(f"invalid match pattern {value!r}: {e}") from e
        return value


class CommandAction(BaseAction):
    """Run a shell command."""

    type: Literal["run"] = "run"
    command: str
    shell: str | None = None
    confirm: bool = False
    update_items: bool = Field(default=False, alias="updateItems")
    error_message: str | None = Field(default=None, alias="errorMessage")


class StepAction(BaseAction, StepReference):
    """Navigate to another step."""

    type: Literal["ref"] = "ref"


Action = Annotated[Union[CommandAction, StepAction], Field(discriminator="type")]


# =============================================================================
# Items
# =============================================================================


class Item(Model):
    """A renderable list entry."""

    title: str
    subtitle: str | None = None
    icon: str | None = None
    preview: str | None = None
    actions: list[Action] = Field(default_factory=list)


class ItemTemplate(Model):
    """How to turn each generator output line into an Item."""

    title: str | None = None
    subtitle: str | None = None
    icon: str | None = None
    preview: str | None = None
    delimiter: str | None = None
    generator: ShellCommand
    actions: list[Action] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize_generator(cls, data: Any) -> Any:
        if isinstance(data, dict) and "generator" in data:
            data = {**data, "generator": normalize_command(data["generator"])}
        return data


# =============================================================================
# Form fields
# =============================================================================


class BaseField(Model):
    id: str
    title: str | None = None
    required: bool = False


class CheckboxField(BaseField):
    type: Literal["checkbox"] = "checkbox"
    label: str | None = None
    default: bool = False


class DropdownOption(Model):
    title: str
    value: str


class DropdownField(BaseField):
    type: Literal["dropdown"] = "dropdown"
    options: list[DropdownOption] = Field(default_factory=list)
    default: str | None = None


class TextField(BaseField):
    type: Literal["textfield"] = "textfield"
    default: str | None = None
    placeholder: str | None = None


class TextAreaField(BaseField):
    type: Literal["textarea"] = "textarea"
    default: str | None = None
    placeholder: str | None = None


FormField = Annotated[
    Union[CheckboxField, DropdownField, TextField, TextAreaField],
    Field(discriminator="type"),
]


# =============================================================================
# Steps
# =============================================================================


class BaseStep(Model):
    """Fields shared by every step variant.

    `package_name` and `prefs` are filled in by the registry; `params` holds
    the step defaults merged with the package defaults.
    """

    title: str = ""
    package_name: str = Field(default="", alias="packageName")
    params: dict[str, Any] = Field(default_factory=dict)
    prefs: dict[str, Any] = Field(default_factory=dict)


class StaticStep(BaseStep):
    type: Literal["static"] = "static"
    items: list[Item] = Field(default_factory=list)


class FilterStep(BaseStep):
    type: Literal["filter"] = "filter"
    items: ItemTemplate


class QueryStep(BaseStep):
    type: Literal["query"] = "query"
    items: ItemTemplate


class PreviewStep(BaseStep):
    type: Literal["preview"] = "preview"
    source: Source
    markdown: bool = False
    actions: list[Action] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize_source(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "source" in data:
            return data
        data = dict(data)
        if "text" in data:
            data["source"] = {"kind": "literal", "text": data.pop("text")}
        elif "command" in data:
            data["source"] = normalize_command(data.pop("command"))
        return data


class FormStep(BaseStep):
    type: Literal["form"] = "form"
    fields: list[FormField] = Field(default_factory=list)
    submit: Action


class IfStep(BaseStep):
    type: Literal["if"] = "if"
    condition: ShellCommand
    success: StepReference
    failure: StepReference

    @model_validator(mode="before")
    @classmethod
    def _normalize_condition(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "condition" in data:
            data["condition"] = normalize_command(data["condition"])
        # `success: other-step` shorthand
        for branch in ("success", "failure"):
            if isinstance(data.get(branch), str):
                data[branch] = {"target": data[branch]}
        return data


Step = Annotated[
    Union[StaticStep, FilterStep, QueryStep, PreviewStep, FormStep, IfStep],
    Field(discriminator="type"),
]

DynamicStep = Union[FilterStep, QueryStep]


# =============================================================================
# Package config
# =============================================================================


def _root_kind(value: Any) -> str:
    if isinstance(value, dict):
        return "ref" if "target" in value else "item"
    return "ref" if isinstance(value, StepReference) else "item"


RootEntry = Annotated[
    Union[Annotated[StepReference, Tag("ref")], Annotated[Item, Tag("item")]],
    Discriminator(_root_kind),
]


class Config(Model):
    """One package document."""

    package_name: str | None = Field(default=None, alias="packageName")
    requirements: list[str] = Field(default_factory=list)
    icon: str | None = None
    prefs: dict[str, Any] = Field(default_factory=dict)
    params: dict[str, Any] = Field(default_factory=dict)
    steps: dict[str, Step] = Field(default_factory=dict)
    roots: list[RootEntry] = Field(default_factory=list)


# =============================================================================
# Realized steps (renderer-facing)
# =============================================================================


class StepList(Model):
    """A realized step, ready for a host renderer."""

    type: str
    title: str = ""
    package_name: str = Field(default="", alias="packageName")
    items: list[Item] = Field(default_factory=list)
    markdown: bool | None = None
    fields: list[FormField] | None = None
    submit: Action | None = None


class RunResult(Model):
    """Outcome of running a command action."""

    stdout: str = ""
