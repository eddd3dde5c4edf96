"""Package registry and step resolution.

The registry is built once from validated configs and is read-only afterwards.
Parameter precedence, lowest to highest:
1. package `prefs` and `params`
2. step `params`
3. the reference's `params` overlay
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from lazycli.lib.errors import ConfigError, RequirementError
from lazycli.lib.models import (
    Config,
    Item,
    LiteralText,
    PreviewStep,
    Step,
    StepAction,
    StepReference,
)

log = logging.getLogger(__name__)

ERROR_PACKAGE = "error"


@dataclass(frozen=True)
class Package:
    """One loaded package: its steps, shared preferences and root entries."""

    name: str
    steps: Mapping[str, Step]
    prefs: Mapping[str, object] = field(default_factory=dict)
    icon: str | None = None
    roots: tuple[StepReference | Item, ...] = ()


def placeholder_step(message: str) -> PreviewStep:
    """A stand-in step shown when a reference cannot be resolved."""
    return PreviewStep(
        title=message,
        package_name=ERROR_PACKAGE,
        source=LiteralText(text=message),
    )


def check_requirements(config: Config, search_path: str | None = None) -> None:
    """Ensure every required executable of a package resolves on the search path."""
    for requirement in config.requirements:
        if shutil.which(requirement, path=search_path) is None:
            raise RequirementError(requirement, config.package_name or "")


def build_package(config: Config) -> Package:
    """Attach package identity and defaults to every step of a config."""
    name = config.package_name or ""
    defaults = {**config.prefs, **config.params}
    steps = {
        step_id: step.model_copy(
            update={
                "package_name": name,
                "params": {**defaults, **step.params},
            }
        )
        for step_id, step in config.steps.items()
    }
    return Package(
        name=name,
        steps=MappingProxyType(steps),
        prefs=MappingProxyType(dict(config.prefs)),
        icon=config.icon,
        roots=tuple(config.roots),
    )


class Registry:
    """Immutable mapping of package identifier to Package."""

    def __init__(self, packages: Mapping[str, Package] | None = None):
        self._packages = MappingProxyType(dict(packages or {}))

    @classmethod
    def load(cls, configs: Iterable[Config], search_path: str | None = None) -> "Registry":
        """Build a registry, checking requirements first.

        Raises:
            ConfigError: On duplicate package identifiers.
            RequirementError: If any required executable is missing.
        """
        packages: dict[str, Package] = {}
        for config in configs:
            check_requirements(config, search_path)
            package = build_package(config)
            if package.name in packages:
                raise ConfigError(f"duplicate package `{package.name}`")
            packages[package.name] = package
            log.info("package `%s`: %d steps", package.name, len(package.steps))
        return cls(packages)

    @property
    def packages(self) -> Mapping[str, Package]:
        return self._packages

    def get_step(self, reference: StepReference, current_package: str | None = None) -> Step:
        """Resolve a reference to a step.

        Never raises: unknown packages or steps yield a placeholder preview step.
        The returned step is a fresh copy with the package prefs attached and
        the reference params merged over the step defaults.
        """
        package_name = reference.package_name or current_package or ""
        package = self._packages.get(package_name)
        if package is None:
            return placeholder_step(f"Package `{package_name}` does not exist!")

        step = package.steps.get(reference.target)
        if step is None:
            return placeholder_step(
                f"Step `{reference.target}` does not exist in package `{package_name}`!"
            )

        return step.model_copy(
            update={
                "prefs": dict(package.prefs),
                "params": {**step.params, **reference.params},
            }
        )

    def list_roots(self) -> list[Item]:
        """Top-level items of every package, in load order."""
        items: list[Item] = []
        for package in self._packages.values():
            for root in package.roots:
                items.append(self._root_item(package, root))
        return items

    def _root_item(self, package: Package, root: StepReference | Item) -> Item:
        if isinstance(root, Item):
            if root.icon is None and package.icon:
                root = root.model_copy(update={"icon": package.icon})
            return root.model_copy(
                update={"actions": [with_package(a, package.name) for a in root.actions]}
            )

        step = self.get_step(root, package.name)
        title = root.alias or step.title or root.target
        action = StepAction(
            target=root.target,
            package_name=root.package_name or package.name,
            params=dict(root.params),
            title=title,
        )
        return Item(title=title, subtitle=package.name, icon=package.icon, actions=[action])


def with_package(action, package_name: str):
    """Default a step action's package to `package_name`."""
    if isinstance(action, StepAction) and not action.package_name:
        return action.model_copy(update={"package_name": package_name})
    return action
