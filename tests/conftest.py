"""Shared fixtures: a small package set and a POSIX-shell executor."""

from __future__ import annotations

import asyncio

import pytest

from lazycli.lib.engine import Engine
from lazycli.lib.executor import ExecResult, Executor
from lazycli.lib.loader import load_configs
from lazycli.lib.registry import Registry

GIT_YAML = """
requirements: [sh]
icon: git.png
prefs:
  remote: origin
params:
  limit: 10
steps:
  branches:
    type: filter
    title: Branches
    items:
      generator: printf 'main\\ndev\\n'
      actions:
        - type: run
          title: Checkout {{ line }}
          command: echo checkout {{ line }}
        - type: ref
          alias: Log
          target: log
          params:
            branch: "{{ line }}"
  log:
    type: preview
    title: Log
    params:
      branch: main
    command: echo log of {{ params.branch }}
    actions:
      - type: run
        title: Push
        command: echo push {{ prefs.remote }} {{ params.branch }}
  search:
    type: query
    title: Search
    items:
      generator: printf '%s\\n' "{{ QUERY }}-1" "{{ query }}-2"
  repo:
    type: if
    title: Repo?
    condition: "true"
    success: branches
    failure: log
roots:
  - target: branches
    alias: Git Branches
  - title: Status
    actions:
      - type: run
        command: echo clean
"""

TOOLS_YAML = """
steps:
  menu:
    type: static
    title: Tools
    items:
      - title: Git branches
        actions:
          - type: ref
            target: branches
            packageName: git
          - type: run
            title: Hidden
            condition: "false"
            command: echo never
  deploy:
    type: form
    title: Deploy
    params:
      env: staging
    fields:
      - type: textfield
        id: tag
        title: Tag for {{ params.env }}
        default: latest
      - type: checkbox
        id: force
        title: Force
      - type: dropdown
        id: region
        title: Region
        options:
          - {title: EU, value: eu}
          - {title: US, value: us}
    submit:
      type: run
      title: Deploy
      command: echo deploy {{ form.tag }} to {{ params.env }}
"""


@pytest.fixture
def config_dir(tmp_path):
    root = tmp_path / "lazy"
    (root / "dev").mkdir(parents=True)
    (root / "git.yaml").write_text(GIT_YAML)
    (root / "dev" / "tools.yml").write_text(TOOLS_YAML)
    return root


@pytest.fixture
def registry(config_dir):
    return Registry.load(load_configs(config_dir))


@pytest.fixture
def executor():
    return Executor(shell="/bin/sh")


@pytest.fixture
def engine(registry, executor):
    return Engine(registry, executor)


class RecordingExecutor(Executor):
    """Returns canned output and records every command instead of spawning."""

    def __init__(self, stdout: str = "", exit_code: int = 0):
        super().__init__(shell="/bin/sh")
        self.stdout = stdout
        self.exit_code = exit_code
        self.commands: list[str] = []

    async def run(self, command, shell=None, check=True):
        self.commands.append(command)
        return self._checked(command, ExecResult(self.stdout, "", self.exit_code), check)


class GatedExecutor(Executor):
    """Blocks each command until its gate is opened; output echoes the command."""

    def __init__(self):
        super().__init__(shell="/bin/sh")
        self.gates: dict[str, asyncio.Event] = {}

    def gate(self, command: str) -> asyncio.Event:
        return self.gates.setdefault(command, asyncio.Event())

    async def run(self, command, shell=None, check=True):
        await self.gate(command).wait()
        return ExecResult(command, "", 0)
