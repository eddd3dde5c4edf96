"""Shell command execution.

Commands run through a shell from the user's home directory with the
current process environment (including the exported search path).
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from lazycli.lib.errors import ExecutionError

log = logging.getLogger(__name__)

DEFAULT_SHELL = "/bin/bash"


@dataclass(frozen=True)
class ExecResult:
    """Captured output of a finished command."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def _strip_final_newline(text: str) -> str:
    return text[:-1] if text.endswith("\n") else text


class Executor:
    """Runs command lines through a shell without blocking the event loop."""

    def __init__(self, shell: str | None = None, cwd: Path | None = None):
        self.shell = shell or DEFAULT_SHELL
        self.cwd = cwd or Path.home()

    async def run(self, command: str, shell: str | None = None, check: bool = True) -> ExecResult:
        """Run a command and capture its output.

        Args:
            command: Command line passed to the shell.
            shell: Shell executable; defaults to the executor's shell.
            check: Raise ExecutionError on non-zero exit.

        Raises:
            ExecutionError: On spawn failure, or non-zero exit when `check`.
        """
        shell = shell or self.shell
        log.debug("exec [%s]: %s", shell, command)
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.cwd),
                env=os.environ.copy(),
                executable=shell,
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            log.info("failed to start `%s`: %s", command, e)
            raise ExecutionError(command, None, str(e)) from e

        result = ExecResult(
            stdout=_strip_final_newline(stdout.decode(errors="replace")),
            stderr=_strip_final_newline(stderr.decode(errors="replace")),
            exit_code=process.returncode if process.returncode is not None else -1,
        )
        return self._checked(command, result, check)

    @staticmethod
    def _checked(command: str, result: ExecResult, check: bool) -> ExecResult:
        if check and not result.ok:
            log.info("`%s` exited with %d", command, result.exit_code)
            raise ExecutionError(command, result.exit_code, result.stderr)
        return result
