"""Shared error handling for lazycli."""

from __future__ import annotations

import sys
from typing import Any, NoReturn

import typer


class LazyError(Exception):
    """Base exception for lazy operations."""

    def __init__(self, message: str, exit_code: int = 1) -> None:
        self.message = message
        self.exit_code = exit_code
        super().__init__(message)


class ConfigError(LazyError):
    """Raised when a config document cannot be loaded or validated."""

    def __init__(self, message: str, path: Any = None) -> None:
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message, exit_code=2)


class RequirementError(ConfigError):
    """Raised when a required executable is not on the search path."""

    def __init__(self, executable: str, package_name: str) -> None:
        self.executable = executable
        self.package_name = package_name
        super().__init__(
            f"Required executable `{executable}` of package `{package_name}` "
            "was not found on PATH"
        )


class TemplateError(LazyError):
    """Raised when a template cannot be rendered."""

    def __init__(self, reason: str, template: str, context: dict[str, Any]) -> None:
        self.reason = reason
        self.template = template
        self.context_keys = sorted(context)
        super().__init__(
            f"Failed to render template {template!r}: {reason} "
            f"(available variables: {', '.join(self.context_keys) or 'none'})"
        )


class ExecutionError(LazyError):
    """Raised when a shell command exits non-zero or cannot be spawned."""

    def __init__(
        self,
        command: str,
        exit_code: int | None,
        stderr: str = "",
        message: str | None = None,
    ) -> None:
        self.command = command
        self.returncode = exit_code
        self.stderr = stderr
        if message is None:
            status = "could not be started" if exit_code is None else f"exited with {exit_code}"
            message = f"Command `{command}` {status}"
            if stderr.strip():
                message += f": {stderr.strip()}"
        super().__init__(message, exit_code=1)


class ProtocolError(LazyError):
    """Raised for malformed protocol requests."""

    def __init__(self, message: str) -> None:
        super().__init__(message, exit_code=64)


def exit_with_error(message: str, exit_code: int = 1) -> NoReturn:
    """Exit the program with an error message."""
    typer.echo(f"Error: {message}", err=True)
    sys.exit(exit_code)


def handle_error(error: Exception) -> NoReturn:
    """Handle and exit on lazy errors."""
    if isinstance(error, LazyError):
        exit_with_error(error.message, error.exit_code)
    else:
        # Unexpected error
        typer.echo(f"Unexpected error: {error}", err=True)
        sys.exit(1)
