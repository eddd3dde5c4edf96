"""CLI runtime context."""

from dataclasses import dataclass
from pathlib import Path


@dataclass
class CLIContext:
    """Runtime context from CLI flags/environment."""

    config_dir: Path | None = None
    path: str | None = None
    shell: str | None = None
    verbose: bool = False
