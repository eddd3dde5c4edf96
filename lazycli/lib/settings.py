"""Process-level settings for the lazy engine.

Resolution order (later wins):
1. Built-in defaults
2. LAZY_* environment variables
3. CLI options
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, Field

from lazycli.lib.executor import DEFAULT_SHELL

log = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = "~/.config/lazy"

_ENV_VARS = {
    "config_dir": "LAZY_CONFIG_DIR",
    "path": "LAZY_PATH",
    "shell": "LAZY_SHELL",
    "debug": "LAZY_DEBUG",
}


class LazySettings(BaseModel):
    """Engine settings"""

    config_dir: Path = Field(default_factory=lambda: Path(DEFAULT_CONFIG_DIR).expanduser())
    path: str | None = None  # executable search path preference
    shell: str = DEFAULT_SHELL
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> "LazySettings":
        """Build settings from the environment, then apply non-None overrides."""
        environ = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for field, var in _ENV_VARS.items():
            if environ.get(var):
                data[field] = environ[var]
        data.update({k: v for k, v in overrides.items() if v is not None})
        settings = cls.model_validate(data)
        settings.config_dir = settings.config_dir.expanduser()
        return settings


def expand_search_path(pref: str) -> str:
    """Expand a leading `~` in every entry of a `:`-separated search path."""
    return os.pathsep.join(
        os.path.expanduser(entry) if entry.startswith("~") else entry
        for entry in pref.split(os.pathsep)
    )


def apply_search_path(pref: str | None) -> str:
    """Export the search path preference as PATH and return the effective PATH."""
    if pref:
        os.environ["PATH"] = expand_search_path(pref)
        log.debug("PATH=%s", os.environ["PATH"])
    return os.environ.get("PATH", "")
