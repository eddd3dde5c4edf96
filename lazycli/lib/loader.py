"""Config document discovery and validation."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from lazycli.lib.errors import ConfigError
from lazycli.lib.models import Config

log = logging.getLogger(__name__)

CONFIG_SUFFIXES = (".yaml", ".yml")


def package_name_from_path(path: Path, config_dir: Path) -> str:
    """Derive a package identifier from a config path.

    `git.yaml` -> `git`, `tools/docker.yml` -> `tools/docker`
    """
    relative = path.relative_to(config_dir).with_suffix("")
    return relative.as_posix()


def parse_config(data: Any, package_name: str, source: Any = None) -> Config:
    """Validate a raw document into a Config with its package identifier set."""
    if not isinstance(data, dict):
        raise ConfigError("config document must be a mapping", path=source)
    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid config:\n{e}", path=source) from e
    if not config.package_name:
        config.package_name = package_name
    return config


def load_config_string(content: str, package_name: str) -> Config:
    """Load a single config document from a YAML string."""
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}", path=package_name) from e
    return parse_config(data, package_name, source=package_name)


def load_config_file(path: Path, package_name: str) -> Config:
    """Load a single config document from disk."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}", path=path) from e
    return parse_config(data, package_name, source=path)


def find_config_files(config_dir: Path) -> list[Path]:
    """All config documents under `config_dir`, in a stable order."""
    return sorted(
        p for p in config_dir.rglob("*") if p.is_file() and p.suffix in CONFIG_SUFFIXES
    )


def load_configs(config_dir: Path) -> list[Config]:
    """Load and validate every config document under `config_dir`.

    Raises:
        ConfigError: If the directory is missing or any document is invalid.
    """
    if not config_dir.is_dir():
        raise ConfigError("config directory not found", path=config_dir)

    configs = []
    for path in find_config_files(config_dir):
        config = load_config_file(path, package_name_from_path(path, config_dir))
        log.debug("loaded %s as package `%s`", path, config.package_name)
        configs.append(config)
    return configs


def config_schema() -> str:
    """JSON schema of a config document."""
    return json.dumps(Config.model_json_schema(by_alias=True), indent=2)
