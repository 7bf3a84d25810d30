"""
Configuration loader — reads check-reboot.yml into a CheckConfig.

The file is optional. It reads YAML, validates against the Pydantic
schema and returns a typed config object. Command-line flags are applied
on top by the caller.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from check_reboot.core.models.config import CheckConfig

logger = logging.getLogger(__name__)

# Default config filename
CHECK_CONFIG_FILE = "check-reboot.yml"


class ConfigError(Exception):
    """Raised when configuration is invalid or unreadable."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for check-reboot.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to check-reboot.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CHECK_CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def read_yaml_mapping(path: Path) -> dict[str, Any]:
    """Read a YAML file that must contain a mapping.

    Raises:
        ConfigError: If the file is missing, unreadable, invalid YAML or
            not a mapping.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    return data


def load_config(path: Path | None = None, search: bool = True) -> CheckConfig:
    """Load and validate check configuration.

    Args:
        path: Explicit path to check-reboot.yml.
        search: If no path is given, search upward from cwd. When nothing
            is found the defaults are returned.

    Returns:
        Validated CheckConfig model.

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid.
    """
    if path is None and search:
        path = find_config_file()

    if path is None:
        logger.debug("No %s found; using defaults", CHECK_CONFIG_FILE)
        return CheckConfig()

    logger.debug("Loading check config from %s", path)
    data = read_yaml_mapping(path)

    # The YAML may wrap everything under a "check_reboot" key or be flat
    config_data = data.get("check_reboot", data)
    if config_data is None:
        config_data = {}
    if isinstance(config_data, dict) and isinstance(config_data.get("log_level"), str):
        config_data["log_level"] = config_data["log_level"].upper()

    try:
        config = CheckConfig.model_validate(config_data)
    except Exception as e:
        raise ConfigError(f"Invalid check configuration: {e}") from e

    logger.info(
        "Loaded config from %s with %d extra ignore patterns",
        path,
        len(config.ignore_patterns),
    )
    return config
