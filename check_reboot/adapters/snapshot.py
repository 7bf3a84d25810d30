"""
Registry snapshot loader — builds a MemoryRegistry from YAML.

A snapshot lets the full check run against a captured registry state,
e.g. to review ignore patterns from a non-Windows workstation. Format:

    HKEY_LOCAL_MACHINE:
      SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\WindowsUpdate\\Auto Update\\RebootRequired: {}
      SOFTWARE\\Microsoft\\Updates:
        UpdateExeVolatile: {type: DWORD, data: 1}
      SYSTEM\\CurrentControlSet\\Control\\ComputerName\\ComputerName:
        ComputerName: HOST01

Plain scalars infer their type (int → DWORD, str → SZ, list → MULTI_SZ).
``BINARY`` data may be given as a hex string.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from check_reboot.adapters.memory import MemoryRegistry
from check_reboot.core.config.loader import ConfigError, read_yaml_mapping
from check_reboot.core.models.registry import RootKey, ValueType

logger = logging.getLogger(__name__)


def load_snapshot(path: Path) -> MemoryRegistry:
    """Load a registry snapshot file.

    Raises:
        ConfigError: If the file cannot be read or is malformed.
    """
    data = read_yaml_mapping(path)
    registry = MemoryRegistry()

    for root_name, keys in data.items():
        root = RootKey.lookup(root_name)
        if root is None:
            raise ConfigError(f"Unknown registry root key in {path}: {root_name}")
        if keys is None:
            continue
        if not isinstance(keys, dict):
            raise ConfigError(f"Expected a mapping of keys under {root_name} in {path}")

        for key_path, values in keys.items():
            registry.add_key(root, str(key_path))
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ConfigError(f"Expected a mapping of values for {root_name}\\{key_path}")
            for value_name, entry in values.items():
                data_value, value_type = _parse_value(entry, f"{root_name}\\{key_path}\\{value_name}")
                registry.set_value(root, str(key_path), str(value_name), data_value, value_type)

    logger.info("Loaded registry snapshot from %s", path)
    return registry


def _parse_value(entry: Any, label: str) -> tuple[Any, int | None]:
    if not isinstance(entry, dict):
        return entry, None

    type_name = str(entry.get("type", "")).upper()
    data = entry.get("data")
    if not type_name:
        return data, None

    try:
        value_type = ValueType[type_name]
    except KeyError as e:
        raise ConfigError(f"Unknown value type {type_name!r} for {label}") from e

    if value_type == ValueType.BINARY and isinstance(data, str):
        try:
            data = bytes.fromhex(data)
        except ValueError as e:
            raise ConfigError(f"Invalid hex data for {label}: {e}") from e

    return data, value_type
