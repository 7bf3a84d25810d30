"""
winreg backend — live Windows registry access.

Keys are opened read-only with just the rights needed to query values
and enumerate subkeys.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from check_reboot.adapters.base import (
    KeyNotFoundError,
    RegistryBackend,
    RegistryKeyHandle,
    ValueNotFoundError,
)
from check_reboot.core.errors import UnsupportedPlatformError
from check_reboot.core.models.registry import RegistryValue, RootKey

logger = logging.getLogger(__name__)

if sys.platform == "win32":
    import winreg
else:
    winreg = None


def is_supported() -> bool:
    """Whether the live registry is available on this platform."""
    return winreg is not None


class WinRegKeyHandle(RegistryKeyHandle):
    """Handle wrapping a ``winreg.HKEYType``."""

    def __init__(self, root: RootKey, path: str, hkey: Any):
        super().__init__(root, path)
        self._hkey = hkey

    def get_value(self, name: str) -> RegistryValue:
        try:
            data, value_type = winreg.QueryValueEx(self._hkey, name)
        except FileNotFoundError as e:
            raise ValueNotFoundError(f"value {name} not found") from e
        return RegistryValue(data=data, value_type=value_type)

    def subkey_names(self) -> list[str]:
        count = winreg.QueryInfoKey(self._hkey)[0]
        return [winreg.EnumKey(self._hkey, i) for i in range(count)]

    def _release(self) -> None:
        self._hkey.Close()


class WinRegBackend(RegistryBackend):
    """Registry backend over the stdlib ``winreg`` module."""

    def __init__(self) -> None:
        if winreg is None:
            raise UnsupportedPlatformError(
                "unsupported OS detected; the live registry requires Windows"
            )
        self._roots = {
            RootKey.CLASSES_ROOT: winreg.HKEY_CLASSES_ROOT,
            RootKey.CURRENT_USER: winreg.HKEY_CURRENT_USER,
            RootKey.LOCAL_MACHINE: winreg.HKEY_LOCAL_MACHINE,
            RootKey.USERS: winreg.HKEY_USERS,
            RootKey.CURRENT_CONFIG: winreg.HKEY_CURRENT_CONFIG,
            RootKey.PERFORMANCE_DATA: winreg.HKEY_PERFORMANCE_DATA,
        }

    @property
    def name(self) -> str:
        return "winreg"

    def open_key(self, root: RootKey, path: str) -> WinRegKeyHandle:
        access = winreg.KEY_QUERY_VALUE | winreg.KEY_ENUMERATE_SUB_KEYS
        try:
            hkey = winreg.OpenKey(self._roots[root], path, 0, access)
        except FileNotFoundError as e:
            raise KeyNotFoundError(f"key {root.value}\\{path} not found") from e
        logger.debug("Opened registry key %s\\%s", root.value, path)
        return WinRegKeyHandle(root, path, hkey)
