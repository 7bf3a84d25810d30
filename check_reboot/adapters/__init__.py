"""Adapters — registry backends used by the assertions.

Public re-exports for convenient access.
"""

from check_reboot.adapters.base import (
    KeyNotFoundError,
    RegistryBackend,
    RegistryKeyHandle,
    ValueNotFoundError,
)
from check_reboot.adapters.memory import MemoryRegistry

__all__ = [
    "KeyNotFoundError",
    "MemoryRegistry",
    "RegistryBackend",
    "RegistryKeyHandle",
    "ValueNotFoundError",
    "default_backend",
]


def default_backend() -> RegistryBackend:
    """The live registry backend for this platform.

    Raises:
        UnsupportedPlatformError: When not running on Windows.
    """
    from check_reboot.adapters.winreg_backend import WinRegBackend

    return WinRegBackend()
