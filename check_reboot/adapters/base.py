"""
Registry backend base — the contract between asserters and the registry.

Asserters never talk to ``winreg`` directly. They ask a backend for a
handle to a key, use it, and release it. Handles are context managers so
release is guaranteed on every exit path:

    with backend.open_key(RootKey.LOCAL_MACHINE, path) as handle:
        value = handle.get_value("PendingFileRenameOperations")
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType

from check_reboot.core.models.registry import RegistryValue, RootKey


class KeyNotFoundError(FileNotFoundError):
    """The requested registry key does not exist."""


class ValueNotFoundError(FileNotFoundError):
    """The requested registry value does not exist."""


class RegistryKeyHandle(ABC):
    """An open, read-only handle to a registry key."""

    def __init__(self, root: RootKey, path: str):
        self.root = root
        self.path = path
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def get_value(self, name: str) -> RegistryValue:
        """Retrieve a named value.

        Raises:
            ValueNotFoundError: If the value does not exist.
            OSError: For any other failure.
        """

    @abstractmethod
    def subkey_names(self) -> list[str]:
        """Names of the immediate subkeys."""

    def close(self) -> None:
        """Release the handle. Safe to call more than once."""
        if self._closed:
            return
        self._release()
        self._closed = True

    def _release(self) -> None:
        """Backend-specific release hook."""

    def __enter__(self) -> RegistryKeyHandle:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.root.value}\\{self.path} closed={self._closed}>"


class RegistryBackend(ABC):
    """Abstract source of registry key handles.

    To add a backend:
        1. Subclass RegistryBackend and RegistryKeyHandle
        2. Raise KeyNotFoundError / ValueNotFoundError for absent items
        3. Let any other failure surface as OSError
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The backend identifier (e.g., 'winreg', 'memory')."""

    @abstractmethod
    def open_key(self, root: RootKey, path: str) -> RegistryKeyHandle:
        """Open a key for reading.

        Raises:
            KeyNotFoundError: If the key does not exist.
            OSError: For any other failure (e.g., access denied).
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
