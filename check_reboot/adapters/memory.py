"""
In-memory registry backend — a registry that lives in a dict.

Used as the test double for every registry behavior and as the target of
offline snapshot evaluation. Keys and value names are matched
case-insensitively like the real registry. Failures can be injected per
key and operation, and open handles are counted so callers can prove
every handle was released.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from check_reboot.adapters.base import (
    KeyNotFoundError,
    RegistryBackend,
    RegistryKeyHandle,
    ValueNotFoundError,
)
from check_reboot.core.models.registry import RegistryData, RegistryValue, RootKey, ValueType

logger = logging.getLogger(__name__)

_OPERATIONS = ("open", "value", "subkeys")


def infer_value_type(data: RegistryData) -> ValueType:
    """Pick the natural registry type for a Python value."""
    if isinstance(data, bool) or isinstance(data, int):
        return ValueType.DWORD
    if isinstance(data, (bytes, bytearray)):
        return ValueType.BINARY
    if isinstance(data, list):
        return ValueType.MULTI_SZ
    if data is None:
        return ValueType.NONE
    return ValueType.SZ


def _split(path: str) -> list[str]:
    return [part for part in path.replace("/", "\\").split("\\") if part]


def _norm(path: str) -> str:
    return "\\".join(_split(path)).lower()


@dataclass
class _MemoryKey:
    path: str
    values: dict[str, tuple[str, RegistryValue]] = field(default_factory=dict)


class MemoryKeyHandle(RegistryKeyHandle):
    """Handle onto a key held by a MemoryRegistry."""

    def __init__(self, registry: MemoryRegistry, root: RootKey, key: _MemoryKey):
        super().__init__(root, key.path)
        self._registry = registry
        self._key = key

    def get_value(self, name: str) -> RegistryValue:
        self._registry._raise_injected(self.root, self.path, "value")
        entry = self._key.values.get(name.lower())
        if entry is None:
            raise ValueNotFoundError(f"value {name} not found")
        return entry[1]

    def subkey_names(self) -> list[str]:
        self._registry._raise_injected(self.root, self.path, "subkeys")
        return self._registry._children(self.root, self.path)

    def _release(self) -> None:
        self._registry._open_handles -= 1


class MemoryRegistry(RegistryBackend):
    """Registry backend backed by plain dictionaries."""

    def __init__(self) -> None:
        self._keys: dict[tuple[RootKey, str], _MemoryKey] = {}
        self._failures: dict[tuple[RootKey, str, str], BaseException] = {}
        self._open_handles = 0
        self._opened = 0

    @property
    def name(self) -> str:
        return "memory"

    @property
    def open_handles(self) -> int:
        """Handles opened and not yet closed."""
        return self._open_handles

    @property
    def opened(self) -> int:
        """Total number of handles ever opened."""
        return self._opened

    # ── Population ──────────────────────────────────────────────

    def add_key(self, root: RootKey | str, path: str) -> None:
        """Create a key along with any missing parent keys."""
        root_key = _root(root)
        parts = _split(path)
        for depth in range(1, len(parts) + 1):
            partial = "\\".join(parts[:depth])
            self._keys.setdefault((root_key, partial.lower()), _MemoryKey(path=partial))

    def set_value(
        self,
        root: RootKey | str,
        path: str,
        name: str,
        data: RegistryData,
        value_type: int | None = None,
    ) -> None:
        """Store a value, creating its key if needed."""
        root_key = _root(root)
        self.add_key(root_key, path)
        if value_type is None:
            value_type = infer_value_type(data)
        key = self._keys[(root_key, _norm(path))]
        key.values[name.lower()] = (name, RegistryValue(data=data, value_type=value_type))

    def fail_on(
        self,
        root: RootKey | str,
        path: str,
        error: BaseException,
        operation: str = "open",
    ) -> None:
        """Make an operation on a key raise ``error``."""
        if operation not in _OPERATIONS:
            raise ValueError(f"Unknown operation '{operation}'. Valid: {', '.join(_OPERATIONS)}")
        self._failures[(_root(root), _norm(path), operation)] = error

    # ── RegistryBackend ─────────────────────────────────────────

    def open_key(self, root: RootKey, path: str) -> MemoryKeyHandle:
        root_key = _root(root)
        self._raise_injected(root_key, path, "open")
        key = self._keys.get((root_key, _norm(path)))
        if key is None:
            raise KeyNotFoundError(f"key {root_key.value}\\{path} not found")
        self._open_handles += 1
        self._opened += 1
        return MemoryKeyHandle(self, root_key, key)

    # ── Internals ───────────────────────────────────────────────

    def _raise_injected(self, root: RootKey, path: str, operation: str) -> None:
        error = self._failures.get((root, _norm(path), operation))
        if error is not None:
            raise error

    def _children(self, root: RootKey, path: str) -> list[str]:
        prefix = _norm(path) + "\\"
        names = []
        for (key_root, key_path), key in self._keys.items():
            if key_root != root or not key_path.startswith(prefix):
                continue
            remainder = key_path[len(prefix):]
            if remainder and "\\" not in remainder:
                names.append(_split(key.path)[-1])
        return sorted(names, key=str.lower)


def _root(root: RootKey | str) -> RootKey:
    resolved = RootKey.lookup(root)
    if resolved is None:
        raise ValueError(f"Unknown registry root key: {root!r}")
    return resolved
