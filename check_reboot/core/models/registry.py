"""
Registry value types — root keys, value type codes and retrieved values.

These are platform-neutral descriptions; the winreg backend maps them to
the native constants.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Union

RegistryData = Union[int, bytes, str, list[str], None]


class RootKey(str, Enum):
    """Registry root ("hive") keys."""

    CLASSES_ROOT = "HKEY_CLASSES_ROOT"
    CURRENT_USER = "HKEY_CURRENT_USER"
    LOCAL_MACHINE = "HKEY_LOCAL_MACHINE"
    USERS = "HKEY_USERS"
    CURRENT_CONFIG = "HKEY_CURRENT_CONFIG"
    PERFORMANCE_DATA = "HKEY_PERFORMANCE_DATA"

    @classmethod
    def lookup(cls, name: object) -> RootKey | None:
        """Resolve a root key from an enum member or its name, else None."""
        if isinstance(name, cls):
            return name
        if isinstance(name, str):
            for member in cls:
                if name.upper() in (member.value, member.name):
                    return member
        return None


ROOT_KEY_UNKNOWN = "UNKNOWN"


class ValueType(IntEnum):
    """Registry value type codes (same numbering as the Windows API)."""

    NONE = 0
    SZ = 1
    EXPAND_SZ = 2
    BINARY = 3
    DWORD = 4
    DWORD_BIG_ENDIAN = 5
    LINK = 6
    MULTI_SZ = 7
    RESOURCE_LIST = 8
    FULL_RESOURCE_DESCRIPTOR = 9
    RESOURCE_REQUIREMENTS_LIST = 10
    QWORD = 11

    @property
    def label(self) -> str:
        return self.name


VALUE_TYPE_UNKNOWN = "UNKNOWN"


def value_type_label(code: int) -> str:
    """Human label for a raw value type code."""
    try:
        return ValueType(code).label
    except ValueError:
        return VALUE_TYPE_UNKNOWN


_STRING_TYPES = (ValueType.SZ, ValueType.EXPAND_SZ, ValueType.LINK)


@dataclass(frozen=True)
class RegistryValue:
    """Data retrieved for a named registry value."""

    data: RegistryData
    value_type: int = ValueType.NONE

    @property
    def type_label(self) -> str:
        return value_type_label(self.value_type)

    def raw(self) -> bytes:
        """The data as the bytes the registry stores.

        Strings are UTF-16LE with a terminating NUL, integers use the width
        and byte order of their declared type.
        """
        data = self.data
        if data is None:
            return b""
        if isinstance(data, (bytes, bytearray)):
            return bytes(data)
        if isinstance(data, bool):
            data = int(data)
        if isinstance(data, int):
            if self.value_type == ValueType.QWORD:
                return data.to_bytes(8, "little", signed=data < 0)
            if self.value_type == ValueType.DWORD_BIG_ENDIAN:
                return data.to_bytes(4, "big", signed=data < 0)
            return data.to_bytes(4, "little", signed=data < 0)
        if isinstance(data, list):
            return ("\0".join(data) + "\0\0").encode("utf-16-le")
        return (str(data) + "\0").encode("utf-16-le")

    def as_int(self) -> int:
        if isinstance(self.data, int):
            return self.data
        if isinstance(self.data, (bytes, bytearray)):
            return int.from_bytes(self.data, "little")
        raise TypeError(f"value of type {self.type_label} is not an integer")

    def as_str(self) -> str:
        if isinstance(self.data, str):
            return self.data
        raise TypeError(f"value of type {self.type_label} is not a string")

    def as_strings(self) -> list[str]:
        if isinstance(self.data, list):
            return list(self.data)
        if isinstance(self.data, str):
            return [self.data]
        raise TypeError(f"value of type {self.type_label} is not a string list")

    def as_bytes(self) -> bytes:
        if isinstance(self.data, (bytes, bytearray)):
            return bytes(self.data)
        return self.raw()

    def display(self) -> str:
        """Readable rendering of the data."""
        data = self.data
        if isinstance(data, list):
            return ", ".join(data)
        if isinstance(data, (bytes, bytearray)):
            return " ".join(f"{b:02x}" for b in data)
        return "" if data is None else str(data)
