"""
Assertions — the checks that decide whether a reboot is pending.

    from check_reboot.core.assertions import AssertionCollection, Key, File
"""

from check_reboot.core.assertions.base import (
    Asserter,
    DataDisplayer,
    MatchedPathIndex,
    SubPathReporter,
)
from check_reboot.core.assertions.collection import AssertionCollection
from check_reboot.core.assertions.files import File
from check_reboot.core.assertions.registry import (
    Key,
    KeyBinary,
    KeyInt,
    KeyPair,
    KeyString,
    KeyStrings,
)

__all__ = [
    # base.py
    "Asserter",
    "DataDisplayer",
    "MatchedPathIndex",
    "SubPathReporter",
    # collection.py
    "AssertionCollection",
    # files.py
    "File",
    # registry.py
    "Key",
    "KeyBinary",
    "KeyInt",
    "KeyPair",
    "KeyString",
    "KeyStrings",
]
