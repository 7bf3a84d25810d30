"""
Text helpers — path normalization and list membership.

Matched paths and ignore patterns are compared in normalized form so that
case and separator style never affect whether a pattern applies.
"""

from __future__ import annotations

from collections.abc import Iterable


def normalize_path(path: str) -> str:
    """Fold case and convert backslash separators to forward slashes."""
    return path.lower().replace("\\", "/")


def in_list(needle: str, haystack: Iterable[str], ignore_case: bool = False) -> bool:
    """Whether ``needle`` equals any entry in ``haystack``."""
    for item in haystack:
        if item == needle:
            return True
        if ignore_case and item.casefold() == needle.casefold():
            return True
    return False


def contains_any(needle: str, haystack: Iterable[str], ignore_case: bool = False) -> bool:
    """Whether ``needle`` occurs as a substring of any entry in ``haystack``."""
    if ignore_case:
        needle = needle.casefold()
    for item in haystack:
        candidate = item.casefold() if ignore_case else item
        if needle in candidate:
            return True
    return False


def substitute_separators(text: str) -> str:
    """Replace Windows path separators (escaped or not) with a single slash."""
    text = text.replace("\\\\", "\\")
    return text.replace("\\", "/")
