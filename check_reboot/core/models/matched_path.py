"""
Matched path model — one concrete location where evidence was found.

Matched paths are the unit that ignore filtering operates on. An asserter
is only fully ignored once every one of its matched paths is ignored.
"""

from __future__ import annotations

from pydantic import BaseModel

from check_reboot.core.textutils import normalize_path


class MatchedPath(BaseModel):
    """A path recorded when an assertion matched."""

    root: str                 # left-most element (registry root or parent directory)
    relative: str             # path below root; usually includes base
    base: str                 # right-most "leaf" element
    separator: str = "\\"
    ignored: bool = False

    @property
    def full(self) -> str:
        """The qualified path."""
        if not self.root:
            return self.relative
        return f"{self.root.rstrip(self.separator)}{self.separator}{self.relative}"

    def matches(self, pattern: str) -> bool:
        """Whether the normalized pattern occurs within the normalized path.

        Substring containment, not glob or exact matching, so that a
        pattern naming a key also covers anything recorded beneath it.
        """
        normalized = normalize_path(pattern)
        return bool(normalized) and normalized in normalize_path(self.full)

    def __str__(self) -> str:
        return self.full
