"""
Service state — monitoring plugin severity levels.

Ordering follows the usual plugin convention: OK is best, CRITICAL is
worst, UNKNOWN covers states that could not be classified.
"""

from __future__ import annotations

from enum import Enum


class ServiceState(Enum):
    """Plugin severity with its label and process exit code."""

    OK = ("OK", 0)
    WARNING = ("WARNING", 1)
    CRITICAL = ("CRITICAL", 2)
    UNKNOWN = ("UNKNOWN", 3)

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def exit_code(self) -> int:
        return self.value[1]

    def __str__(self) -> str:
        return self.label
