"""
Check configuration model — options that shape a plugin run.

Values come from an optional ``check-reboot.yml`` file and are then
overridden by command-line flags. The assertion table itself is static
and never configured here.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from check_reboot.core.textutils import in_list

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class CheckConfig(BaseModel):
    """Options for a reboot check run."""

    ignore_patterns: list[str] = Field(default_factory=list)  # added to the defaults
    disable_default_ignored: bool = False
    show_ignored: bool = False
    verbose: bool = False
    branding: bool = False
    log_level: LogLevel | None = None

    def effective_ignore_patterns(self, defaults: list[str]) -> list[str]:
        """Default patterns (unless disabled) followed by configured extras.

        Patterns are matched case-insensitively, so extras differing from an
        earlier entry only by case are dropped.
        """
        patterns = [] if self.disable_default_ignored else list(defaults)
        for pattern in self.ignore_patterns:
            if pattern and not in_list(pattern, patterns, ignore_case=True):
                patterns.append(pattern)
        return patterns
