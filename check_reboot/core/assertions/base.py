"""
Asserter base — the contract every reboot assertion implements.

An asserter is built once from a static table, validated, evaluated
exactly once, optionally filtered, and then queried read-only by the
collection and the reporting layer.

State rules shared by all asserters:

    - ignored()          at least one matched path, and all of them ignored
    - reboot_required()  not ignored and evidence was found
    - WARNING            not ignored and reboot required
    - CRITICAL           not ignored, no reboot required, and an error
                         other than "missing optional item"
    - OK                 everything else (a fully ignored asserter is OK)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Protocol, runtime_checkable

from check_reboot.core.errors import is_benign
from check_reboot.core.models.matched_path import MatchedPath
from check_reboot.core.textutils import normalize_path

logger = logging.getLogger(__name__)


@runtime_checkable
class DataDisplayer(Protocol):
    """An asserter that retained the data it evaluated."""

    def data_display(self) -> str:
        """String form of the retrieved data for display purposes."""
        ...


@runtime_checkable
class SubPathReporter(Protocol):
    """An asserter that can match several concrete sub-locations."""

    def has_sub_path_matches(self) -> bool:
        ...

    def matched_paths(self) -> list[MatchedPath]:
        ...


def _recorded_match(recorded: str, pattern: str) -> bool:
    normalized = normalize_path(pattern)
    return bool(normalized) and normalized in normalize_path(recorded)


class MatchedPathIndex:
    """Matched paths keyed by the path string that was recorded.

    Duplicate entries are ignored so an existing entry (and its ignored
    flag) is never overwritten.
    """

    def __init__(self) -> None:
        self._paths: dict[str, MatchedPath] = {}

    def add(self, path: str, factory: Callable[[str], MatchedPath]) -> None:
        if path not in self._paths:
            self._paths[path] = factory(path)

    def sorted(self) -> list[MatchedPath]:
        return [self._paths[key] for key in sorted(self._paths)]

    def all_ignored(self) -> bool:
        # An empty index occurs on errors or when nothing matched.
        if not self._paths:
            return False
        return all(mp.ignored for mp in self._paths.values())

    def any_ignored(self) -> bool:
        return any(mp.ignored for mp in self._paths.values())

    def apply(self, patterns: Iterable[str], label: str = "") -> int:
        """Mark every matched path containing any pattern as ignored.

        Patterns are tested against both the recorded path string and the
        qualified path derived from it.

        Returns:
            Number of (path, pattern) matches applied.
        """
        patterns = list(patterns)
        if not patterns:
            logger.debug("0 ignore patterns specified for %s; skipping filter", label)
            return 0

        applied = 0
        for original, matched in self._paths.items():
            for pattern in patterns:
                if matched.matches(pattern) or _recorded_match(original, pattern):
                    logger.debug("Marking matched path %s as ignored (pattern %s)", original, pattern)
                    matched.ignored = True
                    applied += 1

        logger.debug("%d ignore patterns applied for %s", applied, label)
        return applied

    def __len__(self) -> int:
        return len(self._paths)


class Asserter(ABC):
    """Abstract base class for all reboot assertions.

    To create a new asserter:
        1. Subclass Asserter
        2. Implement validate, evaluate, has_evidence, reboot_reasons, __str__
        3. Record matched paths through ``self._matched`` during evaluate
        4. Add it to a default assertions table
    """

    def __init__(self) -> None:
        self._err: Exception | None = None
        self._matched = MatchedPathIndex()

    @abstractmethod
    def validate(self) -> None:
        """Check the static configuration.

        Raises:
            RebootCheckError: On any configuration defect.
        """

    @abstractmethod
    def evaluate(self) -> None:
        """Inspect the system and record evidence or an error.

        Never raises; failures are recorded and exposed through ``err``.
        """

    @abstractmethod
    def has_evidence(self) -> bool:
        """Whether evaluation found any evidence, ignored or not."""

    @abstractmethod
    def reboot_reasons(self) -> list[str]:
        """Human readable reasons for the evidence found."""

    @abstractmethod
    def __str__(self) -> str:
        """Human readable label for the asserted location."""

    @property
    def err(self) -> Exception | None:
        """Error recorded by evaluate(); ignored status is not considered."""
        return self._err

    def matched_paths(self) -> list[MatchedPath]:
        """All recorded matched paths, sorted by recorded path."""
        return self._matched.sorted()

    def filter(self, ignore_patterns: Iterable[str]) -> None:
        """Mark matched paths as ignored using substring patterns.

        Makes no changes when nothing matched. Call after evaluate() and
        before reading final state.
        """
        self._matched.apply(ignore_patterns, label=str(self))

    def ignored(self) -> bool:
        return self._matched.all_ignored()

    def has_ignored(self) -> bool:
        """Whether any matched path is marked as ignored."""
        return self._matched.any_ignored()

    def reboot_required(self) -> bool:
        return not self.ignored() and self.has_evidence()

    def is_critical_state(self) -> bool:
        if self.ignored() or self.reboot_required():
            return False
        return self.err is not None and not is_benign(self.err)

    def is_warning_state(self) -> bool:
        return not self.ignored() and self.reboot_required()

    def is_ok_state(self) -> bool:
        return not self.is_warning_state() and not self.is_critical_state()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self}>"
