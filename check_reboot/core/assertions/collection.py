"""
Assertion collection — aggregate state over a list of asserters.

Every query re-derives its result from the members, so the answers are
only meaningful after ``evaluate()`` (and ``filter()``, when ignore
patterns are in use) has run.

Severity precedence:

    CRITICAL   no member requires a reboot and some member is CRITICAL
    WARNING    some member requires a reboot
    OK         neither of the above
    UNKNOWN    fallback; not reachable with the rules above
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from typing import overload

from check_reboot.core.assertions.base import Asserter
from check_reboot.core.errors import is_benign
from check_reboot.core.models.state import ServiceState

logger = logging.getLogger(__name__)


class AssertionCollection(Sequence):
    """An ordered collection of asserters.

    Order only affects report ordering, never the outcome.
    """

    def __init__(self, asserters: Iterable[Asserter] = ()):
        self._items: list[Asserter] = list(asserters)

    # ── Sequence protocol ───────────────────────────────────────

    @overload
    def __getitem__(self, index: int) -> Asserter: ...

    @overload
    def __getitem__(self, index: slice) -> AssertionCollection: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return AssertionCollection(self._items[index])
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Asserter]:
        return iter(self._items)

    def __add__(self, other: Iterable[Asserter]) -> AssertionCollection:
        return AssertionCollection([*self._items, *other])

    def __repr__(self) -> str:
        return f"<AssertionCollection {len(self._items)} asserters>"

    # ── Lifecycle ───────────────────────────────────────────────

    def validate(self) -> None:
        """Validate every member, stopping at the first failure.

        Raises:
            RebootCheckError: The first member's validation error, unchanged.
        """
        for asserter in self._items:
            asserter.validate()

    def evaluate(self) -> None:
        """Evaluate every member; failures are recorded per member."""
        for asserter in self._items:
            asserter.evaluate()
        logger.debug("%d assertions evaluated", len(self._items))

    def filter(self, ignore_patterns: Iterable[str]) -> None:
        """Apply substring ignore patterns to every member's matched paths."""
        patterns = list(ignore_patterns)
        for asserter in self._items:
            asserter.filter(patterns)

    # ── Counts ──────────────────────────────────────────────────

    def num_applied(self) -> int:
        """Number of assertions in the collection."""
        return len(self._items)

    def num_matched(self) -> int:
        """Number of assertions that found evidence and were not ignored."""
        return sum(1 for asserter in self._items if asserter.reboot_required())

    def num_ignored(self) -> int:
        return sum(1 for asserter in self._items if asserter.ignored())

    def errs(self, include_ignored: bool = False) -> list[Exception]:
        """Non-benign member errors.

        Args:
            include_ignored: Also collect errors of ignored members.
        """
        collected = []
        for asserter in self._items:
            err = asserter.err
            if err is None or is_benign(err):
                continue
            if asserter.ignored() and not include_ignored:
                continue
            collected.append(err)
        return collected

    def num_errors(self, include_ignored: bool = False) -> int:
        return len(self.errs(include_ignored))

    def has_errors(self, include_ignored: bool = False) -> bool:
        return self.num_errors(include_ignored) > 0

    # ── State ───────────────────────────────────────────────────

    def reboot_required(self) -> bool:
        return any(asserter.reboot_required() for asserter in self._items)

    def has_ignored(self) -> bool:
        """Whether any member recorded an ignored matched path."""
        return any(asserter.has_ignored() for asserter in self._items)

    def has_critical_state(self) -> bool:
        if self.reboot_required():
            return False
        return any(asserter.is_critical_state() for asserter in self._items)

    def has_warning_state(self) -> bool:
        return any(asserter.is_warning_state() for asserter in self._items)

    def is_ok_state(self) -> bool:
        return not self.has_critical_state() and not self.has_warning_state()

    def service_state(self) -> ServiceState:
        if self.has_critical_state():
            return ServiceState.CRITICAL
        if self.has_warning_state():
            return ServiceState.WARNING
        if self.is_ok_state():
            return ServiceState.OK
        return ServiceState.UNKNOWN

    # ── Partitions ──────────────────────────────────────────────

    def not_ignored_items(self) -> AssertionCollection:
        return AssertionCollection(a for a in self._items if not a.ignored())

    def ignored_items(self) -> AssertionCollection:
        return AssertionCollection(a for a in self._items if a.ignored())
