"""
Error taxonomy for reboot assertions.

Two families live here:

    - Configuration defects (``MissingValueError``, ``InvalidRootKeyError``,
      ``InvalidNumberOfKeysInPairError``, ``UnknownRebootEvidenceError``,
      ``UnknownRebootEvidenceIndicatorError``) are raised by ``validate()``
      and mean the static assertion table is broken.
    - Evaluation outcomes (``MissingRequiredItemError``,
      ``MissingOptionalItemError``, ``EvaluationError``) are recorded on the
      asserter by ``evaluate()`` and never raised out of it.
"""

from __future__ import annotations


class RebootCheckError(Exception):
    """Base class for all reboot check errors."""


class MissingValueError(RebootCheckError):
    """An expected value (path, value name, value data) was missing."""


class InvalidRootKeyError(RebootCheckError):
    """An unrecognized registry root key was specified."""


class InvalidNumberOfKeysInPairError(RebootCheckError):
    """A key pair was configured with other than exactly two keys."""


class UnknownRebootEvidenceError(RebootCheckError):
    """No usable reboot evidence indicator was configured."""


class UnknownRebootEvidenceIndicatorError(RebootCheckError):
    """A reboot evidence indicator combination is not supported."""


class MissingRequiredItemError(RebootCheckError):
    """A required item (registry key, file) was not found."""


class MissingOptionalItemError(RebootCheckError):
    """An optional item was not found; not an actionable problem."""


class EvaluationError(RebootCheckError):
    """An unexpected OS-level failure while evaluating an assertion.

    The original exception is chained as ``__cause__``.
    """

    def __init__(self, message: str, location: str = "", operation: str = ""):
        super().__init__(message)
        self.location = location
        self.operation = operation


class UnsupportedPlatformError(RebootCheckError):
    """The requested backend is not available on this operating system."""


# Used as the first plugin error when evidence was found.
REBOOT_REQUIRED_MESSAGE = "reboot assertions matched, reboot needed"


def is_benign(err: BaseException | None) -> bool:
    """Whether an evaluation error can be ignored for state purposes."""
    return isinstance(err, MissingOptionalItemError)


def wrap_os_error(
    exc: BaseException,
    location: str,
    operation: str,
    requirement: str = "",
) -> EvaluationError:
    """Wrap an OS-level exception with the location and operation."""
    qualifier = f"{requirement} " if requirement else ""
    err = EvaluationError(
        f"unexpected error occurred while {operation} {qualifier}{location}: {exc}",
        location=location,
        operation=operation,
    )
    err.__cause__ = exc
    return err
