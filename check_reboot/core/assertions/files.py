"""
File asserter — the existence of a marker file indicates a reboot.

The configured path may be relative to the value of an environment
variable (e.g. ``%SystemRoot%``). A missing file is the normal "no
evidence" outcome; any other stat failure is recorded as an error.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from check_reboot.core.assertions.base import Asserter
from check_reboot.core.errors import MissingValueError, UnknownRebootEvidenceError, wrap_os_error
from check_reboot.core.models.evidence import FileRebootEvidence
from check_reboot.core.models.matched_path import MatchedPath

logger = logging.getLogger(__name__)


class File(Asserter):
    """A file that (if present) indicates a reboot is needed.

    Args:
        path: File path, relative to the prefix when one is given.
        env_var_path_prefix: Name of an environment variable whose value
            is prepended to ``path``.
        evidence: Evidence that indicates a reboot is needed.
    """

    def __init__(
        self,
        path: str,
        env_var_path_prefix: str = "",
        evidence: FileRebootEvidence | None = None,
    ):
        super().__init__()
        self._path = path
        self._env_var_path_prefix = env_var_path_prefix
        self._evidence_expected = evidence or FileRebootEvidence(file_exists=True)
        self._evidence_found = FileRebootEvidence()

    @property
    def path(self) -> str:
        return self._path

    @property
    def env_var_path_prefix(self) -> str:
        return self._env_var_path_prefix

    @property
    def expected_evidence(self) -> FileRebootEvidence:
        return self._evidence_expected.model_copy()

    @property
    def discovered_evidence(self) -> FileRebootEvidence:
        return self._evidence_found.model_copy()

    def resolved_path(self) -> str:
        """The configured path joined to its environment prefix and cleaned."""
        path = self._path
        if self._env_var_path_prefix:
            prefix = os.environ.get(self._env_var_path_prefix, "")
            if not prefix:
                logger.debug("Environment variable %s is not set", self._env_var_path_prefix)
            path = os.path.join(prefix, path)
        return os.path.normpath(path)

    def __str__(self) -> str:
        return self.resolved_path()

    def validate(self) -> None:
        if not self._path:
            raise MissingValueError("required file path not specified")
        if not self._evidence_expected.any():
            raise UnknownRebootEvidenceError(f"no reboot evidence specified for file {self._path}")

    def evaluate(self) -> None:
        resolved = self.resolved_path()
        logger.debug("Evaluating file %s", resolved)

        try:
            Path(resolved).stat()
        except FileNotFoundError:
            logger.debug("File %s not found", resolved)
            return
        except OSError as e:
            self._err = wrap_os_error(e, resolved, "checking", "file")
            return

        if self._evidence_expected.file_exists:
            logger.debug("Reboot evidence found: file %s exists", resolved)
            self._evidence_found = self._evidence_found.model_copy(update={"file_exists": True})
            self._matched.add(resolved, self._matched_path)

    def _matched_path(self, resolved: str) -> MatchedPath:
        try:
            absolute = os.path.abspath(resolved)
        except OSError as e:
            logger.debug("Failed to resolve %s: %s", resolved, e)
            return MatchedPath(
                root="",
                relative=self._path,
                base=os.path.basename(self._path),
                separator=os.sep,
            )

        name = os.path.basename(absolute)
        return MatchedPath(
            root=os.path.dirname(absolute),
            relative=name,
            base=name,
            separator=os.sep,
        )

    def has_evidence(self) -> bool:
        return self._evidence_found.any()

    def reboot_reasons(self) -> list[str]:
        if self._evidence_found.file_exists:
            return [f"File {self} found"]
        return []
