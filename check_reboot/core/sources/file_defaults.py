"""
Default file assertions — marker files that signal a pending reboot.
"""

from __future__ import annotations

import logging
import sys

from check_reboot.core.assertions.base import Asserter
from check_reboot.core.assertions.files import File
from check_reboot.core.models.evidence import FileRebootEvidence

logger = logging.getLogger(__name__)


def default_file_ignored_paths() -> list[str]:
    """File paths ignored unless defaults are disabled."""
    return []


def default_file_assertions() -> list[Asserter]:
    """The file asserters evaluated by a check; empty outside Windows."""
    if sys.platform != "win32":
        logger.debug("No default file assertions for platform %s", sys.platform)
        return []

    return [
        # Written by Component Based Servicing while an update is staged.
        File(
            r"WinSxS\pending.xml",
            env_var_path_prefix="SystemRoot",
            evidence=FileRebootEvidence(file_exists=True),
        ),
    ]
