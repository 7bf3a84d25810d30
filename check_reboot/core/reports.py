"""
Reports — render an evaluated assertion collection as plugin text.

Only the public query surface of the collection and its asserters is
used. Optional details (subpaths, retrieved data) come from the
``SubPathReporter`` and ``DataDisplayer`` capabilities.
"""

from __future__ import annotations

import logging

from check_reboot.core.assertions.base import Asserter, DataDisplayer, SubPathReporter
from check_reboot.core.assertions.collection import AssertionCollection
from check_reboot.core.textutils import substitute_separators

logger = logging.getLogger(__name__)

EOL = "\n"

# Indentation of a reason and of the details listed beneath it.
_TOP_DETAIL = "\n  - {}" + EOL
_SUB_DETAIL = "    {}" + EOL


def one_line_summary(collection: AssertionCollection, eval_ignored: bool = False) -> str:
    """One-line summary of the evaluation, used as the service output.

    Args:
        collection: Evaluated (and filtered) assertions.
        eval_ignored: Also count errors of ignored assertions.
    """
    counts = (
        f"(assertions: {collection.num_applied()} applied, "
        f"{collection.num_matched()} matched, "
        f"{collection.num_ignored()} ignored)"
    )
    label = collection.service_state().label

    # Reboot evidence is reported ahead of any errors.
    if collection.reboot_required():
        return f"{label}: Reboot needed {counts}"

    if collection.has_errors(eval_ignored):
        return (
            f"{label}: Reboot evaluation failed; "
            f"{collection.num_errors(eval_ignored)} errors {counts}"
        )

    if collection.is_ok_state():
        return f"{label}: Reboot not needed {counts}"

    return "BUG: Expected assertions collection state unexpected"


def report(collection: AssertionCollection, show_ignored: bool = False, verbose: bool = False) -> str:
    """Detailed report of the evaluation, used as the long service output.

    Args:
        collection: Evaluated (and filtered) assertions.
        show_ignored: List ignored assertions in their own section.
        verbose: Add subpaths and retrieved data beneath each reason.
    """
    parts: list[str] = []

    if collection.reboot_required():
        parts.append("Reboot required because:" + EOL)
        not_ignored = collection.not_ignored_items()
        logger.debug("%d not ignored assertions to process", len(not_ignored))
        parts.append(_render_assertions(not_ignored, verbose))
    elif collection.is_ok_state():
        parts.append("Reboot not required" + EOL)

    if show_ignored and collection.has_ignored():
        parts.append(EOL + "Assertions ignored:" + EOL)
        ignored = collection.ignored_items()
        logger.debug("%d ignored assertions to process", len(ignored))
        parts.append(_render_assertions(ignored, verbose))

    return substitute_separators("".join(parts))


def _render_assertions(asserters: AssertionCollection, verbose: bool) -> str:
    lines: list[str] = []
    for asserter in asserters:
        if not asserter.has_evidence():
            continue
        for reason in asserter.reboot_reasons():
            lines.append(_TOP_DETAIL.format(reason))
            if verbose:
                lines.extend(_additional_context(asserter))
    lines.append(EOL)
    return "".join(lines)


def _additional_context(asserter: Asserter) -> list[str]:
    lines = []

    if isinstance(asserter, SubPathReporter) and asserter.has_sub_path_matches():
        logger.debug("%s has subpath evidence", asserter)
        for path in asserter.matched_paths():
            lines.append(_SUB_DETAIL.format(f"subpath: {path.base}"))

    if isinstance(asserter, DataDisplayer):
        display = asserter.data_display()
        if display:
            lines.append(_SUB_DETAIL.format(display))

    return lines
