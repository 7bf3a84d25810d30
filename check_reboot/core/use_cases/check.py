"""
Check use case — evaluate the reboot assertions and build the plugin result.

Flow: gather default assertions → validate → evaluate → apply ignore
patterns → performance data, errors, summary and report.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

from check_reboot import __version__
from check_reboot.adapters.base import RegistryBackend
from check_reboot.core.assertions.base import Asserter
from check_reboot.core.assertions.collection import AssertionCollection
from check_reboot.core.errors import REBOOT_REQUIRED_MESSAGE, RebootCheckError
from check_reboot.core.models.config import CheckConfig
from check_reboot.core.models.state import ServiceState
from check_reboot.core.plugin import PluginResult
from check_reboot.core.reports import one_line_summary, report
from check_reboot.core.sources.file_defaults import default_file_assertions, default_file_ignored_paths
from check_reboot.core.sources.registry_defaults import (
    default_registry_assertions,
    default_registry_ignored_paths,
)

logger = logging.getLogger(__name__)

APP_NAME = "check-reboot"


def branding(prefix: str = "Notification generated by ") -> str:
    """Application name and version, shown at the end of notifications."""
    return f"{prefix}{APP_NAME} {__version__}"


def default_ignore_patterns() -> list[str]:
    """Registry and file ignore patterns applied unless disabled."""
    return default_registry_ignored_paths() + default_file_ignored_paths()


def run_check(
    config: CheckConfig | None = None,
    backend: RegistryBackend | None = None,
    registry_assertions: Sequence[Asserter] | None = None,
    file_assertions: Sequence[Asserter] | None = None,
) -> PluginResult:
    """Run a full reboot check.

    Args:
        config: Run options; defaults when omitted.
        backend: Registry backend for the default registry assertions.
        registry_assertions: Replaces the default registry assertions.
        file_assertions: Replaces the default file assertions.

    Returns:
        PluginResult ready to render; never raises for evaluation problems.
    """
    config = config or CheckConfig()
    start = time.monotonic()
    result = PluginResult()
    if config.branding:
        result.branding = branding()

    if registry_assertions is None:
        logger.debug("Retrieving default registry reboot assertions")
        registry_assertions = default_registry_assertions(backend)
    if file_assertions is None:
        logger.debug("Retrieving default file reboot assertions")
        file_assertions = default_file_assertions()

    collection = AssertionCollection(registry_assertions) + file_assertions
    logger.debug(
        "%d assertions retrieved (%d registry, %d file)",
        len(collection),
        len(registry_assertions),
        len(file_assertions),
    )

    try:
        collection.validate()
    except RebootCheckError as e:
        logger.error("Failed to validate provided assertions: %s", e)
        result.add_error(e)
        result.state = ServiceState.CRITICAL
        result.service_output = f"{ServiceState.CRITICAL.label}: Failed to validate list of reboot evaluations"
        _add_runtime(result, start)
        return result

    logger.debug("Evaluating reboot assertions")
    collection.evaluate()

    if config.disable_default_ignored:
        logger.debug("Skipping use of default ignored path entries for reboot assertions")
    patterns = config.effective_ignore_patterns(default_ignore_patterns())
    logger.debug("Filtering reboot assertions with %d ignore patterns", len(patterns))
    collection.filter(patterns)

    result.add_perfdata("evaluated_assertions", len(collection))
    result.add_perfdata("evaluated_file_assertions", len(file_assertions))
    result.add_perfdata("evaluated_registry_assertions", len(registry_assertions))
    result.add_perfdata("matched_assertions", collection.num_matched())
    result.add_perfdata("ignored_assertions", collection.num_ignored())
    result.add_perfdata("errors", collection.num_errors(False))

    if not collection.is_ok_state():
        if collection.reboot_required():
            logger.debug(
                "Reboot assertions matched, reboot needed (applied=%d matched=%d ignored=%d)",
                collection.num_applied(),
                collection.num_matched(),
                collection.num_ignored(),
            )
            result.add_error(REBOOT_REQUIRED_MESSAGE)

        # Errors of ignored assertions are left out.
        if collection.has_errors(False):
            logger.error(
                "Errors encountered evaluating need for reboot (applied=%d matched=%d errors=%d)",
                collection.num_applied(),
                collection.num_matched(),
                collection.num_errors(False),
            )
            result.add_error(*collection.errs(False))
    else:
        logger.debug(
            "No (non-ignored) reboot assertions matched (applied=%d)",
            collection.num_applied(),
        )

    result.state = collection.service_state()
    result.service_output = one_line_summary(collection, False)
    result.long_output = report(collection, config.show_ignored, config.verbose)
    _add_runtime(result, start)
    return result


def _add_runtime(result: PluginResult, start: float) -> None:
    elapsed_ms = int((time.monotonic() - start) * 1000)
    result.add_perfdata("time", f"{elapsed_ms}ms")
