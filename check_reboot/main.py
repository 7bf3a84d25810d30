"""
check-reboot — CLI entrypoint.

Usage:
    check-reboot check
    check-reboot check --verbose --show-ignored
    check-reboot check --registry-snapshot snapshot.yml --json
    check-reboot list
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from check_reboot import __version__
from check_reboot.core.config.loader import ConfigError, load_config
from check_reboot.core.models.config import CheckConfig
from check_reboot.core.models.state import ServiceState
from check_reboot.core.observability.logging_config import (
    ENV_LOG_FILE,
    ENV_LOG_FILE_LEVEL,
    resolve_level,
    setup_logging,
)

_LOG_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False)


def _configure_logging(debug: bool, log_level: str | None, config_level: str | None = None) -> None:
    setup_logging(
        level=resolve_level(debug=debug, cli_level=log_level, config_level=config_level),
        log_file=os.environ.get(ENV_LOG_FILE),
        log_file_level=os.environ.get(ENV_LOG_FILE_LEVEL),
    )


def _init_failure(err: Exception, as_json: bool) -> None:
    """Report a startup failure the way the plugin reports results, then exit."""
    from check_reboot.core.plugin import PluginResult

    result = PluginResult(
        state=ServiceState.CRITICAL,
        service_output=f"{ServiceState.CRITICAL.label}: Error initializing application",
    )
    result.add_error(err)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        click.echo(result.render(), nl=False)
    sys.exit(result.exit_code)


@click.group()
@click.version_option(version=__version__, prog_name="check-reboot")
def cli() -> None:
    """check-reboot — detect whether a Windows host needs a reboot."""


@cli.command()
@click.option("--verbose", "-v", is_flag=True, help="Show subpaths and retrieved data.")
@click.option("--show-ignored", is_flag=True, help="List ignored assertions in the report.")
@click.option(
    "--disable-default-ignored",
    is_flag=True,
    help="Do not apply the default ignore patterns.",
)
@click.option(
    "--ignore",
    "ignore_patterns",
    multiple=True,
    metavar="PATTERN",
    help="Additional ignore pattern (repeatable).",
)
@click.option("--branding", is_flag=True, help="Append application name and version.")
@click.option("--log-level", type=_LOG_LEVELS, default=None, help="Console log level.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to check-reboot.yml (default: auto-detect).",
)
@click.option(
    "--registry-snapshot",
    "snapshot_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Evaluate against a YAML registry snapshot instead of the live registry.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def check(
    verbose: bool,
    show_ignored: bool,
    disable_default_ignored: bool,
    ignore_patterns: tuple[str, ...],
    branding: bool,
    log_level: str | None,
    debug: bool,
    config_path: str | None,
    snapshot_path: str | None,
    as_json: bool,
) -> None:
    """Evaluate reboot assertions and emit plugin output."""
    _configure_logging(debug, log_level)

    try:
        config = load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        _init_failure(e, as_json)
        return

    if config.log_level:
        _configure_logging(debug, log_level, config.log_level)

    config = _apply_flags(
        config,
        verbose=verbose,
        show_ignored=show_ignored,
        disable_default_ignored=disable_default_ignored,
        ignore_patterns=ignore_patterns,
        branding=branding,
    )

    backend = None
    if snapshot_path:
        from check_reboot.adapters.snapshot import load_snapshot

        try:
            backend = load_snapshot(Path(snapshot_path))
        except ConfigError as e:
            _init_failure(e, as_json)
            return

    from check_reboot.core.use_cases.check import run_check

    result = run_check(config, backend=backend)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        click.echo(result.render(), nl=False)

    sys.exit(result.exit_code)


def _apply_flags(config: CheckConfig, ignore_patterns: tuple[str, ...], **flags: bool) -> CheckConfig:
    """Command-line flags override the config file; patterns are appended."""
    update: dict = {name: True for name, value in flags.items() if value}
    if ignore_patterns:
        update["ignore_patterns"] = [*config.ignore_patterns, *ignore_patterns]
    return config.model_copy(update=update)


@cli.command("list")
@click.option("--config", "-c", "config_path", type=click.Path(exists=False, dir_okay=False), default=None)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def list_assertions(config_path: str | None, as_json: bool) -> None:
    """Show the reboot assertions and ignore patterns."""
    from check_reboot.core.assertions.collection import AssertionCollection
    from check_reboot.core.errors import RebootCheckError
    from check_reboot.core.sources.file_defaults import default_file_assertions
    from check_reboot.core.sources.registry_defaults import default_registry_assertions
    from check_reboot.core.use_cases.check import default_ignore_patterns

    _configure_logging(False, None)

    try:
        config = load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    registry = default_registry_assertions(include_unsupported=True)
    files = default_file_assertions()
    patterns = config.effective_ignore_patterns(default_ignore_patterns())

    try:
        AssertionCollection(registry).validate()
        AssertionCollection(files).validate()
    except RebootCheckError as e:
        click.secho(f"❌ Invalid assertion table: {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({
            "registry_assertions": [_describe(a) for a in registry],
            "file_assertions": [_describe(a) for a in files],
            "ignore_patterns": patterns,
        }, indent=2))
        return

    click.secho(f"\n🔑 Registry assertions: {len(registry)}", fg="cyan", bold=True)
    for asserter in registry:
        click.echo(f"   • {_describe(asserter)}")

    click.secho(f"\n📄 File assertions: {len(files)}", fg="cyan", bold=True)
    for asserter in files:
        click.echo(f"   • {_describe(asserter)}")

    click.secho(f"\n🙈 Ignore patterns: {len(patterns)}", fg="cyan", bold=True)
    for pattern in patterns:
        click.echo(f"   • {pattern}")
    click.echo()


def _describe(asserter) -> str:
    label = f"{type(asserter).__name__}: {asserter}"
    value = getattr(asserter, "value", "")
    if value:
        label += f" [{value}]"
    return label


if __name__ == "__main__":
    cli()
