"""
Command-line interface for qualtrics_sync.

Provides CLI commands for synchronizing CSV extracts with Qualtrics
mailing lists, checking status, and managing the hash gate.

Usage:
    # Show help
    qualtrics-sync --help

    # Run synchronization
    qualtrics-sync sync
    qualtrics-sync sync --dry-run --verbose
    qualtrics-sync sync --force --list ML_123

    # Check status
    qualtrics-sync status

    # Run every hour in the foreground
    qualtrics-sync daemon --interval 1h
"""

import sys
from pathlib import Path

import click

from qualtrics_sync import __version__
from qualtrics_sync.cli.formatters import (
    show_detailed_changes,
    show_run_summary,
    show_unit_summary,
)
from qualtrics_sync.config.generator import save_config_file, save_example_lists_file
from qualtrics_sync.config.loader import (
    DEFAULT_CONFIG_FILE,
    ConfigError,
    Settings,
    load_settings,
)
from qualtrics_sync.config.mailing_lists import (
    MailingListConfigError,
    load_mailing_lists,
)
from qualtrics_sync.daemon import DaemonScheduler, parse_interval
from qualtrics_sync.storage.db import HashStore, HashStoreError
from qualtrics_sync.sync.engine import RunResult, run_once
from qualtrics_sync.utils import resolve_config_dir
from qualtrics_sync.utils.logging import cleanup_old_logs, get_logger, setup_logging


def get_config_dir(config_dir: str | None) -> Path:
    """Get the configuration directory path."""
    return resolve_config_dir(config_dir)


def get_config_file(config_dir: Path, config_file: str | None) -> Path:
    """Get the configuration file path."""
    if config_file:
        return Path(config_file).expanduser()
    return config_dir / DEFAULT_CONFIG_FILE


@click.group()
@click.version_option(version=__version__, prog_name="qualtrics-sync")
@click.option(
    "--verbose", "-v", is_flag=True, help="Enable verbose output with detailed logging."
)
@click.option(
    "--config-dir",
    "-c",
    type=click.Path(exists=False, file_okay=False, dir_okay=True),
    envvar="QUALTRICS_SYNC_CONFIG_DIR",
    help="Configuration directory path (default: ~/.qualtrics-sync).",
)
@click.option(
    "--config-file",
    "-f",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    envvar="QUALTRICS_SYNC_CONFIG_FILE",
    help="Configuration file path (default: <config-dir>/config.yaml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_dir: str | None,
    config_file: str | None,
) -> None:
    """
    Qualtrics Mailing List Sync.

    Keeps Qualtrics mailing lists identical to their CSV extracts by
    adding, updating, and deleting contacts.
    """
    ctx.ensure_object(dict)

    resolved_config_dir = get_config_dir(config_dir)
    resolved_config_file = get_config_file(resolved_config_dir, config_file)
    ctx.obj["config_dir"] = resolved_config_dir
    ctx.obj["config_file"] = resolved_config_file

    settings = None
    try:
        settings = load_settings(resolved_config_dir, resolved_config_file)
    except ConfigError as e:
        # Commands needing settings report this again and exit
        ctx.obj["config_error"] = e
        click.echo(
            click.style(f"Warning: Configuration error: {e}", fg="yellow"), err=True
        )

    ctx.obj["settings"] = settings

    # CLI flag takes precedence over config file
    effective_verbose = verbose or bool(settings and settings.verbose)
    ctx.obj["verbose"] = effective_verbose

    log_dir = settings.log_dir if settings else None
    setup_logging(verbose=effective_verbose, log_dir=log_dir, enable_file_logging=True)

    log_retention = settings.log_retention_count if settings else 10
    if log_retention > 0:
        cleanup_old_logs(log_dir=log_dir, keep_count=log_retention)


def require_settings(ctx: click.Context) -> Settings:
    """Return loaded settings or exit with the configuration error."""
    settings = ctx.obj.get("settings")
    if settings is None:
        error = ctx.obj.get("config_error", "settings could not be loaded")
        click.echo(click.style(f"Error: {error}", fg="red"), err=True)
        sys.exit(1)
    return settings


# =============================================================================
# Sync Command
# =============================================================================


@cli.command("sync")
@click.option(
    "--dry-run", "-n", is_flag=True, help="Preview changes without applying them."
)
@click.option(
    "--force", is_flag=True, help="Ignore stored hashes and compare every list."
)
@click.option(
    "--list",
    "-l",
    "list_ids",
    multiple=True,
    help="Only sync this mailing list id (repeatable).",
)
@click.pass_context
def sync_command(
    ctx: click.Context, dry_run: bool, force: bool, list_ids: tuple[str, ...]
) -> None:
    """
    Synchronize every configured mailing list.

    Each list's CSV extract is compared with the contacts of its Qualtrics
    mailing list; missing contacts are added, changed ones updated, and
    contacts no longer in the extract deleted. Lists whose extract is
    unchanged since the last clean sync are skipped.

    Examples:

        # Preview changes without applying
        qualtrics-sync sync --dry-run

        # Compare even unchanged extracts
        qualtrics-sync sync --force

        # Sync a single list
        qualtrics-sync sync --list ML_1a2b3c4d5e
    """
    logger = get_logger(__name__)
    settings = require_settings(ctx)
    verbose = ctx.obj["verbose"]
    effective_dry_run = dry_run or settings.dry_run

    if effective_dry_run:
        click.echo(click.style("DRY RUN: no changes will be applied\n", fg="yellow"))

    try:
        result = run_once(
            settings, dry_run=effective_dry_run, force=force, list_ids=list_ids
        )
    except (ConfigError, MailingListConfigError, HashStoreError, OSError) as e:
        logger.error(f"Sync aborted: {e}")
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    print_result(result, verbose=verbose)


def print_result(result: RunResult, verbose: bool = False) -> None:
    """Print per-list summaries and the run totals."""
    for unit in result.units:
        show_unit_summary(unit, dry_run=result.dry_run)
        if result.dry_run and verbose:
            show_detailed_changes(unit)
    show_run_summary(result)


# =============================================================================
# Status Command
# =============================================================================


@cli.command("status")
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """
    Show configured mailing lists and their last clean sync.

    Example:

        qualtrics-sync status
    """
    settings = require_settings(ctx)

    click.echo("=== Qualtrics Sync Status ===\n")
    click.echo(f"Configuration directory: {settings.config_dir}")
    click.echo(f"Mailing lists file: {settings.lists_file}")
    click.echo(f"CSV directory: {settings.csv_dir}")
    click.echo(f"Report directory: {settings.report_dir}")
    try:
        settings.api_token()
        token_status = "Found"
    except ConfigError:
        token_status = click.style("Not set", fg="red")
    click.echo(f"API token ({settings.api_token_env}): {token_status}")

    try:
        configs = load_mailing_lists(settings.lists_file)
    except MailingListConfigError as e:
        click.echo(click.style(f"\nError: {e}", fg="red"), err=True)
        sys.exit(1)

    hashes = {}
    if settings.hash_db.exists():
        try:
            store = HashStore(str(settings.hash_db))
            store.initialize()
            hashes = {row["list_id"]: row for row in store.get_all_hashes()}
        except HashStoreError as e:
            click.echo(click.style(f"Warning: {e}", fg="yellow"), err=True)

    click.echo(f"\nMailing lists: {len(configs)}")
    for config in configs:
        if not config.is_valid:
            status = click.style(config.error or "invalid", fg="red")
        elif config.list_id in hashes:
            status = f"last clean sync {hashes[config.list_id]['updated_at']}"
        else:
            status = "never synced"
        click.echo(f"  {config.display_name} ({config.list_id or '-'}): {status}")


# =============================================================================
# Reset Command
# =============================================================================


@cli.command("reset")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.option(
    "--list", "-l", "list_id", default=None, help="Only reset this mailing list id."
)
@click.pass_context
def reset_command(ctx: click.Context, yes: bool, list_id: str | None) -> None:
    """
    Clear stored hashes (forces a full comparison on next run).

    This does NOT change any mailing list.

    Example:

        qualtrics-sync reset
        qualtrics-sync reset --list ML_1a2b3c4d5e --yes
    """
    logger = get_logger(__name__)
    settings = require_settings(ctx)

    if not settings.hash_db.exists():
        click.echo("No hash database found. Nothing to reset.")
        return

    if not yes:
        target = f"the hash of {list_id}" if list_id else "all stored hashes"
        click.confirm(f"This will clear {target}.\nContinue?", abort=True)

    try:
        store = HashStore(str(settings.hash_db))
        store.initialize()
        if list_id:
            if store.clear_hash(list_id):
                click.echo(click.style(f"Hash of {list_id} cleared.", fg="green"))
            else:
                click.echo(f"No hash stored for {list_id}.")
        else:
            count = store.clear_all()
            click.echo(click.style(f"Cleared {count} stored hash(es).", fg="green"))
        logger.info("Hash reset completed")
    except HashStoreError as e:
        logger.error(f"Reset failed: {e}")
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


# =============================================================================
# Init Config Command
# =============================================================================


@cli.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Overwrite existing configuration file if it exists.",
)
@click.pass_context
def init_config_command(ctx: click.Context, force: bool) -> None:
    """
    Generate a default configuration file.

    Creates a configuration file with all available options documented
    and commented out, plus an example mailing lists file if none exists.

    Examples:

        # Create config file (fails if already exists)
        qualtrics-sync init-config

        # Overwrite existing config file
        qualtrics-sync init-config --force
    """
    logger = get_logger(__name__)
    config_file = ctx.obj["config_file"]

    click.echo(f"Creating configuration file: {config_file}")

    success, error = save_config_file(config_file, overwrite=force)
    if not success:
        click.echo(click.style(f"Error: {error}", fg="red"), err=True)
        logger.error(f"Failed to create configuration file: {error}")
        sys.exit(1)

    click.echo(click.style("Configuration file created successfully!", fg="green"))
    lists_file = ctx.obj["config_dir"] / "mailing_lists.csv"
    if save_example_lists_file(lists_file):
        click.echo(f"Example mailing lists file: {lists_file}")

    click.echo("\nNext steps:")
    click.echo("1. List your mailing lists in mailing_lists.csv")
    click.echo("2. Export QUALTRICS_API_TOKEN")
    click.echo("3. Run 'qualtrics-sync sync --dry-run' to preview")


# =============================================================================
# Daemon Command
# =============================================================================


@cli.command("daemon")
@click.option(
    "--interval",
    "-i",
    default=None,
    help="Sync interval (e.g., '30s', '5m', '1h', '1d'). Defaults to config or '1h'.",
)
@click.option(
    "--no-initial-sync",
    is_flag=True,
    help="Wait one interval before the first sync.",
)
@click.pass_context
def daemon_command(
    ctx: click.Context, interval: str | None, no_initial_sync: bool
) -> None:
    """
    Run syncs periodically in the foreground.

    Stops cleanly on SIGTERM or Ctrl+C. A run that fails to start
    (missing lists file or token) is logged and retried next interval.

    Examples:

        qualtrics-sync daemon
        qualtrics-sync -v daemon --interval 30m
    """
    logger = get_logger(__name__)
    settings = require_settings(ctx)
    verbose = ctx.obj["verbose"]

    effective_interval = interval or settings.daemon_interval
    try:
        interval_seconds = parse_interval(effective_interval)
    except ValueError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    def run_sync() -> bool:
        try:
            result = run_once(settings, dry_run=settings.dry_run)
        except (ConfigError, MailingListConfigError, HashStoreError, OSError) as e:
            logger.error(f"Sync run aborted: {e}")
            return False
        if verbose:
            print_result(result)
        return True

    scheduler = DaemonScheduler(
        interval=interval_seconds, run_immediately=not no_initial_sync
    )
    scheduler.set_sync_callback(run_sync)

    click.echo(f"Starting daemon with {effective_interval} sync interval...")
    click.echo("Running in foreground mode (Ctrl+C to stop)")
    scheduler.run()

    stats = scheduler.stats
    click.echo(
        f"Daemon stopped after {stats.sync_count} run(s) "
        f"({stats.sync_error_count} failed to start)"
    )


# =============================================================================
# Health Command
# =============================================================================


@cli.command("health")
def health_command() -> None:
    """
    Check application health status.

    Useful for container health checks and monitoring.

    Example:

        qualtrics-sync health
    """
    click.echo("healthy")
