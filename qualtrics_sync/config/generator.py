"""
Configuration file generator for Qualtrics mailing list synchronization.

Provides functionality to generate a default configuration file with
documentation for every available option, plus an example mailing
lists file.
"""

import logging
from pathlib import Path

from qualtrics_sync.config.mailing_lists import CSV_COLUMN, LIST_ID_COLUMN

logger = logging.getLogger(__name__)


def generate_default_config() -> str:
    """
    Generate default YAML configuration with all options documented.

    Every option is commented out, so the generated file behaves exactly
    like having no file at all.

    Example:
        config_yaml = generate_default_config()
        with open("config.yaml", "w") as f:
            f.write(config_yaml)
    """
    return """# Qualtrics Sync Configuration
# ============================
#
# This file sets default options for qualtrics-sync.
# CLI arguments always override these values.
#
# Relative paths are resolved against the directory holding this file.

# Files
# -----

# CSV listing the mailing lists to sync (columns: csv, MailingListID)
# Default: mailing_lists.csv
# lists_file: mailing_lists.csv

# Directory containing the CSV extracts named in the lists file
# Default: csv
# csv_dir: csv

# Directory receiving log.txt and the per-list *_changes.csv files
# Default: reports
# report_dir: reports

# SQLite database with the last synced hash of each extract
# Default: hashes.db
# hash_db: hashes.db


# Qualtrics API
# -------------

# API root for your datacenter
# Default: https://co1.qualtrics.com/API/v3
# api_base_url: https://co1.qualtrics.com/API/v3

# Environment variable holding the API token
# Default: QUALTRICS_API_TOKEN
# api_token_env: QUALTRICS_API_TOKEN

# Request timeout in seconds
# Default: 30
# api_timeout: 30


# Source Extracts
# ---------------

# Column holding each contact's unique id (becomes externalDataReference)
# Default: UniqueID
# unique_id_column: UniqueID


# Apply Behavior
# --------------

# Concurrent requests while adding, updating, or deleting contacts
# Default: 5
# apply_max_workers: 5

# Attempts per add/update/delete request, and seconds between attempts
# Default: 2 attempts, 2.5 seconds
# apply_max_attempts: 2
# apply_retry_delay: 2.5

# Attempts to fetch a mailing list's contacts, and seconds between attempts
# Default: 2 attempts, 2.5 seconds
# fetch_max_attempts: 2
# fetch_retry_delay: 2.5

# Compute changes without applying them
# Default: false
# dry_run: false


# Notifications
# -------------

# Incoming webhook receiving one alert per run when any list fails.
# When unset, alerts are only logged.
# notify_webhook_url: https://example.webhook.office.com/webhookb2/...


# Logging Options
# ---------------

# Enable verbose output with detailed logging
# Default: false
# verbose: true

# Directory for daily log files (default: the project's logs/ directory)
# log_dir: logs

# Number of daily log files to keep
# Default: 10
# log_retention_count: 10


# Daemon Options
# --------------

# Interval between runs in daemon mode (30s, 5m, 1h, 1d)
# Default: 1h
# daemon_interval: 1h
"""


def generate_example_lists_file() -> str:
    """Generate an example mailing lists CSV with its header row."""
    return (
        f"{CSV_COLUMN},{LIST_ID_COLUMN}\n"
        "QualtricsSync-Example.csv,ML_0000000000000000\n"
    )


def save_config_file(
    config_path: Path, overwrite: bool = False
) -> tuple[bool, str | None]:
    """
    Save default configuration file to specified path.

    Creates parent directories if they don't exist and saves
    the configuration with owner-only permissions.

    Args:
        config_path: Path where the config file should be saved
        overwrite: If True, overwrite existing file. If False, fail if file exists.

    Returns:
        Tuple of (success, error_message); error_message is None on success
    """
    try:
        config_path = config_path.expanduser().resolve()

        if config_path.exists() and not overwrite:
            return (
                False,
                f"Configuration file already exists: {config_path}\n"
                "Use --force to overwrite.",
            )

        config_path.parent.mkdir(parents=True, mode=0o700, exist_ok=True)
        config_path.write_text(generate_default_config(), encoding="utf-8")
        config_path.chmod(0o600)

        logger.info(f"Created configuration file: {config_path}")
        return (True, None)

    except OSError as e:
        error_msg = f"Failed to create configuration file: {e}"
        logger.error(error_msg)
        return (False, error_msg)


def save_example_lists_file(lists_path: Path) -> bool:
    """
    Write an example mailing lists file unless one already exists.

    Returns:
        True if a file was written
    """
    if lists_path.exists():
        return False
    try:
        lists_path.parent.mkdir(parents=True, exist_ok=True)
        lists_path.write_text(generate_example_lists_file(), encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to create mailing lists file {lists_path}: {e}")
        return False
    logger.info(f"Created example mailing lists file: {lists_path}")
    return True
