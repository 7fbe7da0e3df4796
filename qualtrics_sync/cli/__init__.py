"""CLI package for qualtrics_sync."""

from qualtrics_sync.cli.formatters import (
    show_detailed_changes,
    show_run_summary,
    show_unit_summary,
)
from qualtrics_sync.cli.main import cli, get_config_dir, get_config_file
from qualtrics_sync.utils import DEFAULT_CONFIG_DIR

__all__ = [
    "DEFAULT_CONFIG_DIR",
    "cli",
    "get_config_dir",
    "get_config_file",
    "show_detailed_changes",
    "show_run_summary",
    "show_unit_summary",
]
