"""
Path utilities for configuration directory resolution.

Every command resolves the configuration directory the same way so the
settings file, lists file, hash database, and reports end up side by side.
"""

from __future__ import annotations

import os
from pathlib import Path

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".qualtrics-sync"

# Environment variable for overriding config directory
CONFIG_DIR_ENV_VAR = "QUALTRICS_SYNC_CONFIG_DIR"


def resolve_config_dir(config_dir: Path | str | None = None) -> Path:
    """
    Resolve the configuration directory path.

    Priority:
        1. Explicit config_dir parameter
        2. QUALTRICS_SYNC_CONFIG_DIR environment variable
        3. Default directory (~/.qualtrics-sync)

    Args:
        config_dir: Optional explicit configuration directory path.

    Returns:
        Resolved, user-expanded Path to the configuration directory
    """
    if config_dir is not None:
        return Path(config_dir).expanduser().resolve()

    env_dir = os.environ.get(CONFIG_DIR_ENV_VAR)
    if env_dir:
        return Path(env_dir).expanduser().resolve()

    return DEFAULT_CONFIG_DIR.expanduser().resolve()


def resolve_relative(path: Path | str, base_dir: Path) -> Path:
    """
    Resolve a configured path against a base directory.

    Absolute and ~-prefixed paths are kept as given; relative paths are
    taken relative to base_dir.
    """
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        return candidate
    return base_dir / candidate
