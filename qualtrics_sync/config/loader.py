"""
Configuration loader module for Qualtrics mailing list synchronization.

Provides YAML-based configuration file loading with support for:
- Loading configuration from default or custom paths
- Graceful handling of missing configuration files
- Validation of value types and ranges
- Building typed Settings with paths resolved against the config directory
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from qualtrics_sync.api.mailing_list_api import DEFAULT_BASE_URL, DEFAULT_TIMEOUT
from qualtrics_sync.config.mailing_lists import DEFAULT_LISTS_FILE
from qualtrics_sync.daemon import parse_interval
from qualtrics_sync.sync.executor import DEFAULT_MAX_WORKERS
from qualtrics_sync.sync.normalizer import DEFAULT_UNIQUE_ID_COLUMN
from qualtrics_sync.sync.retry import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_DELAY
from qualtrics_sync.utils.paths import resolve_config_dir, resolve_relative

# Default configuration file name
DEFAULT_CONFIG_FILE = "config.yaml"

# Environment variable for overriding the configuration file path
CONFIG_FILE_ENV_VAR = "QUALTRICS_SYNC_CONFIG_FILE"

# Environment variable holding the API token, unless overridden
DEFAULT_API_TOKEN_ENV = "QUALTRICS_API_TOKEN"

DEFAULT_HASH_DB = "hashes.db"
DEFAULT_CSV_DIR = "csv"
DEFAULT_REPORT_DIR = "reports"
DEFAULT_DAEMON_INTERVAL = "1h"
DEFAULT_LOG_RETENTION = 10

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


class ConfigLoader:
    """
    YAML configuration file loader.

    Attributes:
        config_dir: Directory containing the configuration file
        config_file: Name of the configuration file

    Usage:
        loader = ConfigLoader()
        config = loader.load_and_validate()

        # With custom path
        loader = ConfigLoader(config_dir=Path("/custom/path"))
        config = loader.load()

        # Load from specific file
        config = loader.load_from_file("/path/to/config.yaml")
    """

    def __init__(
        self, config_dir: Path | None = None, config_file: str = DEFAULT_CONFIG_FILE
    ):
        """
        Initialize the configuration loader.

        Args:
            config_dir: Directory containing the configuration file.
                       Defaults to ~/.qualtrics-sync/ or $QUALTRICS_SYNC_CONFIG_DIR
            config_file: Name of the configuration file (default: config.yaml)
        """
        self.config_dir = resolve_config_dir(config_dir)
        self.config_file = config_file

    def _get_config_path(self) -> Path:
        return self.config_dir / self.config_file

    def load(self) -> dict[str, Any]:
        """
        Load configuration from the default configuration file.

        Returns an empty dict if the file doesn't exist, so every setting
        falls back to its default.

        Raises:
            ConfigError: If the configuration file exists but cannot be parsed
        """
        return self.load_from_file(self._get_config_path())

    def load_from_file(self, path: Path | str) -> dict[str, Any]:
        """
        Load configuration from a specific file.

        Args:
            path: Path to the configuration file

        Returns:
            Dictionary containing configuration values, or empty dict if file
            doesn't exist

        Raises:
            ConfigError: If the configuration file exists but cannot be parsed
        """
        path = Path(path)

        if not path.exists():
            logger.debug(f"Configuration file not found: {path}")
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                config = yaml.safe_load(f)

            # Handle empty files
            if config is None:
                logger.debug(f"Configuration file is empty: {path}")
                return {}

            if not isinstance(config, dict):
                raise ConfigError(
                    f"Configuration file must contain a YAML dictionary, "
                    f"got {type(config).__name__}"
                )

            logger.debug(f"Loaded configuration from {path}")
            return config

        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML configuration file: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file: {e}") from e

    def validate(self, config: dict[str, Any]) -> None:
        """
        Validate configuration structure and values.

        Unknown keys are ignored.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ConfigError: If configuration is invalid
        """
        if not isinstance(config, dict):
            raise ConfigError(
                f"Configuration must be a dictionary, got {type(config).__name__}"
            )

        valid_keys: dict[str, type[Any] | tuple[type[Any], ...]] = {
            # Paths
            "lists_file": str,
            "csv_dir": str,
            "report_dir": str,
            "hash_db": str,
            # Logging options
            "log_dir": str,
            "log_retention_count": int,
            # API options
            "api_base_url": str,
            "api_token_env": str,
            "api_timeout": (int, float),
            # Source options
            "unique_id_column": str,
            # Apply options
            "apply_max_workers": int,
            "apply_max_attempts": int,
            "apply_retry_delay": (int, float),
            "fetch_max_attempts": int,
            "fetch_retry_delay": (int, float),
            # Notification options
            "notify_webhook_url": str,
            # Daemon options
            "daemon_interval": str,
            # CLI options
            "verbose": bool,
            "dry_run": bool,
        }

        for key, value in config.items():
            if key not in valid_keys:
                continue
            expected_type = valid_keys[key]
            # bool is an int subclass; a bare true/false is never a count
            if isinstance(value, bool) and expected_type is not bool:
                wrong_type = True
            else:
                wrong_type = not isinstance(value, expected_type)
            if wrong_type:
                if isinstance(expected_type, tuple):
                    type_name = " or ".join(t.__name__ for t in expected_type)
                else:
                    type_name = expected_type.__name__
                raise ConfigError(
                    f"Invalid type for '{key}': expected {type_name}, "
                    f"got {type(value).__name__}"
                )

        # Positive integer values
        positive_int_keys = [
            "log_retention_count",
            "apply_max_workers",
            "apply_max_attempts",
            "fetch_max_attempts",
        ]
        for key in positive_int_keys:
            if key in config and config[key] < 1:
                raise ConfigError(f"{key} must be >= 1, got {config[key]}")

        # Non-negative delays
        for key in ("apply_retry_delay", "fetch_retry_delay"):
            if key in config and config[key] < 0:
                raise ConfigError(f"{key} must be >= 0, got {config[key]}")

        if "api_timeout" in config and config["api_timeout"] <= 0:
            raise ConfigError(f"api_timeout must be > 0, got {config['api_timeout']}")

        if "daemon_interval" in config:
            try:
                parse_interval(config["daemon_interval"])
            except ValueError as e:
                raise ConfigError(f"Invalid daemon_interval: {e}") from e

    def load_and_validate(self) -> dict[str, Any]:
        """
        Load configuration and validate it.

        Raises:
            ConfigError: If configuration cannot be loaded or is invalid
        """
        config = self.load()
        if config:
            self.validate(config)
        return config


@dataclass
class Settings:
    """
    Typed settings for a sync run.

    Relative paths in the configuration are resolved against the
    configuration directory.
    """

    config_dir: Path
    lists_file: Path
    csv_dir: Path
    report_dir: Path
    hash_db: Path
    log_dir: Path | None = None
    log_retention_count: int = DEFAULT_LOG_RETENTION
    api_base_url: str = DEFAULT_BASE_URL
    api_token_env: str = DEFAULT_API_TOKEN_ENV
    api_timeout: float = DEFAULT_TIMEOUT
    unique_id_column: str = DEFAULT_UNIQUE_ID_COLUMN
    apply_max_workers: int = DEFAULT_MAX_WORKERS
    apply_max_attempts: int = DEFAULT_MAX_ATTEMPTS
    apply_retry_delay: float = DEFAULT_RETRY_DELAY
    fetch_max_attempts: int = DEFAULT_MAX_ATTEMPTS
    fetch_retry_delay: float = DEFAULT_RETRY_DELAY
    notify_webhook_url: str | None = None
    daemon_interval: str = DEFAULT_DAEMON_INTERVAL
    verbose: bool = False
    dry_run: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, config_dir: Path) -> Settings:
        """
        Build Settings from a validated configuration dictionary.

        Args:
            data: Configuration values (missing keys use defaults)
            config_dir: Directory relative paths are resolved against
        """
        data = data or {}

        def path_setting(key: str, default: str) -> Path:
            return resolve_relative(data.get(key) or default, config_dir)

        log_dir = data.get("log_dir")
        return cls(
            config_dir=config_dir,
            lists_file=path_setting("lists_file", DEFAULT_LISTS_FILE),
            csv_dir=path_setting("csv_dir", DEFAULT_CSV_DIR),
            report_dir=path_setting("report_dir", DEFAULT_REPORT_DIR),
            hash_db=path_setting("hash_db", DEFAULT_HASH_DB),
            log_dir=resolve_relative(log_dir, config_dir) if log_dir else None,
            log_retention_count=data.get("log_retention_count", DEFAULT_LOG_RETENTION),
            api_base_url=data.get("api_base_url", DEFAULT_BASE_URL),
            api_token_env=data.get("api_token_env", DEFAULT_API_TOKEN_ENV),
            api_timeout=data.get("api_timeout", DEFAULT_TIMEOUT),
            unique_id_column=data.get("unique_id_column", DEFAULT_UNIQUE_ID_COLUMN),
            apply_max_workers=data.get("apply_max_workers", DEFAULT_MAX_WORKERS),
            apply_max_attempts=data.get("apply_max_attempts", DEFAULT_MAX_ATTEMPTS),
            apply_retry_delay=data.get("apply_retry_delay", DEFAULT_RETRY_DELAY),
            fetch_max_attempts=data.get("fetch_max_attempts", DEFAULT_MAX_ATTEMPTS),
            fetch_retry_delay=data.get("fetch_retry_delay", DEFAULT_RETRY_DELAY),
            notify_webhook_url=data.get("notify_webhook_url") or None,
            daemon_interval=data.get("daemon_interval", DEFAULT_DAEMON_INTERVAL),
            verbose=data.get("verbose", False),
            dry_run=data.get("dry_run", False),
        )

    def api_token(self) -> str:
        """
        Read the API token from the configured environment variable.

        Raises:
            ConfigError: If the variable is unset or empty
        """
        token = os.environ.get(self.api_token_env, "").strip()
        if not token:
            raise ConfigError(
                f"Qualtrics API token missing: set the {self.api_token_env} "
                f"environment variable"
            )
        return token


def load_settings(
    config_dir: Path | str | None = None, config_file: Path | str | None = None
) -> Settings:
    """
    Load, validate, and type the settings.

    Args:
        config_dir: Configuration directory (default resolution if None)
        config_file: Explicit settings file; falls back to
            $QUALTRICS_SYNC_CONFIG_FILE, then <config_dir>/config.yaml

    Raises:
        ConfigError: If the settings file is unreadable or invalid
    """
    loader = ConfigLoader(config_dir=Path(config_dir) if config_dir else None)

    config_file = config_file or os.environ.get(CONFIG_FILE_ENV_VAR)
    if config_file:
        data = loader.load_from_file(Path(config_file).expanduser())
    else:
        data = loader.load()

    if data:
        loader.validate(data)
    return Settings.from_dict(data, loader.config_dir)
