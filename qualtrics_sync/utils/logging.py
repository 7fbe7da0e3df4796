"""
Logging configuration module for qualtrics_sync.

Provides centralized logging configuration with support for:
- Console output on stderr, colored when the terminal allows it
- A daily log file that always captures DEBUG detail
- Log level selection through environment variables
- Retention of a bounded number of old log files
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# Root logger name for the package hierarchy
ROOT_LOGGER_NAME = "qualtrics_sync"

# Default log format
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Console format (less noise than the file)
CONSOLE_FORMAT = "%(levelname)s: %(message)s"

# Verbose format, also used for the log file
VERBOSE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Environment variable names
ENV_LOG_LEVEL = "QUALTRICS_SYNC_LOG_LEVEL"
ENV_DEBUG = "QUALTRICS_SYNC_DEBUG"
ENV_LOG_FILE = "QUALTRICS_SYNC_LOG_FILE"

LOG_FILE_PREFIX = "qualtrics_sync_"


def _get_project_log_dir() -> Path:
    """Get the logs/ directory next to the package."""
    # utils -> qualtrics_sync -> project root
    return Path(__file__).resolve().parent.parent.parent / "logs"


PROJECT_LOG_DIR = _get_project_log_dir()

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class ColoredFormatter(logging.Formatter):
    """
    Formatter that wraps the level name and message in ANSI colors.

    Colors are dropped automatically when stdout is not a terminal, when
    NO_COLOR is set, or when TERM is "dumb".
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        use_colors: bool = True,
    ):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and self._supports_color()

    def _supports_color(self) -> bool:
        """Check if the terminal supports colors."""
        if not hasattr(sys.stdout, "isatty") or not sys.stdout.isatty():
            return False
        # https://no-color.org/
        if os.environ.get("NO_COLOR"):
            return False
        return os.environ.get("TERM", "") != "dumb"

    def format(self, record: logging.LogRecord) -> str:
        """Format the record, coloring a copy so other handlers stay plain."""
        record = logging.makeLogRecord(record.__dict__)

        color = self.COLORS.get(record.levelname)
        if self.use_colors and color:
            record.levelname = f"{color}{record.levelname}{self.RESET}"
            record.msg = f"{color}{record.msg}{self.RESET}"

        return super().format(record)


def get_log_level_from_env() -> int:
    """
    Determine the log level from the environment.

    QUALTRICS_SYNC_DEBUG wins when truthy; otherwise QUALTRICS_SYNC_LOG_LEVEL
    is read, falling back to INFO for unknown or missing values.

    Returns:
        Logging level constant
    """
    if os.environ.get(ENV_DEBUG, "").lower() in ("1", "true", "yes"):
        return logging.DEBUG

    level_str = os.environ.get(ENV_LOG_LEVEL, "INFO").upper()
    return _LEVELS.get(level_str, logging.INFO)


def _dated_log_name() -> str:
    return f"{LOG_FILE_PREFIX}{datetime.now().strftime('%Y%m%d')}.log"


def get_log_file_path() -> Optional[Path]:
    """
    Get the log file path from the environment or the default location.

    Returns:
        Path to the log file, or None if file logging is disabled
    """
    log_file = os.environ.get(ENV_LOG_FILE)
    if log_file is not None:
        if log_file.lower() in ("none", "disabled", ""):
            return None
        return Path(log_file)

    return PROJECT_LOG_DIR / _dated_log_name()


def setup_logging(
    level: Optional[int] = None,
    verbose: bool = False,
    log_dir: Optional[Path] = None,
    log_file: Optional[Path] = None,
    enable_file_logging: bool = True,
    use_colors: bool = True,
) -> logging.Logger:
    """
    Configure logging for the qualtrics_sync application.

    Args:
        level: Logging level. If None, determined from the environment.
        verbose: If True, log at DEBUG with the verbose console format.
        log_dir: Directory for the daily log file (overrides the default).
        log_file: Explicit log file path (overrides log_dir).
        enable_file_logging: If False, only log to the console.
        use_colors: Use colored console output when supported.

    Returns:
        The package root logger

    Example:
        setup_logging(verbose=True, log_dir=Path("/var/log/qualtrics-sync"))
    """
    if level is None:
        level = get_log_level_from_env()
    if verbose:
        level = logging.DEBUG

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    console_format = VERBOSE_FORMAT if verbose else CONSOLE_FORMAT
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)

    console_formatter: logging.Formatter
    if use_colors:
        console_formatter = ColoredFormatter(console_format, DATE_FORMAT)
    else:
        console_formatter = logging.Formatter(console_format, DATE_FORMAT)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if enable_file_logging:
        file_path: Optional[Path]
        if log_file:
            file_path = log_file
        elif log_dir:
            file_path = log_dir / _dated_log_name()
        else:
            file_path = get_log_file_path()

        if file_path:
            try:
                file_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(file_path, encoding="utf-8")
                # The file always keeps DEBUG detail
                file_handler.setLevel(logging.DEBUG)
                file_handler.setFormatter(
                    logging.Formatter(VERBOSE_FORMAT, DATE_FORMAT)
                )
                logger.addHandler(file_handler)
                logger.debug(f"Log file: {file_path}")
            except OSError as e:
                logger.warning(f"Could not create log file {file_path}: {e}")

    return logger


def cleanup_old_logs(log_dir: Optional[Path] = None, keep_count: int = 10) -> int:
    """
    Delete old daily log files, keeping the newest keep_count.

    Args:
        log_dir: Directory holding the log files (default: project logs/)
        keep_count: Number of files to keep. 0 disables cleanup.

    Returns:
        Number of files deleted
    """
    if keep_count <= 0:
        return 0

    logs_dir = log_dir or PROJECT_LOG_DIR
    if not logs_dir.exists():
        return 0

    old_logs = sorted(
        logs_dir.glob(f"{LOG_FILE_PREFIX}*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )[keep_count:]

    deleted = 0
    for old_log in old_logs:
        try:
            old_log.unlink()
            deleted += 1
        except OSError as e:
            logging.getLogger(ROOT_LOGGER_NAME).debug(
                f"Could not delete old log {old_log}: {e}"
            )
    return deleted


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the qualtrics_sync hierarchy.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance for the module
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def set_log_level(level: int) -> None:
    """
    Change the console logging level at runtime.

    File handlers stay at DEBUG.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    for handler in logger.handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(level)


def disable_logging() -> None:
    """Silence all qualtrics_sync logging output."""
    logging.getLogger(ROOT_LOGGER_NAME).disabled = True


def enable_logging() -> None:
    """Re-enable logging output after disable_logging()."""
    logging.getLogger(ROOT_LOGGER_NAME).disabled = False


__all__ = [
    "setup_logging",
    "get_logger",
    "set_log_level",
    "disable_logging",
    "enable_logging",
    "cleanup_old_logs",
    "ColoredFormatter",
    "get_log_level_from_env",
    "get_log_file_path",
    "PROJECT_LOG_DIR",
    "DEFAULT_FORMAT",
    "CONSOLE_FORMAT",
    "VERBOSE_FORMAT",
    "DATE_FORMAT",
]
