"""
qualtrics_sync.daemon - Periodic scheduling module

Foreground scheduler that repeats sync runs at a configurable interval
and shuts down cleanly on SIGTERM/SIGINT.
"""

import re

INTERVAL_MULTIPLIERS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}


def parse_interval(interval: str | int) -> int:
    """Parse an interval string into seconds.

    Accepts interval strings with units (s, m, h, d) or plain integers.

    Args:
        interval: Interval value. Examples:
            - "30s" -> 30 seconds
            - "5m" -> 5 minutes (300 seconds)
            - "1h" -> 1 hour (3600 seconds)
            - "1d" -> 1 day (86400 seconds)
            - 3600 -> 3600 seconds (pass-through)
            - "3600" -> 3600 seconds (numeric string)

    Returns:
        Interval in seconds as a positive integer.

    Raises:
        ValueError: If the interval is malformed, uses an unknown unit, or
            is not positive.
    """
    if isinstance(interval, bool) or not isinstance(interval, (int, str)):
        raise ValueError(
            f"Invalid interval type: {type(interval).__name__}. Expected str or int."
        )

    if isinstance(interval, int):
        seconds = interval
    else:
        text = interval.lower().strip()
        if text.isdigit():
            seconds = int(text)
        else:
            match = re.match(r"^(\d+)\s*([smhd])$", text)
            if not match:
                raise ValueError(
                    f"Invalid interval format: '{interval}'. "
                    "Use format like '30s', '5m', '1h', or '1d'."
                )
            seconds = int(match.group(1)) * INTERVAL_MULTIPLIERS[match.group(2)]

    if seconds <= 0:
        raise ValueError(f"Interval must be positive, got {interval!r}")
    return seconds


# Imports after parse_interval to avoid circular dependencies
from qualtrics_sync.daemon.scheduler import (  # noqa: E402
    DaemonError,
    DaemonScheduler,
    DaemonStats,
)

__all__ = [
    "parse_interval",
    "DaemonScheduler",
    "DaemonStats",
    "DaemonError",
]
