"""
Fixed-delay retry for remote operations.

The mailing list API is flaky in bursts, so every remote mutation and
every list fetch is attempted a bounded number of times with a constant
pause between attempts.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Retry configuration defaults
DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_RETRY_DELAY = 2.5  # seconds


@dataclass
class RetryOutcome:
    """
    Result of a retried operation.

    Attributes:
        succeeded: True if some attempt returned normally
        attempts: Number of attempts made
        value: Return value of the successful attempt
        error: Exception from the last failed attempt, when not succeeded
    """

    succeeded: bool
    attempts: int
    value: Any = None
    error: Optional[BaseException] = None


def retry_call(
    operation: Callable[[], Any],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delay: float = DEFAULT_RETRY_DELAY,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    operation_name: str = "operation",
) -> RetryOutcome:
    """
    Run an operation until it succeeds or the attempts run out.

    Exceptions not listed in retry_on propagate immediately.

    Args:
        operation: Callable to execute
        max_attempts: Total attempts, including the first (default 2)
        delay: Seconds to wait between attempts (default 2.5)
        retry_on: Exception types that count as a failed attempt
        sleep: Sleep function, replaceable in tests
        operation_name: Name for logging purposes

    Returns:
        RetryOutcome

    Raises:
        ValueError: If max_attempts is less than 1
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    last_error: Optional[BaseException] = None
    for attempt in range(1, max_attempts + 1):
        try:
            value = operation()
            return RetryOutcome(succeeded=True, attempts=attempt, value=value)
        except retry_on as e:
            last_error = e
            if attempt < max_attempts:
                logger.debug(
                    f"{operation_name} failed ({e}), retrying in {delay:.1f}s "
                    f"(attempt {attempt}/{max_attempts})"
                )
                sleep(delay)

    return RetryOutcome(succeeded=False, attempts=max_attempts, error=last_error)
