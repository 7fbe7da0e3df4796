"""
Daemon scheduler for periodic Qualtrics mailing list synchronization.

Provides a DaemonScheduler class that manages:
- Sync runs repeated at a configurable interval
- Signal handling for graceful shutdown (SIGTERM/SIGINT)
- Statistics of completed and failed runs
"""

from __future__ import annotations

import logging
import signal
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

logger = logging.getLogger(__name__)


class DaemonError(Exception):
    """Base exception for daemon-related errors."""

    pass


@dataclass
class DaemonStats:
    """
    Statistics from daemon operation.

    A run that completes with per-list problems still counts as a
    completed run; only callbacks returning False or raising are errors.
    """

    started_at: datetime = field(default_factory=datetime.now)
    sync_count: int = 0
    sync_success_count: int = 0
    sync_error_count: int = 0
    last_sync_at: datetime | None = None
    last_sync_success: bool = False
    last_error: str | None = None


class DaemonScheduler:
    """
    Foreground scheduler for periodic sync runs.

    Usage:
        scheduler = DaemonScheduler(interval=3600)
        scheduler.set_sync_callback(run_once)

        # Blocks until SIGTERM/SIGINT or stop()
        scheduler.run()

    Attributes:
        interval: Seconds between the start of one wait and the next run
        run_immediately: Whether the first run happens before any wait
        stats: Daemon statistics
    """

    def __init__(
        self,
        interval: int = 3600,
        run_immediately: bool = True,
        handle_signals: bool = True,
    ):
        """
        Initialize the daemon scheduler.

        Args:
            interval: Sync interval in seconds (default: 3600 = 1 hour)
            run_immediately: If True, run a sync before the first wait
            handle_signals: Install SIGTERM/SIGINT handlers while running.
                Only possible from the main thread.
        """
        if interval <= 0:
            raise DaemonError(f"Interval must be positive, got {interval}")
        self.interval = interval
        self.run_immediately = run_immediately
        self.handle_signals = handle_signals
        self._sync_callback: Callable[[], bool] | None = None
        self._running = False
        self._shutdown_requested = False
        self._original_sigterm_handler = None
        self._original_sigint_handler = None
        self.stats = DaemonStats()

    def set_sync_callback(self, callback: Callable[[], bool]) -> None:
        """
        Set the function executed for each run.

        The callback should return True on success, False on failure.
        """
        self._sync_callback = callback

    def _setup_signal_handlers(self) -> None:
        self._original_sigterm_handler = signal.signal(
            signal.SIGTERM, self._signal_handler
        )
        self._original_sigint_handler = signal.signal(
            signal.SIGINT, self._signal_handler
        )
        logger.debug("Signal handlers installed for SIGTERM and SIGINT")

    def _restore_signal_handlers(self) -> None:
        if self._original_sigterm_handler is not None:
            signal.signal(signal.SIGTERM, self._original_sigterm_handler)
        if self._original_sigint_handler is not None:
            signal.signal(signal.SIGINT, self._original_sigint_handler)
        logger.debug("Signal handlers restored")

    def _signal_handler(self, signum: int, frame: object) -> None:
        signal_name = signal.Signals(signum).name
        logger.info(f"Received {signal_name}, initiating graceful shutdown...")
        self._shutdown_requested = True

    def _run_sync(self) -> bool:
        """
        Execute the sync callback and update statistics.

        Returns:
            True if the run succeeded, False otherwise.
        """
        if self._sync_callback is None:
            logger.warning("No sync callback configured, skipping sync")
            return False

        self.stats.sync_count += 1
        self.stats.last_sync_at = datetime.now()

        try:
            logger.info(f"Starting sync (cycle #{self.stats.sync_count})")
            success = self._sync_callback()
        except Exception as e:
            self.stats.sync_error_count += 1
            self.stats.last_sync_success = False
            self.stats.last_error = str(e)
            logger.exception(f"Sync failed with exception: {e}")
            return False

        if success:
            self.stats.sync_success_count += 1
            self.stats.last_sync_success = True
            self.stats.last_error = None
            logger.info("Sync completed successfully")
        else:
            self.stats.sync_error_count += 1
            self.stats.last_sync_success = False
            logger.warning("Sync completed with errors")
        return success

    def _sleep_interruptible(self, seconds: int) -> bool:
        """
        Sleep for the specified duration, checking for shutdown.

        Sleeps in one-second steps against the wall clock, so a suspended
        machine runs the next sync on schedule after waking.

        Returns:
            True if sleep completed normally, False if interrupted by shutdown.
        """
        end_time = time.time() + seconds
        while time.time() < end_time and not self._shutdown_requested:
            remaining = end_time - time.time()
            sleep_time = min(1.0, max(0, remaining))
            if sleep_time > 0:
                time.sleep(sleep_time)

        return not self._shutdown_requested

    def run(self) -> None:
        """
        Run the scheduler loop.

        Blocks until a shutdown signal is received or stop() is called.
        """
        logger.info(f"Starting daemon scheduler (interval: {self.interval}s)")

        if self.handle_signals:
            self._setup_signal_handlers()

        self._running = True
        self._shutdown_requested = False
        self.stats = DaemonStats()

        try:
            if self.run_immediately:
                self._run_sync()

            while not self._shutdown_requested:
                logger.debug(f"Sleeping for {self.interval} seconds until next sync")
                if not self._sleep_interruptible(self.interval):
                    break
                if not self._shutdown_requested:
                    self._run_sync()

        finally:
            self._running = False
            if self.handle_signals:
                self._restore_signal_handlers()
            logger.info("Daemon scheduler stopped")

    def stop(self) -> None:
        """
        Request shutdown.

        Can be called from within the sync callback or another thread.
        """
        logger.info("Stop requested")
        self._shutdown_requested = True

    def is_running(self) -> bool:
        return self._running


__all__ = [
    "DaemonScheduler",
    "DaemonStats",
    "DaemonError",
]
