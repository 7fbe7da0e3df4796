"""
Execution of planned changes against the mailing list API.

Changes run group by group (adds, then updates, then deletes). Within a
group a thread pool bounds the number of requests in flight, and every
request is retried through retry_call. A contact whose request still
fails is moved from its bucket to the report's failed list; the rest of
the group carries on.
"""

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from qualtrics_sync.api.mailing_list_api import MailingListAPI
from qualtrics_sync.sync.contact import ContactRecord
from qualtrics_sync.sync.errors import ContactError
from qualtrics_sync.sync.retry import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    retry_call,
)
from qualtrics_sync.sync.unit import (
    ACTION_ADD,
    ACTION_DELETE,
    ACTION_UPDATE,
    ACTIONS,
    FailedContact,
    SyncUnit,
)

logger = logging.getLogger(__name__)

# Maximum concurrent requests within one group
DEFAULT_MAX_WORKERS = 5


@dataclass
class ApplyStats:
    """Successful operations per group."""

    added: int = 0
    updated: int = 0
    deleted: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.added + self.updated + self.deleted


class ApplyExecutor:
    """
    Applies a unit's to_add, to_update and to_delete buckets remotely.

    Attributes:
        api: MailingListAPI used for the requests
        max_workers: Concurrent requests within a group
        max_attempts: Attempts per request
        retry_delay: Seconds between attempts

    Usage:
        executor = ApplyExecutor(api)
        stats = executor.apply(unit)
        print(f"Added {stats.added}, failed {stats.failed}")
    """

    def __init__(
        self,
        api: MailingListAPI,
        max_workers: int = DEFAULT_MAX_WORKERS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.api = api
        self.max_workers = max_workers
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._lock = threading.Lock()

    def _operation_for(
        self, action: str, list_id: str, contact: ContactRecord
    ) -> Callable[[], object]:
        if action == ACTION_ADD:
            return lambda: self.api.create_contact(list_id, contact)
        if action == ACTION_UPDATE:
            return lambda: self.api.update_contact(list_id, contact)
        if action == ACTION_DELETE:
            return lambda: self.api.delete_contact(list_id, contact)
        raise ValueError(f"Unknown action: {action!r}")

    def _run_one(self, unit: SyncUnit, action: str, contact: ContactRecord) -> bool:
        """
        Apply a single change with retry.

        Returns:
            True on success, False if the contact was moved to failed
        """
        outcome = retry_call(
            self._operation_for(action, unit.list_id, contact),
            max_attempts=self.max_attempts,
            delay=self.retry_delay,
            retry_on=(Exception,),
            sleep=self._sleep,
            operation_name=f"{action} {contact.external_reference}",
        )
        if outcome.succeeded:
            return True

        error = ContactError(str(outcome.error))
        error.__cause__ = outcome.error
        report = unit.report
        with self._lock:
            bucket = report.bucket(action)
            for index, candidate in enumerate(bucket):
                if candidate is contact:
                    del bucket[index]
                    break
            report.failed.append(FailedContact(contact, action, error))

        logger.warning(
            f"{unit.name}: {action} failed for {contact.external_reference} "
            f"after {outcome.attempts} attempt(s): {outcome.error}"
        )
        return False

    def _run_group(self, unit: SyncUnit, action: str) -> int:
        """
        Apply one group, waiting for every member to finish.

        Returns:
            Number of successful operations
        """
        # Snapshot, since failures are removed from the bucket as we go
        contacts = list(unit.report.bucket(action))
        if not contacts:
            return 0

        logger.info(f"{unit.name}: {action} {len(contacts)} contact(s)")
        succeeded = 0
        workers = min(self.max_workers, len(contacts))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self._run_one, unit, action, contact)
                for contact in contacts
            ]
            for future in as_completed(futures):
                if future.result():
                    succeeded += 1
        return succeeded

    def apply(self, unit: SyncUnit) -> ApplyStats:
        """
        Apply all planned changes of a unit.

        Returns normally even if individual contacts fail: any exception
        raised by a request is retried and then recorded against its
        contact.

        Args:
            unit: Unit in the CLASSIFIED stage

        Returns:
            ApplyStats; the counts are also stored on unit.report
        """
        stats = ApplyStats()
        failed_before = len(unit.report.failed)

        for action in ACTIONS:
            count = self._run_group(unit, action)
            if action == ACTION_ADD:
                stats.added = count
            elif action == ACTION_UPDATE:
                stats.updated = count
            else:
                stats.deleted = count

        stats.failed = len(unit.report.failed) - failed_before

        report = unit.report
        report.added = stats.added
        report.updated = stats.updated
        report.deleted = stats.deleted

        logger.info(
            f"{unit.name}: added {stats.added}, updated {stats.updated}, "
            f"deleted {stats.deleted}, failed {stats.failed}"
        )
        return stats
