"""
Sync engine for Qualtrics mailing list reconciliation.

Runs the per-list pipeline (read, hash gate, normalize, fetch, match,
compare, classify, apply) for every configured mailing list, one list at
a time, and writes the run report.
"""

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from qualtrics_sync.api.mailing_list_api import MailingListAPI, MailingListAPIError
from qualtrics_sync.config.loader import ConfigError, Settings
from qualtrics_sync.config.mailing_lists import (
    MailingListConfig,
    MailingListConfigError,
    load_mailing_lists,
)
from qualtrics_sync.notify.notifier import RunContext, create_notifier
from qualtrics_sync.reporting.log_report import ReportWriter
from qualtrics_sync.storage.db import HashStore, HashStoreError, compute_hash
from qualtrics_sync.sync.classifier import classify
from qualtrics_sync.sync.contact import ContactRecord
from qualtrics_sync.sync.differ import diff_pairs
from qualtrics_sync.sync.errors import ListConfigError, RemoteFetchError
from qualtrics_sync.sync.executor import ApplyExecutor
from qualtrics_sync.sync.matcher import match_contacts, sort_contacts
from qualtrics_sync.sync.normalizer import DEFAULT_UNIQUE_ID_COLUMN, normalize_rows
from qualtrics_sync.sync.retry import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    retry_call,
)
from qualtrics_sync.sync.source import read_source
from qualtrics_sync.sync.unit import SyncStage, SyncUnit

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """
    Outcome of one run over the configured mailing lists.

    Attributes:
        units: One finished SyncUnit per processed list, in order
        started_at: Run start time
        finished_at: Run end time
        dry_run: Whether changes were only computed
        notified: Whether a failure alert was sent
    """

    units: list[SyncUnit] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    dry_run: bool = False
    notified: bool = False

    @property
    def files_synced(self) -> int:
        """Lists that finished without a file error."""
        return sum(1 for unit in self.units if unit.report.file_error is None)

    @property
    def has_errors(self) -> bool:
        return any(unit.report.has_errors for unit in self.units)

    @property
    def failed_contacts(self) -> int:
        return sum(len(unit.report.failed) for unit in self.units)


class SyncEngine:
    """
    Reconciles CSV extracts against Qualtrics mailing lists.

    Every list gets a fresh SyncUnit. A failure while processing one list
    is recorded as that list's file_error and never stops the others.

    Usage:
        engine = SyncEngine(
            api=MailingListAPI(token),
            hash_store=store,
            report_writer=ReportWriter(report_dir),
            csv_dir=Path("/data/csv"),
        )
        result = engine.run(configs, context=RunContext(LogNotifier()))
    """

    def __init__(
        self,
        api: MailingListAPI,
        hash_store: HashStore,
        report_writer: ReportWriter,
        csv_dir: Path,
        executor: Optional[ApplyExecutor] = None,
        unique_id_column: str = DEFAULT_UNIQUE_ID_COLUMN,
        fetch_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        fetch_retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the sync engine.

        Args:
            api: MailingListAPI used for fetching and applying
            hash_store: Initialized HashStore for the hash gate
            report_writer: Writer for log.txt and detailed files
            csv_dir: Directory the lists file's csv names are relative to
            executor: ApplyExecutor (default: one with default limits)
            unique_id_column: CSV column holding the unique id
            fetch_max_attempts: Attempts to fetch a list's contacts
            fetch_retry_delay: Seconds between fetch attempts
            sleep: Sleep function, replaceable in tests
        """
        self.api = api
        self.hash_store = hash_store
        self.report_writer = report_writer
        self.csv_dir = Path(csv_dir)
        self.executor = executor or ApplyExecutor(api, sleep=sleep)
        self.unique_id_column = unique_id_column
        self.fetch_max_attempts = fetch_max_attempts
        self.fetch_retry_delay = fetch_retry_delay
        self._sleep = sleep

    def _fetch_remote(self, unit: SyncUnit) -> list[ContactRecord]:
        """
        Fetch the remote contacts of a list with retry.

        Raises:
            RemoteFetchError: If every attempt failed
        """
        outcome = retry_call(
            lambda: self.api.list_contacts(unit.list_id),
            max_attempts=self.fetch_max_attempts,
            delay=self.fetch_retry_delay,
            retry_on=(MailingListAPIError,),
            sleep=self._sleep,
            operation_name=f"Fetch {unit.list_id}",
        )
        if not outcome.succeeded:
            raise RemoteFetchError(
                f"Failed to fetch contacts of {unit.list_id}: {outcome.error}"
            ) from outcome.error
        return outcome.value

    def _run_pipeline(self, unit: SyncUnit, dry_run: bool, force: bool) -> None:
        config = unit.config
        report = unit.report

        if not config.is_valid:
            raise ListConfigError(config.error)

        source = read_source(config.csv_path(self.csv_dir))
        unit.content_hash = compute_hash(source.content)
        unit.advance(SyncStage.READ)

        if not force and self.hash_store.check_unchanged(unit.list_id, source.content):
            logger.info(f"{unit.name}: the hashes matched, skipping")
            report.matching_hash = True
            return

        normalized = normalize_rows(source.rows, self.unique_id_column)
        unit.source_contacts = normalized.contacts
        report.skipped_rows = normalized.skipped_rows
        unit.advance(SyncStage.NORMALIZED)

        unit.remote_contacts = self._fetch_remote(unit)
        unit.advance(SyncStage.FETCHED)

        unit.source_contacts = sort_contacts(unit.source_contacts)
        unit.remote_contacts = sort_contacts(unit.remote_contacts)
        unit.advance(SyncStage.SORTED)

        match_result = match_contacts(unit.source_contacts, unit.remote_contacts)
        diffs = diff_pairs(match_result.matched)
        unit.advance(SyncStage.COMPARED)

        classify(match_result, report, diffs)
        unit.advance(SyncStage.CLASSIFIED)

        logger.info(
            f"{unit.name}: {len(unit.source_contacts)} source, "
            f"{len(unit.remote_contacts)} remote; "
            f"add {len(report.to_add)}, update {len(report.to_update)}, "
            f"delete {len(report.to_delete)}, unchanged {report.unchanged}"
        )

        if dry_run:
            return

        self.executor.apply(unit)
        unit.advance(SyncStage.APPLIED)

    def sync_list(
        self, config: MailingListConfig, dry_run: bool = False, force: bool = False
    ) -> SyncUnit:
        """
        Reconcile one mailing list.

        Args:
            config: The list's configuration row
            dry_run: Compute changes without applying them
            force: Ignore the stored hash

        Returns:
            The finished SyncUnit; errors are recorded on its report
        """
        unit = SyncUnit(config=config)
        logger.info(f"Syncing {unit.name} ({unit.list_id or 'no list id'})")

        try:
            self._run_pipeline(unit, dry_run=dry_run, force=force)
        except Exception as e:
            # Any failure here only affects this list
            unit.report.file_error = e
            logger.error(f"{unit.name}: {e}", exc_info=True)
        finally:
            unit.finish()

        if not dry_run:
            self._record_hash(unit)
        return unit

    def _record_hash(self, unit: SyncUnit) -> None:
        """Store the list's hash if it synced cleanly."""
        report = unit.report
        if report.matching_hash or report.has_errors or unit.content_hash is None:
            return
        try:
            self.hash_store.record_hash(
                unit.list_id, unit.content_hash, unit.config.csv_file
            )
        except HashStoreError as e:
            logger.error(f"{unit.name}: failed to record hash: {e}")

    def run(
        self,
        configs: Sequence[MailingListConfig],
        context: RunContext,
        dry_run: bool = False,
        force: bool = False,
    ) -> RunResult:
        """
        Reconcile every list, strictly one after another.

        Writes the report header, one entry per list and the footer, then
        sends at most one failure alert through the context.

        Args:
            configs: Lists to process, in order
            context: Run-scoped notification state
            dry_run: Compute changes without applying them
            force: Ignore stored hashes

        Returns:
            RunResult
        """
        result = RunResult(started_at=context.started_at, dry_run=dry_run)

        for config in configs:
            unit = self.sync_list(config, dry_run=dry_run, force=force)
            self.report_writer.write_list(unit)
            self.report_writer.write_detailed_file(unit, dry_run=dry_run)
            result.units.append(unit)

        self.report_writer.write_footer(result.started_at, result.units)
        result.finished_at = datetime.now()
        result.notified = context.notify_failures(result.units)

        logger.info(
            f"Lists processed: {len(result.units)}, "
            f"synced without file error: {result.files_synced}"
        )
        return result


def select_lists(
    configs: Sequence[MailingListConfig], list_ids: Optional[Iterable[str]]
) -> list[MailingListConfig]:
    """
    Keep only the configs whose list id is in list_ids.

    A None or empty selection keeps every config.
    """
    wanted = set(list_ids or ())
    if not wanted:
        return list(configs)

    selected = [c for c in configs if c.list_id in wanted]
    unknown = wanted - {c.list_id for c in selected}
    for list_id in sorted(unknown):
        logger.warning(f"Mailing list {list_id} is not in the lists file")
    return selected


def run_once(
    settings: Settings,
    dry_run: bool = False,
    force: bool = False,
    list_ids: Optional[Iterable[str]] = None,
    api: Optional[MailingListAPI] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunResult:
    """
    Perform one complete run from settings.

    Args:
        settings: Loaded Settings
        dry_run: Compute changes without applying them
        force: Ignore stored hashes
        list_ids: Optional subset of mailing list ids to process
        api: Preconstructed API client (default: built from settings)
        sleep: Sleep function for retry pauses

    Returns:
        RunResult

    Raises:
        MailingListConfigError: If the lists file cannot be read
        ConfigError: If the API token is missing
        HashStoreError: If the hash database cannot be opened
        (each is first written to the report and notified)
    """
    context = RunContext(create_notifier(settings.notify_webhook_url))
    writer = ReportWriter(settings.report_dir)
    writer.write_header(context.started_at)

    try:
        configs = select_lists(load_mailing_lists(settings.lists_file), list_ids)
        if api is None:
            api = MailingListAPI(
                settings.api_token(),
                base_url=settings.api_base_url,
                timeout=settings.api_timeout,
            )
        settings.hash_db.parent.mkdir(parents=True, exist_ok=True)
        hash_store = HashStore(str(settings.hash_db))
        hash_store.initialize()
    except (MailingListConfigError, ConfigError, HashStoreError, OSError) as e:
        logger.error(f"Run aborted: {e}")
        writer.write_fatal_error(e, context.started_at)
        context.notify_failures([], fatal_error=e)
        raise

    engine = SyncEngine(
        api=api,
        hash_store=hash_store,
        report_writer=writer,
        csv_dir=settings.csv_dir,
        executor=ApplyExecutor(
            api,
            max_workers=settings.apply_max_workers,
            max_attempts=settings.apply_max_attempts,
            retry_delay=settings.apply_retry_delay,
            sleep=sleep,
        ),
        unique_id_column=settings.unique_id_column,
        fetch_max_attempts=settings.fetch_max_attempts,
        fetch_retry_delay=settings.fetch_retry_delay,
        sleep=sleep,
    )
    return engine.run(configs, context=context, dry_run=dry_run, force=force)
