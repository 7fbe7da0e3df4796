"""
Per-mailing-list working state.

A SyncUnit is created fresh for each mailing list, moves forward through
the pipeline stages, and is discarded once its report has been written.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from qualtrics_sync.config.mailing_lists import MailingListConfig
from qualtrics_sync.sync.contact import ContactRecord

# Action names, as shown in reports and failure records
ACTION_ADD = "Add"
ACTION_UPDATE = "Update"
ACTION_DELETE = "Delete"
ACTIONS = (ACTION_ADD, ACTION_UPDATE, ACTION_DELETE)


class SyncStage(Enum):
    """Pipeline stages of one mailing list, in order."""

    PENDING = 0
    READ = 1
    NORMALIZED = 2
    FETCHED = 3
    SORTED = 4
    COMPARED = 5
    CLASSIFIED = 6
    APPLIED = 7
    DONE = 8


@dataclass
class FailedContact:
    """A contact that could not be added, updated, or deleted."""

    contact: ContactRecord
    action: str
    error: Exception

    @property
    def reason(self) -> str:
        """Human-readable failure reason."""
        return str(self.error)


@dataclass
class ReconciliationReport:
    """
    Reconciliation outcome for one mailing list.

    to_add, to_update and to_delete hold the planned changes; contacts
    that fail are moved out of them into failed. added, updated and
    deleted count successful remote operations.
    """

    to_add: list[ContactRecord] = field(default_factory=list)
    to_update: list[ContactRecord] = field(default_factory=list)
    to_delete: list[ContactRecord] = field(default_factory=list)
    failed: list[FailedContact] = field(default_factory=list)
    file_error: Optional[Exception] = None
    matching_hash: bool = False

    # Supplemental counters
    skipped_rows: int = 0
    unchanged: int = 0
    added: int = 0
    updated: int = 0
    deleted: int = 0

    def bucket(self, action: str) -> list[ContactRecord]:
        """Return the action bucket for Add, Update, or Delete."""
        buckets = {
            ACTION_ADD: self.to_add,
            ACTION_UPDATE: self.to_update,
            ACTION_DELETE: self.to_delete,
        }
        try:
            return buckets[action]
        except KeyError:
            raise ValueError(f"Unknown action: {action!r}") from None

    @property
    def changes_count(self) -> int:
        """Number of changes still planned (failed contacts excluded)."""
        return len(self.to_add) + len(self.to_update) + len(self.to_delete)

    def failed_for(self, action: str) -> list[FailedContact]:
        """Failed contacts for one action."""
        return [f for f in self.failed if f.action == action]

    @property
    def has_errors(self) -> bool:
        """True if the list hit a file error or any contact failed."""
        return self.file_error is not None or bool(self.failed)

    def summary(self) -> str:
        """One-line summary of the list outcome."""
        if self.file_error is not None:
            return f"File error: {self.file_error}"
        if self.matching_hash:
            return "The hashes matched"
        return (
            f"Changes to be made: {self.changes_count}, "
            f"added: {self.added}/{len(self.to_add)}, "
            f"updated: {self.updated}/{len(self.to_update)}, "
            f"deleted: {self.deleted}/{len(self.to_delete)}, "
            f"failed: {len(self.failed)}"
        )


@dataclass
class SyncUnit:
    """
    Working state of one mailing list.

    Attributes:
        config: The list's configuration row
        source_contacts: Normalized contacts from the CSV extract
        remote_contacts: Contacts fetched from the mailing list
        report: Reconciliation outcome
        stage: Current pipeline stage
        content_hash: Hash of the CSV content, once read
    """

    config: MailingListConfig
    source_contacts: list[ContactRecord] = field(default_factory=list)
    remote_contacts: list[ContactRecord] = field(default_factory=list)
    report: ReconciliationReport = field(default_factory=ReconciliationReport)
    stage: SyncStage = SyncStage.PENDING
    content_hash: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def list_id(self) -> str:
        return self.config.list_id

    @property
    def name(self) -> str:
        return self.config.display_name

    def advance(self, stage: SyncStage) -> None:
        """
        Move to the next pipeline stage.

        Only single forward steps are allowed, except that any stage may
        finish early by moving straight to DONE.

        Raises:
            ValueError: On a backward or skipping transition
        """
        if stage is SyncStage.DONE and self.stage is not SyncStage.DONE:
            self.stage = stage
            self.finished_at = datetime.now()
            return

        if stage.value != self.stage.value + 1:
            raise ValueError(
                f"{self.name}: cannot move from {self.stage.name} to {stage.name}"
            )
        self.stage = stage

    def finish(self) -> None:
        """Move to DONE if not already there."""
        if self.stage is not SyncStage.DONE:
            self.advance(SyncStage.DONE)

    @property
    def elapsed_seconds(self) -> float:
        end = self.finished_at or datetime.now()
        return (end - self.started_at).total_seconds()
