"""
Run report written to <report_dir>/log.txt.

Layout of one run:

    ----------------------------------------------------------------
    Mon Oct 19 2026     14:00:02
    ----------------------------------------------------------------

    Students.csv
    Changes to be Made: 3         Added: 1       Updated: 1       Deleted: 1
        Failed to Add contact: A7 missing required field

    Staff.csv
         The hashes matched

    Elapsed Time: 0:01:12           Files Successfully Synced: 2
    ----------------------------------------------------------------

Writing never raises: a failed log.txt write is logged and reported as
False, and a failed changes file as None, so the sync itself is unaffected.
"""

import csv
import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Optional

from qualtrics_sync.sync.unit import ACTIONS, SyncUnit

logger = logging.getLogger(__name__)

REPORT_FILE_NAME = "log.txt"
DETAIL_FILE_SUFFIX = "_changes.csv"
NEWLINE = "\r\n"
LINE_BREAK = f"{NEWLINE}{'-' * 127}{NEWLINE}"


def fixed_width(text: str, width: int) -> str:
    """Pad or truncate text to exactly width characters."""
    return f"{text:<{width}}"[:width]


def format_elapsed(start: datetime, end: Optional[datetime] = None) -> str:
    """Format the time since start as H:MM:SS."""
    end = end or datetime.now()
    total = max(0, int((end - start).total_seconds()))
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}"


def files_synced(units: Sequence[SyncUnit]) -> int:
    """Number of lists that finished without a file error."""
    return sum(1 for unit in units if unit.report.file_error is None)


def format_list_entry(unit: SyncUnit) -> str:
    """Build the report text for one mailing list."""
    report = unit.report
    text = f"{NEWLINE}{fixed_width(unit.name, 30)}"

    if report.file_error is not None:
        return f"{text}{NEWLINE}{report.file_error}{NEWLINE}"
    if report.matching_hash:
        return f"{text}{NEWLINE}\t The hashes matched {NEWLINE}"

    text += fixed_width(f"Changes to be Made: {report.changes_count}", 30)
    text += fixed_width(f"Added: {len(report.to_add)}", 15)
    text += fixed_width(f"Updated: {len(report.to_update)}", 17)
    text += fixed_width(f"Deleted: {len(report.to_delete)}", 17)
    text += NEWLINE
    for failed in report.failed:
        text += (
            f"\tFailed to {failed.action} contact: "
            f"{failed.contact.external_reference} {failed.reason}{NEWLINE}"
        )
    return text


class ReportWriter:
    """
    Appends run reports to log.txt in the report directory.

    Usage:
        writer = ReportWriter(report_dir)
        writer.write_header(start)
        for unit in units:
            writer.write_list(unit)
        writer.write_footer(start, units)
    """

    def __init__(self, report_dir: Path):
        self.report_dir = Path(report_dir)

    @property
    def report_path(self) -> Path:
        return self.report_dir / REPORT_FILE_NAME

    def _append(self, text: str) -> bool:
        try:
            self.report_dir.mkdir(parents=True, exist_ok=True)
            # newline="" keeps the explicit CRLF line endings as written
            with open(self.report_path, "a", encoding="utf-8", newline="") as f:
                f.write(text)
            return True
        except OSError as e:
            logger.error(f"Failed to write report {self.report_path}: {e}")
            return False

    def write_header(self, start: datetime) -> bool:
        """Write the run header with the start date and time."""
        date_text = fixed_width(start.strftime("%a %b %d %Y"), 20)
        return self._append(
            f"{LINE_BREAK}{date_text}{start.strftime('%H:%M:%S')}{LINE_BREAK}"
        )

    def write_list(self, unit: SyncUnit) -> bool:
        """Write the outcome of one mailing list."""
        return self._append(format_list_entry(unit))

    def write_footer(
        self, start: datetime, units: Optional[Sequence[SyncUnit]] = None
    ) -> bool:
        """Write elapsed time and, if units are given, the synced list count."""
        elapsed = format_elapsed(start)
        text = f"{NEWLINE}{NEWLINE}{fixed_width(f'Elapsed Time: {elapsed}', 32)}"
        if units is not None:
            text += fixed_width(f"Files Successfully Synced: {files_synced(units)}", 36)
        text += LINE_BREAK
        logger.info(f"Elapsed Time: {elapsed}")
        return self._append(text)

    def write_fatal_error(
        self,
        error: BaseException,
        start: datetime,
        units: Optional[Sequence[SyncUnit]] = None,
    ) -> bool:
        """Write a run-ending error followed by the footer."""
        if not self._append(f"{NEWLINE}Fatal error: {error}{NEWLINE}"):
            logger.error("Error writing fatal error, footer not written")
            return False
        return self.write_footer(start, units)

    def write_detailed_file(
        self, unit: SyncUnit, dry_run: bool = False
    ) -> Optional[Path]:
        """
        Write a CSV listing every planned change of one list and its outcome.

        In a dry run nothing was applied, so changes are marked "planned".

        Returns:
            Path of the written file, or None if nothing was written
        """
        report = unit.report
        if report.file_error is not None or report.matching_hash:
            return None

        stem = Path(unit.config.csv_file).stem or unit.list_id
        path = self.report_dir / f"{stem}{DETAIL_FILE_SUFFIX}"

        ok_status = "planned" if dry_run else "ok"
        rows = []
        for action in ACTIONS:
            for contact in report.bucket(action):
                rows.append((action, contact, ok_status, ""))
            for failed in report.failed_for(action):
                rows.append((action, failed.contact, "failed", failed.reason))

        try:
            self.report_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="") as f:
                writer = csv.writer(f)
                writer.writerow(
                    ["action", "externalDataReference", "id", "email", "status", "error"]
                )
                for action, contact, status, reason in rows:
                    writer.writerow(
                        [
                            action,
                            contact.external_reference,
                            contact.id or "",
                            contact.email,
                            status,
                            reason,
                        ]
                    )
        except OSError as e:
            logger.error(f"Failed to write detailed report {path}: {e}")
            return None

        logger.debug(f"Wrote {len(rows)} change(s) to {path}")
        return path
