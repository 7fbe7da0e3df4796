"""
Tests for the run report writer.
"""

import csv
from datetime import datetime, timedelta

from qualtrics_sync.config.mailing_lists import MailingListConfig
from qualtrics_sync.reporting.log_report import (
    LINE_BREAK,
    NEWLINE,
    REPORT_FILE_NAME,
    ReportWriter,
    files_synced,
    fixed_width,
    format_elapsed,
    format_list_entry,
)
from qualtrics_sync.sync.contact import ContactRecord
from qualtrics_sync.sync.errors import ContactError, SourceReadError
from qualtrics_sync.sync.unit import (
    ACTION_ADD,
    ACTION_DELETE,
    FailedContact,
    SyncUnit,
)


def make_unit(csv_file="QualtricsSync-Students.csv", list_id="ML_1"):
    return SyncUnit(config=MailingListConfig(csv_file=csv_file, list_id=list_id))


def read_report(writer):
    with open(writer.report_path, encoding="utf-8", newline="") as f:
        return f.read()


class TestFormatting:
    """Tests for the formatting helpers."""

    def test_fixed_width_pads(self):
        """Test padding short text."""
        assert fixed_width("abc", 6) == "abc   "

    def test_fixed_width_truncates(self):
        """Test truncating long text."""
        assert fixed_width("abcdefgh", 4) == "abcd"

    def test_format_elapsed(self):
        """Test H:MM:SS formatting."""
        start = datetime(2024, 1, 1, 8, 0, 0)
        end = start + timedelta(hours=1, minutes=2, seconds=3)
        assert format_elapsed(start, end) == "1:02:03"

    def test_format_elapsed_never_negative(self):
        """Test that a clock going backwards gives zero."""
        start = datetime(2024, 1, 1, 8, 0, 0)
        assert format_elapsed(start, start - timedelta(seconds=5)) == "0:00:00"

    def test_files_synced_counts_lists_without_file_error(self):
        """Test that only file errors reduce the synced count."""
        ok = make_unit()
        hashed = make_unit()
        hashed.report.matching_hash = True
        broken = make_unit()
        broken.report.file_error = SourceReadError("gone")
        with_failures = make_unit()
        with_failures.report.failed.append(
            FailedContact(ContactRecord("A"), ACTION_ADD, ContactError("x"))
        )
        assert files_synced([ok, hashed, broken, with_failures]) == 3


class TestFormatListEntry:
    """Tests for per-list report text."""

    def test_changes_line(self):
        """Test the change counts line with the prefix stripped from the name."""
        unit = make_unit()
        unit.report.to_add = [ContactRecord("A")]
        unit.report.to_delete = [ContactRecord("B"), ContactRecord("C")]

        text = format_list_entry(unit)

        assert text.startswith(f"{NEWLINE}Students.csv")
        assert "Changes to be Made: 3" in text
        assert "Added: 1" in text
        assert "Updated: 0" in text
        assert "Deleted: 2" in text

    def test_failed_contacts_are_listed(self):
        """Test one line per failed contact."""
        unit = make_unit()
        unit.report.failed.append(
            FailedContact(
                ContactRecord("A7"), ACTION_DELETE, ContactError("Status Code: 500")
            )
        )

        text = format_list_entry(unit)

        assert f"\tFailed to Delete contact: A7 Status Code: 500{NEWLINE}" in text

    def test_matching_hash(self):
        """Test the unchanged extract entry."""
        unit = make_unit()
        unit.report.matching_hash = True
        assert "\t The hashes matched " in format_list_entry(unit)
        assert "Changes to be Made" not in format_list_entry(unit)

    def test_file_error(self):
        """Test that a file error replaces the counts."""
        unit = make_unit()
        unit.report.file_error = SourceReadError("Failed to read students.csv")
        text = format_list_entry(unit)
        assert "Failed to read students.csv" in text
        assert "Changes to be Made" not in text


class TestReportWriter:
    """Tests for ReportWriter."""

    def test_header(self, tmp_path):
        """Test that the header shows the run start."""
        writer = ReportWriter(tmp_path)
        assert writer.write_header(datetime(2024, 3, 5, 14, 0, 2)) is True

        text = read_report(writer)
        assert writer.report_path == tmp_path / REPORT_FILE_NAME
        assert text.startswith(LINE_BREAK)
        assert "Tue Mar 05 2024" in text
        assert "14:00:02" in text

    def test_full_run_appends(self, tmp_path):
        """Test header, list entries and footer written in order."""
        writer = ReportWriter(tmp_path)
        start = datetime.now()
        unit = make_unit()
        hashed = make_unit("Staff.csv", "ML_2")
        hashed.report.matching_hash = True

        writer.write_header(start)
        writer.write_list(unit)
        writer.write_list(hashed)
        writer.write_footer(start, [unit, hashed])

        text = read_report(writer)
        assert text.index("Students.csv") < text.index("Staff.csv")
        assert "Elapsed Time: 0:00:0" in text
        assert "Files Successfully Synced: 2" in text
        assert text.endswith(LINE_BREAK)

    def test_runs_accumulate(self, tmp_path):
        """Test that a second run is appended, not overwritten."""
        writer = ReportWriter(tmp_path)
        writer.write_header(datetime(2024, 1, 1, 1, 0, 0))
        writer.write_header(datetime(2024, 1, 2, 1, 0, 0))
        text = read_report(writer)
        assert "Mon Jan 01 2024" in text
        assert "Tue Jan 02 2024" in text

    def test_crlf_line_endings(self, tmp_path):
        """Test that lines end in CRLF."""
        writer = ReportWriter(tmp_path)
        writer.write_list(make_unit())
        assert "\r\n" in read_report(writer)

    def test_fatal_error(self, tmp_path):
        """Test that a fatal error is followed by the footer."""
        writer = ReportWriter(tmp_path)
        assert writer.write_fatal_error(RuntimeError("lists file gone"), datetime.now())

        text = read_report(writer)
        assert "Fatal error: lists file gone" in text
        assert "Elapsed Time:" in text
        assert "Files Successfully Synced" not in text

    def test_unwritable_directory_returns_false(self, tmp_path):
        """Test that a write failure is reported, not raised."""
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        writer = ReportWriter(blocker / "reports")

        assert writer.write_header(datetime.now()) is False
        assert writer.write_fatal_error(RuntimeError("x"), datetime.now()) is False


class TestDetailedFile:
    """Tests for the per-list changes CSV."""

    def test_rows_per_change(self, tmp_path):
        """Test that applied and failed changes are both listed."""
        unit = make_unit()
        unit.report.to_add = [ContactRecord("A1", "a@x.com", id="MLRP_new")]
        unit.report.to_delete = [ContactRecord("D1", "d@x.com", id="MLRP_D1")]
        unit.report.failed.append(
            FailedContact(
                ContactRecord("A2", "b@x.com"), ACTION_ADD, ContactError("Status Code: 400")
            )
        )

        path = ReportWriter(tmp_path).write_detailed_file(unit)

        assert path == tmp_path / "QualtricsSync-Students_changes.csv"
        with open(path, encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
        assert [(r["action"], r["externalDataReference"], r["status"]) for r in rows] == [
            ("Add", "A1", "ok"),
            ("Add", "A2", "failed"),
            ("Delete", "D1", "ok"),
        ]
        assert rows[1]["error"] == "Status Code: 400"
        assert rows[2]["id"] == "MLRP_D1"

    def test_dry_run_marks_planned(self, tmp_path):
        """Test that nothing is marked ok in a dry run."""
        unit = make_unit()
        unit.report.to_add = [ContactRecord("A1")]

        path = ReportWriter(tmp_path).write_detailed_file(unit, dry_run=True)

        with open(path, encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
        assert rows[0]["status"] == "planned"

    def test_skipped_for_matching_hash_and_file_error(self, tmp_path):
        """Test that no file is written when the list was not reconciled."""
        writer = ReportWriter(tmp_path)
        hashed = make_unit()
        hashed.report.matching_hash = True
        broken = make_unit()
        broken.report.file_error = SourceReadError("x")

        assert writer.write_detailed_file(hashed) is None
        assert writer.write_detailed_file(broken) is None
        assert list(tmp_path.iterdir()) == []
