"""
Tests for failure notifications.
"""

from unittest.mock import MagicMock, patch

import requests

from qualtrics_sync.config.mailing_lists import MailingListConfig
from qualtrics_sync.notify.notifier import (
    DEFAULT_TITLE,
    MAX_FAILURES_PER_LIST,
    Alert,
    LogNotifier,
    RunContext,
    WebhookNotifier,
    build_alert,
    create_notifier,
)
from qualtrics_sync.sync.contact import ContactRecord
from qualtrics_sync.sync.errors import ContactError, RemoteFetchError
from qualtrics_sync.sync.unit import ACTION_UPDATE, FailedContact, SyncUnit


def make_unit(name="Students.csv", failures=0, file_error=None):
    unit = SyncUnit(config=MailingListConfig(csv_file=name, list_id="ML_1"))
    unit.report.file_error = file_error
    for i in range(failures):
        unit.report.failed.append(
            FailedContact(ContactRecord(f"C{i}"), ACTION_UPDATE, ContactError("boom"))
        )
    return unit


class TestBuildAlert:
    """Tests for build_alert."""

    def test_clean_run_has_no_alert(self):
        """Test that nothing is reported for a clean run."""
        assert build_alert([make_unit(), make_unit("Staff.csv")]) is None

    def test_file_error(self):
        """Test that a file error is summarized."""
        alert = build_alert([make_unit(file_error=RemoteFetchError("timeout"))])

        assert alert.title == DEFAULT_TITLE
        assert alert.file_errors == 1
        assert alert.failed_contacts == 0
        assert "Students.csv: timeout" in alert.text

    def test_failed_contacts_are_truncated(self):
        """Test that long failure lists are cut off."""
        alert = build_alert([make_unit(failures=MAX_FAILURES_PER_LIST + 3)])

        assert alert.failed_contacts == MAX_FAILURES_PER_LIST + 3
        assert "Update C0: boom" in alert.text
        assert f"C{MAX_FAILURES_PER_LIST}:" not in alert.text
        assert "... and 3 more" in alert.text

    def test_fatal_error(self):
        """Test that a run-ending error is reported without units."""
        alert = build_alert([], fatal_error=RuntimeError("lists file gone"))
        assert alert.lines == ["Run failed: lists file gone"]


class TestNotifiers:
    """Tests for the notifier implementations."""

    def test_create_notifier(self):
        """Test notifier selection from the webhook setting."""
        assert isinstance(create_notifier(None), LogNotifier)
        assert isinstance(create_notifier(""), LogNotifier)
        webhook = create_notifier("https://hooks.example.com/x")
        assert isinstance(webhook, WebhookNotifier)
        assert webhook.webhook_url == "https://hooks.example.com/x"

    def test_log_notifier(self, caplog):
        """Test that the log notifier logs the alert at error level."""
        with caplog.at_level("ERROR"):
            assert LogNotifier().send(Alert("Title", ["line one"])) is True
        assert "line one" in caplog.text

    def test_build_card(self):
        """Test the message card layout."""
        card = WebhookNotifier("https://x").build_card(
            Alert("Title", ["a", "b"], file_errors=1, failed_contacts=2)
        )
        section = card["sections"][0]
        assert card["@type"] == "MessageCard"
        assert card["summary"] == "Title"
        assert section["text"] == "a\nb"
        facts = {f["name"]: f["value"] for f in section["facts"]}
        assert facts["File errors"] == "1"
        assert facts["Failed contacts"] == "2"

    @patch("qualtrics_sync.notify.notifier.requests.post")
    def test_webhook_send_success(self, mock_post):
        """Test a webhook that accepts the alert."""
        mock_post.return_value = MagicMock(status_code=200)
        notifier = WebhookNotifier("https://hooks.example.com/x", timeout=5)

        assert notifier.send(Alert("Title", ["x"])) is True
        args, kwargs = mock_post.call_args
        assert args == ("https://hooks.example.com/x",)
        assert kwargs["timeout"] == 5
        assert kwargs["json"]["summary"] == "Title"

    @patch("qualtrics_sync.notify.notifier.requests.post")
    def test_webhook_rejected(self, mock_post):
        """Test a webhook responding with an error status."""
        mock_post.return_value = MagicMock(status_code=400, text="bad card")
        assert WebhookNotifier("https://x").send(Alert("Title", ["x"])) is False

    @patch("qualtrics_sync.notify.notifier.requests.post")
    def test_webhook_unreachable(self, mock_post):
        """Test that a transport error is logged, not raised."""
        mock_post.side_effect = requests.ConnectionError("refused")
        assert WebhookNotifier("https://x").send(Alert("Title", ["x"])) is False


class TestRunContext:
    """Tests for per-run notification state."""

    def test_sends_once_per_run(self):
        """Test that a second failure in the same run is not re-sent."""
        notifier = MagicMock()
        context = RunContext(notifier)
        units = [make_unit(failures=1)]

        assert context.notify_failures(units) is True
        assert context.notify_failures(units) is False
        assert context.notified is True
        notifier.send.assert_called_once()

    def test_clean_run_sends_nothing(self):
        """Test that a clean run leaves the flag unset."""
        notifier = MagicMock()
        context = RunContext(notifier)

        assert context.notify_failures([make_unit()]) is False
        assert context.notified is False
        notifier.send.assert_not_called()

    def test_new_context_per_run(self):
        """Test that each run can notify again."""
        notifier = MagicMock()
        for _ in range(2):
            RunContext(notifier).notify_failures([make_unit(failures=1)])
        assert notifier.send.call_count == 2
