"""
Failure notifications.

At the end of a run, if any mailing list hit a file error or had contacts
that failed to sync, one alert is sent. The alert goes to a webhook
(Teams-style message card) when one is configured, otherwise it is only
logged. A run sends at most one alert.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Protocol

import requests

from qualtrics_sync.sync.unit import SyncUnit

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Qualtrics Sync Alert"

# Failed contacts listed per mailing list before truncating
MAX_FAILURES_PER_LIST = 5


@dataclass
class Alert:
    """Summary of the problems of one run."""

    title: str
    lines: list[str] = field(default_factory=list)
    file_errors: int = 0
    failed_contacts: int = 0

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


class Notifier(Protocol):
    def send(self, alert: Alert) -> bool: ...


def build_alert(
    units: Sequence[SyncUnit],
    fatal_error: Optional[BaseException] = None,
    title: str = DEFAULT_TITLE,
) -> Optional[Alert]:
    """
    Summarize the lists that had problems.

    Args:
        units: Every unit processed in the run
        fatal_error: Error that ended the run early, if any
        title: Alert title

    Returns:
        Alert, or None if there is nothing to report
    """
    alert = Alert(title=title)

    if fatal_error is not None:
        alert.lines.append(f"Run failed: {fatal_error}")

    for unit in units:
        report = unit.report
        if report.file_error is not None:
            alert.file_errors += 1
            alert.lines.append(f"{unit.name}: {report.file_error}")
            continue
        if report.failed:
            alert.failed_contacts += len(report.failed)
            alert.lines.append(f"{unit.name}: {len(report.failed)} contact(s) failed")
            for failed in report.failed[:MAX_FAILURES_PER_LIST]:
                alert.lines.append(
                    f"  {failed.action} {failed.contact.external_reference}: "
                    f"{failed.reason}"
                )
            hidden = len(report.failed) - MAX_FAILURES_PER_LIST
            if hidden > 0:
                alert.lines.append(f"  ... and {hidden} more")

    if not alert.lines:
        return None
    return alert


class LogNotifier:
    """Logs alerts; used when no webhook is configured."""

    def send(self, alert: Alert) -> bool:
        logger.error(f"{alert.title}\n{alert.text}")
        return True


class WebhookNotifier:
    """
    Posts alerts to an incoming webhook as a message card.

    Usage:
        notifier = WebhookNotifier("https://example.webhook.office.com/...")
        notifier.send(alert)
    """

    def __init__(self, webhook_url: str, timeout: float = 30.0):
        self.webhook_url = webhook_url
        self.timeout = timeout

    def build_card(self, alert: Alert) -> dict[str, Any]:
        """Build the message card body for an alert."""
        return {
            "@type": "MessageCard",
            "@context": "http://schema.org/extensions",
            "themeColor": "d70000" if alert.file_errors else "ff8c00",
            "summary": alert.title,
            "sections": [
                {
                    "activityTitle": alert.title,
                    "facts": [
                        {
                            "name": "Timestamp",
                            "value": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
                        },
                        {"name": "File errors", "value": str(alert.file_errors)},
                        {
                            "name": "Failed contacts",
                            "value": str(alert.failed_contacts),
                        },
                    ],
                    "text": alert.text,
                }
            ],
        }

    def send(self, alert: Alert) -> bool:
        """
        Post the alert.

        Returns:
            True if the webhook accepted it; failures are logged, not raised
        """
        try:
            response = requests.post(
                self.webhook_url,
                headers={"Content-Type": "application/json"},
                json=self.build_card(alert),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Error sending notification: {e}")
            return False

        if response.status_code in (200, 202):
            logger.info("Failure notification sent")
            return True

        logger.error(
            f"Notification failed: {response.status_code} - {response.text}"
        )
        return False


def create_notifier(webhook_url: Optional[str]) -> Notifier:
    """Return a WebhookNotifier if a URL is configured, else a LogNotifier."""
    if webhook_url:
        return WebhookNotifier(webhook_url)
    return LogNotifier()


class RunContext:
    """
    Per-run notification state.

    Created at the start of each run and passed explicitly to whatever
    needs it, so repeated runs in one process (daemon mode) each get a
    fresh "already notified" flag.
    """

    def __init__(self, notifier: Notifier, started_at: Optional[datetime] = None):
        self.notifier = notifier
        self.started_at = started_at or datetime.now()
        self.notified = False

    def notify_failures(
        self,
        units: Sequence[SyncUnit],
        fatal_error: Optional[BaseException] = None,
    ) -> bool:
        """
        Send one alert if the run had problems and none was sent yet.

        Returns:
            True if an alert was sent by this call
        """
        if self.notified:
            return False

        alert = build_alert(units, fatal_error)
        if alert is None:
            return False

        self.notified = True
        self.notifier.send(alert)
        return True
