"""
qualtrics_sync.notify - Failure notification module
"""

from qualtrics_sync.notify.notifier import (
    Alert,
    LogNotifier,
    RunContext,
    WebhookNotifier,
    build_alert,
    create_notifier,
)

__all__ = [
    "Alert",
    "LogNotifier",
    "RunContext",
    "WebhookNotifier",
    "build_alert",
    "create_notifier",
]
