"""
Classification of matched and unmatched contacts into action buckets.
"""

import logging
from collections.abc import Sequence
from typing import Optional

from qualtrics_sync.sync.differ import DiffResult, diff_pairs
from qualtrics_sync.sync.errors import ContactValidationError
from qualtrics_sync.sync.matcher import MatchResult
from qualtrics_sync.sync.unit import ACTION_ADD, FailedContact, ReconciliationReport

logger = logging.getLogger(__name__)

MISSING_REQUIRED_FIELD = "missing required field"


def classify(
    match_result: MatchResult,
    report: ReconciliationReport,
    diffs: Optional[Sequence[DiffResult]] = None,
) -> ReconciliationReport:
    """
    Fill the report's action buckets from a match result.

    Unmatched source contacts become adds and unmatched remote contacts
    become deletes. Matched pairs that differ become updates, carrying the
    remote id; identical pairs are only counted.

    Args:
        match_result: Output of match_contacts
        report: Report to fill (normally empty)
        diffs: diff_pairs output for match_result.matched; computed here
            when not given

    Returns:
        The same report
    """
    if diffs is None:
        diffs = diff_pairs(match_result.matched)
    if len(diffs) != len(match_result.matched):
        raise ValueError(
            f"Expected {len(match_result.matched)} diffs, got {len(diffs)}"
        )

    report.to_add.extend(match_result.unmatched_source)
    report.to_delete.extend(match_result.unmatched_remote)

    for result in diffs:
        if result.needs_update:
            report.to_update.append(result.update_record)
        else:
            report.unchanged += 1

    filter_add_candidates(report)
    return report


def filter_add_candidates(report: ReconciliationReport) -> list[FailedContact]:
    """
    Move add candidates lacking a required field into the failed bucket.

    Args:
        report: Report whose to_add bucket is checked

    Returns:
        The FailedContact entries created
    """
    rejected: list[FailedContact] = []
    eligible = []
    for contact in report.to_add:
        missing = contact.missing_required_fields()
        if missing:
            error = ContactValidationError(MISSING_REQUIRED_FIELD, missing)
            rejected.append(FailedContact(contact, ACTION_ADD, error))
            logger.warning(
                f"Cannot add {contact.external_reference or '<no id>'}: "
                f"missing {', '.join(missing)}"
            )
        else:
            eligible.append(contact)

    report.to_add[:] = eligible
    report.failed.extend(rejected)
    return rejected
