"""
Equality comparison between a matched source and remote contact.

Embedded data is compared in both directions: a key present on only one
side counts as a difference unless its value is empty, and keys that
exist only remotely are cleared on update by sending them as "".
"""

from dataclasses import dataclass, field
from collections.abc import Sequence
from typing import Optional

from qualtrics_sync.sync.contact import ContactRecord


@dataclass
class EmbeddedComparison:
    """Result of comparing one embedded data map against another."""

    matches: bool
    # Keys the right-hand map must set to "" to clear stale values
    keys_to_clear: list[str] = field(default_factory=list)


@dataclass
class DiffResult:
    """Verdict for one matched pair."""

    needs_update: bool
    # Source copy carrying the remote id and clear markers, when updating
    update_record: Optional[ContactRecord] = None


def compare_embedded_data(
    left: Optional[dict[str, str]], right: Optional[dict[str, str]]
) -> EmbeddedComparison:
    """
    Compare every key of left against right.

    For each (key, value) of left:
    - missing on the right with a non-empty value: mismatch, and the key
      is reported in keys_to_clear
    - present on the right with a different value: mismatch
    - otherwise: no mismatch

    Args:
        left: Embedded data being checked (None means empty)
        right: Embedded data checked against (None means empty)

    Returns:
        EmbeddedComparison for this direction
    """
    left = left or {}
    right = right or {}

    comparison = EmbeddedComparison(matches=True)
    for key, value in left.items():
        if key not in right:
            if value != "":
                comparison.matches = False
                comparison.keys_to_clear.append(key)
        elif right[key] != value:
            comparison.matches = False
    return comparison


def top_level_matches(source: ContactRecord, remote: ContactRecord) -> bool:
    """
    Compare the non-empty top-level source fields with the remote ones.

    Empty source fields are not compared.
    """
    remote_fields = remote.compared_fields()
    for name, value in source.compared_fields().items():
        if value == "":
            continue
        if remote_fields.get(name) != value:
            return False
    return True


def diff_contacts(source: ContactRecord, remote: ContactRecord) -> DiffResult:
    """
    Decide whether a matched pair is identical or needs an update.

    Neither input is modified. When an update is needed, the returned
    update_record is a copy of the source contact with the remote id and
    "" entries for embedded keys that only exist remotely.

    Args:
        source: Contact from the CSV extract
        remote: Matching contact from the mailing list

    Returns:
        DiffResult
    """
    top_level = top_level_matches(source, remote)
    forward = compare_embedded_data(source.embedded_data, remote.embedded_data)
    backward = compare_embedded_data(remote.embedded_data, source.embedded_data)

    if top_level and forward.matches and backward.matches:
        return DiffResult(needs_update=False)

    update_record = source.copy()
    update_record.id = remote.id
    if backward.keys_to_clear:
        embedded = dict(update_record.embedded_data or {})
        for key in backward.keys_to_clear:
            embedded[key] = ""
        update_record.embedded_data = embedded

    return DiffResult(needs_update=True, update_record=update_record)


def diff_pairs(
    pairs: Sequence[tuple[ContactRecord, ContactRecord]],
) -> list[DiffResult]:
    """Diff every (source, remote) pair, in order."""
    return [diff_contacts(source, remote) for source, remote in pairs]
