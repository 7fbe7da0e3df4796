"""
Key-based matching of source contacts against remote contacts.

Both sides are sorted by external reference and each source contact is
located in the remote set with a binary search. Matched remote contacts
are marked as consumed in a side index instead of being removed, so the
remote list itself is never modified.
"""

import bisect
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from qualtrics_sync.sync.contact import ContactRecord, sort_key

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """Pairing of a source set against a remote set."""

    # (source, remote) pairs with equal external references
    matched: list[tuple[ContactRecord, ContactRecord]] = field(default_factory=list)

    # Source contacts with no remote counterpart (add candidates)
    unmatched_source: list[ContactRecord] = field(default_factory=list)

    # Remote contacts never matched (delete candidates)
    unmatched_remote: list[ContactRecord] = field(default_factory=list)


def sort_contacts(contacts: Sequence[ContactRecord]) -> list[ContactRecord]:
    """Return contacts sorted by external reference (exact string order)."""
    return sorted(contacts, key=sort_key)


class RemoteIndex:
    """
    Sorted, consumable view over the remote contacts.

    Lookups are binary searches over a parallel key list; a hit marks the
    position as consumed so a second lookup for the same key finds the
    next unconsumed duplicate, if any.

    Usage:
        index = RemoteIndex(remote_contacts)
        remote = index.take("A1")
        leftovers = index.remaining()
    """

    def __init__(self, contacts: Sequence[ContactRecord]):
        self._contacts = sort_contacts(contacts)
        self._keys = [sort_key(c) for c in self._contacts]
        self._consumed: set[int] = set()

    def __len__(self) -> int:
        return len(self._contacts) - len(self._consumed)

    def take(self, key: str) -> ContactRecord | None:
        """
        Find and consume the remote contact with the given key.

        Args:
            key: External reference to look up (case-sensitive)

        Returns:
            The matching remote contact, or None if there is none left
        """
        position = bisect.bisect_left(self._keys, key)
        while position < len(self._keys) and self._keys[position] == key:
            if position not in self._consumed:
                self._consumed.add(position)
                return self._contacts[position]
            position += 1
        return None

    def remaining(self) -> list[ContactRecord]:
        """Unconsumed remote contacts, in sorted order."""
        return [
            contact
            for position, contact in enumerate(self._contacts)
            if position not in self._consumed
        ]


def match_contacts(
    source: Sequence[ContactRecord], remote: Sequence[ContactRecord]
) -> MatchResult:
    """
    Pair each source contact with its remote counterpart.

    Args:
        source: Normalized source contacts (unique external references)
        remote: Contacts fetched from the mailing list

    Returns:
        MatchResult; every source contact is either matched or unmatched,
        and likewise every remote contact
    """
    result = MatchResult()
    index = RemoteIndex(remote)

    for contact in sort_contacts(source):
        counterpart = index.take(contact.external_reference)
        if counterpart is None:
            result.unmatched_source.append(contact)
        else:
            result.matched.append((contact, counterpart))

    result.unmatched_remote = index.remaining()

    logger.debug(
        f"Matched {len(result.matched)}, "
        f"unmatched source {len(result.unmatched_source)}, "
        f"unmatched remote {len(result.unmatched_remote)}"
    )
    return result
