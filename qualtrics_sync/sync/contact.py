"""
Contact data model for Qualtrics mailing list synchronization.

Provides one canonical ContactRecord used for both sides of a
reconciliation, with methods for:
- Converting from Qualtrics mailing list API responses
- Building create and update request bodies
- Checking the fields required to create a contact
"""

import copy
from dataclasses import dataclass
from typing import Any, Optional

# Top-level fields compared by the differ, in wire order.
# Maps attribute name -> Qualtrics field name.
COMPARED_FIELDS = {
    "external_reference": "externalDataReference",
    "email": "email",
    "first_name": "firstName",
    "last_name": "lastName",
}

# Fields that must be non-empty for a contact to be created remotely
REQUIRED_FIELDS = ("external_reference", "email", "first_name", "last_name")


@dataclass
class ContactRecord:
    """
    Canonical contact representation for source and remote records.

    Attributes:
        external_reference: Stable unique business key (the CSV unique id)
        email: Email address
        first_name: First name
        last_name: Last name
        embedded_data: Custom fields. None and {} both mean "no custom fields".
        id: Qualtrics contact id. Only set on remote records, or on source
            records that have been matched for an update.

    Usage:
        # Parse a contact from the mailing list API
        contact = ContactRecord.from_api_response(element)

        # Body for POST /mailinglists/{id}/contacts
        body = contact.to_create_payload()
    """

    external_reference: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    embedded_data: Optional[dict[str, str]] = None
    id: Optional[str] = None

    @classmethod
    def from_api_response(cls, element: dict[str, Any]) -> "ContactRecord":
        """
        Create a ContactRecord from a Qualtrics mailing list contact.

        Remote-only metadata (language, unsubscribed, responseHistory,
        emailHistory) is dropped.

        Example API element::

            {
                'id': 'MLRP_abc123',
                'firstName': 'Ada',
                'lastName': 'Lovelace',
                'email': 'ada@example.com',
                'externalDataReference': 'A1',
                'embeddedData': {'dept': 'CS'},
                'language': 'EN',
                'unsubscribed': False
            }
        """
        embedded = element.get("embeddedData") or None
        if embedded is not None:
            embedded = {
                str(key): "" if value is None else str(value)
                for key, value in embedded.items()
            }

        contact_id = element.get("id")
        return cls(
            external_reference=element.get("externalDataReference") or "",
            email=element.get("email") or "",
            first_name=element.get("firstName") or "",
            last_name=element.get("lastName") or "",
            embedded_data=embedded or None,
            id=str(contact_id) if contact_id is not None else None,
        )

    def to_create_payload(self) -> dict[str, Any]:
        """
        Build the body for creating this contact.

        The create endpoint expects "externalDataRef" rather than
        "externalDataReference", and rejects empty embedded data values,
        so those are removed.
        """
        payload: dict[str, Any] = {
            "externalDataRef": self.external_reference,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
        }
        embedded = {k: v for k, v in (self.embedded_data or {}).items() if v != ""}
        if embedded:
            payload["embeddedData"] = embedded
        return payload

    def to_update_payload(self) -> dict[str, Any]:
        """
        Build the body for updating this contact.

        Empty embedded values are kept: they clear stale remote fields.
        The id is carried in the URL, never in the body.
        """
        payload: dict[str, Any] = {
            wire_name: getattr(self, attr)
            for attr, wire_name in COMPARED_FIELDS.items()
        }
        if self.embedded_data:
            payload["embeddedData"] = dict(self.embedded_data)
        return payload

    def compared_fields(self) -> dict[str, str]:
        """Return the top-level fields the differ compares."""
        return {attr: getattr(self, attr) for attr in COMPARED_FIELDS}

    def missing_required_fields(self) -> list[str]:
        """
        List the required fields that are empty.

        Returns:
            Attribute names of empty required fields (empty if eligible)
        """
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]

    def copy(self) -> "ContactRecord":
        """Return a deep copy, so embedded data can be changed independently."""
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        """Return a readable string representation."""
        return (
            f"ContactRecord(external_reference={self.external_reference!r}, "
            f"id={self.id!r}, email={self.email!r})"
        )


def sort_key(contact: ContactRecord) -> str:
    """Sort/match key: exact, case-sensitive external reference."""
    return contact.external_reference


__all__ = [
    "ContactRecord",
    "COMPARED_FIELDS",
    "REQUIRED_FIELDS",
    "sort_key",
]
