"""
Qualtrics mailing list API wrapper.

Provides a thin interface to the Qualtrics v3 mailing list endpoints for:
- Listing every contact of a mailing list, following pagination
- Creating, updating, and deleting single contacts

Retries are not handled here: callers wrap each call in retry_call so
the attempt count and delay stay configurable per phase.
"""

import logging
from typing import Any, Optional

import requests

from qualtrics_sync.sync.contact import ContactRecord

# Default API endpoint (datacenter specific)
DEFAULT_BASE_URL = "https://co1.qualtrics.com/API/v3"

# Default request timeout in seconds
DEFAULT_TIMEOUT = 30.0

# Header carrying the API token
TOKEN_HEADER = "X-API-TOKEN"

logger = logging.getLogger(__name__)


class MailingListAPIError(Exception):
    """Raised when a mailing list API operation fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MailingListAPI:
    """
    Qualtrics mailing list API wrapper for contact operations.

    Every response must be a 200 with a JSON body; anything else raises
    MailingListAPIError, as does any transport failure.

    Attributes:
        base_url: API root, e.g. https://co1.qualtrics.com/API/v3
        timeout: Per-request timeout in seconds
        session: requests.Session carrying the token header

    Usage:
        api = MailingListAPI(token)

        # List all contacts of a mailing list
        contacts = api.list_contacts("ML_123")

        # Create, update, delete
        api.create_contact("ML_123", contact)
        api.update_contact("ML_123", contact)  # contact.id required
        api.delete_contact("ML_123", contact)
    """

    def __init__(
        self,
        api_token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the API wrapper.

        Args:
            api_token: Qualtrics API token
            base_url: API root URL (default co1 datacenter)
            timeout: Request timeout in seconds (default 30)
            session: Optional preconfigured session (mainly for tests)
        """
        if not api_token:
            raise ValueError("api_token is required")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({TOKEN_HEADER: api_token})

    def _contacts_url(self, list_id: str, contact_id: Optional[str] = None) -> str:
        url = f"{self.base_url}/mailinglists/{list_id}/contacts"
        if contact_id:
            url = f"{url}/{contact_id}"
        return url

    def _request(
        self,
        method: str,
        url: str,
        operation_name: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Send a request and decode its JSON body.

        Args:
            method: HTTP method
            url: Full request URL
            operation_name: Name for logging and error messages
            payload: Optional JSON body

        Returns:
            Decoded response body

        Raises:
            MailingListAPIError: On transport errors, non-200 status, a
                non-JSON response, or a body that is not a JSON object
        """
        try:
            response = self.session.request(
                method, url, json=payload, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise MailingListAPIError(f"{operation_name} failed: {e}") from e

        if response.status_code != 200:
            raise MailingListAPIError(
                f"{operation_name} failed: Status Code: {response.status_code}",
                status_code=response.status_code,
            )

        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("application/json"):
            raise MailingListAPIError(
                f"{operation_name} failed: Content Type: {content_type or 'none'}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise MailingListAPIError(
                f"{operation_name} failed: invalid JSON body: {e}",
                status_code=response.status_code,
            ) from e

        if not isinstance(body, dict):
            raise MailingListAPIError(
                f"{operation_name} failed: expected a JSON object, "
                f"got {type(body).__name__}",
                status_code=response.status_code,
            )
        return body

    def list_contacts(self, list_id: str) -> list[ContactRecord]:
        """
        List every contact of a mailing list.

        Follows result.nextPage until it is null.

        Args:
            list_id: Mailing list id

        Returns:
            List of ContactRecord objects, in API order

        Raises:
            MailingListAPIError: If any page fails
        """
        logger.debug(f"Listing contacts of {list_id}")

        contacts: list[ContactRecord] = []
        url: Optional[str] = self._contacts_url(list_id)

        while url:
            body = self._request("GET", url, "list_contacts")
            result = body.get("result") or {}
            for element in result.get("elements") or []:
                contacts.append(ContactRecord.from_api_response(element))
            url = result.get("nextPage")
            logger.debug(f"Contacts retrieved: {len(contacts)}")

        logger.info(f"Listed {len(contacts)} contacts from {list_id}")
        return contacts

    def create_contact(self, list_id: str, contact: ContactRecord) -> Optional[str]:
        """
        Create a contact in a mailing list.

        Args:
            list_id: Mailing list id
            contact: Contact to create (sent in create shape)

        Returns:
            The new contact id, if the API returned one

        Raises:
            MailingListAPIError: If creation fails
        """
        body = self._request(
            "POST",
            self._contacts_url(list_id),
            "create_contact",
            payload=contact.to_create_payload(),
        )
        new_id = (body.get("result") or {}).get("id")
        logger.debug(f"Created {contact.external_reference} as {new_id}")
        return new_id

    def update_contact(self, list_id: str, contact: ContactRecord) -> None:
        """
        Update a contact in a mailing list.

        The id is taken from the record and sent in the URL only.

        Raises:
            MailingListAPIError: If the record has no id or the update fails
        """
        if not contact.id:
            raise MailingListAPIError(
                f"Qualtrics ID undefined for {contact.external_reference}"
            )

        self._request(
            "PUT",
            self._contacts_url(list_id, contact.id),
            "update_contact",
            payload=contact.to_update_payload(),
        )
        logger.debug(f"Updated {contact.external_reference} ({contact.id})")

    def delete_contact(self, list_id: str, contact: ContactRecord) -> None:
        """
        Delete a contact from a mailing list.

        Raises:
            MailingListAPIError: If the record has no id or deletion fails
        """
        if not contact.id:
            raise MailingListAPIError(
                f"Qualtrics ID undefined for {contact.external_reference}"
            )

        self._request(
            "DELETE", self._contacts_url(list_id, contact.id), "delete_contact"
        )
        logger.debug(f"Deleted {contact.external_reference} ({contact.id})")
