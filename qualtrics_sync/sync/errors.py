"""
Error taxonomy for the reconciliation engine.

FileError and its subclasses abort the remaining stages of one mailing
list. ContactError and ContactValidationError affect a single contact and
end up in the list's failed bucket.
"""

from typing import Optional


class SyncError(Exception):
    """Base class for reconciliation errors."""

    pass


class FileError(SyncError):
    """A failure affecting a whole mailing list."""

    pass


class SourceReadError(FileError):
    """Raised when the CSV extract for a list cannot be read."""

    pass


class RemoteFetchError(FileError):
    """Raised when the remote contacts for a list could not be fetched."""

    pass


class ListConfigError(FileError):
    """Raised when a mailing list's configuration row is malformed."""

    pass


class ContactError(SyncError):
    """A failure affecting a single contact during the apply phase."""

    pass


class ContactValidationError(ContactError):
    """A source contact that is not eligible to be created remotely."""

    def __init__(self, message: str, missing_fields: Optional[list[str]] = None):
        super().__init__(message)
        self.missing_fields = missing_fields or []
