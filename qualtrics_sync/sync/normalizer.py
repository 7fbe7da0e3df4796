"""
Normalization of raw CSV rows into canonical contact records.

Column names in the extract are capitalized (Email, FirstName, LastName)
while the API uses lower camel case; the unique id column becomes the
contact's external reference and every other column is embedded data.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

from qualtrics_sync.sync.contact import ContactRecord

logger = logging.getLogger(__name__)

DEFAULT_UNIQUE_ID_COLUMN = "UniqueID"

# CSV column -> ContactRecord attribute. Capitalization matters.
REQUIRED_COLUMNS = {
    "Email": "email",
    "FirstName": "first_name",
    "LastName": "last_name",
}


@dataclass
class NormalizedSource:
    """Normalized source contacts plus the number of rows dropped."""

    contacts: list[ContactRecord] = field(default_factory=list)
    skipped_rows: int = 0


def clean_embedded_value(value: Optional[str]) -> str:
    """Strip commas, which make Qualtrics truncate embedded data values."""
    if value is None:
        return ""
    return value.replace(",", "")


def normalize_row(
    row: dict[str, Optional[str]], unique_id_column: str = DEFAULT_UNIQUE_ID_COLUMN
) -> Optional[ContactRecord]:
    """
    Convert one CSV row into a ContactRecord.

    Args:
        row: Column name -> value mapping from csv.DictReader
        unique_id_column: Name of the unique id column

    Returns:
        ContactRecord, or None if the row has no unique id
    """
    unique_id = row.get(unique_id_column)
    if not unique_id:
        return None

    fields: dict[str, str] = {}
    embedded: dict[str, str] = {}
    for column, value in row.items():
        # csv.DictReader files surplus values under a None key
        if column is None or column == unique_id_column:
            continue
        if column in REQUIRED_COLUMNS:
            fields[REQUIRED_COLUMNS[column]] = value or ""
        else:
            embedded[column] = clean_embedded_value(value)

    return ContactRecord(
        external_reference=unique_id,
        embedded_data=embedded or None,
        **fields,
    )


def normalize_rows(
    rows: Iterable[dict[str, Optional[str]]],
    unique_id_column: str = DEFAULT_UNIQUE_ID_COLUMN,
) -> NormalizedSource:
    """
    Normalize all rows of a CSV extract.

    Rows without a unique id are dropped and counted in skipped_rows.

    Args:
        rows: Parsed CSV rows
        unique_id_column: Name of the unique id column

    Returns:
        NormalizedSource with contacts in input order
    """
    result = NormalizedSource()
    for line_number, row in enumerate(rows, start=2):
        contact = normalize_row(row, unique_id_column)
        if contact is None:
            result.skipped_rows += 1
            logger.debug(f"Row {line_number} has no {unique_id_column}, skipping")
            continue
        result.contacts.append(contact)

    if result.skipped_rows:
        logger.warning(
            f"Skipped {result.skipped_rows} row(s) without a {unique_id_column}"
        )
    return result
