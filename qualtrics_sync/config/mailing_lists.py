"""
Mailing list configuration for Qualtrics synchronization.

The lists file is a CSV with one row per mailing list to keep in sync:

    csv,MailingListID
    QualtricsSync-Students.csv,ML_1a2b3c4d5e
    QualtricsSync-Staff.csv,ML_6f7g8h9i0j

Notes:
    - "csv" is the source extract file name, resolved against csv_dir
    - A row missing either value still produces a MailingListConfig with
      its error set, so that list is reported as failed without stopping
      the other lists
    - Only an unreadable lists file is fatal for the whole run
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Column names in the lists file
CSV_COLUMN = "csv"
LIST_ID_COLUMN = "MailingListID"

# Default lists file name inside the config directory
DEFAULT_LISTS_FILE = "mailing_lists.csv"

# Prefix stripped from file names in reports
REPORT_PREFIX = "QualtricsSync-"


class MailingListConfigError(Exception):
    """Raised when the mailing lists file cannot be read."""

    pass


@dataclass
class MailingListConfig:
    """
    Configuration for one mailing list.

    Attributes:
        csv_file: Source CSV file name (relative to csv_dir)
        list_id: Qualtrics mailing list id
        extra: Any additional columns from the lists file
        error: Description of why this row is unusable, or None
    """

    csv_file: str
    list_id: str
    extra: dict[str, str] = field(default_factory=dict)
    error: str | None = None

    @property
    def is_valid(self) -> bool:
        """True if the row has everything needed to sync the list."""
        return self.error is None

    @property
    def display_name(self) -> str:
        """File name as shown in reports, without the QualtricsSync- prefix."""
        name = self.csv_file or self.list_id or "<unnamed>"
        if name.startswith(REPORT_PREFIX):
            return name[len(REPORT_PREFIX) :]
        return name

    def csv_path(self, csv_dir: Path) -> Path:
        """Full path of the source CSV file."""
        return csv_dir / self.csv_file

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> MailingListConfig:
        """
        Create a MailingListConfig from a lists file row.

        Args:
            row: Row from csv.DictReader

        Returns:
            MailingListConfig, with error set if a required column is empty
        """
        csv_file = (row.get(CSV_COLUMN) or "").strip()
        list_id = (row.get(LIST_ID_COLUMN) or "").strip()
        extra = {
            k: v or ""
            for k, v in row.items()
            if k not in (CSV_COLUMN, LIST_ID_COLUMN) and k is not None
        }

        missing = []
        if not csv_file:
            missing.append(CSV_COLUMN)
        if not list_id:
            missing.append(LIST_ID_COLUMN)

        error = None
        if missing:
            error = f"Mailing list config is missing: {', '.join(missing)}"

        return cls(csv_file=csv_file, list_id=list_id, extra=extra, error=error)


def parse_mailing_lists(content: str) -> list[MailingListConfig]:
    """
    Parse lists file content.

    Args:
        content: CSV text of the lists file

    Returns:
        One MailingListConfig per data row

    Raises:
        MailingListConfigError: If the header lacks the required columns
    """
    # Spreadsheet exports often start with a byte order mark
    content = content.replace("\ufeff", "")
    reader = csv.DictReader(io.StringIO(content))

    fieldnames = reader.fieldnames or []
    missing = [c for c in (CSV_COLUMN, LIST_ID_COLUMN) if c not in fieldnames]
    if missing:
        raise MailingListConfigError(
            f"Mailing lists file is missing column(s): {', '.join(missing)}"
        )

    configs = []
    for row in reader:
        values = [v for v in row.values() if isinstance(v, str)]
        if not any(v.strip() for v in values):
            continue
        config = MailingListConfig.from_row(row)
        if not config.is_valid:
            logger.warning(f"{config.display_name}: {config.error}")
        configs.append(config)
    return configs


def load_mailing_lists(path: Path | str) -> list[MailingListConfig]:
    """
    Load mailing list configurations from the lists file.

    Args:
        path: Path to the lists CSV file

    Returns:
        List of MailingListConfig in file order

    Raises:
        MailingListConfigError: If the file cannot be read or parsed
    """
    path = Path(path).expanduser()

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise MailingListConfigError(
            f"Failed to read mailing lists file {path}: {e}"
        ) from e

    configs = parse_mailing_lists(content)
    logger.debug(f"Loaded {len(configs)} mailing list(s) from {path}")
    return configs
