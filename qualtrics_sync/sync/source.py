"""
Reading of CSV extracts.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from qualtrics_sync.sync.errors import SourceReadError

logger = logging.getLogger(__name__)

# Zero-width no-break space; exports contain it as a BOM and stray padding
ZERO_WIDTH_NO_BREAK_SPACE = "\ufeff"


@dataclass
class SourceFile:
    """A CSV extract as read from disk."""

    path: Path
    content: str
    rows: list[dict[str, Optional[str]]] = field(default_factory=list)


def parse_source(content: str) -> list[dict[str, Optional[str]]]:
    """Parse CSV text into rows keyed by header column."""
    return list(csv.DictReader(io.StringIO(content)))


def read_source(path: Path | str) -> SourceFile:
    """
    Read and parse a CSV extract.

    Every U+FEFF character is removed from the content before parsing, so
    the hash and the parsed rows both ignore it.

    Args:
        path: Path to the CSV file

    Returns:
        SourceFile with the cleaned content and parsed rows

    Raises:
        SourceReadError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SourceReadError(f"Failed to read {path}: {e}") from e

    content = content.replace(ZERO_WIDTH_NO_BREAK_SPACE, "")

    try:
        rows = parse_source(content)
    except csv.Error as e:
        raise SourceReadError(f"Failed to parse {path}: {e}") from e

    logger.debug(f"Read {len(rows)} row(s) from {path}")
    return SourceFile(path=path, content=content, rows=rows)
