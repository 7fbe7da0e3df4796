"""
SQLite database module for the CSV hash gate.

Stores a content hash per mailing list so unchanged extracts can skip the
remote fetch and comparison entirely.
"""

import hashlib
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Optional

# SQL Schema for the hash table
SCHEMA = """
CREATE TABLE IF NOT EXISTS file_hashes (
    list_id TEXT PRIMARY KEY,
    content_hash TEXT NOT NULL,
    csv_file TEXT,
    updated_at TEXT NOT NULL
);
"""


class HashStoreError(Exception):
    """Raised when the hash database cannot be read or written."""

    pass


def compute_hash(content: str) -> str:
    """
    Compute the content hash of a CSV extract.

    Args:
        content: File content, after U+FEFF removal

    Returns:
        SHA-256 hex digest
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class HashStore:
    """
    SQLite store of the last successfully synced hash per mailing list.

    Usage:
        store = HashStore('/path/to/hashes.db')
        store.initialize()

        if not store.check_unchanged(list_id, content):
            ...  # reconcile
            store.record_hash(list_id, compute_hash(content), csv_file)

        # Or use in-memory for testing:
        store = HashStore(':memory:')
        store.initialize()
    """

    def __init__(self, db_path: str):
        """
        Initialize the hash store.

        Args:
            db_path: Path to SQLite database file, or ':memory:' for in-memory database
        """
        self.db_path = db_path
        self._shared_connection: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get a database connection.

        For in-memory databases, returns a shared connection so the schema
        persists across operations. For file databases, creates a new
        connection each time.
        """
        if self.db_path == ":memory:":
            if self._shared_connection is None:
                self._shared_connection = sqlite3.connect(":memory:")
                self._shared_connection.row_factory = sqlite3.Row
            return self._shared_connection

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.

        Commits on success and rolls back on error. sqlite3 errors are
        re-raised as HashStoreError.

        Usage:
            with store.connection() as conn:
                conn.execute("SELECT * FROM file_hashes")
        """
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise HashStoreError(f"Cannot open hash database {self.db_path}: {e}") from e

        is_shared = self.db_path == ":memory:"
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise HashStoreError(f"Hash database error: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            if not is_shared:
                conn.close()

    def initialize(self) -> None:
        """Create the file_hashes table if it doesn't exist."""
        with self.connection() as conn:
            conn.executescript(SCHEMA)

    def close(self) -> None:
        """Close the shared in-memory connection, if any."""
        if self._shared_connection is not None:
            self._shared_connection.close()
            self._shared_connection = None

    def get_hash(self, list_id: str) -> Optional[dict[str, Any]]:
        """
        Get the recorded hash for a mailing list.

        Args:
            list_id: Mailing list id

        Returns:
            Dictionary with content_hash, csv_file and updated_at, or None
        """
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT content_hash, csv_file, updated_at "
                "FROM file_hashes WHERE list_id = ?",
                (list_id,),
            )
            row = cursor.fetchone()
            if row:
                return {
                    "content_hash": row["content_hash"],
                    "csv_file": row["csv_file"],
                    "updated_at": row["updated_at"],
                }
            return None

    def check_unchanged(self, list_id: str, content: str) -> bool:
        """
        Check whether content matches the last recorded hash.

        Returns:
            True if a hash is recorded and equals the hash of content
        """
        stored = self.get_hash(list_id)
        return stored is not None and stored["content_hash"] == compute_hash(content)

    def record_hash(
        self,
        list_id: str,
        content_hash: str,
        csv_file: Optional[str] = None,
        updated_at: Optional[datetime] = None,
    ) -> None:
        """
        Insert or replace the hash for a mailing list.

        Args:
            list_id: Mailing list id
            content_hash: Hash from compute_hash
            csv_file: Source file name, for status display
            updated_at: Timestamp (defaults to now)
        """
        if updated_at is None:
            updated_at = datetime.now()

        with self.connection() as conn:
            conn.execute(
                """
                INSERT INTO file_hashes (list_id, content_hash, csv_file, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(list_id) DO UPDATE SET
                    content_hash = excluded.content_hash,
                    csv_file = excluded.csv_file,
                    updated_at = excluded.updated_at
                """,
                (list_id, content_hash, csv_file, updated_at.isoformat(sep=" ")),
            )

    def get_all_hashes(self) -> list[dict[str, Any]]:
        """
        Get every recorded hash.

        Returns:
            List of dictionaries ordered by list_id
        """
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT list_id, content_hash, csv_file, updated_at "
                "FROM file_hashes ORDER BY list_id"
            )
            return [dict(row) for row in cursor.fetchall()]

    def clear_hash(self, list_id: str) -> bool:
        """
        Forget the hash of one mailing list (forces a full comparison).

        Returns:
            True if a hash was deleted
        """
        with self.connection() as conn:
            cursor = conn.execute(
                "DELETE FROM file_hashes WHERE list_id = ?", (list_id,)
            )
            return cursor.rowcount > 0

    def clear_all(self) -> int:
        """
        Forget every recorded hash.

        Returns:
            Number of hashes deleted
        """
        with self.connection() as conn:
            cursor = conn.execute("DELETE FROM file_hashes")
            return cursor.rowcount
