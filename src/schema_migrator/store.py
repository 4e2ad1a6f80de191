"""
Version store (SQLite-based).

Tracks applied migrations in the `versions` table:
- one row per applied migration (version, name, created_at)
- the greatest version is the database's current version

Rows are written inside the migration's own transaction; the store never
commits on its own except when creating the table.
"""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

TABLE_NAME = "versions"

QUERY_CREATE = """
    CREATE TABLE IF NOT EXISTS versions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        version TEXT NOT NULL,
        name TEXT NOT NULL,
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
"""

QUERY_EXISTS = "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?"

QUERY_ALL = "SELECT id, version, name, created_at FROM versions ORDER BY version ASC"

QUERY_LAST = "SELECT version FROM versions ORDER BY version DESC LIMIT 1"

QUERY_INSERT = "INSERT INTO versions (version, name) VALUES (?, ?)"

QUERY_DELETE = "DELETE FROM versions WHERE version = ?"


class VersionStoreError(Exception):
    """Raised when the bookkeeping table cannot be created, read or written."""

    pass


@dataclass
class AppliedVersion:
    """Record of an applied migration."""

    id: int
    version: str
    name: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row | tuple) -> "AppliedVersion":
        """Create from database row.

        Raises:
            ValueError: if created_at is not an ISO timestamp
        """
        row_id, version, name, created_at = tuple(row)
        if isinstance(created_at, str):
            # fromisoformat() only accepts a trailing Z from Python 3.11 on
            if created_at.endswith("Z"):
                created_at = created_at[:-1] + "+00:00"
            created_at = datetime.fromisoformat(created_at)
        return cls(id=row_id, version=version, name=name, created_at=created_at)


def connect(db_path: Path | str, read_only: bool = False) -> sqlite3.Connection:
    """
    Open a database connection for migrating.

    The driver's implicit transactions are disabled; `transaction()` issues
    BEGIN explicitly so DDL inside migrations is rolled back too.

    With read_only the file must already exist; nothing is created.
    """
    db_path = Path(db_path)
    if read_only:
        uri = f"{db_path.resolve().as_uri()}?mode=ro"
        conn = sqlite3.connect(uri, uri=True, isolation_level=None)
    else:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path), isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Context manager for one migration transaction.

    The connection must not already be inside a transaction: use one from
    `connect()`, or one in autocommit mode (`isolation_level=None` or, on
    Python 3.12+, `autocommit=True`). COMMIT and ROLLBACK are issued as
    statements so they take effect in every driver transaction mode.
    """
    conn.execute("BEGIN")
    try:
        yield conn
        conn.execute("COMMIT")
    except BaseException:
        if conn.in_transaction:
            try:
                conn.execute("ROLLBACK")
            except sqlite3.Error:
                logger.exception("Rollback failed")
        raise


class VersionStore:
    """Queries against the `versions` bookkeeping table."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def ensure_schema(self) -> None:
        """Create the versions table if it doesn't exist."""
        try:
            self.conn.execute(QUERY_CREATE)
            if self.conn.in_transaction:
                self.conn.execute("COMMIT")
        except sqlite3.Error as e:
            raise VersionStoreError(f"Failed to create {TABLE_NAME} table: {e}") from e

    def table_exists(self) -> bool:
        try:
            row = self.conn.execute(QUERY_EXISTS, (TABLE_NAME,)).fetchone()
        except sqlite3.Error as e:
            raise VersionStoreError(f"Failed to inspect schema: {e}") from e
        return row is not None

    def list_applied(self) -> list[AppliedVersion]:
        """Get applied migrations ordered by version ascending."""
        try:
            rows = self.conn.execute(QUERY_ALL).fetchall()
        except sqlite3.Error as e:
            raise VersionStoreError(f"Failed to list applied versions: {e}") from e
        try:
            return [AppliedVersion.from_row(row) for row in rows]
        except ValueError as e:
            raise VersionStoreError(f"Malformed row in {TABLE_NAME} table: {e}") from e

    def current_version(self) -> str | None:
        """
        Get the greatest applied version.

        Returns:
            The version string, or None if no migration has been applied
        """
        try:
            row = self.conn.execute(QUERY_LAST).fetchone()
        except sqlite3.Error as e:
            raise VersionStoreError(f"Failed to query current version: {e}") from e
        return row[0] if row is not None else None

    def record_applied(self, version: str, name: str) -> None:
        """Insert a row for an applied migration (inside the open transaction)."""
        try:
            self.conn.execute(QUERY_INSERT, (version, name))
        except sqlite3.Error as e:
            raise VersionStoreError(f"Failed to record version {version}: {e}") from e

    def record_reverted(self, version: str) -> None:
        """Delete the row(s) of a reverted migration (inside the open transaction)."""
        try:
            self.conn.execute(QUERY_DELETE, (version,))
        except sqlite3.Error as e:
            raise VersionStoreError(f"Failed to remove version {version}: {e}") from e
