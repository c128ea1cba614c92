"""SQLite connection shared by the API and the collector thread."""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from hunttrack.config.logging import get_logger
from hunttrack.db.schema import ALL_CREATE_STATEMENTS, MIGRATIONS, SCHEMA_VERSION

logger = get_logger()

SCHEMA_VERSION_KEY = "schema_version"


class Database:
    """
    One WAL-mode connection guarded by a lock.

    Every statement runs under the lock, so the tracker's debounced saves
    and API reads never interleave on the shared connection.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def connect(self) -> None:
        """Open the database file, creating or upgrading its schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            str(self.db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit; transactions are explicit
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA busy_timeout=30000")
        self._connection = conn

        with self.transaction() as cursor:
            self._prepare_schema(cursor)

    def _stored_version(self, cursor: sqlite3.Cursor) -> Optional[int]:
        cursor.execute("SELECT value FROM settings WHERE key = ?", (SCHEMA_VERSION_KEY,))
        row = cursor.fetchone()
        return int(row["value"]) if row else None

    def _prepare_schema(self, cursor: sqlite3.Cursor) -> None:
        for statement in ALL_CREATE_STATEMENTS:
            cursor.execute(statement)

        version = self._stored_version(cursor)
        if version is None:
            # Fresh file: the create statements already match SCHEMA_VERSION
            logger.info(f"Created database {self.db_path} (schema v{SCHEMA_VERSION})")
        else:
            for target, description, statement in MIGRATIONS:
                if version < target:
                    cursor.execute(statement)
                    logger.info(f"Migration v{target}: {description}")

        cursor.execute(
            "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
            (SCHEMA_VERSION_KEY, str(SCHEMA_VERSION)),
        )

    def close(self) -> None:
        if self._connection:
            self._connection.close()
            self._connection = None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Cursor, None, None]:
        """
        Run statements atomically.

        Commits when the block exits normally; rolls back and re-raises
        on any exception.
        """
        with self._lock:
            cursor = self.connection.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            try:
                yield cursor
                cursor.execute("COMMIT")
            except Exception:
                cursor.execute("ROLLBACK")
                raise

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            return self.connection.execute(sql, params)

    def fetchone(self, sql: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self.connection.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self.connection.execute(sql, params).fetchall()
