"""Tests for database setup and schema upgrades."""

import sqlite3

import pytest

from hunttrack.db.connection import Database
from hunttrack.db.schema import SCHEMA_VERSION


def _columns(db, table):
    return {row["name"] for row in db.fetchall(f"PRAGMA table_info({table})")}


@pytest.fixture
def version_one_file(tmp_path):
    """Database written before sessions had pause state or tags."""
    path = tmp_path / "old.db"
    conn = sqlite3.connect(str(path))
    conn.executescript(
        """
        CREATE TABLE settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
        CREATE TABLE sessions (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            started_at TEXT NOT NULL,
            ended_at TEXT,
            event_count INTEGER NOT NULL DEFAULT 0,
            updated_at TEXT NOT NULL DEFAULT (datetime('now')),
            data TEXT NOT NULL
        );
        INSERT INTO settings (key, value) VALUES ('schema_version', '1');
        INSERT INTO sessions (id, name, started_at, data)
            VALUES ('old', 'Old hunt', '2023-05-01T10:00:00', '{}');
        """
    )
    conn.commit()
    conn.close()
    return path


class TestDatabase:
    """Tests for Database."""

    def test_fresh_database(self, db):
        assert {"paused_at", "tags"} <= _columns(db, "sessions")
        row = db.fetchone("SELECT value FROM settings WHERE key = 'schema_version'")
        assert row["value"] == str(SCHEMA_VERSION)

    def test_reconnect_is_idempotent(self, tmp_path):
        path = tmp_path / "again.db"
        for _ in range(2):
            database = Database(path)
            database.connect()
            database.close()

    def test_upgrade_keeps_rows(self, version_one_file):
        database = Database(version_one_file)
        database.connect()
        try:
            assert {"paused_at", "tags"} <= _columns(database, "sessions")
            row = database.fetchone("SELECT name, tags, paused_at FROM sessions WHERE id = 'old'")
            assert row["name"] == "Old hunt"
            assert row["tags"] == "[]"
            assert row["paused_at"] is None
        finally:
            database.close()

    def test_transaction_rolls_back(self, db):
        with pytest.raises(RuntimeError):
            with db.transaction() as cursor:
                cursor.execute("INSERT INTO settings (key, value) VALUES ('k', 'v')")
                raise RuntimeError("boom")
        assert db.fetchone("SELECT value FROM settings WHERE key = 'k'") is None

    def test_not_connected(self, tmp_path):
        with pytest.raises(RuntimeError):
            Database(tmp_path / "x.db").connection
