"""Repository - CRUD operations for sessions, loadouts, markup and settings."""

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from hunttrack.core.loadout import Loadout, migrate_loadout
from hunttrack.core.markup import (
    MarkupConfig,
    MarkupEntry,
    MarkupLibrary,
    config_from_dict,
    config_to_dict,
    default_markup_from_dict,
    default_markup_to_dict,
    entry_from_dict,
    entry_to_dict,
)
from hunttrack.core.session import Session, session_from_dict, session_to_dict
from hunttrack.db.connection import Database
from hunttrack.parser.feed_tailer import FeedPosition

# Settings keys
ACTIVE_LOADOUT_KEY = "active_loadout_id"
ACTIVE_SESSION_KEY = "active_session_id"
MARKUP_LIBRARY_META_KEY = "markup_library_meta"
MARKUP_CONFIG_KEY = "markup_config"


@dataclass(frozen=True)
class SessionSummary:
    """Session listing row, read without loading the event log."""

    id: str
    name: str
    tags: list[str]
    started_at: datetime
    ended_at: Optional[datetime]
    paused_at: Optional[datetime]
    event_count: int


class Repository:
    """Data access layer for all entities."""

    def __init__(self, db: Database) -> None:
        self.db = db

    # --- Settings ---

    def get_setting(self, key: str) -> Optional[str]:
        """Get a setting value by key."""
        row = self.db.fetchone("SELECT value FROM settings WHERE key = ?", (key,))
        return row["value"] if row else None

    def set_setting(self, key: str, value: str) -> None:
        """Set a setting value."""
        self.db.execute(
            "INSERT OR REPLACE INTO settings (key, value, updated_at) VALUES (?, ?, ?)",
            (key, value, datetime.now().isoformat()),
        )

    def delete_setting(self, key: str) -> None:
        self.db.execute("DELETE FROM settings WHERE key = ?", (key,))

    # --- Sessions ---

    def save_session(self, session: Session) -> None:
        """Insert or replace a session record."""
        data = json.dumps(session_to_dict(session))
        with self.db.transaction() as cursor:
            cursor.execute(
                """INSERT OR REPLACE INTO sessions
                   (id, name, tags, started_at, ended_at, paused_at, event_count, updated_at, data)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    session.id,
                    session.name,
                    json.dumps(session.tags),
                    session.started_at.isoformat(),
                    session.ended_at.isoformat() if session.ended_at else None,
                    session.paused_at.isoformat() if session.paused_at else None,
                    session.event_count,
                    datetime.now().isoformat(),
                    data,
                ),
            )

    def load_session(self, session_id: str) -> Optional[Session]:
        """Load a full session by ID."""
        row = self.db.fetchone("SELECT data FROM sessions WHERE id = ?", (session_id,))
        if not row:
            return None
        return session_from_dict(json.loads(row["data"]))

    def list_sessions(self, limit: Optional[int] = None) -> list[SessionSummary]:
        """List session metadata, newest first."""
        sql = """SELECT id, name, tags, started_at, ended_at, paused_at, event_count
                 FROM sessions ORDER BY started_at DESC"""
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        rows = self.db.fetchall(sql, params)
        return [self._row_to_summary(row) for row in rows]

    def delete_session(self, session_id: str) -> bool:
        """Delete a session. Returns True if it existed."""
        cursor = self.db.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
        deleted = cursor.rowcount > 0
        if deleted and self.get_setting(ACTIVE_SESSION_KEY) == session_id:
            self.delete_setting(ACTIVE_SESSION_KEY)
        return deleted

    def get_open_sessions(self) -> list[SessionSummary]:
        """Sessions that were never ended (at most one in normal operation)."""
        rows = self.db.fetchall(
            """SELECT id, name, tags, started_at, ended_at, paused_at, event_count
               FROM sessions WHERE ended_at IS NULL ORDER BY started_at DESC"""
        )
        return [self._row_to_summary(row) for row in rows]

    def _row_to_summary(self, row) -> SessionSummary:
        return SessionSummary(
            id=row["id"],
            name=row["name"],
            tags=json.loads(row["tags"] or "[]"),
            started_at=datetime.fromisoformat(row["started_at"]),
            ended_at=datetime.fromisoformat(row["ended_at"]) if row["ended_at"] else None,
            paused_at=datetime.fromisoformat(row["paused_at"]) if row["paused_at"] else None,
            event_count=row["event_count"],
        )

    # --- Loadouts ---

    def save_loadout(self, loadout: Loadout) -> None:
        """Insert or replace a loadout."""
        self.db.execute(
            "INSERT OR REPLACE INTO loadouts (id, name, updated_at, data) VALUES (?, ?, ?, ?)",
            (
                loadout.id,
                loadout.name,
                loadout.updated_at.isoformat(),
                json.dumps(loadout.to_dict()),
            ),
        )

    def get_loadout(self, loadout_id: str) -> Optional[Loadout]:
        """Get a loadout by ID (migrated to the current format)."""
        row = self.db.fetchone("SELECT data FROM loadouts WHERE id = ?", (loadout_id,))
        if not row:
            return None
        return migrate_loadout(json.loads(row["data"]))

    def list_loadouts(self) -> list[Loadout]:
        """All loadouts ordered by name."""
        rows = self.db.fetchall("SELECT data FROM loadouts ORDER BY name")
        return [migrate_loadout(json.loads(row["data"])) for row in rows]

    def delete_loadout(self, loadout_id: str) -> bool:
        cursor = self.db.execute("DELETE FROM loadouts WHERE id = ?", (loadout_id,))
        deleted = cursor.rowcount > 0
        if deleted and self.get_active_loadout_id() == loadout_id:
            self.set_active_loadout_id(None)
        return deleted

    def get_active_loadout_id(self) -> Optional[str]:
        return self.get_setting(ACTIVE_LOADOUT_KEY)

    def set_active_loadout_id(self, loadout_id: Optional[str]) -> None:
        if loadout_id is None:
            self.delete_setting(ACTIVE_LOADOUT_KEY)
        else:
            self.set_setting(ACTIVE_LOADOUT_KEY, loadout_id)

    def get_active_loadout(self) -> Optional[Loadout]:
        """Read the active loadout fresh from storage."""
        loadout_id = self.get_active_loadout_id()
        if loadout_id is None:
            return None
        return self.get_loadout(loadout_id)

    # --- Markup ---

    def save_markup_library(self, library: MarkupLibrary) -> int:
        """
        Replace the stored markup library.

        Returns:
            Number of entries written
        """
        now = datetime.now().isoformat()
        meta = {
            "last_synced": library.last_synced.isoformat() if library.last_synced else None,
            "version": library.version,
            "default_markup": default_markup_to_dict(library.default_markup),
        }
        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM markup_items")
            cursor.executemany(
                "INSERT INTO markup_items (item_name, source, updated_at, data) VALUES (?, ?, ?, ?)",
                [
                    (entry.item_name, entry.source.value, now, json.dumps(entry_to_dict(entry)))
                    for entry in library.items.values()
                ],
            )
            cursor.execute(
                "INSERT OR REPLACE INTO settings (key, value, updated_at) VALUES (?, ?, ?)",
                (MARKUP_LIBRARY_META_KEY, json.dumps(meta), now),
            )
        return len(library.items)

    def load_markup_library(self) -> MarkupLibrary:
        """Load the stored library (empty if none)."""
        rows = self.db.fetchall("SELECT data FROM markup_items ORDER BY item_name")
        items = {}
        for row in rows:
            entry = entry_from_dict(json.loads(row["data"]))
            items[entry.item_name] = entry

        library = MarkupLibrary(items=items)
        meta_json = self.get_setting(MARKUP_LIBRARY_META_KEY)
        if meta_json:
            meta = json.loads(meta_json)
            if meta.get("last_synced"):
                library.last_synced = datetime.fromisoformat(meta["last_synced"])
            library.version = int(meta.get("version", 1))
            library.default_markup = default_markup_from_dict(meta.get("default_markup") or {})
        return library

    def upsert_markup_entry(self, entry: MarkupEntry) -> None:
        self.db.execute(
            """INSERT OR REPLACE INTO markup_items (item_name, source, updated_at, data)
               VALUES (?, ?, ?, ?)""",
            (entry.item_name, entry.source.value, datetime.now().isoformat(), json.dumps(entry_to_dict(entry))),
        )

    def get_markup_entry(self, item_name: str) -> Optional[MarkupEntry]:
        row = self.db.fetchone("SELECT data FROM markup_items WHERE item_name = ?", (item_name,))
        if not row:
            return None
        return entry_from_dict(json.loads(row["data"]))

    def get_markup_config(self) -> MarkupConfig:
        """Load the user's markup config (defaults if never saved)."""
        value = self.get_setting(MARKUP_CONFIG_KEY)
        if not value:
            return MarkupConfig()
        return config_from_dict(json.loads(value))

    def save_markup_config(self, config: MarkupConfig) -> None:
        self.set_setting(MARKUP_CONFIG_KEY, json.dumps(config_to_dict(config)))

    # --- Feed Position ---

    def save_feed_position(self, position: FeedPosition) -> None:
        """Save where the collector stopped reading the event feed."""
        with self.db.transaction() as cursor:
            cursor.execute(
                """INSERT OR REPLACE INTO feed_position
                   (id, file_path, position, file_size, updated_at)
                   VALUES (1, ?, ?, ?, ?)""",
                (str(position.path), position.offset, position.size, datetime.now().isoformat()),
            )

    def get_feed_position(self) -> Optional[FeedPosition]:
        row = self.db.fetchone(
            "SELECT file_path, position, file_size FROM feed_position WHERE id = 1"
        )
        if not row:
            return None
        return FeedPosition(Path(row["file_path"]), row["position"], row["file_size"])
