"""Database schema - DDL statements for SQLite."""

SCHEMA_VERSION = 3

# Settings table - key/value configuration
CREATE_SETTINGS = """
CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
)
"""

# Sessions - one self-contained JSON record per session plus listing columns
CREATE_SESSIONS = """
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    tags TEXT NOT NULL DEFAULT '[]',
    started_at TEXT NOT NULL,
    ended_at TEXT,
    paused_at TEXT,
    event_count INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    data TEXT NOT NULL
)
"""

CREATE_SESSIONS_INDEX = """
CREATE INDEX IF NOT EXISTS idx_sessions_started_at ON sessions(started_at)
"""

# Loadouts - JSON record per loadout
CREATE_LOADOUTS = """
CREATE TABLE IF NOT EXISTS loadouts (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    data TEXT NOT NULL
)
"""

# Markup library entries
CREATE_MARKUP_ITEMS = """
CREATE TABLE IF NOT EXISTS markup_items (
    item_name TEXT PRIMARY KEY,
    source TEXT NOT NULL DEFAULT 'static',
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    data TEXT NOT NULL
)
"""

# Event feed position - for resume
CREATE_FEED_POSITION = """
CREATE TABLE IF NOT EXISTS feed_position (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    file_path TEXT NOT NULL,
    position INTEGER NOT NULL,
    file_size INTEGER NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
)
"""

ALL_CREATE_STATEMENTS = [
    CREATE_SETTINGS,
    CREATE_SESSIONS,
    CREATE_SESSIONS_INDEX,
    CREATE_LOADOUTS,
    CREATE_MARKUP_ITEMS,
    CREATE_FEED_POSITION,
]

# (version, description, statement) applied to databases older than version
MIGRATIONS = [
    (2, "paused_at column on sessions", "ALTER TABLE sessions ADD COLUMN paused_at TEXT"),
    (3, "tags column on sessions", "ALTER TABLE sessions ADD COLUMN tags TEXT NOT NULL DEFAULT '[]'"),
]
