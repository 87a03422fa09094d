"""SQLite storage for watchlist rows.

Callers open a connection per operation and close it themselves::

    conn = db_connect(db_path)
    try:
        rows = conn.execute("SELECT ...").fetchall()
    finally:
        conn.close()
"""
from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

DB_NAME = "reeltrack.db"

SCHEMA_VERSION = 2


def db_connect(db_path: str) -> sqlite3.Connection:
    """Open *db_path* with ``sqlite3.Row`` rows and WAL journaling."""
    conn = sqlite3.connect(db_path, timeout=30, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    return conn


_SCHEMA = """
-- One row per tracked title per user.
-- 'metadata' holds the pruned catalog JSON plus the app overlay fields.
CREATE TABLE IF NOT EXISTS watchlist (
    id                  TEXT PRIMARY KEY,
    user_id             TEXT NOT NULL,
    tmdb_id             INTEGER NOT NULL,
    type                TEXT NOT NULL CHECK (type IN ('movie', 'show')),
    title               TEXT NOT NULL DEFAULT '',
    poster_path         TEXT,
    vote_average        REAL,
    status              TEXT NOT NULL,
    metadata            TEXT NOT NULL DEFAULT '{}',
    last_watched_season INTEGER NOT NULL DEFAULT 0,
    progress            INTEGER NOT NULL DEFAULT 0,
    created_at          TEXT,
    updated_at          TEXT,
    UNIQUE (user_id, tmdb_id, type)
);

CREATE INDEX IF NOT EXISTS idx_watchlist_user
    ON watchlist (user_id);
CREATE INDEX IF NOT EXISTS idx_watchlist_status_updated
    ON watchlist (status, updated_at);
"""

# Columns added after version 1 databases were created
_ADDED_COLUMNS = {
    "progress": "INTEGER NOT NULL DEFAULT 0",
    "vote_average": "REAL",
}


def _upgrade(conn: sqlite3.Connection, version: int) -> None:
    if version >= SCHEMA_VERSION:
        return
    existing = {row["name"] for row in conn.execute("PRAGMA table_info(watchlist)")}
    for column, ddl in _ADDED_COLUMNS.items():
        if column not in existing:
            conn.execute(f"ALTER TABLE watchlist ADD COLUMN {column} {ddl}")
            logger.info(f"Added watchlist column '{column}'")
    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")


def init_db(db_path: str) -> None:
    """Create or upgrade the schema. Runs on every startup."""
    conn = db_connect(db_path)
    try:
        version = conn.execute("PRAGMA user_version").fetchone()[0]
        conn.executescript(_SCHEMA)
        _upgrade(conn, version)
        conn.commit()
        logger.info(f"Database ready at {db_path} (schema v{SCHEMA_VERSION})")
    finally:
        conn.close()
