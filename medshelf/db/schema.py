"""Database schema definitions and migration helpers."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from ..errors import StorageUnavailable

_SCHEMA_VERSION = 1

_DDL = """
CREATE TABLE IF NOT EXISTS medicines (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    company TEXT,
    expiry_date TEXT,
    notes TEXT,
    image_uri TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_medicines_expiry ON medicines(expiry_date);

CREATE TABLE IF NOT EXISTS reminder_bindings (
    record_id TEXT PRIMARY KEY,
    reminder_id TEXT NOT NULL,
    trigger_at TEXT
);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);
"""


def ensure_schema(db_path: str | Path) -> sqlite3.Connection:
    """Open (or create) the database and ensure the schema is up to date.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        An open sqlite3.Connection with the schema applied.

    Raises:
        StorageUnavailable: If the file or its directory cannot be opened.
    """
    db_path = Path(db_path).expanduser()
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path), check_same_thread=False)
    except (OSError, sqlite3.Error) as e:
        raise StorageUnavailable(f"cannot open database {db_path}: {e}") from e

    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA journal_mode=WAL")

        # Check current schema version
        try:
            row = conn.execute("SELECT version FROM schema_version").fetchone()
            current_version = row["version"] if row else 0
        except sqlite3.OperationalError:
            current_version = 0

        if current_version < _SCHEMA_VERSION:
            conn.executescript(_DDL)
            conn.execute("DELETE FROM schema_version")
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (_SCHEMA_VERSION,),
            )
            conn.commit()
    except sqlite3.Error as e:
        conn.close()
        raise StorageUnavailable(f"cannot initialize database {db_path}: {e}") from e

    return conn
