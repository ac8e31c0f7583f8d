"""Storage for medicine -> scheduled reminder bindings."""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path

from ..errors import StorageUnavailable
from ..models import ReminderBinding
from .medicines import DEFAULT_DB_PATH
from .schema import ensure_schema

logger = logging.getLogger(__name__)


class ReminderBindingDB:
    """Manages the reminder_bindings table.

    The table is keyed by record id, so a medicine has at most one binding.
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def get(self, record_id: str) -> ReminderBinding | None:
        with self._lock:
            try:
                row = self._get_conn().execute(
                    "SELECT * FROM reminder_bindings WHERE record_id = ?",
                    (record_id,),
                ).fetchone()
            except (StorageUnavailable, sqlite3.Error):
                logger.exception("Failed to read reminder binding for %s", record_id)
                return None
        if row is None:
            return None
        return ReminderBinding(
            record_id=row["record_id"],
            reminder_id=row["reminder_id"],
            trigger_at=row["trigger_at"] or "",
        )

    def bindings(self) -> list[ReminderBinding]:
        with self._lock:
            try:
                rows = self._get_conn().execute(
                    "SELECT * FROM reminder_bindings ORDER BY trigger_at"
                ).fetchall()
            except (StorageUnavailable, sqlite3.Error):
                logger.exception("Failed to read reminder bindings")
                return []
        return [
            ReminderBinding(
                record_id=r["record_id"],
                reminder_id=r["reminder_id"],
                trigger_at=r["trigger_at"] or "",
            )
            for r in rows
        ]

    def all(self) -> dict[str, str]:
        """Return the record id -> reminder id map."""
        return {b.record_id: b.reminder_id for b in self.bindings()}

    def put(self, binding: ReminderBinding) -> None:
        """Store a binding, replacing any existing one for the same record."""
        with self._lock:
            conn = self._get_conn()
            try:
                conn.execute(
                    """INSERT OR REPLACE INTO reminder_bindings
                       (record_id, reminder_id, trigger_at)
                       VALUES (?, ?, ?)""",
                    (binding.record_id, binding.reminder_id, binding.trigger_at),
                )
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageUnavailable(f"failed to save reminder binding: {e}") from e

    def remove(self, record_id: str) -> bool:
        with self._lock:
            conn = self._get_conn()
            try:
                cur = conn.execute(
                    "DELETE FROM reminder_bindings WHERE record_id = ?", (record_id,)
                )
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageUnavailable(f"failed to remove reminder binding: {e}") from e
        return cur.rowcount > 0

    def clear(self) -> None:
        with self._lock:
            conn = self._get_conn()
            try:
                conn.execute("DELETE FROM reminder_bindings")
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageUnavailable(f"failed to clear reminder bindings: {e}") from e

