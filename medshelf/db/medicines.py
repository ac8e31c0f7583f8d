"""Medicine inventory CRUD operations."""

from __future__ import annotations

import logging
import sqlite3
import threading
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from .. import expiry
from ..errors import InvalidRecord, StorageUnavailable
from ..models import (
    EDITABLE_FIELDS,
    IMMUTABLE_FIELDS,
    Medicine,
    MedicineWithDays,
    normalize_field,
)
from .schema import ensure_schema

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "~/.config/medshelf/medshelf.db"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _validated_changes(fields: dict[str, Any]) -> dict[str, str]:
    changes: dict[str, str] = {}
    for key, value in fields.items():
        attr = normalize_field(key)
        if attr in IMMUTABLE_FIELDS:
            logger.debug("Ignoring immutable field %s on update", attr)
            continue
        if attr not in EDITABLE_FIELDS:
            raise InvalidRecord(f"unknown medicine field {key!r}")
        changes[attr] = "" if value is None else str(value)
    if "name" in changes and not changes["name"].strip():
        raise InvalidRecord("medicine name must not be empty")
    return changes


class MedicineDB:
    """Manages the medicines table.

    Mutations raise StorageUnavailable when the database cannot be written.
    Reads never raise: a storage fault is logged and an empty result
    returned so a listing can always be rendered.
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

    def _insert(self, conn: sqlite3.Connection, medicine: Medicine) -> str:
        if not medicine.name or not medicine.name.strip():
            raise InvalidRecord("medicine name must not be empty")
        if not medicine.id:
            medicine.id = uuid.uuid4().hex
        if not medicine.created_at:
            medicine.created_at = _now_iso()
        try:
            conn.execute(
                """INSERT INTO medicines
                   (id, name, company, expiry_date, notes, image_uri, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    medicine.id,
                    medicine.name,
                    medicine.company,
                    medicine.expiry_date,
                    medicine.notes,
                    medicine.image_uri,
                    medicine.created_at,
                ),
            )
        except sqlite3.IntegrityError as e:
            raise InvalidRecord(f"duplicate medicine id {medicine.id!r}") from e
        return medicine.id

    def add(self, medicine: Medicine) -> str:
        """Insert a medicine, assigning its id and created_at if absent.

        Returns:
            The id of the stored medicine.

        Raises:
            InvalidRecord: If the name is blank or the id is already taken.
            StorageUnavailable: If the database cannot be written.
        """
        with self._lock:
            conn = self._get_conn()
            try:
                record_id = self._insert(conn, medicine)
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageUnavailable(f"failed to add medicine: {e}") from e
            except InvalidRecord:
                conn.rollback()
                raise
        logger.debug("Added medicine %s (%s)", record_id, medicine.name)
        return record_id

    def get_all(self) -> list[Medicine]:
        """Return every medicine in insertion order."""
        with self._lock:
            try:
                rows = self._get_conn().execute(
                    "SELECT * FROM medicines ORDER BY seq"
                ).fetchall()
            except (StorageUnavailable, sqlite3.Error):
                logger.exception("Failed to read medicines")
                return []
        return [Medicine.from_row(r) for r in rows]

    def get_by_id(self, record_id: str) -> Medicine | None:
        with self._lock:
            try:
                row = self._get_conn().execute(
                    "SELECT * FROM medicines WHERE id = ?", (record_id,)
                ).fetchone()
            except (StorageUnavailable, sqlite3.Error):
                logger.exception("Failed to read medicine %s", record_id)
                return None
        return Medicine.from_row(row) if row else None

    def update(self, record_id: str, fields: dict[str, Any]) -> bool:
        """Merge *fields* into an existing medicine.

        ``id`` and ``created_at`` are never changed. Keys may be snake_case
        or camelCase. A missing record is reported before *fields* are
        validated.

        Returns:
            True if the medicine exists, False otherwise.

        Raises:
            InvalidRecord: If an existing medicine would get an unknown
                field or a blank name.
        """
        with self._lock:
            conn = self._get_conn()
            try:
                exists = conn.execute(
                    "SELECT 1 FROM medicines WHERE id = ?", (record_id,)
                ).fetchone()
                if not exists:
                    return False
                changes = _validated_changes(fields)
                if changes:
                    assignments = ", ".join(f"{col} = ?" for col in changes)
                    conn.execute(
                        f"UPDATE medicines SET {assignments} WHERE id = ?",
                        (*changes.values(), record_id),
                    )
                    conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageUnavailable(f"failed to update medicine: {e}") from e
        return True

    def delete(self, record_id: str) -> bool:
        """Delete a medicine by id. Returns whether anything was removed."""
        with self._lock:
            conn = self._get_conn()
            try:
                cur = conn.execute("DELETE FROM medicines WHERE id = ?", (record_id,))
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageUnavailable(f"failed to delete medicine: {e}") from e
        return cur.rowcount > 0

    def clear(self) -> None:
        """Remove all medicines."""
        with self._lock:
            conn = self._get_conn()
            try:
                conn.execute("DELETE FROM medicines")
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageUnavailable(f"failed to clear medicines: {e}") from e

    def query_expiring(
        self,
        threshold_days: int = expiry.DEFAULT_EXPIRING_SOON_DAYS,
        reference: date | datetime | None = None,
    ) -> list[MedicineWithDays]:
        """Return medicines that are not expired but expire within the threshold."""
        return [
            MedicineWithDays(m, expiry.days_until_expiry(m.expiry_date, reference))
            for m in self.get_all()
            if expiry.classify(m.expiry_date, reference).status != expiry.EXPIRED
            and expiry.is_expiring_soon(m.expiry_date, threshold_days, reference)
        ]

    def query_expired(
        self, reference: date | datetime | None = None
    ) -> list[MedicineWithDays]:
        """Return medicines whose expiry month has started."""
        return [
            MedicineWithDays(m, expiry.days_until_expiry(m.expiry_date, reference))
            for m in self.get_all()
            if expiry.is_expired(m.expiry_date, reference)
        ]

    def export_records(self) -> list[dict[str, str]]:
        """Return all medicines as camelCase JSON objects."""
        return [m.to_dict() for m in self.get_all()]

    def import_records(self, records: list[dict[str, Any]]) -> list[str]:
        """Insert exported records in one transaction, keeping their ids.

        Returns:
            The ids of the imported medicines.
        """
        medicines = [Medicine.from_dict(r) for r in records]
        with self._lock:
            conn = self._get_conn()
            try:
                ids = [self._insert(conn, m) for m in medicines]
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageUnavailable(f"failed to import medicines: {e}") from e
            except InvalidRecord:
                conn.rollback()
                raise
        logger.info("Imported %d medicines", len(ids))
        return ids
