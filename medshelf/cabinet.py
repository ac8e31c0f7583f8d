"""Medicine cabinet: store mutations paired with reminder upkeep."""

from __future__ import annotations

import logging
from typing import Any

from .db import MedicineDB
from .models import Medicine
from .ocr import ExtractedLabel, LabelReader
from .reconciler import ExpiryReminderReconciler

logger = logging.getLogger(__name__)


class MedicineCabinet:
    """Applies each inventory change and then brings reminders back in line.

    Store failures propagate as StorageUnavailable. Reminder failures are
    logged by the reconciler and never undo a save. Without a reconciler
    the cabinet only edits the inventory; a running scheduler picks the
    changes up on its next resync.
    """

    def __init__(
        self,
        store: MedicineDB,
        reconciler: ExpiryReminderReconciler | None = None,
    ) -> None:
        self.store = store
        self.reconciler = reconciler

    async def add(self, medicine: Medicine) -> str:
        record_id = self.store.add(medicine)
        if self.reconciler is not None:
            await self.reconciler.schedule_prior_to_expiry(medicine)
        return record_id

    async def update(self, record_id: str, fields: dict[str, Any]) -> bool:
        if not self.store.update(record_id, fields):
            return False
        if self.reconciler is None:
            return True
        medicine = self.store.get_by_id(record_id)
        if medicine is not None:
            await self.reconciler.reschedule(medicine)
        return True

    async def delete(self, record_id: str) -> bool:
        if self.reconciler is not None:
            await self.reconciler.cancel(record_id)
        return self.store.delete(record_id)

    async def clear(self) -> None:
        self.store.clear()
        if self.reconciler is not None:
            await self.reconciler.cancel_all()

    async def resync(self) -> dict[str, str]:
        """Rebuild every reminder from the current inventory."""
        if self.reconciler is None:
            return {}
        return await self.reconciler.reconcile_all(self.store.get_all())

    async def scan(self, reader: LabelReader, image_path: str) -> ExtractedLabel:
        label = await reader.extract(image_path)
        logger.info(
            "Read label from %s: name=%r expiry=%r",
            image_path,
            label.name,
            label.expiry_date,
        )
        return label

    async def add_from_label(
        self,
        label: ExtractedLabel,
        *,
        name: str | None = None,
        image_uri: str = "",
        notes: str = "",
    ) -> str:
        """Add a medicine from a read label. *name* overrides the label's name."""
        medicine = Medicine(
            name=name or label.name,
            company=label.company,
            expiry_date=label.expiry_date,
            notes=notes,
            image_uri=image_uri,
        )
        return await self.add(medicine)
