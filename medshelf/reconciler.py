"""Keeps scheduled expiry reminders in agreement with the medicine inventory."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from . import expiry
from .db import ReminderBindingDB
from .models import Medicine, ReminderBinding
from .notifications import (
    DeviceProbe,
    NotificationService,
    PermissionStatus,
    ReminderPayload,
    StaticDeviceProbe,
)

logger = logging.getLogger(__name__)

DEFAULT_LEAD_DAYS = 30
REMINDER_TITLE = "Medicine Expiring Soon"


class ExpiryReminderReconciler:
    """Maintains one reminder per medicine, fired ``lead_days`` before expiry.

    Never modifies the medicine store and never raises on a scheduling
    failure: a lost reminder must not block saving a medicine.
    """

    def __init__(
        self,
        service: NotificationService,
        bindings: ReminderBindingDB,
        *,
        device: DeviceProbe | None = None,
        lead_days: int = DEFAULT_LEAD_DAYS,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._service = service
        self._bindings = bindings
        self._device = device or StaticDeviceProbe()
        self._lead_days = lead_days
        self._clock = clock

    @property
    def service(self) -> NotificationService:
        return self._service

    @property
    def bindings(self) -> ReminderBindingDB:
        return self._bindings

    def trigger_for(self, medicine: Medicine, lead_days: int | None = None) -> datetime | None:
        """Return when the reminder for *medicine* should fire, if it has an expiry."""
        value = expiry.parse(medicine.expiry_date)
        if value is None:
            return None
        lead = self._lead_days if lead_days is None else lead_days
        first = value.first_day()
        return datetime(first.year, first.month, first.day) - timedelta(days=lead)

    def _due_trigger(self, medicine: Medicine, lead_days: int | None) -> datetime | None:
        trigger_at = self.trigger_for(medicine, lead_days)
        if trigger_at is None:
            logger.info("No expiry date for %s; skipping reminder", medicine.id)
            return None
        if not self._device.is_physical_device():
            logger.info("Reminders need a physical device; skipping %s", medicine.id)
            return None
        if trigger_at < self._clock():
            logger.info(
                "Reminder time %s for %s is in the past; skipping",
                trigger_at.isoformat(),
                medicine.id,
            )
            return None
        return trigger_at

    def plan(self, medicines: Iterable[Medicine]) -> list[tuple[Medicine, datetime]]:
        """Return the reminders a reconcile would schedule, soonest first.

        Permission is not requested, so nothing is prompted or scheduled.
        """
        planned = []
        for medicine in medicines:
            trigger_at = self._due_trigger(medicine, None)
            if trigger_at is not None:
                planned.append((medicine, trigger_at))
        planned.sort(key=lambda item: item[1])
        return planned

    async def schedule_prior_to_expiry(
        self, medicine: Medicine, lead_days: int | None = None
    ) -> ReminderBinding | None:
        """Schedule a reminder ``lead_days`` before the medicine's expiry month.

        Returns None without scheduling anything when the expiry is unknown,
        the device cannot show reminders, the trigger time has already
        passed, or permission is denied.
        """
        trigger_at = self._due_trigger(medicine, lead_days)
        if trigger_at is None:
            return None

        try:
            permission = await self._service.request_permission()
            if permission is not PermissionStatus.GRANTED:
                logger.info("Notification permission denied; skipping %s", medicine.id)
                return None

            payload = ReminderPayload(
                title=REMINDER_TITLE,
                body=f"{medicine.name} is expiring next month ({medicine.expiry_date})",
                record_id=medicine.id,
            )
            reminder_id = await self._service.schedule(trigger_at, payload)

            previous = self._bindings.get(medicine.id)
            binding = ReminderBinding(
                record_id=medicine.id,
                reminder_id=reminder_id,
                trigger_at=trigger_at.isoformat(),
            )
            try:
                self._bindings.put(binding)
            except Exception:
                # The previous binding and its reminder stay in place.
                await self._cancel_reminder(reminder_id)
                raise

            if previous is not None and previous.reminder_id != reminder_id:
                await self._cancel_reminder(previous.reminder_id)
        except Exception:
            logger.exception("Failed to schedule reminder for %s", medicine.id)
            return None

        logger.info(
            "Scheduled reminder %s for %s at %s",
            reminder_id,
            medicine.id,
            binding.trigger_at,
        )
        return binding

    async def _cancel_reminder(self, reminder_id: str) -> None:
        try:
            await self._service.cancel(reminder_id)
        except Exception:
            logger.exception("Failed to cancel reminder %s", reminder_id)

    async def cancel(self, record_id: str) -> None:
        """Cancel the reminder bound to *record_id* and forget the binding.

        The binding is removed even if the service fails to cancel. Unknown
        ids are ignored.
        """
        binding = self._bindings.get(record_id)
        if binding is None:
            return
        await self._cancel_reminder(binding.reminder_id)
        try:
            self._bindings.remove(record_id)
        except Exception:
            logger.exception("Failed to remove reminder binding for %s", record_id)

    async def reschedule(self, medicine: Medicine) -> ReminderBinding | None:
        """Replace the reminder for a medicine whose expiry may have changed."""
        await self.cancel(medicine.id)
        return await self.schedule_prior_to_expiry(medicine)

    async def cancel_all(self) -> bool:
        """Cancel every bound reminder and clear the bindings.

        Returns:
            False if the bindings could not be cleared.
        """
        for binding in self._bindings.bindings():
            await self._cancel_reminder(binding.reminder_id)
        try:
            self._bindings.clear()
        except Exception:
            logger.exception("Failed to clear reminder bindings")
            return False
        return True

    async def reconcile_all(self, medicines: Iterable[Medicine]) -> dict[str, str]:
        """Cancel every reminder, then schedule afresh for each medicine.

        Returns:
            The resulting record id -> reminder id map.
        """
        if not await self.cancel_all():
            return self._bindings.all()

        for medicine in medicines:
            await self.schedule_prior_to_expiry(medicine)

        result = self._bindings.all()
        logger.info("Reconciled reminders: %d scheduled", len(result))
        return result
