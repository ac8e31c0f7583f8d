"""Shared fixtures: temporary databases and a recording notification service."""

from datetime import datetime

import pytest

from medshelf.db import MedicineDB, ReminderBindingDB
from medshelf.notifications import NotificationService, PermissionStatus, ReminderPayload


class FakeNotificationService(NotificationService):
    """Records every call instead of scheduling anything."""

    def __init__(self, permission=PermissionStatus.GRANTED):
        self.permission = permission
        self.permission_requests = 0
        self.scheduled: dict[str, tuple[datetime, ReminderPayload]] = {}
        self.cancelled: list[str] = []
        self.fail_schedule = False
        self.fail_cancel = False
        self._counter = 0

    async def request_permission(self):
        self.permission_requests += 1
        return self.permission

    async def schedule(self, trigger_at, payload):
        if self.fail_schedule:
            raise RuntimeError("scheduler unavailable")
        self._counter += 1
        reminder_id = f"reminder-{self._counter}"
        self.scheduled[reminder_id] = (trigger_at, payload)
        return reminder_id

    async def cancel(self, reminder_id):
        self.cancelled.append(reminder_id)
        if self.fail_cancel:
            raise RuntimeError("cancel failed")
        self.scheduled.pop(reminder_id, None)


@pytest.fixture
def store(tmp_path):
    db = MedicineDB(db_path=tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def bindings(tmp_path):
    db = ReminderBindingDB(db_path=tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def service():
    return FakeNotificationService()
