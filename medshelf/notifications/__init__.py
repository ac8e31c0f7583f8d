"""Notification service base class, data types, and factory."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import MedshelfConfig


class PermissionStatus(enum.Enum):
    GRANTED = "granted"
    DENIED = "denied"


@dataclass
class ReminderPayload:
    title: str
    body: str
    record_id: str


@dataclass
class DisplayPolicy:
    """How a fired reminder is presented."""

    show_alert: bool = True
    play_sound: bool = True
    set_badge: bool = True


class NotificationService(ABC):
    """Abstract base for scheduling local, time-triggered reminders."""

    @abstractmethod
    async def request_permission(self) -> PermissionStatus:
        """Ask for permission to post reminders.

        Repeated calls after a grant must be cheap no-ops.
        """
        ...

    @abstractmethod
    async def schedule(self, trigger_at: datetime, payload: ReminderPayload) -> str:
        """Schedule a reminder and return its id."""
        ...

    @abstractmethod
    async def cancel(self, reminder_id: str) -> None:
        """Cancel a scheduled reminder. Unknown ids are ignored."""
        ...


class DeviceProbe(ABC):
    @abstractmethod
    def is_physical_device(self) -> bool:
        """Whether this device can deliver local reminders at all."""
        ...


class StaticDeviceProbe(DeviceProbe):
    """Device capability fixed by configuration."""

    def __init__(self, is_physical: bool = True) -> None:
        self._is_physical = is_physical

    def is_physical_device(self) -> bool:
        return self._is_physical


def create_service(config: MedshelfConfig, notifier=None) -> NotificationService:
    """Create the local notification service from configuration."""
    from .local import LocalNotificationService

    nc = config.notifications
    return LocalNotificationService(
        policy=DisplayPolicy(
            show_alert=nc.show_alert,
            play_sound=nc.play_sound,
            set_badge=nc.set_badge,
        ),
        enabled=nc.enabled,
        notifier=notifier,
    )


def create_device_probe(config: MedshelfConfig) -> DeviceProbe:
    return StaticDeviceProbe(config.notifications.physical_device)

