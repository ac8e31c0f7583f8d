"""In-process reminder delivery backed by APScheduler."""

from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Callable
from datetime import datetime

from . import DisplayPolicy, NotificationService, PermissionStatus, ReminderPayload

logger = logging.getLogger(__name__)


def _log_notifier(payload: ReminderPayload) -> None:
    logger.warning("%s: %s", payload.title, payload.body)


class LocalNotificationService(NotificationService):
    """Schedules one date-triggered APScheduler job per reminder.

    Jobs live in memory, so reminders only fire while the scheduler is
    running. Bindings survive in the database and are restored by a resync
    at start-up.
    """

    def __init__(
        self,
        policy: DisplayPolicy | None = None,
        *,
        enabled: bool = True,
        notifier: Callable[[ReminderPayload], None] | None = None,
        scheduler=None,
    ) -> None:
        """Initialize the service.

        Args:
            policy: Presentation applied when a reminder fires.
            enabled: Whether reminders are allowed; permission requests are
                denied when False.
            notifier: Callable that shows the alert. Defaults to logging it.
            scheduler: An existing APScheduler scheduler to add jobs to.

        Raises:
            ImportError: If apscheduler is not installed.
        """
        try:
            from apscheduler.jobstores.base import JobLookupError
            from apscheduler.schedulers.asyncio import AsyncIOScheduler
            from apscheduler.triggers.date import DateTrigger
            from apscheduler.triggers.interval import IntervalTrigger
        except ImportError:
            raise ImportError(
                "apscheduler is required: pip install 'apscheduler>=3.10,<4'"
            ) from None

        self._policy = policy or DisplayPolicy()
        self._enabled = enabled
        self._notifier = notifier or _log_notifier
        self._scheduler = scheduler or AsyncIOScheduler()
        self._DateTrigger = DateTrigger
        self._IntervalTrigger = IntervalTrigger
        self._JobLookupError = JobLookupError
        self._permission: PermissionStatus | None = None
        self._running = False
        self.badge_count = 0

    @property
    def policy(self) -> DisplayPolicy:
        return self._policy

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start the scheduler. Must be called from a running event loop."""
        if not self._running:
            self._scheduler.start()
            self._running = True
            logger.info("Reminder scheduler started")

    def shutdown(self) -> None:
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Reminder scheduler stopped")

    async def request_permission(self) -> PermissionStatus:
        if self._permission is None:
            self._permission = (
                PermissionStatus.GRANTED if self._enabled else PermissionStatus.DENIED
            )
            logger.info("Notification permission: %s", self._permission.value)
        return self._permission

    async def schedule(self, trigger_at: datetime, payload: ReminderPayload) -> str:
        reminder_id = uuid.uuid4().hex
        self._scheduler.add_job(
            self.deliver,
            trigger=self._DateTrigger(run_date=trigger_at),
            args=[payload],
            id=reminder_id,
            name=payload.title,
            misfire_grace_time=None,
        )
        logger.debug(
            "Scheduled reminder %s for %s at %s",
            reminder_id,
            payload.record_id,
            trigger_at.isoformat(),
        )
        return reminder_id

    async def cancel(self, reminder_id: str) -> None:
        try:
            self._scheduler.remove_job(reminder_id)
        except self._JobLookupError:
            logger.debug("Reminder %s not scheduled; nothing to cancel", reminder_id)

    def add_interval_job(
        self, func: Callable, *, minutes: int, job_id: str, name: str
    ) -> None:
        """Run *func* every *minutes* while the scheduler is running."""
        self._scheduler.add_job(
            func,
            trigger=self._IntervalTrigger(minutes=minutes),
            id=job_id,
            name=name,
            replace_existing=True,
        )
        logger.info("Registered job %s every %d minutes", job_id, minutes)

    async def deliver(self, payload: ReminderPayload) -> None:
        """Present a fired reminder according to the display policy."""
        if self._policy.show_alert:
            self._notifier(payload)
        if self._policy.play_sound:
            sys.stdout.write("\a")
            sys.stdout.flush()
        if self._policy.set_badge:
            self.badge_count += 1

    def get_jobs(self) -> list[dict]:
        """Return info about scheduled reminders, leaving out interval jobs."""
        jobs = []
        for job in self._scheduler.get_jobs():
            if not isinstance(job.trigger, self._DateTrigger):
                continue
            jobs.append({
                "id": job.id,
                "name": job.name,
                "record_id": job.args[0].record_id,
                "run_date": str(job.trigger.run_date),
            })
        return jobs
