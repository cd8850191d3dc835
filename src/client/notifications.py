"""Local reminders tied to task due dates.

Reminder types:
- due_soon: 18:00 local time on the day before the due date
- due_today: 09:00 local time on the due date
- overdue: about a second from now, raised by the bulk sync only

A reminder whose fire time is not in the future is dropped. Scheduling is
fire-and-forget: every failure is logged and swallowed so that a task
mutation never fails because of a reminder.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime, time, timedelta
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from pydantic import BaseModel, Field

from src.client.reminder_store import ReminderStore
from src.core.config import Constants, settings
from src.domain.task import ReminderType, Task, TaskStatus, ensure_utc


logger = logging.getLogger(__name__)

_CONTENT: dict[ReminderType, tuple[str, str]] = {
    ReminderType.DUE_SOON: ("Task due tomorrow", '"{title}" is due tomorrow. Get ready!'),
    ReminderType.DUE_TODAY: ("Task due today", '"{title}" is due today. Don\'t forget to complete it.'),
    ReminderType.OVERDUE: ("Task overdue", '"{title}" is overdue. Complete it as soon as possible.'),
}


class NotificationPermissionError(Exception):
    """The platform refused permission to post notifications."""


class Reminder(BaseModel):
    """A local notification scheduled for one task."""

    reminder_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    task_id: str
    reminder_type: ReminderType
    fire_at: datetime
    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)


class NotificationBackend(Protocol):
    """Where reminders are actually scheduled and delivered."""

    async def has_permission(self) -> bool: ...

    async def schedule(self, reminder: Reminder) -> str: ...

    async def cancel(self, reminder_id: str) -> None: ...

    async def cancel_all(self) -> None: ...

    async def list_scheduled(self) -> list[Reminder]: ...


async def log_delivery(reminder: Reminder) -> None:
    """Default delivery: write the reminder to the log."""
    logger.info(
        "%s: %s",
        reminder.title,
        reminder.body,
        extra={"task_id": reminder.task_id, "reminder_type": reminder.reminder_type.value},
    )


class APSchedulerBackend:
    """Backend running each reminder as a one-shot APScheduler job."""

    def __init__(
        self,
        deliver: Callable[[Reminder], Awaitable[None]] | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self.scheduler = scheduler or AsyncIOScheduler()
        self._deliver = deliver or log_delivery
        self._reminders: dict[str, Reminder] = {}

    def start(self) -> None:
        """Start the scheduler. Must be called from a running event loop."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Reminder scheduler started")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Reminder scheduler stopped")

    async def _fire(self, reminder: Reminder) -> None:
        self._reminders.pop(reminder.reminder_id, None)
        try:
            await self._deliver(reminder)
        except Exception as e:
            logger.error("Reminder delivery failed for task %s: %s", reminder.task_id, e)

    async def has_permission(self) -> bool:
        return True

    async def schedule(self, reminder: Reminder) -> str:
        self.scheduler.add_job(
            self._fire,
            trigger=DateTrigger(run_date=reminder.fire_at),
            args=[reminder],
            id=reminder.reminder_id,
            name=f"{reminder.reminder_type.value}:{reminder.task_id}",
            replace_existing=True,
        )
        self._reminders[reminder.reminder_id] = reminder
        return reminder.reminder_id

    async def cancel(self, reminder_id: str) -> None:
        self._reminders.pop(reminder_id, None)
        try:
            self.scheduler.remove_job(reminder_id)
        except JobLookupError:
            logger.debug("Reminder %s already fired or was never scheduled", reminder_id)

    async def cancel_all(self) -> None:
        self.scheduler.remove_all_jobs()
        self._reminders.clear()

    async def list_scheduled(self) -> list[Reminder]:
        return sorted(self._reminders.values(), key=lambda reminder: reminder.fire_at)


class ReminderScheduler:
    """Keeps a task's local reminders in line with its due date and status.

    Args:
        backend: Where reminders are scheduled
        store: Bookkeeping of scheduled reminder ids per (task, type)
        timezone: IANA name for local fire times, defaults to settings
        clock: Returns the current aware datetime, defaults to UTC now
    """

    def __init__(
        self,
        backend: NotificationBackend,
        store: ReminderStore,
        *,
        timezone: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.backend = backend
        self.store = store
        self.tz = ZoneInfo(timezone or settings.reminder_timezone)
        self._clock = clock or (lambda: datetime.now(UTC))

    def now(self) -> datetime:
        return ensure_utc(self._clock())

    def compute_fire_time(self, due_date: datetime, reminder_type: ReminderType) -> datetime | None:
        """When a reminder of this type should fire, or None if that is not in the future."""
        now = self.now()
        local_due = ensure_utc(due_date).astimezone(self.tz)

        if reminder_type == ReminderType.DUE_SOON:
            day = local_due.date() - timedelta(days=1)
            fire_at = datetime.combine(day, time(Constants.DUE_SOON_HOUR), tzinfo=self.tz)
        elif reminder_type == ReminderType.DUE_TODAY:
            fire_at = datetime.combine(local_due.date(), time(Constants.DUE_TODAY_HOUR), tzinfo=self.tz)
        else:
            fire_at = now + timedelta(seconds=Constants.OVERDUE_DELAY_SECONDS)

        if fire_at <= now:
            return None
        return fire_at

    def build_reminder(self, task: Task, reminder_type: ReminderType, fire_at: datetime) -> Reminder:
        title, body = _CONTENT[reminder_type]
        return Reminder(
            task_id=task.id,
            reminder_type=reminder_type,
            fire_at=fire_at,
            title=title,
            body=body.format(title=task.title),
            data={
                "taskId": task.id,
                "taskTitle": task.title,
                "dueDate": task.due_date.isoformat() if task.due_date else None,
                "type": reminder_type.value,
            },
        )

    async def has_permission(self) -> bool:
        try:
            return await self.backend.has_permission()
        except Exception as e:
            logger.warning("Notification permission check failed: %s", e)
            return False

    async def _cancel_one(self, task_id: str, reminder_type: ReminderType) -> None:
        reminder_id = await self.store.get(task_id, reminder_type)
        if reminder_id is None:
            return
        await self.backend.cancel(reminder_id)
        await self.store.remove(task_id, reminder_type)

    async def schedule_reminder(self, task: Task, reminder_type: ReminderType) -> str | None:
        """Schedule one reminder, replacing any pending reminder of the same type.

        Returns:
            The reminder id, or None when nothing was scheduled
        """
        try:
            await self._cancel_one(task.id, reminder_type)

            if task.due_date is None:
                return None

            fire_at = self.compute_fire_time(task.due_date, reminder_type)
            if fire_at is None:
                logger.debug("Dropped %s reminder for task %s, fire time passed", reminder_type.value, task.id)
                return None

            if not await self.backend.has_permission():
                raise NotificationPermissionError("Notification permission not granted")

            reminder = self.build_reminder(task, reminder_type, fire_at)
            reminder_id = await self.backend.schedule(reminder)
            await self.store.add(task.id, reminder_type, reminder_id, fire_at)
        except Exception as e:
            logger.warning(
                "Failed to schedule reminder: %s",
                e,
                extra={"task_id": task.id, "reminder_type": reminder_type.value},
            )
            return None

        logger.info(
            "Scheduled reminder",
            extra={"task_id": task.id, "reminder_type": reminder_type.value, "fire_at": fire_at.isoformat()},
        )
        return reminder_id

    async def schedule_task_reminders(self, task: Task) -> list[str]:
        """Reset a task's reminders: cancel all, then schedule due_soon and due_today.

        Completed tasks and tasks without a due date only get the cancellation.
        """
        await self.cancel_task_reminders(task.id)
        if task.due_date is None or task.status == TaskStatus.COMPLETED:
            return []

        reminder_ids = []
        for reminder_type in (ReminderType.DUE_SOON, ReminderType.DUE_TODAY):
            reminder_id = await self.schedule_reminder(task, reminder_type)
            if reminder_id is not None:
                reminder_ids.append(reminder_id)
        return reminder_ids

    async def cancel_task_reminders(self, task_id: str) -> None:
        """Cancel every tracked reminder of a task and drop its bookkeeping."""
        try:
            reminder_ids = await self.store.get_ids(task_id)
            for reminder_id in reminder_ids.values():
                await self.backend.cancel(reminder_id)
            await self.store.remove_task(task_id)
        except Exception as e:
            logger.warning("Failed to cancel reminders for task %s: %s", task_id, e)
            return

        if reminder_ids:
            logger.info("Cancelled %d reminders for task %s", len(reminder_ids), task_id)

    async def sync_upcoming(self, tasks: Iterable[Task]) -> list[str]:
        """Bulk pass over fetched tasks.

        Overdue tasks get one overdue reminder; tasks due within the upcoming
        window get due_soon and due_today. Completed tasks, tasks without a
        due date and tasks due later are left untouched.
        """
        now = self.now()
        window = timedelta(days=Constants.UPCOMING_WINDOW_DAYS)
        reminder_ids: list[str] = []

        for task in tasks:
            if task.due_date is None or task.status == TaskStatus.COMPLETED:
                continue

            if task.due_date < now:
                types: tuple[ReminderType, ...] = (ReminderType.OVERDUE,)
            elif task.due_date - now <= window:
                types = (ReminderType.DUE_SOON, ReminderType.DUE_TODAY)
            else:
                continue

            for reminder_type in types:
                reminder_id = await self.schedule_reminder(task, reminder_type)
                if reminder_id is not None:
                    reminder_ids.append(reminder_id)

        logger.debug("Upcoming reminder sync scheduled %d reminders", len(reminder_ids))
        return reminder_ids

    async def clear_all(self) -> None:
        """Cancel every reminder and forget all bookkeeping."""
        try:
            await self.backend.cancel_all()
            await self.store.clear()
        except Exception as e:
            logger.warning("Failed to clear reminders: %s", e)
            return
        logger.info("Cleared all reminders")

    async def list_scheduled(self) -> list[Reminder]:
        try:
            return await self.backend.list_scheduled()
        except Exception as e:
            logger.warning("Failed to list scheduled reminders: %s", e)
            return []
