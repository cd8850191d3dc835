"""Client-side task workflows that keep local reminders consistent with the server."""

import logging

from src.client.api_client import TaskAPIClient
from src.client.notifications import ReminderScheduler
from src.core.config import Constants
from src.core.errors import ClientError
from src.domain.create_models import TaskCreate
from src.domain.task import Task, TaskPriority, TaskStatus
from src.domain.update_models import TaskUpdate
from src.domain.user import UserPublic
from src.models.service_models import AuthResult, TaskPage


logger = logging.getLogger(__name__)


class TaskWorkflow:
    """API calls paired with the reminder bookkeeping each one implies.

    Reminder failures never fail the API operation; the scheduler logs and
    swallows them.
    """

    def __init__(self, client: TaskAPIClient, reminders: ReminderScheduler) -> None:
        self.client = client
        self.reminders = reminders

    async def login(self, *, email: str, password: str) -> AuthResult:
        return await self.client.login(email=email, password=password)

    async def register(self, *, name: str, email: str, password: str) -> AuthResult:
        return await self.client.register(name=name, email=email, password=password)

    async def restore_session(self) -> UserPublic | None:
        """Resume the persisted session if the server still accepts its token."""
        if not self.client.session.restore():
            return None
        try:
            user = await self.client.me()
        except ClientError as e:
            logger.info("Stored session rejected: %s", e.message)
            self.client.session.clear()
            return None
        self.client.session.update_user(user)
        return user

    async def logout(self) -> None:
        """End the session and drop every local reminder."""
        self.client.logout()
        await self.reminders.clear_all()

    async def create_task(self, data: TaskCreate) -> Task:
        task = await self.client.create_task(data)
        await self.reminders.schedule_task_reminders(task)
        return task

    async def update_task(self, task_id: str, changes: TaskUpdate) -> Task:
        task = await self.client.update_task(task_id, changes)
        await self.reminders.schedule_task_reminders(task)
        return task

    async def complete_task(self, task_id: str) -> Task:
        task = await self.client.complete_task(task_id)
        await self.reminders.cancel_task_reminders(task.id)
        return task

    async def delete_task(self, task_id: str) -> None:
        await self.client.delete_task(task_id)
        await self.reminders.cancel_task_reminders(task_id)

    async def refresh_reminders(
        self,
        *,
        status: TaskStatus | None = None,
        priority: TaskPriority | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = Constants.DEFAULT_PAGE_LIMIT,
    ) -> TaskPage:
        """List tasks and run the upcoming/overdue reminder sync over them."""
        task_page = await self.client.list_tasks(
            status=status,
            priority=priority,
            search=search,
            page=page,
            limit=limit,
        )
        await self.reminders.sync_upcoming(task_page.tasks)
        return task_page
