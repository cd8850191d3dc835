"""Task service: filtered listing and lifecycle operations gated by access control."""

import logging
import math
from datetime import UTC, datetime
from typing import Any

from pydantic import Field, field_validator

from src.core.config import Constants
from src.core.db_client import RecordNotFoundError, sanitize_param
from src.core.errors import InvalidReferenceError, NotFoundError, UnauthorizedError
from src.core.logging import log_with_user_context, span
from src.domain.base import CamelModel
from src.domain.create_models import TaskCreate
from src.domain.task import Task, TaskPriority, TaskStatus
from src.domain.update_models import TaskUpdate
from src.models.service_models import TaskPage
from src.services import access_control, task_repository, user_service


logger = logging.getLogger(__name__)

DELETE_NOT_FOUND_MESSAGE = "Task not found or you don't have permission to delete it"


class TaskFilters(CamelModel):
    """Query parameters for listing tasks."""

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    responsible: str | None = None
    search: str | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=Constants.DEFAULT_PAGE_LIMIT, ge=1, le=Constants.MAX_PAGE_LIMIT)

    @field_validator("responsible", "search", mode="before")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = str(v).strip()
        return v or None


def build_list_filter(filters: TaskFilters, acting_user_id: str) -> str:
    """Visibility predicate ANDed with the equality filters and the search group."""
    clauses = [access_control.visibility_filter(acting_user_id)]

    if filters.status:
        clauses.append(f'status = "{filters.status.value}"')
    if filters.priority:
        clauses.append(f'priority = "{filters.priority.value}"')
    if filters.responsible:
        clauses.append(f'responsible = "{sanitize_param(filters.responsible)}"')
    if filters.search:
        term = sanitize_param(filters.search)
        clauses.append(f'(title ~ "{term}" || description ~ "{term}")')

    return task_repository.combine_filters(*clauses)


def _require_user(acting_user_id: str | None) -> str:
    if not acting_user_id:
        raise UnauthorizedError
    return acting_user_id


async def _ensure_responsible_exists(responsible_id: str) -> None:
    if not await user_service.user_exists(user_id=responsible_id):
        logger.warning("Responsible user not found: %s", responsible_id)
        raise InvalidReferenceError


async def _find_visible(task_id: str, acting_user_id: str) -> Task:
    task = await task_repository.find_task(
        task_id,
        filter_query=access_control.visibility_filter(acting_user_id),
    )
    if task is None:
        raise NotFoundError
    return task


async def list_tasks(*, filters: TaskFilters, acting_user_id: str | None) -> TaskPage:
    """List the caller's visible tasks, newest first.

    Args:
        filters: Equality filters, search term and pagination
        acting_user_id: ID of the authenticated user

    Returns:
        TaskPage with the requested page, total count and page count

    Raises:
        UnauthorizedError: If no acting user was resolved
    """
    with span("task_service.list_tasks"):
        user_id = _require_user(acting_user_id)
        filter_query = build_list_filter(filters, user_id)

        total = await task_repository.count_tasks(filter_query=filter_query)
        tasks = await task_repository.list_tasks(
            filter_query=filter_query,
            page=filters.page,
            per_page=filters.limit,
        )

        return TaskPage(
            tasks=tasks,
            total_pages=math.ceil(total / filters.limit),
            current_page=filters.page,
            total=total,
        )


async def get_task(*, task_id: str, acting_user_id: str | None) -> Task:
    """Get one task visible to the caller.

    Raises:
        NotFoundError: If the task does not exist or is not visible to the caller
    """
    with span("task_service.get_task"):
        return await _find_visible(task_id, _require_user(acting_user_id))


async def create_task(*, data: TaskCreate, acting_user_id: str | None, now: datetime | None = None) -> Task:
    """Create a task owned by the caller.

    Raises:
        InvalidReferenceError: If the responsible user does not exist
    """
    with span("task_service.create_task"):
        user_id = _require_user(acting_user_id)

        if data.responsible:
            await _ensure_responsible_exists(data.responsible)

        record: dict[str, Any] = {
            "title": data.title,
            "description": data.description,
            "status": data.status.value,
            "priority": data.priority.value,
            "creator": user_id,
            "responsible": data.responsible,
            "due_date": data.due_date,
            "completed_at": None,
            "tags": data.tags,
        }
        if data.status == TaskStatus.COMPLETED:
            record["completed_at"] = now or datetime.now(UTC)

        task = await task_repository.insert_task(record)
        log_with_user_context(logger, "info", "Task created", user_id=user_id, task_id=task.id)
        return task


async def update_task(
    *,
    task_id: str,
    changes: TaskUpdate,
    acting_user_id: str | None,
    now: datetime | None = None,
) -> Task:
    """Apply a partial update as the caller.

    The update is all-or-nothing: a non-creator supplying any creator-only
    field gets ForbiddenError and nothing is written. completedAt is stamped
    only when status moves into concluida from another status.

    Raises:
        NotFoundError: If the task is not visible to the caller
        ForbiddenError: If a non-creator supplies creator-only fields
        InvalidReferenceError: If a new responsible does not exist
    """
    with span("task_service.update_task"):
        user_id = _require_user(acting_user_id)
        task = await _find_visible(task_id, user_id)

        permitted = access_control.filter_changes(user_id, task, changes.provided_changes())

        data: dict[str, Any] = {}
        for field in ("title", "description", "tags"):
            if permitted.get(field) is not None:
                data[field] = permitted[field]
        for field in ("status", "priority"):
            if permitted.get(field) is not None:
                data[field] = permitted[field].value

        if "responsible" in permitted:
            new_responsible = permitted["responsible"]
            current_responsible = task.responsible.id if task.responsible else None
            if new_responsible and new_responsible != current_responsible:
                await _ensure_responsible_exists(new_responsible)
            data["responsible"] = new_responsible

        if "due_date" in permitted:
            data["due_date"] = permitted["due_date"]

        if data.get("status") == TaskStatus.COMPLETED and task.status != TaskStatus.COMPLETED:
            data["completed_at"] = now or datetime.now(UTC)

        if not data:
            logger.debug("Update for task %s carried no changes", task_id)
            return task

        try:
            updated = await task_repository.update_task(task_id, data)
        except RecordNotFoundError as e:
            # Deleted between the visibility check and the write
            raise NotFoundError from e
        log_with_user_context(
            logger, "info", "Task updated", user_id=user_id, task_id=task_id, fields=sorted(data)
        )
        return updated


async def complete_task(*, task_id: str, acting_user_id: str | None, now: datetime | None = None) -> Task:
    """Mark a task as concluida. Calling it again leaves completedAt unchanged."""
    with span("task_service.complete_task"):
        return await update_task(
            task_id=task_id,
            changes=TaskUpdate(status=TaskStatus.COMPLETED),
            acting_user_id=acting_user_id,
            now=now,
        )


async def delete_task(*, task_id: str, acting_user_id: str | None) -> None:
    """Delete a task owned by the caller.

    Raises:
        NotFoundError: If the task does not exist or the caller is not its creator
    """
    with span("task_service.delete_task"):
        user_id = _require_user(acting_user_id)
        record = await task_repository.find_task_record(
            task_id,
            filter_query=f'creator = "{sanitize_param(user_id)}"',
        )
        if record is None:
            raise NotFoundError(DELETE_NOT_FOUND_MESSAGE)

        try:
            await task_repository.delete_task(task_id)
        except RecordNotFoundError as e:
            raise NotFoundError(DELETE_NOT_FOUND_MESSAGE) from e
        log_with_user_context(logger, "info", "Task deleted", user_id=user_id, task_id=task_id)
