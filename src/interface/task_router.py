"""Task endpoints. Every route requires a bearer token."""

import logging
from typing import Annotated

from fastapi import APIRouter, Query, status

from src.core.config import Constants
from src.domain.create_models import TaskCreate
from src.domain.task import Task, TaskPriority, TaskStatus
from src.domain.update_models import TaskUpdate
from src.interface.auth import CurrentUser
from src.models.service_models import DashboardStats, MessageResponse, TaskPage, TaskResponse
from src.services import stats_service, task_service
from src.services.task_service import TaskFilters


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=TaskPage)
async def list_tasks(
    user: CurrentUser,
    task_status: Annotated[TaskStatus | None, Query(alias="status")] = None,
    priority: TaskPriority | None = None,
    responsible: str | None = None,
    search: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=Constants.MAX_PAGE_LIMIT)] = Constants.DEFAULT_PAGE_LIMIT,
) -> TaskPage:
    """List visible tasks, newest first, with optional filters and search."""
    filters = TaskFilters(
        status=task_status,
        priority=priority,
        responsible=responsible,
        search=search,
        page=page,
        limit=limit,
    )
    return await task_service.list_tasks(filters=filters, acting_user_id=user.id)


# Declared before /{task_id} so "stats" is not captured as an id
@router.get("/stats/dashboard", response_model=DashboardStats)
async def dashboard_stats(user: CurrentUser) -> DashboardStats:
    return await stats_service.get_dashboard_stats(user_id=user.id)


@router.get("/{task_id}", response_model=Task)
async def get_task(task_id: str, user: CurrentUser) -> Task:
    return await task_service.get_task(task_id=task_id, acting_user_id=user.id)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=TaskResponse)
async def create_task(payload: TaskCreate, user: CurrentUser) -> TaskResponse:
    task = await task_service.create_task(data=payload, acting_user_id=user.id)
    return TaskResponse(message="Task created successfully", task=task)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(task_id: str, payload: TaskUpdate, user: CurrentUser) -> TaskResponse:
    """Partial update; only fields present in the body are applied."""
    task = await task_service.update_task(task_id=task_id, changes=payload, acting_user_id=user.id)
    return TaskResponse(message="Task updated successfully", task=task)


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(task_id: str, user: CurrentUser) -> MessageResponse:
    await task_service.delete_task(task_id=task_id, acting_user_id=user.id)
    return MessageResponse(message="Task deleted successfully")


@router.post("/{task_id}/complete", response_model=TaskResponse)
async def complete_task(task_id: str, user: CurrentUser) -> TaskResponse:
    task = await task_service.complete_task(task_id=task_id, acting_user_id=user.id)
    return TaskResponse(message="Task marked as completed", task=task)
