"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries into typed objects with validation. They double as the API's
response bodies, serialized with camelCase keys.
"""

from pydantic import Field

from src.domain.base import CamelModel
from src.domain.task import Task, TaskStatus
from src.domain.user import UserPublic


class AuthResult(CamelModel):
    """Token and public profile returned by register and login."""

    token: str
    user: UserPublic


class MessageResponse(CamelModel):
    """Plain acknowledgement."""

    message: str


class TaskResponse(CamelModel):
    """Acknowledgement carrying the affected task."""

    message: str
    task: Task


class ProfileResponse(CamelModel):
    """Acknowledgement carrying the updated profile."""

    message: str
    user: UserPublic


class TaskPage(CamelModel):
    """One page of visible tasks."""

    tasks: list[Task]
    total_pages: int
    current_page: int
    total: int


class StatusCount(CamelModel):
    """Number of visible tasks in one status."""

    status: TaskStatus
    count: int


class DashboardStats(CamelModel):
    """Dashboard summary over the caller's visible tasks."""

    status_stats: list[StatusCount]
    overdue_tasks: int
    total_tasks: int


class UserStats(CamelModel):
    """Completion statistics over the caller's visible tasks."""

    total_tasks: int
    completed_tasks: int
    pending_tasks: int = Field(..., description="Tasks in pendente or em-andamento")
    overdue_tasks: int
    completion_rate: int = Field(..., description="Percentage of completed tasks, 0 when there are none")
    created_this_month: int
    status_counts: dict[str, int]
