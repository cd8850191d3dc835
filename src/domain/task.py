"""Task domain models and enums."""

import math
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import Field, computed_field, field_validator

from src.domain.base import CamelModel
from src.domain.user import UserPublic


class TaskStatus(StrEnum):
    """Task lifecycle state."""

    PENDING = "pendente"
    IN_PROGRESS = "em-andamento"
    COMPLETED = "concluida"


class TaskPriority(StrEnum):
    """Task priority, independent from status."""

    LOW = "baixa"
    MEDIUM = "media"
    HIGH = "alta"


class ReminderType(StrEnum):
    """Kinds of local reminders tied to a task's due date."""

    DUE_SOON = "due_soon"
    DUE_TODAY = "due_today"
    OVERDUE = "overdue"


# Fields only the creator may change
CREATOR_ONLY_FIELDS = frozenset({"title", "description", "responsible", "due_date"})


def ensure_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC and normalise aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Task(CamelModel):
    """Task as returned by the API, with creator and responsible expanded."""

    id: str = Field(..., description="Unique task ID")
    title: str = Field(..., description="Task title")
    description: str = Field(..., description="Detailed task description")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Current lifecycle state")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    creator: UserPublic = Field(..., description="Owning user")
    responsible: UserPublic | None = Field(default=None, description="Optional delegate")
    due_date: datetime | None = Field(default=None, description="Optional due date (UTC)")
    completed_at: datetime | None = Field(default=None, description="When the task first became concluida")
    tags: list[str] = Field(default_factory=list, description="Free-form tags")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")
    updated_at: datetime = Field(..., description="Last update timestamp (UTC)")

    @field_validator("due_date", "completed_at", "created_at", "updated_at")
    @classmethod
    def validate_utc(cls, v: datetime | None) -> datetime | None:
        """Store every timestamp as an aware UTC datetime."""
        return ensure_utc(v)

    def is_overdue_at(self, now: datetime) -> bool:
        """Past its due date and not completed."""
        if self.due_date is None or self.status == TaskStatus.COMPLETED:
            return False
        return ensure_utc(now) > self.due_date

    def days_until_due_at(self, now: datetime) -> int | None:
        """Whole days until the due date, rounded up; negative once overdue."""
        if self.due_date is None:
            return None
        delta = self.due_date - ensure_utc(now)
        return math.ceil(delta.total_seconds() / 86400)

    @computed_field(alias="isOverdue")  # type: ignore[prop-decorator]
    @property
    def is_overdue(self) -> bool:
        return self.is_overdue_at(datetime.now(UTC))

    @computed_field(alias="daysUntilDue")  # type: ignore[prop-decorator]
    @property
    def days_until_due(self) -> int | None:
        return self.days_until_due_at(datetime.now(UTC))
