"""Update models for database operations."""

from datetime import datetime

from pydantic import Field, field_validator

from src.domain.base import CamelModel
from src.domain.create_models import (
    blank_to_none,
    clean_tags,
    validate_description,
    validate_password_length,
    validate_title,
)
from src.domain.task import TaskPriority, TaskStatus, ensure_utc
from src.domain.user import normalize_email, normalize_name


class TaskUpdate(CamelModel):
    """Partial task update. Only fields present in the request are applied.

    Presence is read from `model_fields_set`, so an explicit null for
    `responsible` or `dueDate` clears the value.
    """

    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    responsible: str | None = None
    due_date: datetime | None = None
    tags: list[str] | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        return validate_title(v) if v is not None else None

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        return validate_description(v) if v is not None else None

    @field_validator("responsible", mode="before")
    @classmethod
    def validate_responsible(cls, v: str | None) -> str | None:
        return blank_to_none(v)

    @field_validator("due_date")
    @classmethod
    def validate_due_date(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        return clean_tags(v) if v is not None else None

    def provided_changes(self) -> dict:
        """Fields explicitly sent by the caller, keyed by field name."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class ProfileUpdate(CamelModel):
    """Profile update payload; both fields are required."""

    name: str
    email: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return normalize_name(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class PasswordChange(CamelModel):
    """Password change payload."""

    current_password: str = Field(..., description="Current password")
    new_password: str = Field(..., description="New password")

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return validate_password_length(v)
