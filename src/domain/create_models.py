"""Pydantic models for creating records."""

from datetime import datetime

from pydantic import Field, field_validator

from src.core.config import Constants
from src.domain.base import CamelModel
from src.domain.task import TaskPriority, TaskStatus, ensure_utc
from src.domain.user import normalize_email, normalize_name


def validate_title(value: str) -> str:
    """Trim a task title and enforce its bounds."""
    title = value.strip()
    if not title:
        raise ValueError("Title is required")
    if len(title) > Constants.TITLE_MAX_LENGTH:
        raise ValueError(f"Title too long (max {Constants.TITLE_MAX_LENGTH} characters)")
    return title


def validate_description(value: str) -> str:
    """Trim a task description and enforce its bounds."""
    description = value.strip()
    if not description:
        raise ValueError("Description is required")
    if len(description) > Constants.DESCRIPTION_MAX_LENGTH:
        raise ValueError(f"Description too long (max {Constants.DESCRIPTION_MAX_LENGTH} characters)")
    return description


def clean_tags(value: list[str] | None) -> list[str]:
    """Trim tags, dropping empties and duplicates while keeping order."""
    seen: dict[str, None] = {}
    for tag in value or []:
        cleaned = tag.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


def blank_to_none(value: str | None) -> str | None:
    """An empty responsible id means no responsible."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def validate_password_length(value: str) -> str:
    """Enforce the minimum password length."""
    if len(value) < Constants.MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {Constants.MIN_PASSWORD_LENGTH} characters")
    return value


class TaskCreate(CamelModel):
    """Payload for creating a task."""

    title: str = Field(..., description="Task title")
    description: str = Field(..., description="Detailed task description")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Initial status")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    responsible: str | None = Field(default=None, description="Delegate user ID")
    due_date: datetime | None = Field(default=None, description="Optional due date")
    tags: list[str] = Field(default_factory=list, description="Free-form tags")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return validate_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return validate_description(v)

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
    def validate_tags(cls, v: list[str] | None) -> list[str]:
        return clean_tags(v)


class UserCreate(CamelModel):
    """Registration payload."""

    name: str = Field(..., description="Display name of the user")
    email: str = Field(..., description="Email address, unique per account")
    password: str = Field(..., description="Plain-text password (hashed before storage)")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return normalize_name(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_length(v)


class LoginRequest(CamelModel):
    """Login payload. No format validation so bad input reads as bad credentials."""

    email: str
    password: str
