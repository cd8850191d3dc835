"""Domain models and DTOs."""

from src.domain.create_models import LoginRequest, TaskCreate, UserCreate
from src.domain.task import ReminderType, Task, TaskPriority, TaskStatus
from src.domain.update_models import PasswordChange, ProfileUpdate, TaskUpdate
from src.domain.user import User, UserPublic


__all__ = [
    "LoginRequest",
    "PasswordChange",
    "ProfileUpdate",
    "ReminderType",
    "Task",
    "TaskCreate",
    "TaskPriority",
    "TaskStatus",
    "TaskUpdate",
    "User",
    "UserCreate",
    "UserPublic",
]
