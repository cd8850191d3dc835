"""User domain models."""

import re

from pydantic import BaseModel, Field

from src.core.config import Constants
from src.domain.base import CamelModel


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(value: str) -> str:
    """Trim and lower-case an email address, raising ValueError if malformed."""
    email = value.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email address")
    return email


def normalize_name(value: str) -> str:
    """Trim a display name, raising ValueError if empty or too long."""
    name = value.strip()
    if not name:
        raise ValueError("Name cannot be empty")
    if len(name) > Constants.NAME_MAX_LENGTH:
        raise ValueError(f"Name too long (max {Constants.NAME_MAX_LENGTH} characters)")
    return name


class User(BaseModel):
    """User record as stored, including the password hash."""

    id: str = Field(..., description="Unique user ID")
    name: str = Field(..., description="Display name of the user")
    email: str = Field(..., description="Unique, lower-cased email address")
    password_hash: str = Field(..., description="pbkdf2 password hash")


class UserPublic(CamelModel):
    """User projection safe to send over the wire and to embed in tasks."""

    id: str
    name: str
    email: str
