"""Pytest configuration and fixtures for unit tests."""

from collections.abc import Callable
from typing import Any

import pytest

from src.core.security import create_access_token, hash_password
from src.domain.user import UserPublic
from tests.unit.mocks import DEFAULT_PASSWORD, InMemoryDBClient


# Seed users share one precomputed hash
_DEFAULT_PASSWORD_HASH = hash_password(DEFAULT_PASSWORD)


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches src.core.db_client functions to use InMemoryDBClient."""
    monkeypatch.setattr("src.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("src.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("src.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("src.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("src.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("src.core.db_client.count_records", in_memory_db.count_records)
    monkeypatch.setattr("src.core.db_client.get_first_record", in_memory_db.get_first_record)

    return in_memory_db


@pytest.fixture
def make_user(patched_db) -> Callable[..., UserPublic]:
    """Factory seeding a user record whose password is DEFAULT_PASSWORD."""

    def _make_user(name: str, email: str | None = None) -> UserPublic:
        record = patched_db.insert(
            "users",
            {
                "name": name,
                "email": email or f"{name.lower()}@example.com",
                "password_hash": _DEFAULT_PASSWORD_HASH,
            },
        )
        return UserPublic(id=record["id"], name=record["name"], email=record["email"])

    return _make_user


@pytest.fixture
def alice(make_user) -> UserPublic:
    return make_user("Alice")


@pytest.fixture
def bob(make_user) -> UserPublic:
    return make_user("Bob")


@pytest.fixture
def carol(make_user) -> UserPublic:
    return make_user("Carol")


@pytest.fixture
def auth_headers() -> Callable[[UserPublic], dict[str, str]]:
    """Builds a bearer Authorization header for a seeded user."""

    def _auth_headers(user: UserPublic) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _auth_headers


@pytest.fixture
def sample_task_data() -> dict[str, Any]:
    """Returns sample task payload for testing."""
    return {
        "title": "Write report",
        "description": "Quarterly numbers for the team",
        "priority": "alta",
        "tags": ["work"],
    }
