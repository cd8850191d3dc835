"""Pytest configuration and shared fixtures."""

import logging
from datetime import UTC, datetime

import pytest

from src.core.config import settings


logger = logging.getLogger(__name__)


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed reference time for clock-dependent logic."""
    return datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


@pytest.fixture
def tmp_settings(monkeypatch, tmp_path):
    """Point every on-disk path in settings at a temporary directory."""
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "tarefas.db"))
    monkeypatch.setattr(settings, "credentials_path", str(tmp_path / "session.json"))
    monkeypatch.setattr(settings, "reminder_db_path", str(tmp_path / "reminders.db"))
    monkeypatch.setattr(settings, "reminder_timezone", "UTC")
    return settings
