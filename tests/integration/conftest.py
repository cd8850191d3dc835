"""Fixtures for integration tests against a real SQLite file."""

import httpx
import pytest

from src.client.api_client import TaskAPIClient
from src.client.notifications import ReminderScheduler
from src.client.reminder_store import ReminderStore
from src.client.session import CredentialStore, SessionContext
from src.client.workflow import TaskWorkflow
from src.core.db_client import close_connection, init_db
from src.main import app
from tests.unit.mocks import FakeNotificationBackend


@pytest.fixture
async def sqlite_db(tmp_settings):
    """Fresh schema in a temporary database, closed after the test."""
    await init_db()
    yield tmp_settings.sqlite_db_path
    await close_connection()


@pytest.fixture
def make_client(sqlite_db, tmp_path):
    """Factory for API clients talking to the app in-process, each with its own session."""

    def _make_client(name: str = "client") -> TaskAPIClient:
        session = SessionContext(CredentialStore(tmp_path / f"{name}-session.json"))
        return TaskAPIClient(session, base_url="http://testserver", transport=httpx.ASGITransport(app=app))

    return _make_client


@pytest.fixture
async def reminder_store(tmp_settings):
    store = ReminderStore()
    yield store
    await store.close()


@pytest.fixture
def backend() -> FakeNotificationBackend:
    return FakeNotificationBackend()


@pytest.fixture
def workflow(make_client, backend, reminder_store) -> TaskWorkflow:
    return TaskWorkflow(make_client("workflow"), ReminderScheduler(backend, reminder_store))


@pytest.fixture
async def http(sqlite_db):
    """Raw HTTP client; unhandled app errors come back as 500 responses."""
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
