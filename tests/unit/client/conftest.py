"""Fixtures for client-side tests."""

import pytest

from src.client.notifications import ReminderScheduler
from src.client.reminder_store import ReminderStore
from tests.unit.mocks import FakeClock, FakeNotificationBackend


@pytest.fixture
def fake_backend() -> FakeNotificationBackend:
    return FakeNotificationBackend()


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
async def reminder_store():
    store = ReminderStore(":memory:")
    yield store
    await store.close()


@pytest.fixture
def reminder_scheduler(fake_backend, reminder_store, clock) -> ReminderScheduler:
    return ReminderScheduler(fake_backend, reminder_store, timezone="UTC", clock=clock)
