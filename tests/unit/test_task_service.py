"""Unit tests for task_service module."""

from datetime import UTC, datetime, timedelta

import pytest

from src.core.db_client import RecordNotFoundError
from src.core.errors import ForbiddenError, InvalidReferenceError, NotFoundError, UnauthorizedError
from src.domain.create_models import TaskCreate
from src.domain.task import TaskPriority, TaskStatus
from src.domain.update_models import TaskUpdate
from src.services import task_service
from src.services.task_service import TaskFilters


async def _create(user, **overrides):
    data = {"title": "Write report", "description": "Quarterly numbers", **overrides}
    return await task_service.create_task(data=TaskCreate(**data), acting_user_id=user.id)


@pytest.mark.unit
class TestCreateTask:
    """Tests for create_task function."""

    async def test_create_applies_defaults(self, alice):
        """Test a new task is pendente/media, owned by the caller."""
        task = await _create(alice)

        assert task.status == TaskStatus.PENDING
        assert task.priority == TaskPriority.MEDIUM
        assert task.creator.id == alice.id
        assert task.creator.name == "Alice"
        assert task.responsible is None
        assert task.completed_at is None
        assert task.tags == []

    async def test_create_expands_responsible(self, alice, bob):
        """Test the responsible is returned as {id, name, email}."""
        task = await _create(alice, responsible=bob.id)

        assert task.responsible is not None
        assert task.responsible.id == bob.id
        assert task.responsible.email == "bob@example.com"

    async def test_create_with_unknown_responsible_fails(self, alice):
        """Test a responsible that does not exist is rejected."""
        with pytest.raises(InvalidReferenceError):
            await _create(alice, responsible="9999")

    async def test_create_as_completed_stamps_completed_at(self, alice):
        """Test creating directly as concluida stamps completedAt."""
        task = await _create(alice, status="concluida")

        assert task.status == TaskStatus.COMPLETED
        assert task.completed_at is not None

    async def test_create_requires_acting_user(self, patched_db):
        """Test a missing acting user is unauthorized."""
        with pytest.raises(UnauthorizedError):
            await task_service.create_task(
                data=TaskCreate(title="x", description="y"),
                acting_user_id=None,
            )


@pytest.mark.unit
class TestListTasks:
    """Tests for list_tasks function."""

    async def test_lists_only_visible_tasks_newest_first(self, alice, bob, carol):
        """Test the caller sees tasks they created or are responsible for."""
        own = await _create(alice, title="Own task")
        delegated = await _create(bob, title="Delegated to Alice", responsible=alice.id)
        await _create(carol, title="Someone else's task")

        page = await task_service.list_tasks(filters=TaskFilters(), acting_user_id=alice.id)

        assert page.total == 2
        assert [task.id for task in page.tasks] == [delegated.id, own.id]

    async def test_filters_by_status_and_priority(self, alice):
        """Test equality filters narrow the result."""
        await _create(alice, title="Urgent", priority="alta")
        await _create(alice, title="Done", priority="alta", status="concluida")
        await _create(alice, title="Later", priority="baixa")

        page = await task_service.list_tasks(
            filters=TaskFilters(status=TaskStatus.PENDING, priority=TaskPriority.HIGH),
            acting_user_id=alice.id,
        )

        assert [task.title for task in page.tasks] == ["Urgent"]

    async def test_filters_by_responsible(self, alice, bob):
        """Test the responsible filter keeps tasks delegated to that user."""
        await _create(alice, title="Mine")
        await _create(alice, title="For Bob", responsible=bob.id)

        page = await task_service.list_tasks(filters=TaskFilters(responsible=bob.id), acting_user_id=alice.id)

        assert [task.title for task in page.tasks] == ["For Bob"]

    async def test_search_matches_title_or_description_case_insensitively(self, alice):
        """Test search looks for a substring in title or description."""
        await _create(alice, title="Buy MILK", description="Groceries")
        await _create(alice, title="Call plumber", description="Fix the milk-stained sink")
        await _create(alice, title="Pay rent", description="Monthly")

        page = await task_service.list_tasks(filters=TaskFilters(search="milk"), acting_user_id=alice.id)

        assert sorted(task.title for task in page.tasks) == ["Buy MILK", "Call plumber"]

    async def test_search_with_quotes_does_not_break_filter(self, alice):
        """Test search terms containing quotes are treated as text."""
        await _create(alice, title='Read "Dune"')

        page = await task_service.list_tasks(filters=TaskFilters(search='"Dune"'), acting_user_id=alice.id)

        assert page.total == 1

    async def test_pagination_reports_total_pages(self, alice):
        """Test page size and page count."""
        for i in range(5):
            await _create(alice, title=f"Task {i}")

        page = await task_service.list_tasks(filters=TaskFilters(page=2, limit=2), acting_user_id=alice.id)

        assert page.total == 5
        assert page.total_pages == 3
        assert page.current_page == 2
        assert [task.title for task in page.tasks] == ["Task 2", "Task 1"]

    async def test_empty_result_has_zero_pages(self, alice):
        page = await task_service.list_tasks(filters=TaskFilters(), acting_user_id=alice.id)

        assert page.total == 0
        assert page.total_pages == 0
        assert page.tasks == []


@pytest.mark.unit
class TestGetTask:
    """Tests for get_task function."""

    async def test_responsible_can_read(self, alice, bob):
        task = await _create(alice, responsible=bob.id)

        fetched = await task_service.get_task(task_id=task.id, acting_user_id=bob.id)

        assert fetched.id == task.id

    async def test_invisible_task_is_not_found(self, alice, carol):
        """Test a task the caller cannot see looks the same as a missing one."""
        task = await _create(alice)

        with pytest.raises(NotFoundError):
            await task_service.get_task(task_id=task.id, acting_user_id=carol.id)

    async def test_malformed_id_is_not_found(self, alice):
        with pytest.raises(NotFoundError):
            await task_service.get_task(task_id="not-an-id", acting_user_id=alice.id)


@pytest.mark.unit
class TestUpdateTask:
    """Tests for update_task function."""

    async def test_creator_updates_any_field(self, alice, bob):
        task = await _create(alice)
        due = datetime(2030, 1, 1, 12, 0, tzinfo=UTC)

        updated = await task_service.update_task(
            task_id=task.id,
            changes=TaskUpdate(title="New title", responsible=bob.id, due_date=due, tags=["home"]),
            acting_user_id=alice.id,
        )

        assert updated.title == "New title"
        assert updated.responsible is not None
        assert updated.responsible.id == bob.id
        assert updated.due_date == due
        assert updated.tags == ["home"]

    async def test_creator_clears_responsible_and_due_date_with_null(self, alice, bob):
        """Test explicit nulls clear optional fields."""
        task = await _create(alice, responsible=bob.id, due_date=datetime(2030, 1, 1, tzinfo=UTC))

        updated = await task_service.update_task(
            task_id=task.id,
            changes=TaskUpdate.model_validate({"responsible": None, "dueDate": None}),
            acting_user_id=alice.id,
        )

        assert updated.responsible is None
        assert updated.due_date is None

    async def test_responsible_updates_status_and_priority(self, alice, bob):
        task = await _create(alice, responsible=bob.id)

        updated = await task_service.update_task(
            task_id=task.id,
            changes=TaskUpdate(status=TaskStatus.IN_PROGRESS, priority=TaskPriority.HIGH),
            acting_user_id=bob.id,
        )

        assert updated.status == TaskStatus.IN_PROGRESS
        assert updated.priority == TaskPriority.HIGH

    async def test_responsible_with_creator_only_field_is_forbidden_and_nothing_applied(
        self, alice, bob, patched_db
    ):
        """Test the whole update is rejected, including its valid fields."""
        task = await _create(alice, responsible=bob.id)

        with pytest.raises(ForbiddenError):
            await task_service.update_task(
                task_id=task.id,
                changes=TaskUpdate(title="Hijacked", status=TaskStatus.COMPLETED),
                acting_user_id=bob.id,
            )

        stored = await patched_db.get_record("tasks", task.id)
        assert stored["title"] == "Write report"
        assert stored["status"] == "pendente"
        assert stored["completed_at"] is None

    async def test_responsible_sending_null_creator_field_is_forbidden(self, alice, bob):
        """Test presence, not value, decides the rejection."""
        task = await _create(alice, responsible=bob.id)

        with pytest.raises(ForbiddenError):
            await task_service.update_task(
                task_id=task.id,
                changes=TaskUpdate.model_validate({"dueDate": None}),
                acting_user_id=bob.id,
            )

    async def test_responsible_tags_are_ignored(self, alice, bob):
        task = await _create(alice, responsible=bob.id, tags=["work"])

        updated = await task_service.update_task(
            task_id=task.id,
            changes=TaskUpdate(tags=["hacked"], priority=TaskPriority.LOW),
            acting_user_id=bob.id,
        )

        assert updated.tags == ["work"]
        assert updated.priority == TaskPriority.LOW

    async def test_unknown_new_responsible_fails(self, alice):
        task = await _create(alice)

        with pytest.raises(InvalidReferenceError):
            await task_service.update_task(
                task_id=task.id,
                changes=TaskUpdate(responsible="9999"),
                acting_user_id=alice.id,
            )

    async def test_invisible_task_is_not_found(self, alice, carol):
        task = await _create(alice)

        with pytest.raises(NotFoundError):
            await task_service.update_task(
                task_id=task.id,
                changes=TaskUpdate(status=TaskStatus.COMPLETED),
                acting_user_id=carol.id,
            )

    async def test_status_change_to_completed_stamps_completed_at(self, alice):
        task = await _create(alice)
        now = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)

        updated = await task_service.update_task(
            task_id=task.id,
            changes=TaskUpdate(status=TaskStatus.COMPLETED),
            acting_user_id=alice.id,
            now=now,
        )

        assert updated.completed_at == now

    async def test_reopening_keeps_completed_at(self, alice):
        """Test completedAt is never cleared once stamped."""
        task = await _create(alice, status="concluida")

        updated = await task_service.update_task(
            task_id=task.id,
            changes=TaskUpdate(status=TaskStatus.PENDING),
            acting_user_id=alice.id,
        )

        assert updated.status == TaskStatus.PENDING
        assert updated.completed_at == task.completed_at

    async def test_empty_update_returns_task_unchanged(self, alice):
        task = await _create(alice)

        updated = await task_service.update_task(task_id=task.id, changes=TaskUpdate(), acting_user_id=alice.id)

        assert updated == task


@pytest.mark.unit
class TestCompleteTask:
    """Tests for complete_task function."""

    async def test_responsible_completes(self, alice, bob):
        task = await _create(alice, responsible=bob.id)

        completed = await task_service.complete_task(task_id=task.id, acting_user_id=bob.id)

        assert completed.status == TaskStatus.COMPLETED
        assert completed.completed_at is not None

    async def test_completing_twice_keeps_completed_at(self, alice):
        task = await _create(alice)
        first_time = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)

        first = await task_service.complete_task(task_id=task.id, acting_user_id=alice.id, now=first_time)
        second = await task_service.complete_task(
            task_id=task.id,
            acting_user_id=alice.id,
            now=first_time + timedelta(hours=3),
        )

        assert first.completed_at == first_time
        assert second.completed_at == first_time

    async def test_completed_task_is_not_overdue(self, alice):
        task = await _create(alice, due_date=datetime(2020, 1, 1, tzinfo=UTC))
        assert task.is_overdue is True

        completed = await task_service.complete_task(task_id=task.id, acting_user_id=alice.id)

        assert completed.is_overdue is False


@pytest.mark.unit
class TestDeleteTask:
    """Tests for delete_task function."""

    async def test_creator_delete_removes_task_for_everyone(self, alice, bob):
        task = await _create(alice, responsible=bob.id)

        await task_service.delete_task(task_id=task.id, acting_user_id=alice.id)

        for user in (alice, bob):
            page = await task_service.list_tasks(filters=TaskFilters(), acting_user_id=user.id)
            assert page.total == 0

    async def test_responsible_cannot_delete(self, alice, bob):
        task = await _create(alice, responsible=bob.id)

        with pytest.raises(NotFoundError, match="permission"):
            await task_service.delete_task(task_id=task.id, acting_user_id=bob.id)

        still_there = await task_service.get_task(task_id=task.id, acting_user_id=alice.id)
        assert still_there.id == task.id

    async def test_missing_task_is_not_found(self, alice):
        with pytest.raises(NotFoundError):
            await task_service.delete_task(task_id="12345", acting_user_id=alice.id)


@pytest.mark.unit
class TestConcurrentRemoval:
    """A task removed between the lookup and the write reads as not found."""

    async def test_update_after_removal(self, alice, patched_db, monkeypatch):
        task = await _create(alice)

        async def vanished(*args, **kwargs):
            raise RecordNotFoundError(f"Record not found in tasks: {task.id}")

        monkeypatch.setattr("src.core.db_client.update_record", vanished)

        with pytest.raises(NotFoundError):
            await task_service.update_task(
                task_id=task.id, changes=TaskUpdate(title="New"), acting_user_id=alice.id
            )

    async def test_delete_after_removal(self, alice, patched_db, monkeypatch):
        task = await _create(alice)

        async def vanished(*args, **kwargs):
            raise RecordNotFoundError(f"Record not found in tasks: {task.id}")

        monkeypatch.setattr("src.core.db_client.delete_record", vanished)

        with pytest.raises(NotFoundError, match="permission"):
            await task_service.delete_task(task_id=task.id, acting_user_id=alice.id)
