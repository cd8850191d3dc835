"""Tests for InMemoryDBClient, the test double for db_client."""

import pytest

from src.core.db_client import DatabaseError, RecordNotFoundError


@pytest.mark.unit
class TestInMemoryDBClient:
    """Test suite for InMemoryDBClient."""

    async def test_create_record(self, in_memory_db):
        record = await in_memory_db.create_record("users", {"name": "Test User", "email": "test@example.com"})

        assert record["id"] == "1"
        assert record["name"] == "Test User"
        assert "created" in record
        assert "updated" in record

    async def test_create_record_invalid_data(self, in_memory_db):
        with pytest.raises(DatabaseError):
            await in_memory_db.create_record("users", "not a dict")

    async def test_get_missing_record(self, in_memory_db):
        with pytest.raises(RecordNotFoundError):
            await in_memory_db.get_record("users", "42")

    async def test_update_bumps_updated(self, in_memory_db):
        record = await in_memory_db.create_record("tasks", {"title": "Old"})

        updated = await in_memory_db.update_record("tasks", record["id"], {"title": "New"})

        assert updated["title"] == "New"
        assert updated["updated"] > record["updated"]

    async def test_delete_record(self, in_memory_db):
        record = await in_memory_db.create_record("tasks", {"title": "Gone"})

        await in_memory_db.delete_record("tasks", record["id"])

        with pytest.raises(RecordNotFoundError):
            await in_memory_db.get_record("tasks", record["id"])

    async def test_filter_with_or_group(self, in_memory_db):
        await in_memory_db.create_record("tasks", {"creator": "1", "responsible": None})
        await in_memory_db.create_record("tasks", {"creator": "2", "responsible": "1"})
        await in_memory_db.create_record("tasks", {"creator": "2", "responsible": None})

        records = await in_memory_db.list_records("tasks", filter_query='(creator = "1" || responsible = "1")')

        assert [r["id"] for r in records] == ["1", "2"]

    async def test_like_is_case_insensitive(self, in_memory_db):
        await in_memory_db.create_record("tasks", {"title": "Buy MILK"})

        assert await in_memory_db.count_records("tasks", 'title ~ "milk"') == 1

    async def test_descending_sort_breaks_ties_by_id(self, in_memory_db):
        for title in ["a", "b", "c"]:
            await in_memory_db.create_record("tasks", {"title": title, "created": "2026-10-01T00:00:00+00:00"})

        records = await in_memory_db.list_records("tasks", sort="-created")

        assert [r["title"] for r in records] == ["c", "b", "a"]

    async def test_pagination(self, in_memory_db):
        for i in range(5):
            await in_memory_db.create_record("tasks", {"title": f"t{i}"})

        page = await in_memory_db.list_records("tasks", page=2, per_page=2)

        assert [r["title"] for r in page] == ["t2", "t3"]

    async def test_get_first_record(self, in_memory_db):
        await in_memory_db.create_record("users", {"email": "a@example.com"})

        assert (await in_memory_db.get_first_record("users", 'email = "a@example.com"'))["id"] == "1"
        assert await in_memory_db.get_first_record("users", 'email = "b@example.com"') is None
