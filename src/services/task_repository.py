"""Task persistence over db_client.

The tasks collection is the single source of truth. Records are raw
dictionaries; `expand_users` turns them into `Task` objects with creator and
responsible populated as `{id, name, email}`. Callers choose explicitly
whether they need the expanded form.
"""

import logging
from typing import Any

from src.core import db_client
from src.core.config import Constants
from src.core.db_client import sanitize_param
from src.domain.task import Task
from src.domain.user import UserPublic


logger = logging.getLogger(__name__)

COLLECTION = "tasks"
USERS_COLLECTION = "users"
DEFAULT_SORT = "-created"


def id_filter(task_id: str) -> str:
    return f'id = "{sanitize_param(task_id)}"'


def combine_filters(*filters: str) -> str:
    """AND together the non-empty filter expressions."""
    return " && ".join(f for f in filters if f)


async def _load_user_summaries(user_ids: set[str]) -> dict[str, UserPublic]:
    if not user_ids:
        return {}

    clauses = " || ".join(f'id = "{sanitize_param(user_id)}"' for user_id in sorted(user_ids))
    records = await db_client.list_records(
        collection=USERS_COLLECTION,
        filter_query=f"({clauses})",
        per_page=len(user_ids),
    )
    return {
        record["id"]: UserPublic(id=record["id"], name=record["name"], email=record["email"]) for record in records
    }


def to_task(record: dict[str, Any], users: dict[str, UserPublic]) -> Task:
    """Build a Task from a raw record and a map of user summaries."""
    creator_id = str(record["creator"])
    responsible_id = str(record["responsible"]) if record.get("responsible") else None

    creator = users.get(creator_id)
    if creator is None:
        logger.warning("Creator not found while expanding task", extra={"task_id": record["id"], "user_id": creator_id})
        creator = UserPublic(id=creator_id, name="", email="")

    responsible = None
    if responsible_id:
        responsible = users.get(responsible_id) or UserPublic(id=responsible_id, name="", email="")

    return Task(
        id=str(record["id"]),
        title=record["title"],
        description=record["description"],
        status=record["status"],
        priority=record["priority"],
        creator=creator,
        responsible=responsible,
        due_date=record.get("due_date"),
        completed_at=record.get("completed_at"),
        tags=record.get("tags") or [],
        created_at=record["created"],
        updated_at=record["updated"],
    )


async def expand_users(records: list[dict[str, Any]]) -> list[Task]:
    """Populate creator and responsible on each record with one users query."""
    user_ids: set[str] = set()
    for record in records:
        user_ids.add(str(record["creator"]))
        if record.get("responsible"):
            user_ids.add(str(record["responsible"]))

    users = await _load_user_summaries(user_ids)
    return [to_task(record, users) for record in records]


async def insert_task(data: dict[str, Any]) -> Task:
    """Insert a task record and return it expanded."""
    record = await db_client.create_record(collection=COLLECTION, data=data)
    (task,) = await expand_users([record])
    return task


async def find_task_record(task_id: str, *, filter_query: str = "") -> dict[str, Any] | None:
    """Return the raw record for a task id that also matches the filter, or None."""
    return await db_client.get_first_record(
        collection=COLLECTION,
        filter_query=combine_filters(id_filter(task_id), filter_query),
    )


async def find_task(task_id: str, *, filter_query: str = "") -> Task | None:
    """Read with expand: the task matching id and filter, or None."""
    record = await find_task_record(task_id, filter_query=filter_query)
    if record is None:
        return None
    (task,) = await expand_users([record])
    return task


async def list_tasks(*, filter_query: str, page: int, per_page: int, sort: str = DEFAULT_SORT) -> list[Task]:
    """Read with expand: one page of tasks matching the filter."""
    records = await db_client.list_records(
        collection=COLLECTION,
        filter_query=filter_query,
        page=page,
        per_page=per_page,
        sort=sort,
    )
    return await expand_users(records)


async def count_tasks(*, filter_query: str) -> int:
    return await db_client.count_records(collection=COLLECTION, filter_query=filter_query)


async def fetch_all_records(*, filter_query: str) -> list[dict[str, Any]]:
    """Every raw record matching the filter, walking through all pages."""
    per_page = Constants.DEFAULT_PER_PAGE_LIMIT
    page = 1
    records: list[dict[str, Any]] = []

    while True:
        batch = await db_client.list_records(
            collection=COLLECTION,
            filter_query=filter_query,
            page=page,
            per_page=per_page,
            sort=DEFAULT_SORT,
        )
        records.extend(batch)
        if len(batch) < per_page:
            return records
        page += 1


async def update_task(task_id: str, data: dict[str, Any]) -> Task:
    """Apply a partial update and return the task expanded."""
    record = await db_client.update_record(collection=COLLECTION, record_id=task_id, data=data)
    (task,) = await expand_users([record])
    return task


async def delete_task(task_id: str) -> None:
    await db_client.delete_record(collection=COLLECTION, record_id=task_id)
