"""Persistent mapping from (task, reminder type) to scheduled reminder ids."""

import asyncio
import logging
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite

from src.core.config import settings
from src.domain.task import ReminderType


logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"

_CREATE_TABLE = """
    CREATE TABLE IF NOT EXISTS reminders (
        task_id TEXT NOT NULL,
        reminder_type TEXT NOT NULL,
        reminder_id TEXT NOT NULL,
        fire_at TEXT,
        created TEXT NOT NULL,
        PRIMARY KEY (task_id, reminder_type)
    )
"""


class ReminderStore:
    """SQLite-backed bookkeeping for scheduled reminders.

    Holds at most one reminder id per (task_id, reminder_type). Pass
    ":memory:" as the path for a throwaway store.
    """

    def __init__(self, db_path: str | None = None) -> None:
        self.db_path = db_path or settings.reminder_db_path
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def _connection(self) -> aiosqlite.Connection:
        async with self._lock:
            if self._conn is None:
                if self.db_path != IN_MEMORY:
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                self._conn = await aiosqlite.connect(self.db_path)
                await self._conn.execute(_CREATE_TABLE)
                await self._conn.commit()
                logger.debug("Opened reminder store", extra={"db_path": self.db_path})
            return self._conn

    async def add(
        self,
        task_id: str,
        reminder_type: ReminderType,
        reminder_id: str,
        fire_at: datetime | None = None,
    ) -> None:
        """Record a reminder id, replacing any id already held for the pair."""
        conn = await self._connection()
        await conn.execute(
            "INSERT OR REPLACE INTO reminders (task_id, reminder_type, reminder_id, fire_at, created) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                task_id,
                reminder_type.value,
                reminder_id,
                fire_at.astimezone(UTC).isoformat() if fire_at else None,
                datetime.now(UTC).isoformat(),
            ),
        )
        await conn.commit()

    async def get(self, task_id: str, reminder_type: ReminderType) -> str | None:
        conn = await self._connection()
        async with conn.execute(
            "SELECT reminder_id FROM reminders WHERE task_id = ? AND reminder_type = ?",
            (task_id, reminder_type.value),
        ) as cursor:
            row = await cursor.fetchone()
        return row[0] if row else None

    async def get_ids(self, task_id: str) -> dict[ReminderType, str]:
        """All reminder ids held for a task, keyed by type."""
        conn = await self._connection()
        async with conn.execute(
            "SELECT reminder_type, reminder_id FROM reminders WHERE task_id = ?",
            (task_id,),
        ) as cursor:
            rows = await cursor.fetchall()
        return {ReminderType(reminder_type): reminder_id for reminder_type, reminder_id in rows}

    async def all(self) -> list[tuple[str, ReminderType, str]]:
        """Every tracked (task_id, reminder_type, reminder_id)."""
        conn = await self._connection()
        async with conn.execute(
            "SELECT task_id, reminder_type, reminder_id FROM reminders ORDER BY task_id, reminder_type"
        ) as cursor:
            rows = await cursor.fetchall()
        return [(task_id, ReminderType(reminder_type), reminder_id) for task_id, reminder_type, reminder_id in rows]

    async def remove(self, task_id: str, reminder_type: ReminderType) -> None:
        conn = await self._connection()
        await conn.execute(
            "DELETE FROM reminders WHERE task_id = ? AND reminder_type = ?",
            (task_id, reminder_type.value),
        )
        await conn.commit()

    async def remove_task(self, task_id: str) -> None:
        conn = await self._connection()
        await conn.execute("DELETE FROM reminders WHERE task_id = ?", (task_id,))
        await conn.commit()

    async def clear(self) -> None:
        conn = await self._connection()
        await conn.execute("DELETE FROM reminders")
        await conn.commit()

    async def close(self) -> None:
        async with self._lock:
            if self._conn is not None:
                await self._conn.close()
                self._conn = None
