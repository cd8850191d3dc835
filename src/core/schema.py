"""SQLite schema management (code-first approach)."""

import logging

from src.core import db_client


logger = logging.getLogger(__name__)


# Central list of all collections in the schema, in dependency order
COLLECTIONS = [
    "users",
    "tasks",
]


_TABLES: dict[str, str] = {
    "users": """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL,
            password_hash TEXT NOT NULL,
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
    "tasks": """
        CREATE TABLE IF NOT EXISTS tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL CHECK (length(title) BETWEEN 1 AND 200),
            description TEXT NOT NULL CHECK (length(description) BETWEEN 1 AND 1000),
            status TEXT NOT NULL DEFAULT 'pendente'
                CHECK (status IN ('pendente', 'em-andamento', 'concluida')),
            priority TEXT NOT NULL DEFAULT 'media'
                CHECK (priority IN ('baixa', 'media', 'alta')),
            creator INTEGER NOT NULL REFERENCES users (id),
            responsible INTEGER REFERENCES users (id),
            due_date TEXT,
            completed_at TEXT,
            tags TEXT NOT NULL DEFAULT '[]',
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
}


_INDEXES: dict[str, list[str]] = {
    "users": [
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email ON users (email)",
    ],
    "tasks": [
        "CREATE INDEX IF NOT EXISTS idx_tasks_creator ON tasks (creator)",
        "CREATE INDEX IF NOT EXISTS idx_tasks_responsible ON tasks (responsible)",
        "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks (status)",
        "CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks (due_date)",
        "CREATE INDEX IF NOT EXISTS idx_tasks_created ON tasks (created)",
    ],
}


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes (idempotent).

    Args:
        db_path: Optional database path. If not provided, uses settings.sqlite_db_path.
    """
    logger.info("Starting SQLite schema sync...")

    conn = await db_client.get_connection(db_path=db_path)

    for collection_name in COLLECTIONS:
        await conn.execute(_TABLES[collection_name])
        for index_sql in _INDEXES.get(collection_name, []):
            await conn.execute(index_sql)
        logger.info("Ensured collection: %s", collection_name)

    await conn.commit()
    logger.info("SQLite schema sync complete")
