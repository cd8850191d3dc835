"""SQLite database client wrapper with CRUD operations."""

import asyncio
import json
import logging
import re
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import settings


logger = logging.getLogger(__name__)

# (field, operator, raw value)
Comparison = tuple[str, str, str]

# Foreign key columns stored as INTEGER but exposed as strings
_FK_FIELDS = {"id", "creator", "responsible"}

# Columns stored as JSON text
_JSON_FIELDS = {"tags"}

# Row ids as exposed to callers: plain ASCII digits
_RECORD_ID_PATTERN = re.compile(r"[0-9]+")

_COMPARISON_PATTERN = re.compile(
    r"""^(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(?:"((?:[^"\\]|\\.)*)"|'((?:[^'\\]|\\.)*)')$""",
    re.DOTALL,
)


class DatabaseError(RuntimeError):
    """Raised when a database operation fails."""


class RecordNotFoundError(KeyError):
    """Raised when a record does not exist."""


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def is_record_id(value: object) -> bool:
    """True when value is an id string as assigned by create_record."""
    return isinstance(value, str) and _RECORD_ID_PATTERN.fullmatch(value) is not None


def _casefold(value: object) -> object:
    return value.casefold() if isinstance(value, str) else value


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding inside a double-quoted filter literal."""
    return str(value).replace("\\", "\\\\").replace('"', '\\"')


def _serialize_value(value: Any) -> Any:
    """Convert a Python value to something SQLite can store."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.isoformat()
    if isinstance(value, dict | list | tuple | set):
        return json.dumps(list(value) if isinstance(value, tuple | set) else value)
    return value


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer ID and foreign key fields to strings and decode JSON columns."""
    converted = record.copy()
    for key, value in converted.items():
        if isinstance(value, int) and not isinstance(value, bool) and (key in _FK_FIELDS or key.endswith("_id")):
            converted[key] = str(value)
        elif key in _JSON_FIELDS and isinstance(value, str):
            try:
                converted[key] = json.loads(value)
            except json.JSONDecodeError:
                logger.warning("Undecodable JSON column", extra={"field": key})
                converted[key] = []
    return converted


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _parse_value(value: str, *, is_like: bool = False) -> str | int | float | bool | None:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        return f"%{escaped}%"

    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)

    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    return value


def _get_sql_operator(op: str) -> str:
    """Map filter operator to SQL operator."""
    op_map = {
        "=": "=",
        "!=": "!=",
        ">": ">",
        "<": "<",
        ">=": ">=",
        "<=": "<=",
        "~": "LIKE",
    }
    sql_op = op_map.get(op)
    if not sql_op:
        msg = f"Unsupported operator: {op}"
        raise ValueError(msg)
    return sql_op


def _split_top_level(expression: str, separator: str) -> list[str]:
    """Split on a separator that is neither quoted nor parenthesised."""
    parts = []
    current = []
    paren_depth = 0
    quote: str | None = None
    i = 0

    while i < len(expression):
        char = expression[i]

        if quote:
            current.append(char)
            if char == "\\" and i + 1 < len(expression):
                current.append(expression[i + 1])
                i += 2
                continue
            if char == quote:
                quote = None
            i += 1
            continue

        if char in ("'", '"'):
            quote = char
        elif char == "(":
            paren_depth += 1
        elif char == ")":
            paren_depth -= 1
        elif paren_depth == 0 and expression.startswith(separator, i):
            parts.append("".join(current).strip())
            current = []
            i += len(separator)
            continue

        current.append(char)
        i += 1

    if quote or paren_depth != 0:
        msg = f"Invalid filter syntax: {expression}"
        raise ValueError(msg)

    if "".join(current).strip():
        parts.append("".join(current).strip())

    return parts


def _is_wrapped_group(part: str) -> bool:
    """True when the whole part is one parenthesised group."""
    if not (part.startswith("(") and part.endswith(")")):
        return False

    depth = 0
    quote: str | None = None
    escaped = False
    for index, char in enumerate(part):
        if quote:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            continue
        if char in ("'", '"'):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index == len(part) - 1
    return False


def _parse_single_comparison(comparison: str) -> Comparison:
    """Parse a single comparison expression into (field, operator, value)."""
    match = _COMPARISON_PATTERN.match(comparison.strip())
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    raw_value = match.group(3) if match.group(3) is not None else match.group(4)
    value = re.sub(r"\\(.)", r"\1", raw_value, flags=re.DOTALL)
    return match.group(1), match.group(2), value


def parse_filter_tree(filter_query: str) -> list[list[Comparison]]:
    """Parse filter syntax into AND-ed groups of OR-ed comparisons.

    Supports `field = "value"` (also !=, >, <, >=, <=, and ~ for a
    case-insensitive substring match), `&&` between conditions and
    parenthesised `||` groups. Quoted values may contain escaped quotes.
    """
    if not filter_query or not filter_query.strip():
        return []

    groups = []
    for raw_part in _split_top_level(filter_query, "&&"):
        part = raw_part.strip()
        if _is_wrapped_group(part):
            groups.append([_parse_single_comparison(p) for p in _split_top_level(part[1:-1], "||")])
        else:
            groups.append([_parse_single_comparison(part)])
    return groups


def parse_filter(filter_query: str) -> tuple[str, list[str | int | float | None]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list."""
    conditions = []
    params: list[str | int | float | None] = []

    for group in parse_filter_tree(filter_query):
        group_conditions = []
        for field, op, raw_value in group:
            sql_op = _get_sql_operator(op)
            if sql_op == "LIKE":
                # SQLite LIKE only folds ASCII, so both sides go through casefold()
                group_conditions.append(f"casefold({field}) LIKE ? ESCAPE '\\'")
                params.append(_parse_value(raw_value.casefold(), is_like=True))
            elif field in _FK_FIELDS:
                if is_record_id(raw_value):
                    group_conditions.append(f"{field} {sql_op} ?")
                    params.append(int(raw_value))
                else:
                    # Compared as text so "1.0" or "true" never equal row id 1
                    group_conditions.append(f"CAST({field} AS TEXT) {sql_op} ?")
                    params.append(raw_value)
            else:
                group_conditions.append(f"{field} {sql_op} ?")
                params.append(_parse_value(raw_value))

        if len(group_conditions) == 1:
            conditions.append(group_conditions[0])
        else:
            conditions.append(f"({' OR '.join(group_conditions)})")

    return " AND ".join(conditions), params


def _build_order_clause(sort: str) -> str:
    """Translate `-field` / `field [ASC|DESC]` sort specs into a safe ORDER BY clause."""
    if not sort:
        return "id ASC"

    clauses = []
    for raw_key in sort.split(","):
        key = raw_key.strip()
        if key.startswith("-"):
            key = f"{key[1:]} DESC"
        match = re.match(r"^([A-Za-z_][A-Za-z0-9_]*)\s*(ASC|DESC)?$", key, re.IGNORECASE)
        if not match:
            logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
            return "id ASC"
        clauses.append(f"{match.group(1)} {(match.group(2) or 'ASC').upper()}")

    # Rows written within the same instant keep insertion order
    direction = clauses[0].rsplit(" ", 1)[1]
    clauses.append(f"id {direction}")
    return ", ".join(clauses)


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_event_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    # Check if we have a cached connection and verify the loop is still valid
    if cache_key in _db_connections:
        cached_conn = _db_connections[cache_key]
        if not loop.is_closed():
            return cached_conn
        # Loop is closed, remove stale connection
        async with _db_lock:
            _db_connections.pop(cache_key, None)

    # Create new connection with async lock to prevent races
    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")
        await conn.create_function("casefold", 1, _casefold, deterministic=True)

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_event_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key not in _db_connections:
        return

    try:
        async with _db_lock:
            if cache_key in _db_connections:
                conn = _db_connections[cache_key]
                await conn.close()
                del _db_connections[cache_key]
                logger.info(
                    "Closed SQLite connection",
                    extra={"thread_id": thread_id, "loop_id": loop_id, "db_path": str(path)},
                )
    except Exception as e:
        logger.warning(
            "Error closing SQLite connection",
            extra={"error": str(e), "thread_id": thread_id, "loop_id": loop_id},
        )


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    schema = __import__("src.core.schema", fromlist=["init_db"])
    await schema.init_db(db_path=db_path)


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record, stamping created/updated, and return it with its assigned id."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        now = _now_iso()
        row = {**data, "created": data.get("created", now), "updated": data.get("updated", now)}

        columns = list(row.keys())
        columns_str = ", ".join(columns)
        placeholders_str = ", ".join("?" for _ in columns)
        values = [_serialize_value(row[key]) for key in columns]

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        await conn.commit()

        record_id = cursor.lastrowid
        result = await get_record(collection=collection, record_id=str(record_id))

        logger.info("Created record", extra={"collection": collection, "record_id": record_id})
        return result
    except aiosqlite.IntegrityError as e:
        logger.warning("create_record_constraint_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Constraint violated in {collection}: {e}"
        raise DatabaseError(msg) from e
    except Exception as e:
        if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
            msg = f"Table '{collection}' does not exist. Call init_db() first."
            logger.error("Table not found", extra={"collection": collection})
            raise DatabaseError(msg) from e
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to create record in {collection}: {e}"
        raise DatabaseError(msg) from e


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    if not is_record_id(str(record_id)):
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (int(record_id),))
        row = await cursor.fetchone()

        if row is None:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        columns = [description[0] for description in cursor.description]
        record = dict(zip(columns, row, strict=True))

        logger.debug("Retrieved record", extra={"collection": collection, "record_id": record_id})
        return _convert_record_ids(record)
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to get record from {collection}: {e}"
        raise DatabaseError(msg) from e


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID, stamping updated, and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    if not is_record_id(str(record_id)):
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        row = {**data, "updated": _now_iso()}
        set_clause = ", ".join(f"{key} = ?" for key in row)
        values = [_serialize_value(val) for val in row.values()]
        values.append(int(record_id))

        query = f"UPDATE {collection} SET {set_clause} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        await conn.commit()

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
        return await get_record(collection=collection, record_id=record_id)
    except RecordNotFoundError:
        raise
    except aiosqlite.IntegrityError as e:
        logger.warning("update_record_constraint_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Constraint violated in {collection}: {e}"
        raise DatabaseError(msg) from e
    except Exception as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to update record in {collection}: {e}"
        raise DatabaseError(msg) from e


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    if not is_record_id(str(record_id)):
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (int(record_id),))
        await conn.commit()

        if cursor.rowcount == 0:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)

        logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})
    except RecordNotFoundError:
        raise
    except Exception as e:
        logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to delete record from {collection}: {e}"
        raise DatabaseError(msg) from e


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination.

    Sort accepts `-field` for descending order or `field ASC|DESC`.
    """
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause = ""
        params: list[Any] = []
        if filter_query:
            where_clause, params = parse_filter(filter_query)
            where_clause = f"WHERE {where_clause}"

        order_clause = _build_order_clause(sort)
        offset = (page - 1) * per_page

        query = f"SELECT * FROM {collection} {where_clause} ORDER BY {order_clause} LIMIT ? OFFSET ?"  # noqa: S608 - collection is validated
        params.extend([per_page, offset])

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        columns = [description[0] for description in cursor.description]
        records = [_convert_record_ids(dict(zip(columns, row, strict=True))) for row in rows]

        logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
        return records
    except Exception as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to list records from {collection}: {e}"
        raise DatabaseError(msg) from e


async def count_records(*, collection: str, filter_query: str = "") -> int:
    """Count records matching the filter."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause, params = parse_filter(filter_query)
        if where_clause:
            query = f"SELECT COUNT(*) FROM {collection} WHERE {where_clause}"  # noqa: S608 - collection is validated
        else:
            query = f"SELECT COUNT(*) FROM {collection}"  # noqa: S608 - collection is validated

        cursor = await conn.execute(query, params)
        row = await cursor.fetchone()
        return int(row[0]) if row else 0
    except Exception as e:
        logger.error("count_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to count records in {collection}: {e}"
        raise DatabaseError(msg) from e


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause, params = parse_filter(filter_query)

        # Guard against empty filter_query to avoid invalid WHERE clause
        if where_clause:
            query = f"SELECT * FROM {collection} WHERE {where_clause} ORDER BY id ASC LIMIT 1"  # noqa: S608 - collection is validated
        else:
            query = f"SELECT * FROM {collection} ORDER BY id ASC LIMIT 1"  # noqa: S608 - collection is validated
            params = []

        cursor = await conn.execute(query, params)
        row = await cursor.fetchone()

        if row is None:
            return None

        columns = [description[0] for description in cursor.description]
        record = dict(zip(columns, row, strict=True))

        logger.debug("Retrieved first record", extra={"collection": collection})
        return _convert_record_ids(record)
    except Exception as e:
        logger.error(
            "get_first_record_failed", extra={"collection": collection, "filter_query": filter_query, "error": str(e)}
        )
        msg = f"Failed to get first record from {collection}: {e}"
        raise DatabaseError(msg) from e
