"""SQLite database client with filter-driven CRUD and aggregate operations.

Records are addressed with a small PocketBase-style filter language:

    owner = "42" && status != "Completed" && (title ~ "milk" || description ~ "milk")

Values are always double-quoted and must be escaped with ``sanitize_param`` before
being embedded. ``~`` is a literal substring match, case-insensitive under Unicode
case folding.
"""

import asyncio
import json
import logging
import re
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, NamedTuple

import aiosqlite

from src.core.config import settings


logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_COMPARISON_RE = re.compile(r'^([A-Za-z_][A-Za-z0-9_]*)\s*(!=|>=|<=|=|>|<|~)\s*"((?:[^"\\]|\\.)*)"$', re.DOTALL)
_SORT_PART_RE = re.compile(r"^([+-]?)([A-Za-z_][A-Za-z0-9_]*)$")

_SQL_OPERATORS = {
    "=": "=",
    "!=": "!=",
    ">": ">",
    "<": "<",
    ">=": ">=",
    "<=": "<=",
    "~": "LIKE",
}


class DatabaseError(Exception):
    """Raised when a database operation fails."""


class RecordNotFoundError(DatabaseError):
    """Raised when a record does not exist."""


class DuplicateRecordError(DatabaseError):
    """Raised when a write violates a uniqueness constraint."""


class Comparison(NamedTuple):
    """A single ``field op "value"`` term of a filter query."""

    field: str
    op: str
    value: str


def _validate_identifier(name: str, kind: str = "collection") -> None:
    """Validate that a collection or column name contains only alphanumeric characters and underscores."""
    if not _IDENTIFIER_RE.match(name):
        msg = f"Invalid {kind} name: {name}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in a double-quoted filter value via json.dumps."""
    return json.dumps(str(value))[1:-1]


def format_timestamp(value: datetime) -> str:
    """Render a datetime as a UTC ISO-8601 string that sorts lexicographically.

    Naive datetimes are taken to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def serialize_value(value: Any) -> Any:  # noqa: ANN401
    """Convert a Python value to its stored representation."""
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def _convert_record_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert the integer primary key to a string for Pydantic compatibility."""
    converted = record.copy()
    if isinstance(converted.get("id"), int):
        converted["id"] = str(converted["id"])
    return converted


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _split_top_level(expression: str, separator: str) -> list[str]:
    """Split on ``separator`` outside of quoted values and parentheses."""
    parts = []
    current: list[str] = []
    depth = 0
    in_quotes = False
    escaped = False
    i = 0

    while i < len(expression):
        char = expression[i]
        if in_quotes:
            current.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_quotes = False
            i += 1
            continue

        if char == '"':
            in_quotes = True
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                msg = f"Unbalanced parentheses in filter: {expression}"
                raise ValueError(msg)

        if depth == 0 and expression.startswith(separator, i):
            parts.append("".join(current).strip())
            current = []
            i += len(separator)
            continue

        current.append(char)
        i += 1

    if in_quotes or depth != 0:
        msg = f"Unterminated quote or parenthesis in filter: {expression}"
        raise ValueError(msg)

    parts.append("".join(current).strip())
    return parts


def _parse_comparison(term: str) -> Comparison:
    """Parse a single ``field op "value"`` expression."""
    match = _COMPARISON_RE.match(term.strip())
    if not match:
        msg = f"Invalid filter syntax: {term}"
        raise ValueError(msg)

    field, op, raw_value = match.groups()
    try:
        value = json.loads(f'"{raw_value}"')
    except json.JSONDecodeError as e:
        msg = f"Invalid escape sequence in filter value: {term}"
        raise ValueError(msg) from e
    return Comparison(field=field, op=op, value=value)


def parse_filter_conditions(filter_query: str) -> list[list[Comparison]]:
    """Parse a filter query into AND-ed groups of OR-ed comparisons."""
    if not filter_query or not filter_query.strip():
        return []

    groups = []
    for raw_part in _split_top_level(filter_query.strip(), "&&"):
        part = raw_part.strip()
        if not part:
            msg = f"Empty condition in filter: {filter_query}"
            raise ValueError(msg)

        # Handle parenthesized OR groups
        if part.startswith("(") and part.endswith(")"):
            or_parts = _split_top_level(part[1:-1], "||")
            groups.append([_parse_comparison(p) for p in or_parts])
        else:
            groups.append([_parse_comparison(part)])
    return groups


def _like_pattern(value: str) -> str:
    """Build a LIKE pattern matching ``value`` literally anywhere in the column."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _casefold(value: Any) -> Any:  # noqa: ANN401
    """SQL ``casefold(x)``: Unicode case folding for text, other values unchanged."""
    return value.casefold() if isinstance(value, str) else value


def _comparison_to_sql(comparison: Comparison) -> tuple[str, str]:
    sql_op = _SQL_OPERATORS[comparison.op]
    if sql_op == "LIKE":
        # SQLite LIKE only folds ASCII; both sides are folded before matching
        return f"casefold({comparison.field}) LIKE ? ESCAPE '\\'", _like_pattern(comparison.value.casefold())
    return f"{comparison.field} {sql_op} ?", comparison.value


def parse_filter(filter_query: str) -> tuple[str, list[str]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list."""
    conditions = []
    params = []

    for group in parse_filter_conditions(filter_query):
        group_sql = []
        for comparison in group:
            cond, value = _comparison_to_sql(comparison)
            group_sql.append(cond)
            params.append(value)
        if len(group_sql) == 1:
            conditions.append(group_sql[0])
        else:
            conditions.append(f"({' OR '.join(group_sql)})")

    return " AND ".join(conditions), params


def parse_sort(sort: str) -> list[tuple[str, bool]]:
    """Parse ``+field,-other`` into (field, descending) pairs."""
    orders = []
    for raw_part in sort.split(","):
        match = _SORT_PART_RE.match(raw_part.strip())
        if not match:
            msg = f"Invalid sort parameter: {sort}"
            raise ValueError(msg)
        direction, field = match.groups()
        orders.append((field, direction == "-"))
    return orders


def _order_by_clause(sort: str) -> str:
    """Build a safe ORDER BY clause, falling back to insertion order on bad input."""
    if not sort:
        return "id ASC"
    try:
        orders = parse_sort(sort)
    except ValueError:
        logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
        return "id ASC"
    return ", ".join(f"{field} {'DESC' if descending else 'ASC'}" for field, descending in orders)


def _where(filter_query: str) -> tuple[str, list[str]]:
    where_clause, params = parse_filter(filter_query)
    return (f"WHERE {where_clause}" if where_clause else ""), params


def _is_unique_violation(error: Exception) -> bool:
    return isinstance(error, aiosqlite.IntegrityError) and "UNIQUE constraint failed" in str(error)


class DBClient:
    """Handle over one SQLite connection.

    Constructed explicitly (see ``src.core.db_supervisor``) and passed to the
    services that need it. Writes share the connection's transaction, so each
    write and its commit or rollback runs under ``_write_lock``.
    """

    def __init__(self, conn: aiosqlite.Connection, *, db_path: Path) -> None:
        self._conn = conn
        self.db_path = db_path
        self._write_lock = asyncio.Lock()

    @classmethod
    async def connect(cls, *, db_path: str | None = None) -> "DBClient":
        """Open a connection to the database file, creating parent directories."""
        path = get_db_path(db_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(path))
            await conn.execute("PRAGMA foreign_keys = ON")
            await conn.execute("PRAGMA journal_mode = WAL")
            await conn.create_function("casefold", 1, _casefold, deterministic=True)
        except (OSError, aiosqlite.Error) as e:
            msg = f"Failed to open database at {path}: {e}"
            raise DatabaseError(msg) from e

        logger.info("Created new SQLite connection", extra={"db_path": str(path)})
        return cls(conn, db_path=path)

    async def close(self) -> None:
        """Close the underlying connection."""
        try:
            await self._conn.close()
            logger.info("Closed SQLite connection", extra={"db_path": str(self.db_path)})
        except aiosqlite.Error as e:
            logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": str(self.db_path)})

    async def execute_script(self, script: str) -> None:
        """Run a multi-statement SQL script (schema setup)."""
        try:
            async with self._write_lock:
                await self._conn.executescript(script)
                await self._conn.commit()
        except aiosqlite.Error as e:
            logger.error("execute_script_failed", extra={"error": str(e)})
            msg = f"Failed to execute script: {e}"
            raise DatabaseError(msg) from e

    async def _fetch(self, query: str, params: list[Any]) -> list[dict[str, Any]]:
        cursor = await self._conn.execute(query, params)
        rows = await cursor.fetchall()
        columns = [description[0] for description in cursor.description]
        return [_convert_record_ids(dict(zip(columns, row, strict=True))) for row in rows]

    async def create_record(self, *, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a new record and return it with its assigned id."""
        _validate_identifier(collection)
        for key in data:
            _validate_identifier(key, "field")

        columns_str = ", ".join(data.keys())
        placeholders_str = ", ".join("?" for _ in data)
        values = [serialize_value(val) for val in data.values()]

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - identifiers are validated
        try:
            async with self._write_lock:
                try:
                    cursor = await self._conn.execute(query, values)
                    await self._conn.commit()
                except aiosqlite.Error:
                    await self._conn.rollback()
                    raise
            record_id = cursor.lastrowid
        except aiosqlite.Error as e:
            if _is_unique_violation(e):
                logger.warning("create_record_duplicate", extra={"collection": collection, "error": str(e)})
                msg = f"Duplicate record in {collection}: {e}"
                raise DuplicateRecordError(msg) from e
            logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
            msg = f"Failed to create record in {collection}: {e}"
            raise DatabaseError(msg) from e

        logger.info("Created record", extra={"collection": collection, "record_id": record_id})
        return await self.get_record(collection=collection, record_id=str(record_id))

    async def get_record(self, *, collection: str, record_id: str) -> dict[str, Any]:
        """Fetch a single record by ID, raising RecordNotFoundError if not found."""
        record = await self.get_first_record(collection=collection, filter_query=f'id = "{sanitize_param(record_id)}"')
        if record is None:
            msg = f"Record not found in {collection}: {record_id}"
            raise RecordNotFoundError(msg)
        return record

    async def get_first_record(self, *, collection: str, filter_query: str) -> dict[str, Any] | None:
        """Return the first record matching the filter, or None."""
        _validate_identifier(collection)
        where_clause, params = _where(filter_query)

        try:
            query = f"SELECT * FROM {collection} {where_clause} ORDER BY id ASC LIMIT 1"  # noqa: S608 - collection is validated
            records = await self._fetch(query, params)
        except aiosqlite.Error as e:
            logger.error(
                "get_first_record_failed", extra={"collection": collection, "filter_query": filter_query, "error": str(e)}
            )
            msg = f"Failed to get first record from {collection}: {e}"
            raise DatabaseError(msg) from e

        return records[0] if records else None

    async def list_records(self, *, collection: str, filter_query: str = "", sort: str = "") -> list[dict[str, Any]]:
        """List every record matching the filter, ordered by ``sort`` (``+field,-other``)."""
        _validate_identifier(collection)
        where_clause, params = _where(filter_query)
        order_by = _order_by_clause(sort)

        try:
            query = f"SELECT * FROM {collection} {where_clause} ORDER BY {order_by}"  # noqa: S608 - collection is validated
            records = await self._fetch(query, params)
        except aiosqlite.Error as e:
            logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
            msg = f"Failed to list records from {collection}: {e}"
            raise DatabaseError(msg) from e

        logger.info("Listed records", extra={"collection": collection, "count": len(records)})
        return records

    async def count_records(self, *, collection: str, filter_query: str = "") -> int:
        """Count records matching the filter."""
        _validate_identifier(collection)
        where_clause, params = _where(filter_query)

        try:
            query = f"SELECT COUNT(*) FROM {collection} {where_clause}"  # noqa: S608 - collection is validated
            cursor = await self._conn.execute(query, params)
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error("count_records_failed", extra={"collection": collection, "error": str(e)})
            msg = f"Failed to count records in {collection}: {e}"
            raise DatabaseError(msg) from e

        return int(row[0]) if row else 0

    async def aggregate_counts(
        self,
        *,
        collection: str,
        filter_query: str = "",
        conditions: dict[str, str],
    ) -> dict[str, int | None]:
        """Count matching records and, per named condition, how many of them satisfy it.

        Returns ``{"total": n, <name>: count, ...}``. Condition counts are None
        when no record matches the base filter (SQL SUM over an empty set).
        """
        _validate_identifier(collection)
        select_parts = ["COUNT(*) AS total"]
        params: list[str] = []
        for name, condition in conditions.items():
            _validate_identifier(name, "aggregate")
            cond_sql, cond_params = parse_filter(condition)
            select_parts.append(f"SUM(CASE WHEN {cond_sql} THEN 1 ELSE 0 END) AS {name}")
            params.extend(cond_params)

        where_clause, where_params = _where(filter_query)
        params.extend(where_params)

        try:
            query = f"SELECT {', '.join(select_parts)} FROM {collection} {where_clause}"  # noqa: S608 - identifiers are validated
            cursor = await self._conn.execute(query, params)
            row = await cursor.fetchone()
            columns = [description[0] for description in cursor.description]
        except aiosqlite.Error as e:
            logger.error("aggregate_counts_failed", extra={"collection": collection, "error": str(e)})
            msg = f"Failed to aggregate records in {collection}: {e}"
            raise DatabaseError(msg) from e

        if row is None:
            return {}
        return dict(zip(columns, row, strict=True))

    async def update_records(self, *, collection: str, filter_query: str, data: dict[str, Any]) -> int:
        """Update every record matching the filter in one statement; return the affected row count."""
        if not data:
            msg = "Empty update payload"
            raise ValueError(msg)
        if not filter_query:
            msg = "Refusing to update without a filter"
            raise ValueError(msg)

        _validate_identifier(collection)
        for key in data:
            _validate_identifier(key, "field")

        set_clause = ", ".join(f"{key} = ?" for key in data)
        values = [serialize_value(val) for val in data.values()]
        where_clause, params = _where(filter_query)

        query = f"UPDATE {collection} SET {set_clause} {where_clause}"  # noqa: S608 - identifiers are validated
        try:
            async with self._write_lock:
                try:
                    cursor = await self._conn.execute(query, [*values, *params])
                    await self._conn.commit()
                except aiosqlite.Error:
                    await self._conn.rollback()
                    raise
        except aiosqlite.Error as e:
            if _is_unique_violation(e):
                msg = f"Duplicate record in {collection}: {e}"
                raise DuplicateRecordError(msg) from e
            logger.error("update_records_failed", extra={"collection": collection, "error": str(e)})
            msg = f"Failed to update records in {collection}: {e}"
            raise DatabaseError(msg) from e

        logger.info("Updated records", extra={"collection": collection, "count": cursor.rowcount})
        return cursor.rowcount

    async def delete_records(self, *, collection: str, filter_query: str) -> int:
        """Delete every record matching the filter in one statement; return the affected row count."""
        if not filter_query:
            msg = "Refusing to delete without a filter"
            raise ValueError(msg)

        _validate_identifier(collection)
        where_clause, params = _where(filter_query)

        query = f"DELETE FROM {collection} {where_clause}"  # noqa: S608 - collection is validated
        try:
            async with self._write_lock:
                try:
                    cursor = await self._conn.execute(query, params)
                    await self._conn.commit()
                except aiosqlite.Error:
                    await self._conn.rollback()
                    raise
        except aiosqlite.Error as e:
            logger.error("delete_records_failed", extra={"collection": collection, "error": str(e)})
            msg = f"Failed to delete records from {collection}: {e}"
            raise DatabaseError(msg) from e

        logger.info("Deleted records", extra={"collection": collection, "count": cursor.rowcount})
        return cursor.rowcount
