"""SQLite schema management (code-first approach)."""

import logging
from typing import Any

from src.core.db_client import DBClient
from src.domain.task import PRIORITY_RANK, TaskPriority, TaskStatus


logger = logging.getLogger(__name__)


# Central list of all collections in the schema
COLLECTIONS = [
    "tasks",
]

_COLUMN_TYPES = {
    "text": "TEXT",
    "select": "TEXT",
    "date": "TEXT",
    "json": "TEXT",
    "number": "INTEGER",
}


def _get_collection_schema(*, collection_name: str) -> dict[str, Any]:
    """Get the expected schema for a collection."""
    rank_cases = " ".join(f"WHEN '{priority}' THEN {rank}" for priority, rank in PRIORITY_RANK.items())

    schemas = {
        "tasks": {
            "name": "tasks",
            "fields": [
                {"name": "title", "type": "text", "required": True},
                {"name": "description", "type": "text", "required": False},
                {
                    "name": "priority",
                    "type": "select",
                    "required": True,
                    "values": [p.value for p in TaskPriority],
                    "default": TaskPriority.MEDIUM.value,
                },
                {
                    "name": "status",
                    "type": "select",
                    "required": True,
                    "values": [s.value for s in TaskStatus],
                    "default": TaskStatus.PENDING.value,
                },
                {"name": "due_date", "type": "date", "required": False},
                {"name": "tags", "type": "json", "required": True, "default": "[]"},
                {"name": "owner", "type": "text", "required": True},
                {"name": "created_at", "type": "date", "required": True},
                {"name": "updated_at", "type": "date", "required": True},
                # Severity order for sorting (High first); the raw strings sort alphabetically
                {
                    "name": "priority_rank",
                    "type": "number",
                    "generated": f"CASE priority {rank_cases} ELSE {len(PRIORITY_RANK) + 1} END",
                },
            ],
            "indexes": [
                "CREATE INDEX IF NOT EXISTS idx_tasks_owner ON tasks (owner)",
                "CREATE INDEX IF NOT EXISTS idx_tasks_owner_status ON tasks (owner, status)",
                "CREATE INDEX IF NOT EXISTS idx_tasks_owner_due_date ON tasks (owner, due_date)",
            ],
        },
    }

    if collection_name not in schemas:
        raise ValueError(f"Unknown collection: {collection_name}")
    return schemas[collection_name]


def _column_ddl(field: dict[str, Any]) -> str:
    """Render one field definition as a column clause."""
    name = field["name"]
    column = f"{name} {_COLUMN_TYPES[field['type']]}"

    if "generated" in field:
        return f"{column} GENERATED ALWAYS AS ({field['generated']}) VIRTUAL"

    if field.get("required"):
        column += " NOT NULL"
    if "default" in field:
        column += f" DEFAULT '{field['default']}'"
    if field["type"] == "select":
        allowed = ", ".join(f"'{value}'" for value in field["values"])
        column += f" CHECK ({name} IN ({allowed}))"
    return column


def build_collection_ddl(schema: dict[str, Any]) -> str:
    """Build the CREATE TABLE and CREATE INDEX statements for a collection schema."""
    columns = ["id INTEGER PRIMARY KEY AUTOINCREMENT"]
    columns.extend(_column_ddl(field) for field in schema["fields"])

    statements = [f"CREATE TABLE IF NOT EXISTS {schema['name']} (\n    " + ",\n    ".join(columns) + "\n)"]
    statements.extend(schema.get("indexes", []))
    return ";\n".join(statements) + ";\n"


async def init_db(db: DBClient) -> None:
    """Create all collections and indexes (idempotent)."""
    logger.info("Starting schema sync...")

    for collection_name in COLLECTIONS:
        schema = _get_collection_schema(collection_name=collection_name)
        await db.execute_script(build_collection_ddl(schema))
        logger.info("Collection %s is up to date", collection_name)

    logger.info("Schema sync complete")
