"""Ownership checks for task access.

Every task query is scoped to its owner. A task that exists but belongs to
someone else is reported exactly like a task that does not exist.
"""

import logging

from src.core.config import Constants
from src.core.db_client import DBClient, sanitize_param
from src.core.errors import TaskNotFoundError
from src.domain.task import Task


logger = logging.getLogger(__name__)


def owner_filter(owner_id: str) -> str:
    """Filter matching every task owned by ``owner_id``."""
    return f'owner = "{sanitize_param(owner_id)}"'


def owned_task_filter(owner_id: str, task_id: str) -> str:
    """Filter matching the single task ``task_id`` only if ``owner_id`` owns it."""
    return f'id = "{sanitize_param(task_id)}" && {owner_filter(owner_id)}'


def ensure_affected(affected: int, *, owner_id: str, task_id: str) -> None:
    """Turn a zero row count from a conditional write into TaskNotFoundError."""
    if affected == 0:
        logger.info("task_access_denied_or_missing", extra={"user_id": owner_id, "task_id": task_id})
        raise TaskNotFoundError()


async def get_owned_task(*, db: DBClient, owner_id: str, task_id: str) -> Task:
    """Fetch a task by id, but only if the caller owns it.

    Raises:
        TaskNotFoundError: If no task with this id is owned by the caller
        DatabaseError: If the lookup fails
    """
    record = await db.get_first_record(
        collection=Constants.TASKS_COLLECTION,
        filter_query=owned_task_filter(owner_id, task_id),
    )
    if record is None:
        logger.info("task_access_denied_or_missing", extra={"user_id": owner_id, "task_id": task_id})
        raise TaskNotFoundError()
    return Task.model_validate(record)
