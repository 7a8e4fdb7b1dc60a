"""Task service: create, list, summarize, update and delete a user's tasks.

Key Concepts:
- Owner scope: every store call carries the caller's owner filter, including
  updates and deletes, which are single conditional statements on (id, owner).
- Filters: status, priority and search combine with AND; search matches title
  OR description, case-insensitively, as a literal substring.
- Stats: counted over all of the owner's tasks, independent of listing filters.
  A task is overdue when its due date has passed and it is not Completed.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from src.core.config import Constants
from src.core.db_client import (
    DatabaseError,
    DBClient,
    DuplicateRecordError,
    format_timestamp,
    sanitize_param,
)
from src.core.errors import (
    DuplicateKeyError,
    InternalError,
    TaskValidationError,
    format_validation_error,
)
from src.core.logging import log_with_user_context, span
from src.domain.create_models import TaskCreate
from src.domain.query_models import SortBy, TaskQuery
from src.domain.task import Task, TaskPriority, TaskStats, TaskStatus
from src.domain.update_models import TaskUpdate
from src.services.task_guard import ensure_affected, get_owned_task, owned_task_filter, owner_filter


logger = logging.getLogger(__name__)

_SORT_ORDERS: dict[SortBy, str] = {
    SortBy.DUE_DATE: "+due_date,+id",
    SortBy.DUE_DATE_DESC: "-due_date,+id",
    SortBy.CREATED_AT: "-created_at,-id",
    SortBy.PRIORITY: "+priority_rank,+id",
}

_STAT_CONDITIONS: dict[str, str] = {
    "completed": f'status = "{TaskStatus.COMPLETED}"',
    "pending": f'status = "{TaskStatus.PENDING}"',
    "in_progress": f'status = "{TaskStatus.IN_PROGRESS}"',
    "high_priority": f'priority = "{TaskPriority.HIGH}"',
}


@contextmanager
def _classify_store_errors(operation: str, *, owner_id: str) -> Iterator[None]:
    """Map store failures onto the task error taxonomy."""
    try:
        yield
    except DuplicateRecordError as e:
        log_with_user_context(logger, "warning", f"{operation}_duplicate", user_id=owner_id, error=str(e))
        raise DuplicateKeyError() from e
    except DatabaseError as e:
        log_with_user_context(logger, "error", f"{operation}_failed", user_id=owner_id, error=str(e))
        raise InternalError() from e


def _validate(model: type[TaskCreate] | type[TaskUpdate] | type[TaskQuery], fields: Any) -> Any:  # noqa: ANN401
    if not isinstance(fields, dict):
        raise TaskValidationError("Request body must be a JSON object")
    try:
        return model.model_validate(fields)
    except ValidationError as e:
        raise TaskValidationError(format_validation_error(e.errors())) from e


def build_list_filter(owner_id: str, query: TaskQuery) -> str:
    """Build the owner-scoped filter for a listing query."""
    conditions = [owner_filter(owner_id)]

    if query.status is not None:
        conditions.append(f'status = "{sanitize_param(query.status)}"')

    if query.priority is not None:
        conditions.append(f'priority = "{sanitize_param(query.priority)}"')

    if query.search is not None:
        term = sanitize_param(query.search)
        conditions.append(f'(title ~ "{term}" || description ~ "{term}")')

    return " && ".join(conditions)


def build_sort(query: TaskQuery) -> str:
    """Translate ``sortBy`` into a store sort expression."""
    if query.sort_by is None:
        return Constants.DEFAULT_SORT
    return _SORT_ORDERS[query.sort_by]


async def create_task(*, db: DBClient, owner_id: str, fields: dict[str, Any]) -> Task:
    """Create a task owned by the caller.

    Args:
        db: Database handle
        owner_id: Authenticated caller; becomes the task owner
        fields: Raw request body (title, description, priority, status, dueDate, tags)

    Returns:
        The persisted task, including its generated id and timestamps

    Raises:
        TaskValidationError: If required fields are missing or enumerations are violated
        DuplicateKeyError: If a uniqueness constraint is violated
        InternalError: If the store fails
    """
    with span("task_service.create_task"):
        payload = _validate(TaskCreate, fields)

        now = datetime.now(UTC)
        data = {
            **payload.model_dump(),
            "owner": owner_id,
            "created_at": now,
            "updated_at": now,
        }

        with _classify_store_errors("create_task", owner_id=owner_id):
            record = await db.create_record(collection=Constants.TASKS_COLLECTION, data=data)

        task = Task.model_validate(record)
        log_with_user_context(logger, "info", "Created task", user_id=owner_id, task_id=task.id)
        return task


async def list_tasks(
    *,
    db: DBClient,
    owner_id: str,
    params: dict[str, Any] | TaskQuery | None = None,
) -> tuple[list[Task], int]:
    """List the caller's tasks matching the given filters.

    Args:
        db: Database handle
        owner_id: Authenticated caller
        params: status, priority, search and sortBy (raw query parameters or a TaskQuery)

    Returns:
        Tuple of (matching tasks, count)

    Raises:
        TaskValidationError: If the query parameters are malformed
        InternalError: If the store fails
    """
    with span("task_service.list_tasks"):
        query = params if isinstance(params, TaskQuery) else _validate(TaskQuery, params or {})

        with _classify_store_errors("list_tasks", owner_id=owner_id):
            records = await db.list_records(
                collection=Constants.TASKS_COLLECTION,
                filter_query=build_list_filter(owner_id, query),
                sort=build_sort(query),
            )

        tasks = [Task.model_validate(record) for record in records]
        return tasks, len(tasks)


async def get_task_stats(*, db: DBClient, owner_id: str, now: datetime | None = None) -> TaskStats:
    """Summarize all of the caller's tasks.

    Args:
        db: Database handle
        owner_id: Authenticated caller
        now: Reference time for overdue detection (defaults to the current time)

    Returns:
        TaskStats with total, status counts, high priority count and overdue count

    Raises:
        InternalError: If the store fails
    """
    with span("task_service.get_task_stats"):
        reference = now or datetime.now(UTC)
        scope = owner_filter(owner_id)
        overdue_filter = (
            f'{scope} && due_date < "{sanitize_param(format_timestamp(reference))}"'
            f' && status != "{TaskStatus.COMPLETED}"'
        )

        with _classify_store_errors("get_task_stats", owner_id=owner_id):
            counts = await db.aggregate_counts(
                collection=Constants.TASKS_COLLECTION,
                filter_query=scope,
                conditions=_STAT_CONDITIONS,
            )
            overdue = await db.count_records(collection=Constants.TASKS_COLLECTION, filter_query=overdue_filter)

        # No tasks: the sums come back empty
        if not counts or not counts.get("total"):
            return TaskStats(overdue=overdue)

        return TaskStats(
            total=counts["total"],
            completed=counts.get("completed") or 0,
            pending=counts.get("pending") or 0,
            in_progress=counts.get("in_progress") or 0,
            high_priority=counts.get("high_priority") or 0,
            overdue=overdue,
        )


async def get_task(*, db: DBClient, owner_id: str, task_id: str) -> Task:
    """Fetch one of the caller's tasks.

    Raises:
        TaskNotFoundError: If the task does not exist or is not owned by the caller
        InternalError: If the store fails
    """
    with span("task_service.get_task"), _classify_store_errors("get_task", owner_id=owner_id):
        return await get_owned_task(db=db, owner_id=owner_id, task_id=task_id)


async def update_task(*, db: DBClient, owner_id: str, task_id: str, fields: dict[str, Any]) -> Task:
    """Replace the provided fields of one of the caller's tasks.

    Only title, description, priority, status, dueDate and tags are applied;
    id, owner and createdAt in the payload are ignored.

    Raises:
        TaskValidationError: If a field fails validation
        TaskNotFoundError: If the task does not exist or is not owned by the caller
        DuplicateKeyError: If a uniqueness constraint is violated
        InternalError: If the store fails
    """
    with span("task_service.update_task"):
        payload = _validate(TaskUpdate, fields)
        data = payload.to_update_data()

        with _classify_store_errors("update_task", owner_id=owner_id):
            if data:
                data["updated_at"] = datetime.now(UTC)
                affected = await db.update_records(
                    collection=Constants.TASKS_COLLECTION,
                    filter_query=owned_task_filter(owner_id, task_id),
                    data=data,
                )
                ensure_affected(affected, owner_id=owner_id, task_id=task_id)

            task = await get_owned_task(db=db, owner_id=owner_id, task_id=task_id)

        log_with_user_context(
            logger, "info", "Updated task", user_id=owner_id, task_id=task_id, fields=sorted(data)
        )
        return task


async def delete_task(*, db: DBClient, owner_id: str, task_id: str) -> None:
    """Delete one of the caller's tasks.

    Raises:
        TaskNotFoundError: If the task does not exist or is not owned by the caller
        InternalError: If the store fails
    """
    with span("task_service.delete_task"):
        with _classify_store_errors("delete_task", owner_id=owner_id):
            affected = await db.delete_records(
                collection=Constants.TASKS_COLLECTION,
                filter_query=owned_task_filter(owner_id, task_id),
            )
        ensure_affected(affected, owner_id=owner_id, task_id=task_id)
        log_with_user_context(logger, "info", "Deleted task", user_id=owner_id, task_id=task_id)
