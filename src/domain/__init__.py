"""Domain models and DTOs."""

from src.domain.create_models import TaskCreate
from src.domain.query_models import SortBy, TaskQuery
from src.domain.task import PRIORITY_RANK, Task, TaskPriority, TaskStats, TaskStatus
from src.domain.update_models import MUTABLE_TASK_FIELDS, TaskUpdate


__all__ = [
    "MUTABLE_TASK_FIELDS",
    "PRIORITY_RANK",
    "SortBy",
    "Task",
    "TaskCreate",
    "TaskPriority",
    "TaskQuery",
    "TaskStats",
    "TaskStatus",
    "TaskUpdate",
]
