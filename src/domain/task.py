"""Task domain models and enums."""

import json
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class TaskPriority(StrEnum):
    """Task priority."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class TaskStatus(StrEnum):
    """Task lifecycle status."""

    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


# Severity order used when sorting by priority
PRIORITY_RANK: dict[TaskPriority, int] = {
    TaskPriority.HIGH: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 3,
}


def ensure_utc(value: datetime | None) -> datetime | None:
    """Normalize a datetime to UTC; naive values are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class CamelModel(BaseModel):
    """Base model that reads snake_case or camelCase and writes camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Task(CamelModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Detailed task description")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="High, Medium or Low")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Current lifecycle status")
    due_date: datetime | None = Field(default=None, description="Due date (UTC)")
    tags: list[str] = Field(default_factory=list, description="Ordered labels")
    owner: str = Field(..., description="ID of the user who created the task")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")
    updated_at: datetime = Field(..., description="Last update timestamp (UTC)")

    @field_validator("tags", mode="before")
    @classmethod
    def decode_tags(cls, v: Any) -> Any:  # noqa: ANN401
        """Stored tags are a JSON array string."""
        if v is None:
            return []
        if isinstance(v, str):
            return json.loads(v)
        return v

    @field_validator("due_date", "created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: datetime | None) -> datetime | None:
        """Expose all timestamps in UTC."""
        return ensure_utc(v)


class TaskStats(CamelModel):
    """Aggregate counts over all of a user's tasks."""

    total: int = 0
    completed: int = 0
    pending: int = 0
    in_progress: int = 0
    high_priority: int = 0
    overdue: int = 0
