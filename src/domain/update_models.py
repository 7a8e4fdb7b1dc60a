"""Update models for database operations."""

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.domain.task import CamelModel, TaskPriority, TaskStatus, ensure_utc


# Fields an update may replace; everything else in a payload is dropped
MUTABLE_TASK_FIELDS = frozenset({"title", "description", "priority", "status", "due_date", "tags"})

_NULLABLE_FIELDS = frozenset({"description", "due_date"})


class TaskUpdate(CamelModel):
    """Partial update payload for a task.

    Only fields present in the payload are applied. ``id``, ``owner``,
    ``createdAt`` and any unknown keys are silently ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    due_date: datetime | None = None
    tags: list[str] | None = None

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, v: datetime | None) -> datetime | None:
        """Store due dates in UTC."""
        return ensure_utc(v)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "TaskUpdate":
        """Title, priority, status and tags may be replaced but not cleared."""
        for name in sorted(self.model_fields_set - _NULLABLE_FIELDS):
            if getattr(self, name) is None:
                raise ValueError(f"{name} may not be null")
        return self

    def to_update_data(self) -> dict[str, Any]:
        """Return the explicitly provided mutable fields, keyed by column name."""
        data = self.model_dump(exclude_unset=True)
        return {key: value for key, value in data.items() if key in MUTABLE_TASK_FIELDS}
