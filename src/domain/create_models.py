"""Pydantic models for creating records in database."""

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.domain.task import CamelModel, TaskPriority, TaskStatus, ensure_utc


class TaskCreate(CamelModel):
    """Pydantic model for creating a task record.

    Unknown keys (including ``id`` and ``owner``) are ignored; the owner always
    comes from the authenticated caller.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    title: str = Field(..., min_length=1, description="Task title")
    description: str | None = Field(default=None, description="Detailed task description")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="High, Medium or Low")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Initial status")
    due_date: datetime | None = Field(default=None, description="Optional due date")
    tags: list[str] = Field(default_factory=list, description="Ordered labels")

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, v: Any) -> Any:  # noqa: ANN401
        """Treat a missing or null tag list as empty."""
        return [] if v is None else v

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, v: datetime | None) -> datetime | None:
        """Store due dates in UTC."""
        return ensure_utc(v)
