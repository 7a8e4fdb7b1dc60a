"""Listing query parameters."""

from enum import StrEnum
from typing import Any

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.domain.task import CamelModel


class SortBy(StrEnum):
    """Accepted ``sortBy`` values."""

    DUE_DATE = "dueDate"  # Oldest due date first
    DUE_DATE_DESC = "-dueDate"  # Latest due date first
    CREATED_AT = "createdAt"  # Newest first
    PRIORITY = "priority"  # High, Medium, Low


class TaskQuery(CamelModel):
    """Filters and ordering for listing a user's tasks.

    Blank values count as absent. ``status`` and ``priority`` match exactly, so a
    value outside the known set simply matches nothing. An unrecognized ``sortBy``
    falls back to the store's natural order instead of failing.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    status: str | None = None
    priority: str | None = None
    search: str | None = Field(default=None, description="Case-insensitive substring of title or description")
    sort_by: SortBy | None = None

    @field_validator("status", "priority", "search", "sort_by", mode="before")
    @classmethod
    def blank_as_none(cls, v: Any) -> Any:  # noqa: ANN401
        """Query strings send empty values for unset parameters."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("sort_by", mode="before")
    @classmethod
    def unknown_sort_as_none(cls, v: Any) -> Any:  # noqa: ANN401
        """Ignore sort keys we do not recognize."""
        if v is None or isinstance(v, SortBy):
            return v
        return v if v in SortBy._value2member_map_ else None
