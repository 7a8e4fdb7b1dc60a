"""Pytest configuration and fixtures for unit tests."""

import pytest

from src.domain.task import PRIORITY_RANK, TaskPriority
from tests.unit.mocks import InMemoryDBClient


def _priority_rank(record: dict) -> int:
    try:
        return PRIORITY_RANK[TaskPriority(record.get("priority"))]
    except ValueError:
        return len(PRIORITY_RANK) + 1


@pytest.fixture
def in_memory_db() -> InMemoryDBClient:
    """Provides a fresh InMemoryDBClient for each test, mirroring the tasks schema."""
    return InMemoryDBClient(generated_fields={"tasks": {"priority_rank": _priority_rank}})
