"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator, Callable, Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from src.core.config import settings
from src.core.db_client import DBClient
from src.core.db_supervisor import close_db, connect_with_retry
from src.main import app
from src.services.auth_service import issue_access_token


TEST_SECRET_KEY = "test-secret-key"  # noqa: S105


@pytest.fixture(autouse=True)
def test_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Point settings at a throwaway database and a known signing secret."""
    monkeypatch.setattr(settings, "secret_key", TEST_SECRET_KEY)
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "taskboard-test.db"))
    monkeypatch.setattr(settings, "debug", False)
    monkeypatch.setattr(settings, "db_connect_max_retries", 1)
    monkeypatch.setattr(settings, "db_connect_base_delay_seconds", 0.0)
    return settings


@pytest.fixture
async def sqlite_db(tmp_path: Path) -> AsyncGenerator[DBClient]:
    """Provide a real SQLite database with the schema applied."""
    db = await connect_with_retry(db_path=str(tmp_path / "engine.db"), max_retries=1)
    yield db
    await close_db(db)


@pytest.fixture
def client() -> Generator[TestClient]:
    """Test client running the full application lifespan against a temporary database."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    """Factory for Authorization headers.

    Usage:
        response = client.get("/api/tasks", headers=auth_headers("user-alice"))
    """

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_access_token(user_id)}"}

    return _headers


@pytest.fixture
def alice() -> str:
    """Owner id of the first test user."""
    return "user-alice"


@pytest.fixture
def bob() -> str:
    """Owner id of the second test user."""
    return "user-bob"


@pytest.fixture
def now() -> datetime:
    """A fixed reference time."""
    return datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


@pytest.fixture
def task_payload() -> Callable[..., dict[str, Any]]:
    """Factory for task request bodies.

    Usage:
        body = task_payload(title="Pay rent", priority="High")
    """

    def _payload(**overrides: Any) -> dict[str, Any]:
        body: dict[str, Any] = {
            "title": "Write report",
            "description": "Quarterly numbers",
            "priority": "Medium",
            "status": "Pending",
            "dueDate": (datetime.now(UTC) + timedelta(days=3)).isoformat(),
            "tags": ["work"],
        }
        body.update(overrides)
        return body

    return _payload
