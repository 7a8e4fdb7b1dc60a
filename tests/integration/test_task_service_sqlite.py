"""Task service against a real SQLite database."""

import asyncio
from datetime import timedelta

import pytest

from src.core.config import Constants
from src.core.db_client import DatabaseError, DBClient
from src.core.errors import TaskNotFoundError
from src.domain.task import TaskPriority, TaskStats, TaskStatus
from src.services import task_service


async def _create(db, owner_id, **fields):
    fields.setdefault("title", "Task")
    return await task_service.create_task(db=db, owner_id=owner_id, fields=fields)


@pytest.mark.integration
class TestTaskServiceSQLite:
    async def test_create_and_get(self, sqlite_db, alice, task_payload):
        created = await task_service.create_task(db=sqlite_db, owner_id=alice, fields=task_payload(tags=["x", "y"]))

        fetched = await task_service.get_task(db=sqlite_db, owner_id=alice, task_id=created.id)

        assert fetched == created
        assert fetched.tags == ["x", "y"]
        assert fetched.due_date is not None
        assert fetched.due_date.tzinfo is not None

    async def test_ids_are_unique(self, sqlite_db, alice):
        ids = {(await _create(sqlite_db, alice)).id for _ in range(5)}

        assert len(ids) == 5

    async def test_search_is_case_insensitive_and_literal(self, sqlite_db, alice):
        await _create(sqlite_db, alice, title="Buy MILK")
        await _create(sqlite_db, alice, title="Errands", description="pick up milk")
        await _create(sqlite_db, alice, title="100% done")
        await _create(sqlite_db, alice, title="snake_case")
        await _create(sqlite_db, alice, title="snakeXcase")

        milk, _ = await task_service.list_tasks(db=sqlite_db, owner_id=alice, params={"search": "milk"})
        percent, _ = await task_service.list_tasks(db=sqlite_db, owner_id=alice, params={"search": "%"})
        underscore, _ = await task_service.list_tasks(db=sqlite_db, owner_id=alice, params={"search": "e_c"})

        assert {t.title for t in milk} == {"Buy MILK", "Errands"}
        assert [t.title for t in percent] == ["100% done"]
        assert [t.title for t in underscore] == ["snake_case"]

    async def test_search_folds_non_ascii_case(self, sqlite_db, alice):
        await _create(sqlite_db, alice, title="ÉCOLE run")
        await _create(sqlite_db, alice, title="Errands", description="Straße sweeping")
        await _create(sqlite_db, alice, title="ecole")

        accented, _ = await task_service.list_tasks(db=sqlite_db, owner_id=alice, params={"search": "école"})
        sharp_s, _ = await task_service.list_tasks(db=sqlite_db, owner_id=alice, params={"search": "STRASSE"})

        assert [t.title for t in accented] == ["ÉCOLE run"]
        assert [t.title for t in sharp_s] == ["Errands"]

    async def test_sort_by_due_date_with_missing_dates(self, sqlite_db, alice, now):
        await _create(sqlite_db, alice, title="later", due_date=now + timedelta(days=2))
        await _create(sqlite_db, alice, title="undated")
        await _create(sqlite_db, alice, title="sooner", due_date=now + timedelta(days=1))

        ascending, _ = await task_service.list_tasks(db=sqlite_db, owner_id=alice, params={"sortBy": "dueDate"})
        descending, _ = await task_service.list_tasks(db=sqlite_db, owner_id=alice, params={"sortBy": "-dueDate"})

        assert [t.title for t in ascending] == ["undated", "sooner", "later"]
        assert [t.title for t in descending] == ["later", "sooner", "undated"]

    async def test_due_dates_in_other_offsets_sort_by_instant(self, sqlite_db, alice):
        await _create(sqlite_db, alice, title="utc-noon", due_date="2026-10-20T12:00:00+00:00")
        await _create(sqlite_db, alice, title="tokyo-morning", due_date="2026-10-20T18:00:00+09:00")

        tasks, _ = await task_service.list_tasks(db=sqlite_db, owner_id=alice, params={"sortBy": "dueDate"})

        assert [t.title for t in tasks] == ["tokyo-morning", "utc-noon"]

    async def test_sort_by_priority(self, sqlite_db, alice):
        for priority in ("Medium", "Low", "High", "Low"):
            await _create(sqlite_db, alice, title=priority, priority=priority)

        tasks, _ = await task_service.list_tasks(db=sqlite_db, owner_id=alice, params={"sortBy": "priority"})

        assert [t.priority for t in tasks] == [
            TaskPriority.HIGH,
            TaskPriority.MEDIUM,
            TaskPriority.LOW,
            TaskPriority.LOW,
        ]

    async def test_sort_by_created_at(self, sqlite_db, alice):
        for title in ("first", "second", "third"):
            await _create(sqlite_db, alice, title=title)

        tasks, _ = await task_service.list_tasks(db=sqlite_db, owner_id=alice, params={"sortBy": "createdAt"})

        assert [t.title for t in tasks] == ["third", "second", "first"]

    async def test_stats(self, sqlite_db, alice, bob, now):
        yesterday = now - timedelta(days=1)
        await _create(sqlite_db, alice, title="A", priority="High", status="Pending", due_date=yesterday)
        await _create(sqlite_db, alice, title="B", priority="Low", status="Completed", due_date=yesterday)
        await _create(sqlite_db, bob, title="C", priority="High", status="In Progress", due_date=yesterday)

        stats = await task_service.get_task_stats(db=sqlite_db, owner_id=alice, now=now)

        assert stats == TaskStats(total=2, completed=1, pending=1, in_progress=0, high_priority=1, overdue=1)

    async def test_stats_for_new_user(self, sqlite_db, alice):
        assert await task_service.get_task_stats(db=sqlite_db, owner_id=alice) == TaskStats()

    async def test_update_is_scoped_to_owner(self, sqlite_db, alice, bob):
        created = await _create(sqlite_db, alice, title="Private")

        with pytest.raises(TaskNotFoundError):
            await task_service.update_task(db=sqlite_db, owner_id=bob, task_id=created.id, fields={"title": "Mine now"})

        updated = await task_service.update_task(
            db=sqlite_db, owner_id=alice, task_id=created.id, fields={"status": "In Progress", "owner": bob}
        )
        assert updated.title == "Private"
        assert updated.status == TaskStatus.IN_PROGRESS
        assert updated.owner == alice

    async def test_delete_is_scoped_to_owner(self, sqlite_db, alice, bob):
        created = await _create(sqlite_db, alice)

        with pytest.raises(TaskNotFoundError):
            await task_service.delete_task(db=sqlite_db, owner_id=bob, task_id=created.id)

        await task_service.delete_task(db=sqlite_db, owner_id=alice, task_id=created.id)

        assert await sqlite_db.count_records(collection=Constants.TASKS_COLLECTION) == 0

    async def test_non_numeric_id_is_not_found(self, sqlite_db, alice):
        with pytest.raises(TaskNotFoundError):
            await task_service.get_task(db=sqlite_db, owner_id=alice, task_id="not-an-id")

    async def test_schema_rejects_invalid_status(self, sqlite_db, alice):
        created = await _create(sqlite_db, alice)

        with pytest.raises(DatabaseError, match="CHECK constraint failed"):
            await sqlite_db.update_records(
                collection=Constants.TASKS_COLLECTION,
                filter_query=f'id = "{created.id}"',
                data={"status": "Archived"},
            )

    async def test_failed_write_keeps_concurrent_write(self, sqlite_db, alice):
        created = await _create(sqlite_db, alice)

        failed, inserted = await asyncio.gather(
            sqlite_db.update_records(
                collection=Constants.TASKS_COLLECTION,
                filter_query=f'id = "{created.id}"',
                data={"status": "Archived"},
            ),
            sqlite_db.create_record(collection=Constants.TASKS_COLLECTION, data={"title": "kept", "owner": alice}),
            return_exceptions=True,
        )

        assert isinstance(failed, DatabaseError)
        reopened = await DBClient.connect(db_path=str(sqlite_db.db_path))
        try:
            record = await reopened.get_record(collection=Constants.TASKS_COLLECTION, record_id=inserted["id"])
        finally:
            await reopened.close()
        assert record["title"] == "kept"
