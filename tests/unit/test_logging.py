"""Tests for structured logging helpers."""

import logging

import pytest

from src.core.logging import log_with_user_context


@pytest.mark.unit
class TestLogWithUserContext:
    def test_attaches_owner_and_extra_fields(self, caplog):
        logger = logging.getLogger("tests.task_events")

        with caplog.at_level(logging.INFO, logger="tests.task_events"):
            log_with_user_context(logger, "info", "Deleted task", user_id="user-alice", task_id="7")

        record = caplog.records[-1]
        assert record.getMessage() == "Deleted task"
        assert (record.user_id, record.task_id) == ("user-alice", "7")

    def test_omits_missing_owner(self, caplog):
        logger = logging.getLogger("tests.task_events")

        with caplog.at_level(logging.WARNING, logger="tests.task_events"):
            log_with_user_context(logger, "WARNING", "list_tasks_failed", error="disk full")

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.error == "disk full"
        assert not hasattr(record, "user_id")
