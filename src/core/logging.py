"""Logfire setup and structured logging helpers for the taskboard API.

Modules log through ``logging.getLogger(__name__)`` with ``extra=`` fields;
Logfire picks those records up once ``configure_logfire`` has run. Service
calls are wrapped in ``span("task_service.<operation>")`` so each request
shows the task operation it ran.

Task events carry the owner they were performed for:

    log_with_user_context(logger, "info", "Created task", user_id=owner_id, task_id=task.id)
"""

import logging

import logfire
from fastapi import FastAPI

from src.core.config import settings


logger = logging.getLogger(__name__)


def configure_logfire() -> None:
    """Configure Logfire for this service; spans are only shipped when LOGFIRE_TOKEN is set."""
    logfire.configure(
        token=settings.logfire_token,
        service_name="taskboard",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logger.info("Logfire configured", extra={"environment": settings.environment})


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every request handled by the task API."""
    logfire.instrument_fastapi(app)
    logger.info("FastAPI instrumentation configured")


def span(name: str) -> logfire.LogfireSpan:
    """Open a span around one task operation, e.g. ``span("task_service.update_task")``."""
    return logfire.span(name)


def log_with_user_context(
    logger: logging.Logger,
    level: str,
    message: str,
    user_id: str | None = None,
    **extra: object,
) -> None:
    """Log a task event with the acting owner attached.

    Args:
        logger: Logger of the calling module
        level: "debug", "info", "warning", "error" or "critical"
        message: Event name, e.g. "Deleted task" or "update_task_failed"
        user_id: Owner the operation ran for; omitted from the record when unset
        **extra: Further fields such as task_id or error
    """
    context = {"user_id": user_id, **extra} if user_id else extra
    getattr(logger, level.lower())(message, extra=context)
