"""Startup and shutdown of the database handle."""

import asyncio
import logging

from src.core.config import settings
from src.core.db_client import DatabaseError, DBClient
from src.core.schema import init_db


logger = logging.getLogger(__name__)


async def connect_with_retry(
    *,
    db_path: str | None = None,
    max_retries: int | None = None,
    base_delay: float | None = None,
) -> DBClient:
    """Open the database and sync the schema, retrying with exponential backoff.

    Args:
        db_path: Database file path (defaults to settings.sqlite_db_path)
        max_retries: Maximum number of attempts (defaults to settings.db_connect_max_retries)
        base_delay: Base delay in seconds for exponential backoff

    Returns:
        A connected DBClient with an up-to-date schema

    Raises:
        DatabaseError: If every attempt fails
    """
    attempts = max_retries if max_retries is not None else settings.db_connect_max_retries
    delay_base = base_delay if base_delay is not None else settings.db_connect_base_delay_seconds
    attempts = max(attempts, 1)

    last_exception: DatabaseError | None = None
    for attempt in range(attempts):
        db: DBClient | None = None
        try:
            db = await DBClient.connect(db_path=db_path)
            await init_db(db)
            logger.info("Database connected", extra={"db_path": str(db.db_path), "attempt": attempt + 1})
            return db
        except DatabaseError as e:
            last_exception = e
            if db is not None:
                await db.close()
            if attempt < attempts - 1:
                delay = delay_base * (2**attempt)
                logger.warning(
                    "Database connection failed (attempt %d/%d): %s. Retrying in %.2fs",
                    attempt + 1,
                    attempts,
                    e,
                    delay,
                )
                await asyncio.sleep(delay)
            else:
                logger.error("Database connection failed after %d attempts: %s", attempts, e)

    raise last_exception  # type: ignore[misc]


async def close_db(db: DBClient | None) -> None:
    """Close the database handle if one was opened."""
    if db is None:
        return
    await db.close()
