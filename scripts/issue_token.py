#!/usr/bin/env python3
"""Admin script to mint bearer tokens and inspect a user's tasks.

Usage:
    uv run python scripts/issue_token.py <user_id>
    uv run python scripts/issue_token.py <user_id> --stats
"""

import asyncio
import logging
import sys

from src.core.db_supervisor import close_db, connect_with_retry
from src.services import task_service
from src.services.auth_service import issue_access_token


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def show_stats(user_id: str) -> None:
    """Log task statistics for a user.

    Args:
        user_id: Owner whose tasks are summarized
    """
    db = await connect_with_retry(max_retries=1)
    try:
        stats = await task_service.get_task_stats(db=db, owner_id=user_id)
    finally:
        await close_db(db)

    for name, value in stats.model_dump(by_alias=True).items():
        logger.info(f"{name}: {value}")


def print_usage() -> None:
    """Print usage information."""
    logger.info(__doc__)


async def main() -> None:
    """Main entry point."""
    args = sys.argv[1:]

    if not args or "--help" in args or "-h" in args:
        print_usage()
        return

    user_id = args[0]
    if user_id.startswith("-"):
        print_usage()
        sys.exit(1)

    try:
        token = issue_access_token(user_id)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info(token)

    if "--stats" in args:
        await show_stats(user_id)


if __name__ == "__main__":
    asyncio.run(main())
