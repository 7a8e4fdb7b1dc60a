"""FastAPI dependencies shared by routers."""

import logging

from fastapi import Header, HTTPException, Request, status

from src.core.db_client import DBClient
from src.services.auth_service import InvalidTokenError, verify_access_token


logger = logging.getLogger(__name__)


def get_db(request: Request) -> DBClient:
    """Return the database handle opened by the application lifespan."""
    db = getattr(request.app.state, "db", None)
    if db is None:
        logger.error("database_not_initialized", extra={"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")
    return db


async def require_user(request: Request, authorization: str | None = Header(default=None)) -> str:
    """Resolve the caller's user id from an ``Authorization: Bearer`` header."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        logger.warning("auth_missing_token", extra={"path": request.url.path})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, no token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return verify_access_token(token.strip())
    except InvalidTokenError as err:
        logger.warning("auth_invalid_token", extra={"path": request.url.path, "error": str(err)})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, token failed",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err
