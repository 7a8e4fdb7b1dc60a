"""taskboard - multi-user task management API."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.core.config import constants, settings
from src.core.db_supervisor import close_db, connect_with_retry
from src.core.errors import ErrorCode, TaskError, classify_error_with_response, format_validation_error
from src.core.logging import configure_logfire, instrument_fastapi
from src.interface.task_router import router as task_router


logger = logging.getLogger(__name__)


def validate_startup_configuration() -> None:
    """Validate required credentials, failing fast with a clear error message."""
    logger.info("startup_validation_begin")

    try:
        settings.require_credential("secret_key", "Token signing secret")
        logger.info("startup_validation_complete", extra={"status": "ok"})
    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\n❌ Startup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    # Configure logging first so validation logs are captured
    configure_logfire()
    validate_startup_configuration()

    app.state.db = await connect_with_retry()
    logger.info("Database initialized")
    yield
    # Shutdown
    await close_db(app.state.db)
    app.state.db = None


app = FastAPI(
    title="taskboard",
    description="Multi-user task management API",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(task_router)


@app.exception_handler(TaskError)
async def task_error_handler(request: Request, exc: TaskError) -> JSONResponse:
    """Render task errors with their mapped status code."""
    response = classify_error_with_response(exc, debug=settings.debug)
    if response.code == ErrorCode.ERR_INTERNAL:
        logger.error(
            "task_internal_error",
            extra={"path": request.url.path, "error": str(exc.__cause__ or exc)},
        )

    content: dict[str, object] = {"success": False, "message": response.message, "code": response.code}
    if response.detail:
        content["detail"] = response.detail
    return JSONResponse(status_code=response.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and parameters are validation errors."""
    return JSONResponse(
        status_code=constants.HTTP_BAD_REQUEST,
        content={
            "success": False,
            "message": format_validation_error(exc.errors()),
            "code": ErrorCode.ERR_VALIDATION,
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap HTTP errors in the standard envelope."""
    message = "Route not found" if exc.status_code == constants.HTTP_NOT_FOUND else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unexpected errors."""
    logger.exception("unhandled_exception", extra={"path": request.url.path, "error": str(exc)})
    return JSONResponse(
        status_code=constants.HTTP_SERVER_ERROR,
        content={"success": False, "message": "Something went wrong!"},
    )


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(
        content={"status": "OK", "timestamp": datetime.now(UTC).isoformat()},
        status_code=constants.HTTP_OK,
    )
