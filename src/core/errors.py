"""Error taxonomy and classification for task operations."""

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.core.config import Constants


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_DUPLICATE_KEY = "ERR_DUPLICATE_KEY"
    ERR_INTERNAL = "ERR_INTERNAL"


class TaskError(Exception):
    """Base class for errors surfaced by the task layer."""

    code: str = ErrorCode.ERR_INTERNAL
    status_code: int = Constants.HTTP_SERVER_ERROR
    default_message: str = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class TaskValidationError(TaskError):
    """Missing or malformed field, or a failed enumeration check."""

    code = ErrorCode.ERR_VALIDATION
    status_code = Constants.HTTP_BAD_REQUEST
    default_message = "Invalid task data"


class TaskNotFoundError(TaskError):
    """Task is absent or not owned by the caller (the two are indistinguishable)."""

    code = ErrorCode.ERR_TASK_NOT_FOUND
    status_code = Constants.HTTP_NOT_FOUND
    default_message = "Task not found"


class DuplicateKeyError(TaskError):
    """A uniqueness constraint was violated."""

    code = ErrorCode.ERR_DUPLICATE_KEY
    status_code = Constants.HTTP_BAD_REQUEST
    default_message = "Duplicate field value entered"


class InternalError(TaskError):
    """Unexpected store failure; the original exception is kept as __cause__."""

    code = ErrorCode.ERR_INTERNAL
    status_code = Constants.HTTP_SERVER_ERROR
    default_message = "Server error"


class ErrorResponse(BaseModel):
    """Structured error response for the transport layer."""

    code: str
    message: str
    status_code: int
    detail: str | None = None


def format_validation_error(errors: Sequence[Any]) -> str:
    """Join pydantic field errors (``ValidationError.errors()``) into one human-readable message.

    Example: "title: Field required, priority: Input should be 'High', 'Medium' or 'Low'"
    """
    parts = []
    for err in errors:
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        message = err.get("msg", "Invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return ", ".join(parts)


def classify_error_with_response(exception: Exception, *, debug: bool = False) -> ErrorResponse:
    """Classify an error and return a structured response.

    Task errors map to their own code and status. Pydantic validation errors are
    treated as validation failures. Everything else is an opaque internal error;
    the exception text is only included when ``debug`` is set.

    Args:
        exception: The exception raised during execution
        debug: Whether to include internal details

    Returns:
        ErrorResponse with code, message, status code and optional detail
    """
    if isinstance(exception, InternalError):
        cause = exception.__cause__ or exception
        return ErrorResponse(
            code=exception.code,
            message=exception.message,
            status_code=exception.status_code,
            detail=str(cause) if debug else None,
        )

    if isinstance(exception, TaskError):
        return ErrorResponse(code=exception.code, message=exception.message, status_code=exception.status_code)

    if isinstance(exception, PydanticValidationError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=format_validation_error(exception.errors()),
            status_code=Constants.HTTP_BAD_REQUEST,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_INTERNAL,
        message=InternalError.default_message,
        status_code=Constants.HTTP_SERVER_ERROR,
        detail=str(exception) if debug else None,
    )
