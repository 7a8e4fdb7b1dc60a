"""Unit tests for the task error taxonomy and classification."""

import pytest
from pydantic import ValidationError

from src.core.errors import (
    DuplicateKeyError,
    ErrorCode,
    InternalError,
    TaskNotFoundError,
    TaskValidationError,
    classify_error_with_response,
    format_validation_error,
)
from src.domain.create_models import TaskCreate


@pytest.mark.unit
class TestTaskErrors:
    def test_default_messages(self):
        assert TaskNotFoundError().message == "Task not found"
        assert DuplicateKeyError().message == "Duplicate field value entered"
        assert InternalError().message == "Server error"

    @pytest.mark.parametrize(
        ("error", "code", "status_code"),
        [
            (TaskValidationError("title: Field required"), ErrorCode.ERR_VALIDATION, 400),
            (TaskNotFoundError(), ErrorCode.ERR_TASK_NOT_FOUND, 404),
            (DuplicateKeyError(), ErrorCode.ERR_DUPLICATE_KEY, 400),
            (InternalError(), ErrorCode.ERR_INTERNAL, 500),
        ],
    )
    def test_status_mapping(self, error, code, status_code):
        response = classify_error_with_response(error)

        assert response.code == code
        assert response.status_code == status_code
        assert response.message == error.message


@pytest.mark.unit
class TestClassifyErrorWithResponse:
    def test_internal_error_hides_cause(self):
        try:
            try:
                raise RuntimeError("disk I/O error at /var/db")
            except RuntimeError as e:
                raise InternalError() from e
        except InternalError as err:
            response = classify_error_with_response(err)

        assert response.message == "Server error"
        assert response.detail is None

    def test_internal_error_detail_in_debug_mode(self):
        try:
            try:
                raise RuntimeError("disk I/O error at /var/db")
            except RuntimeError as e:
                raise InternalError() from e
        except InternalError as err:
            response = classify_error_with_response(err, debug=True)

        assert response.detail == "disk I/O error at /var/db"

    def test_pydantic_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            TaskCreate.model_validate({"priority": "Urgent"})

        response = classify_error_with_response(exc_info.value)

        assert response.code == ErrorCode.ERR_VALIDATION
        assert response.status_code == 400
        assert "title: Field required" in response.message
        assert "priority:" in response.message

    def test_unknown_exception_is_opaque(self):
        response = classify_error_with_response(ValueError("secret internals"))

        assert response.code == ErrorCode.ERR_INTERNAL
        assert response.status_code == 500
        assert "secret" not in response.message
        assert response.detail is None


@pytest.mark.unit
def test_format_validation_error_strips_body_prefix():
    errors = [
        {"loc": ("body", "title"), "msg": "Field required"},
        {"loc": (), "msg": "Value error, tags may not be null"},
    ]

    assert format_validation_error(errors) == "title: Field required, Value error, tags may not be null"
