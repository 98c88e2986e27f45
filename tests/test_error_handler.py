"""
Tests for error normalization
"""
import pytest
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError, field_validator
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException

from utils.error_handler import normalize_error
from utils.errors import (
    ConflictError,
    DuplicateKeyError,
    InvalidIdentifierError,
    NotFoundError,
    RecordValidationError,
    UnauthorizedError,
)


def raised(exc):
    """Return ``exc`` with a populated traceback."""
    try:
        raise exc
    except Exception as caught:
        return caught


@pytest.mark.parametrize(
    "error, status_code, message",
    [
        (ConflictError("User already exists"), 409, "User already exists"),
        (NotFoundError("No account found"), 404, "No account found"),
        (UnauthorizedError("Incorrect password"), 401, "Incorrect password"),
    ],
)
def test_domain_errors_keep_status_and_message(error, status_code, message):
    assert normalize_error(error, debug=False) == (status_code, {"success": False, "message": message})


def test_http_exception_is_a_domain_error():
    status_code, body = normalize_error(HTTPException(status_code=405, detail="Method Not Allowed"), debug=False)
    assert status_code == 405
    assert body["message"] == "Method Not Allowed"


def test_invalid_identifier_is_not_found():
    status_code, body = normalize_error(InvalidIdentifierError("123", "User"), debug=False)
    assert status_code == 404
    assert body["message"] == "Resource not found!"


def test_duplicate_key_names_field_and_value():
    status_code, body = normalize_error(DuplicateKeyError({"email": "a@b.com"}), debug=False)
    assert status_code == 400
    assert body["message"] == "Duplicate value for email: a@b.com"


def test_postgres_unique_violation_is_recognized():
    orig = Exception('duplicate key value violates unique constraint "ix_users_email"\n'
                     'DETAIL:  Key (email)=(a@b.com) already exists.')
    error = IntegrityError("INSERT INTO users ...", {}, orig)

    status_code, body = normalize_error(error, debug=False)

    assert status_code == 400
    assert body["message"] == "Duplicate value for email: a@b.com"


def test_sqlite_unique_violation_is_recognized():
    error = IntegrityError("INSERT INTO users ...", {"email": "a@b.com"},
                           Exception("UNIQUE constraint failed: users.email"))

    status_code, body = normalize_error(error, debug=False)

    assert status_code == 400
    assert body["message"] == "Duplicate value for email: a@b.com"


def test_record_validation_joins_messages():
    error = RecordValidationError({
        "start_date": "Start date must be in the past",
        "renewal_date": "Renewal date must be after the start date",
    })

    status_code, body = normalize_error(error, debug=False)

    assert status_code == 400
    assert body["message"] == "Start date must be in the past, Renewal date must be after the start date"


class NamedPayload(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def check_name(cls, value):
        raise ValueError("Name is required")


def test_request_validation_error_uses_validator_messages():
    with pytest.raises(ValidationError) as exc_info:
        NamedPayload(name="x")

    status_code, body = normalize_error(RequestValidationError(exc_info.value.errors()), debug=False)
    assert status_code == 400
    assert body["message"] == "Name is required"


def test_bare_pydantic_error_is_internal():
    with pytest.raises(ValidationError) as exc_info:
        NamedPayload(name="x")

    status_code, body = normalize_error(exc_info.value, debug=False)
    assert status_code == 500
    assert body["success"] is False


def test_unclassified_error_is_internal():
    status_code, body = normalize_error(RuntimeError("boom"), debug=False)
    assert status_code == 500
    assert body == {"success": False, "message": "boom"}


def test_unclassified_error_without_message_uses_fallback():
    status_code, body = normalize_error(RuntimeError(), debug=False)
    assert status_code == 500
    assert body["message"] == "Internal Server Error"


def test_debug_mode_includes_stack_and_original_error():
    _, body = normalize_error(raised(RuntimeError("boom")), debug=True)
    assert "RuntimeError: boom" in body["stack"]
    assert body["originalError"] == {"type": "RuntimeError", "message": "boom"}


@pytest.mark.parametrize("error", [
    RuntimeError("boom"),
    ConflictError("User already exists"),
    DuplicateKeyError({"email": "a@b.com"}),
])
def test_production_mode_omits_debug_details(error):
    _, body = normalize_error(raised(error), debug=False)
    assert "stack" not in body
    assert "originalError" not in body
