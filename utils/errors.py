"""
Error taxonomy shared by the services, repositories and the error handler.

Domain errors are raised on purpose by business logic and carry their own
HTTP status. Persistence errors describe a failure of the store and are
reclassified by the error handler through their ``kind`` discriminant.
"""
from typing import Dict, Optional


class AppError(Exception):
    """Base domain error with an explicit status code."""

    kind = "internal"
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ConflictError(AppError):
    kind = "conflict"
    status_code = 409
    default_message = "Conflict"


class NotFoundError(AppError):
    kind = "not_found"
    status_code = 404
    default_message = "Resource not found!"


class UnauthorizedError(AppError):
    kind = "unauthorized"
    status_code = 401
    default_message = "Unauthorized"


class PersistenceError(Exception):
    """Failure reported by the persistence layer."""

    kind = "persistence"


class InvalidIdentifierError(PersistenceError):
    """A record identifier does not have the shape the store expects."""

    kind = "cast"

    def __init__(self, value, model: str = "record"):
        self.value = value
        self.model = model
        super().__init__(f"Cast to identifier failed for value {value!r} at {model}")


class DuplicateKeyError(PersistenceError):
    """A unique constraint was violated."""

    kind = "duplicate_key"

    def __init__(self, key_value: Dict[str, object]):
        self.key_value = dict(key_value)
        super().__init__(f"Duplicate key: {self.key_value}")


class RecordValidationError(PersistenceError):
    """One or more fields of a record failed validation before the write."""

    kind = "validation"

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("Validation failed: " + ", ".join(self.errors.values()))
