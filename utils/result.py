"""
Result type returned by the services instead of raising domain errors.
"""
from dataclasses import dataclass
from typing import Any, Optional

from utils.errors import AppError


@dataclass(frozen=True)
class Result:
    data: Any = None
    message: str = "OK"
    error: Optional[AppError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data=None, message: str = "OK") -> "Result":
        return cls(data=data, message=message)

    @classmethod
    def failure(cls, error: AppError) -> "Result":
        return cls(message=error.message, error=error)

    def unwrap(self):
        """Return the payload, or raise the carried error for the error handler."""
        if self.error is not None:
            raise self.error
        return self.data
