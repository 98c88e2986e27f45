"""
Translate any error reaching the HTTP boundary into a uniform JSON response.

Classification order, first match wins:
    1. domain errors carrying their own status and message
    2. invalid identifier  -> 404 "Resource not found!"
    3. duplicate key       -> 400 "Duplicate value for <field>: <value>"
    4. field validation    -> 400, per-field messages joined with ", "
    5. anything else       -> 500
"""
import logging
import re
import traceback
from typing import Dict, Optional, Tuple

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from config.settings import get_settings
from utils.errors import AppError, PersistenceError

logger = logging.getLogger(__name__)

INTERNAL_SERVER_ERROR = "Internal Server Error"

# PostgreSQL: 'Key (email)=(a@b.com) already exists.'
_PG_DUPLICATE = re.compile(r"Key \((?P<field>[^)]+)\)=\((?P<value>.*)\) already exists")
# SQLite: 'UNIQUE constraint failed: users.email'
_SQLITE_DUPLICATE = re.compile(r"UNIQUE constraint failed: (?:\w+\.)?(?P<field>\w+)")


def _duplicate_key_value(exc: Exception) -> Optional[Dict[str, object]]:
    """Return {field: value} when ``exc`` reports a unique constraint violation."""
    if getattr(exc, "kind", None) == "duplicate_key":
        return exc.key_value or None

    if isinstance(exc, IntegrityError):
        text = str(exc.orig)
        match = _PG_DUPLICATE.search(text)
        if match:
            return {match.group("field"): match.group("value")}
        match = _SQLITE_DUPLICATE.search(text)
        if match:
            field = match.group("field")
            value = exc.params.get(field) if isinstance(exc.params, dict) else None
            return {field: value}
    return None


def _validation_messages(exc: Exception) -> Optional[list]:
    """Return per-field messages when ``exc`` is a field validation failure."""
    if getattr(exc, "kind", None) == "validation":
        return list(exc.errors.values())

    if isinstance(exc, RequestValidationError):
        messages = []
        for error in exc.errors():
            if error.get("type") == "value_error" and "error" in error.get("ctx", {}):
                messages.append(str(error["ctx"]["error"]))
                continue
            location = [str(part) for part in error.get("loc", ()) if part != "body"]
            prefix = f"{'.'.join(location)}: " if location else ""
            messages.append(f"{prefix}{error.get('msg', 'Invalid value')}")
        return messages
    return None


def _classify(exc: Exception) -> Tuple[int, str]:
    if isinstance(exc, AppError):
        return exc.status_code, exc.message

    if isinstance(exc, StarletteHTTPException):
        return exc.status_code, str(exc.detail)

    if getattr(exc, "kind", None) == "cast":
        return 404, "Resource not found!"

    key_value = _duplicate_key_value(exc)
    if key_value:
        field, value = next(iter(key_value.items()))
        return 400, f"Duplicate value for {field}: {value}"

    messages = _validation_messages(exc)
    if messages is not None:
        return 400, ", ".join(messages)

    return 500, str(exc) or INTERNAL_SERVER_ERROR


def normalize_error(exc: Exception, debug: bool) -> Tuple[int, dict]:
    """
    Return (status_code, body) for ``exc``.

    ``debug`` adds the stack trace and the original error to the body; it must
    be off in production.
    """
    status_code, message = _classify(exc)
    if status_code >= 500:
        logger.error(f"Unhandled error: {exc!r}", exc_info=exc)

    body = {"success": False, "message": message or INTERNAL_SERVER_ERROR}
    if debug:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        body["originalError"] = {"type": type(exc).__name__, "message": str(exc)}
    return status_code, body


def _settings_for(request: Request):
    """Settings the app resolves for its routes, honouring dependency overrides."""
    provider = request.app.dependency_overrides.get(get_settings, get_settings)
    return provider()


def error_response(request: Request, exc: Exception) -> JSONResponse:
    settings = _settings_for(request)
    status_code, body = normalize_error(exc, debug=not settings.is_production)
    headers = getattr(exc, "headers", None) if isinstance(exc, StarletteHTTPException) else None
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def _handle(request: Request, exc: Exception) -> JSONResponse:
    return error_response(request, exc)


class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    """Funnel exceptions no handler claimed into the normalizer."""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            return error_response(request, e)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _handle)
    app.add_exception_handler(PersistenceError, _handle)
    app.add_exception_handler(IntegrityError, _handle)
    app.add_exception_handler(RequestValidationError, _handle)
    app.add_exception_handler(StarletteHTTPException, _handle)
    app.add_middleware(UncaughtExceptionMiddleware)
