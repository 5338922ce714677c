"""Domain errors and the single HTTP boundary that renders them.

Services raise the typed errors below; ``register_exception_handlers`` maps
every one of them (and anything unexpected) to a JSON envelope of the form
``{statusCode, message, timestamp, errors?}``.
"""
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, errors: Any = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class DuplicateEmail(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Email is already registered."


class InvalidCredentials(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid email or password."


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden resource"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class LeaveNotPending(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Only pending leave requests can change status."


class HashFormatError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Stored password hash is malformed."


class TokenInvalid(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token"


class TokenExpired(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Token has expired"


def error_envelope(status_code: int, message: Any, errors: Any = None) -> dict:
    body = {
        "statusCode": status_code,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if errors:
        body["errors"] = errors
    return body


def _json_error(status_code: int, message: Any, errors: Any = None, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_envelope(status_code, message, errors),
        headers=headers,
    )


def _format_validation_errors(exc: RequestValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return messages


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return _json_error(exc.status_code, exc.message, exc.errors, headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _json_error(
        status.HTTP_400_BAD_REQUEST,
        "Validation failed",
        _format_validation_errors(exc),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _json_error(exc.status_code, exc.detail, headers=getattr(exc, "headers", None))


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error while handling %s %s", request.method, request.url.path)
    return _json_error(status.HTTP_503_SERVICE_UNAVAILABLE, "Database unavailable.")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error while handling %s %s", request.method, request.url.path)
    return _json_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
