"""Custom exception handlers for consistent error responses.

Domain services raise ``RepoTrackException`` subclasses; the handlers
registered here turn them (and framework / database errors) into the
standard ``{"error": {"code", "message", "details"}}`` body.
"""

import logging
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class RepoTrackException(Exception):
    """Base exception for RepoTrack application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(self.message)


class ValidationError(RepoTrackException):
    """Malformed input the request schema could not catch (e.g. type-dependent fields)."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VALIDATION_ERROR",
        )


class NotFoundError(RepoTrackException):
    """Exception for resources not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
        )


class StateError(RepoTrackException):
    """Operation not allowed in the entity's current lifecycle state."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="INVALID_STATE",
        )


class ConflictError(RepoTrackException):
    """Exception for concurrent or duplicate writes (e.g. a second running timer)."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONFLICT",
        )


class AuthorizationError(RepoTrackException):
    """Exception for permission denied."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="PERMISSION_DENIED",
        )


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
) -> JSONResponse:
    """Create standardized error response.

    Format:
    {
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable error message",
            "details": {...}  // Optional additional details
        }
    }
    """
    content = {
        "error": {
            "code": error_code,
            "message": message,
        }
    }

    if details:
        content["error"]["details"] = details

    return JSONResponse(status_code=status_code, content=content)


async def repotrack_exception_handler(
    request: Request,
    exc: RepoTrackException,
) -> JSONResponse:
    """Handle domain exceptions raised by services and dependencies."""
    level = logging.INFO if exc.status_code == status.HTTP_404_NOT_FOUND else logging.WARNING
    logger.log(
        level,
        f"{request.method} {request.url.path} rejected: {exc.error_code} - {exc.message}",
        extra={"error_code": exc.error_code, "path": request.url.path},
    )

    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
    )


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    """Handle FastAPI HTTP exceptions (401 from the auth dependency, unknown routes)."""
    if exc.status_code >= 500:
        logger.error(
            f"HTTP {exc.status_code}: {exc.detail}",
            extra={"path": request.url.path, "method": request.method},
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {"code": f"HTTP_{exc.status_code}", "message": str(exc.detail)}
        },
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, PydanticValidationError],
) -> JSONResponse:
    """Handle request-body and ``reposition_data`` form validation errors."""
    errors = [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(
        f"Invalid payload on {request.method} {request.url.path}: "
        f"{', '.join(e['field'] or '(body)' for e in errors)}"
    )

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation error",
        error_code="VALIDATION_ERROR",
        details={"errors": errors},
    )


# Unique indexes of the schema, matched against the driver message.
# PostgreSQL reports the index name, SQLite the table.column list.
_UNIQUE_VIOLATIONS = (
    (
        ("uq_reposition_timers_running", "reposition_timers.reposition_id"),
        "A timer is already running for this reposition and area",
    ),
    (
        ("ix_repositions_folio", "repositions.folio"),
        "Folio already issued, retry the request",
    ),
    (
        ("ix_users_username", "users.username"),
        "Username already taken",
    ),
)


def classify_integrity_error(error_msg: str) -> tuple[int, str, str]:
    """Map a driver integrity message to ``(status_code, error_code, message)``."""
    lowered = error_msg.lower()
    for markers, message in _UNIQUE_VIOLATIONS:
        if any(marker in lowered for marker in markers):
            return status.HTTP_409_CONFLICT, "CONFLICT", message

    if "unique" in lowered or "duplicate key" in lowered:
        return status.HTTP_409_CONFLICT, "DUPLICATE_RECORD", "A record with this value already exists"
    if "foreign key" in lowered:
        return (
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "FOREIGN_KEY_VIOLATION",
            "Referenced reposition or user does not exist",
        )
    if "not null" in lowered:
        return status.HTTP_422_UNPROCESSABLE_ENTITY, "NULL_VALUE_NOT_ALLOWED", "Required field is missing"
    return status.HTTP_422_UNPROCESSABLE_ENTITY, "INTEGRITY_ERROR", "Database constraint violation"


async def database_exception_handler(
    request: Request,
    exc: IntegrityError,
) -> JSONResponse:
    """Handle integrity errors that escaped the services (commit-time violations)."""
    error_msg = str(exc.orig) if exc.orig is not None else str(exc)
    status_code, error_code, message = classify_integrity_error(error_msg)

    log = logger.warning if status_code == status.HTTP_409_CONFLICT else logger.error
    log(
        f"Integrity error on {request.method} {request.url.path}: {error_msg}",
        extra={"error_code": error_code, "path": request.url.path},
    )

    return create_error_response(
        status_code=status_code,
        message=message,
        error_code=error_code,
    )


async def operational_exception_handler(
    request: Request,
    exc: OperationalError,
) -> JSONResponse:
    """Handle database operational errors (connection issues, etc.)."""
    logger.error(
        f"Database unavailable on {request.method} {request.url.path}: {exc.orig or exc}"
    )

    return create_error_response(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        message="Database temporarily unavailable. Please try again.",
        error_code="DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle all other unhandled exceptions."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc}",
        exc_info=exc,
    )

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected error occurred. Please try again later.",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Register all custom exception handlers with FastAPI app."""
    app.add_exception_handler(RepoTrackException, repotrack_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, database_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
