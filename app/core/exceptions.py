"""
Global exception handling for the application.
Standardizes error responses using Problem Details for HTTP APIs (RFC 7807).

Every application error carries a ``kind`` string so that callers of the
manual send endpoint get the same error kinds the mobile clients expect
(unauthenticated, invalid-argument, not-found, failed-precondition, internal).
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class AppError(Exception):
    """Base class for all application exceptions."""
    kind = "internal"

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class EntityNotFoundException(AppError):
    """Resource not found error."""
    kind = "not-found"

    def __init__(self, message: str = "Entity not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_404_NOT_FOUND, details)


class InvalidArgumentException(AppError):
    """Missing or malformed request fields."""
    kind = "invalid-argument"

    def __init__(self, message: str = "Invalid argument", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)


class BusinessRuleViolationException(AppError):
    """Business logic violation error."""
    kind = "failed-precondition"

    def __init__(self, message: str = "Business rule violation", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_422_UNPROCESSABLE_ENTITY, details)


class FailedPreconditionException(AppError):
    """The target resource exists but is not in a usable state."""
    kind = "failed-precondition"

    def __init__(self, message: str = "Failed precondition", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_412_PRECONDITION_FAILED, details)


class UnauthorizedException(AppError):
    """Authentication failure error."""
    kind = "unauthenticated"

    def __init__(self, message: str = "Unauthorized", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED, details)


class ForbiddenException(AppError):
    """Authorization failure error."""
    kind = "permission-denied"

    def __init__(self, message: str = "Forbidden", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_403_FORBIDDEN, details)


class DeliveryFailureException(AppError):
    """The messaging service rejected or failed a send."""
    kind = "internal"

    def __init__(self, message: str = "Delivery failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_502_BAD_GATEWAY, details)


class PersistenceException(AppError):
    """A database write failed and was rolled back."""
    kind = "internal"

    def __init__(self, message: str = "Failed to persist changes", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR, details)


def _error_body(request: Request, code: str, kind: str, message: str, details: Optional[Dict[str, Any]] = None) -> dict:
    return {
        "error": {
            "code": code,
            "kind": kind,
            "message": message,
            "details": details or {},
            "path": request.url.path,
        }
    }


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as a JSON problem response."""
    if exc.status_code >= 500:
        logger.error("Application error", code=exc.__class__.__name__, error=exc.message, path=request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.__class__.__name__, exc.kind, exc.message, exc.details),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all uncaught exceptions globally."""

    if isinstance(exc, AppError):
        return await app_error_handler(request, exc)

    logger.exception("Unexpected error occurred", path=request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            request,
            "InternalServerError",
            "internal",
            "An unexpected error occurred. Please try again later.",
        ),
    )
