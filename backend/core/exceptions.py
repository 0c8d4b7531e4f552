"""
Exceptions and handlers for consistent error behaviour.

API errors produce a uniform ``{"detail", "error_code", "path"}`` body.
Domain errors raised inside the ticket engine and its adapters never reach
the webhook caller; ingress code catches and logs them.
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class KDSError(Exception):
    """Base class for domain errors of the ticket engine"""


class MalformedEventError(KDSError):
    """Inbound payload cannot be turned into a ticket event"""


class PersistenceError(KDSError):
    """Snapshot could not be written to or read from durable storage"""


class OrderSourceError(KDSError):
    """The external order source could not be reached or answered badly"""


class APIError(HTTPException):
    """Base API error with consistent structure"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class NotFoundError(APIError):
    """Resource not found error"""

    def __init__(
        self, detail: str = "Resource not found", error_code: str = "NOT_FOUND"
    ):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND, detail=detail, error_code=error_code
        )


class ValidationError(APIError):
    """Validation error"""

    def __init__(
        self, detail: str = "Validation failed", error_code: str = "VALIDATION_ERROR"
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code,
        )


class ServiceUnavailableError(APIError):
    """Event queue is full or the engine is not running"""

    def __init__(
        self,
        detail: str = "Service temporarily unavailable",
        error_code: str = "SERVICE_UNAVAILABLE",
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code=error_code,
        )


async def handle_malformed_event(
    request: Request, exc: MalformedEventError
) -> JSONResponse:
    """Convert MalformedEventError to consistent API response"""
    logger.warning(f"Malformed event at {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": str(exc),
            "error_code": "MALFORMED_EVENT",
            "path": str(request.url.path),
        },
    )


async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API errors"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error_code": exc.error_code,
            "path": str(request.url.path),
        },
        headers=exc.headers,
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app"""
    app.add_exception_handler(MalformedEventError, handle_malformed_event)
    app.add_exception_handler(APIError, handle_api_error)
