"""Exception handlers for the FastAPI application."""
import logging
from fastapi import Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse
from email_verification.core.constants import GeneralErrorDetails

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception with message, status code, and optional data."""

    def __init__(self, message: str, status_code: int = 400, data: dict = None):
        self.message = str(message)
        self.status_code = status_code
        self.data = data or {}
        super().__init__(self.message)


def create_error_response(status_code: int, message: str, data: dict | None = None) -> JSONResponse:
    """Create a standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "data": data
        }
    )


def _field_path(loc: tuple) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "unknown"


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with standardized response format."""
    return create_error_response(exc.status_code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request body/query validation errors.

    Fields are reported by their dotted location without the source prefix,
    e.g. ``locals`` or ``credential``.
    """
    error_details = [
        {
            "field": _field_path(error.get("loc", ())),
            "message": error.get("msg", "").removeprefix("Value error, ")
        }
        for error in exc.errors()
    ]

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation error",
        data={"validation_errors": error_details}
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle verification lifecycle exceptions."""
    if exc.status_code >= 500:
        logger.error(
            f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}"
        )
    return create_error_response(exc.status_code, exc.message, exc.data or None)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other unhandled exceptions with error logging."""
    logger.exception(
        "Unhandled exception occurred",
        extra={"path": request.url.path, "method": request.method}
    )

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=GeneralErrorDetails.INTERNAL_SERVER_ERROR
    )
