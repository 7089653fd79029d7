"""Error handling middleware."""

from collections.abc import Sequence
from typing import Any

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from medical_appointments.core.exceptions import AppException

logger = structlog.get_logger(__name__)


def _field_name(loc: Sequence[Any]) -> str:
    """Readable field path of a validation error, without the ``body`` prefix."""
    parts = [str(part) for part in loc if part != "body"]
    return ".".join(parts) or "body"


def format_validation_errors(errors: Sequence[dict[str, Any]]) -> str:
    """
    Aggregate every validation error into one message.

    Args:
        errors: Errors as returned by ``RequestValidationError.errors()``

    Returns:
        ``field: reason`` pairs joined by ``; ``
    """
    if any(error.get("type") == "json_invalid" for error in errors):
        return "Request body is not valid JSON"
    return "; ".join(f"{_field_name(error.get('loc', ()))}: {error.get('msg')}" for error in errors)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle custom application exceptions.

    Args:
        request: Request object
        exc: Application exception

    Returns:
        JSON error response
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.__class__.__name__,
            "message": exc.message,
            "path": str(request.url),
        },
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """
    Handle HTTP exceptions.

    Args:
        request: Request object
        exc: HTTP exception

    Returns:
        JSON error response
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTPException",
            "message": exc.detail,
            "path": str(request.url),
        },
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handle validation errors.

    Args:
        request: Request object
        exc: Validation exception

    Returns:
        400 JSON error response naming every invalid field
    """
    errors = exc.errors()
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "ValidationError",
            "message": f"Request validation failed: {format_validation_errors(errors)}",
            "details": [
                {"field": _field_name(error.get("loc", ())), "message": error.get("msg")}
                for error in errors
            ],
            "path": str(request.url),
        },
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Args:
        request: Request object
        exc: Exception

    Returns:
        JSON error response
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error=str(exc),
        error_type=exc.__class__.__name__,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "InternalServerError",
            "message": "An unexpected error occurred",
            "path": str(request.url),
        },
    )
