"""Exception handlers producing the JSON error envelope."""

import logging
import uuid
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalogue.core.app_exceptions import AppError, ErrorCode
from catalogue.core.config import settings

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Error response envelope: {error_code, message, details, request_id}."""

    error_code: str
    message: str
    details: Any | None = None
    request_id: str | None = None


def get_request_id(request: Request) -> str:
    """Get request ID from request state or generate new one."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return str(uuid.uuid4())


def _error_response(
    request: Request,
    status_code: int,
    code: ErrorCode | str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error_code=code.value if isinstance(code, ErrorCode) else code,
            message=message,
            details=details,
            request_id=get_request_id(request),
        ).model_dump(),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Query parameters that fail validation (422), one entry per field."""
    details = [
        {
            "field": ".".join(str(loc) for loc in error.get("loc", [])),
            "issue": error.get("msg", "Validation error"),
            "type": error.get("type", "validation_error"),
        }
        for error in exc.errors()
    ]
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ErrorCode.VALIDATION_ERROR,
        "Invalid request parameters",
        details,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """AppError with its code; any other HTTP error (e.g. unknown route) as HTTP_ERROR."""
    if isinstance(exc, AppError):
        return _error_response(request, exc.status_code, exc.code, exc.message, exc.details)

    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(request, exc.status_code, ErrorCode.HTTP_ERROR, message)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unhandled exceptions (500). Details are hidden in production."""
    logger.error(
        "Unhandled error",
        extra={"request_id": get_request_id(request), "path": request.url.path},
        exc_info=exc,
    )

    if settings.ENV == "prod":
        message = "An internal server error occurred"
        details = None
    else:
        message = str(exc)
        details = {"type": type(exc).__name__}

    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_ERROR, message, details
    )
