"""Catalogue error codes and the HTTP error carrying them."""

from enum import Enum
from typing import Any

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    """Stable `error_code` values of the error envelope."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    RESULT_WINDOW_EXCEEDED = "RESULT_WINDOW_EXCEEDED"
    SEARCH_FAILED = "SEARCH_FAILED"
    EXPORT_CONFIRMATION_REQUIRED = "EXPORT_CONFIRMATION_REQUIRED"
    EXPORT_FAILED = "EXPORT_FAILED"
    UNKNOWN_FACET = "UNKNOWN_FACET"


ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.HTTP_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.RESULT_WINDOW_EXCEEDED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.SEARCH_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.EXPORT_CONFIRMATION_REQUIRED: status.HTTP_409_CONFLICT,
    ErrorCode.EXPORT_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.UNKNOWN_FACET: status.HTTP_404_NOT_FOUND,
}


class AppError(HTTPException):
    """
    Error answered with the JSON error envelope.

    The HTTP status follows from the code unless given explicitly.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | list[Any] | None = None,
        status_code: int | None = None,
    ):
        super().__init__(
            status_code=ERROR_STATUS[code] if status_code is None else status_code,
            detail={"code": code.value, "message": message, "details": details},
        )
        self.code = code.value
        self.message = message
        self.details = details
