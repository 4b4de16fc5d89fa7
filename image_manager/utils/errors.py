"""
Error handling utilities for consistent error responses.
"""
from typing import Optional

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse

from image_manager.models import ErrorInfo


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        code: str,
        message: str,
        http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        retryable: bool = False,
        details: Optional[dict] = None,
    ):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.retryable = retryable
        self.details = details or {}
        super().__init__(self.message)


# Standard error codes
class ErrorCodes:
    """Standard error codes."""

    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    UNSUPPORTED_MEDIA_TYPE = "UNSUPPORTED_MEDIA_TYPE"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DECODE_FAILED = "DECODE_FAILED"
    ENCODE_FAILED = "ENCODE_FAILED"
    DIRECTORY_CREATE_FAILED = "DIRECTORY_CREATE_FAILED"
    INVALID_MODE = "INVALID_MODE"
    IMAGE_UNAVAILABLE = "IMAGE_UNAVAILABLE"


class ImageManagerError(APIError):
    """
    Base exception for image pipeline failures.

    Recoverable errors are absorbed by ImageManager.resolve and replaced by the
    placeholder image; the others propagate to the caller.
    """

    code = ErrorCodes.INTERNAL_ERROR
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    recoverable = True

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code=type(self).code,
            message=message,
            http_status=type(self).http_status,
            details=details,
        )


class InvalidInputError(ImageManagerError):
    """Source path is missing, empty, or not a regular file."""

    code = ErrorCodes.INVALID_INPUT
    http_status = status.HTTP_400_BAD_REQUEST


class UnsupportedFormatError(ImageManagerError):
    """Source MIME type or requested output format is not supported."""

    code = ErrorCodes.UNSUPPORTED_MEDIA_TYPE
    http_status = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE


class DecodeError(ImageManagerError):
    code = ErrorCodes.DECODE_FAILED


class EncodeError(ImageManagerError):
    code = ErrorCodes.ENCODE_FAILED


class DirectoryCreateError(ImageManagerError):
    """Cache directory could not be created. Never retried."""

    code = ErrorCodes.DIRECTORY_CREATE_FAILED
    recoverable = False


class InvalidModeError(ImageManagerError):
    """Unknown output mode. A configuration error, not a data error."""

    code = ErrorCodes.INVALID_MODE
    http_status = status.HTTP_400_BAD_REQUEST
    recoverable = False


def create_error_response(error: APIError) -> JSONResponse:
    """
    Create a standardized error response.

    Args:
        error: APIError instance

    Returns:
        JSONResponse with error envelope
    """
    error_info = ErrorInfo(
        code=error.code,
        message=error.message,
        retryable=error.retryable,
        details=error.details if error.details else None,
    )
    return JSONResponse(
        status_code=error.http_status,
        content={"error": error_info.model_dump(exclude_none=True)},
    )


def handle_exception(e: Exception) -> JSONResponse:
    """
    Map exceptions to API error responses.

    Args:
        e: Exception to handle

    Returns:
        JSONResponse with appropriate error
    """
    if isinstance(e, APIError):
        return create_error_response(e)

    # Map common FastAPI/HTTP exceptions
    if isinstance(e, HTTPException):
        code_map = {
            status.HTTP_400_BAD_REQUEST: ErrorCodes.INVALID_INPUT,
            status.HTTP_404_NOT_FOUND: ErrorCodes.NOT_FOUND,
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: ErrorCodes.PAYLOAD_TOO_LARGE,
            status.HTTP_415_UNSUPPORTED_MEDIA_TYPE: ErrorCodes.UNSUPPORTED_MEDIA_TYPE,
        }
        code = code_map.get(e.status_code, ErrorCodes.INTERNAL_ERROR)
        return create_error_response(
            APIError(
                code=code,
                message=e.detail,
                http_status=e.status_code,
            )
        )

    # Unknown exception
    return create_error_response(
        APIError(
            code=ErrorCodes.INTERNAL_ERROR,
            message="An unexpected error occurred.",
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    )
