"""Typed application errors.

Every error is an ``HTTPException`` so that endpoints and services can raise
them directly, while the ``error`` attribute carries the machine readable code
rendered by the error handlers.
"""

from typing import Optional
from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base class for errors surfaced to API callers."""

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_default = "internal_error"

    def __init__(self, message: Optional[str] = None, error: Optional[str] = None):
        self.error = error or self.error_default
        self.message = message or self.error
        super().__init__(status_code=self.status_code_default, detail=self.message)


class UnauthorizedError(AppError):
    """No authenticated identity on the request."""

    status_code_default = status.HTTP_401_UNAUTHORIZED
    error_default = "unauthorized"


class ValidationError(AppError):
    """Missing or malformed required fields."""

    status_code_default = status.HTTP_400_BAD_REQUEST
    error_default = "missing_fields"


class NotFoundError(AppError):
    """Target id is not among the caller's templates."""

    status_code_default = status.HTTP_404_NOT_FOUND
    error_default = "not_found"


class ConfirmationMismatchError(AppError):
    """Delete confirmation text does not match the stored template name."""

    status_code_default = status.HTTP_400_BAD_REQUEST
    error_default = "confirm_mismatch"


class StorageError(AppError):
    """Object store write failed."""

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_default = "storage_error"


class DatasetLoadError(AppError):
    """The shared template dataset could not be parsed."""

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_default = "load_failed"


class SendError(AppError):
    """Mail dispatch failed; message comes from the mail API."""

    status_code_default = status.HTTP_502_BAD_GATEWAY
    error_default = "send_failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message=message, error=message or self.error_default)
