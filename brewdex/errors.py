"""Error taxonomy shared by the beer store, its gateway, and the reconciler."""

from __future__ import annotations

from enum import Enum


class ErrorType(str, Enum):
    """Types of errors that can occur."""

    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    TRANSPORT_ERROR = "transport_error"
    PRECONDITION_FAILED = "precondition_failed"
    UPLOAD_ERROR = "upload_error"


class BrewdexError(Exception):
    """Base class for every error raised by the brewdex package."""

    error_type: ErrorType

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidArgumentError(BrewdexError):
    """Raised when a beer selection input is not a finite integer."""

    error_type = ErrorType.INVALID_ARGUMENT


class NotFoundError(BrewdexError):
    """Raised when a fetch succeeded but yielded no matching beer."""

    error_type = ErrorType.NOT_FOUND


class TransportError(BrewdexError):
    """Raised for non-success HTTP statuses and network failures."""

    error_type = ErrorType.TRANSPORT_ERROR

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PreconditionFailedError(BrewdexError):
    """Raised when annotating a beer that is not part of the catalog."""

    error_type = ErrorType.PRECONDITION_FAILED


class UploadError(BrewdexError):
    """Raised when the user profile endpoint rejects a push."""

    error_type = ErrorType.UPLOAD_ERROR

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


__all__ = [
    "BrewdexError",
    "ErrorType",
    "InvalidArgumentError",
    "NotFoundError",
    "PreconditionFailedError",
    "TransportError",
    "UploadError",
]
