"""Error types and classification for list and task operations."""

from enum import Enum

from pydantic import BaseModel


class TodoSyncError(Exception):
    """Base class for all todosync errors."""


class ValidationError(TodoSyncError):
    """A required field is empty or a field value is out of range.

    Raised before any store call; the caller's input is left unchanged.
    """


class AuthRequiredError(TodoSyncError):
    """No authenticated user at call time."""


class RemoteError(TodoSyncError):
    """The underlying document store request failed."""


class InvalidTransitionError(TodoSyncError):
    """The edit session cannot perform the requested transition."""


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_AUTH_REQUIRED = "ERR_AUTH_REQUIRED"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_REMOTE = "ERR_REMOTE"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


def classify_error(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised by a list or task operation

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    error_str = str(exception).lower()

    if isinstance(exception, ValidationError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=str(exception),
            suggestion="Fill in the required fields and try again.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, AuthRequiredError):
        return ErrorResponse(
            code=ErrorCode.ERR_AUTH_REQUIRED,
            message="You need to be signed in to do that.",
            suggestion="Sign in and try again.",
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, InvalidTransitionError):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_STATE_TRANSITION,
            message="This action cannot be performed in the current edit state.",
            suggestion="Start editing a task first.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, RemoteError) and "not found" in error_str:
        return ErrorResponse(
            code=ErrorCode.ERR_NOT_FOUND,
            message="That item no longer exists.",
            suggestion="Refresh to see the current lists.",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, RemoteError):
        return ErrorResponse(
            code=ErrorCode.ERR_REMOTE,
            message="The change could not be saved.",
            suggestion="Please check your connection and try again.",
            severity=ErrorSeverity.MEDIUM,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )
