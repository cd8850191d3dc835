"""Error taxonomy for the API and error classification for the client."""

from enum import Enum
from typing import Literal

from src.core.config import Constants


class TaskAppError(Exception):
    """Base class for errors that cross the HTTP boundary as a `{message}` body."""

    status_code: int = Constants.HTTP_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InputValidationError(TaskAppError):
    """Missing or malformed required fields."""

    status_code = Constants.HTTP_BAD_REQUEST
    default_message = "Invalid request data"


class UnauthorizedError(TaskAppError):
    """Missing token, or a token whose user can no longer be resolved."""

    status_code = Constants.HTTP_UNAUTHORIZED
    default_message = "Access token required"


class InvalidTokenError(TaskAppError):
    """Token present but tampered with or expired."""

    status_code = Constants.HTTP_FORBIDDEN
    default_message = "Invalid token"


class ForbiddenError(TaskAppError):
    """Authenticated but not allowed to touch a specific task field."""

    status_code = Constants.HTTP_FORBIDDEN
    default_message = "Only the creator can edit title, description, responsible and due date"


class NotFoundError(TaskAppError):
    """Task absent or invisible to the caller. Both cases share this error."""

    status_code = Constants.HTTP_NOT_FOUND
    default_message = "Task not found"


class InvalidReferenceError(TaskAppError):
    """A referenced user does not exist."""

    status_code = Constants.HTTP_BAD_REQUEST
    default_message = "Responsible user not found"


class InternalError(TaskAppError):
    """Unexpected storage failure. Only the generic message is exposed."""


class ClientError(Exception):
    """Failure surfaced by the API client with a user-facing message.

    `status_code` is None when no HTTP response arrived (timeout, refused
    connection).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ErrorCategory(Enum):
    """Categories of failures seen by the client."""

    TIMEOUT = "timeout"
    CONNECTION_FAILED = "connection_failed"
    SESSION_EXPIRED = "session_expired"
    PERMISSION_DENIED = "permission_denied"
    SERVER_REPORTED = "server_reported"
    UNKNOWN = "unknown"


_ERROR_PATTERNS: dict[
    Literal["timeout", "connection"],
    dict[str, list[str] | set[str]],
] = {
    "timeout": {
        "phrases": ["timed out", "timeout"],
        "exception_types": {
            "TimeoutException",
            "ConnectTimeout",
            "ReadTimeout",
            "WriteTimeout",
            "PoolTimeout",
            "TimeoutError",
        },
    },
    "connection": {
        "phrases": ["connection refused", "connection reset", "name or service not known", "unreachable"],
        "exception_types": {"ConnectError", "ConnectionError", "ConnectionRefusedError", "RemoteProtocolError"},
    },
}

_PERMISSION_MESSAGES: dict[str, str] = {
    "update": "You don't have permission to edit this task.",
    "delete": "You don't have permission to delete this task.",
}


def _match_error_pattern(
    *,
    error_str: str,
    exception_type: str,
    pattern_type: Literal["timeout", "connection"],
) -> bool:
    """Return True if the error matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    return any(phrase in error_str for phrase in patterns["phrases"]) or exception_type in patterns["exception_types"]


def classify_client_error(
    exception: Exception | None = None,
    *,
    status_code: int | None = None,
    server_message: str | None = None,
    operation: str | None = None,
    fallback: str = "Request failed",
) -> tuple[ErrorCategory, str]:
    """Classify a client-side failure and return a user-facing message.

    Network-layer failures (timeouts, refused connections) and expired
    sessions get fixed messages, distinct from the validation messages the
    server reports.

    Args:
        exception: Transport exception raised by the HTTP client, if any
        status_code: HTTP status of the server response, if one arrived
        server_message: The `message` field of the server's error body
        operation: Client operation name ("update", "delete", ...)
        fallback: Message used when the server sent no message

    Returns:
        Tuple of (ErrorCategory, user_friendly_message)
    """
    if exception is not None:
        error_str = str(exception).lower()
        exception_type = type(exception).__name__

        if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="timeout"):
            return ErrorCategory.TIMEOUT, "Request timed out. Check your connection."

        if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="connection"):
            return ErrorCategory.CONNECTION_FAILED, "Could not connect to the server."

        return ErrorCategory.UNKNOWN, fallback

    if status_code == Constants.HTTP_UNAUTHORIZED:
        return ErrorCategory.SESSION_EXPIRED, "Session expired. Please log in again."

    if status_code == Constants.HTTP_FORBIDDEN and operation in _PERMISSION_MESSAGES:
        return ErrorCategory.PERMISSION_DENIED, _PERMISSION_MESSAGES[operation]

    if server_message:
        return ErrorCategory.SERVER_REPORTED, server_message

    return ErrorCategory.UNKNOWN, fallback
