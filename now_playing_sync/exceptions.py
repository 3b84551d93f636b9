"""Custom exceptions for Now Playing Sync with proper HTTP status codes."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error responses."""

    # Generic errors
    SYNC_ERROR = "SYNC_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Configuration errors
    CONFIG_ERROR = "CONFIG_ERROR"

    # Spotify errors
    AUTH_ERROR = "AUTH_ERROR"
    FETCH_TRANSIENT = "FETCH_TRANSIENT"
    FETCH_PERMANENT = "FETCH_PERMANENT"
    CONTROL_ERROR = "CONTROL_ERROR"

    # Discord errors
    MESSAGING_NOT_FOUND = "MESSAGING_NOT_FOUND"
    MESSAGING_ERROR = "MESSAGING_ERROR"


class FetchErrorKind(str, Enum):
    """Whether a fetch failure is worth retrying with backoff."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"


class MessagingErrorKind(str, Enum):
    """Failure classes of the messaging surface."""

    NOT_FOUND = "not_found"
    OTHER = "other"


class SyncException(Exception):
    """Base exception for sync errors with HTTP status code support.

    All custom exceptions inherit from this class so the HTTP layer and the
    scheduler can handle them uniformly.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SYNC_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize sync exception.

        Args:
            message: Human-readable error message
            code: Error code from ErrorCode enum
            status_code: HTTP status code (default 500)
            details: Additional error context/details
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ConfigError(SyncException):
    """A required setting is missing or invalid. Fatal at startup."""

    def __init__(self, message: str = "Invalid configuration", details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.CONFIG_ERROR,
            status_code=500,
            details=details,
        )


class AuthError(SyncException):
    """Spotify rejected the refresh-token exchange."""

    def __init__(self, message: str = "Spotify token refresh rejected", details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.AUTH_ERROR,
            status_code=502,
            details=details,
        )


class FetchError(SyncException):
    """Reading from Spotify failed."""

    def __init__(
        self,
        message: str,
        kind: FetchErrorKind = FetchErrorKind.TRANSIENT,
        details: dict[str, Any] | None = None,
    ):
        self.kind = kind
        code = ErrorCode.FETCH_TRANSIENT if kind is FetchErrorKind.TRANSIENT else ErrorCode.FETCH_PERMANENT
        super().__init__(message, code=code, status_code=502, details=details)

    @property
    def transient(self) -> bool:
        return self.kind is FetchErrorKind.TRANSIENT


class MessagingError(SyncException):
    """A Discord channel or message operation failed."""

    def __init__(
        self,
        message: str,
        kind: MessagingErrorKind = MessagingErrorKind.OTHER,
        details: dict[str, Any] | None = None,
    ):
        self.kind = kind
        if kind is MessagingErrorKind.NOT_FOUND:
            super().__init__(message, code=ErrorCode.MESSAGING_NOT_FOUND, status_code=404, details=details)
        else:
            super().__init__(message, code=ErrorCode.MESSAGING_ERROR, status_code=502, details=details)


class ControlError(SyncException):
    """A playback control action was not accepted by Spotify."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code=ErrorCode.CONTROL_ERROR,
            status_code=502,
            details=details,
        )
