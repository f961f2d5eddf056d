"""
Base exception classes for the Stickerlab backend.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application: every
exception carries a machine-readable code, an HTTP status, a retryability
flag and a message that is safe to show to end users.
"""

from typing import Optional, Any


class StickerError(Exception):
    """
    Base exception for all Stickerlab errors.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500
    retryable: bool = False
    user_message: str = "Something unexpected happened. Please try again."
    # Error taxonomy category (see modules.errors.ErrorType)
    category: str = "UNKNOWN"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details:
            result["details"] = self.details
        return result


class NotFoundError(StickerError):
    """Resource not found."""

    status_code = 404
    category = "VALIDATION"
    user_message = "We couldn't find what you were looking for."


class ValidationError(StickerError):
    """Input validation failed."""

    status_code = 400
    category = "VALIDATION"
    user_message = "Some of the information provided is invalid."


class AuthenticationError(StickerError):
    """Authentication failed (invalid or missing credentials)."""

    status_code = 401
    category = "AUTHENTICATION"
    user_message = "Your session has expired. Please log in again."


class AuthorizationError(StickerError):
    """Authorization failed (insufficient permissions)."""

    status_code = 403
    category = "AUTHENTICATION"
    user_message = "You don't have permission to perform this action."


class ExternalServiceError(StickerError):
    """Error communicating with an external service."""

    status_code = 502
    retryable = True
    category = "NETWORK"
    user_message = "A service we depend on is having trouble. Please try again."

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        # Upstream HTTP status, inspected by retry predicates
        self.status = status
        self.details["service"] = service
        if status is not None:
            self.details["status"] = status


class StorageError(StickerError):
    """The persistent store could not complete an operation."""

    status_code = 503
    retryable = True
    category = "NETWORK"
    user_message = "Our servers are experiencing issues. Please try again in a moment."

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, code="DATABASE_ERROR", details=details)
