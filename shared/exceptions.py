"""
Base exception classes for the storefront client.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application.
"""

from typing import Optional, Any


class StorefrontError(Exception):
    """
    Base exception for all storefront client errors.

    All custom exceptions should inherit from this class. The message is
    always human-readable so callers can show it to the user as-is.
    """

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
        """Convert exception to a dictionary for display or logging."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(StorefrontError):
    """
    Input rejected on the client before any network call.

    Carries the name of the offending field when there is one.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code or "VALIDATION_ERROR", details)
        self.field = field
        if field:
            self.details["field"] = field


class NotFoundError(StorefrontError):
    """Resource not found."""

    pass


class AuthenticationError(StorefrontError):
    """Authentication failed (invalid, missing or expired credentials)."""

    pass


class GatewayRejectedError(StorefrontError):
    """The backend answered and explicitly refused the request."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.status_code = status_code
        if status_code is not None:
            self.details["status_code"] = status_code

    @property
    def is_unauthorized(self) -> bool:
        """True for 401-class rejections (session no longer valid)."""
        return self.status_code == 401

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class NetworkUnavailableError(StorefrontError):
    """The backend could not be reached at all."""

    def __init__(
        self,
        message: str = "The service is currently unreachable",
        operation: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code="NETWORK_UNAVAILABLE", details=details)
        self.operation = operation
        if operation:
            self.details["operation"] = operation
