"""
Session module exceptions.

Validation problems use shared.exceptions.ValidationError directly.
Backend refusals are re-raised as the operation-specific subclasses of
GatewayRejectedError below so callers can tell them apart.
"""

from typing import Optional

from shared.exceptions import AuthenticationError, GatewayRejectedError


class NotAuthenticatedError(AuthenticationError):
    """Raised when an operation needs a session and there is none."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message, code="NOT_AUTHENTICATED")


class MalformedTokenError(AuthenticationError):
    """Raised when a stored token cannot be decoded as a JWT with an expiry."""

    def __init__(self, message: str = "Invalid authentication token"):
        super().__init__(message, code="MALFORMED_TOKEN")


class NoRefreshTokenError(AuthenticationError):
    """Raised when a refresh is requested but no refresh token is stored."""

    def __init__(self, message: str = "No refresh token available"):
        super().__init__(message, code="NO_REFRESH_TOKEN")


class SessionExpiredError(AuthenticationError):
    """
    Raised when the session could not be refreshed and has been ended.

    The caller is expected to send the user to `redirect_to`.
    """

    def __init__(
        self,
        redirect_to: str,
        message: str = "Your session has expired. Please log in again.",
    ):
        super().__init__(
            message,
            code="SESSION_EXPIRED",
            details={"redirect_to": redirect_to},
        )
        self.redirect_to = redirect_to


class RegistrationFailedError(GatewayRejectedError):
    """Raised when the backend refuses a registration."""

    def __init__(self, message: str = "Registration failed", status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code, code="REGISTRATION_FAILED")


class OtpRejectedError(GatewayRejectedError):
    """Raised when the backend refuses an OTP code."""

    def __init__(self, message: str = "OTP verification failed", status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code, code="OTP_REJECTED")


class OtpResendError(GatewayRejectedError):
    """Raised when a new OTP could not be issued."""

    def __init__(self, message: str = "Could not resend OTP", status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code, code="OTP_RESEND_FAILED")


class LoginRejectedError(GatewayRejectedError):
    """
    Raised when the backend refuses a login.

    The message is fixed so it never reveals whether the email exists.
    """

    MESSAGE = "Invalid email or password"

    def __init__(self, status_code: Optional[int] = None):
        super().__init__(self.MESSAGE, status_code=status_code, code="LOGIN_REJECTED")


class PasswordResetError(GatewayRejectedError):
    """Raised when a forgot-password or reset-password request is refused."""

    def __init__(self, message: str = "Password reset failed", status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code, code="PASSWORD_RESET_FAILED")


class PasswordChangeError(GatewayRejectedError):
    """Raised when the backend refuses a password change."""

    def __init__(self, message: str = "Password change failed", status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code, code="PASSWORD_CHANGE_FAILED")
