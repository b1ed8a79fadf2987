"""
Session module.

Handles token storage and decoding, registration with OTP verification,
login/logout, token refresh and the password flows.

Public API:
- ISessionManager: Interface for session operations
- SessionManager: Default implementation
- TokenStore: Persistence and decoding of credentials
- Session exceptions: NotAuthenticatedError, SessionExpiredError, etc.
"""

from .interfaces import ISessionManager
from .models import PendingRegistration, PendingVerification, TokenClaims
from .token_store import TokenStore
from .service import SessionManager
from .exceptions import (
    NotAuthenticatedError,
    MalformedTokenError,
    NoRefreshTokenError,
    SessionExpiredError,
    RegistrationFailedError,
    OtpRejectedError,
    OtpResendError,
    LoginRejectedError,
    PasswordResetError,
    PasswordChangeError,
)

__all__ = [
    # Interface
    "ISessionManager",
    # Implementation
    "SessionManager",
    "TokenStore",
    # Models
    "PendingRegistration",
    "PendingVerification",
    "TokenClaims",
    # Exceptions
    "NotAuthenticatedError",
    "MalformedTokenError",
    "NoRefreshTokenError",
    "SessionExpiredError",
    "RegistrationFailedError",
    "OtpRejectedError",
    "OtpResendError",
    "LoginRejectedError",
    "PasswordResetError",
    "PasswordChangeError",
]
