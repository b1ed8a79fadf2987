"""
Session module interface.

Other modules should depend on ISessionManager, not the concrete
implementation. This enables testing with fakes.
"""

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from gateways.models import TokenPair
from shared.models import UserRecord

from .models import PendingRegistration, PendingVerification


@runtime_checkable
class ISessionManager(Protocol):
    """
    Interface for identity lifecycle operations.

    This protocol defines the contract that the session module exposes
    to the accounts and auth_state modules.
    """

    async def register(self, fields: Mapping[str, Any]) -> PendingVerification:
        """
        Submit a registration and wait for OTP verification.

        Args:
            fields: email, password, first_name, last_name and optional phone

        Returns:
            PendingVerification carrying the user ID for verify_otp

        Raises:
            ValidationError: A field failed client-side validation
            RegistrationFailedError: The backend refused the registration
        """
        ...

    async def verify_otp(self, user_id: str, code: str) -> UserRecord:
        """
        Complete a registration and open a session.

        Raises:
            ValidationError: Code is not exactly 6 digits
            OtpRejectedError: The backend refused the code
        """
        ...

    async def resend_otp(self, user_id: str) -> None:
        ...

    async def login(self, email: str, password: str, remember: bool = False) -> UserRecord:
        """
        Open a session with email and password.

        Raises:
            ValidationError: Missing or malformed input
            LoginRejectedError: Wrong credentials (message never says which)
        """
        ...

    async def logout(self) -> None:
        """End the session locally, notifying the backend on a best-effort basis."""
        ...

    async def refresh_session(self) -> TokenPair:
        """
        Exchange the refresh token for a new pair.

        Concurrent callers share a single in-flight request.

        Raises:
            NoRefreshTokenError: Nothing to refresh with
            SessionExpiredError: The backend refused; the session was ended
        """
        ...

    def end_session(self, reason: str) -> None:
        """Tear the session down locally without contacting the backend."""
        ...

    async def forgot_password(self, email: str) -> None:
        ...

    async def reset_password(self, reset_token: str, new_password: str) -> None:
        ...

    async def change_password(self, current_password: str, new_password: str) -> None:
        ...

    def is_authenticated(self) -> bool:
        """True iff an access token exists and its expiry is in the future."""
        ...

    def get_token_expiry(self) -> Optional[datetime]:
        """Expiry of the stored access token, or None if absent or unreadable."""
        ...

    def get_current_user(self) -> Optional[UserRecord]:
        ...

    def set_current_user(self, user: UserRecord) -> None:
        """Replace the session's user record (after a confirmed profile change)."""
        ...

    def get_access_token(self) -> Optional[str]:
        ...

    def get_pending_registration(self) -> Optional[PendingRegistration]:
        ...
