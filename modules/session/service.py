"""
Session manager implementation.

Owns the identity lifecycle: registration with OTP verification, login,
logout, token refresh and the password flows. It is the only writer of
the token fields in the TokenStore.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from gateways.base import IBackendGateway
from gateways.models import IssuedSession, TokenPair
from shared.config import Settings, get_settings
from shared.events import EventBus, SessionEnded, SessionEstablished
from shared.exceptions import GatewayRejectedError, StorefrontError, ValidationError
from shared.models import UserRecord
from shared.validation import (
    check_email,
    check_otp_code,
    check_password_strength,
    require_fields,
)

from .exceptions import (
    LoginRejectedError,
    MalformedTokenError,
    NoRefreshTokenError,
    NotAuthenticatedError,
    OtpRejectedError,
    OtpResendError,
    PasswordChangeError,
    PasswordResetError,
    RegistrationFailedError,
    SessionExpiredError,
)
from .models import PendingRegistration, PendingVerification
from .token_store import TokenStore

logger = logging.getLogger(__name__)

REGISTRATION_FIELDS = ("email", "password", "first_name", "last_name")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    """
    Implementation of the session manager.

    All operations validate their input before calling the gateway, and
    events are only published after every local write of the operation
    has been made.
    """

    def __init__(
        self,
        gateway: IBackendGateway,
        token_store: TokenStore,
        events: EventBus,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the session manager.

        Args:
            gateway: Backend gateway
            token_store: Where tokens and the cached user live
            events: Bus that receives SessionEstablished / SessionEnded
            settings: Client settings (defaults to get_settings())
            clock: Returns the current aware UTC time
        """
        self._gateway = gateway
        self._store = token_store
        self._events = events
        self._settings = settings or get_settings()
        self._clock = clock
        self._refresh_task: Optional[asyncio.Task] = None

    # Registration

    async def register(self, fields: Mapping[str, Any]) -> PendingVerification:
        """Submit a registration and remember it until the OTP is verified."""
        require_fields(fields, REGISTRATION_FIELDS)
        email = check_email(fields["email"].strip())
        password = check_password_strength(fields["password"])
        phone = fields.get("phone") or None

        try:
            receipt = await self._gateway.register(
                email=email,
                password=password,
                first_name=fields["first_name"].strip(),
                last_name=fields["last_name"].strip(),
                phone=phone,
            )
        except GatewayRejectedError as e:
            raise RegistrationFailedError(e.message, status_code=e.status_code) from e

        self._store.save_pending_registration(
            PendingRegistration(email=email, user_id=receipt.user_id)
        )
        logger.info(f"Registration submitted for user {receipt.user_id}, awaiting OTP")
        return PendingVerification(user_id=receipt.user_id, email=email)

    async def verify_otp(self, user_id: str, code: str) -> UserRecord:
        """Verify the registration OTP and open a session."""
        if not user_id:
            raise ValidationError("User ID is required", field="user_id")
        check_otp_code(code)

        try:
            issued = await self._gateway.verify_otp(user_id, code)
        except GatewayRejectedError as e:
            raise OtpRejectedError(e.message, status_code=e.status_code) from e

        self._store.clear_pending_registration()
        return self._establish(issued)

    async def resend_otp(self, user_id: str) -> None:
        if not user_id:
            raise ValidationError("User ID is required", field="user_id")
        try:
            await self._gateway.resend_otp(user_id)
        except GatewayRejectedError as e:
            raise OtpResendError(e.message, status_code=e.status_code) from e

    def get_pending_registration(self) -> Optional[PendingRegistration]:
        return self._store.get_pending_registration()

    # Login / logout

    async def login(self, email: str, password: str, remember: bool = False) -> UserRecord:
        """
        Open a session with email and password.

        Only the shape of the password is checked here; strength rules
        apply when passwords are set, not when they are used.
        """
        require_fields({"email": email, "password": password}, ("email", "password"))
        email = check_email(email.strip())

        try:
            issued = await self._gateway.login(email, password)
        except GatewayRejectedError as e:
            raise LoginRejectedError(status_code=e.status_code) from e

        if remember:
            self._store.remember_email(email)
        else:
            self._store.forget_email()
        return self._establish(issued)

    async def logout(self) -> None:
        """
        End the session.

        The backend is told first if there is a token to revoke, but a
        failure there never stops the local teardown.
        """
        token = self._store.get_access_token()
        try:
            if token:
                await self._gateway.logout(token)
        except StorefrontError as e:
            logger.warning(f"Logout notification failed, clearing session anyway: {e.message}")
        finally:
            self.end_session("logout")

    def end_session(self, reason: str) -> None:
        self._store.clear_all()
        logger.info(f"Session ended ({reason})")
        self._events.publish(SessionEnded(reason=reason))

    def _establish(self, issued: IssuedSession) -> UserRecord:
        self._store.save_tokens(issued.access_token, issued.refresh_token)
        self._store.save_user(issued.user)
        logger.info(f"Session established for user {issued.user.id}")
        self._events.publish(SessionEstablished(user=issued.user))
        return issued.user

    # Refresh

    async def refresh_session(self) -> TokenPair:
        """Refresh the token pair, joining a refresh that is already running."""
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.ensure_future(self._refresh())
        # Shield so one cancelled waiter does not abort the shared refresh
        return await asyncio.shield(self._refresh_task)

    async def _refresh(self) -> TokenPair:
        refresh_token = self._store.get_refresh_token()
        if not refresh_token:
            if self._store.get_access_token():
                self.end_session("refresh_failed")
            raise NoRefreshTokenError()

        try:
            pair = await self._gateway.refresh_token(refresh_token)
        except StorefrontError as e:
            logger.warning(f"Token refresh failed: {e.message}")
            if self._store.get_refresh_token() == refresh_token:
                self.end_session("refresh_failed")
            raise SessionExpiredError(redirect_to=self._settings.login_path) from e

        # The session ended or was replaced while the request was in flight
        if self._store.get_refresh_token() != refresh_token:
            logger.info("Session changed during token refresh, discarding new tokens")
            raise NotAuthenticatedError("Session ended during token refresh")

        self._store.save_tokens(pair.access_token, pair.refresh_token)
        logger.info("Access token refreshed")
        return pair

    # Passwords

    async def forgot_password(self, email: str) -> None:
        """Ask the backend to send a reset link."""
        require_fields({"email": email}, ("email",))
        email = check_email(email.strip())

        try:
            await self._gateway.forgot_password(email)
        except GatewayRejectedError as e:
            raise PasswordResetError(e.message, status_code=e.status_code) from e

        self._store.save_reset_email(email)

    async def reset_password(self, reset_token: str, new_password: str) -> None:
        require_fields(
            {"reset_token": reset_token, "new_password": new_password},
            ("reset_token", "new_password"),
        )
        check_password_strength(new_password, field="new_password")

        try:
            await self._gateway.reset_password(reset_token, new_password)
        except GatewayRejectedError as e:
            raise PasswordResetError(e.message, status_code=e.status_code) from e

        self._store.clear_reset_email()

    async def change_password(self, current_password: str, new_password: str) -> None:
        """Change the password of the logged-in user. The session stays valid."""
        token = self._store.get_access_token()
        if not token:
            raise NotAuthenticatedError()
        require_fields(
            {"current_password": current_password, "new_password": new_password},
            ("current_password", "new_password"),
        )
        check_password_strength(new_password, field="new_password")

        try:
            await self._gateway.change_password(token, current_password, new_password)
        except GatewayRejectedError as e:
            if e.is_unauthorized:
                self.end_session("unauthorized")
                raise NotAuthenticatedError() from e
            raise PasswordChangeError(e.message, status_code=e.status_code) from e

    def get_reset_email(self) -> Optional[str]:
        return self._store.get_reset_email()

    def get_remembered_email(self) -> Optional[str]:
        return self._store.get_remembered_email()

    # Derived state

    def is_authenticated(self) -> bool:
        """Recomputed from the token's expiry on every call."""
        expiry = self.get_token_expiry()
        return expiry is not None and expiry > self._clock()

    def get_token_expiry(self) -> Optional[datetime]:
        token = self._store.get_access_token()
        if not token:
            return None
        try:
            return self._store.decode_expiry(token)
        except MalformedTokenError:
            logger.debug("Stored access token could not be decoded")
            return None

    def get_current_user(self) -> Optional[UserRecord]:
        return self._store.get_cached_user()

    def set_current_user(self, user: UserRecord) -> None:
        self._store.save_user(user)

    def get_access_token(self) -> Optional[str]:
        return self._store.get_access_token()
