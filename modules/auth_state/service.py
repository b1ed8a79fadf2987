"""
Auth state coordinator.

The single observer of session lifecycle events. It turns them into
AuthSnapshot broadcasts for UI listeners, clears user data when a
session ends, runs post-login hooks (e.g. merging a guest cart) and
owns the proactive token refresh schedule.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional
from urllib.parse import quote

from modules.accounts.interfaces import IAccountService
from modules.session.exceptions import NotAuthenticatedError, SessionExpiredError
from modules.session.interfaces import ISessionManager
from shared.config import Settings, get_settings
from shared.events import EventBus, ProfileUpdated, SessionEnded, SessionEstablished
from shared.exceptions import GatewayRejectedError, StorefrontError
from shared.models import UserRecord

from .models import AuthGate, AuthSnapshot
from .scheduler import RefreshScheduler

logger = logging.getLogger(__name__)

Listener = Callable[[AuthSnapshot], None]
LoginHook = Callable[[UserRecord], None]

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthStateCoordinator:
    """
    Reconciles session events into broadcastable state.

    Listeners are called in registration order; one that raises is
    logged and does not stop delivery to the rest.
    """

    def __init__(
        self,
        session: ISessionManager,
        accounts: IAccountService,
        events: EventBus,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._session = session
        self._accounts = accounts
        self._events = events
        self._settings = settings or get_settings()
        self._clock = clock
        self._listeners: list[Listener] = []
        self._login_hooks: list[LoginHook] = []
        self._started = False
        self._scheduler = RefreshScheduler(
            self.check_token_refresh,
            interval=self._settings.token_refresh_interval_seconds,
        )

    # Lifecycle

    def start(self, schedule_refresh: bool = True) -> AuthSnapshot:
        """
        Subscribe to session events and broadcast the initial state.

        Idempotent. With schedule_refresh the periodic refresh check is
        started too, which needs a running event loop.
        """
        if not self._started:
            self._events.subscribe(SessionEstablished, self._on_session_established)
            self._events.subscribe(SessionEnded, self._on_session_ended)
            self._events.subscribe(ProfileUpdated, self._on_profile_updated)
            self._started = True
        if schedule_refresh:
            self._scheduler.start()
        return self.update_auth_state()

    async def stop(self) -> None:
        await self._scheduler.stop()
        if self._started:
            self._events.unsubscribe(SessionEstablished, self._on_session_established)
            self._events.unsubscribe(SessionEnded, self._on_session_ended)
            self._events.unsubscribe(ProfileUpdated, self._on_profile_updated)
            self._started = False

    @property
    def scheduler(self) -> RefreshScheduler:
        return self._scheduler

    # Listeners

    def add_listener(self, callback: Listener) -> None:
        if not callable(callback):
            logger.warning(f"Ignoring non-callable auth listener {callback!r}")
            return
        self._listeners.append(callback)

    def remove_listener(self, callback: Listener) -> None:
        self._listeners = [cb for cb in self._listeners if cb != callback]

    def add_login_hook(self, hook: LoginHook) -> None:
        """Register work to run after every login (e.g. guest cart merge)."""
        self._login_hooks.append(hook)

    def notify_listeners(self, snapshot: AuthSnapshot) -> None:
        for callback in list(self._listeners):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Auth state listener failed")

    # State

    def snapshot(self) -> AuthSnapshot:
        is_authenticated = self._session.is_authenticated()
        user = self._session.get_current_user() if is_authenticated else None
        return AuthSnapshot(is_authenticated=is_authenticated, user=user)

    def update_auth_state(self) -> AuthSnapshot:
        snapshot = self.snapshot()
        self.notify_listeners(snapshot)
        return snapshot

    def is_authenticated(self) -> bool:
        return self._session.is_authenticated()

    def get_current_user(self) -> Optional[UserRecord]:
        return self._session.get_current_user()

    def get_user_display_name(self) -> str:
        user = self.snapshot().user
        if user is None:
            return "Guest"
        return user.display_name or user.email

    def has_permission(self, permission: str) -> bool:
        user = self.snapshot().user
        return user is not None and permission in user.permissions

    # Event handlers

    def _on_session_established(self, event: SessionEstablished) -> None:
        logger.info(f"User logged in: {event.user.id}")
        self.update_auth_state()
        for hook in list(self._login_hooks):
            try:
                hook(event.user)
            except Exception:
                logger.exception("Post-login hook failed")

    def _on_session_ended(self, event: SessionEnded) -> None:
        logger.info(f"User logged out ({event.reason})")
        # Cached addresses must not outlive the session on a shared device
        self._accounts.clear_cache()
        self.update_auth_state()

    def _on_profile_updated(self, event: ProfileUpdated) -> None:
        self.update_auth_state()

    # Token refresh

    async def check_token_refresh(self) -> bool:
        """
        Refresh the session if the access token is close to expiry.

        Returns:
            True if a refresh happened, False otherwise. A failed refresh
            has already ended the session, so later checks return early
            instead of retrying.
        """
        if not self._session.is_authenticated():
            return False
        expiry = self._session.get_token_expiry()
        if expiry is None:
            return False

        remaining = (expiry - self._clock()).total_seconds()
        if remaining >= self._settings.token_refresh_threshold_seconds:
            return False

        logger.info(f"Access token expires in {remaining:.0f}s, refreshing")
        try:
            await self._session.refresh_session()
        except StorefrontError as e:
            logger.warning(f"Proactive token refresh failed: {e.message}")
            return False
        return True

    async def on_foreground(self) -> bool:
        """Called when the app becomes visible again; catches up on refresh."""
        return await self.check_token_refresh()

    # Guards

    def _login_redirect(self, requested_location: Optional[str]) -> str:
        if not requested_location:
            return self._settings.login_path
        return f"{self._settings.login_path}?redirect={quote(requested_location, safe='')}"

    def require_auth(self, requested_location: Optional[str] = None) -> AuthGate:
        """
        Check whether the caller may proceed.

        Args:
            requested_location: Where the user was going, to return there after login
        """
        if self._session.is_authenticated():
            return AuthGate(allowed=True)
        return AuthGate(
            allowed=False,
            redirect_to=self._login_redirect(requested_location),
            message="Please login to continue",
        )

    def handle_auth_error(
        self, error: Exception, requested_location: Optional[str] = None
    ) -> Optional[AuthGate]:
        """
        React to an error surfaced by a profile/address/session call.

        Returns a redirect gate for 401-class errors (after making sure the
        session is gone) and None for anything else.
        """
        unauthorized = isinstance(error, (NotAuthenticatedError, SessionExpiredError)) or (
            isinstance(error, GatewayRejectedError) and error.is_unauthorized
        )
        if not unauthorized:
            return None

        if self._session.get_access_token():
            self._session.end_session("unauthorized")
        return AuthGate(
            allowed=False,
            redirect_to=self._login_redirect(requested_location),
            message=SESSION_EXPIRED_MESSAGE,
        )
