import asyncio
import pytest
from datetime import datetime, timedelta, timezone

from gateways.memory import DEMO_EMAIL, DEMO_PASSWORD, DEMO_USER_ID
from modules.session.exceptions import (
    LoginRejectedError,
    NoRefreshTokenError,
    NotAuthenticatedError,
    OtpRejectedError,
    PasswordChangeError,
    PasswordResetError,
    RegistrationFailedError,
    SessionExpiredError,
)
from modules.session.service import SessionManager
from shared.events import SessionEnded, SessionEstablished
from shared.exceptions import NetworkUnavailableError, ValidationError

REGISTRATION = {
    "email": "new@example.com",
    "password": "Password1",
    "first_name": "New",
    "last_name": "User",
    "phone": "+1234567890",
}


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_establishes_session(self, session, token_store, published):
        """Login should store tokens and user and publish SessionEstablished once."""
        user = await session.login(DEMO_EMAIL, DEMO_PASSWORD)

        assert user.id == DEMO_USER_ID
        assert session.is_authenticated() is True
        assert token_store.get_refresh_token()
        assert session.get_current_user() == user
        assert [type(e) for e in published] == [SessionEstablished]

    @pytest.mark.asyncio
    async def test_login_remember_email(self, session):
        """remember=True should keep the email for the next login form."""
        await session.login(DEMO_EMAIL, DEMO_PASSWORD, remember=True)
        assert session.get_remembered_email() == DEMO_EMAIL

        await session.login(DEMO_EMAIL, DEMO_PASSWORD)
        assert session.get_remembered_email() is None

    @pytest.mark.asyncio
    async def test_login_rejected(self, session, published):
        """Bad credentials should raise a generic message and leave no session."""
        with pytest.raises(LoginRejectedError) as exc_info:
            await session.login(DEMO_EMAIL, "WrongPass999")

        assert exc_info.value.message == "Invalid email or password"
        assert session.is_authenticated() is False
        assert session.get_access_token() is None
        assert published == []

    @pytest.mark.asyncio
    async def test_login_invalid_email_never_hits_network(self, session, gateway):
        """Client-side validation should run before any gateway call."""
        with pytest.raises(ValidationError) as exc_info:
            await session.login("not-an-email", DEMO_PASSWORD)
        assert exc_info.value.field == "email"
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_login_missing_password(self, session, gateway):
        """An empty password should be reported as missing."""
        with pytest.raises(ValidationError) as exc_info:
            await session.login(DEMO_EMAIL, "")
        assert exc_info.value.field == "password"
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_login_offline(self, session, gateway):
        """Network failures should propagate unchanged."""
        gateway.online = False
        with pytest.raises(NetworkUnavailableError):
            await session.login(DEMO_EMAIL, DEMO_PASSWORD)
        assert session.is_authenticated() is False


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_stores_pending(self, session):
        """A successful registration should remember the pending account."""
        result = await session.register(REGISTRATION)

        assert result.requires_otp is True
        pending = session.get_pending_registration()
        assert pending.user_id == result.user_id
        assert pending.email == "new@example.com"
        assert session.is_authenticated() is False

    @pytest.mark.asyncio
    async def test_special_use_domain_email(self, session):
        """Any address the client email rule accepts should make it through to the session."""
        result = await session.register({**REGISTRATION, "email": "shopper@store.local"})

        user = await session.verify_otp(result.user_id, "123456")

        assert user.email == "shopper@store.local"
        assert session.get_current_user().email == "shopper@store.local"

    @pytest.mark.asyncio
    async def test_weak_password_fails_before_network(self, session, gateway):
        """A weak password should be rejected locally with nothing stored."""
        with pytest.raises(ValidationError) as exc_info:
            await session.register({**REGISTRATION, "password": "weak"})

        assert exc_info.value.field == "password"
        assert gateway.calls == []
        assert session.get_pending_registration() is None

    @pytest.mark.asyncio
    async def test_bad_email_and_weak_password(self, session, gateway):
        """Invalid registration input should fail before any network call."""
        with pytest.raises(ValidationError):
            await session.register(
                {"email": "bad-email", "password": "weak", "first_name": "A", "last_name": "B"}
            )
        assert gateway.calls == []
        assert session.get_pending_registration() is None

    @pytest.mark.asyncio
    async def test_missing_field(self, session, gateway):
        """Required registration fields should be enforced."""
        with pytest.raises(ValidationError) as exc_info:
            await session.register({**REGISTRATION, "last_name": ""})
        assert exc_info.value.field == "last_name"
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_duplicate_email(self, session):
        """A backend refusal should raise RegistrationFailedError and store nothing."""
        with pytest.raises(RegistrationFailedError) as exc_info:
            await session.register({**REGISTRATION, "email": DEMO_EMAIL})
        assert exc_info.value.status_code == 409
        assert session.get_pending_registration() is None

    @pytest.mark.asyncio
    async def test_short_otp_rejected_locally(self, session, gateway):
        """A 5-digit code should never reach the backend."""
        result = await session.register(REGISTRATION)
        gateway.calls.clear()

        with pytest.raises(ValidationError) as exc_info:
            await session.verify_otp(result.user_id, "12345")

        assert exc_info.value.message == "OTP must be 6 digits"
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_verify_otp_establishes_session(self, session, published):
        """The right code should log the new user in exactly once."""
        result = await session.register(REGISTRATION)

        user = await session.verify_otp(result.user_id, "123456")

        assert user.verified is True
        assert session.is_authenticated() is True
        assert session.get_pending_registration() is None
        established = [e for e in published if isinstance(e, SessionEstablished)]
        assert len(established) == 1
        assert established[0].user.id == result.user_id

    @pytest.mark.asyncio
    async def test_wrong_otp(self, session):
        """A wrong code should keep the registration pending."""
        result = await session.register(REGISTRATION)

        with pytest.raises(OtpRejectedError):
            await session.verify_otp(result.user_id, "654321")

        assert session.is_authenticated() is False
        assert session.get_pending_registration() is not None

    @pytest.mark.asyncio
    async def test_resend_otp(self, session, gateway):
        """Resending should call the backend for the pending user."""
        result = await session.register(REGISTRATION)
        await session.resend_otp(result.user_id)
        assert gateway.calls[-1] == "resend_otp"

    @pytest.mark.asyncio
    async def test_resend_otp_requires_user(self, session):
        """Resending without a user ID should be a validation error."""
        with pytest.raises(ValidationError):
            await session.resend_otp("")


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_clears_state(self, session, logged_in, token_store, published):
        """Logout should clear tokens and user and publish SessionEnded."""
        await session.logout()

        assert session.is_authenticated() is False
        assert token_store.get_access_token() is None
        assert token_store.get_refresh_token() is None
        assert session.get_current_user() is None
        assert isinstance(published[-1], SessionEnded)
        assert published[-1].reason == "logout"

    @pytest.mark.asyncio
    async def test_logout_is_idempotent(self, session, logged_in, durable_store):
        """A second logout should succeed and leave the same empty state."""
        await session.logout()
        snapshot = dict((k, durable_store.get(k)) for k in durable_store.keys())

        await session.logout()

        assert dict((k, durable_store.get(k)) for k in durable_store.keys()) == snapshot
        assert session.is_authenticated() is False

    @pytest.mark.asyncio
    async def test_logout_offline_still_clears(self, session, logged_in, gateway):
        """A failed backend call should not stop the local teardown."""
        gateway.online = False
        await session.logout()
        assert session.get_access_token() is None

    @pytest.mark.asyncio
    async def test_logout_without_session_skips_backend(self, session, gateway):
        """With no token there is nothing to revoke remotely."""
        await session.logout()
        assert "logout" not in gateway.calls


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refresh_rotates_tokens(self, session, logged_in, token_store):
        """A refresh should replace both tokens."""
        old_access = token_store.get_access_token()
        old_refresh = token_store.get_refresh_token()

        pair = await session.refresh_session()

        assert token_store.get_access_token() == pair.access_token != old_access
        assert token_store.get_refresh_token() == pair.refresh_token != old_refresh
        assert session.is_authenticated() is True

    @pytest.mark.asyncio
    async def test_refresh_rejected_ends_session(self, session, logged_in, gateway, published):
        """A refused refresh should clear the session and point at the login page."""
        gateway.revoke_sessions(DEMO_USER_ID)

        with pytest.raises(SessionExpiredError) as exc_info:
            await session.refresh_session()

        assert exc_info.value.redirect_to == "/login.html"
        assert session.get_access_token() is None
        assert session.get_current_user() is None
        assert published[-1] == SessionEnded(reason="refresh_failed")

    @pytest.mark.asyncio
    async def test_refresh_offline_ends_session(self, session, logged_in, gateway):
        """An unreachable backend during refresh should also end the session."""
        gateway.online = False
        with pytest.raises(SessionExpiredError):
            await session.refresh_session()
        assert session.is_authenticated() is False

    @pytest.mark.asyncio
    async def test_refresh_without_refresh_token(self, session, token_store, gateway):
        """No refresh token should raise and clear whatever is left."""
        token_store.save_tokens(gateway.issue_access_token(DEMO_USER_ID))

        with pytest.raises(NoRefreshTokenError):
            await session.refresh_session()

        assert token_store.get_access_token() is None
        assert "refresh_token" not in gateway.calls

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_share_one_call(self, session, logged_in, gateway):
        """Overlapping refresh calls should result in a single backend refresh."""
        gateway.latency = 0.01

        results = await asyncio.gather(
            session.refresh_session(),
            session.refresh_session(),
            session.refresh_session(),
        )

        assert gateway.calls.count("refresh_token") == 1
        assert results[0] == results[1] == results[2]
        assert session.is_authenticated() is True

    @pytest.mark.asyncio
    async def test_session_ended_during_refresh_stays_ended(self, session, logged_in, gateway, published):
        """Tokens from a refresh that outlived its session should be discarded."""
        gateway.latency = 0.05
        refresh = asyncio.ensure_future(session.refresh_session())
        while "refresh_token" not in gateway.calls:
            await asyncio.sleep(0)

        session.end_session("logout")

        with pytest.raises(NotAuthenticatedError):
            await refresh
        assert session.is_authenticated() is False
        assert session.get_access_token() is None
        assert session.get_current_user() is None
        assert [e for e in published if isinstance(e, SessionEnded)] == [SessionEnded(reason="logout")]

    @pytest.mark.asyncio
    async def test_new_login_during_refresh_kept(self, session, logged_in, gateway, token_store):
        """A login that lands while an old refresh is in flight should not be overwritten."""
        gateway.latency = 0.05
        refresh = asyncio.ensure_future(session.refresh_session())
        while "refresh_token" not in gateway.calls:
            await asyncio.sleep(0)

        session.end_session("logout")
        gateway.latency = 0.0
        await session.login(DEMO_EMAIL, DEMO_PASSWORD)
        new_refresh = token_store.get_refresh_token()

        with pytest.raises(NotAuthenticatedError):
            await refresh
        assert token_store.get_refresh_token() == new_refresh
        assert session.is_authenticated() is True

    @pytest.mark.asyncio
    async def test_sequential_refreshes_each_call_backend(self, session, logged_in, gateway):
        """Once a refresh has finished the next one should start fresh."""
        await session.refresh_session()
        await session.refresh_session()
        assert gateway.calls.count("refresh_token") == 2


class TestDerivedState:
    @pytest.mark.asyncio
    async def test_not_authenticated_after_expiry(self, gateway, token_store, events, settings, logged_in):
        """is_authenticated should be recomputed from the token, never cached."""
        later = SessionManager(
            gateway,
            token_store,
            events,
            settings,
            clock=lambda: datetime.now(timezone.utc) + timedelta(hours=2),
        )
        assert later.is_authenticated() is False
        assert later.get_current_user() is not None

    def test_expired_token_not_authenticated(self, session, token_store, gateway):
        """A stored but expired token should not count as a session."""
        token_store.save_tokens(
            gateway.issue_access_token(DEMO_USER_ID, lifetime=timedelta(seconds=-5))
        )
        assert session.is_authenticated() is False
        assert session.get_token_expiry() is not None

    def test_malformed_token_not_authenticated(self, session, token_store):
        """An undecodable token should not count as a session."""
        token_store.save_tokens("garbage")
        assert session.is_authenticated() is False
        assert session.get_token_expiry() is None

    def test_empty_store(self, session):
        """With nothing stored there is no session."""
        assert session.is_authenticated() is False
        assert session.get_current_user() is None


class TestPasswords:
    @pytest.mark.asyncio
    async def test_forgot_and_reset(self, session, gateway):
        """The reset email should be kept until the reset succeeds."""
        await session.forgot_password(DEMO_EMAIL)
        assert session.get_reset_email() == DEMO_EMAIL

        await session.reset_password(gateway.last_reset_token, "BrandNew123")

        assert session.get_reset_email() is None
        await session.login(DEMO_EMAIL, "BrandNew123")

    @pytest.mark.asyncio
    async def test_reset_weak_password(self, session, gateway):
        """A weak new password should be rejected before the backend."""
        with pytest.raises(ValidationError) as exc_info:
            await session.reset_password("token", "weak")
        assert exc_info.value.field == "new_password"
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_reset_bad_token(self, session):
        """An unknown reset token should raise PasswordResetError."""
        with pytest.raises(PasswordResetError):
            await session.reset_password("bogus", "BrandNew123")

    @pytest.mark.asyncio
    async def test_change_password_requires_session(self, session):
        """Changing the password without a session should fail."""
        with pytest.raises(NotAuthenticatedError):
            await session.change_password(DEMO_PASSWORD, "BrandNew123")

    @pytest.mark.asyncio
    async def test_change_password(self, session, logged_in):
        """A confirmed change should keep the session."""
        await session.change_password(DEMO_PASSWORD, "BrandNew123")
        assert session.is_authenticated() is True

    @pytest.mark.asyncio
    async def test_change_password_wrong_current(self, session, logged_in):
        """A wrong current password should raise and keep the session."""
        with pytest.raises(PasswordChangeError):
            await session.change_password("WrongPass123", "BrandNew123")
        assert session.is_authenticated() is True

    @pytest.mark.asyncio
    async def test_change_password_unauthorized_ends_session(self, session, logged_in, gateway, published):
        """A 401 should end the session."""
        gateway.revoke_sessions(DEMO_USER_ID)

        with pytest.raises(NotAuthenticatedError):
            await session.change_password(DEMO_PASSWORD, "BrandNew123")

        assert session.get_access_token() is None
        assert published[-1].reason == "unauthorized"
