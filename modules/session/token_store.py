"""
Token store.

Persists the access token, refresh token and cached user record, plus
the small markers the identity flows need (pending registration,
remembered login email, password-reset email). No network access.

Tokens are decoded without signature verification. That is only good
enough for expiry bookkeeping on the client; authorization decisions
are made by the backend, which verifies every token it receives.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import jwt
from pydantic import ValidationError as PydanticValidationError

from shared.models import UserRecord
from shared.storage import IKeyValueStore

from .exceptions import MalformedTokenError
from .models import PendingRegistration, TokenClaims

logger = logging.getLogger(__name__)

# Durable keys
ACCESS_TOKEN_KEY = "auth_token"
REFRESH_TOKEN_KEY = "refresh_token"
USER_KEY = "user_data"
REMEMBERED_EMAIL_KEY = "remembered_email"

# Session-scoped keys
PENDING_REGISTRATION_KEY = "pending_registration"
RESET_EMAIL_KEY = "reset_email"


class TokenStore:
    """
    Storage and decoding of session credentials.

    Args:
        durable: Store that survives restarts
        session: Store that lives only as long as the process
    """

    def __init__(self, durable: IKeyValueStore, session: IKeyValueStore):
        self._durable = durable
        self._session = session

    # Tokens

    def save_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        """Store a new access token; the refresh token is only replaced when given."""
        self._durable.set(ACCESS_TOKEN_KEY, access_token)
        if refresh_token:
            self._durable.set(REFRESH_TOKEN_KEY, refresh_token)

    def get_access_token(self) -> Optional[str]:
        return self._durable.get(ACCESS_TOKEN_KEY)

    def get_refresh_token(self) -> Optional[str]:
        return self._durable.get(REFRESH_TOKEN_KEY)

    # User

    def save_user(self, user: UserRecord) -> None:
        self._durable.set(USER_KEY, user.to_wire())

    def get_cached_user(self) -> Optional[UserRecord]:
        data = self._durable.get(USER_KEY)
        if data is None:
            return None
        try:
            return UserRecord.model_validate(data)
        except PydanticValidationError:
            logger.warning("Dropping unreadable cached user record")
            self._durable.remove(USER_KEY)
            return None

    # Decoding

    def decode_claims(self, token: str) -> TokenClaims:
        """
        Decode a token's claims without verifying its signature.

        Raises:
            MalformedTokenError: Not a three-segment JWT with a numeric exp
        """
        if not token or token.count(".") != 2:
            raise MalformedTokenError()
        try:
            payload = jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": False},
            )
            return TokenClaims.model_validate(payload)
        except (jwt.InvalidTokenError, PydanticValidationError) as e:
            raise MalformedTokenError(f"Invalid authentication token: {e}")

    def decode_expiry(self, token: str) -> datetime:
        """Return the token's expiry as an aware UTC datetime."""
        claims = self.decode_claims(token)
        return datetime.fromtimestamp(claims.exp, tz=timezone.utc)

    # Markers

    def save_pending_registration(self, pending: PendingRegistration) -> None:
        self._session.set(PENDING_REGISTRATION_KEY, pending.to_wire())

    def get_pending_registration(self) -> Optional[PendingRegistration]:
        data = self._session.get(PENDING_REGISTRATION_KEY)
        return PendingRegistration.model_validate(data) if data else None

    def clear_pending_registration(self) -> None:
        self._session.remove(PENDING_REGISTRATION_KEY)

    def remember_email(self, email: str) -> None:
        self._durable.set(REMEMBERED_EMAIL_KEY, email)

    def get_remembered_email(self) -> Optional[str]:
        return self._durable.get(REMEMBERED_EMAIL_KEY)

    def forget_email(self) -> None:
        self._durable.remove(REMEMBERED_EMAIL_KEY)

    def save_reset_email(self, email: str) -> None:
        self._session.set(RESET_EMAIL_KEY, email)

    def get_reset_email(self) -> Optional[str]:
        return self._session.get(RESET_EMAIL_KEY)

    def clear_reset_email(self) -> None:
        self._session.remove(RESET_EMAIL_KEY)

    def clear_all(self) -> None:
        """
        Remove tokens, cached user and the pending-registration marker.

        Safe to call when nothing is stored. The remembered email is kept
        so the login form can still be prefilled after logout.
        """
        self._durable.remove(ACCESS_TOKEN_KEY)
        self._durable.remove(REFRESH_TOKEN_KEY)
        self._durable.remove(USER_KEY)
        self._session.remove(PENDING_REGISTRATION_KEY)
