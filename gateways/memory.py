"""
In-memory implementation of the backend gateway.

A stateful fake of the storefront backend for tests and offline
development. It issues real HS256 JWTs so that client-side expiry
decoding behaves exactly as against a live server, keeps accounts and
addresses in dictionaries, and can simulate an unreachable network or
a one-off rejection of any operation.
"""

import asyncio
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from shared.exceptions import (
    GatewayRejectedError,
    NetworkUnavailableError,
    StorefrontError,
)
from shared.models import AddressRecord, AddressType, UserRecord

from .models import (
    AddressFields,
    ImageUpload,
    IssuedSession,
    ProfileChanges,
    RegistrationReceipt,
    TokenPair,
)

DEMO_EMAIL = "user@example.com"
DEMO_PASSWORD = "SecurePass123"
DEMO_USER_ID = "user_123"
DEFAULT_OTP_CODE = "123456"


@dataclass
class _Account:
    user: UserRecord
    password: str


def _demo_user() -> UserRecord:
    return UserRecord(
        id=DEMO_USER_ID,
        email=DEMO_EMAIL,
        first_name="John",
        last_name="Doe",
        phone="+1234567890",
        date_of_birth="1990-01-01",
        gender="male",
        avatar="https://via.placeholder.com/150",
        verified=True,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def _demo_addresses() -> list[AddressRecord]:
    return [
        AddressRecord(
            id="addr_1",
            full_name="John Doe",
            address_line1="123 Main St",
            address_line2="Apt 4B",
            city="New York",
            state="NY",
            zip_code="10001",
            country="USA",
            phone="+1234567890",
            address_type=AddressType.HOME,
            is_default=True,
        ),
        AddressRecord(
            id="addr_2",
            full_name="John Doe",
            address_line1="456 Office Blvd",
            address_line2="Suite 200",
            city="New York",
            state="NY",
            zip_code="10002",
            country="USA",
            phone="+1234567890",
            address_type=AddressType.WORK,
            is_default=False,
        ),
    ]


class InMemoryBackendGateway:
    """
    Fake backend with real token semantics.

    Attributes:
        online: When False every call raises NetworkUnavailableError
        calls: Names of the operations invoked, in order
        last_reset_token: Token "emailed" by the latest forgot_password call
    """

    def __init__(
        self,
        secret: str = "in-memory-gateway-secret",
        access_token_lifetime: timedelta = timedelta(minutes=60),
        otp_code: str = DEFAULT_OTP_CODE,
        seed_demo_account: bool = True,
        latency: float = 0.0,
    ):
        """
        Initialize the fake backend.

        Args:
            secret: HMAC key used to sign access tokens
            access_token_lifetime: Lifetime of issued access tokens
            otp_code: The code every registration must be verified with
            seed_demo_account: Create user@example.com with two addresses
            latency: Seconds each call sleeps before answering
        """
        self.secret = secret
        self.access_token_lifetime = access_token_lifetime
        self.otp_code = otp_code
        self.latency = latency
        self.online = True
        self.calls: list[str] = []
        self.last_reset_token: Optional[str] = None

        self._accounts: dict[str, _Account] = {}
        self._pending: dict[str, _Account] = {}
        self._addresses: dict[str, list[AddressRecord]] = {}
        self._access_tokens: dict[str, str] = {}
        self._refresh_tokens: dict[str, str] = {}
        self._reset_tokens: dict[str, str] = {}
        self._failures: dict[str, StorefrontError] = {}

        if seed_demo_account:
            self._accounts[DEMO_USER_ID] = _Account(_demo_user(), DEMO_PASSWORD)
            self._addresses[DEMO_USER_ID] = _demo_addresses()

    # Test controls

    def fail_next(self, operation: str, error: Optional[StorefrontError] = None) -> None:
        """Make the next call of `operation` raise `error` (a 400 rejection by default)."""
        self._failures[operation] = error or GatewayRejectedError(
            "Simulated rejection", status_code=400
        )

    def issue_access_token(
        self, user_id: str, lifetime: Optional[timedelta] = None
    ) -> str:
        """Sign an access token for a user and register it as live."""
        now = datetime.now(timezone.utc)
        account = self._accounts.get(user_id) or self._pending.get(user_id)
        payload = {
            "sub": user_id,
            "email": account.user.email if account else None,
            "iat": int(now.timestamp()),
            "exp": int((now + (lifetime or self.access_token_lifetime)).timestamp()),
            "jti": uuid.uuid4().hex,
        }
        token = jwt.encode(payload, self.secret, algorithm="HS256")
        self._access_tokens[token] = user_id
        return token

    def revoke_sessions(self, user_id: str) -> None:
        """Invalidate every access and refresh token of a user."""
        self._access_tokens = {t: u for t, u in self._access_tokens.items() if u != user_id}
        self._refresh_tokens = {t: u for t, u in self._refresh_tokens.items() if u != user_id}

    def stored_addresses(self, user_id: str = DEMO_USER_ID) -> list[AddressRecord]:
        return [a.model_copy() for a in self._addresses.get(user_id, [])]

    def stored_user(self, user_id: str = DEMO_USER_ID) -> Optional[UserRecord]:
        account = self._accounts.get(user_id)
        return account.user.model_copy() if account else None

    # Internals

    async def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        # Always yield so concurrent callers interleave like real I/O
        await asyncio.sleep(self.latency)
        if not self.online:
            raise NetworkUnavailableError(operation=operation)
        error = self._failures.pop(operation, None)
        if error is not None:
            raise error

    def _issue_session(self, user_id: str) -> IssuedSession:
        refresh_token = secrets.token_urlsafe(32)
        self._refresh_tokens[refresh_token] = user_id
        return IssuedSession(
            access_token=self.issue_access_token(user_id),
            refresh_token=refresh_token,
            user=self._accounts[user_id].user.model_copy(),
        )

    def _authorize(self, access_token: str) -> _Account:
        try:
            jwt.decode(access_token, self.secret, algorithms=["HS256"])
        except jwt.InvalidTokenError:
            raise GatewayRejectedError("Unauthorized", status_code=401)
        user_id = self._access_tokens.get(access_token)
        if user_id is None or user_id not in self._accounts:
            raise GatewayRejectedError("Unauthorized", status_code=401)
        return self._accounts[user_id]

    def _find_by_email(self, email: str) -> Optional[_Account]:
        email = email.lower()
        for account in list(self._accounts.values()) + list(self._pending.values()):
            if account.user.email.lower() == email:
                return account
        return None

    def _address_index(self, user_id: str, address_id: str) -> int:
        for index, address in enumerate(self._addresses.get(user_id, [])):
            if address.id == address_id:
                return index
        raise GatewayRejectedError("Address not found", status_code=404)

    def _make_default(self, user_id: str, address_id: str) -> None:
        self._addresses[user_id] = [
            a.model_copy(update={"is_default": a.id == address_id})
            for a in self._addresses.get(user_id, [])
        ]

    # Identity

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
    ) -> RegistrationReceipt:
        await self._enter("register")
        if self._find_by_email(email):
            raise GatewayRejectedError("Email is already registered", status_code=409)

        user_id = f"user_{uuid.uuid4().hex[:12]}"
        user = UserRecord(
            id=user_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            verified=False,
            created_at=datetime.now(timezone.utc),
        )
        self._pending[user_id] = _Account(user, password)
        return RegistrationReceipt(user_id=user_id)

    async def verify_otp(self, user_id: str, code: str) -> IssuedSession:
        await self._enter("verify_otp")
        account = self._pending.get(user_id)
        if account is None or code != self.otp_code:
            raise GatewayRejectedError("Invalid or expired OTP", status_code=400)

        del self._pending[user_id]
        account.user = account.user.model_copy(update={"verified": True})
        self._accounts[user_id] = account
        self._addresses.setdefault(user_id, [])
        return self._issue_session(user_id)

    async def resend_otp(self, user_id: str) -> None:
        await self._enter("resend_otp")
        if user_id not in self._pending:
            raise GatewayRejectedError("No pending registration", status_code=404)

    async def login(self, email: str, password: str) -> IssuedSession:
        await self._enter("login")
        account = self._find_by_email(email)
        if (
            account is None
            or account.password != password
            or account.user.id not in self._accounts
        ):
            raise GatewayRejectedError("Invalid credentials", status_code=401)
        return self._issue_session(account.user.id)

    async def logout(self, access_token: str) -> None:
        await self._enter("logout")
        self._access_tokens.pop(access_token, None)

    async def refresh_token(self, refresh_token: str) -> TokenPair:
        await self._enter("refresh_token")
        user_id = self._refresh_tokens.pop(refresh_token, None)
        if user_id is None or user_id not in self._accounts:
            raise GatewayRejectedError("Invalid refresh token", status_code=401)

        new_refresh = secrets.token_urlsafe(32)
        self._refresh_tokens[new_refresh] = user_id
        return TokenPair(
            access_token=self.issue_access_token(user_id),
            refresh_token=new_refresh,
        )

    async def forgot_password(self, email: str) -> None:
        await self._enter("forgot_password")
        account = self._find_by_email(email)
        # Same answer for unknown addresses
        if account is not None:
            token = secrets.token_urlsafe(16)
            self._reset_tokens[token] = account.user.id
            self.last_reset_token = token

    async def reset_password(self, reset_token: str, new_password: str) -> None:
        await self._enter("reset_password")
        user_id = self._reset_tokens.pop(reset_token, None)
        if user_id is None or user_id not in self._accounts:
            raise GatewayRejectedError("Invalid or expired reset link", status_code=400)
        self._accounts[user_id].password = new_password

    async def change_password(
        self, access_token: str, current_password: str, new_password: str
    ) -> None:
        await self._enter("change_password")
        account = self._authorize(access_token)
        if account.password != current_password:
            raise GatewayRejectedError("Current password is incorrect", status_code=400)
        account.password = new_password

    # Profile

    async def get_profile(self, access_token: str) -> UserRecord:
        await self._enter("get_profile")
        return self._authorize(access_token).user.model_copy()

    async def update_profile(
        self, access_token: str, changes: ProfileChanges
    ) -> UserRecord:
        await self._enter("update_profile")
        account = self._authorize(access_token)
        updates = changes.model_dump(exclude_none=True)

        email = updates.pop("email", None)
        if email is not None and email.lower() != account.user.email.lower():
            raise GatewayRejectedError("Email address cannot be changed", status_code=409)

        account.user = account.user.model_copy(update=updates)
        return account.user.model_copy()

    async def update_avatar(self, access_token: str, image: ImageUpload) -> str:
        await self._enter("update_avatar")
        account = self._authorize(access_token)
        url = f"https://cdn.example.com/avatars/{account.user.id}/{image.filename}"
        account.user = account.user.model_copy(update={"avatar": url})
        return url

    async def delete_account(self, access_token: str, password: str) -> None:
        await self._enter("delete_account")
        account = self._authorize(access_token)
        if account.password != password:
            raise GatewayRejectedError("Password is incorrect", status_code=400)

        user_id = account.user.id
        del self._accounts[user_id]
        self._addresses.pop(user_id, None)
        self.revoke_sessions(user_id)

    # Addresses

    async def list_addresses(self, access_token: str) -> list[AddressRecord]:
        await self._enter("list_addresses")
        account = self._authorize(access_token)
        return self.stored_addresses(account.user.id)

    async def get_address(self, access_token: str, address_id: str) -> AddressRecord:
        await self._enter("get_address")
        user_id = self._authorize(access_token).user.id
        index = self._address_index(user_id, address_id)
        return self._addresses[user_id][index].model_copy()

    async def add_address(
        self, access_token: str, address: AddressFields
    ) -> AddressRecord:
        await self._enter("add_address")
        user_id = self._authorize(access_token).user.id
        record = AddressRecord(id=f"addr_{uuid.uuid4().hex[:12]}", **address.model_dump())
        self._addresses.setdefault(user_id, []).append(record)
        if record.is_default:
            self._make_default(user_id, record.id)
        return record.model_copy()

    async def update_address(
        self, access_token: str, address_id: str, address: AddressFields
    ) -> AddressRecord:
        await self._enter("update_address")
        user_id = self._authorize(access_token).user.id
        index = self._address_index(user_id, address_id)
        record = AddressRecord(id=address_id, **address.model_dump())
        self._addresses[user_id][index] = record
        if record.is_default:
            self._make_default(user_id, address_id)
        return record.model_copy()

    async def delete_address(self, access_token: str, address_id: str) -> None:
        await self._enter("delete_address")
        user_id = self._authorize(access_token).user.id
        index = self._address_index(user_id, address_id)
        del self._addresses[user_id][index]

    async def set_default_address(self, access_token: str, address_id: str) -> None:
        await self._enter("set_default_address")
        user_id = self._authorize(access_token).user.id
        self._address_index(user_id, address_id)
        self._make_default(user_id, address_id)
