"""
Backend gateway interface.

The session and accounts modules talk to the backend only through
IBackendGateway. Implementations raise GatewayRejectedError when the
backend answers with a refusal and NetworkUnavailableError when it
cannot be reached; callers rely on that distinction for stale-cache
fallbacks and session teardown.
"""

from typing import Optional, Protocol, runtime_checkable

from shared.models import AddressRecord, UserRecord

from .models import (
    AddressFields,
    ImageUpload,
    IssuedSession,
    ProfileChanges,
    RegistrationReceipt,
    TokenPair,
)


@runtime_checkable
class IBackendGateway(Protocol):
    """
    Request/response boundary to the storefront backend.

    Methods that take an access_token send it as a bearer credential.
    """

    # Identity

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
    ) -> RegistrationReceipt:
        """
        Create an unverified account and send an OTP.

        Returns:
            RegistrationReceipt with the pending account's user ID
        """
        ...

    async def verify_otp(self, user_id: str, code: str) -> IssuedSession:
        """Confirm a registration with the 6-digit OTP and open a session."""
        ...

    async def resend_otp(self, user_id: str) -> None:
        ...

    async def login(self, email: str, password: str) -> IssuedSession:
        """
        Exchange credentials for a session.

        Raises:
            GatewayRejectedError: Unknown user or wrong password
        """
        ...

    async def logout(self, access_token: str) -> None:
        ...

    async def refresh_token(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new token pair.

        Raises:
            GatewayRejectedError: Refresh token unknown, revoked or expired
        """
        ...

    async def forgot_password(self, email: str) -> None:
        ...

    async def reset_password(self, reset_token: str, new_password: str) -> None:
        ...

    async def change_password(
        self, access_token: str, current_password: str, new_password: str
    ) -> None:
        ...

    # Profile

    async def get_profile(self, access_token: str) -> UserRecord:
        ...

    async def update_profile(
        self, access_token: str, changes: ProfileChanges
    ) -> UserRecord:
        """Apply a partial update and return the full updated record."""
        ...

    async def update_avatar(self, access_token: str, image: ImageUpload) -> str:
        """Upload an avatar image and return its public URL."""
        ...

    async def delete_account(self, access_token: str, password: str) -> None:
        ...

    # Addresses

    async def list_addresses(self, access_token: str) -> list[AddressRecord]:
        ...

    async def get_address(self, access_token: str, address_id: str) -> AddressRecord:
        """
        Raises:
            GatewayRejectedError: status 404 if the address does not exist
        """
        ...

    async def add_address(
        self, access_token: str, address: AddressFields
    ) -> AddressRecord:
        ...

    async def update_address(
        self, access_token: str, address_id: str, address: AddressFields
    ) -> AddressRecord:
        ...

    async def delete_address(self, access_token: str, address_id: str) -> None:
        ...

    async def set_default_address(self, access_token: str, address_id: str) -> None:
        """Mark one address as default. Only the target is guaranteed to change."""
        ...
