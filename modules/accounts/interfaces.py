"""
Accounts module interface.

Other modules should depend on IAccountService, not the concrete
implementation. The auth_state module only needs clear_cache().
"""

from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from gateways.models import ImageUpload
from shared.models import AddressRecord, UserRecord

from .models import AddressListResult, DefaultAddressResult, ProfileResult


@runtime_checkable
class IAccountService(Protocol):
    """
    Interface for profile and address management.

    Every operation raises NotAuthenticatedError, without touching the
    cache or the network, when there is no access token.
    """

    async def get_profile(self) -> ProfileResult:
        """
        Fetch the profile, falling back to the cached record.

        Returns:
            ProfileResult; stale=True when served from cache

        Raises:
            ProfileUnavailableError: Fetch failed and nothing is cached
        """
        ...

    async def update_profile(self, fields: Mapping[str, Any]) -> UserRecord:
        """
        Apply a partial profile update.

        Raises:
            ValidationError: A provided field is invalid
            ProfileUpdateRejectedError: The backend refused the change
        """
        ...

    async def update_avatar(self, image: ImageUpload) -> str:
        ...

    async def delete_account(self, password: str) -> None:
        ...

    async def list_addresses(self) -> AddressListResult:
        ...

    async def get_address(self, address_id: str) -> AddressRecord:
        ...

    async def add_address(self, data: Mapping[str, Any]) -> AddressRecord:
        ...

    async def update_address(self, address_id: str, data: Mapping[str, Any]) -> AddressRecord:
        ...

    async def delete_address(self, address_id: str) -> None:
        ...

    async def set_default_address(self, address_id: str) -> None:
        ...

    async def get_default_address(self) -> DefaultAddressResult:
        ...

    def cached_addresses(self) -> Optional[list[AddressRecord]]:
        ...

    def clear_cache(self) -> None:
        """Drop cached addresses (called when the session ends)."""
        ...
