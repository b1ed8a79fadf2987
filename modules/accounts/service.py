"""
Account service implementation.

Profile and address management on top of the session's access token.

Reads go to the backend first and fall back to the local copy when the
backend fails (the result is then marked stale). Writes go to the
backend and only touch the local copy once the backend has confirmed
them; a refused or failed write leaves the cache exactly as it was.
"""

import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

from gateways.base import IBackendGateway
from gateways.models import ImageUpload
from modules.session.exceptions import NotAuthenticatedError
from modules.session.interfaces import ISessionManager
from shared.config import Settings, get_settings
from shared.events import (
    AddressAdded,
    AddressDeleted,
    AddressUpdated,
    EventBus,
    ProfileUpdated,
)
from shared.exceptions import (
    AuthenticationError,
    GatewayRejectedError,
    StorefrontError,
    ValidationError,
)
from shared.models import AddressRecord, UserRecord

from .cache import AddressCache
from .exceptions import (
    AccountDeletionError,
    AddressesUnavailableError,
    AddressNotFoundError,
    AddressOperationError,
    AvatarUploadError,
    ProfileUnavailableError,
    ProfileUpdateRejectedError,
)
from .models import AddressListResult, DefaultAddressResult, ProfileResult
from .validation import validate_address, validate_profile_changes

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AccountService:
    """
    Implementation of the account service.

    The cached user record is the session's user record, so a confirmed
    profile change updates both in one write.
    """

    def __init__(
        self,
        gateway: IBackendGateway,
        session: ISessionManager,
        cache: AddressCache,
        events: EventBus,
        settings: Optional[Settings] = None,
    ):
        self._gateway = gateway
        self._session = session
        self._cache = cache
        self._events = events
        self._settings = settings or get_settings()

    # Request helpers

    def _require_token(self) -> str:
        token = self._session.get_access_token()
        if not token:
            raise NotAuthenticatedError()
        return token

    async def _authorized(self, call: Callable[[str], Awaitable[T]]) -> T:
        """
        Run a gateway call with the current access token.

        A 401 triggers one session refresh and one retry. If the refresh
        fails the session is already over and NotAuthenticatedError is
        raised.
        """
        token = self._require_token()
        try:
            return await call(token)
        except GatewayRejectedError as e:
            if not e.is_unauthorized:
                raise

        logger.info("Access token rejected, refreshing session before retry")
        try:
            await self._session.refresh_session()
        except AuthenticationError as e:
            raise NotAuthenticatedError(e.message) from e

        token = self._require_token()
        try:
            return await call(token)
        except GatewayRejectedError as e:
            if e.is_unauthorized:
                self._session.end_session("unauthorized")
                raise NotAuthenticatedError() from e
            raise

    @staticmethod
    def _address_error(e: GatewayRejectedError, address_id: str) -> StorefrontError:
        if e.is_not_found:
            return AddressNotFoundError(address_id)
        return AddressOperationError(e.message, status_code=e.status_code)

    # Profile

    async def get_profile(self) -> ProfileResult:
        """Fetch the profile; serve the cached record if the fetch fails."""
        self._require_token()
        try:
            user = await self._authorized(self._gateway.get_profile)
        except NotAuthenticatedError:
            raise
        except StorefrontError as e:
            cached = self._session.get_current_user()
            if cached is None:
                raise ProfileUnavailableError() from e
            logger.warning(f"Profile fetch failed, serving cached copy: {e.message}")
            return ProfileResult(user=cached, stale=True)

        self._session.set_current_user(user)
        return ProfileResult(user=user)

    async def update_profile(self, fields: Mapping[str, Any]) -> UserRecord:
        """Send a partial update; only confirmed changes reach the cache."""
        self._require_token()
        changes = validate_profile_changes(fields)

        try:
            user = await self._authorized(
                lambda token: self._gateway.update_profile(token, changes)
            )
        except GatewayRejectedError as e:
            raise ProfileUpdateRejectedError(e.message, status_code=e.status_code) from e

        self._session.set_current_user(user)
        self._events.publish(ProfileUpdated(user=user))
        return user

    async def update_avatar(self, image: ImageUpload) -> str:
        """Upload a new avatar and patch only the avatar of the cached user."""
        self._require_token()
        if not image.content_type.startswith("image/"):
            raise ValidationError("Please select a valid image file", field="avatar")
        if image.size > self._settings.max_avatar_bytes:
            limit_mb = self._settings.max_avatar_bytes // (1024 * 1024)
            raise ValidationError(f"Image size must be less than {limit_mb}MB", field="avatar")

        try:
            avatar_url = await self._authorized(
                lambda token: self._gateway.update_avatar(token, image)
            )
        except GatewayRejectedError as e:
            raise AvatarUploadError(e.message, status_code=e.status_code) from e

        current = self._session.get_current_user()
        if current is not None:
            self._session.set_current_user(current.model_copy(update={"avatar": avatar_url}))
        return avatar_url

    async def delete_account(self, password: str) -> None:
        """Delete the account and end the session. A refusal leaves the session alone."""
        self._require_token()
        if not password:
            raise ValidationError("Password is required to delete account", field="password")

        try:
            await self._authorized(
                lambda token: self._gateway.delete_account(token, password)
            )
        except GatewayRejectedError as e:
            raise AccountDeletionError(e.message, status_code=e.status_code) from e

        logger.info("Account deleted, logging out")
        await self._session.logout()

    # Addresses

    async def list_addresses(self) -> AddressListResult:
        """Fetch all addresses; serve the cached collection if the fetch fails."""
        self._require_token()
        try:
            addresses = await self._authorized(self._gateway.list_addresses)
        except NotAuthenticatedError:
            raise
        except StorefrontError as e:
            cached = self._cache.get()
            if cached is None:
                raise AddressesUnavailableError() from e
            logger.warning(f"Address fetch failed, serving cached copy: {e.message}")
            return AddressListResult(addresses=cached, stale=True)

        self._cache.replace(addresses)
        return AddressListResult(addresses=addresses)

    async def get_address(self, address_id: str) -> AddressRecord:
        """Fetch one address from the backend. The cache is not consulted."""
        self._require_token()
        if not address_id:
            raise ValidationError("Address ID is required", field="address_id")

        try:
            return await self._authorized(
                lambda token: self._gateway.get_address(token, address_id)
            )
        except GatewayRejectedError as e:
            raise self._address_error(e, address_id) from e

    async def add_address(self, data: Mapping[str, Any]) -> AddressRecord:
        self._require_token()
        fields = validate_address(data)

        try:
            address = await self._authorized(
                lambda token: self._gateway.add_address(token, fields)
            )
        except GatewayRejectedError as e:
            raise AddressOperationError(e.message, status_code=e.status_code) from e

        self._cache.append(address)
        if address.is_default:
            self._cache.mark_default(address.id)
        self._events.publish(AddressAdded(address=address))
        return address

    async def update_address(self, address_id: str, data: Mapping[str, Any]) -> AddressRecord:
        self._require_token()
        if not address_id:
            raise ValidationError("Address ID is required", field="address_id")
        fields = validate_address(data)

        try:
            address = await self._authorized(
                lambda token: self._gateway.update_address(token, address_id, fields)
            )
        except GatewayRejectedError as e:
            raise self._address_error(e, address_id) from e

        self._cache.replace_entry(address)
        if address.is_default:
            self._cache.mark_default(address.id)
        self._events.publish(AddressUpdated(address=address))
        return address

    async def delete_address(self, address_id: str) -> None:
        self._require_token()
        if not address_id:
            raise ValidationError("Address ID is required", field="address_id")

        try:
            await self._authorized(
                lambda token: self._gateway.delete_address(token, address_id)
            )
        except GatewayRejectedError as e:
            raise self._address_error(e, address_id) from e

        self._cache.remove(address_id)
        self._events.publish(AddressDeleted(address_id=address_id))

    async def set_default_address(self, address_id: str) -> None:
        """
        Make one address the default.

        The backend only confirms that the target changed, so the cached
        flag is recomputed for every entry rather than flipped on the
        target alone.
        """
        self._require_token()
        if not address_id:
            raise ValidationError("Address ID is required", field="address_id")

        try:
            await self._authorized(
                lambda token: self._gateway.set_default_address(token, address_id)
            )
        except GatewayRejectedError as e:
            raise self._address_error(e, address_id) from e

        self._cache.mark_default(address_id)

    async def get_default_address(self) -> DefaultAddressResult:
        result = await self.list_addresses()
        for address in result.addresses:
            if address.is_default:
                return DefaultAddressResult(address=address, found=True, stale=result.stale)
        return DefaultAddressResult(
            found=False, stale=result.stale, message="No default address found"
        )

    def cached_addresses(self) -> Optional[list[AddressRecord]]:
        return self._cache.get()

    def clear_cache(self) -> None:
        self._cache.clear()
