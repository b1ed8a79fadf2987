"""
Accounts module exceptions.

Read failures that could not fall back to the cache, and backend
refusals of profile and address writes.
"""

from typing import Optional

from shared.exceptions import GatewayRejectedError, NotFoundError, StorefrontError


class ProfileUnavailableError(StorefrontError):
    """Raised when the profile could not be fetched and nothing is cached."""

    def __init__(self, message: str = "Failed to fetch profile"):
        super().__init__(message, code="PROFILE_UNAVAILABLE")


class AddressesUnavailableError(StorefrontError):
    """Raised when addresses could not be fetched and nothing is cached."""

    def __init__(self, message: str = "Failed to fetch addresses"):
        super().__init__(message, code="ADDRESSES_UNAVAILABLE")


class AddressNotFoundError(NotFoundError):
    """Raised when the backend does not know an address ID."""

    def __init__(self, address_id: str):
        super().__init__(
            f"Address not found: {address_id}",
            code="ADDRESS_NOT_FOUND",
            details={"address_id": address_id},
        )
        self.address_id = address_id


class ProfileUpdateRejectedError(GatewayRejectedError):
    """Raised when the backend refuses a profile update."""

    def __init__(self, message: str = "Failed to update profile", status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code, code="PROFILE_UPDATE_REJECTED")


class AvatarUploadError(GatewayRejectedError):
    """Raised when the backend refuses an avatar upload."""

    def __init__(
        self, message: str = "Failed to upload profile picture", status_code: Optional[int] = None
    ):
        super().__init__(message, status_code=status_code, code="AVATAR_UPLOAD_FAILED")


class AccountDeletionError(GatewayRejectedError):
    """Raised when the backend refuses to delete the account."""

    def __init__(self, message: str = "Failed to delete account", status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code, code="ACCOUNT_DELETION_FAILED")


class AddressOperationError(GatewayRejectedError):
    """Raised when the backend refuses an address operation for a reason other than 404."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code, code="ADDRESS_OPERATION_FAILED")
