"""
Accounts module.

Handles the customer profile and saved addresses, keeping a local copy
that is reconciled with the backend.

Public API:
- IAccountService: Interface for profile/address operations
- AccountService: Default implementation
- AddressCache: Local address collection
- ProfileResult, AddressListResult, DefaultAddressResult: Read results
- Account exceptions: AddressNotFoundError, ProfileUnavailableError, etc.
"""

from .interfaces import IAccountService
from .models import ProfileResult, AddressListResult, DefaultAddressResult
from .cache import AddressCache
from .service import AccountService
from .exceptions import (
    ProfileUnavailableError,
    AddressesUnavailableError,
    AddressNotFoundError,
    ProfileUpdateRejectedError,
    AvatarUploadError,
    AccountDeletionError,
    AddressOperationError,
)

__all__ = [
    # Interface
    "IAccountService",
    # Implementation
    "AccountService",
    "AddressCache",
    # Models
    "ProfileResult",
    "AddressListResult",
    "DefaultAddressResult",
    # Exceptions
    "ProfileUnavailableError",
    "AddressesUnavailableError",
    "AddressNotFoundError",
    "ProfileUpdateRejectedError",
    "AvatarUploadError",
    "AccountDeletionError",
    "AddressOperationError",
]
