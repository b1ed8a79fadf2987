"""
Accounts module data models.

Read results carry a `stale` flag: True means the backend could not be
reached and the value came from the local cache.
"""

from typing import Optional

from pydantic import BaseModel, Field

from shared.models import AddressRecord, UserRecord


class ProfileResult(BaseModel):
    """Result of a profile read."""

    user: UserRecord
    stale: bool = Field(default=False, description="Served from cache after a failed fetch")


class AddressListResult(BaseModel):
    """Result of an address list read."""

    addresses: list[AddressRecord] = Field(default_factory=list)
    stale: bool = Field(default=False, description="Served from cache after a failed fetch")


class DefaultAddressResult(BaseModel):
    """
    Result of looking up the default address.

    Not finding one is a normal outcome, not an error.
    """

    address: Optional[AddressRecord] = None
    found: bool = False
    stale: bool = False
    message: Optional[str] = None
