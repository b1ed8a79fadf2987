"""
Shared data models used across modules.

These are the records exchanged with the backend and kept in local
storage. Module-specific models stay in their respective module
directories.

The backend speaks camelCase JSON; attributes are snake_case and the
camelCase names are accepted and produced through aliases.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for records that travel over the wire in camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """Serialize to the camelCase JSON shape used by the backend."""
        return self.model_dump(mode="json", by_alias=True)


class UserRecord(WireModel):
    """
    One customer account.

    The email is the account's identity and does not change after
    creation. Everything else is editable profile data.
    """

    id: str = Field(..., description="Server-assigned user ID")
    email: str = Field(..., description="Account email address")
    first_name: str = Field(default="", description="Given name")
    last_name: str = Field(default="", description="Family name")
    phone: Optional[str] = Field(None, description="Contact phone number")
    date_of_birth: Optional[str] = Field(None, description="ISO date of birth")
    gender: Optional[str] = Field(None, description="Self-described gender")
    avatar: Optional[str] = Field(None, description="Avatar image URL")
    verified: bool = Field(default=False, description="Whether the email is verified")
    created_at: Optional[datetime] = Field(None, description="Account creation time")
    permissions: list[str] = Field(default_factory=list, description="Granted permissions")

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class AddressType(str, Enum):
    """Kinds of saved addresses."""

    HOME = "home"
    WORK = "work"
    OTHER = "other"


class AddressRecord(WireModel):
    """
    A saved shipping address.

    Belongs to exactly one user. At most one of a user's addresses is
    the default one.
    """

    id: str = Field(..., description="Server-assigned address ID")
    full_name: str = Field(..., description="Recipient name")
    phone: str = Field(..., description="Recipient phone number")
    address_line1: str = Field(..., description="Street address")
    address_line2: str = Field(default="", description="Apartment, suite, etc.")
    city: str = Field(..., description="City")
    state: str = Field(..., description="State or region")
    zip_code: str = Field(..., description="Postal code")
    country: str = Field(..., description="Country")
    address_type: AddressType = Field(default=AddressType.HOME, description="Address kind")
    is_default: bool = Field(default=False, description="Whether this is the default address")
