"""Request and response payloads exchanged with the backend gateway."""

from typing import Optional

from pydantic import BaseModel, Field

from shared.models import AddressType, UserRecord, WireModel


class RegistrationReceipt(WireModel):
    """Backend acknowledgement of a registration awaiting OTP verification."""

    user_id: str = Field(..., description="Server-issued ID of the pending account")


class TokenPair(WireModel):
    """Access/refresh token pair returned by a refresh."""

    access_token: str = Field(..., description="New access token")
    refresh_token: Optional[str] = Field(None, description="Rotated refresh token, if any")


class IssuedSession(TokenPair):
    """Tokens plus the account they belong to (login, OTP verification)."""

    user: UserRecord


class ProfileChanges(WireModel):
    """
    Partial profile update.

    Only fields that are set are sent; unset fields keep their
    server-side values.
    """

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AddressFields(WireModel):
    """Editable part of an address (everything but the server-assigned ID)."""

    full_name: str
    phone: str
    address_line1: str
    address_line2: str = ""
    city: str
    state: str
    zip_code: str
    country: str
    address_type: AddressType = AddressType.HOME
    is_default: bool = False


class ImageUpload(BaseModel):
    """An image file selected for upload."""

    filename: str = Field(..., description="Original file name")
    content_type: str = Field(..., description="MIME type, e.g. image/png")
    data: bytes = Field(..., description="Raw file contents")

    @property
    def size(self) -> int:
        return len(self.data)
