"""
Session module data models.

These models define the data structures used by the session module
and exposed to other modules through the interface.
"""

from typing import Optional

from pydantic import BaseModel, Field

from shared.models import WireModel


class TokenClaims(BaseModel):
    """
    Unverified claims read from an access token.

    Only what the client needs for expiry checks. The signature is not
    checked here; the backend does that on every request.
    """

    exp: float = Field(..., description="Expiration timestamp (seconds since epoch)")
    iat: Optional[float] = Field(None, description="Issued-at timestamp")
    sub: Optional[str] = Field(None, description="Subject (user ID)")

    model_config = {"extra": "ignore"}


class PendingRegistration(WireModel):
    """Marker kept between registration and OTP verification."""

    email: str = Field(..., description="Email the account was registered with")
    user_id: str = Field(..., description="Server-issued ID of the pending account")


class PendingVerification(BaseModel):
    """Result of a successful registration submission."""

    user_id: str = Field(..., description="ID to pass to verify_otp")
    email: str = Field(..., description="Where the OTP was sent")
    requires_otp: bool = Field(default=True)
    message: str = Field(default="Registration successful. Please verify your email.")
