"""
Auth state module data models.
"""

from typing import Optional

from pydantic import BaseModel, Field

from shared.models import UserRecord


class AuthSnapshot(BaseModel):
    """What listeners are told after every auth state change."""

    is_authenticated: bool = Field(..., description="Whether a live session exists")
    user: Optional[UserRecord] = Field(None, description="Session user when authenticated")

    model_config = {"frozen": True}


class AuthGate(BaseModel):
    """
    Answer to "may the caller proceed?".

    When not allowed, `redirect_to` is the login entry point with the
    originally requested location encoded so the user can be sent back
    after logging in.
    """

    allowed: bool
    redirect_to: Optional[str] = None
    message: Optional[str] = None

    model_config = {"frozen": True}
