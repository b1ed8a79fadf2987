"""Backend gateway implementations."""

from .base import IBackendGateway
from .factory import create_gateway
from .http import HttpBackendGateway
from .memory import InMemoryBackendGateway
from .models import (
    AddressFields,
    ImageUpload,
    IssuedSession,
    ProfileChanges,
    RegistrationReceipt,
    TokenPair,
)

__all__ = [
    "IBackendGateway",
    "HttpBackendGateway",
    "InMemoryBackendGateway",
    "create_gateway",
    "AddressFields",
    "ImageUpload",
    "IssuedSession",
    "ProfileChanges",
    "RegistrationReceipt",
    "TokenPair",
]
