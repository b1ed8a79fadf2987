"""
Shared infrastructure for the storefront client.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- exceptions: Base exception classes
- models: Records exchanged with the backend (users, addresses)
- storage: Durable and session-scoped key/value stores
- events: Typed event bus
- validation: Client-side input rules

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .exceptions import (
    StorefrontError,
    ValidationError,
    NotFoundError,
    AuthenticationError,
    GatewayRejectedError,
    NetworkUnavailableError,
)
from .models import UserRecord, AddressRecord, AddressType
from .storage import IKeyValueStore, MemoryStore, JsonFileStore
from .events import (
    Event,
    EventBus,
    SessionEstablished,
    SessionEnded,
    ProfileUpdated,
    AddressAdded,
    AddressUpdated,
    AddressDeleted,
)

__all__ = [
    "Settings",
    "get_settings",
    "StorefrontError",
    "ValidationError",
    "NotFoundError",
    "AuthenticationError",
    "GatewayRejectedError",
    "NetworkUnavailableError",
    "UserRecord",
    "AddressRecord",
    "AddressType",
    "IKeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "Event",
    "EventBus",
    "SessionEstablished",
    "SessionEnded",
    "ProfileUpdated",
    "AddressAdded",
    "AddressUpdated",
    "AddressDeleted",
]
