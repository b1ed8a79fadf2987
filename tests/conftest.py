"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
Every fixture builds fresh in-memory components; nothing touches the network
or the real filesystem.
"""

import pytest
import pytest_asyncio

from gateways.memory import DEMO_EMAIL, DEMO_PASSWORD, InMemoryBackendGateway
from modules.accounts.cache import AddressCache
from modules.accounts.service import AccountService
from modules.auth_state.service import AuthStateCoordinator
from modules.session.service import SessionManager
from modules.session.token_store import TokenStore
from shared.config import Settings, get_settings
from shared.events import (
    AddressAdded,
    AddressDeleted,
    AddressUpdated,
    Event,
    EventBus,
    ProfileUpdated,
    SessionEnded,
    SessionEstablished,
)
from shared.storage import MemoryStore

EVENT_TYPES = (
    SessionEstablished,
    SessionEnded,
    ProfileUpdated,
    AddressAdded,
    AddressUpdated,
    AddressDeleted,
)


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Clear the cached settings before and after each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults only (no .env file)."""
    return Settings(_env_file=None)


@pytest.fixture
def gateway() -> InMemoryBackendGateway:
    """Fake backend seeded with the demo account."""
    return InMemoryBackendGateway()


@pytest.fixture
def durable_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def session_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def published(events) -> list[Event]:
    """List that receives every event published on the bus, in order."""
    history: list[Event] = []
    for event_type in EVENT_TYPES:
        events.subscribe(event_type, history.append)
    return history


@pytest.fixture
def token_store(durable_store, session_store) -> TokenStore:
    return TokenStore(durable_store, session_store)


@pytest.fixture
def address_cache(durable_store) -> AddressCache:
    return AddressCache(durable_store)


@pytest.fixture
def session(gateway, token_store, events, settings) -> SessionManager:
    return SessionManager(gateway, token_store, events, settings)


@pytest.fixture
def accounts(gateway, session, address_cache, events, settings) -> AccountService:
    return AccountService(gateway, session, address_cache, events, settings)


@pytest.fixture
def coordinator(session, accounts, events, settings) -> AuthStateCoordinator:
    return AuthStateCoordinator(session, accounts, events, settings)


@pytest_asyncio.fixture
async def logged_in(session):
    """Log in as the demo user and return the user record."""
    return await session.login(DEMO_EMAIL, DEMO_PASSWORD)


@pytest.fixture
def address_input() -> dict:
    """Valid input for add_address / update_address."""
    return {
        "full_name": "Jane Roe",
        "phone": "+1-555-1234567",
        "address_line1": "789 Elm St",
        "address_line2": "",
        "city": "Boston",
        "state": "MA",
        "zip_code": "02110",
        "country": "USA",
        "address_type": "home",
        "is_default": False,
    }
