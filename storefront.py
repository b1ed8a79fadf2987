"""
Storefront client composition root.

Wires the stores, event bus, gateway and services into one container.
Every component receives its collaborators explicitly; this is the only
place where concrete implementations are chosen.
"""

import logging
from typing import Optional

from gateways.base import IBackendGateway
from gateways.factory import create_gateway
from modules.accounts.cache import AddressCache
from modules.accounts.service import AccountService
from modules.auth_state.service import AuthStateCoordinator
from modules.session.service import SessionManager
from modules.session.token_store import TokenStore
from shared.config import Settings, get_settings
from shared.events import EventBus
from shared.storage import IKeyValueStore, JsonFileStore, MemoryStore

logger = logging.getLogger(__name__)


class StorefrontClient:
    """
    Container for one client instance.

    Holds the session manager, account service and auth state
    coordinator sharing a single token store and event bus.
    """

    def __init__(
        self,
        settings: Settings,
        gateway: IBackendGateway,
        durable_store: IKeyValueStore,
        session_store: IKeyValueStore,
    ):
        self.settings = settings
        self.gateway = gateway
        self.events = EventBus()
        self.token_store = TokenStore(durable_store, session_store)
        self.session = SessionManager(gateway, self.token_store, self.events, settings)
        self.accounts = AccountService(
            gateway, self.session, AddressCache(durable_store), self.events, settings
        )
        self.coordinator = AuthStateCoordinator(
            self.session, self.accounts, self.events, settings
        )

    async def aclose(self) -> None:
        """Stop the refresh loop and release the gateway's connections."""
        await self.coordinator.stop()
        close = getattr(self.gateway, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def create_client(
    settings: Optional[Settings] = None,
    gateway: Optional[IBackendGateway] = None,
    gateway_kind: str = "http",
) -> StorefrontClient:
    """
    Build a client.

    Args:
        settings: Client settings (defaults to get_settings())
        gateway: Gateway to use instead of building one from settings
        gateway_kind: Gateway kind passed to create_gateway() when none is given

    Durable state goes to a JSON file when settings.storage_path is set
    and stays in memory otherwise. Session-scoped state is always in memory.
    """
    settings = settings or get_settings()
    gateway = gateway or create_gateway(settings, kind=gateway_kind)

    if settings.storage_path:
        durable_store: IKeyValueStore = JsonFileStore(settings.storage_path)
        logger.info(f"Persisting client state to {settings.storage_path}")
    else:
        durable_store = MemoryStore()

    return StorefrontClient(settings, gateway, durable_store, MemoryStore())
