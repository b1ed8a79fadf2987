"""
Local address cache.

A derived copy of the backend's address collection. It is only written
after the backend has confirmed a change, and it is never the source
of truth.
"""

import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from shared.models import AddressRecord
from shared.storage import IKeyValueStore

logger = logging.getLogger(__name__)

ADDRESSES_KEY = "user_addresses"


class AddressCache:
    """Address collection persisted in a key/value store."""

    def __init__(self, store: IKeyValueStore):
        self._store = store

    def get(self) -> Optional[list[AddressRecord]]:
        """Return the cached collection, or None if nothing has been cached."""
        data = self._store.get(ADDRESSES_KEY)
        if data is None:
            return None
        try:
            return [AddressRecord.model_validate(item) for item in data]
        except (PydanticValidationError, TypeError):
            logger.warning("Dropping unreadable address cache")
            self._store.remove(ADDRESSES_KEY)
            return None

    def replace(self, addresses: list[AddressRecord]) -> None:
        self._store.set(ADDRESSES_KEY, [a.to_wire() for a in addresses])
        logger.debug(f"Address cache replaced ({len(addresses)} entries)")

    def append(self, address: AddressRecord) -> None:
        addresses = self.get() or []
        addresses.append(address)
        self.replace(addresses)

    def replace_entry(self, address: AddressRecord) -> bool:
        """Swap the entry with the same ID. Returns False if it is not cached."""
        addresses = self.get()
        if not addresses:
            return False
        for index, cached in enumerate(addresses):
            if cached.id == address.id:
                addresses[index] = address
                self.replace(addresses)
                return True
        return False

    def remove(self, address_id: str) -> None:
        addresses = self.get()
        if addresses is None:
            return
        self.replace([a for a in addresses if a.id != address_id])

    def mark_default(self, address_id: str) -> None:
        """
        Make `address_id` the only default entry.

        Every entry is rewritten, not just the target, so no sibling can
        keep a stale default flag.
        """
        addresses = self.get()
        if addresses is None:
            return
        self.replace(
            [a.model_copy(update={"is_default": a.id == address_id}) for a in addresses]
        )

    def clear(self) -> None:
        self._store.remove(ADDRESSES_KEY)
        logger.debug("Address cache cleared")
