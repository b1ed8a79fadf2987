import pytest

from modules.accounts.cache import ADDRESSES_KEY, AddressCache
from shared.models import AddressRecord


def make_address(address_id: str, is_default: bool = False) -> AddressRecord:
    return AddressRecord(
        id=address_id,
        full_name="John Doe",
        phone="+1234567890",
        address_line1="1 Main St",
        city="New York",
        state="NY",
        zip_code="10001",
        country="USA",
        is_default=is_default,
    )


@pytest.fixture
def seeded(address_cache) -> AddressCache:
    address_cache.replace([make_address("a1", is_default=True), make_address("a2")])
    return address_cache


class TestAddressCache:
    def test_empty(self, address_cache):
        """An unwritten cache should report None, not an empty list."""
        assert address_cache.get() is None

    def test_replace_stores_wire_format(self, seeded, durable_store):
        """Entries should be persisted in camelCase."""
        stored = durable_store.get(ADDRESSES_KEY)
        assert stored[0]["isDefault"] is True
        assert stored[0]["addressLine1"] == "1 Main St"

    def test_append_creates_cache(self, address_cache):
        """Appending to an absent cache should create it."""
        address_cache.append(make_address("a1"))
        assert [a.id for a in address_cache.get()] == ["a1"]

    def test_replace_entry(self, seeded):
        """replace_entry should swap the entry with the same ID."""
        updated = make_address("a2").model_copy(update={"city": "Boston"})
        assert seeded.replace_entry(updated) is True
        assert seeded.get()[1].city == "Boston"

    def test_replace_entry_unknown(self, seeded):
        """replace_entry should leave the cache alone for an unknown ID."""
        assert seeded.replace_entry(make_address("zz")) is False
        assert [a.id for a in seeded.get()] == ["a1", "a2"]

    def test_remove(self, seeded):
        """remove should drop the entry."""
        seeded.remove("a1")
        assert [a.id for a in seeded.get()] == ["a2"]

    def test_remove_from_empty(self, address_cache):
        """Removing from an absent cache should not create one."""
        address_cache.remove("a1")
        assert address_cache.get() is None

    def test_mark_default_single(self, seeded):
        """mark_default should leave exactly one default entry."""
        seeded.mark_default("a2")
        assert [(a.id, a.is_default) for a in seeded.get()] == [("a1", False), ("a2", True)]

    def test_mark_default_unknown_clears_all(self, seeded):
        """Marking an uncached ID should clear every cached default flag."""
        seeded.mark_default("zz")
        assert not any(a.is_default for a in seeded.get())

    def test_unreadable_cache_dropped(self, address_cache, durable_store):
        """A corrupt cache should be removed and reported as absent."""
        durable_store.set(ADDRESSES_KEY, [{"id": "a1"}])
        assert address_cache.get() is None
        assert durable_store.get(ADDRESSES_KEY) is None

    def test_clear(self, seeded):
        """clear should remove the cache entirely."""
        seeded.clear()
        assert seeded.get() is None
