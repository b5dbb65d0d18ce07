"""Unit tests for the cache store."""

from datetime import timedelta

import pytest

from src.cache.errors import UnknownSourceError
from src.cache.models import CacheEntry, Record
from src.cache.store import CacheStore
from tests.helpers.fakes import MemoryBackend
from tests.helpers.time import FIXED_NOW


TTL = timedelta(days=7)


def _records(*ids: str) -> list[Record]:
    return [Record(id=record_id, fields={"name": record_id}) for record_id in ids]


@pytest.fixture
def backend() -> MemoryBackend:
    """Create an empty in-memory backend."""
    return MemoryBackend()


@pytest.fixture
def store(backend: MemoryBackend) -> CacheStore:
    """Create a store with two registered keys."""
    return CacheStore(backend, source_keys=["items", "outfits"])


class TestRegistration:
    """Tests for registered keys."""

    def test_every_key_starts_empty(self, store: CacheStore) -> None:
        """Test that registered keys have empty entries."""
        for key in ("items", "outfits"):
            entry = store.get(key)
            assert entry.records == []
            assert entry.fetched_at is None
            assert entry.cursor is None
            assert entry.has_data is False

    def test_unknown_key_raises(self, store: CacheStore) -> None:
        """Test that unregistered keys are rejected."""
        with pytest.raises(UnknownSourceError):
            store.get("shoes")

    def test_source_keys_keep_order(self, store: CacheStore) -> None:
        """Test that source keys are listed in registration order."""
        assert store.source_keys == ["items", "outfits"]


class TestIsValid:
    """Tests for the freshness check."""

    def test_empty_entry_is_invalid(self) -> None:
        """Test that an entry without data is never valid."""
        assert CacheStore.is_valid(CacheEntry.empty("items"), TTL, FIXED_NOW) is False

    def test_fetched_but_empty_is_invalid(self) -> None:
        """Test that a completed fetch with no records is not valid."""
        entry = CacheEntry(source_key="items", records=[], fetched_at=FIXED_NOW)
        assert CacheStore.is_valid(entry, TTL, FIXED_NOW) is False

    def test_valid_just_inside_ttl(self) -> None:
        """Test that an entry one millisecond younger than the TTL is valid."""
        entry = CacheEntry(
            source_key="items",
            records=_records("rec1"),
            fetched_at=FIXED_NOW - TTL + timedelta(milliseconds=1),
        )
        assert CacheStore.is_valid(entry, TTL, FIXED_NOW) is True

    def test_invalid_at_ttl_boundary(self) -> None:
        """Test that an entry exactly as old as the TTL is stale."""
        entry = CacheEntry(
            source_key="items",
            records=_records("rec1"),
            fetched_at=FIXED_NOW - TTL,
        )
        assert CacheStore.is_valid(entry, TTL, FIXED_NOW) is False

    def test_invalid_just_past_ttl(self) -> None:
        """Test that an entry one millisecond older than the TTL is stale."""
        entry = CacheEntry(
            source_key="items",
            records=_records("rec1"),
            fetched_at=FIXED_NOW - TTL - timedelta(milliseconds=1),
        )
        assert CacheStore.is_valid(entry, TTL, FIXED_NOW) is False


class TestUpdate:
    """Tests for entry replacement."""

    def test_update_replaces_and_persists(
        self, store: CacheStore, backend: MemoryBackend
    ) -> None:
        """Test that update swaps the entry and writes it through."""
        entry = store.update("items", _records("rec2", "rec1"), "rec2", now=FIXED_NOW)

        assert store.get("items") == entry
        assert entry.cursor == "rec2"
        assert entry.fetched_at == FIXED_NOW
        assert backend.entries["items"].record_count == 2

    def test_update_clears_in_flight(self, store: CacheStore) -> None:
        """Test that update releases the in-flight flag."""
        assert store.try_claim("items") is True
        store.update("items", _records("rec1"), "rec1", now=FIXED_NOW)

        assert store.get("items").in_flight is False

    def test_persistence_failure_keeps_memory_entry(self) -> None:
        """Test that a failed save does not discard the in-memory update."""
        store = CacheStore(MemoryBackend(fail_saves=True), source_keys=["items"])

        store.update("items", _records("rec1"), "rec1", now=FIXED_NOW)

        assert store.get("items").record_count == 1

    def test_load_all_restores_persisted_entries(self, backend: MemoryBackend) -> None:
        """Test that a new store sees entries saved by a previous one."""
        first = CacheStore(backend, source_keys=["items", "outfits"])
        first.update("items", _records("rec3", "rec2"), "rec3", now=FIXED_NOW)

        second = CacheStore(backend, source_keys=["items", "outfits"])
        total = second.load_all()

        assert total == 2
        assert second.get("items").cursor == "rec3"
        assert second.get("outfits").has_data is False


class TestClaim:
    """Tests for the single-flight guard."""

    def test_second_claim_is_refused(self, store: CacheStore) -> None:
        """Test that only one caller owns a key at a time."""
        assert store.try_claim("items") is True
        assert store.try_claim("items") is False
        assert store.try_claim("outfits") is True

    def test_claim_context_releases_on_error(self, store: CacheStore) -> None:
        """Test that an acquired claim is released when the body raises."""
        with pytest.raises(RuntimeError), store.claim("items") as acquired:
            assert acquired is True
            raise RuntimeError("boom")

        assert store.get("items").in_flight is False

    def test_unacquired_claim_leaves_owner_flag(self, store: CacheStore) -> None:
        """Test that a refused claim does not clear the owner's flag."""
        store.try_claim("items")

        with store.claim("items") as acquired:
            assert acquired is False

        assert store.get("items").in_flight is True


class TestStatusAndClear:
    """Tests for status reporting and clearing."""

    def test_status_reports_every_key(self, store: CacheStore) -> None:
        """Test that status summarizes valid and empty entries."""
        store.update("items", _records("rec1"), "rec1", now=FIXED_NOW)

        status = store.status(TTL, FIXED_NOW + timedelta(hours=1))

        assert status["items"].is_valid is True
        assert status["items"].record_count == 1
        assert status["items"].last_updated == FIXED_NOW
        assert status["outfits"].has_data is False
        assert status["outfits"].is_valid is False

    def test_clear_all_empties_entries_and_backend(
        self, store: CacheStore, backend: MemoryBackend
    ) -> None:
        """Test that clear_all resets memory and persisted copies."""
        store.update("items", _records("rec1"), "rec1", now=FIXED_NOW)

        store.clear_all()

        assert store.get("items").has_data is False
        assert "items" not in backend.entries
