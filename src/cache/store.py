"""In-memory cache of per-source record sets backed by durable persistence."""

import threading
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta

import structlog

from src.cache.backends import CachePersistence
from src.cache.errors import PersistenceError, UnknownSourceError
from src.cache.models import CacheEntry, CacheStatus, Record


logger = structlog.get_logger()


class CacheStore:
    """Keyed cache of fetched record sets with freshness metadata.

    Every registered source key always has an entry (possibly empty).
    Entries are replaced wholesale; the in-flight flag doubles as a
    best-effort single-flight guard that never blocks callers.
    """

    def __init__(
        self,
        persistence: CachePersistence,
        source_keys: Iterable[str],
    ) -> None:
        """Initialize the cache store.

        Args:
            persistence: Durable storage collaborator keyed by source key.
            source_keys: Source keys managed by this store.
        """
        self._persistence = persistence
        self._entries: dict[str, CacheEntry] = {
            key: CacheEntry.empty(key) for key in source_keys
        }
        self._lock = threading.Lock()
        self._log = logger.bind(component="cache")

    @property
    def source_keys(self) -> list[str]:
        """Get registered source keys in registration order."""
        return list(self._entries)

    def load_all(self) -> int:
        """Load every registered key from persistence.

        Missing or unreadable entries start empty.

        Returns:
            Total number of records loaded.
        """
        total = 0
        for key in self.source_keys:
            loaded = self._persistence.load(key)
            entry = loaded if loaded is not None else CacheEntry.empty(key)
            with self._lock:
                self._entries[key] = entry
            total += entry.record_count

        self._log.info(
            "cache_loaded",
            source_count=len(self._entries),
            total_records=total,
        )
        return total

    def get(self, source_key: str) -> CacheEntry:
        """Get the current entry for a source key.

        Args:
            source_key: Source key.

        Returns:
            Current cache entry.

        Raises:
            UnknownSourceError: If the key is not registered.
        """
        with self._lock:
            entry = self._entries.get(source_key)
        if entry is None:
            raise UnknownSourceError(source_key)
        return entry

    @staticmethod
    def is_valid(
        entry: CacheEntry,
        ttl: timedelta,
        now: datetime | None = None,
    ) -> bool:
        """Check whether an entry is fresh enough to serve without fetching.

        Args:
            entry: Entry to check.
            ttl: Freshness window.
            now: Current time (defaults to the wall clock).

        Returns:
            True iff the entry has data and ``now - fetched_at < ttl``.
        """
        if not entry.has_data or entry.fetched_at is None:
            return False
        current = now or datetime.now(UTC)
        return current - entry.fetched_at < ttl

    def update(
        self,
        source_key: str,
        records: Sequence[Record],
        cursor: str | None,
        now: datetime | None = None,
    ) -> CacheEntry:
        """Replace an entry, persist it, and clear its in-flight flag.

        A persistence failure is logged; the in-memory entry is still
        replaced so the process keeps serving the fresh data.

        Args:
            source_key: Source key.
            records: New record sequence, newest first.
            cursor: Id of the first record of the latest fetch.
            now: Fetch timestamp (defaults to the wall clock).

        Returns:
            The new entry.
        """
        self.get(source_key)
        entry = CacheEntry(
            source_key=source_key,
            records=list(records),
            fetched_at=now or datetime.now(UTC),
            cursor=cursor,
            in_flight=False,
        )
        with self._lock:
            self._entries[source_key] = entry

        try:
            self._persistence.save(entry)
        except PersistenceError as e:
            self._log.error(
                "cache_persist_failed",
                source_key=source_key,
                error=str(e),
            )

        self._log.info(
            "cache_updated",
            source_key=source_key,
            record_count=entry.record_count,
            cursor=cursor,
        )
        return entry

    def set_in_flight(self, source_key: str, in_flight: bool) -> None:
        """Set the in-flight flag for a source key.

        Args:
            source_key: Source key.
            in_flight: New flag value.
        """
        with self._lock:
            entry = self._entries.get(source_key)
            if entry is None:
                raise UnknownSourceError(source_key)
            self._entries[source_key] = entry.model_copy(
                update={"in_flight": in_flight}
            )

    def try_claim(self, source_key: str) -> bool:
        """Atomically set the in-flight flag if it is not already set.

        Args:
            source_key: Source key.

        Returns:
            True if this caller now owns the fetch for the key.
        """
        with self._lock:
            entry = self._entries.get(source_key)
            if entry is None:
                raise UnknownSourceError(source_key)
            if entry.in_flight:
                return False
            self._entries[source_key] = entry.model_copy(update={"in_flight": True})
            return True

    @contextmanager
    def claim(self, source_key: str) -> Iterator[bool]:
        """Scope a single-flight claim on a source key.

        Yields whether the claim was acquired. An acquired claim is released
        on every exit path, including exceptions; a claim that was not
        acquired is left untouched for its owner.

        Args:
            source_key: Source key.

        Yields:
            True if this caller owns the fetch.
        """
        acquired = self.try_claim(source_key)
        try:
            yield acquired
        finally:
            if acquired:
                self.set_in_flight(source_key, False)

    def status(
        self,
        ttl: timedelta,
        now: datetime | None = None,
    ) -> dict[str, CacheStatus]:
        """Summarize every registered entry.

        Args:
            ttl: Freshness window used for ``is_valid``.
            now: Current time (defaults to the wall clock).

        Returns:
            Mapping of source key to status.
        """
        with self._lock:
            entries = dict(self._entries)

        return {
            key: CacheStatus(
                has_data=entry.has_data,
                record_count=entry.record_count,
                last_updated=entry.fetched_at,
                is_valid=self.is_valid(entry, ttl, now),
                cursor=entry.cursor,
                in_flight=entry.in_flight,
            )
            for key, entry in entries.items()
        }

    def clear_all(self) -> None:
        """Reset every entry to empty and delete persisted copies."""
        for key in self.source_keys:
            with self._lock:
                self._entries[key] = CacheEntry.empty(key)
            try:
                self._persistence.delete(key)
            except PersistenceError as e:
                self._log.warning("cache_delete_failed", source_key=key, error=str(e))

        self._log.info("cache_cleared", source_count=len(self._entries))
