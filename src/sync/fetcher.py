"""Incremental, cursor-bounded synchronization of remote tables into the cache."""

import time
from collections.abc import Callable, Generator, Iterable
from datetime import UTC, datetime, timedelta

import structlog

from src.cache.models import CacheEntry, Record
from src.cache.store import CacheStore
from src.normalize.record import RecordNormalizer
from src.remote.errors import (
    ConfigurationError,
    ErrorRecord,
    SourceError,
    SourceErrorClass,
    TransientFetchError,
)
from src.remote.models import TableQuery
from src.remote.source import RecordSource
from src.sync.metrics import SyncMetrics
from src.sync.models import FetchOutcome, PageScan, SourceDescriptor
from src.sync.state_machine import FetchState, FetchStateMachine


logger = structlog.get_logger()

DEFAULT_MAX_PAGES = 50
DEFAULT_PAGE_SIZE = 100
DEFAULT_CACHE_TTL = timedelta(days=7)

CACHE_ONLY_MESSAGE = "Remote source not configured; serving cached data"


def _utc_now() -> datetime:
    return datetime.now(UTC)


def merge_records(
    fresh: Iterable[Record],
    cached: Iterable[Record],
) -> list[Record]:
    """Prepend fresh records to cached ones, dropping repeated ids.

    The first occurrence of an id wins, so a fresh copy replaces the
    cached one.

    Args:
        fresh: Newly fetched records, newest first.
        cached: Previously cached records, newest first.

    Returns:
        Merged records with unique ids.
    """
    seen: set[str] = set()
    merged: list[Record] = []
    for record in (*fresh, *cached):
        if record.id in seen:
            continue
        seen.add(record.id)
        merged.append(record)
    return merged


class IncrementalFetcher:
    """Keeps cached record sets in step with their remote tables.

    A fetch pages the remote newest-first and stops at the cursor left by
    the previous fetch, so steady-state refreshes cost a single page. When
    the cursor is never reached the fetched set replaces the cache, since
    the boundary record was deleted or reordered upstream.
    """

    def __init__(
        self,
        store: CacheStore,
        source: RecordSource | None,
        normalizer: RecordNormalizer | None = None,
        ttl: timedelta = DEFAULT_CACHE_TTL,
        max_pages: int = DEFAULT_MAX_PAGES,
        page_size: int = DEFAULT_PAGE_SIZE,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the fetcher.

        Args:
            store: Cache store holding entries for every source key.
            source: Remote record source, or None for cache-only mode.
            normalizer: Normalizer applied to fetched records.
            ttl: Freshness window of cached entries.
            max_pages: Page cap per fetch.
            page_size: Records per page.
            clock: Source of the current time.
        """
        self._store = store
        self._source = source
        self._normalizer = normalizer or RecordNormalizer()
        self._ttl = ttl
        self._max_pages = max_pages
        self._page_size = page_size
        self._clock = clock
        self._metrics = SyncMetrics.get_instance()
        self._log = logger.bind(component="sync")

    @property
    def cache_only(self) -> bool:
        """Whether the fetcher has no remote source."""
        return self._source is None

    @property
    def ttl(self) -> timedelta:
        """Freshness window of cached entries."""
        return self._ttl

    def fetch(
        self,
        source_key: str,
        descriptor: SourceDescriptor,
        force_refresh: bool = False,
    ) -> list[Record]:
        """Return normalized records for a source key.

        Args:
            source_key: Source key.
            descriptor: Base and queries of the source.
            force_refresh: Page the remote even if the cache is fresh.

        Returns:
            Records, newest first.
        """
        return self.sync(source_key, descriptor, force_refresh).records

    def sync(
        self,
        source_key: str,
        descriptor: SourceDescriptor,
        force_refresh: bool = False,
    ) -> FetchOutcome:
        """Synchronize a source key and describe what happened.

        Args:
            source_key: Source key.
            descriptor: Base and queries of the source.
            force_refresh: Page the remote even if the cache is fresh.

        Returns:
            Outcome with the served records and freshness indicators.

        Raises:
            SourceError: If the fetch fails and nothing was ever cached
                for the key. Configuration errors never raise; they serve
                the cache like cache-only mode.
        """
        log = self._log.bind(source_key=source_key)
        machine = FetchStateMachine(source_key)
        entry = self._store.get(source_key)
        fresh = self._store.is_valid(entry, self._ttl, self._clock())

        if fresh and not force_refresh:
            log.debug("cache_hit", record_count=entry.record_count)
            return self._serve_cached(machine, entry, stale=False)

        if self._source is None:
            log.info("cache_only_mode", record_count=entry.record_count)
            error = ErrorRecord(
                error_class=SourceErrorClass.CONFIGURATION,
                message=CACHE_ONLY_MESSAGE,
                source_key=source_key,
            )
            return self._serve_cached(machine, entry, stale=not fresh, error=error)

        with self._store.claim(source_key) as acquired:
            if not acquired:
                log.info("fetch_in_flight", record_count=entry.record_count)
                return self._serve_cached(machine, entry, stale=not fresh)

            return self._fetch_and_merge(
                self._source, source_key, descriptor, entry, machine, log
            )

    def _serve_cached(
        self,
        machine: FetchStateMachine,
        entry: CacheEntry,
        stale: bool,
        error: ErrorRecord | None = None,
    ) -> FetchOutcome:
        machine.to_cached()
        self._metrics.record_cache_hit()
        return FetchOutcome(
            source_key=entry.source_key,
            records=entry.records,
            cache_used=True,
            stale=stale,
            state=machine.state,
            error=error,
        )

    def _fetch_and_merge(
        self,
        source: RecordSource,
        source_key: str,
        descriptor: SourceDescriptor,
        entry: CacheEntry,
        machine: FetchStateMachine,
        log: structlog.stdlib.BoundLogger,
    ) -> FetchOutcome:
        """Page the remote, merge, and store; fall back to cache on failure.

        Must be called while holding the claim on ``source_key``.
        """
        start_ns = time.perf_counter_ns()
        cursor = entry.cursor

        try:
            machine.to_fetching()
            scan = self._collect(source, descriptor, cursor, log)

            machine.to_merging()
            fetched = self._normalizer.normalize_records(scan.records)
            if cursor is None or not (scan.reached_cursor or scan.truncated):
                # Cold fetch, or the whole table was read without meeting
                # the cursor: the fetched set is authoritative.
                merged = merge_records(fetched, [])
            else:
                merged = merge_records(fetched, entry.records)

            new_cursor = merged[0].id if merged else None
            self._store.update(source_key, merged, new_cursor, now=self._clock())
            machine.to_done()
        except Exception as e:  # noqa: BLE001
            error = (
                e
                if isinstance(e, SourceError)
                else TransientFetchError(f"Unexpected fetch failure: {e}")
            )
            error.source_key = source_key
            if machine.can_transition_to(FetchState.FAILED):
                machine.to_failed()
            self._metrics.record_failure(error.error_class.value)
            log.warning(
                "fetch_failed",
                error_class=error.error_class.value,
                error=error.message,
                cached_records=entry.record_count,
            )
            # Missing configuration degrades to cache-only even on a cold start
            cold_start = entry.fetched_at is None
            if cold_start and error.error_class != SourceErrorClass.CONFIGURATION:
                if error is e:
                    raise
                raise error from e
            return FetchOutcome(
                source_key=source_key,
                records=entry.records,
                cache_used=True,
                stale=True,
                state=machine.state,
                error=ErrorRecord.from_exception(error),
            )

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._metrics.record_fetch(len(fetched), duration_ms)

        if scan.truncated:
            log.warning(
                "fetch_truncated",
                max_pages=self._max_pages,
                cursor=cursor,
            )

        log.info(
            "fetch_complete",
            new_records=len(fetched),
            total_records=len(merged),
            pages=scan.pages,
            reached_cursor=scan.reached_cursor,
            duration_ms=round(duration_ms, 2),
        )
        return FetchOutcome(
            source_key=source_key,
            records=merged,
            new_records=len(fetched),
            pages=scan.pages,
            reached_cursor=scan.reached_cursor,
            truncated=scan.truncated,
            state=machine.state,
        )

    def _collect(
        self,
        source: RecordSource,
        descriptor: SourceDescriptor,
        cursor: str | None,
        log: structlog.stdlib.BoundLogger,
    ) -> PageScan:
        """Page the first query variant that starts successfully.

        A variant that fails before its first page moves on to the next;
        a failure after paging started is final.

        Args:
            source: Remote record source.
            descriptor: Base and query variants.
            cursor: Id to stop at, or None to read everything.
            log: Bound logger.

        Returns:
            Accepted raw records and paging statistics.

        Raises:
            SourceError: If every variant fails.
        """
        msg = "Source has no queries configured"
        last_error: SourceError = ConfigurationError(msg)

        for index, query in enumerate(descriptor.queries):
            scan = PageScan()
            try:
                self._scan_query(source, descriptor.base_id, query, cursor, scan)
            except SourceError as e:
                if scan.pages > 0:
                    raise
                last_error = e
                log.warning(
                    "query_variant_failed",
                    variant=index,
                    table=query.table,
                    view=query.view,
                    error=e.message,
                )
                continue
            return scan

        raise last_error

    def _scan_query(
        self,
        source: RecordSource,
        base_id: str,
        query: TableQuery,
        cursor: str | None,
        scan: PageScan,
    ) -> None:
        """Consume pages until the cursor, the page cap, or the end."""
        pages = source.iter_pages(base_id, query, self._page_size)
        try:
            for page in pages:
                scan.pages += 1
                for raw in page:
                    if cursor is not None and raw.id == cursor:
                        scan.reached_cursor = True
                        break
                    scan.records.append(Record(id=raw.id, fields=dict(raw.fields)))
                if scan.reached_cursor:
                    return
                if scan.pages >= self._max_pages:
                    scan.truncated = True
                    return
        finally:
            if isinstance(pages, Generator):
                pages.close()
