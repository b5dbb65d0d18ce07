"""Facade over cache, fetcher, normalization and status classification."""

import contextvars
import uuid
from collections.abc import Callable, Collection, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import UTC, datetime
from typing import Any

import structlog

from src.cache.errors import UnknownSourceError
from src.cache.models import CacheStatus, Record
from src.cache.store import CacheStore
from src.config.schemas.mirror import MirrorConfig
from src.mirror.models import HealthReport, RefreshResult, StatusCounts
from src.observability.logging import bind_sync_context, clear_sync_context
from src.remote.errors import ErrorRecord, SourceError, SourceErrorClass
from src.status.classifier import ItemClassifier
from src.status.configuration import StatusConfiguration
from src.status.models import Categorized, StatusConfigSnapshot
from src.sync.fetcher import IncrementalFetcher
from src.sync.models import FetchOutcome, SourceDescriptor


logger = structlog.get_logger()

DEFAULT_MAX_WORKERS = 4


def _utc_now() -> datetime:
    return datetime.now(UTC)


class MirrorService:
    """Entry point for consumers of the mirrored datasets.

    Every dataset is fetched and cached independently; a failure on one
    source never affects another.
    """

    def __init__(  # noqa: PLR0913
        self,
        config: MirrorConfig,
        store: CacheStore,
        fetcher: IncrementalFetcher,
        descriptors: Mapping[str, SourceDescriptor],
        status_configuration: StatusConfiguration,
        classifier: ItemClassifier | None = None,
        missing_variables: Sequence[str] = (),
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the service.

        Args:
            config: Mirror configuration.
            store: Cache store for every source key.
            fetcher: Incremental fetcher over the store.
            descriptors: Resolved read parameters per enabled source key.
            status_configuration: Active-status configuration.
            classifier: Record classifier.
            missing_variables: Unset remote-source environment variables.
            clock: Source of the current time.
        """
        self._config = config
        self._store = store
        self._fetcher = fetcher
        self._descriptors = dict(descriptors)
        self._status = status_configuration
        self._classifier = classifier or ItemClassifier(config.status_field)
        self._missing_variables = list(missing_variables)
        self._clock = clock
        self._log = logger.bind(component="mirror")

    @property
    def source_keys(self) -> list[str]:
        """Enabled source keys in configuration order."""
        return list(self._descriptors)

    @property
    def status_configuration(self) -> StatusConfiguration:
        """Live status configuration."""
        return self._status

    @property
    def classifier(self) -> ItemClassifier:
        """Record classifier."""
        return self._classifier

    @property
    def unresolved_sources(self) -> list[str]:
        """Enabled source keys whose base id is not configured."""
        return [key for key, d in self._descriptors.items() if not d.base_id]

    def _descriptor(self, source_key: str) -> SourceDescriptor:
        descriptor = self._descriptors.get(source_key)
        if descriptor is None:
            raise UnknownSourceError(source_key)
        return descriptor

    def sync_source(
        self, source_key: str, force_refresh: bool = False
    ) -> FetchOutcome:
        """Synchronize one source and report how.

        Raises:
            UnknownSourceError: If the source key is not enabled.
            SourceError: On a cold-start fetch failure.
        """
        descriptor = self._descriptor(source_key)
        return self._fetcher.sync(source_key, descriptor, force_refresh)

    def get_records(
        self, source_key: str, force_refresh: bool = False
    ) -> list[Record]:
        """Return normalized records of one source.

        Args:
            source_key: Source key.
            force_refresh: Page the remote even if the cache is fresh.

        Returns:
            Records, newest first.

        Raises:
            UnknownSourceError: If the source key is not enabled.
            SourceError: On a cold-start fetch failure.
        """
        return self.sync_source(source_key, force_refresh).records

    def _item_records(self, force_refresh: bool) -> list[Record]:
        """Combine item sources; a source failing on a cold start adds nothing."""
        items: list[Record] = []
        for key in self._config.item_sources:
            if key not in self._descriptors:
                continue
            try:
                items.extend(self.get_records(key, force_refresh))
            except SourceError as e:
                self._log.warning(
                    "item_source_failed", source_key=key, error=e.message
                )
        return items

    def get_all_items(self, force_refresh: bool = False) -> list[Record]:
        """Return records of every item source combined.

        Refreshes the status configuration when forced or stale.

        Args:
            force_refresh: Page the remote even if caches are fresh.

        Returns:
            Combined item records.
        """
        items = self._item_records(force_refresh)
        if force_refresh or self._status.needs_update(self._clock()):
            self._status.update(items, now=self._clock())
        self._log.info("all_items_loaded", item_count=len(items))
        return items

    def get_categorized_items(self, force_refresh: bool = False) -> Categorized:
        """Split all items into active and inactive."""
        items = self.get_all_items(force_refresh)
        return self._classifier.categorize(items, self._status.active_statuses)

    def get_active_items(self, force_refresh: bool = False) -> list[Record]:
        """Return items whose status is active."""
        return self.get_categorized_items(force_refresh).active

    def get_cache_status(self) -> dict[str, CacheStatus]:
        """Summarize every cache entry."""
        return self._store.status(self._fetcher.ttl, self._clock())

    def get_status_configuration(self) -> StatusConfigSnapshot:
        """Return the current status configuration."""
        return self._status.snapshot()

    def update_status_configuration(
        self,
        force_refresh: bool = False,
    ) -> StatusConfigSnapshot:
        """Recompute the status configuration from item records.

        Args:
            force_refresh: Page the remote for the item sources first.

        Returns:
            The new configuration.
        """
        items = self._item_records(force_refresh)
        return self._status.update(items, now=self._clock())

    def categorize(
        self,
        items: Sequence[Record],
        active_statuses: Collection[str] | None = None,
    ) -> Categorized:
        """Split records by exact membership in the active statuses.

        Args:
            items: Normalized records.
            active_statuses: Active set; defaults to the configured one.

        Returns:
            Active and inactive records.
        """
        if active_statuses is None:
            active_statuses = self._status.active_statuses
        return self._classifier.categorize(items, active_statuses)

    def refresh_all(
        self,
        force_refresh: bool = False,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> RefreshResult:
        """Synchronize every enabled source concurrently.

        Args:
            force_refresh: Page the remote even if caches are fresh.
            max_workers: Maximum parallel fetches.

        Returns:
            Per-source outcomes and errors.
        """
        sync_id = uuid.uuid4().hex[:12]
        bind_sync_context(sync_id)
        started_at = self._clock()
        outcomes: dict[str, FetchOutcome] = {}
        errors: dict[str, ErrorRecord] = {}

        self._log.info(
            "refresh_started",
            source_count=len(self._descriptors),
            max_workers=max_workers,
            force_refresh=force_refresh,
        )

        try:
            with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
                future_to_key = {
                    executor.submit(
                        contextvars.copy_context().run,
                        self.sync_source,
                        key,
                        force_refresh,
                    ): key
                    for key in self._descriptors
                }
                for future in as_completed(future_to_key):
                    key = future_to_key[future]
                    try:
                        outcomes[key] = future.result()
                    except SourceError as e:
                        e.source_key = key
                        errors[key] = ErrorRecord.from_exception(e)
                        self._log.error(
                            "source_refresh_failed", source_key=key, error=e.message
                        )
                    except Exception as e:  # noqa: BLE001
                        errors[key] = ErrorRecord(
                            error_class=SourceErrorClass.FETCH,
                            message=f"Execution error: {e}",
                            source_key=key,
                        )
                        self._log.error(
                            "source_execution_error", source_key=key, error=str(e)
                        )

            result = RefreshResult(
                sync_id=sync_id,
                started_at=started_at,
                finished_at=self._clock(),
                outcomes=outcomes,
                errors=errors,
            )
            self._log.info(
                "refresh_complete",
                duration_ms=round(result.duration_ms, 2),
                sources_succeeded=result.sources_succeeded,
                sources_failed=result.sources_failed,
            )
            return result
        finally:
            clear_sync_context()

    def clear_all(self) -> None:
        """Reset every cache entry and the status configuration."""
        self._store.clear_all()
        self._status.reset()
        self._log.info("mirror_cleared")

    def health_check(self) -> HealthReport:
        """Report credentials, cache state and configuration validity.

        The mirror is limited without credentials or when an enabled
        source has no base id. Validation issues are only reported once
        the status configuration has been computed.
        """
        snapshot = self._status.snapshot()
        issues = self._status.validate() if snapshot.last_updated else []

        if self._fetcher.cache_only or self.unresolved_sources:
            state = "limited"
        elif issues:
            state = "issues"
        else:
            state = "healthy"

        return HealthReport(
            status=state,
            timestamp=self._clock(),
            credentials_configured=not self._fetcher.cache_only,
            missing_variables=self._missing_variables,
            unresolved_sources=self.unresolved_sources,
            cache=self.get_cache_status(),
            status_configuration=StatusCounts(
                total=len(snapshot.all_statuses),
                active=len(snapshot.active_statuses),
                unmatched=len(snapshot.unmatched_statuses),
                last_updated=snapshot.last_updated,
            ),
            issues=issues,
        )

    def data_summary(self, force_refresh: bool = False) -> dict[str, Any]:
        """Count records per dataset alongside status information.

        Sources that fail on a cold start are reported with a count of 0.
        """
        records: dict[str, list[Record]] = {}
        for key in self._descriptors:
            try:
                records[key] = self.get_records(key, force_refresh)
            except SourceError as e:
                self._log.warning(
                    "data_summary_source_failed", source_key=key, error=e.message
                )
                records[key] = []

        items = [
            record
            for key in self._config.item_sources
            for record in records.get(key, [])
        ]
        if force_refresh or self._status.needs_update(self._clock()):
            self._status.update(items, now=self._clock())

        categorized = self._classifier.categorize(items, self._status.active_statuses)
        snapshot = self._status.snapshot()
        return {
            "datasets": {key: len(value) for key, value in records.items()},
            "items": {
                "active": len(categorized.active),
                "inactive": len(categorized.inactive),
                "total": len(items),
            },
            "status_info": {
                "total_statuses": len(snapshot.all_statuses),
                "active_statuses": snapshot.active_statuses,
                "unmatched_statuses": snapshot.unmatched_statuses,
                "last_updated": snapshot.last_updated,
            },
            "timestamp": self._clock(),
        }
