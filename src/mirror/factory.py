"""Wiring of the mirror service from configuration and settings."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog

from src.cache.backends import CachePersistence, JsonFileBackend
from src.cache.sqlite_backend import SqliteBackend
from src.cache.store import CacheStore
from src.config.schemas.mirror import MirrorConfig
from src.mirror.service import MirrorService
from src.normalize.record import RecordNormalizer
from src.remote.client import AirtableClient
from src.remote.source import RecordSource
from src.settings.app import AppSettings
from src.status.classifier import ItemClassifier
from src.status.configuration import StatusConfiguration
from src.sync.fetcher import IncrementalFetcher
from src.sync.models import SourceDescriptor


logger = structlog.get_logger()

SQLITE_FILE_NAME = "mirror.db"


def _utc_now() -> datetime:
    return datetime.now(UTC)


def build_persistence(config: MirrorConfig, settings: AppSettings) -> CachePersistence:
    """Create the configured cache persistence backend."""
    if config.backend == "sqlite":
        settings.cache_dir.mkdir(parents=True, exist_ok=True)
        backend = SqliteBackend(settings.cache_dir / SQLITE_FILE_NAME)
        backend.connect()
        return backend
    return JsonFileBackend(settings.cache_dir)


def build_source(config: MirrorConfig, settings: AppSettings) -> RecordSource | None:
    """Create the remote client, or None when no API key is configured."""
    if not settings.airtable_api_key:
        return None
    return AirtableClient(
        api_key=settings.airtable_api_key,
        timeout_seconds=config.request_timeout_seconds,
        retry_policy=config.retry_policy,
        max_qps=config.max_qps,
    )


def build_descriptors(
    config: MirrorConfig,
    settings: AppSettings,
) -> dict[str, SourceDescriptor]:
    """Resolve base aliases of enabled sources to base ids."""
    return {
        source.key: SourceDescriptor(
            base_id=settings.base_id_for(source.base) or "",
            queries=source.queries,
        )
        for source in config.enabled_sources
    }


def build_service(
    config: MirrorConfig,
    settings: AppSettings,
    source: RecordSource | None = None,
    persistence: CachePersistence | None = None,
    clock: Callable[[], datetime] = _utc_now,
) -> MirrorService:
    """Assemble a ready-to-use mirror service.

    Loads every cache entry from persistence. Without an API key the
    service runs in cache-only mode.

    Args:
        config: Mirror configuration.
        settings: Environment settings.
        source: Remote source to use instead of the Airtable client.
        persistence: Backend to use instead of the configured one.
        clock: Source of the current time.

    Returns:
        Mirror service.
    """
    descriptors = build_descriptors(config, settings)
    store = CacheStore(
        persistence or build_persistence(config, settings),
        source_keys=list(descriptors),
    )
    store.load_all()

    remote = source if source is not None else build_source(config, settings)
    if remote is None:
        logger.warning(
            "cache_only_mode",
            component="mirror",
            missing=settings.missing_variables(),
        )

    fetcher = IncrementalFetcher(
        store=store,
        source=remote,
        normalizer=RecordNormalizer(),
        ttl=timedelta(seconds=config.cache_ttl_seconds),
        max_pages=config.max_pages,
        page_size=config.page_size,
        clock=clock,
    )
    status_configuration = StatusConfiguration(
        targets=config.target_statuses,
        threshold=config.match_threshold,
        status_field=config.status_field,
        refresh_hours=config.status_refresh_hours,
    )
    return MirrorService(
        config=config,
        store=store,
        fetcher=fetcher,
        descriptors=descriptors,
        status_configuration=status_configuration,
        classifier=ItemClassifier(config.status_field),
        missing_variables=settings.missing_variables(),
        clock=clock,
    )
