"""Per-source record cache with freshness metadata and durable persistence."""

from src.cache.backends import CachePersistence, JsonFileBackend
from src.cache.errors import CacheStoreError, PersistenceError, UnknownSourceError
from src.cache.models import CacheEntry, CacheStatus, Record
from src.cache.sqlite_backend import SqliteBackend
from src.cache.store import CacheStore


__all__ = [
    # Store
    "CacheStore",
    # Models
    "CacheEntry",
    "CacheStatus",
    "Record",
    # Backends
    "CachePersistence",
    "JsonFileBackend",
    "SqliteBackend",
    # Errors
    "CacheStoreError",
    "PersistenceError",
    "UnknownSourceError",
]
