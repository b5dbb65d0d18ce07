"""Durable persistence backends for cache entries.

The cache store delegates durability to a backend keyed by source key.
The JSON file backend writes one ``<source_key>.json`` file per key using
a write-then-rename so readers never observe a partial file.
"""

import re
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import ValidationError

from src.cache.errors import PersistenceError
from src.cache.models import CacheEntry


logger = structlog.get_logger()

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")


class CachePersistence(Protocol):
    """Protocol for durable cache storage.

    Abstracts the storage layer to enable testing and alternative
    implementations (file, SQLite, blob store).
    """

    def load(self, source_key: str) -> CacheEntry | None:
        """Load the persisted entry for a source key.

        Args:
            source_key: Source key to load.

        Returns:
            Persisted entry, or None if nothing is stored.
        """
        ...

    def save(self, entry: CacheEntry) -> None:
        """Persist an entry, replacing any previous one.

        Args:
            entry: Entry to store.
        """
        ...

    def delete(self, source_key: str) -> None:
        """Remove the persisted entry for a source key if present.

        Args:
            source_key: Source key to remove.
        """
        ...


class JsonFileBackend:
    """Stores each cache entry as a JSON file in a directory."""

    def __init__(self, cache_dir: Path | str) -> None:
        """Initialize the backend.

        Args:
            cache_dir: Directory holding the cache files. Created on first save.
        """
        self._cache_dir = Path(cache_dir)
        self._log = logger.bind(component="cache_json", cache_dir=str(self._cache_dir))

    @property
    def cache_dir(self) -> Path:
        """Get the cache directory."""
        return self._cache_dir

    def path_for(self, source_key: str) -> Path:
        """Get the file path used for a source key.

        Args:
            source_key: Source key.

        Returns:
            Path of the JSON file.

        Raises:
            ValueError: If the key contains path-unsafe characters.
        """
        if not _SAFE_KEY.match(source_key):
            msg = f"Source key '{source_key}' is not safe for use as a file name"
            raise ValueError(msg)
        return self._cache_dir / f"{source_key}.json"

    def load(self, source_key: str) -> CacheEntry | None:
        """Load a cache file, treating missing or corrupt files as absent."""
        path = self.path_for(source_key)
        if not path.exists():
            self._log.info("cache_file_missing", source_key=source_key)
            return None

        try:
            entry = CacheEntry.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            self._log.warning(
                "cache_file_unreadable",
                source_key=source_key,
                error=str(e),
            )
            return None

        self._log.info(
            "cache_file_loaded",
            source_key=source_key,
            record_count=entry.record_count,
        )
        return entry

    def save(self, entry: CacheEntry) -> None:
        """Write an entry atomically."""
        path = self.path_for(entry.source_key)
        content = entry.model_dump_json(indent=2)

        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            temp_path = path.with_suffix(path.suffix + ".tmp")
            temp_path.write_text(content, encoding="utf-8")
            temp_path.replace(path)
        except OSError as e:
            raise PersistenceError(entry.source_key, "save", str(e)) from e

        self._log.debug(
            "cache_file_written",
            source_key=entry.source_key,
            record_count=entry.record_count,
            bytes=len(content.encode("utf-8")),
        )

    def delete(self, source_key: str) -> None:
        """Delete a cache file; a missing file is not an error."""
        path = self.path_for(source_key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(source_key, "delete", str(e)) from e
