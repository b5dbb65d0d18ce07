"""Exceptions for the record cache layer."""


class CacheStoreError(Exception):
    """Base exception for all cache store errors."""


class PersistenceError(CacheStoreError):
    """Raised when a persistence backend cannot read or write an entry."""

    def __init__(self, source_key: str, operation: str, reason: str) -> None:
        """Initialize the persistence error.

        Args:
            source_key: Source key being persisted.
            operation: Backend operation that failed (load, save, delete).
            reason: Underlying failure description.
        """
        self.source_key = source_key
        self.operation = operation
        self.reason = reason
        super().__init__(f"Cache {operation} failed for '{source_key}': {reason}")


class UnknownSourceError(CacheStoreError):
    """Raised when a source key is not registered with the cache store."""

    def __init__(self, source_key: str) -> None:
        """Initialize the error with the unknown key.

        Args:
            source_key: The source key that was not found.
        """
        self.source_key = source_key
        super().__init__(f"Unknown source key: {source_key}")
