"""Metrics for cache synchronization."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class SyncMetrics:
    """Process-wide synchronization counters.

    Singleton class tracking remote fetches, cache hits, records
    processed, fetch durations and failures.
    """

    fetches_total: int = 0
    cache_hits_total: int = 0
    records_processed_total: int = 0
    fetch_duration_ms_total: float = 0.0
    failures_total: dict[str, int] = field(default_factory=dict)

    _instance: ClassVar["SyncMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "SyncMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_cache_hit(self) -> None:
        """Record a request served from cache without paging."""
        self.cache_hits_total += 1

    def record_fetch(self, record_count: int, duration_ms: float) -> None:
        """Record a completed remote fetch.

        Args:
            record_count: Records accepted from the remote.
            duration_ms: Wall time of the fetch.
        """
        self.fetches_total += 1
        self.records_processed_total += record_count
        self.fetch_duration_ms_total += duration_ms

    def record_failure(self, error_class: str) -> None:
        """Record a failed remote fetch.

        Args:
            error_class: Classification of the failure.
        """
        self.failures_total[error_class] = self.failures_total.get(error_class, 0) + 1

    @property
    def average_fetch_ms(self) -> float:
        """Average duration of completed fetches."""
        if self.fetches_total == 0:
            return 0.0
        return self.fetch_duration_ms_total / self.fetches_total

    @property
    def cache_hit_rate(self) -> float:
        """Share of requests served without paging."""
        total = self.cache_hits_total + self.fetches_total
        if total == 0:
            return 0.0
        return self.cache_hits_total / total

    def to_dict(self) -> dict[str, int | float | dict[str, int]]:
        """Convert metrics to dictionary."""
        return {
            "fetches_total": self.fetches_total,
            "cache_hits_total": self.cache_hits_total,
            "records_processed_total": self.records_processed_total,
            "average_fetch_ms": round(self.average_fetch_ms, 2),
            "cache_hit_rate": round(self.cache_hit_rate, 4),
            "failures_total": dict(self.failures_total),
        }
