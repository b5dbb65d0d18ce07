"""Request counters for the remote client."""

from dataclasses import dataclass, field
from typing import ClassVar

from src.remote.models import FetchErrorClass


@dataclass
class RequestMetrics:
    """Process-wide counters for page requests.

    Singleton; tests call ``reset()`` between cases.
    """

    requests_by_status: dict[int, int] = field(default_factory=dict)
    pages_total: int = 0
    records_total: int = 0
    retries_total: int = 0
    failures_total: dict[str, int] = field(default_factory=dict)

    _instance: ClassVar["RequestMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "RequestMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_response(self, status_code: int) -> None:
        """Count a response by status code."""
        self.requests_by_status[status_code] = (
            self.requests_by_status.get(status_code, 0) + 1
        )

    def record_page(self, record_count: int) -> None:
        """Count a successfully parsed page.

        Args:
            record_count: Records on the page.
        """
        self.pages_total += 1
        self.records_total += record_count

    def record_retry(self) -> None:
        """Record a retry attempt."""
        self.retries_total += 1

    def record_failure(self, error_class: FetchErrorClass) -> None:
        """Record a request that failed for good.

        Args:
            error_class: Classification of the failure.
        """
        key = error_class.value
        self.failures_total[key] = self.failures_total.get(key, 0) + 1

    def to_dict(self) -> dict[str, int | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary."""
        return {
            "requests_by_status": dict(self.requests_by_status),
            "pages_total": self.pages_total,
            "records_total": self.records_total,
            "retries_total": self.retries_total,
            "failures_total": dict(self.failures_total),
        }
