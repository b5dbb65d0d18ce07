"""Counters for the normalization pipeline."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class NormalizationMetrics:
    """Process-wide normalization counters.

    Singleton class tracking records and fields processed and per-field
    failures.
    """

    records_normalized: int = 0
    fields_normalized: int = 0
    field_errors: int = 0
    errors_by_field: dict[str, int] = field(default_factory=dict)

    _instance: ClassVar["NormalizationMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "NormalizationMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_record(self, field_count: int) -> None:
        """Record one normalized record.

        Args:
            field_count: Fields successfully normalized on the record.
        """
        self.records_normalized += 1
        self.fields_normalized += field_count

    def record_field_error(self, field_name: str) -> None:
        """Record a field whose raw value was kept after a failure."""
        self.field_errors += 1
        self.errors_by_field[field_name] = self.errors_by_field.get(field_name, 0) + 1

    def to_dict(self) -> dict[str, int | dict[str, int]]:
        """Convert metrics to dictionary."""
        return {
            "records_normalized": self.records_normalized,
            "fields_normalized": self.fields_normalized,
            "field_errors": self.field_errors,
            "errors_by_field": dict(self.errors_by_field),
        }
