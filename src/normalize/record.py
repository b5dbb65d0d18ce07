"""Record-level normalization."""

from collections.abc import Iterable, Sequence
from typing import Any

import structlog

from src.cache.models import Record
from src.normalize.errors import NormalizationError
from src.normalize.metrics import NormalizationMetrics
from src.normalize.rules import TypeInferenceEngine
from src.normalize.values import ValueNormalizer


logger = structlog.get_logger()

COST_FIELDS = ("purchase_price", "original_price")


def _is_present(value: Any) -> bool:
    return value is not None and value != ""


def _record_cost(record: Record) -> float:
    # First truthy cost field wins
    for name in COST_FIELDS:
        value = record.fields.get(name)
        if value and isinstance(value, int | float) and not isinstance(value, bool):
            return float(value)
    return 0.0


class RecordNormalizer:
    """Normalizes every field of a record by its inferred type.

    A field that fails to normalize keeps its raw value; the rest of the
    record is still normalized. The key set of a record never changes.
    """

    def __init__(
        self,
        inference: TypeInferenceEngine | None = None,
        values: ValueNormalizer | None = None,
    ) -> None:
        """Initialize the normalizer.

        Args:
            inference: Field type inference engine.
            values: Value coercion dispatcher.
        """
        self._inference = inference or TypeInferenceEngine()
        self._values = values or ValueNormalizer()
        self._metrics = NormalizationMetrics.get_instance()
        self._log = logger.bind(component="normalize")

    @property
    def inference(self) -> TypeInferenceEngine:
        """Type inference engine in use."""
        return self._inference

    def normalize_field(self, field_name: str, value: Any) -> Any:
        """Normalize one field value by its name.

        Raises:
            NormalizationError: If the value cannot be coerced.
        """
        field_type = self._inference.detect_type(field_name)
        return self._values.normalize_field(field_name, value, field_type)

    def normalize_record(self, record: Record) -> Record:
        """Normalize all fields of a record.

        Args:
            record: Record with raw field values.

        Returns:
            New record with the same id and field names.
        """
        normalized: dict[str, Any] = {}
        count = 0
        for name, value in record.fields.items():
            try:
                normalized[name] = self.normalize_field(name, value)
                count += 1
            except NormalizationError as e:
                normalized[name] = value
                self._metrics.record_field_error(name)
                self._log.warning(
                    "field_normalization_failed",
                    record_id=record.id,
                    field_name=name,
                    field_type=e.field_type.value,
                    reason=e.reason,
                )

        self._metrics.record_record(count)
        return Record(id=record.id, fields=normalized)

    def normalize_records(self, records: Iterable[Record]) -> list[Record]:
        """Normalize a batch of records.

        Args:
            records: Records with raw values.

        Returns:
            Normalized records in input order.
        """
        result = [self.normalize_record(record) for record in records]
        self._log.debug("records_normalized", count=len(result))
        return result

    def field_stats(self, records: Sequence[Record]) -> dict[str, Any]:
        """Summarize normalized records for debugging.

        Args:
            records: Normalized records.

        Returns:
            Unique statuses, departments and brands, cost totals, and
            per-field coverage. Empty input yields an ``error`` entry.
        """
        if not records:
            return {"error": "No records provided for stats"}

        costs = [_record_cost(record) for record in records]
        positive = [cost for cost in costs if cost > 0]

        return {
            "total_records": len(records),
            "unique_statuses": self._unique_values(records, "status"),
            "unique_departments": self._unique_values(records, "department"),
            "unique_brands": self._unique_values(records, "brand"),
            "records_with_cost": len(positive),
            "average_cost": sum(positive) / len(positive) if positive else 0.0,
            "total_cost": sum(costs),
            "field_coverage": self._field_coverage(records),
        }

    def _unique_values(self, records: Sequence[Record], field_name: str) -> list[Any]:
        values = {
            record.fields.get(field_name)
            for record in records
            if _is_present(record.fields.get(field_name))
        }
        return sorted(values, key=str)

    def _field_coverage(self, records: Sequence[Record]) -> dict[str, dict[str, int]]:
        names: dict[str, None] = {}
        for record in records:
            names.update(dict.fromkeys(record.fields))

        total = len(records)
        coverage: dict[str, dict[str, int]] = {}
        for name in names:
            present = sum(1 for r in records if _is_present(r.fields.get(name)))
            coverage[name] = {
                "count": present,
                "percentage": round(present / total * 100),
                "missing": total - present,
            }
        return coverage
