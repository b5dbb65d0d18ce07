"""Unit tests for record normalization and diagnostics."""

from collections.abc import Generator
from typing import Any

import pytest

from src.cache.models import Record
from src.normalize.analyzer import NormalizationAnalyzer
from src.normalize.errors import NormalizationError
from src.normalize.metrics import NormalizationMetrics
from src.normalize.record import RecordNormalizer
from src.normalize.types import FieldType
from src.normalize.values import ValueNormalizer


@pytest.fixture(autouse=True)
def reset_metrics() -> Generator[None, None, None]:
    """Reset normalization metrics around each test."""
    NormalizationMetrics.reset()
    yield
    NormalizationMetrics.reset()


class FailingDates(ValueNormalizer):
    """Value normalizer whose date coercion always fails."""

    def normalize_field(
        self, field_name: str, value: Any, field_type: FieldType
    ) -> Any:
        if field_type == FieldType.DATE:
            raise NormalizationError(field_name, value, field_type, "broken parser")
        return super().normalize_field(field_name, value, field_type)


class TestNormalizeRecord:
    """Tests for whole-record normalization."""

    def test_normalizes_each_field_by_name(self) -> None:
        """Test that every field is coerced by its inferred type."""
        record = Record(
            id="rec1",
            fields={
                "item_name": "  Navy Blazer ",
                "status": " Ready_To_Sell ",
                "purchase_price": "$120.00",
                "purchase_date": "2024-01-15",
                "is_favorite": "yes",
                "notes": None,
            },
        )

        result = RecordNormalizer().normalize_record(record)

        assert result.id == "rec1"
        assert result.fields == {
            "item_name": "Navy Blazer",
            "status": "ready_to_sell",
            "purchase_price": 120.0,
            "purchase_date": "2024-01-15T00:00:00.000Z",
            "is_favorite": True,
            "notes": None,
        }

    def test_failed_field_keeps_raw_value(self) -> None:
        """Test that one failing field does not abort the record."""
        normalizer = RecordNormalizer(values=FailingDates())
        record = Record(
            id="rec1", fields={"purchase_date": "2024-01-15", "brand": "ACME"}
        )

        result = normalizer.normalize_record(record)

        assert result.fields == {"purchase_date": "2024-01-15", "brand": "acme"}
        metrics = NormalizationMetrics.get_instance()
        assert metrics.field_errors == 1
        assert metrics.errors_by_field == {"purchase_date": 1}
        assert metrics.fields_normalized == 1

    def test_key_set_preserved(self) -> None:
        """Test that normalization never adds or drops fields."""
        record = Record(id="rec9", fields={"a": 1, "size": "M", "date_worn": ""})

        result = RecordNormalizer().normalize_record(record)

        assert set(result.fields) == set(record.fields)

    def test_renormalizing_is_stable(self) -> None:
        """Test that normalizing a normalized record changes nothing."""
        normalizer = RecordNormalizer()
        once = normalizer.normalize_record(
            Record(
                id="rec1",
                fields={"status": "Lent", "original_price": "€45", "rain_rating": "3"},
            )
        )

        assert normalizer.normalize_record(once) == once


class TestFieldStats:
    """Tests for record statistics."""

    def test_stats(self) -> None:
        """Test unique values, costs and coverage."""
        records = [
            Record(id="r1", fields={"status": "active", "brand": "acme", "purchase_price": 100.0}),
            Record(id="r2", fields={"status": "lent", "brand": "", "original_price": 50.0}),
            Record(id="r3", fields={"status": "active", "purchase_price": 0}),
        ]

        stats = RecordNormalizer().field_stats(records)

        assert stats["total_records"] == 3
        assert stats["unique_statuses"] == ["active", "lent"]
        assert stats["unique_brands"] == ["acme"]
        assert stats["records_with_cost"] == 2
        assert stats["average_cost"] == 75.0
        assert stats["total_cost"] == 150.0
        assert stats["field_coverage"]["brand"] == {
            "count": 1,
            "percentage": 33,
            "missing": 2,
        }

    def test_empty_input(self) -> None:
        """Test that empty input reports an error entry."""
        assert "error" in RecordNormalizer().field_stats([])


class TestNormalizationAnalyzer:
    """Tests for normalization diagnostics."""

    def test_analyze_counts(self) -> None:
        """Test change, null and example counts."""
        analysis = NormalizationAnalyzer().analyze(
            ["$10", 5, None, "abc", "$1,000"], FieldType.CURRENCY
        )

        assert analysis.total == 5
        assert analysis.null_values == 1
        assert analysis.changed == 3
        assert analysis.errors == 0
        assert [e.original for e in analysis.examples] == ["$10", "abc", "$1,000"]
        assert analysis.examples[0].original_type == "str"

    def test_summary_rates(self) -> None:
        """Test that summary rates are whole percentages."""
        analyzer = NormalizationAnalyzer()
        results = analyzer.analyze_fields(
            {"status": ["Active", "lent", None], "notes": ["ok"]},
            {"status": FieldType.TEXT_LOWERCASE},
        )

        summary = analyzer.summary_report(results)

        assert summary.total_fields == 2
        assert summary.fields_with_changes == 1
        assert summary.total_values_processed == 4
        assert summary.field_details["status"].change_rate == 33
        assert summary.field_details["status"].null_rate == 33
        assert summary.field_details["notes"].change_rate == 0
