"""Unit tests for record classification by status."""

import pytest

from src.cache.models import Record
from src.status.classifier import ItemClassifier
from src.status.fields import MISSING_STATUS


def _item(record_id: str, status: str | None, name: str | None = None) -> Record:
    fields: dict[str, str | None] = {"status": status}
    if name:
        fields["item_name"] = name
    return Record(id=record_id, fields=fields)


@pytest.fixture
def items() -> list[Record]:
    """Create records with a mix of usable and problematic statuses."""
    return [
        _item("r1", "active", "Navy Blazer"),
        _item("r2", "lent", "Silk Scarf"),
        _item("r3", "active", "Wool Coat"),
        _item("r4", "donated", "Old Jeans"),
        _item("r5", None, "Mystery Shirt"),
        _item("r6", "unknown"),
    ]


@pytest.fixture
def classifier() -> ItemClassifier:
    """Create a classifier on the default status field."""
    return ItemClassifier()


class TestCategorize:
    """Tests for active/inactive partitioning."""

    def test_exact_membership(
        self, classifier: ItemClassifier, items: list[Record]
    ) -> None:
        """Test that only exact status matches are active."""
        result = classifier.categorize(items, ["active", "Lent"])

        assert [r.id for r in result.active] == ["r1", "r3"]
        assert [r.id for r in result.inactive] == ["r2", "r4", "r5", "r6"]

    @pytest.mark.parametrize(
        "active_statuses",
        [[], ["active"], ["active", "lent", "donated"], ["nothing"]],
    )
    def test_partition_is_complete(
        self,
        classifier: ItemClassifier,
        items: list[Record],
        active_statuses: list[str],
    ) -> None:
        """Test that every record lands in exactly one group."""
        result = classifier.categorize(items, active_statuses)

        assert len(result.active) + len(result.inactive) == len(items)
        ids = {r.id for r in result.active} | {r.id for r in result.inactive}
        assert ids == {r.id for r in items}


class TestCounting:
    """Tests for breakdown and health score."""

    def test_breakdown(self, classifier: ItemClassifier, items: list[Record]) -> None:
        """Test counts per status, with missing statuses marked."""
        assert classifier.breakdown(items) == {
            "active": 2,
            "lent": 1,
            "donated": 1,
            MISSING_STATUS: 1,
            "unknown": 1,
        }

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            ("", True),
            (None, True),
            ("unknown", True),
            ("cannot find status", True),
            ("active", False),
            ("lent", False),
        ],
    )
    def test_is_problematic(self, status: str | None, expected: bool) -> None:
        """Test which statuses count as problematic."""
        assert ItemClassifier.is_problematic(status) is expected

    def test_health_score(self, classifier: ItemClassifier, items: list[Record]) -> None:
        """Test the share of records with usable statuses."""
        # 4 of 6 usable
        assert classifier.health_score(items) == 67

    def test_health_score_empty(self, classifier: ItemClassifier) -> None:
        """Test that no records score zero."""
        assert classifier.health_score([]) == 0


class TestFiltering:
    """Tests for filtering and grouping helpers."""

    def test_filter_and_exclude(
        self, classifier: ItemClassifier, items: list[Record]
    ) -> None:
        """Test keeping and dropping records by status."""
        kept = classifier.filter_by_statuses(items, ["lent", "donated"])
        dropped = classifier.exclude_statuses(items, ["active"])

        assert [r.id for r in kept] == ["r2", "r4"]
        assert [r.id for r in dropped] == ["r2", "r4", "r5", "r6"]
        assert classifier.filter_by_statuses(items, []) == items

    def test_group_by_status(
        self, classifier: ItemClassifier, items: list[Record]
    ) -> None:
        """Test grouping by status."""
        groups = classifier.group_by_status(items)

        assert [r.id for r in groups["active"]] == ["r1", "r3"]
        assert [r.id for r in groups[MISSING_STATUS]] == ["r5"]

    def test_rare_status_items(
        self, classifier: ItemClassifier, items: list[Record]
    ) -> None:
        """Test records whose status appears only once."""
        rare = classifier.rare_status_items(items)

        assert [r.id for r in rare] == ["r2", "r4", "r5", "r6"]


class TestValidation:
    """Tests for status validation and reports."""

    def test_validate_item_statuses(
        self, classifier: ItemClassifier, items: list[Record]
    ) -> None:
        """Test sorting records into valid, invalid and unknown."""
        result = classifier.validate_item_statuses(items, ["active", "lent"])

        assert [r.id for r in result.valid] == ["r1", "r2", "r3"]
        assert [i.item for i in result.unknown] == ["Old Jeans"]
        assert [(i.item, i.status) for i in result.invalid] == [
            ("Mystery Shirt", MISSING_STATUS),
            ("cannot find item name", "unknown"),
        ]

    def test_status_health(
        self, classifier: ItemClassifier, items: list[Record]
    ) -> None:
        """Test the combined quality metrics."""
        health = classifier.status_health(items, ["active", "lent"])

        assert health.total_items == 6
        assert health.problematic_items == 2
        assert health.active_items == 3
        assert health.inactive_items == 3
        assert health.unique_statuses == 5
        assert health.health_score == 67

    def test_summary(self, classifier: ItemClassifier, items: list[Record]) -> None:
        """Test the summary view."""
        summary = classifier.summary(items, ["active"], ["active", "lent", "donated"])

        assert summary["categorization"] == {"active": 2, "inactive": 4}
        assert summary["validation"] == {"valid": 4, "invalid": 2, "unknown": 0}

    def test_distribution(self) -> None:
        """Test conversion of counts to percentages."""
        shares = ItemClassifier.distribution({"active": 3, "lent": 1})

        assert shares["active"].percentage == 75
        assert shares["lent"].count == 1
        assert ItemClassifier.distribution({}) == {}
