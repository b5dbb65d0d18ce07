"""Classification and quality reporting of records by status."""

from collections import Counter
from collections.abc import Collection, Iterable, Mapping, Sequence
from typing import Any

import structlog

from src.cache.models import Record
from src.status.fields import (
    DEFAULT_STATUS_FIELD,
    extract_item_name,
    extract_status,
    is_problematic_status,
)
from src.status.models import (
    Categorized,
    StatusHealth,
    StatusIssue,
    StatusShare,
    StatusValidation,
)


logger = structlog.get_logger()

RARE_STATUS_THRESHOLD = 2


def _percent(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


class ItemClassifier:
    """Partitions and inspects records by their normalized status.

    Membership is exact: fuzzy matching only decides which statuses are
    active, never how an individual record is classified.
    """

    def __init__(self, status_field: str = DEFAULT_STATUS_FIELD) -> None:
        """Initialize the classifier.

        Args:
            status_field: Record field holding the status.
        """
        self._status_field = status_field
        self._log = logger.bind(component="classifier")

    def status_of(self, item: Record) -> str:
        """Status of a record, or the missing-status marker."""
        return extract_status(item, self._status_field)

    def categorize(
        self,
        items: Iterable[Record],
        active_statuses: Collection[str],
    ) -> Categorized:
        """Split records into active and inactive.

        Args:
            items: Normalized records.
            active_statuses: Statuses counted as active.

        Returns:
            Active and inactive records, each in input order.
        """
        active_set = set(active_statuses)
        active: list[Record] = []
        inactive: list[Record] = []
        for item in items:
            (active if self.status_of(item) in active_set else inactive).append(item)

        self._log.debug(
            "items_categorized", active=len(active), inactive=len(inactive)
        )
        return Categorized(active=active, inactive=inactive)

    def breakdown(self, items: Iterable[Record]) -> dict[str, int]:
        """Count records per status, in first-seen order."""
        return dict(Counter(self.status_of(item) for item in items))

    @staticmethod
    def is_problematic(status: str | None) -> bool:
        """Check whether a status is empty, unknown, or an extraction failure."""
        return is_problematic_status(status)

    def problematic_items(self, items: Iterable[Record]) -> list[Record]:
        """Records whose status is problematic."""
        return [item for item in items if self.is_problematic(self.status_of(item))]

    def health_score(self, items: Sequence[Record]) -> int:
        """Percentage of records with a usable status.

        Args:
            items: Normalized records.

        Returns:
            Rounded percentage in [0, 100]; 0 for no records.
        """
        total = len(items)
        return _percent(total - len(self.problematic_items(items)), total)

    def filter_by_statuses(
        self,
        items: Sequence[Record],
        statuses: Collection[str],
    ) -> list[Record]:
        """Keep records whose status is in ``statuses``.

        An empty status collection keeps every record.
        """
        if not statuses:
            return list(items)
        wanted = set(statuses)
        return [item for item in items if self.status_of(item) in wanted]

    def exclude_statuses(
        self,
        items: Sequence[Record],
        statuses: Collection[str],
    ) -> list[Record]:
        """Drop records whose status is in ``statuses``."""
        unwanted = set(statuses)
        return [item for item in items if self.status_of(item) not in unwanted]

    def group_by_status(self, items: Iterable[Record]) -> dict[str, list[Record]]:
        """Group records by status."""
        groups: dict[str, list[Record]] = {}
        for item in items:
            groups.setdefault(self.status_of(item), []).append(item)
        return groups

    def rare_status_items(
        self,
        items: Sequence[Record],
        threshold: int = RARE_STATUS_THRESHOLD,
    ) -> list[Record]:
        """Records whose status occurs fewer than ``threshold`` times."""
        counts = self.breakdown(items)
        return [item for item in items if counts[self.status_of(item)] < threshold]

    def validate_item_statuses(
        self,
        items: Iterable[Record],
        known_statuses: Collection[str],
    ) -> StatusValidation:
        """Sort records into valid, invalid and unrecognized statuses.

        Args:
            items: Normalized records.
            known_statuses: Statuses considered recognized.

        Returns:
            Valid records plus issue entries for the rest.
        """
        known = set(known_statuses)
        valid: list[Record] = []
        invalid: list[StatusIssue] = []
        unknown: list[StatusIssue] = []

        for item in items:
            status = self.status_of(item)
            if self.is_problematic(status):
                invalid.append(
                    StatusIssue(
                        item=extract_item_name(item),
                        status=status,
                        issue="Problematic status",
                    )
                )
            elif status not in known:
                unknown.append(
                    StatusIssue(
                        item=extract_item_name(item),
                        status=status,
                        issue="Unrecognized status",
                    )
                )
            else:
                valid.append(item)

        return StatusValidation(valid=valid, invalid=invalid, unknown=unknown)

    def status_health(
        self,
        items: Sequence[Record],
        active_statuses: Collection[str],
    ) -> StatusHealth:
        """Compute data-quality metrics for records."""
        problematic = len(self.problematic_items(items))
        categorized = self.categorize(items, active_statuses)
        return StatusHealth(
            total_items=len(items),
            valid_items=len(items) - problematic,
            problematic_items=problematic,
            active_items=len(categorized.active),
            inactive_items=len(categorized.inactive),
            unique_statuses=len(self.breakdown(items)),
            health_score=self.health_score(items),
        )

    def summary(
        self,
        items: Sequence[Record],
        active_statuses: Collection[str],
        known_statuses: Collection[str],
    ) -> dict[str, Any]:
        """Summarize categorization, counts and validation in one view."""
        categorized = self.categorize(items, active_statuses)
        counts = self.breakdown(items)
        validation = self.validate_item_statuses(items, known_statuses)
        return {
            "total_items": len(items),
            "categorization": {
                "active": len(categorized.active),
                "inactive": len(categorized.inactive),
            },
            "status_counts": counts,
            "problematic_items": len(self.problematic_items(items)),
            "validation": {
                "valid": len(validation.valid),
                "invalid": len(validation.invalid),
                "unknown": len(validation.unknown),
            },
            "unique_statuses": len(counts),
        }

    @staticmethod
    def distribution(breakdown: Mapping[str, int]) -> dict[str, StatusShare]:
        """Turn status counts into counts with rounded percentages."""
        total = sum(breakdown.values())
        if total == 0:
            return {}
        return {
            status: StatusShare(count=count, percentage=_percent(count, total))
            for status, count in breakdown.items()
        }
