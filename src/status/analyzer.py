"""Status usage analysis and review reporting."""

from collections.abc import Sequence
from datetime import UTC, datetime

import structlog

from src.cache.models import Record
from src.status.classifier import ItemClassifier
from src.status.configuration import StatusConfiguration
from src.status.fields import (
    MISSING_MARKER_PREFIX,
    UNKNOWN_STATUS,
    extract_item_name,
)
from src.status.models import (
    CommonStatus,
    Recommendation,
    ReportSummary,
    ReviewItem,
    StatusPatterns,
    StatusReport,
    StatusShare,
)


logger = structlog.get_logger()

MAX_REVIEW_SUGGESTIONS = 3
MAX_TRANSITION_SUGGESTIONS = 5
LOW_ACTIVE_PERCENTAGE = 50
# Words marking a status an item leaves the collection through
EXIT_STATUS_KEYWORDS = ("sold", "donated", "discarded")


def _percent(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


class StatusAnalyzer:
    """Analyzes how statuses are used across records."""

    def __init__(
        self,
        configuration: StatusConfiguration,
        classifier: ItemClassifier | None = None,
    ) -> None:
        """Initialize the analyzer.

        Args:
            configuration: Status configuration providing the active set.
            classifier: Classifier reading record statuses.
        """
        self._config = configuration
        self._classifier = classifier or ItemClassifier(configuration.status_field)
        self._log = logger.bind(component="status_analyzer")

    def breakdown(self, items: Sequence[Record]) -> dict[str, int]:
        """Count records per status, skipping extraction failures."""
        return {
            status: count
            for status, count in self._classifier.breakdown(items).items()
            if status and not status.startswith(MISSING_MARKER_PREFIX)
        }

    def analyze_patterns(self, items: Sequence[Record]) -> StatusPatterns:
        """Describe status usage over records with a usable status.

        Args:
            items: Normalized records.

        Returns:
            Most and least common statuses, active share and distribution.
        """
        breakdown = self.breakdown(items)
        total = sum(breakdown.values())
        if total == 0:
            return StatusPatterns()

        most_status, most_count = max(breakdown.items(), key=lambda kv: kv[1])
        least_status, least_count = min(breakdown.items(), key=lambda kv: kv[1])

        active_count = sum(
            1
            for item in items
            if self._config.is_active(self._classifier.status_of(item))
        )
        active_percentage = _percent(active_count, total)

        return StatusPatterns(
            total_items=total,
            most_common_status=CommonStatus(
                status=most_status,
                count=most_count,
                percentage=_percent(most_count, total),
            ),
            least_common_status=CommonStatus(
                status=least_status,
                count=least_count,
                percentage=_percent(least_count, total),
            ),
            active_percentage=active_percentage,
            inactive_percentage=100 - active_percentage,
            status_distribution={
                status: StatusShare(
                    count=count,
                    percentage=_percent(count, total),
                    is_active=self._config.is_active(status),
                )
                for status, count in breakdown.items()
            },
        )

    @staticmethod
    def status_issue(status: str) -> str:
        """Describe why a status needs review."""
        if status.startswith(MISSING_MARKER_PREFIX):
            return "Missing or invalid status field"
        if status == UNKNOWN_STATUS:
            return "Status marked as unknown"
        if not status:
            return "Empty status field"
        return "Status needs review"

    def items_needing_review(self, items: Sequence[Record]) -> list[ReviewItem]:
        """Flag records whose status is problematic.

        Args:
            items: Normalized records.

        Returns:
            One entry per flagged record with suggested statuses.
        """
        suggestions = self._config.all_statuses[:MAX_REVIEW_SUGGESTIONS]
        flagged: list[ReviewItem] = []
        for item in items:
            status = self._classifier.status_of(item)
            if not self._classifier.is_problematic(status):
                continue
            flagged.append(
                ReviewItem(
                    item=extract_item_name(item),
                    current_status=status,
                    issue=self.status_issue(status),
                    suggestions=suggestions,
                )
            )
        self._log.debug("items_needing_review", count=len(flagged))
        return flagged

    def transition_suggestions(self, current_status: str) -> list[str]:
        """Suggest statuses a record could move to next.

        Active records are offered unmatched exit statuses (sold, donated,
        discarded); inactive records are offered the active statuses.
        """
        if self._config.is_active(current_status):
            candidates = [
                status
                for status in self._config.snapshot().unmatched_statuses
                if any(keyword in status for keyword in EXIT_STATUS_KEYWORDS)
            ]
        else:
            candidates = self._config.active_statuses
        return candidates[:MAX_TRANSITION_SUGGESTIONS]

    def recommendations(
        self,
        patterns: StatusPatterns,
        needing_review: Sequence[ReviewItem],
    ) -> list[Recommendation]:
        """Derive follow-up recommendations from an analysis."""
        result: list[Recommendation] = []
        if needing_review:
            result.append(
                Recommendation(
                    type="data_quality",
                    message=f"{len(needing_review)} items need status updates",
                    priority="high",
                )
            )
        if patterns.active_percentage < LOW_ACTIVE_PERCENTAGE:
            result.append(
                Recommendation(
                    type="status_review",
                    message="Consider reviewing inactive items for potential reactivation",
                    priority="medium",
                )
            )
        if patterns.total_items == 0:
            result.append(
                Recommendation(
                    type="configuration",
                    message="No valid status data found - check status configuration",
                    priority="high",
                )
            )
        return result

    def generate_report(
        self,
        items: Sequence[Record],
        now: datetime | None = None,
    ) -> StatusReport:
        """Build a complete status report.

        Args:
            items: Normalized records.
            now: Report timestamp (defaults to current UTC time).

        Returns:
            Report with breakdown, patterns, review list and
            recommendations.
        """
        patterns = self.analyze_patterns(items)
        needing_review = self.items_needing_review(items)
        report = StatusReport(
            timestamp=now or datetime.now(UTC),
            summary=ReportSummary(
                total_items=len(items),
                valid_items=patterns.total_items,
                items_needing_review=len(needing_review),
            ),
            breakdown=self.breakdown(items),
            patterns=patterns,
            items_needing_review=needing_review,
            recommendations=self.recommendations(patterns, needing_review),
        )
        self._log.info(
            "status_report_generated",
            total_items=len(items),
            recommendations=len(report.recommendations),
        )
        return report
