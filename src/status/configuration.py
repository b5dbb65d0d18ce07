"""Active-status configuration derived from the data itself."""

from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from src.cache.models import Record
from src.status.fields import DEFAULT_STATUS_FIELD, extract_status, is_valid_status
from src.status.matcher import DEFAULT_MATCH_THRESHOLD, StatusMatcher
from src.status.models import StatusConfigSnapshot


logger = structlog.get_logger()

DEFAULT_REFRESH_HOURS = 24
FALLBACK_ERROR = "Fallback configuration used"


def validate_configuration(
    config: StatusConfigSnapshot | Mapping[str, Any] | None,
) -> list[str]:
    """Check the structure of a status configuration.

    Accepts either a snapshot or its serialized mapping form, so stored
    or externally supplied configurations can be checked too.

    Args:
        config: Configuration to check.

    Returns:
        Issue descriptions; empty when valid.
    """
    if config is None:
        return ["Configuration is missing"]

    data = config.model_dump() if isinstance(config, StatusConfigSnapshot) else config
    issues: list[str] = []

    active = data.get("active_statuses")
    all_statuses = data.get("all_statuses")

    if not isinstance(active, list):
        issues.append("active_statuses is not a list")
    elif not active:
        issues.append("No active statuses configured")

    if not isinstance(all_statuses, list):
        issues.append("all_statuses is not a list")

    if (
        isinstance(active, list)
        and isinstance(all_statuses, list)
        and len(active) > len(all_statuses)
    ):
        issues.append("More active statuses than total statuses")

    return issues


class StatusConfiguration:
    """Holds the active-status set and recomputes it from records.

    Each update replaces the whole snapshot; readers never observe a
    partially updated configuration.
    """

    def __init__(
        self,
        targets: Sequence[str],
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        status_field: str = DEFAULT_STATUS_FIELD,
        refresh_hours: float = DEFAULT_REFRESH_HOURS,
    ) -> None:
        """Initialize an empty configuration.

        Args:
            targets: Target patterns that active statuses resemble.
            threshold: Minimum match score.
            status_field: Record field holding the status.
            refresh_hours: Age after which ``needs_update`` turns true.
        """
        self._matcher = StatusMatcher(targets, threshold)
        self._status_field = status_field
        self._refresh_interval = timedelta(hours=refresh_hours)
        self._snapshot = self._empty_snapshot()
        self._log = logger.bind(component="status")

    def _empty_snapshot(self) -> StatusConfigSnapshot:
        return StatusConfigSnapshot(target_patterns=self._matcher.targets)

    @property
    def matcher(self) -> StatusMatcher:
        """Matcher used to build the active set."""
        return self._matcher

    @property
    def status_field(self) -> str:
        """Record field holding the status."""
        return self._status_field

    @property
    def active_statuses(self) -> list[str]:
        """Statuses currently considered active."""
        return list(self._snapshot.active_statuses)

    @property
    def all_statuses(self) -> list[str]:
        """All usable statuses seen at the last update."""
        return list(self._snapshot.all_statuses)

    @property
    def last_updated(self) -> datetime | None:
        """Time of the last update, if any."""
        return self._snapshot.last_updated

    def extract_unique_statuses(self, items: Iterable[Record]) -> list[str]:
        """Collect sorted distinct usable statuses from records."""
        statuses = {extract_status(item, self._status_field) for item in items}
        return sorted(s for s in statuses if is_valid_status(s))

    def update(
        self,
        items: Iterable[Record],
        now: datetime | None = None,
    ) -> StatusConfigSnapshot:
        """Recompute the configuration from records.

        On an unexpected failure the fallback configuration is installed
        instead: every target pattern counts as both observed and active.

        Args:
            items: Normalized records.
            now: Update time (defaults to current UTC time).

        Returns:
            The new snapshot.
        """
        now = now or datetime.now(UTC)
        try:
            all_statuses = self.extract_unique_statuses(items)
            classification = self._matcher.classify(all_statuses)
        except Exception as e:
            self._log.exception("status_configuration_update_failed", error=str(e))
            return self._install_fallback(now)

        self._snapshot = StatusConfigSnapshot(
            all_statuses=all_statuses,
            active_statuses=classification.active_statuses,
            matches=classification.matches,
            unmatched_statuses=classification.unmatched_statuses,
            last_updated=now,
            target_patterns=self._matcher.targets,
        )
        self._log.info(
            "status_configuration_updated",
            total=len(all_statuses),
            active=len(classification.active_statuses),
            unmatched=len(classification.unmatched_statuses),
        )
        return self._snapshot

    def _install_fallback(self, now: datetime) -> StatusConfigSnapshot:
        targets = self._matcher.targets
        self._snapshot = StatusConfigSnapshot(
            all_statuses=targets,
            active_statuses=targets,
            last_updated=now,
            target_patterns=targets,
            error=FALLBACK_ERROR,
        )
        self._log.warning("status_configuration_fallback", targets=len(targets))
        return self._snapshot

    def reset(self) -> None:
        """Drop the configuration back to its never-updated state."""
        self._snapshot = self._empty_snapshot()

    def snapshot(self) -> StatusConfigSnapshot:
        """Return the current configuration."""
        return self._snapshot

    def is_active(self, status: str) -> bool:
        """Check exact membership of a status in the active set."""
        return status in self._snapshot.active_statuses

    def needs_update(self, now: datetime | None = None) -> bool:
        """Check whether the configuration is missing or stale.

        Args:
            now: Reference time (defaults to current UTC time).

        Returns:
            True if never updated or older than the refresh interval.
        """
        last_updated = self._snapshot.last_updated
        if last_updated is None:
            return True
        now = now or datetime.now(UTC)
        return now - last_updated > self._refresh_interval

    def validate(self) -> list[str]:
        """Check the current configuration; never raises."""
        issues = validate_configuration(self._snapshot)
        if issues:
            self._log.warning("status_configuration_invalid", issues=issues)
        return issues

    def stats(self, now: datetime | None = None) -> dict[str, Any]:
        """Summarize the configuration for diagnostics."""
        snapshot = self._snapshot
        issues = self.validate()
        total = len(snapshot.all_statuses)
        active = len(snapshot.active_statuses)
        return {
            "is_valid": not issues,
            "validation": issues,
            "needs_update": self.needs_update(now),
            "counts": {
                "total_statuses": total,
                "active_statuses": active,
                "matched_statuses": len(snapshot.matches),
                "unmatched_statuses": len(snapshot.unmatched_statuses),
            },
            "active_percentage": round(active / total * 100) if total else 0,
            "last_updated": snapshot.last_updated,
        }

    def debug_matching(self, statuses: Iterable[str]) -> list[dict[str, Any]]:
        """Show the best target for each sample status.

        Args:
            statuses: Sample statuses.

        Returns:
            One entry per status with ``target`` and ``score`` (None when
            unmatched).
        """
        results: list[dict[str, Any]] = []
        for status in statuses:
            match = self._matcher.best_match(status)
            results.append(
                {
                    "status": status,
                    "target": match.target if match else None,
                    "score": match.score if match else None,
                }
            )
        return results
