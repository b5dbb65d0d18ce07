"""Result models for the mirror service."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from src.cache.models import CacheStatus
from src.remote.errors import ErrorRecord
from src.sync.models import FetchOutcome


HealthState = Literal["healthy", "limited", "issues"]


class StatusCounts(BaseModel):
    """Sizes of the current status configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total: int = 0
    active: int = 0
    unmatched: int = 0
    last_updated: datetime | None = None


class HealthReport(BaseModel):
    """Health of the mirror.

    ``limited`` means credentials or the base id of an enabled source are
    missing, so cached data is served without refreshing. ``issues``
    means the status configuration failed validation.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: HealthState
    timestamp: datetime
    credentials_configured: bool
    missing_variables: list[str] = Field(default_factory=list)
    unresolved_sources: list[str] = Field(default_factory=list)
    cache: dict[str, CacheStatus] = Field(default_factory=dict)
    status_configuration: StatusCounts
    issues: list[str] = Field(default_factory=list)


@dataclass
class RefreshResult:
    """Result of refreshing every enabled source."""

    sync_id: str
    started_at: datetime
    finished_at: datetime
    outcomes: dict[str, FetchOutcome] = field(default_factory=dict)
    errors: dict[str, ErrorRecord] = field(default_factory=dict)

    @property
    def sources_succeeded(self) -> int:
        """Sources that produced an outcome without a fetch error."""
        return sum(1 for o in self.outcomes.values() if o.error is None)

    @property
    def sources_failed(self) -> int:
        """Sources that raised or fell back to cached data after an error."""
        fallbacks = sum(1 for o in self.outcomes.values() if o.error is not None)
        return fallbacks + len(self.errors)

    @property
    def duration_ms(self) -> float:
        """Get total duration in milliseconds."""
        return (self.finished_at - self.started_at).total_seconds() * 1000
