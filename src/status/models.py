"""Models for status matching, configuration and classification."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.cache.models import Record


class StatusMatch(BaseModel):
    """An observed status and the target pattern it was matched to."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    actual: str
    target: str
    score: Annotated[float, Field(ge=0.0, le=1.0)]


class MatchResult(BaseModel):
    """Best target for a candidate status."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    target: str
    score: Annotated[float, Field(ge=0.0, le=1.0)]


class Classification(BaseModel):
    """Split of observed statuses into matched (active) and unmatched."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    active_statuses: list[str] = Field(default_factory=list)
    matches: list[StatusMatch] = Field(default_factory=list)
    unmatched_statuses: list[str] = Field(default_factory=list)


class StatusConfigSnapshot(BaseModel):
    """Read-only view of the current status configuration.

    Attributes:
        all_statuses: Sorted distinct statuses observed in the data.
        active_statuses: Statuses matched to a target pattern.
        matches: Match details for each active status.
        unmatched_statuses: Observed statuses with no acceptable match.
        last_updated: When the configuration was last recomputed.
        target_patterns: Target patterns used for matching.
        error: Set when the fallback configuration is in use.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    all_statuses: list[str] = Field(default_factory=list)
    active_statuses: list[str] = Field(default_factory=list)
    matches: list[StatusMatch] = Field(default_factory=list)
    unmatched_statuses: list[str] = Field(default_factory=list)
    last_updated: datetime | None = None
    target_patterns: list[str] = Field(default_factory=list)
    error: str | None = None


class Categorized(BaseModel):
    """Records partitioned into active and inactive."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    active: list[Record] = Field(default_factory=list)
    inactive: list[Record] = Field(default_factory=list)


class StatusIssue(BaseModel):
    """A record whose status failed validation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    item: str
    status: str
    issue: str


class StatusValidation(BaseModel):
    """Records sorted by whether their status is known and usable."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    valid: list[Record] = Field(default_factory=list)
    invalid: list[StatusIssue] = Field(default_factory=list)
    unknown: list[StatusIssue] = Field(default_factory=list)


class StatusShare(BaseModel):
    """Count and rounded percentage of one status."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    count: int
    percentage: int
    is_active: bool | None = None


class StatusHealth(BaseModel):
    """Data-quality metrics for a set of records."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total_items: int
    valid_items: int
    problematic_items: int
    active_items: int
    inactive_items: int
    unique_statuses: int
    health_score: Annotated[int, Field(ge=0, le=100)]


class CommonStatus(BaseModel):
    """Most or least common status."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: str
    count: int
    percentage: int


class StatusPatterns(BaseModel):
    """Usage patterns over records with a usable status."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total_items: int = 0
    most_common_status: CommonStatus | None = None
    least_common_status: CommonStatus | None = None
    active_percentage: int = 0
    inactive_percentage: int = 0
    status_distribution: dict[str, StatusShare] = Field(default_factory=dict)


class ReviewItem(BaseModel):
    """A record flagged for manual status review."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    item: str
    current_status: str
    issue: str
    suggestions: list[str] = Field(default_factory=list)


class Recommendation(BaseModel):
    """Suggested follow-up from a status report."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["data_quality", "status_review", "configuration"]
    message: str
    priority: Literal["high", "medium", "low"]


class ReportSummary(BaseModel):
    """Headline counts of a status report."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total_items: int
    valid_items: int
    items_needing_review: int


class StatusReport(BaseModel):
    """Complete status analysis of a set of records."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    timestamp: datetime
    summary: ReportSummary
    breakdown: dict[str, int]
    patterns: StatusPatterns
    items_needing_review: list[ReviewItem]
    recommendations: list[Recommendation]
