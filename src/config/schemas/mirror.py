"""Root mirror configuration schema."""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.config.schemas.sources import SourceConfig
from src.remote.constants import AIRTABLE_DEFAULT_MAX_QPS, AIRTABLE_MAX_PAGE_SIZE
from src.remote.models import RetryPolicy


SECONDS_PER_DAY = 86400

DEFAULT_TARGET_STATUSES = [
    "active",
    "ready to sell",
    "lent",
    "in laundry",
    "at cleaners",
    "needs repair",
]
DEFAULT_ITEM_SOURCES = ["items", "inactive_items"]


class MirrorConfig(BaseModel):
    """Root configuration for mirror.yaml.

    Attributes:
        cache_ttl_seconds: Age after which cached entries are refetched.
        max_pages: Page cap per fetch.
        page_size: Records per page.
        request_timeout_seconds: Timeout of a single page request.
        max_qps: Request rate ceiling per base.
        retry_policy: Retry behavior for page requests.
        status_refresh_hours: Age after which the status configuration
            is recomputed.
        match_threshold: Minimum similarity for an active status.
        status_field: Record field holding the status.
        target_statuses: Patterns active statuses resemble.
        item_sources: Sources whose records feed the status configuration.
        backend: Cache persistence backend.
        sources: Cached datasets.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    cache_ttl_seconds: Annotated[int, Field(gt=0)] = 7 * SECONDS_PER_DAY
    max_pages: Annotated[int, Field(ge=1, le=1000)] = 50
    page_size: Annotated[int, Field(ge=1, le=AIRTABLE_MAX_PAGE_SIZE)] = (
        AIRTABLE_MAX_PAGE_SIZE
    )
    request_timeout_seconds: Annotated[float, Field(gt=0, le=300)] = 30.0
    max_qps: Annotated[float, Field(gt=0, le=100)] = AIRTABLE_DEFAULT_MAX_QPS
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    status_refresh_hours: Annotated[float, Field(gt=0)] = 24.0
    match_threshold: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    status_field: Annotated[str, Field(min_length=1)] = "status"
    target_statuses: Annotated[list[str], Field(min_length=1)] = Field(
        default_factory=lambda: list(DEFAULT_TARGET_STATUSES)
    )
    item_sources: list[str] = Field(default_factory=lambda: list(DEFAULT_ITEM_SOURCES))
    backend: Literal["json", "sqlite"] = "json"
    sources: list[SourceConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_source_keys(self) -> "MirrorConfig":
        """Ensure source keys are unique and item sources exist."""
        keys = [s.key for s in self.sources]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            msg = f"Duplicate source keys: {duplicates}"
            raise ValueError(msg)

        unknown = [k for k in self.item_sources if k not in keys]
        if self.sources and unknown:
            msg = f"item_sources reference unknown sources: {unknown}"
            raise ValueError(msg)
        return self

    def get_source(self, key: str) -> SourceConfig | None:
        """Look up a source by key."""
        for source in self.sources:
            if source.key == key:
                return source
        return None

    @property
    def enabled_sources(self) -> list[SourceConfig]:
        """Sources that are synchronized."""
        return [s for s in self.sources if s.enabled]
