"""Data models for the record cache."""

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """A single row from a remote table.

    Field values are raw remote values until normalized, after which they
    are one of str, int, float, bool, ISO-8601 date string or None. The key
    set of ``fields`` never changes after the record is created.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[str, Field(min_length=1, description="Remote record id")]
    fields: dict[str, Any] = Field(default_factory=dict)

    def get(self, field_name: str, default: Any = None) -> Any:
        """Return a field value, or ``default`` when the field is absent."""
        return self.fields.get(field_name, default)


class CacheEntry(BaseModel):
    """Cached record set for one source key.

    Records are ordered newest-first. ``cursor`` is the id of the first
    record seen by the last successful fetch. ``in_flight`` is process-local
    and never persisted.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    source_key: Annotated[str, Field(min_length=1)]
    records: list[Record] = Field(default_factory=list)
    fetched_at: datetime | None = None
    cursor: str | None = None
    in_flight: bool = Field(default=False, exclude=True)

    @property
    def has_data(self) -> bool:
        """Whether the entry holds records from a completed fetch."""
        return self.fetched_at is not None and len(self.records) > 0

    @property
    def record_count(self) -> int:
        """Number of cached records."""
        return len(self.records)

    @classmethod
    def empty(cls, source_key: str) -> "CacheEntry":
        """Create an entry with no data."""
        return cls(source_key=source_key)


class CacheStatus(BaseModel):
    """Point-in-time summary of a cache entry."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    has_data: bool
    record_count: Annotated[int, Field(ge=0)]
    last_updated: datetime | None
    is_valid: bool
    cursor: str | None = None
    in_flight: bool = False
