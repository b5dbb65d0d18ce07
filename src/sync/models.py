"""Data models for incremental synchronization."""

from dataclasses import dataclass, field
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from src.cache.models import Record
from src.remote.errors import ErrorRecord
from src.remote.models import TableQuery
from src.sync.state_machine import FetchState


class SourceDescriptor(BaseModel):
    """Where and how to read one source.

    Attributes:
        base_id: Resolved remote base identifier (empty when unknown).
        queries: Query variants tried in order until one starts paging.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_id: str = ""
    queries: Annotated[list[TableQuery], Field(min_length=1)]


class FetchOutcome(BaseModel):
    """Result of synchronizing one source key.

    Attributes:
        source_key: Key of the source.
        records: Records served to the caller, newest first.
        cache_used: True when records came from cache without a
            successful fetch.
        stale: True when the served records may be out of date.
        new_records: Records accepted from the remote in this fetch.
        pages: Pages consumed from the remote.
        reached_cursor: Whether paging stopped at the previous cursor.
        truncated: Whether paging stopped at the page cap before reaching
            the cursor or the end of the table.
        state: Final fetch state.
        error: Failure that caused cached records to be served.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    source_key: str
    records: list[Record] = Field(default_factory=list)
    cache_used: bool = False
    stale: bool = False
    new_records: int = 0
    pages: int = 0
    reached_cursor: bool = False
    truncated: bool = False
    state: FetchState
    error: ErrorRecord | None = None


@dataclass
class PageScan:
    """Accumulated result of paging one query."""

    records: list[Record] = field(default_factory=list)
    pages: int = 0
    reached_cursor: bool = False
    truncated: bool = False
