"""Source configuration schema."""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.remote.models import TableQuery


BaseAlias = Literal["closet", "references", "finished"]


class SourceConfig(BaseModel):
    """Configuration for a single cached dataset.

    Attributes:
        key: Unique source key, also the cache file name.
        base: Alias of the remote base holding the table.
        queries: Query variants tried in order until one starts paging.
        enabled: Whether the source is synchronized.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: Annotated[str, Field(min_length=1, max_length=100, pattern=r"^[a-z0-9_-]+$")]
    base: BaseAlias
    queries: Annotated[list[TableQuery], Field(min_length=1)]
    enabled: bool = True
