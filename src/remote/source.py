"""Abstract record source consumed by the incremental fetcher."""

from collections.abc import Iterator
from typing import Protocol

from src.remote.models import RawRecord, TableQuery


class RecordSource(Protocol):
    """A pull-based, paginated reader over a remote table.

    Pages are requested lazily: the consumer stops iterating to stop
    paging, and no further requests are issued.
    """

    def iter_pages(
        self,
        base_id: str,
        query: TableQuery,
        page_size: int,
    ) -> Iterator[list[RawRecord]]:
        """Yield pages of records in the order the remote returns them.

        Args:
            base_id: Identifier of the base holding the table.
            query: Table, view and sort parameters.
            page_size: Records per page.

        Yields:
            One list of records per page.

        Raises:
            SourceError: If a page cannot be fetched or parsed.
        """
        ...
