"""Built-in mirror configuration."""

from src.config.schemas.mirror import MirrorConfig
from src.config.schemas.sources import SourceConfig
from src.remote.models import TableQuery


DEFAULT_SOURCES: tuple[SourceConfig, ...] = (
    SourceConfig(
        key="items",
        base="closet",
        queries=[TableQuery(table="Items", view="All items")],
    ),
    SourceConfig(
        key="inactive_items",
        base="finished",
        queries=[TableQuery(table="Inactive items")],
    ),
    SourceConfig(
        key="outfits",
        base="closet",
        queries=[
            TableQuery(table="Outfits", view="Evaluation view", sort_field="id")
        ],
    ),
    SourceConfig(
        key="usage_log",
        base="closet",
        # Views get renamed upstream; fall back to plainer reads
        queries=[
            TableQuery(table="Usage Log", view="Detailed view", sort_field="date_worn"),
            TableQuery(table="Usage Log", view="Grid view", sort_field="date_worn"),
            TableQuery(table="Usage Log", sort_field="date_worn"),
            TableQuery(table="Usage Log"),
        ],
    ),
    SourceConfig(
        key="inspiration",
        base="references",
        queries=[TableQuery(table="Inspiration")],
    ),
    SourceConfig(
        key="shopping_list",
        base="references",
        queries=[TableQuery(table="Shopping list")],
    ),
    SourceConfig(
        key="avoids",
        base="references",
        queries=[TableQuery(table="Avoids")],
    ),
)


def default_config() -> MirrorConfig:
    """Build the built-in configuration with all seven sources."""
    return MirrorConfig(sources=list(DEFAULT_SOURCES))
