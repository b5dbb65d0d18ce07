"""Configuration schema definitions."""

from src.config.schemas.mirror import (
    DEFAULT_ITEM_SOURCES,
    DEFAULT_TARGET_STATUSES,
    MirrorConfig,
)
from src.config.schemas.sources import BaseAlias, SourceConfig


__all__ = [
    "DEFAULT_ITEM_SOURCES",
    "DEFAULT_TARGET_STATUSES",
    "BaseAlias",
    "MirrorConfig",
    "SourceConfig",
]
