"""Mirror configuration loading and validation."""

from src.config.defaults import DEFAULT_SOURCES, default_config
from src.config.loader import ConfigLoader, ConfigValidationError, load_config
from src.config.schemas import MirrorConfig, SourceConfig


__all__ = [
    "DEFAULT_SOURCES",
    "ConfigLoader",
    "ConfigValidationError",
    "MirrorConfig",
    "SourceConfig",
    "default_config",
    "load_config",
]
