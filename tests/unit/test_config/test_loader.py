"""Unit tests for mirror configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from src.config.defaults import DEFAULT_SOURCES, default_config
from src.config.loader import ConfigLoader, ConfigValidationError, load_config
from src.config.schemas.mirror import MirrorConfig
from src.config.schemas.sources import SourceConfig
from src.remote.models import TableQuery


REPO_CONFIG = Path(__file__).parents[3] / "config" / "mirror.yaml"

SOURCES_YAML = """\
cache_ttl_seconds: 3600
sources:
  - key: items
    base: closet
    queries:
      - table: Items
        view: All items
  - key: usage_log
    base: closet
    queries:
      - table: Usage Log
        view: Detailed view
      - table: Usage Log
item_sources: [items]
"""


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "mirror.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestDefaults:
    """Tests for the built-in configuration."""

    def test_seven_sources(self) -> None:
        """Test that the built-in config carries every dataset."""
        config = default_config()

        assert [s.key for s in config.sources] == [
            "items",
            "inactive_items",
            "outfits",
            "usage_log",
            "inspiration",
            "shopping_list",
            "avoids",
        ]
        assert len(DEFAULT_SOURCES) == 7

    def test_usage_log_has_fallback_variants(self) -> None:
        """Test that the usage log tries progressively plainer reads."""
        usage_log = default_config().get_source("usage_log")

        assert usage_log is not None
        assert len(usage_log.queries) == 4
        assert usage_log.queries[-1] == TableQuery(table="Usage Log")

    def test_numeric_defaults(self) -> None:
        """Test the default freshness and paging settings."""
        config = default_config()

        assert config.cache_ttl_seconds == 7 * 86400
        assert config.max_pages == 50
        assert config.page_size == 100
        assert config.match_threshold == 0.5
        assert config.item_sources == ["items", "inactive_items"]


class TestMirrorConfigSchema:
    """Tests for cross-field validation."""

    def test_duplicate_keys_rejected(self) -> None:
        """Test that two sources cannot share a key."""
        source = SourceConfig(
            key="items", base="closet", queries=[TableQuery(table="Items")]
        )

        with pytest.raises(ValidationError, match="Duplicate source keys"):
            MirrorConfig(sources=[source, source], item_sources=["items"])

    def test_unknown_item_source_rejected(self) -> None:
        """Test that item sources must name configured sources."""
        source = SourceConfig(
            key="items", base="closet", queries=[TableQuery(table="Items")]
        )

        with pytest.raises(ValidationError, match="unknown sources"):
            MirrorConfig(sources=[source], item_sources=["items", "missing"])

    def test_enabled_sources(self) -> None:
        """Test that disabled sources are excluded from sync."""
        config = MirrorConfig(
            sources=[
                SourceConfig(
                    key="items", base="closet", queries=[TableQuery(table="Items")]
                ),
                SourceConfig(
                    key="avoids",
                    base="references",
                    queries=[TableQuery(table="Avoids")],
                    enabled=False,
                ),
            ],
            item_sources=["items"],
        )

        assert [s.key for s in config.enabled_sources] == ["items"]

    def test_invalid_source_key(self) -> None:
        """Test that keys must be safe file names."""
        with pytest.raises(ValidationError):
            SourceConfig(
                key="../items", base="closet", queries=[TableQuery(table="Items")]
            )


class TestConfigLoader:
    """Tests for reading mirror.yaml."""

    def test_load_valid_file(self, tmp_path: Path) -> None:
        """Test that a valid file is parsed and checksummed."""
        loader = ConfigLoader()

        config = loader.load(_write(tmp_path, SOURCES_YAML))

        assert config.cache_ttl_seconds == 3600
        assert [s.key for s in config.sources] == ["items", "usage_log"]
        assert config.sources[1].queries[1].view is None
        assert loader.checksum is not None
        assert len(loader.checksum) == 64
        assert loader.validation_errors == []

    def test_missing_sources_uses_builtin(self, tmp_path: Path) -> None:
        """Test that a file without sources keeps the built-in datasets."""
        config = ConfigLoader().load(_write(tmp_path, "max_pages: 10\n"))

        assert config.max_pages == 10
        assert len(config.sources) == 7

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        """Test that an empty file yields the built-in configuration."""
        config = ConfigLoader().load(_write(tmp_path, ""))

        assert config == default_config()

    def test_unknown_key_rejected(self, tmp_path: Path) -> None:
        """Test that unrecognized settings fail validation."""
        loader = ConfigLoader()

        with pytest.raises(ConfigValidationError) as exc_info:
            loader.load(_write(tmp_path, "cache_ttl: 10\n"))

        assert exc_info.value.errors[0]["loc"] == "cache_ttl"
        assert exc_info.value.errors[0]["type"] == "extra_forbidden"
        assert loader.validation_errors == exc_info.value.errors

    def test_out_of_range_value_rejected(self, tmp_path: Path) -> None:
        """Test that numeric bounds are enforced."""
        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(_write(tmp_path, "page_size: 500\n"))

        assert exc_info.value.errors[0]["loc"] == "page_size"

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file reports file_not_found."""
        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(tmp_path / "absent.yaml")

        assert exc_info.value.errors[0]["type"] == "file_not_found"

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test that unparsable YAML reports yaml_parse_error."""
        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(_write(tmp_path, "sources: [unclosed\n"))

        assert exc_info.value.errors[0]["type"] == "yaml_parse_error"

    def test_non_mapping_root(self, tmp_path: Path) -> None:
        """Test that a list at the top level is rejected."""
        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(_write(tmp_path, "- items\n"))

        assert exc_info.value.errors[0]["loc"] == "root"

    def test_load_config_without_path(self) -> None:
        """Test that no path means the built-in configuration."""
        assert load_config(None) == default_config()

    def test_repository_config_is_valid(self) -> None:
        """Test that the shipped mirror.yaml validates."""
        config = load_config(REPO_CONFIG)

        assert {s.key for s in config.sources} == {s.key for s in DEFAULT_SOURCES}
