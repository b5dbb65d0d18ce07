"""Integration tests for the mirror service wired from configuration."""

from collections.abc import Generator

import pytest

from src.cache.errors import UnknownSourceError
from src.config.schemas.mirror import MirrorConfig
from src.config.schemas.sources import SourceConfig
from src.mirror.factory import build_service
from src.mirror.service import MirrorService
from src.normalize.metrics import NormalizationMetrics
from src.remote.client import AirtableClient
from src.remote.errors import SourceErrorClass, TransientFetchError
from src.remote.models import TableQuery
from src.settings.app import AppSettings
from src.sync.metrics import SyncMetrics
from tests.helpers.fakes import Clock, FakeSource, MemoryBackend, raw
from tests.helpers.time import FIXED_NOW


CONFIG = MirrorConfig(
    sources=[
        SourceConfig(key="items", base="closet", queries=[TableQuery(table="Items")]),
        SourceConfig(
            key="inactive_items",
            base="finished",
            queries=[TableQuery(table="Inactive items")],
        ),
        SourceConfig(
            key="avoids", base="references", queries=[TableQuery(table="Avoids")]
        ),
    ],
    item_sources=["items", "inactive_items"],
    target_statuses=["active", "lent"],
)

ITEM_PAGES = {
    "Items": [
        [
            raw("i1", name="Blue Shirt", status="Active"),
            raw("i2", name="Wool Coat", status="Lent"),
        ]
    ],
    "Inactive items": [[raw("x1", name="Old Jeans", status="Donated")]],
    "Avoids": [[raw("a1", name="Polyester")]],
}


@pytest.fixture(autouse=True)
def reset_metrics() -> Generator[None, None, None]:
    """Reset process-wide metrics around each test."""
    SyncMetrics.reset()
    NormalizationMetrics.reset()
    yield
    SyncMetrics.reset()
    NormalizationMetrics.reset()


@pytest.fixture
def settings() -> AppSettings:
    """Settings with credentials and every base id."""
    return AppSettings(
        _env_file=None,
        airtable_api_key="pat-test",
        airtable_closet_base_id="appCloset",
        airtable_references_base_id="appRefs",
        airtable_finished_base_id="appFinished",
    )


def _service(
    settings: AppSettings,
    source: FakeSource | None,
    backend: MemoryBackend | None = None,
) -> MirrorService:
    return build_service(
        CONFIG,
        settings,
        source=source,
        persistence=backend or MemoryBackend(),
        clock=Clock(FIXED_NOW),
    )


class TestRecords:
    """Tests for reading datasets through the service."""

    @pytest.mark.integration
    def test_get_records_resolves_base(self, settings: AppSettings) -> None:
        """Test that a source is read from its configured base."""
        source = FakeSource(pages=ITEM_PAGES)
        service = _service(settings, source)

        records = service.get_records("avoids")

        assert [r.id for r in records] == ["a1"]
        assert source.calls[0][0] == "appRefs"

    @pytest.mark.integration
    def test_unknown_source(self, settings: AppSettings) -> None:
        """Test that unconfigured keys are rejected."""
        service = _service(settings, FakeSource(pages=ITEM_PAGES))

        with pytest.raises(UnknownSourceError):
            service.get_records("outfits")

    @pytest.mark.integration
    def test_get_all_items_updates_statuses(self, settings: AppSettings) -> None:
        """Test that loading items computes the active statuses."""
        service = _service(settings, FakeSource(pages=ITEM_PAGES))

        items = service.get_all_items()

        assert [r.id for r in items] == ["i1", "i2", "x1"]
        snapshot = service.get_status_configuration()
        assert snapshot.all_statuses == ["active", "donated", "lent"]
        assert snapshot.active_statuses == ["active", "lent"]
        assert snapshot.unmatched_statuses == ["donated"]
        assert snapshot.last_updated == FIXED_NOW

    @pytest.mark.integration
    def test_categorized_items(self, settings: AppSettings) -> None:
        """Test that items split by exact active-status membership."""
        service = _service(settings, FakeSource(pages=ITEM_PAGES))

        categorized = service.get_categorized_items()

        assert [r.id for r in categorized.active] == ["i1", "i2"]
        assert [r.id for r in categorized.inactive] == ["x1"]
        assert [r.id for r in service.get_active_items()] == ["i1", "i2"]

    @pytest.mark.integration
    def test_categorize_with_explicit_statuses(self, settings: AppSettings) -> None:
        """Test categorizing against a caller-supplied active set."""
        service = _service(settings, FakeSource(pages=ITEM_PAGES))
        items = service.get_all_items()

        categorized = service.categorize(items, ["donated"])

        assert [r.id for r in categorized.active] == ["x1"]

    @pytest.mark.integration
    def test_cache_survives_restart(self, settings: AppSettings) -> None:
        """Test that a new service serves persisted records without paging."""
        backend = MemoryBackend()
        _service(settings, FakeSource(pages=ITEM_PAGES), backend).refresh_all()

        source = FakeSource(pages=ITEM_PAGES)
        restarted = _service(settings, source, backend)

        assert [r.id for r in restarted.get_records("items")] == ["i1", "i2"]
        assert source.calls == []


    @pytest.mark.integration
    def test_failing_item_source_keeps_siblings(self, settings: AppSettings) -> None:
        """Test that a failing item source drops only its own records."""
        source = FakeSource(
            pages=ITEM_PAGES,
            failures={("Inactive items", None): TransientFetchError("down")},
        )
        service = _service(settings, source)

        categorized = service.get_categorized_items()

        assert [r.id for r in categorized.active] == ["i1", "i2"]
        assert categorized.inactive == []
        snapshot = service.get_status_configuration()
        assert snapshot.all_statuses == ["active", "lent"]
        assert snapshot.last_updated == FIXED_NOW

class TestRefreshAll:
    """Tests for refreshing every source."""

    @pytest.mark.integration
    def test_failure_is_isolated(self, settings: AppSettings) -> None:
        """Test that one failing source does not affect the others."""
        source = FakeSource(
            pages=ITEM_PAGES,
            failures={("Inactive items", None): TransientFetchError("Server error")},
        )
        service = _service(settings, source)

        result = service.refresh_all()

        assert set(result.outcomes) == {"items", "avoids"}
        assert set(result.errors) == {"inactive_items"}
        assert result.errors["inactive_items"].error_class == SourceErrorClass.FETCH
        assert result.errors["inactive_items"].source_key == "inactive_items"
        assert result.sources_succeeded == 2
        assert result.sources_failed == 1
        assert len(result.sync_id) == 12

    @pytest.mark.integration
    def test_all_sources_succeed(self, settings: AppSettings) -> None:
        """Test a clean refresh."""
        service = _service(settings, FakeSource(pages=ITEM_PAGES))

        result = service.refresh_all(max_workers=1)

        assert result.errors == {}
        assert result.sources_succeeded == 3
        assert result.duration_ms == 0.0
        status = service.get_cache_status()
        assert all(s.is_valid for s in status.values())


class TestHealth:
    """Tests for health reporting."""

    @pytest.mark.integration
    def test_healthy_before_status_update(self, settings: AppSettings) -> None:
        """Test that an uncomputed configuration reports no issues."""
        service = _service(settings, FakeSource(pages=ITEM_PAGES))

        report = service.health_check()

        assert report.status == "healthy"
        assert report.credentials_configured is True
        assert report.missing_variables == []
        assert report.timestamp == FIXED_NOW
        assert set(report.cache) == {"items", "inactive_items", "avoids"}
        assert report.status_configuration.last_updated is None

    @pytest.mark.integration
    def test_issues_when_nothing_active(self, settings: AppSettings) -> None:
        """Test that an empty active set is reported."""
        pages = {"Items": [[raw("i1", status="Donated")]], "Inactive items": [[]]}
        service = _service(settings, FakeSource(pages=pages))
        service.update_status_configuration()

        report = service.health_check()

        assert report.status == "issues"
        assert report.issues == ["No active statuses configured"]
        assert report.status_configuration.total == 1

    @pytest.mark.integration
    def test_limited_without_credentials(self) -> None:
        """Test that missing credentials mean cache-only mode."""
        settings = AppSettings(_env_file=None, airtable_api_key=None)
        service = _service(settings, None)

        report = service.health_check()

        assert report.status == "limited"
        assert report.credentials_configured is False
        assert "AIRTABLE_API_KEY" in report.missing_variables

    @pytest.mark.integration
    def test_limited_when_base_id_missing(self) -> None:
        """Test that a missing base id degrades to cache-only, not a crash."""
        settings = AppSettings(
            _env_file=None,
            airtable_api_key="pat-test",
            airtable_closet_base_id=None,
            airtable_references_base_id="appRefs",
            airtable_finished_base_id="appFinished",
        )
        service = build_service(
            CONFIG,
            settings,
            source=AirtableClient(api_key="pat-test"),
            persistence=MemoryBackend(),
            clock=Clock(FIXED_NOW),
        )

        outcome = service.sync_source("items")
        report = service.health_check()

        assert outcome.records == []
        assert outcome.error is not None
        assert outcome.error.error_class == SourceErrorClass.CONFIGURATION
        assert service.get_records("items") == []
        assert report.status == "limited"
        assert report.credentials_configured is True
        assert report.unresolved_sources == ["items"]
        assert report.missing_variables == ["AIRTABLE_CLOSET_BASE_ID"]

    @pytest.mark.integration
    def test_cache_only_serves_empty_records(self) -> None:
        """Test that cache-only mode returns what is cached, even nothing."""
        settings = AppSettings(_env_file=None, airtable_api_key=None)
        service = _service(settings, None)

        outcome = service.sync_source("items")

        assert outcome.records == []
        assert outcome.error is not None
        assert outcome.error.error_class == SourceErrorClass.CONFIGURATION


class TestMaintenance:
    """Tests for clearing and summarizing."""

    @pytest.mark.integration
    def test_clear_all(self, settings: AppSettings) -> None:
        """Test that clearing empties caches and the status configuration."""
        backend = MemoryBackend()
        service = _service(settings, FakeSource(pages=ITEM_PAGES), backend)
        service.get_all_items()

        service.clear_all()

        assert backend.entries == {}
        assert all(not s.has_data for s in service.get_cache_status().values())
        assert service.get_status_configuration().last_updated is None

    @pytest.mark.integration
    def test_data_summary(self, settings: AppSettings) -> None:
        """Test per-dataset counts and item split."""
        source = FakeSource(
            pages=ITEM_PAGES,
            failures={("Avoids", None): TransientFetchError("Server error")},
        )
        service = _service(settings, source)

        summary = service.data_summary()

        assert summary["datasets"] == {"items": 2, "inactive_items": 1, "avoids": 0}
        assert summary["items"] == {"active": 2, "inactive": 1, "total": 3}
        assert summary["status_info"]["active_statuses"] == ["active", "lent"]
        assert summary["timestamp"] == FIXED_NOW
