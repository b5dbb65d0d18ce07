"""Application settings powered by Pydantic BaseSettings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    airtable_api_key: str | None = Field(
        default=None, validation_alias="AIRTABLE_API_KEY"
    )
    airtable_closet_base_id: str | None = Field(
        default=None, validation_alias="AIRTABLE_CLOSET_BASE_ID"
    )
    airtable_references_base_id: str | None = Field(
        default=None, validation_alias="AIRTABLE_REFERENCES_BASE_ID"
    )
    airtable_finished_base_id: str | None = Field(
        default=None, validation_alias="AIRTABLE_FINISHED_BASE_ID"
    )
    cache_dir: Path = Field(
        default=Path("cached_data"), validation_alias="MIRROR_CACHE_DIR"
    )
    config_path: Path | None = Field(
        default=None, validation_alias="MIRROR_CONFIG_PATH"
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(default=True, validation_alias="LOG_JSON")

    @property
    def has_credentials(self) -> bool:
        """Whether an API key is available for the remote source."""
        return bool(self.airtable_api_key)

    def base_id_for(self, alias: str) -> str | None:
        """Return the remote base id for a base alias."""
        base_ids = {
            "closet": self.airtable_closet_base_id,
            "references": self.airtable_references_base_id,
            "finished": self.airtable_finished_base_id,
        }
        return base_ids.get(alias)

    def missing_variables(self) -> list[str]:
        """List the remote-source environment variables that are unset."""
        required = {
            "AIRTABLE_API_KEY": self.airtable_api_key,
            "AIRTABLE_CLOSET_BASE_ID": self.airtable_closet_base_id,
            "AIRTABLE_REFERENCES_BASE_ID": self.airtable_references_base_id,
            "AIRTABLE_FINISHED_BASE_ID": self.airtable_finished_base_id,
        }
        return [name for name, value in required.items() if not value]


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
