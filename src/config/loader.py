"""Mirror configuration loader with validation."""

import hashlib
import time
from pathlib import Path
from typing import NoReturn

import structlog
import yaml
from pydantic import ValidationError

from src.config.defaults import default_config
from src.config.schemas.mirror import MirrorConfig


logger = structlog.get_logger()


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


class ConfigLoader:
    """Loads and validates mirror.yaml.

    A missing ``sources`` section falls back to the built-in sources, so a
    file may tune only the numeric settings.
    """

    def __init__(self) -> None:
        """Initialize the loader."""
        self._checksum: str | None = None
        self._validation_errors: list[dict[str, str]] = []
        self._validation_duration_ms: float = 0
        self._log = logger.bind(component="config")

    @property
    def checksum(self) -> str | None:
        """SHA-256 checksum of the last file read."""
        return self._checksum

    @property
    def validation_errors(self) -> list[dict[str, str]]:
        """Get validation errors if any."""
        return self._validation_errors.copy()

    @property
    def validation_duration_ms(self) -> float:
        """Get validation duration in milliseconds."""
        return self._validation_duration_ms

    def _load_yaml_file(self, file_path: Path) -> tuple[dict[str, object], str]:
        """Load a YAML file and compute its checksum.

        Args:
            file_path: Path to the YAML file.

        Returns:
            Tuple of (parsed content, checksum).

        Raises:
            ConfigValidationError: If the file is missing, unparsable, or
                not a mapping.
        """
        try:
            content_bytes = file_path.read_bytes()
        except FileNotFoundError as e:
            self._fail("file", str(e), "file_not_found", file_path)

        checksum = hashlib.sha256(content_bytes).hexdigest()
        try:
            parsed = yaml.safe_load(content_bytes.decode("utf-8")) or {}
        except yaml.YAMLError as e:
            self._fail("yaml", str(e), "yaml_parse_error", file_path)

        if not isinstance(parsed, dict):
            self._fail("root", "Top level must be a mapping", "type_error", file_path)
        return parsed, checksum

    def _fail(
        self, loc: str, msg: str, error_type: str, file_path: Path
    ) -> NoReturn:
        self._validation_errors = [{"loc": loc, "msg": msg, "type": error_type}]
        self._log.error(
            "config_load_failed",
            file_path=str(file_path),
            error_type=error_type,
            error=msg,
        )
        raise ConfigValidationError(self._validation_errors, str(file_path))

    def load(self, path: Path) -> MirrorConfig:
        """Load and validate a configuration file.

        Args:
            path: Path to mirror.yaml.

        Returns:
            Validated configuration.

        Raises:
            ConfigValidationError: If the file is missing or invalid.
        """
        start_time = time.perf_counter()
        self._validation_errors = []
        self._log.info("loading_config_file", file_path=str(path))

        data, self._checksum = self._load_yaml_file(path)
        if "sources" not in data:
            data = {**data, "sources": default_config().model_dump()["sources"]}

        try:
            config = MirrorConfig.model_validate(data)
        except ValidationError as e:
            self._validation_errors = [
                {
                    "loc": ".".join(str(loc) for loc in err["loc"]),
                    "msg": err["msg"],
                    "type": err["type"],
                }
                for err in e.errors()
            ]
            self._log.error(
                "config_validation_failed",
                file_path=str(path),
                validation_error_count=len(self._validation_errors),
                errors=self._validation_errors,
            )
            raise ConfigValidationError(self._validation_errors, str(path)) from e

        self._validation_duration_ms = (time.perf_counter() - start_time) * 1000
        self._log.info(
            "config_file_loaded",
            file_path=str(path),
            file_sha256=self._checksum,
            source_count=len(config.sources),
            config_validation_duration_ms=round(self._validation_duration_ms, 2),
        )
        return config


def load_config(path: Path | None) -> MirrorConfig:
    """Load a configuration file, or the built-in one when no path is given."""
    if path is None:
        return default_config()
    return ConfigLoader().load(path)
