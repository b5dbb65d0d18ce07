"""Error types for remote source access."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from src.remote.models import FetchErrorClass


class SourceErrorClass(str, Enum):
    """Classification of source errors.

    - FETCH: HTTP/network errors while paging a table
    - PARSE: Response payload could not be interpreted
    - CONFIGURATION: Missing credentials or unknown base/table
    """

    FETCH = "FETCH"
    PARSE = "PARSE"
    CONFIGURATION = "CONFIGURATION"


class SourceError(Exception):
    """Base exception for source errors.

    Provides structured error information for logging and status reporting.
    """

    def __init__(
        self,
        error_class: SourceErrorClass,
        message: str,
        source_key: str | None = None,
        details: dict[str, str | int | bool | None] | None = None,
    ) -> None:
        """Initialize the source error.

        Args:
            error_class: Classification of the error.
            message: Human-readable error message.
            source_key: Key of the source that failed.
            details: Additional structured error details.
        """
        super().__init__(message)
        self.error_class = error_class
        self.message = message
        self.source_key = source_key
        self.details = details or {}

    def to_dict(
        self,
    ) -> dict[str, str | int | bool | None | dict[str, str | int | bool | None]]:
        """Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "error_class": self.error_class.value,
            "message": self.message,
            "source_key": self.source_key,
            "details": self.details,
        }


class TransientFetchError(SourceError):
    """A page request failed after retries were exhausted.

    The failure is expected to clear on a later attempt, so callers with
    cached data keep serving it.
    """

    def __init__(
        self,
        message: str,
        fetch_error_class: FetchErrorClass = FetchErrorClass.UNKNOWN,
        status_code: int | None = None,
        source_key: str | None = None,
    ) -> None:
        """Initialize the transient fetch error.

        Args:
            message: Human-readable error message.
            fetch_error_class: Classification of the last request failure.
            status_code: HTTP status code of the last response, if any.
            source_key: Key of the source that failed.
        """
        super().__init__(
            error_class=SourceErrorClass.FETCH,
            message=message,
            source_key=source_key,
            details={
                "fetch_error_class": fetch_error_class.value,
                "status_code": status_code,
            },
        )
        self.fetch_error_class = fetch_error_class
        self.status_code = status_code


class PayloadError(SourceError):
    """A response body did not have the expected page structure."""

    def __init__(
        self,
        message: str,
        source_key: str | None = None,
        context: str | None = None,
    ) -> None:
        """Initialize the payload error.

        Args:
            message: Human-readable error message.
            source_key: Key of the source that failed.
            context: Snippet of the offending payload.
        """
        details: dict[str, str | int | bool | None] = {}
        if context is not None:
            details["context"] = context

        super().__init__(
            error_class=SourceErrorClass.PARSE,
            message=message,
            source_key=source_key,
            details=details,
        )
        self.context = context


class ConfigurationError(SourceError):
    """Credentials or base identifiers are missing or rejected."""

    def __init__(
        self,
        message: str,
        source_key: str | None = None,
        missing: list[str] | None = None,
    ) -> None:
        """Initialize the configuration error.

        Args:
            message: Human-readable error message.
            source_key: Key of the source that failed.
            missing: Names of missing settings.
        """
        details: dict[str, str | int | bool | None] = {}
        if missing:
            details["missing"] = ",".join(missing)

        super().__init__(
            error_class=SourceErrorClass.CONFIGURATION,
            message=message,
            source_key=source_key,
            details=details,
        )
        self.missing = missing or []


class ErrorRecord(BaseModel):
    """Serializable error record for sync outcomes and health reports."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: SourceErrorClass = Field(description="Error classification")
    message: Annotated[str, Field(min_length=1, description="Error message")]
    source_key: str | None = Field(default=None, description="Source key")
    details: dict[str, str | int | bool | None] = Field(
        default_factory=dict, description="Additional error details"
    )

    @classmethod
    def from_exception(cls, error: SourceError) -> "ErrorRecord":
        """Create an ErrorRecord from a SourceError exception.

        Args:
            error: The exception to convert.

        Returns:
            ErrorRecord instance.
        """
        return cls(
            error_class=error.error_class,
            message=error.message or error.error_class.value,
            source_key=error.source_key,
            details=error.details,
        )
