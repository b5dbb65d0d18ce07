"""Remote tabular source access."""

from src.remote.client import AirtableClient
from src.remote.errors import (
    ConfigurationError,
    ErrorRecord,
    PayloadError,
    SourceError,
    SourceErrorClass,
    TransientFetchError,
)
from src.remote.metrics import RequestMetrics
from src.remote.models import (
    FetchError,
    FetchErrorClass,
    RawRecord,
    RetryPolicy,
    TableQuery,
)
from src.remote.rate_limiter import (
    TokenBucketRateLimiter,
    get_base_rate_limiter,
    reset_base_rate_limiters,
)
from src.remote.redact import redact_headers
from src.remote.source import RecordSource


__all__ = [
    "AirtableClient",
    "ConfigurationError",
    "ErrorRecord",
    "FetchError",
    "FetchErrorClass",
    "PayloadError",
    "RawRecord",
    "RecordSource",
    "RequestMetrics",
    "RetryPolicy",
    "SourceError",
    "SourceErrorClass",
    "TableQuery",
    "TokenBucketRateLimiter",
    "TransientFetchError",
    "get_base_rate_limiter",
    "redact_headers",
    "reset_base_rate_limiters",
]
