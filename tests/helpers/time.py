"""Shared, deterministic timestamps for tests."""

from datetime import UTC, datetime


# Fixed timestamp so cache freshness and status refresh windows are deterministic.
FIXED_NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=UTC)
