"""Incremental synchronization of remote tables into the cache."""

from src.sync.fetcher import IncrementalFetcher, merge_records
from src.sync.metrics import SyncMetrics
from src.sync.models import FetchOutcome, SourceDescriptor
from src.sync.state_machine import (
    FetchState,
    FetchStateMachine,
    FetchStateTransitionError,
)


__all__ = [
    "FetchOutcome",
    "FetchState",
    "FetchStateMachine",
    "FetchStateTransitionError",
    "IncrementalFetcher",
    "SourceDescriptor",
    "SyncMetrics",
    "merge_records",
]
