"""Token-bucket rate limiter for per-base request pacing."""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol


class RateLimiterProtocol(Protocol):
    """Anything that can pace page requests."""

    def acquire(self, tokens: int = 1) -> bool:
        """Take tokens, sleeping until they are available."""
        ...


@dataclass
class TokenBucketRateLimiter:
    """Token bucket limiting requests per second against one base.

    The bucket starts full and refills continuously at ``max_qps``. One
    instance is shared by every worker thread paging the same base.

    Attributes:
        max_qps: Maximum requests per second.
        bucket_capacity: Burst size; zero means one second of requests.
        clock: Monotonic time source.
        sleep: Called with the number of seconds to wait.
    """

    max_qps: float
    bucket_capacity: float = 0.0
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep

    _available: float = field(init=False, default=0.0)
    _updated_at: float = field(init=False, default=0.0)
    _waited_seconds: float = field(init=False, default=0.0)
    _waits: int = field(init=False, default=0)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        """Start with a full bucket."""
        if self.max_qps <= 0:
            msg = f"max_qps must be positive, got {self.max_qps}"
            raise ValueError(msg)
        self.bucket_capacity = self.bucket_capacity or self.max_qps
        self._available = self.bucket_capacity
        self._updated_at = self.clock()

    def _take(self, tokens: int) -> float:
        """Take tokens if possible and return the wait still needed.

        Caller holds the lock.
        """
        now = self.clock()
        self._available = min(
            self.bucket_capacity,
            self._available + (now - self._updated_at) * self.max_qps,
        )
        self._updated_at = now
        if self._available >= tokens:
            self._available -= tokens
            return 0.0
        self._waits += 1
        return (tokens - self._available) / self.max_qps

    def acquire(self, tokens: int = 1) -> bool:
        """Take tokens, sleeping outside the lock while the bucket refills.

        Args:
            tokens: Number of tokens to take.

        Returns:
            Always True once the tokens were taken.
        """
        while True:
            with self._lock:
                wait = self._take(tokens)
                if wait == 0.0:
                    return True
                self._waited_seconds += wait
            self.sleep(wait)

    def try_acquire(self, tokens: int = 1) -> bool:
        """Take tokens only if they are available right now."""
        with self._lock:
            return self._take(tokens) == 0.0

    @property
    def wait_count(self) -> int:
        """Number of times a caller found the bucket short."""
        with self._lock:
            return self._waits

    @property
    def waited_seconds(self) -> float:
        """Total time ``acquire`` slept."""
        with self._lock:
            return self._waited_seconds


_base_limiters: dict[str, TokenBucketRateLimiter] = {}
_limiter_lock = threading.Lock()


def get_base_rate_limiter(base_id: str, max_qps: float) -> TokenBucketRateLimiter:
    """Return the limiter shared by every client of a base.

    The rate of the first caller wins for the lifetime of the process.

    Args:
        base_id: Remote base identifier.
        max_qps: Maximum requests per second for the base.

    Returns:
        Shared limiter for ``base_id``.
    """
    with _limiter_lock:
        return _base_limiters.setdefault(
            base_id, TokenBucketRateLimiter(max_qps=max_qps)
        )


def reset_base_rate_limiters() -> None:
    """Drop all shared limiters (for testing)."""
    with _limiter_lock:
        _base_limiters.clear()
