"""
Per-credential token buckets.

Each API key gets a bucket sized from its requests-per-minute budget:
capacity ``max(1, budget // 10)`` and a refill of ``budget / 60`` tokens per
second. Buckets are created on first use and live for the process lifetime.
"""
import math
import threading
import time
from typing import Callable, Dict


class TokenBucket:
    """Thread-safe token bucket with continuous refill."""

    def __init__(self, rate: float, capacity: int, clock: Callable[[], float] = time.monotonic):
        if rate <= 0:
            raise ValueError("rate must be positive")
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.rate = rate
        self.capacity = capacity
        self._clock = clock
        self._tokens = float(capacity)
        self._updated = clock()
        self._lock = threading.Lock()

    @classmethod
    def for_budget(cls, requests_per_minute: int, clock: Callable[[], float] = time.monotonic) -> "TokenBucket":
        budget = max(1, int(requests_per_minute))
        return cls(rate=budget / 60.0, capacity=max(1, budget // 10), clock=clock)

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._updated = now

    def allow(self) -> bool:
        """Take one token if available."""
        with self._lock:
            self._refill()
            if self._tokens >= 1:
                self._tokens -= 1
                return True
            return False

    def retry_after(self) -> int:
        """Whole seconds until the next token is available (at least 1)."""
        with self._lock:
            self._refill()
            missing = max(0.0, 1 - self._tokens)
            return max(1, math.ceil(missing / self.rate))

    @property
    def tokens(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens


class RateLimiterRegistry:
    """
    Buckets keyed by API key hash.

    ``get`` is an atomic insert-if-absent: when several requests for a new
    key race, the first bucket created is the one every caller gets.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._buckets: Dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def get(self, key_hash: str, requests_per_minute: int) -> TokenBucket:
        bucket = self._buckets.get(key_hash)
        if bucket is not None:
            return bucket

        with self._lock:
            bucket = self._buckets.get(key_hash)
            if bucket is None:
                bucket = TokenBucket.for_budget(requests_per_minute, clock=self._clock)
                self._buckets[key_hash] = bucket
            return bucket

    def __len__(self) -> int:
        return len(self._buckets)
