"""Token-bucket pacing for outgoing Bot API calls."""

from __future__ import annotations

import threading
import time
from typing import Optional


class TokenBucket:
    """Thread-safe token bucket; ``consume`` blocks until a token is free."""

    def __init__(self, rate: float, capacity: Optional[float] = None) -> None:
        if rate <= 0:
            raise ValueError("rate must be positive")
        self.rate = float(rate)
        self.capacity = float(capacity if capacity is not None else max(rate, 1.0))
        self._tokens = self.capacity
        self._updated = time.monotonic()
        self._lock = threading.Lock()

    def _refill_locked(self) -> None:
        now = time.monotonic()
        delta = now - self._updated
        if delta <= 0:
            return
        self._tokens = min(self.capacity, self._tokens + delta * self.rate)
        self._updated = now

    def _reserve_locked(self, tokens: float) -> float:
        self._refill_locked()
        missing = tokens - self._tokens
        if missing <= 0:
            self._tokens -= tokens
            return 0.0
        return max(missing / self.rate, 0.0)

    def consume(self, tokens: float = 1.0) -> float:
        """Wait until ``tokens`` are available; return the total time waited."""

        if tokens <= 0:
            return 0.0
        waited = 0.0
        while True:
            with self._lock:
                wait = self._reserve_locked(tokens)
            if wait <= 0:
                return waited
            time.sleep(wait)
            waited += wait


def bucket_for_rate(rate: float) -> Optional[TokenBucket]:
    """Return a bucket for ``rate`` calls per second, or ``None`` when disabled."""

    if rate <= 0:
        return None
    return TokenBucket(rate)
