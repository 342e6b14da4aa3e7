"""Token-bucket rate limiter for outbound oracle requests. Backoff for retries."""

from __future__ import annotations

import asyncio
import time
from threading import Lock


class TokenBucket:
    """Simple token bucket: refill rate per second, max burst."""

    def __init__(self, rate: float = 10.0, capacity: int | None = None) -> None:
        self.rate = rate
        self.capacity = capacity or max(1, int(rate * 2))
        self.tokens = float(self.capacity)
        self.last = time.monotonic()
        self._lock = Lock()

    def consume(self, n: int = 1) -> bool:
        """Consume n tokens. Return True if allowed, False if not enough."""
        with self._lock:
            now = time.monotonic()
            self.tokens = min(self.capacity, self.tokens + (now - self.last) * self.rate)
            self.last = now
            if self.tokens >= n:
                self.tokens -= n
                return True
            return False

    async def acquire(self, n: int = 1) -> None:
        """Wait (without blocking the loop) until n tokens are available."""
        while not self.consume(n):
            await asyncio.sleep(0.05)


def backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 60.0) -> float:
    """Delay in seconds before retry number `attempt` (1-based). Exponential, capped."""
    if attempt < 1:
        return 0.0
    return min(max_delay, base_delay * (2 ** (attempt - 1)))
