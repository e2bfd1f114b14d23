"""Client-side request throttling driven by the server's advertised rate limit."""

from __future__ import annotations

import math
import time
from typing import Any, Awaitable, Callable, Optional

import anyio

RATE_LIMIT_HEADER = "X-RateLimit-Limit"

# Steady rate is two thirds of the advertised limit; bursts are capped at a third.
RATE_FRACTION = 0.66
BURST_FRACTION = 0.33


class RateLimiter:
    """
    Token bucket shared by every request one client sends.
    ``rate`` tokens accrue per second up to ``burst``. ``acquire`` takes one
    token, sleeping first when the bucket is empty.
    """

    def __init__(
        self,
        rate: float,
        burst: int,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = anyio.sleep,
    ):
        if not rate > 0 or not math.isfinite(rate):
            raise ValueError(f"rate must be a positive number, got {rate!r}")
        if burst < 1:
            raise ValueError(f"burst must be at least 1, got {burst!r}")
        self.rate = rate
        self.burst = burst
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(burst)
        self._updated = clock()
        self._lock = anyio.Lock()

    @classmethod
    def from_limit(cls, raw_limit: Any, **kwargs: Any) -> Optional["RateLimiter"]:
        """
        Build a limiter from an ``X-RateLimit-Limit`` value (requests per
        second). Returns None, meaning unlimited, for a missing, malformed or
        non-positive limit.
        """
        if raw_limit is None or isinstance(raw_limit, bool):
            return None
        try:
            limit = float(str(raw_limit).strip())
        except ValueError:
            return None
        if not limit > 0 or not math.isfinite(limit):
            return None
        burst = max(1, int(limit * BURST_FRACTION))
        return cls(limit * RATE_FRACTION, burst, **kwargs)

    async def acquire(self) -> float:
        """Take one token and return the seconds spent waiting for it."""
        async with self._lock:
            now = self._clock()
            elapsed = max(0.0, now - self._updated)
            self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
            self._updated = now
            # A negative balance is a reservation; later callers queue behind it.
            self._tokens -= 1
            wait = -self._tokens / self.rate if self._tokens < 0 else 0.0

        if wait > 0:
            await self._sleep(wait)
        return wait


__all__ = ["RateLimiter", "RATE_LIMIT_HEADER", "RATE_FRACTION", "BURST_FRACTION"]
