"""Token bucket gate guarding outbound provider requests."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class TokenBucket:
    """Asyncio token bucket allowing ``rate`` requests per second.

    ``capacity`` bounds the burst size and defaults to ``max(1, rate)``. Callers
    await :meth:`acquire` before each request; when the bucket is empty the
    caller sleeps for exactly the time needed to earn the next token.
    """

    def __init__(
        self,
        rate: float,
        capacity: float | None = None,
        *,
        name: str = "provider",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if rate <= 0:
            raise ValueError(f"Rate must be positive, got: {rate}")
        resolved_capacity = capacity if capacity is not None else max(1.0, rate)
        if resolved_capacity < 1:
            raise ValueError(f"Capacity must be at least 1, got: {resolved_capacity}")
        self.name = name
        self.rate = float(rate)
        self.capacity = float(resolved_capacity)
        self._clock = clock
        self._sleep = sleep
        self._tokens = self.capacity
        self._updated_at = clock()
        self._lock = asyncio.Lock()

    @property
    def tokens(self) -> float:
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated_at)
        self._updated_at = now
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)

    async def acquire(self) -> None:
        """Wait until a token is available and consume it."""

        async with self._lock:
            self._refill()
            if self._tokens < 1:
                wait = (1 - self._tokens) / self.rate
                logger.debug("Rate gate %s waiting %.3fs", self.name, wait)
                await self._sleep(wait)
                self._refill()
            self._tokens = max(0.0, self._tokens - 1)
