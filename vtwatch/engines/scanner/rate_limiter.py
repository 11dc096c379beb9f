"""Minimum-spacing rate limiter for outbound calls to the scanning service."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

import structlog

log = structlog.get_logger("vtwatch.engine.rate_limiter")

# Public API keys are limited to 4 requests per minute.
DEFAULT_INTERVAL = 15.0


class RateLimiter:
    """Serialize callers so consecutive acquires are at least *interval* apart.

    One instance is shared by every component that talks to the remote
    service. The wait and the timestamp update both happen under the lock,
    so two callers can never observe the same "last call" and both go early.
    """

    def __init__(
        self,
        interval: float = DEFAULT_INTERVAL,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_call: float | None = None

    @property
    def last_call(self) -> float | None:
        return self._last_call

    async def acquire(self) -> None:
        """Block until the next outbound call is allowed, then claim the slot."""
        async with self._lock:
            if self._last_call is not None:
                wait = self.interval - (self._clock() - self._last_call)
                if wait > 0:
                    log.debug("rate_limit.wait", wait_seconds=round(wait, 3))
                    await self._sleep(wait)
            self._last_call = self._clock()
