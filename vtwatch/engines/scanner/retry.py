"""Attempt-level retry with pluggable backoff."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from vtwatch.exceptions import MaxRetriesExceededError, ScanError

log = structlog.get_logger("vtwatch.engine.retry")

T = TypeVar("T")

Backoff = Callable[[int], float]


def fixed_backoff(delay: float) -> Backoff:
    """Wait the same *delay* before every retry."""

    def _backoff(retry: int) -> float:
        return delay

    return _backoff


def exponential_backoff(base: float, factor: float = 2.0, max_delay: float | None = None) -> Backoff:
    """Wait ``base * factor ** (retry - 1)``, capped at *max_delay*."""

    def _backoff(retry: int) -> float:
        delay = base * factor ** max(retry - 1, 0)
        if max_delay is not None:
            delay = min(delay, max_delay)
        return delay

    return _backoff


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ScanError) and exc.retryable


class RetryPolicy:
    """Run an operation, retrying retryable failures up to *max_retries* times.

    The first call is not a retry, so a persistently failing operation is
    invoked ``max_retries + 1`` times before :class:`MaxRetriesExceededError`
    is raised. Errors that are not retryable propagate unchanged on the spot.
    """

    def __init__(
        self,
        max_retries: int,
        backoff: Backoff,
        *,
        should_retry: Callable[[BaseException], bool] = _is_retryable,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.backoff = backoff
        self._should_retry = should_retry
        self._sleep = sleep

    async def run(self, operation: Callable[[], Awaitable[T]], *, label: str = "") -> T:
        retries = 0
        while True:
            try:
                return await operation()
            except Exception as exc:
                if not self._should_retry(exc):
                    raise
                if retries >= self.max_retries:
                    log.warning(
                        "retry.exhausted",
                        label=label,
                        attempts=retries + 1,
                        error=str(exc),
                    )
                    raise MaxRetriesExceededError(retries + 1, exc) from exc
                retries += 1
                delay = self.backoff(retries)
                log.info(
                    "retry.scheduled",
                    label=label,
                    retry=retries,
                    max_retries=self.max_retries,
                    delay_seconds=delay,
                    error=str(exc),
                )
                await self._sleep(delay)
