"""Tests for RateLimiter spacing."""

from __future__ import annotations

import asyncio
import time

import pytest

from vtwatch.engines.scanner.rate_limiter import RateLimiter


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.mark.asyncio
async def test_first_acquire_does_not_wait():
    clock = FakeClock()
    limiter = RateLimiter(15.0, clock=clock, sleep=clock.sleep)
    await limiter.acquire()
    assert clock.sleeps == []
    assert limiter.last_call == 1000.0


@pytest.mark.asyncio
async def test_second_acquire_waits_remaining_interval():
    clock = FakeClock()
    limiter = RateLimiter(15.0, clock=clock, sleep=clock.sleep)
    await limiter.acquire()
    clock.now += 5.0
    await limiter.acquire()
    assert clock.sleeps == [pytest.approx(10.0)]
    assert limiter.last_call == pytest.approx(1015.0)


@pytest.mark.asyncio
async def test_no_wait_after_interval_elapsed():
    clock = FakeClock()
    limiter = RateLimiter(15.0, clock=clock, sleep=clock.sleep)
    await limiter.acquire()
    clock.now += 20.0
    await limiter.acquire()
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_concurrent_callers_are_serialized():
    clock = FakeClock()
    limiter = RateLimiter(15.0, clock=clock, sleep=clock.sleep)
    stamps: list[float] = []

    async def caller() -> None:
        await limiter.acquire()
        stamps.append(clock())

    await asyncio.gather(*(caller() for _ in range(4)))
    assert stamps == [1000.0, 1015.0, 1030.0, 1045.0]


@pytest.mark.asyncio
async def test_zero_interval_never_sleeps():
    clock = FakeClock()
    limiter = RateLimiter(0, clock=clock, sleep=clock.sleep)
    for _ in range(5):
        await limiter.acquire()
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_real_clock_spacing():
    limiter = RateLimiter(0.05)
    stamps: list[float] = []

    async def caller() -> None:
        await limiter.acquire()
        stamps.append(time.monotonic())

    await asyncio.gather(*(caller() for _ in range(3)))
    gaps = [b - a for a, b in zip(stamps, stamps[1:])]
    assert all(gap >= 0.045 for gap in gaps)


def test_negative_interval_rejected():
    with pytest.raises(ValueError):
        RateLimiter(-1)
