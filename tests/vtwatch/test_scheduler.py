"""Unit tests for BackgroundScanScheduler and due-file selection."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from vtwatch.core.config import ScanConfig
from vtwatch.engines.monitor.registry import TrackedFileRegistry
from vtwatch.engines.scanner.history import ScanHistory
from vtwatch.engines.scanner.limiter import ConcurrencyLimiter
from vtwatch.engines.scanner.pipeline import ScanPipeline
from vtwatch.engines.scanner.retry import RetryPolicy, fixed_backoff
from vtwatch.exceptions import ConfigError, UploadError
from vtwatch.scheduler import BackgroundScanScheduler, CycleReport, batched, select_due

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)
DAY = timedelta(hours=24)


class StubPipeline:
    """Records scans and appends a result dated at the scheduler clock."""

    def __init__(self, make_result, *, failures: dict[str, Exception] | None = None) -> None:
        self.history = ScanHistory()
        self.scanned: list[str] = []
        self.failures = failures or {}
        self.in_flight = 0
        self.peak = 0
        self._make_result = make_result

    async def scan(self, path):
        self.scanned.append(path)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            if path in self.failures:
                raise self.failures[path]
            result = self._make_result(path, scan_date=NOW)
            self.history.append(result)
            return result
        finally:
            self.in_flight -= 1


@pytest.fixture
def files(tmp_path):
    paths = []
    for i in range(5):
        path = tmp_path / f"file{i}.exe"
        path.write_bytes(f"payload {i}".encode())
        paths.append(str(path))
    return paths


@pytest.fixture
def config() -> ScanConfig:
    return ScanConfig(api_key="k", scan_batch_size=2, auto_rescan_interval_hours=24)


def _scheduler(pipeline, paths, config, **kwargs) -> BackgroundScanScheduler:
    return BackgroundScanScheduler(
        pipeline, TrackedFileRegistry(paths), lambda: config, clock=lambda: NOW, **kwargs
    )


# ---------------------------------------------------------------------------
# select_due / batched
# ---------------------------------------------------------------------------


def test_never_scanned_is_due():
    assert select_due(["/a"], {}, DAY, NOW) == ["/a"]


def test_recently_scanned_is_not_due():
    assert select_due(["/a"], {"/a": NOW - timedelta(hours=1)}, DAY, NOW) == []


def test_stale_scan_is_due():
    assert select_due(["/a"], {"/a": NOW - timedelta(hours=25)}, DAY, NOW) == ["/a"]


def test_exactly_interval_old_is_not_due():
    assert select_due(["/a"], {"/a": NOW - DAY}, DAY, NOW) == []


def test_select_due_preserves_order():
    last = {"/b": NOW}
    assert select_due(["/c", "/b", "/a"], last, DAY, NOW) == ["/c", "/a"]


def test_batched():
    assert batched(["a", "b", "c", "d", "e"], 2) == [["a", "b"], ["c", "d"], ["e"]]
    assert batched([], 3) == []


# ---------------------------------------------------------------------------
# run_cycle
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_cycle_scans_due_files_in_batches(make_result, files, config):
    pipeline = StubPipeline(make_result)
    scheduler = _scheduler(pipeline, files, config)

    report = await scheduler.run_cycle(config)

    assert report == CycleReport(selected=5, succeeded=5, failed=0, batches=3)
    assert pipeline.scanned == files
    assert pipeline.peak <= 2


@pytest.mark.asyncio
async def test_second_cycle_skips_fresh_results(make_result, files, config):
    pipeline = StubPipeline(make_result)
    scheduler = _scheduler(pipeline, files, config)

    await scheduler.run_cycle(config)
    report = await scheduler.run_cycle(config)

    assert report.selected == 0
    assert len(pipeline.scanned) == 5


@pytest.mark.asyncio
async def test_recent_history_excludes_file(make_result, files, config):
    pipeline = StubPipeline(make_result)
    pipeline.history.append(make_result(files[0], scan_date=NOW - timedelta(hours=1)))
    pipeline.history.append(make_result(files[1], scan_date=NOW - timedelta(hours=30)))
    scheduler = _scheduler(pipeline, files, config)

    assert scheduler.due_paths(config) == files[1:]


@pytest.mark.asyncio
async def test_missing_files_are_skipped(make_result, files, config, tmp_path):
    pipeline = StubPipeline(make_result)
    scheduler = _scheduler(pipeline, files + [str(tmp_path / "deleted.exe")], config)

    assert scheduler.due_paths(config) == files


@pytest.mark.asyncio
async def test_failures_are_counted_not_raised(make_result, files, config):
    pipeline = StubPipeline(
        make_result,
        failures={files[1]: UploadError("HTTP 500"), files[3]: RuntimeError("boom")},
    )
    scheduler = _scheduler(pipeline, files, config)

    report = await scheduler.run_cycle(config)

    assert report.succeeded == 3
    assert report.failed == 2
    assert len(pipeline.scanned) == 5


@pytest.mark.asyncio
async def test_identical_files_are_both_recorded(scan_client, fake_vt, tmp_path):
    a = tmp_path / "a.exe"
    b = tmp_path / "b.exe"
    a.write_bytes(b"same installer bytes")
    b.write_bytes(b"same installer bytes")
    config = ScanConfig(api_key="k", auto_rescan_interval_hours=24)
    pipeline = ScanPipeline(
        scan_client,
        limiter=ConcurrencyLimiter(1),
        retry=RetryPolicy(0, fixed_backoff(0)),
        history=ScanHistory(),
    )
    scheduler = BackgroundScanScheduler(
        pipeline, TrackedFileRegistry([str(a), str(b)]), lambda: config
    )

    first = await scheduler.run_cycle(config)

    assert first.selected == 2
    assert len(fake_vt.uploads) == 1
    assert {r.file_path for r in pipeline.history.entries()} == {str(a), str(b)}
    assert scheduler.due_paths(config) == []

    second = await scheduler.run_cycle(config)

    assert second.selected == 0
    assert len(pipeline.history) == 2


@pytest.mark.asyncio
async def test_disabled_config_selects_nothing(make_result, files):
    config = ScanConfig(api_key="k", auto_rescan_interval_hours=None)
    scheduler = _scheduler(StubPipeline(make_result), files, config)
    assert scheduler.due_paths(config) == []


# ---------------------------------------------------------------------------
# _tick
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_tick_when_disabled_idles(make_result, files):
    config = ScanConfig(api_key="k", auto_rescan_interval_hours=None)
    pipeline = StubPipeline(make_result)
    scheduler = _scheduler(pipeline, files, config, idle_interval=7)

    assert await scheduler._tick() == 7
    assert pipeline.scanned == []


@pytest.mark.asyncio
async def test_tick_on_config_error_idles(make_result, files):
    def broken() -> ScanConfig:
        raise ConfigError("bad settings")

    pipeline = StubPipeline(make_result)
    scheduler = BackgroundScanScheduler(
        pipeline, TrackedFileRegistry(files), broken, idle_interval=9, clock=lambda: NOW
    )
    assert await scheduler._tick() == 9
    assert pipeline.scanned == []


@pytest.mark.asyncio
async def test_tick_applies_history_limit_and_returns_cycle_interval(make_result, files):
    config = ScanConfig(
        api_key="k", scan_history_limit=3, cycle_interval=timedelta(minutes=30)
    )
    pipeline = StubPipeline(make_result)
    scheduler = _scheduler(pipeline, files, config)

    assert await scheduler._tick() == 1800
    assert pipeline.history.limit == 3
    assert len(pipeline.history) == 3


# ---------------------------------------------------------------------------
# lifecycle
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_start_and_stop(make_result, files):
    config = ScanConfig(api_key="k", auto_rescan_interval_hours=None)
    scheduler = _scheduler(StubPipeline(make_result), files, config, idle_interval=100)

    await scheduler.start()
    assert scheduler.running
    await asyncio.wait_for(scheduler.stop(), timeout=1.0)
    assert not scheduler.running


@pytest.mark.asyncio
async def test_toggle_takes_effect_without_restart(make_result, files):
    holder = {"config": ScanConfig(api_key="k", auto_rescan_interval_hours=None)}
    pipeline = StubPipeline(make_result)
    scheduler = BackgroundScanScheduler(
        pipeline,
        TrackedFileRegistry(files),
        lambda: holder["config"],
        idle_interval=0.01,
        clock=lambda: NOW,
    )

    await scheduler.start()
    try:
        await asyncio.sleep(0.05)
        assert pipeline.scanned == []
        holder["config"] = ScanConfig(api_key="k", cycle_interval=timedelta(hours=1))
        await asyncio.wait_for(_wait_until(lambda: len(pipeline.scanned) == 5), timeout=2.0)
    finally:
        await scheduler.stop()


async def _wait_until(predicate, interval: float = 0.005) -> None:
    while not predicate():
        await asyncio.sleep(interval)
