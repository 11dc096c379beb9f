"""Background rescan scheduler: periodically re-scans tracked files that are due."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

import structlog

from vtwatch.core.config import ScanConfig
from vtwatch.engines.monitor.registry import TrackedFileSource
from vtwatch.engines.scanner.pipeline import ScanPipeline
from vtwatch.exceptions import ConfigError, ScanError

logger = structlog.get_logger("vtwatch.scheduler")

IDLE_INTERVAL = 60.0  # seconds between checks while rescanning is off


@dataclass
class CycleReport:
    """Summary of one rescan cycle."""

    selected: int = 0
    succeeded: int = 0
    failed: int = 0
    batches: int = 0


def select_due(
    paths: Iterable[str],
    last_scanned: dict[str, datetime],
    interval: timedelta,
    now: datetime,
) -> list[str]:
    """Paths never scanned, or whose latest scan is older than *interval*."""
    due = []
    for path in paths:
        scanned_at = last_scanned.get(path)
        if scanned_at is None or now - scanned_at > interval:
            due.append(path)
    return due


def batched(items: list[str], size: int) -> list[list[str]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class BackgroundScanScheduler:
    """Single long-lived task driving rescan cycles through a :class:`ScanPipeline`.

    Configuration is re-read through *config_provider* at the start of every
    cycle, so toggling ``auto_rescan_interval_hours`` takes effect without a
    restart.
    """

    def __init__(
        self,
        pipeline: ScanPipeline,
        source: TrackedFileSource,
        config_provider: Callable[[], ScanConfig],
        *,
        idle_interval: float = IDLE_INTERVAL,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._pipeline = pipeline
        self._source = source
        self._config_provider = config_provider
        self._idle_interval = idle_interval
        self._clock = clock
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self.loop(), name="vtwatch-rescan")
        logger.info("scheduler.started")

    async def stop(self) -> None:
        """Ask the loop to exit and wait for the current cycle to drain."""
        self._stop.set()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        logger.info("scheduler.stopped")

    async def loop(self) -> None:
        while not self._stop.is_set():
            delay = await self._tick()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

    # ── cycle ──────────────────────────────────────────────────────────────

    def due_paths(self, config: ScanConfig) -> list[str]:
        """Tracked files that exist and need a rescan under *config*."""
        if config.auto_rescan_interval_hours is None:
            return []
        existing = [p for p in self._source.tracked_paths() if Path(p).is_file()]
        return select_due(
            existing,
            self._pipeline.history.last_scanned(),
            timedelta(hours=config.auto_rescan_interval_hours),
            self._clock(),
        )

    async def run_cycle(self, config: ScanConfig) -> CycleReport:
        """Scan every due file, batch by batch. Failures are logged, never raised."""
        candidates = self.due_paths(config)
        report = CycleReport(selected=len(candidates))
        if not candidates:
            logger.info("rescan.cycle", selected=0)
            return report

        for batch in batched(candidates, config.scan_batch_size):
            outcomes = await asyncio.gather(*(self._scan_one(path) for path in batch))
            report.batches += 1
            report.succeeded += sum(1 for ok in outcomes if ok)
            report.failed += sum(1 for ok in outcomes if not ok)

        logger.info(
            "rescan.cycle",
            selected=report.selected,
            succeeded=report.succeeded,
            failed=report.failed,
            batches=report.batches,
        )
        return report

    async def _scan_one(self, path: str) -> bool:
        try:
            await self._pipeline.scan(path)
            return True
        except ScanError as exc:
            logger.warning("rescan.file_failed", path=path, error=str(exc))
        except Exception:
            logger.exception("rescan.file_error", path=path)
        return False

    async def _tick(self) -> float:
        """Run one cycle if enabled; return how long to sleep afterwards."""
        try:
            config = self._config_provider()
        except ConfigError as exc:
            logger.error("rescan.config_error", error=str(exc))
            return self._idle_interval

        if not config.rescan_enabled:
            logger.debug("rescan.disabled")
            return self._idle_interval

        self._pipeline.history.set_limit(config.scan_history_limit)
        try:
            await self.run_cycle(config)
        except Exception:
            logger.exception("rescan.cycle_error")
        return config.cycle_interval.total_seconds()
