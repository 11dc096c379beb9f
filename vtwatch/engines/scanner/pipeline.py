"""ScanPipeline: the single path every scan request goes through."""

from __future__ import annotations

from pathlib import Path

import structlog

from vtwatch.core.config import ScanConfig
from vtwatch.engines.notification.sink import NullSink, ScanEvent, ScanEventSink
from vtwatch.engines.scanner.cache import ResultCache
from vtwatch.engines.scanner.history import ScanHistory
from vtwatch.engines.scanner.limiter import ConcurrencyLimiter
from vtwatch.engines.scanner.models import ScanResult
from vtwatch.engines.scanner.rate_limiter import RateLimiter
from vtwatch.engines.scanner.retry import RetryPolicy, fixed_backoff
from vtwatch.engines.scanner.scan_client import ScanClient
from vtwatch.engines.virustotal.client import VirusTotalClient
from vtwatch.exceptions import ScanError

log = structlog.get_logger("vtwatch.engine.pipeline")


class ScanPipeline:
    """RetryPolicy → ConcurrencyLimiter → ScanClient, then history + events.

    Each attempt takes its own permit, so the delay between retries is spent
    without holding one.
    """

    def __init__(
        self,
        client: ScanClient,
        *,
        limiter: ConcurrencyLimiter,
        retry: RetryPolicy,
        history: ScanHistory,
        sink: ScanEventSink | None = None,
    ) -> None:
        self.client = client
        self.limiter = limiter
        self.retry = retry
        self.history = history
        self.sink: ScanEventSink = sink if sink is not None else NullSink()

    async def scan(self, path: str | Path) -> ScanResult:
        """Scan *path*, record the result and emit start/terminal events.

        Raises the final :class:`ScanError` after the failure event is sent.
        """
        path_str = str(path)
        self.sink.emit(ScanEvent(kind="started", path=path_str))

        async def _attempt() -> ScanResult:
            async with self.limiter.permit():
                return await self.client.scan(path)

        try:
            result = await self.retry.run(_attempt, label=path_str)
        except ScanError as exc:
            self.sink.emit(ScanEvent(kind="failed", path=path_str, error=str(exc)))
            raise
        except Exception as exc:
            log.exception("scan.unexpected_error", path=path_str)
            self.sink.emit(
                ScanEvent(kind="failed", path=path_str, error=f"unexpected error: {exc}")
            )
            raise

        # a cache hit replays the stored verdict unchanged
        if self.history.latest_for(result.file_path) == result:
            log.debug("history.unchanged", path=result.file_path)
        else:
            evicted = self.history.append(result)
            if evicted is not None:
                log.debug("history.evicted", path=evicted.file_path)
        self.sink.emit(ScanEvent(kind="completed", path=path_str, result=result))
        return result


def create_pipeline(
    config: ScanConfig,
    vt: VirusTotalClient,
    *,
    cache: ResultCache | None = None,
    rate_limiter: RateLimiter | None = None,
    history: ScanHistory | None = None,
    sink: ScanEventSink | None = None,
) -> ScanPipeline:
    """Wire a pipeline from *config*. Pass shared instances to reuse them."""
    if cache is None:
        cache = ResultCache()
    if rate_limiter is None:
        rate_limiter = RateLimiter(config.rate_limit_interval.total_seconds())
    if history is None:
        history = ScanHistory(config.scan_history_limit)
    client = ScanClient(vt, cache=cache, rate_limiter=rate_limiter)
    retry = RetryPolicy(
        config.retry_attempts,
        fixed_backoff(config.retry_delay.total_seconds()),
    )
    return ScanPipeline(
        client,
        limiter=ConcurrencyLimiter(config.max_concurrent_scans),
        retry=retry,
        history=history,
        sink=sink,
    )
