"""ScanClient: hash, cache check, upload and poll-until-complete for one file."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from vtwatch.engines.scanner.cache import ResultCache
from vtwatch.engines.scanner.hasher import hash_file_async
from vtwatch.engines.scanner.models import (
    AnalysisReport,
    EngineVerdict,
    ScanResult,
    classify,
    permalink_for,
)
from vtwatch.engines.scanner.rate_limiter import RateLimiter
from vtwatch.engines.virustotal.client import VirusTotalClient
from vtwatch.exceptions import AnalysisTimeoutError, NotFoundError, ProtocolError, ScanIOError

log = structlog.get_logger("vtwatch.engine.scanner")

MAX_POLL_ATTEMPTS = 30
POLL_DELAY = 2.0  # seconds


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ScanIOError(f"failed to read {path}: {exc}") from exc


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return 0


def parse_analysis(payload: dict[str, Any]) -> AnalysisReport:
    """Extract status, stats and per-engine verdicts from an analysis body.

    Missing counts default to 0. When ``stats.total`` is absent the total is
    the sum of every numeric bucket the service reported.
    """
    data = payload.get("data")
    attributes = data.get("attributes") if isinstance(data, dict) else None
    if not isinstance(attributes, dict):
        raise ProtocolError("analysis response has no data.attributes")
    status = attributes.get("status")
    if not isinstance(status, str):
        raise ProtocolError("analysis response has no data.attributes.status")
    if status != "completed":
        return AnalysisReport(status=status)

    stats = attributes.get("stats")
    if not isinstance(stats, dict):
        stats = {}
    malicious = _as_int(stats.get("malicious"))
    suspicious = _as_int(stats.get("suspicious"))
    if "total" in stats:
        total = _as_int(stats["total"])
    else:
        total = sum(_as_int(v) for v in stats.values())

    engines: dict[str, EngineVerdict] = {}
    results = attributes.get("results")
    if isinstance(results, dict):
        for engine, entry in results.items():
            if not isinstance(entry, dict):
                continue
            category = entry.get("category") or ""
            engines[engine] = EngineVerdict(
                engine_name=engine,
                category=category,
                detected=category == "malicious",
                result=entry.get("result"),
                engine_version=entry.get("engine_version"),
                engine_update=entry.get("engine_update"),
            )

    return AnalysisReport(
        status=status,
        malicious=malicious,
        suspicious=suspicious,
        total=total,
        engines=engines,
    )


class ScanClient:
    """Runs one scan attempt against the remote service.

    The cache and rate limiter are injected so that every client built for
    the same process shares them, and tests can use isolated instances.
    """

    def __init__(
        self,
        vt: VirusTotalClient,
        *,
        cache: ResultCache,
        rate_limiter: RateLimiter,
        max_polls: int = MAX_POLL_ATTEMPTS,
        poll_delay: float = POLL_DELAY,
        hasher: Callable[[Path], Awaitable[str]] = hash_file_async,
    ) -> None:
        self._vt = vt
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._max_polls = max_polls
        self._poll_delay = poll_delay
        self._hasher = hasher

    @property
    def cache(self) -> ResultCache:
        return self._cache

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    async def scan(self, path: str | Path) -> ScanResult:
        """Scan *path* and return its classified verdict.

        1. Validate the file and hash it.
        2. Serve a fresh cache entry if there is one.
        3. Upload, then poll the analysis until it completes.
        4. Classify, cache and return.
        """
        file_path = Path(path)
        if not file_path.is_file():
            raise NotFoundError(str(file_path))

        try:
            file_size = file_path.stat().st_size
        except OSError as exc:
            raise ScanIOError(f"failed to stat {file_path}: {exc}") from exc
        file_name = file_path.name or "unknown file"

        digest = await self._hasher(file_path)
        cached = self._cache.lookup(digest)
        if cached is not None:
            log.info("scan.cache_hit", path=str(file_path), sha256=digest)
            # same bytes may live under another path
            return replace(
                cached, file_path=str(file_path), file_name=file_name, file_size=file_size
            )

        analysis_id = await self._upload(file_path, file_name)
        report = await self._poll(analysis_id)

        result = ScanResult(
            file_path=str(file_path),
            file_name=file_name,
            file_size=file_size,
            file_hash=digest,
            scan_date=datetime.now(timezone.utc),
            status=classify(report.malicious, report.suspicious),
            detection_count=report.malicious + report.suspicious,
            total_engines=report.total,
            permalink=permalink_for(digest),
            vendor_results=dict(report.engines),
        )
        self._cache.store(digest, result)
        log.info(
            "scan.completed",
            path=str(file_path),
            sha256=digest,
            status=result.status.value,
            detections=result.detection_count,
            engines=result.total_engines,
        )
        return result

    async def verify_api_key(self) -> bool:
        await self._rate_limiter.acquire()
        valid = await self._vt.check_api_key()
        log.info("scan.api_key_checked", valid=valid)
        return valid

    # ── internal ───────────────────────────────────────────────────────────

    async def _upload(self, file_path: Path, file_name: str) -> str:
        content = await asyncio.to_thread(_read_bytes, file_path)
        await self._rate_limiter.acquire()
        log.info("scan.upload", path=str(file_path), size=len(content))
        body = await self._vt.upload_file(file_name, content)

        data = body.get("data")
        analysis_id = data.get("id") if isinstance(data, dict) else None
        if not isinstance(analysis_id, str) or not analysis_id:
            raise ProtocolError("upload response has no data.id")
        return analysis_id

    async def _poll(self, analysis_id: str) -> AnalysisReport:
        for attempt in range(1, self._max_polls + 1):
            await self._rate_limiter.acquire()
            report = parse_analysis(await self._vt.get_analysis(analysis_id))
            if report.completed:
                log.debug("scan.poll_done", analysis_id=analysis_id, polls=attempt)
                return report

            log.debug(
                "scan.poll",
                analysis_id=analysis_id,
                status=report.status,
                attempt=attempt,
                max_polls=self._max_polls,
            )
            if attempt < self._max_polls:
                await asyncio.sleep(self._poll_delay)

        raise AnalysisTimeoutError(analysis_id, self._max_polls)
