"""Shared fixtures for vtwatch tests.

The remote service is replaced by :class:`FakeVirusTotal`, an
``httpx.MockTransport`` handler, so no test touches the network.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx
import pytest
import pytest_asyncio

from vtwatch.engines.scanner.cache import ResultCache
from vtwatch.engines.scanner.models import ScanResult, ScanStatus
from vtwatch.engines.scanner.rate_limiter import RateLimiter
from vtwatch.engines.scanner.scan_client import ScanClient
from vtwatch.engines.virustotal.client import VirusTotalClient

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)
API_KEY = "test-api-key"


def _make_result(
    path: str = "/downloads/setup.exe",
    *,
    status: ScanStatus = ScanStatus.CLEAN,
    scan_date: datetime = NOW,
    digest: str = "ab" * 32,
    detections: int = 0,
) -> ScanResult:
    return ScanResult(
        file_path=path,
        file_name=path.rsplit("/", 1)[-1],
        file_size=1024,
        file_hash=digest,
        scan_date=scan_date,
        status=status,
        detection_count=detections,
        total_engines=70,
        permalink=f"https://www.virustotal.com/gui/file/{digest}/detection",
    )


class FakeVirusTotal:
    """Scriptable stand-in for the three VirusTotal endpoints.

    *analysis_statuses* is consumed one per poll; the last value repeats.
    """

    def __init__(
        self,
        *,
        analysis_statuses: tuple[str, ...] = ("completed",),
        stats: dict[str, int] | None = None,
        results: dict[str, Any] | None = None,
        upload_status: int = 200,
        upload_body: dict[str, Any] | None = None,
        analysis_status_code: int = 200,
        user_status: int = 200,
    ) -> None:
        self.statuses = list(analysis_statuses)
        self.stats = stats if stats is not None else {"malicious": 0, "suspicious": 0, "total": 70}
        self.results = results if results is not None else {}
        self.upload_status = upload_status
        # One-shot statuses served before upload_status, oldest first
        self.upload_script: list[int] = []
        self.upload_body = upload_body
        self.analysis_status_code = analysis_status_code
        self.user_status = user_status
        self.requests: list[httpx.Request] = []

    @property
    def uploads(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST" and r.url.path.endswith("/files")]

    @property
    def polls(self) -> list[httpx.Request]:
        return [r for r in self.requests if "/analyses/" in r.url.path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path.endswith("/files"):
            status_code = self.upload_script.pop(0) if self.upload_script else self.upload_status
            if status_code != 200:
                return httpx.Response(status_code, json={"error": {"code": "Error"}})
            body = self.upload_body
            if body is None:
                body = {"data": {"type": "analysis", "id": "analysis-1"}}
            return httpx.Response(200, json=body)

        if request.method == "GET" and "/analyses/" in path:
            if self.analysis_status_code != 200:
                return httpx.Response(self.analysis_status_code, json={"error": {}})
            status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            attributes: dict[str, Any] = {"status": status}
            if status == "completed":
                attributes["stats"] = self.stats
                attributes["results"] = self.results
            return httpx.Response(
                200, json={"data": {"id": "analysis-1", "type": "analysis", "attributes": attributes}}
            )

        if request.method == "GET" and path.endswith("/users/current"):
            return httpx.Response(self.user_status, json={"data": {}})

        return httpx.Response(404)


@pytest.fixture
def make_result():
    """Factory for ScanResult instances with sensible defaults."""
    return _make_result


@pytest.fixture
def fake_vt() -> FakeVirusTotal:
    return FakeVirusTotal()


@pytest_asyncio.fixture
async def vt_client(fake_vt):
    client = VirusTotalClient(API_KEY, transport=httpx.MockTransport(fake_vt))
    yield client
    await client.close()


@pytest.fixture
def cache() -> ResultCache:
    return ResultCache()


@pytest.fixture
def scan_client(vt_client, cache) -> ScanClient:
    return ScanClient(vt_client, cache=cache, rate_limiter=RateLimiter(0), poll_delay=0)


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "sample.exe"
    path.write_bytes(b"MZ" + b"\x90" * 4096)
    return path
