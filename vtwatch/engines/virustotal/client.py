"""Async VirusTotal API v3 client: upload, analysis lookup, key check."""

from __future__ import annotations

import os
from typing import Any

import httpx
import structlog

from vtwatch.exceptions import (
    AnalysisError,
    AuthError,
    ProtocolError,
    ServiceUnavailableError,
    UploadError,
)

log = structlog.get_logger("vtwatch.engine.virustotal")

VT_API_URL = "https://www.virustotal.com/api/v3"
DEFAULT_TIMEOUT = 300.0

_AUTH_STATUSES = (401, 403)


class VirusTotalClient:
    """Thin async wrapper around the three VirusTotal endpoints we need.

    Each method performs exactly one HTTP request; pacing and retries are the
    caller's business (see :class:`~vtwatch.engines.scanner.rate_limiter.RateLimiter`
    and :class:`~vtwatch.engines.scanner.retry.RetryPolicy`).
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str = VT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        resolved_key = api_key or os.environ.get("VT_API_KEY", "")
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"x-apikey": resolved_key, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> VirusTotalClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def upload_file(self, file_name: str, content: bytes) -> dict[str, Any]:
        """``POST /files`` with a multipart ``file`` part. Returns the JSON body."""
        try:
            response = await self._client.post(
                "/files", files={"file": (file_name, content)}
            )
        except httpx.HTTPError as exc:
            raise UploadError(f"upload transport error: {exc}") from exc

        if response.status_code in _AUTH_STATUSES:
            raise AuthError(f"upload rejected: HTTP {response.status_code}")
        if not response.is_success:
            log.warning("virustotal.upload_failed", status=response.status_code)
            raise UploadError(f"upload failed: HTTP {response.status_code}")
        return self._json(response, "upload")

    async def get_analysis(self, analysis_id: str) -> dict[str, Any]:
        """``GET /analyses/{id}``. Returns the JSON body."""
        try:
            response = await self._client.get(f"/analyses/{analysis_id}")
        except httpx.HTTPError as exc:
            raise AnalysisError(f"analysis transport error: {exc}") from exc

        if response.status_code in _AUTH_STATUSES:
            raise AuthError(f"analysis request rejected: HTTP {response.status_code}")
        if not response.is_success:
            log.warning(
                "virustotal.analysis_failed",
                analysis_id=analysis_id,
                status=response.status_code,
            )
            raise AnalysisError(f"analysis failed: HTTP {response.status_code}")
        return self._json(response, "analysis")

    async def check_api_key(self) -> bool:
        """``GET /users/current``; True when the key is accepted."""
        try:
            response = await self._client.get("/users/current")
        except httpx.HTTPError as exc:
            raise ServiceUnavailableError(f"failed to validate API key: {exc}") from exc
        return response.is_success

    # ── internal ───────────────────────────────────────────────────────────

    @staticmethod
    def _json(response: httpx.Response, what: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise ProtocolError(f"{what} response is not valid JSON") from exc
        if not isinstance(data, dict):
            raise ProtocolError(f"{what} response is not a JSON object")
        return data
