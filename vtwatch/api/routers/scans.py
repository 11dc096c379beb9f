"""Scans router: on-demand scans and API key verification."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from vtwatch.api.deps import Container, get_container, get_pipeline
from vtwatch.api.schemas.scan import (
    ApiKeyVerifyRequest,
    ApiKeyVerifyResponse,
    ScanRequest,
    ScanResultOut,
)
from vtwatch.engines.scanner.pipeline import ScanPipeline
from vtwatch.engines.scanner.scan_client import ScanClient
from vtwatch.engines.virustotal.client import VirusTotalClient

router = APIRouter()


@router.post("/scans", response_model=ScanResultOut)
async def scan_file(
    body: ScanRequest,
    pipeline: ScanPipeline = Depends(get_pipeline),
) -> ScanResultOut:
    result = await pipeline.scan(body.path)
    return ScanResultOut.model_validate(result)


@router.post("/api-key/verify", response_model=ApiKeyVerifyResponse)
async def verify_api_key(
    body: ApiKeyVerifyRequest,
    container: Container = Depends(get_container),
) -> ApiKeyVerifyResponse:
    """Check the configured key, or a candidate key before it is saved."""
    if body.api_key is None:
        return ApiKeyVerifyResponse(valid=await container.pipeline.client.verify_api_key())

    async with VirusTotalClient(
        body.api_key, base_url=container.config.api_url, timeout=container.config.http_timeout
    ) as vt:
        # Share the rate limiter: the candidate key may belong to the same quota
        client = ScanClient(
            vt,
            cache=container.pipeline.client.cache,
            rate_limiter=container.pipeline.client.rate_limiter,
        )
        return ApiKeyVerifyResponse(valid=await client.verify_api_key())
