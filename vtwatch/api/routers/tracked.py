"""Tracked files router: manage the background rescan candidate set."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from vtwatch.api.deps import get_registry
from vtwatch.api.schemas.scan import TrackedList, TrackRequest, TrackResponse
from vtwatch.engines.monitor.registry import TrackedFileRegistry

router = APIRouter()


@router.get("/", response_model=TrackedList)
async def list_tracked(registry: TrackedFileRegistry = Depends(get_registry)) -> TrackedList:
    return TrackedList(paths=registry.tracked_paths())


@router.post("/", response_model=TrackResponse, status_code=201)
async def track_file(
    body: TrackRequest,
    registry: TrackedFileRegistry = Depends(get_registry),
) -> TrackResponse:
    return TrackResponse(path=body.path, added=registry.add(body.path))


@router.delete("/", status_code=204)
async def untrack_file(
    path: str = Query(..., min_length=1),
    registry: TrackedFileRegistry = Depends(get_registry),
) -> Response:
    if not registry.discard(path):
        raise HTTPException(status_code=404, detail=f"not tracked: {path}")
    return Response(status_code=204)
