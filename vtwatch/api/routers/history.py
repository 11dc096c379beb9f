"""History router: list, clear, export and import completed scans."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response

from vtwatch.api.deps import get_history
from vtwatch.api.schemas.scan import HistoryExport, ImportResponse, ScanResultOut
from vtwatch.engines.scanner.history import ScanHistory

router = APIRouter()


@router.get("/", response_model=list[ScanResultOut])
async def list_history(history: ScanHistory = Depends(get_history)) -> list[ScanResultOut]:
    return [ScanResultOut.model_validate(r) for r in history.entries()]


@router.delete("/", status_code=204)
async def clear_history(history: ScanHistory = Depends(get_history)) -> Response:
    history.clear()
    return Response(status_code=204)


@router.get("/export", response_model=HistoryExport)
async def export_history(history: ScanHistory = Depends(get_history)) -> HistoryExport:
    return HistoryExport(
        exported_at=datetime.now(timezone.utc),
        entries=[ScanResultOut.model_validate(r) for r in history.entries()],
    )


@router.post("/import", response_model=ImportResponse)
async def import_history(
    body: HistoryExport,
    history: ScanHistory = Depends(get_history),
) -> ImportResponse:
    """Replace the history with an exported snapshot (newest entries kept)."""
    history.clear()
    history.extend(entry.to_result() for entry in body.entries)
    return ImportResponse(imported=min(len(body.entries), history.limit))
