"""Scan progress events and the sinks that deliver them."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Literal, Protocol

import structlog

if TYPE_CHECKING:
    from vtwatch.engines.scanner.models import ScanResult

log = structlog.get_logger("vtwatch.engine.notification")

EventKind = Literal["started", "completed", "failed"]


@dataclass(frozen=True)
class ScanEvent:
    kind: EventKind
    path: str
    result: ScanResult | None = None
    error: str | None = None
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ScanEventSink(Protocol):
    def emit(self, event: ScanEvent) -> None: ...


class NullSink:
    """Drop every event."""

    def emit(self, event: ScanEvent) -> None:
        return None


class LogSink:
    """Write every event to the structured log."""

    def emit(self, event: ScanEvent) -> None:
        if event.kind == "started":
            log.info("scan.started", path=event.path)
        elif event.kind == "completed" and event.result is not None:
            log.info(
                "scan.verdict",
                path=event.path,
                status=event.result.status.value,
                detections=event.result.detection_count,
                engines=event.result.total_engines,
            )
        else:
            log.warning("scan.failed", path=event.path, error=event.error)


class CallbackSink:
    """Fan events out to registered callbacks (UI layer, tests, ...)."""

    def __init__(self, *callbacks: Callable[[ScanEvent], None]) -> None:
        self.callbacks: list[Callable[[ScanEvent], None]] = list(callbacks)

    def subscribe(self, callback: Callable[[ScanEvent], None]) -> None:
        self.callbacks.append(callback)

    def emit(self, event: ScanEvent) -> None:
        for cb in self.callbacks:
            try:
                cb(event)
            except Exception:
                log.debug("scan.callback_error", path=event.path, exc_info=True)
