"""Data models for the scanner engine."""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

PERMALINK_TEMPLATE = "https://www.virustotal.com/gui/file/{digest}/detection"


class ScanStatus(str, enum.Enum):
    """Lifecycle and verdict of a scan.

    ``pending`` and ``in_progress`` are transient remote states, ``completed``
    resolves to one of the three verdicts, ``failed`` is terminal.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CLEAN = "clean"
    SUSPICIOUS = "suspicious"
    MALICIOUS = "malicious"

    @property
    def is_verdict(self) -> bool:
        return self in (ScanStatus.CLEAN, ScanStatus.SUSPICIOUS, ScanStatus.MALICIOUS)


@dataclass(frozen=True)
class EngineVerdict:
    """One antivirus engine's opinion on a file."""

    engine_name: str
    category: str
    detected: bool
    result: str | None = None
    engine_version: str | None = None
    engine_update: str | None = None


@dataclass(frozen=True)
class ScanResult:
    """Classified outcome of a completed remote analysis."""

    file_path: str
    file_name: str
    file_size: int
    file_hash: str
    scan_date: datetime
    status: ScanStatus
    detection_count: int
    total_engines: int
    permalink: str
    vendor_results: dict[str, EngineVerdict] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "file_hash": self.file_hash,
            "scan_date": self.scan_date.isoformat(),
            "status": self.status.value,
            "detection_count": self.detection_count,
            "total_engines": self.total_engines,
            "permalink": self.permalink,
            "vendor_results": {
                name: asdict(verdict) for name, verdict in self.vendor_results.items()
            },
        }


@dataclass(frozen=True)
class AnalysisReport:
    """Parsed ``GET /analyses/{id}`` payload."""

    status: str
    malicious: int = 0
    suspicious: int = 0
    total: int = 0
    engines: dict[str, EngineVerdict] = field(default_factory=dict)

    @property
    def completed(self) -> bool:
        return self.status == "completed"


def classify(malicious: int, suspicious: int) -> ScanStatus:
    """Map detection counts to a verdict. Any malicious vote wins."""
    if malicious > 0:
        return ScanStatus.MALICIOUS
    if suspicious > 0:
        return ScanStatus.SUSPICIOUS
    return ScanStatus.CLEAN


def permalink_for(digest: str) -> str:
    return PERMALINK_TEMPLATE.format(digest=digest)
