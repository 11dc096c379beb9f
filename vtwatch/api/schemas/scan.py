"""Scan, history and tracked-file request/response schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from vtwatch.engines.scanner.models import EngineVerdict, ScanResult, ScanStatus


class EngineVerdictOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    engine_name: str
    category: str
    detected: bool
    result: str | None = None
    engine_version: str | None = None
    engine_update: str | None = None


class ScanResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    file_path: str
    file_name: str
    file_size: int
    file_hash: str
    scan_date: datetime
    status: ScanStatus
    detection_count: int
    total_engines: int
    permalink: str
    vendor_results: dict[str, EngineVerdictOut] = Field(default_factory=dict)

    def to_result(self) -> ScanResult:
        return ScanResult(
            file_path=self.file_path,
            file_name=self.file_name,
            file_size=self.file_size,
            file_hash=self.file_hash,
            scan_date=self.scan_date,
            status=self.status,
            detection_count=self.detection_count,
            total_engines=self.total_engines,
            permalink=self.permalink,
            vendor_results={
                name: EngineVerdict(**verdict.model_dump())
                for name, verdict in self.vendor_results.items()
            },
        )


class ScanRequest(BaseModel):
    path: str = Field(min_length=1)


class HistoryExport(BaseModel):
    exported_at: datetime
    entries: list[ScanResultOut]


class ImportResponse(BaseModel):
    imported: int


class TrackRequest(BaseModel):
    path: str = Field(min_length=1)


class TrackResponse(BaseModel):
    path: str
    added: bool


class TrackedList(BaseModel):
    paths: list[str]


class ApiKeyVerifyRequest(BaseModel):
    api_key: str | None = None


class ApiKeyVerifyResponse(BaseModel):
    valid: bool
