"""Scanner configuration: one validated model, loaded from a settings file and env."""

from __future__ import annotations

import json
import os
from datetime import timedelta
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vtwatch.exceptions import ConfigError

ENV_PREFIX = "VTWATCH_"
ENV_SETTINGS = "VTWATCH_SETTINGS"
ENV_API_KEY = "VT_API_KEY"

_DEFAULT_EXTENSIONS = [
    "exe", "dll", "sys", "msi", "bat", "cmd", "ps1", "vbs",
    "js", "jar", "zip", "rar", "scr", "pdf", "doc", "docx",
]
_DEFAULT_IGNORED = ["**/node_modules/**", "**/.git/**", "**/*.tmp"]


class ScanConfig(BaseModel):
    """Every knob the scanning core reads.

    ``auto_rescan_interval_hours = None`` turns background rescanning off.
    Durations accept seconds or ISO 8601 strings.
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    api_key: str = ""
    api_url: str = "https://www.virustotal.com/api/v3"
    http_timeout: float = Field(300.0, gt=0)

    max_concurrent_scans: int = Field(3, ge=1)
    retry_attempts: int = Field(3, ge=0)
    retry_delay: timedelta = timedelta(seconds=60)
    scan_batch_size: int = Field(5, ge=1)
    auto_rescan_interval_hours: int | None = Field(24, ge=1)
    scan_history_limit: int = Field(1000, ge=1)
    rate_limit_interval: timedelta = timedelta(seconds=15)
    cycle_interval: timedelta = timedelta(hours=1)

    file_extensions: list[str] = Field(default_factory=lambda: list(_DEFAULT_EXTENSIONS))
    min_file_size: int = Field(0, ge=0)
    max_file_size: int = Field(650 * 1024 * 1024, ge=0)
    excluded_paths: list[str] = Field(default_factory=list)
    ignored_patterns: list[str] = Field(default_factory=lambda: list(_DEFAULT_IGNORED))

    @field_validator("file_extensions")
    @classmethod
    def _normalize_extensions(cls, v: list[str]) -> list[str]:
        return [ext.lower().lstrip(".") for ext in v if ext.strip()]

    @field_validator("retry_delay", "rate_limit_interval", "cycle_interval")
    @classmethod
    def _non_negative(cls, v: timedelta) -> timedelta:
        if v < timedelta(0):
            raise ValueError("duration must not be negative")
        return v

    @property
    def rescan_enabled(self) -> bool:
        return self.auto_rescan_interval_hours is not None


_LIST_FIELDS = {"file_extensions", "excluded_paths", "ignored_patterns"}
_DURATION_FIELDS = {"retry_delay", "rate_limit_interval", "cycle_interval"}


def _parse_seconds(raw: str) -> float | str:
    """Plain numbers are seconds; anything else is left for pydantic (ISO 8601)."""
    try:
        return float(raw)
    except ValueError:
        return raw


def _env_overrides() -> dict[str, Any]:
    """Collect ``VTWATCH_<FIELD>`` overrides. Lists are comma separated.

    ``VTWATCH_AUTO_RESCAN_INTERVAL_HOURS=off`` (or ``none``/empty) disables
    background rescans.
    """
    overrides: dict[str, Any] = {}
    for name in ScanConfig.model_fields:
        raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is None:
            continue
        if name in _LIST_FIELDS:
            overrides[name] = [part.strip() for part in raw.split(",") if part.strip()]
        elif name == "auto_rescan_interval_hours" and raw.strip().lower() in ("", "none", "off"):
            overrides[name] = None
        elif name in _DURATION_FIELDS:
            overrides[name] = _parse_seconds(raw)
        else:
            overrides[name] = raw
    api_key = os.environ.get(ENV_API_KEY)
    if api_key and "api_key" not in overrides:
        overrides["api_key"] = api_key
    return overrides


def _read_settings_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"cannot read settings file {path}: {exc}") from exc
    except ValueError as exc:
        raise ConfigError(f"settings file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"settings file {path} must contain a JSON object")
    return data


def load_config(settings_path: str | Path | None = None) -> ScanConfig:
    """Build a :class:`ScanConfig` from an optional JSON file plus environment.

    Environment variables win over the file. A missing file named by
    ``VTWATCH_SETTINGS`` is treated as empty; an explicit *settings_path*
    must exist.
    """
    values: dict[str, Any] = {}
    if settings_path is not None:
        values.update(_read_settings_file(Path(settings_path)))
    else:
        env_path = os.environ.get(ENV_SETTINGS)
        if env_path and Path(env_path).is_file():
            values.update(_read_settings_file(Path(env_path)))

    values.update(_env_overrides())
    try:
        return ScanConfig(**values)
    except ValidationError as exc:
        raise ConfigError(f"invalid scanner configuration: {exc}") from exc
