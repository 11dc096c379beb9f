"""Unified error handling: ScanError / ConfigError → JSON."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from vtwatch.exceptions import (
    AuthError,
    ConfigError,
    NotFoundError,
    ScanError,
    ScanIOError,
)

_STATUS_MAP: dict[type[ScanError], int] = {
    NotFoundError: 404,
    AuthError: 401,
    ScanIOError: 422,
}


async def _scan_error_handler(_request: Request, exc: ScanError) -> JSONResponse:
    # Remaining failures all come from the upstream service
    status = 502
    for cls in type(exc).__mro__:
        if cls in _STATUS_MAP:
            status = _STATUS_MAP[cls]
            break
    return JSONResponse(status_code=status, content={"detail": str(exc)})


async def _config_error_handler(_request: Request, exc: ConfigError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the app."""
    app.add_exception_handler(ScanError, _scan_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ConfigError, _config_error_handler)  # type: ignore[arg-type]
