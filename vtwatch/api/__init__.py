"""vtwatch REST API: FastAPI application factory.

Run with ``uvicorn --factory vtwatch.api:create_app``.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from vtwatch.api import deps
from vtwatch.api.errors import register_error_handlers
from vtwatch.api.middleware.request_id import RequestIDMiddleware
from vtwatch.api.routers import history, scans, tracked
from vtwatch.core.config import ScanConfig
from vtwatch.core.logging import setup_logging


def include_routers(app: FastAPI) -> None:
    app.include_router(scans.router, prefix="/api/v1", tags=["scans"])
    app.include_router(history.router, prefix="/api/v1/history", tags=["history"])
    app.include_router(tracked.router, prefix="/api/v1/tracked", tags=["tracked"])


def create_app(config: ScanConfig | None = None) -> FastAPI:
    """Build and return the FastAPI application.

    Startup builds the shared scanning container and starts background
    rescans; shutdown stops them and closes the HTTP client.
    """
    setup_logging()

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        container = deps.init_container(config)
        await container.scheduler.start()
        yield
        await deps.dispose_container()

    app = FastAPI(
        title="vtwatch",
        docs_url="/api/v1/docs",
        openapi_url="/api/v1/openapi.json",
        lifespan=_lifespan,
    )

    register_error_handlers(app)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    include_routers(app)
    return app
