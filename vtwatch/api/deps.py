"""Dependency injection: one shared scanning container per application."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from vtwatch.core.config import ScanConfig, load_config
from vtwatch.engines.monitor.filters import FileFilter
from vtwatch.engines.monitor.registry import TrackedFileRegistry
from vtwatch.engines.notification.sink import CallbackSink, LogSink
from vtwatch.engines.scanner.history import ScanHistory
from vtwatch.engines.scanner.pipeline import ScanPipeline, create_pipeline
from vtwatch.engines.virustotal.client import VirusTotalClient
from vtwatch.scheduler import BackgroundScanScheduler


@dataclass
class Container:
    """Everything that must be shared between requests and the rescan task."""

    config: ScanConfig
    vt: VirusTotalClient
    sink: CallbackSink
    pipeline: ScanPipeline
    registry: TrackedFileRegistry
    scheduler: BackgroundScanScheduler


_container: Container | None = None


def build_container(
    config: ScanConfig,
    config_provider: Callable[[], ScanConfig] | None = None,
) -> Container:
    """Wire the shared objects. Without *config_provider* the config is fixed."""
    vt = VirusTotalClient(config.api_key, base_url=config.api_url, timeout=config.http_timeout)
    sink = CallbackSink(LogSink().emit)
    pipeline = create_pipeline(config, vt, sink=sink)
    registry = TrackedFileRegistry(file_filter=FileFilter.from_config(config))
    scheduler = BackgroundScanScheduler(
        pipeline, registry, config_provider or (lambda: config)
    )
    return Container(
        config=config,
        vt=vt,
        sink=sink,
        pipeline=pipeline,
        registry=registry,
        scheduler=scheduler,
    )


def init_container(config: ScanConfig | None = None) -> Container:
    """Create the shared container. Called once at startup."""
    global _container  # noqa: PLW0603
    if config is None:
        _container = build_container(load_config(), load_config)
    else:
        _container = build_container(config)
    return _container


def set_container(container: Container | None) -> None:
    """Override the container (for testing)."""
    global _container  # noqa: PLW0603
    _container = container


async def dispose_container() -> None:
    global _container  # noqa: PLW0603
    if _container is not None:
        await _container.scheduler.stop()
        await _container.vt.close()
        _container = None


# ---------------------------------------------------------------------------
# Getters (for Depends())
# ---------------------------------------------------------------------------


def get_container() -> Container:
    if _container is None:
        raise RuntimeError("call init_container() before handling requests")
    return _container


def get_pipeline() -> ScanPipeline:
    return get_container().pipeline


def get_history() -> ScanHistory:
    return get_container().pipeline.history


def get_registry() -> TrackedFileRegistry:
    return get_container().registry
