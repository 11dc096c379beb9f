"""CLI entry point: vtwatch.

Subcommands:
    vtwatch scan FILE...          # Scan files now and print their verdicts
    vtwatch verify-key            # Check the configured VirusTotal API key
    vtwatch watch DIR...          # Track files in DIR and rescan them periodically
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import click

from vtwatch.core.config import ScanConfig, load_config
from vtwatch.core.logging import setup_logging
from vtwatch.engines.monitor.filters import FileFilter
from vtwatch.engines.monitor.registry import TrackedFileRegistry
from vtwatch.engines.notification.sink import LogSink
from vtwatch.engines.scanner.models import ScanResult
from vtwatch.engines.scanner.pipeline import create_pipeline
from vtwatch.engines.virustotal.client import VirusTotalClient
from vtwatch.exceptions import ConfigError, ScanError
from vtwatch.scheduler import BackgroundScanScheduler


def _load(settings: str | None) -> ScanConfig:
    try:
        config = load_config(settings)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    if not config.api_key:
        raise click.ClickException("no API key configured (set VT_API_KEY)")
    return config


def _vt(config: ScanConfig) -> VirusTotalClient:
    return VirusTotalClient(config.api_key, base_url=config.api_url, timeout=config.http_timeout)


def _format_result(result: ScanResult) -> str:
    return (
        f"{result.status.value.upper():<10} "
        f"{result.detection_count}/{result.total_engines}  {result.file_path}"
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.option(
    "--settings",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSON settings file (default: $VTWATCH_SETTINGS)",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, settings: str | None) -> None:
    """vtwatch: submit files to VirusTotal and keep their verdicts fresh."""
    setup_logging("DEBUG" if verbose else None)
    ctx.obj = {"settings": settings}


@main.command()
@click.argument("files", nargs=-1, required=True, type=click.Path())
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON lines")
@click.pass_context
def scan(ctx: click.Context, files: tuple[str, ...], as_json: bool) -> None:
    """Scan FILES and print one verdict per file."""
    config = _load(ctx.obj["settings"])

    async def _run() -> list[ScanResult | ScanError]:
        async with _vt(config) as vt:
            pipeline = create_pipeline(config, vt, sink=LogSink())

            async def _one(path: str) -> ScanResult | ScanError:
                try:
                    return await pipeline.scan(path)
                except ScanError as exc:
                    return exc

            return list(await asyncio.gather(*(_one(f) for f in files)))

    failed = 0
    for path, outcome in zip(files, asyncio.run(_run())):
        if isinstance(outcome, ScanError):
            failed += 1
            if as_json:
                click.echo(json.dumps({"file_path": path, "error": str(outcome)}))
            else:
                click.echo(f"{'FAILED':<10} {path}: {outcome}", err=True)
        elif as_json:
            click.echo(json.dumps(outcome.to_dict()))
        else:
            click.echo(_format_result(outcome))

    if failed:
        ctx.exit(1)


@main.command("verify-key")
@click.pass_context
def verify_key(ctx: click.Context) -> None:
    """Check that the configured API key is accepted."""
    config = _load(ctx.obj["settings"])

    async def _run() -> bool:
        async with _vt(config) as vt:
            return await create_pipeline(config, vt).client.verify_api_key()

    try:
        valid = asyncio.run(_run())
    except ScanError as exc:
        raise click.ClickException(str(exc)) from exc
    if not valid:
        click.echo("API key rejected", err=True)
        ctx.exit(1)
    click.echo("API key is valid")


@main.command()
@click.argument("directories", nargs=-1, required=True, type=click.Path(file_okay=False))
@click.option("-r", "--recursive", is_flag=True, help="Include subdirectories")
@click.option("--once", is_flag=True, help="Run a single rescan cycle and exit")
@click.pass_context
def watch(ctx: click.Context, directories: tuple[str, ...], recursive: bool, once: bool) -> None:
    """Track the files in DIRECTORIES and rescan them when they are due."""
    settings = ctx.obj["settings"]
    config = _load(settings)

    registry = TrackedFileRegistry(file_filter=FileFilter.from_config(config))
    for directory in directories:
        try:
            registry.add_directory(Path(directory), recursive=recursive)
        except NotADirectoryError as exc:
            raise click.ClickException(f"not a directory: {exc}") from exc
    click.echo(f"Tracking {len(registry)} file(s)")

    async def _run() -> None:
        async with _vt(config) as vt:
            pipeline = create_pipeline(config, vt, sink=LogSink())
            scheduler = BackgroundScanScheduler(
                pipeline, registry, lambda: load_config(settings)
            )
            if once:
                report = await scheduler.run_cycle(config)
                click.echo(
                    f"selected={report.selected} succeeded={report.succeeded} "
                    f"failed={report.failed}"
                )
            else:
                await scheduler.loop()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        click.echo("Stopped")


if __name__ == "__main__":
    main()
