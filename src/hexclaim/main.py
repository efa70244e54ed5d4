"""CLI startup entrypoint for HexClaim."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich import print

from hexclaim.adapters import H3CellIndex, ReplayLocationSource
from hexclaim.cli import describe_event, describe_outcome, describe_snapshot
from hexclaim.config import settings
from hexclaim.engine import CaptureEngine
from hexclaim.persistence import JsonProgressStore
from hexclaim.telemetry.logging import LoggingTelemetry, configure_logging, event_listener
from hexclaim.tracking import LocationTracker

app = typer.Typer(help="HexClaim territory capture engine")


@app.callback()
def _main(log_level: str = typer.Option(None, help="Override HEXCLAIM_LOG_LEVEL")) -> None:
    configure_logging(log_level or settings.log_level)


def _build_engine(store_path: str | None) -> CaptureEngine:
    engine = CaptureEngine.from_settings(
        H3CellIndex(),
        JsonProgressStore(store_path or settings.store_path),
        settings,
    )
    engine.events.add_listener(event_listener(LoggingTelemetry()))
    return engine


@app.command()
def start() -> None:
    """Show runtime configuration."""
    print(settings.model_dump())


@app.command()
def status(
    store: str = typer.Option(None, help="Progress JSON file (defaults to HEXCLAIM_STORE_PATH)"),
    boundaries: bool = typer.Option(False, help="Include zone polygons in the output"),
) -> None:
    """Restore saved progress and print the game snapshot."""
    engine = _build_engine(store)

    async def _run() -> dict:
        restored = await engine.restore()
        await engine.close()
        return {
            "degraded": restored.degraded,
            "snapshot": describe_snapshot(engine.snapshot(), include_boundaries=boundaries),
        }

    print(asyncio.run(_run()))


@app.command()
def move(
    lat: float = typer.Argument(..., help="Latitude of the simulated position"),
    lng: float = typer.Argument(..., help="Longitude of the simulated position"),
    store: str = typer.Option(None, help="Progress JSON file (defaults to HEXCLAIM_STORE_PATH)"),
) -> None:
    """Simulate moving to a position (dev mode) and capture whatever is there."""
    engine = _build_engine(store)

    async def _run() -> dict:
        await engine.restore()
        outcome = await engine.simulate_move(lat, lng)
        await engine.close()
        return {"result": describe_outcome(outcome), "snapshot": describe_snapshot(engine.snapshot())}

    print(asyncio.run(_run()))


@app.command()
def replay(
    track: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON list of lat/lng points"),
    store: str = typer.Option(None, help="Progress JSON file (defaults to HEXCLAIM_STORE_PATH)"),
    step_delay: float = typer.Option(0.0, help="Seconds to wait between replayed fixes"),
) -> None:
    """Replay a recorded track through the live tracking path."""
    engine = _build_engine(store)
    source = ReplayLocationSource.from_file(track, step_delay_seconds=step_delay)
    tracker = LocationTracker.from_settings(engine=engine, source=source, config=settings)

    async def _run() -> dict:
        subscription = engine.events.subscribe()
        await tracker.start()
        await tracker.wait_stream()
        await tracker.stop()
        await engine.close()
        subscription.close()
        return {
            "events": [describe_event(event) for event in subscription.pending()],
            "fixes_processed": tracker.state.fixes_processed,
            "snapshot": describe_snapshot(engine.snapshot()),
        }

    print(asyncio.run(_run()))


if __name__ == "__main__":
    app()
