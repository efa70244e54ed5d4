from __future__ import annotations

import asyncio
import math

from hexclaim.adapters import LocationPermissionError, LocationUnavailableError, ReplayLocationSource
from hexclaim.engine import CaptureEngine
from hexclaim.models import Coordinate
from hexclaim.persistence import InMemoryProgressStore
from hexclaim.tracking import LocationTracker

FALLBACK = Coordinate(lat=27.7172, lng=85.3240)


class StubIndex:
    def is_ready(self) -> bool:
        return True

    def resolve_cell(self, lat: float, lng: float, resolution: int) -> str:
        return f"{math.floor(lat * 1000)}:{math.floor(lng * 1000)}"

    def boundary_of(self, cell_id: str) -> list[Coordinate]:
        row, col = (int(part) / 1000 for part in cell_id.split(":"))
        return [Coordinate(row, col), Coordinate(row + 0.001, col), Coordinate(row, col + 0.001)]


class FailingSource:
    def __init__(self, error: Exception) -> None:
        self.error = error
        self.streamed: list[Coordinate] = [Coordinate(10.0, 10.0)]

    async def current_position(self) -> Coordinate:
        raise self.error

    async def position_stream(self, *, min_distance_m: float, timeout_seconds: float):
        for point in self.streamed:
            yield point


class EndlessSource:
    def __init__(self) -> None:
        self.yielded = 0

    async def current_position(self) -> Coordinate:
        return Coordinate(1.0, 1.0)

    async def position_stream(self, *, min_distance_m: float, timeout_seconds: float):
        while True:
            self.yielded += 1
            yield Coordinate(1.0, 1.0 + self.yielded * 0.01)
            await asyncio.sleep(0)


def _engine(store: InMemoryProgressStore | None = None) -> CaptureEngine:
    async def _no_sleep(seconds: float) -> None:
        return None

    return CaptureEngine(StubIndex(), store or InMemoryProgressStore(), sleep=_no_sleep)


def test_tracker_restores_then_captures_initial_fix_and_stream() -> None:
    store = InMemoryProgressStore(zones=[StubIndex().resolve_cell(27.7172, 85.3240, 10)], score=100)
    track = [Coordinate(27.7172, 85.3240), Coordinate(27.7172, 85.3260), Coordinate(27.7172, 85.3280)]

    async def _run():
        engine = _engine(store)
        tracker = LocationTracker(engine=engine, source=ReplayLocationSource(track), fallback=FALLBACK)
        state = await tracker.start()
        await tracker.wait_stream()
        await tracker.stop()
        await engine.close()
        return engine, state

    engine, state = asyncio.run(_run())

    assert state.restored is not None and state.restored.zone_count == 1
    assert state.location_denied is False
    assert state.fixes_processed == 3
    assert engine.zone_count() == 3
    assert engine.score() == 300
    assert store.score == 300
    assert len(engine.active_caches()) == 3


def test_permission_denied_keeps_fallback_location_and_allows_retry() -> None:
    source = ReplayLocationSource([Coordinate(27.7, 85.3)], permission_granted=False)

    async def _run():
        engine = _engine()
        tracker = LocationTracker(engine=engine, source=source, fallback=FALLBACK)
        denied = await tracker.start()
        denied_snapshot = (denied.location_denied, denied.streaming, engine.user_location, engine.zone_count())

        source.permission_granted = True
        retried = await tracker.retry()
        await tracker.stop()
        return denied_snapshot, retried, engine

    denied_snapshot, retried, engine = asyncio.run(_run())

    assert denied_snapshot == (True, False, FALLBACK, 0)
    assert retried.location_denied is False
    assert engine.zone_count() == 1
    assert engine.user_location == Coordinate(27.7, 85.3)


def test_fetch_failure_falls_back_and_keeps_tracking() -> None:
    source = FailingSource(LocationUnavailableError("no fix"))

    async def _run():
        engine = _engine()
        tracker = LocationTracker(engine=engine, source=source, fallback=FALLBACK)
        state = await tracker.start()
        await tracker.wait_stream()
        return engine, state

    engine, state = asyncio.run(_run())

    assert state.using_fallback is True
    assert state.location_denied is False
    assert state.fixes_processed == 1
    assert engine.user_location == Coordinate(10.0, 10.0)


def test_permission_error_from_custom_source_marks_denied() -> None:
    async def _run():
        engine = _engine()
        tracker = LocationTracker(engine=engine, source=FailingSource(LocationPermissionError("denied")))
        return await tracker.start()

    state = asyncio.run(_run())

    assert state.location_denied is True
    assert state.streaming is False


def test_stop_tears_down_stream() -> None:
    source = EndlessSource()

    async def _run():
        engine = _engine()
        tracker = LocationTracker(engine=engine, source=source)
        await tracker.start()
        for _ in range(5):
            await asyncio.sleep(0)
        await tracker.stop()
        processed = tracker.state.fixes_processed
        for _ in range(5):
            await asyncio.sleep(0)
        return tracker, processed

    tracker, processed = asyncio.run(_run())

    assert processed >= 1
    assert tracker.state.fixes_processed == processed
    assert tracker.state.streaming is False
