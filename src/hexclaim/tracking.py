"""Bootstrap and live tracking: restore progress, get a first fix, follow the stream."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from hexclaim.adapters.location import LocationPermissionError, LocationSource
from hexclaim.config import Settings
from hexclaim.engine import CaptureEngine
from hexclaim.models import CaptureOutcome, Coordinate, RestoredState


@dataclass(slots=True)
class TrackingState:
    restored: RestoredState | None = None
    location_denied: bool = False
    using_fallback: bool = False
    streaming: bool = False
    fixes_processed: int = 0


class LocationTracker:
    """Feeds a location source into the engine and tracks permission state."""

    def __init__(
        self,
        *,
        engine: CaptureEngine,
        source: LocationSource,
        fallback: Coordinate = Coordinate(lat=27.7172, lng=85.3240),
        min_distance_m: float = 7.0,
        timeout_seconds: float = 10.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._engine = engine
        self._source = source
        self._fallback = fallback
        self._min_distance_m = min_distance_m
        self._timeout_seconds = timeout_seconds
        self._logger = logger or logging.getLogger("hexclaim.tracking")
        self._state = TrackingState()
        self._stream_task: asyncio.Task[None] | None = None
        self._stopped = False

    @classmethod
    def from_settings(cls, *, engine: CaptureEngine, source: LocationSource, config: Settings) -> LocationTracker:
        return cls(
            engine=engine,
            source=source,
            fallback=Coordinate(lat=config.fallback_lat, lng=config.fallback_lng),
            min_distance_m=config.location_min_distance_m,
            timeout_seconds=config.location_timeout_seconds,
        )

    @property
    def state(self) -> TrackingState:
        return self._state

    async def start(self) -> TrackingState:
        """Restore the engine first, then acquire location and begin streaming."""
        self._stopped = False
        if self._state.restored is None:
            self._state.restored = await self._engine.restore()
        await self._acquire_initial_position()
        return self._state

    async def retry(self) -> TrackingState:
        """Re-attempt permission and initial position after a denial."""
        self._logger.info("location_retry")
        self._stopped = False
        await self._acquire_initial_position()
        return self._state

    async def stop(self) -> None:
        """Tear down the stream subscription; no fixes are delivered afterwards."""
        self._stopped = True
        task, self._stream_task = self._stream_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._state.streaming = False
        self._logger.info("location_tracking_stopped", extra={"fixes_processed": self._state.fixes_processed})

    async def wait_stream(self) -> None:
        """Wait for a finite stream to run out."""
        if self._stream_task is not None:
            await self._stream_task

    async def _acquire_initial_position(self) -> None:
        try:
            position = await asyncio.wait_for(self._source.current_position(), timeout=self._timeout_seconds)
        except LocationPermissionError:
            self._state.location_denied = True
            if self._engine.user_location is None:
                self._engine.set_user_location(self._fallback)
            self._logger.warning("location_permission_denied")
            return
        except Exception:  # noqa: BLE001 - any fetch failure falls back to the default position.
            self._logger.warning("location_fetch_failed", extra={"fallback": str(self._fallback)}, exc_info=True)
            self._state.location_denied = False
            self._state.using_fallback = True
            self._engine.set_user_location(self._fallback)
            self._start_stream()
            return

        self._state.location_denied = False
        self._state.using_fallback = False
        self._logger.info("initial_position", extra={"lat": position.lat, "lng": position.lng})
        await self._handle_fix(position)
        self._start_stream()

    def _start_stream(self) -> None:
        if self._stream_task is not None and not self._stream_task.done():
            return
        self._stream_task = asyncio.create_task(self._stream_loop(), name="location-stream")
        self._state.streaming = True

    async def _stream_loop(self) -> None:
        self._logger.info("location_tracking_started", extra={"min_distance_m": self._min_distance_m})
        try:
            async for position in self._source.position_stream(
                min_distance_m=self._min_distance_m,
                timeout_seconds=self._timeout_seconds,
            ):
                if self._stopped:
                    break
                await self._handle_fix(position)
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001 - stream errors end tracking but keep game state.
            self._logger.exception("location_stream_failed")
        finally:
            self._state.streaming = False

    async def _handle_fix(self, position: Coordinate) -> CaptureOutcome:
        outcome = await self._engine.on_location_fix(position)
        self._state.fixes_processed += 1
        return outcome
