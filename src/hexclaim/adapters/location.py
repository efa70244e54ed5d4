"""Location sources feeding position fixes into the engine."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import AsyncIterator, Iterable, Protocol

from hexclaim.models import Coordinate


class LocationPermissionError(PermissionError):
    """Raised when the user has not granted access to their position."""


class LocationUnavailableError(RuntimeError):
    """Raised when a position could not be obtained (timeout, hardware, no fix)."""


class LocationSource(Protocol):
    """Provider of one-shot and continuous position fixes."""

    async def current_position(self) -> Coordinate:
        """Return the current position or raise a location error."""

    def position_stream(self, *, min_distance_m: float, timeout_seconds: float) -> AsyncIterator[Coordinate]:
        """Yield fixes at least ``min_distance_m`` apart until the consumer stops."""


def filter_min_distance(points: Iterable[Coordinate], min_distance_m: float) -> list[Coordinate]:
    """Drop points closer than ``min_distance_m`` to the last emitted point."""
    kept: list[Coordinate] = []
    for point in points:
        if kept and kept[-1].distance_to(point) < min_distance_m:
            continue
        kept.append(point)
    return kept


class ReplayLocationSource:
    """Replays a recorded track, e.g. for dev-mode movement without a GPS device."""

    def __init__(
        self,
        track: Iterable[Coordinate],
        *,
        step_delay_seconds: float = 0.0,
        permission_granted: bool = True,
    ) -> None:
        self._track = list(track)
        self._step_delay_seconds = step_delay_seconds
        self.permission_granted = permission_granted

    @classmethod
    def from_file(cls, path: str | Path, **kwargs) -> ReplayLocationSource:
        """Load a JSON list of ``{"lat": .., "lng": ..}`` objects or ``[lat, lng]`` pairs."""
        payload = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
        if not isinstance(payload, list):
            raise ValueError(f"Track file {path} must contain a JSON list")

        track: list[Coordinate] = []
        for item in payload:
            if isinstance(item, dict):
                track.append(Coordinate(lat=float(item["lat"]), lng=float(item["lng"])))
            else:
                lat, lng = item
                track.append(Coordinate(lat=float(lat), lng=float(lng)))
        return cls(track, **kwargs)

    async def current_position(self) -> Coordinate:
        if not self.permission_granted:
            raise LocationPermissionError("Location permission denied")
        if not self._track:
            raise LocationUnavailableError("Recorded track is empty")
        return self._track[0]

    async def position_stream(self, *, min_distance_m: float, timeout_seconds: float) -> AsyncIterator[Coordinate]:
        if not self.permission_granted:
            raise LocationPermissionError("Location permission denied")
        # The first point is the one-shot fix; the stream continues from there.
        for point in filter_min_distance(self._track, min_distance_m)[1:]:
            if self._step_delay_seconds:
                await asyncio.sleep(min(self._step_delay_seconds, timeout_seconds))
            yield point
