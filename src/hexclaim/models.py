from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hexclaim.events import GameEvent

CellId = str

EARTH_RADIUS_M = 6_371_000.0


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lng: float

    def distance_to(self, other: Coordinate) -> float:
        """Great-circle distance in metres."""
        phi1, phi2 = math.radians(self.lat), math.radians(other.lat)
        d_phi = phi2 - phi1
        d_lambda = math.radians(other.lng - self.lng)
        a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
        return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


@dataclass(frozen=True, slots=True)
class Zone:
    cell_id: CellId
    boundary: tuple[Coordinate, ...]


@dataclass(frozen=True, slots=True)
class LootCache:
    location: Coordinate


class CaptureKind(str, Enum):
    ZONE_CAPTURED = "zone_captured"
    CACHE_CAPTURED = "cache_captured"
    ALREADY_CAPTURED = "already_captured"
    RESOLUTION_FAILED = "resolution_failed"


@dataclass(slots=True)
class CaptureOutcome:
    """Result of feeding one location fix through the engine."""

    kind: CaptureKind
    location: Coordinate
    cell_id: CellId | None = None
    events: list[GameEvent] = field(default_factory=list)

    @property
    def mutated(self) -> bool:
        return self.kind in (CaptureKind.ZONE_CAPTURED, CaptureKind.CACHE_CAPTURED)


@dataclass(slots=True)
class RestoredState:
    zone_count: int
    score: int
    missing_boundaries: list[CellId] = field(default_factory=list)
    index_ready: bool = True

    @property
    def degraded(self) -> bool:
        return not self.index_ready or bool(self.missing_boundaries)


@dataclass(frozen=True, slots=True)
class GameSnapshot:
    """Read-only view handed to the presentation layer."""

    captured_zones: frozenset[CellId]
    zone_boundaries: Mapping[CellId, tuple[Coordinate, ...]]
    active_caches: tuple[LootCache, ...]
    score: int
    level: int
    progress_to_next_level: float
    user_location: Coordinate | None
    ready: bool
