"""Zone capture and progression engine.

The engine owns every piece of mutable game state: the captured zone set, the
boundary of each captured zone, the score and the active loot caches. Location
fixes are processed one at a time under a lock, each producing a
:class:`~hexclaim.models.CaptureOutcome` and zero or more events. Every mutating
outcome queues a full progress snapshot on the background persistence writer.
"""

from __future__ import annotations

import asyncio
import logging
from types import MappingProxyType

from hexclaim.adapters.cell_index import CellIndex
from hexclaim.config import Settings
from hexclaim.events import CacheCaptured, EventStream, GameEvent, LevelUp, ResolutionFailed, ZoneCaptured
from hexclaim.loot import LootSpawner
from hexclaim.models import CaptureKind, CaptureOutcome, CellId, Coordinate, GameSnapshot, LootCache, RestoredState, Zone
from hexclaim.persistence import PersistenceWriter, ProgressSnapshot, ProgressStore, load_progress
from hexclaim.progression import level_for, progress_for
from hexclaim.readiness import RetryPolicy, SleepFn, wait_until_ready


class CaptureEngine:
    """Turns a stream of coordinates into captured zones, score, levels and loot."""

    def __init__(
        self,
        index: CellIndex,
        store: ProgressStore,
        *,
        spawner: LootSpawner | None = None,
        readiness: RetryPolicy | None = None,
        sleep: SleepFn = asyncio.sleep,
        resolution: int = 10,
        points_per_zone: int = 100,
        cache_bonus: int = 500,
        zones_per_level: int = 5,
        events: EventStream | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._index = index
        self._store = store
        self._spawner = spawner or LootSpawner()
        self._readiness = readiness or RetryPolicy()
        self._sleep = sleep
        self._resolution = resolution
        self._points_per_zone = points_per_zone
        self._cache_bonus = cache_bonus
        self._zones_per_level = zones_per_level
        self._logger = logger or logging.getLogger("hexclaim.engine")
        self.events = events or EventStream()

        self._writer = PersistenceWriter(store, logger=logging.getLogger("hexclaim.persistence"))
        self._lock = asyncio.Lock()
        self._captured: set[CellId] = set()
        self._boundaries: dict[CellId, tuple[Coordinate, ...]] = {}
        self._score = 0
        self._caches: list[LootCache] = []
        self._cache_cells: dict[LootCache, CellId | None] = {}
        self._user_location: Coordinate | None = None
        self._ready = False

    @classmethod
    def from_settings(
        cls,
        index: CellIndex,
        store: ProgressStore,
        config: Settings,
        **kwargs,
    ) -> CaptureEngine:
        rng = kwargs.pop("rng", None)
        spawner = kwargs.pop("spawner", None) or LootSpawner(
            count=config.cache_count,
            min_distance_m=config.cache_min_distance_m,
            max_distance_m=config.cache_max_distance_m,
            rng=rng,
        )
        readiness = RetryPolicy.from_timeout(
            timeout_seconds=config.readiness_timeout_seconds,
            interval_seconds=config.readiness_interval_seconds,
        )
        return cls(
            index,
            store,
            spawner=spawner,
            readiness=readiness,
            resolution=config.cell_resolution,
            points_per_zone=config.points_per_zone,
            cache_bonus=config.cache_bonus,
            zones_per_level=config.zones_per_level,
            **kwargs,
        )

    # -- progression accessors -------------------------------------------------

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def user_location(self) -> Coordinate | None:
        return self._user_location

    def zone_count(self) -> int:
        return len(self._captured)

    def score(self) -> int:
        return self._score

    def level(self) -> int:
        return level_for(len(self._captured), self._zones_per_level)

    def progress_to_next_level(self) -> float:
        return progress_for(len(self._captured), self._zones_per_level)

    def active_caches(self) -> tuple[LootCache, ...]:
        return tuple(self._caches)

    def zones(self) -> list[Zone]:
        """Captured zones that have a boundary and can be drawn."""
        return [Zone(cell_id=cell_id, boundary=boundary) for cell_id, boundary in sorted(self._boundaries.items())]

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            captured_zones=frozenset(self._captured),
            zone_boundaries=MappingProxyType(dict(self._boundaries)),
            active_caches=tuple(self._caches),
            score=self._score,
            level=self.level(),
            progress_to_next_level=self.progress_to_next_level(),
            user_location=self._user_location,
            ready=self._ready,
        )

    # -- startup -----------------------------------------------------------------

    async def restore(self) -> RestoredState:
        """Load persisted progress and resolve every zone boundary before reporting ready."""
        async with self._lock:
            if self._ready:
                self._logger.debug("engine_restore_skipped", extra={"reason": "already_ready"})
                return RestoredState(zone_count=len(self._captured), score=self._score)

            progress = await asyncio.to_thread(load_progress, self._store, self._logger)
            self._captured.update(progress.zones)
            self._score = progress.score
            self._logger.info(
                "progress_loaded",
                extra={"zone_count": len(self._captured), "score": self._score},
            )

            index_ready = await wait_until_ready(
                self._index.is_ready, self._readiness, sleep=self._sleep, name="cell_index"
            )
            missing: list[CellId] = []
            for cell_id in sorted(self._captured):
                if not index_ready or not self._ensure_boundary(cell_id):
                    missing.append(cell_id)

            restored = RestoredState(
                zone_count=len(self._captured),
                score=self._score,
                missing_boundaries=missing,
                index_ready=index_ready,
            )
            if restored.degraded:
                self._logger.warning(
                    "engine_restore_degraded",
                    extra={"index_ready": index_ready, "missing_boundaries": len(missing)},
                )

            self._ready = True
            self._ensure_caches()
            self._logger.info("engine_ready", extra={"zone_count": restored.zone_count, "score": restored.score})
            return restored

    def _ensure_boundary(self, cell_id: CellId) -> bool:
        if cell_id in self._boundaries:
            return True
        try:
            boundary = self._index.boundary_of(cell_id)
        except Exception:  # noqa: BLE001 - zone stays tracked without a polygon.
            self._logger.exception("zone_boundary_failed", extra={"cell_id": cell_id})
            return False
        if not boundary:
            self._logger.warning("zone_boundary_missing", extra={"cell_id": cell_id})
            return False
        self._boundaries[cell_id] = tuple(boundary)
        return True

    # -- location handling -------------------------------------------------------

    def set_user_location(self, location: Coordinate) -> None:
        """Record a position without evaluating a capture (e.g. a fallback location)."""
        self._user_location = location
        if self._ready:
            self._ensure_caches()

    async def simulate_move(self, lat: float, lng: float) -> CaptureOutcome:
        """Feed a manual fix through the same path as live GPS updates."""
        return await self.on_location_fix(Coordinate(lat=lat, lng=lng))

    async def on_location_fix(self, location: Coordinate) -> CaptureOutcome:
        async with self._lock:
            self._user_location = location
            outcome = await self._process_fix(location)
            if self._ready:
                self._ensure_caches()

        for event in outcome.events:
            self.events.publish(event)
        return outcome

    async def _process_fix(self, location: Coordinate) -> CaptureOutcome:
        index_ready = await wait_until_ready(
            self._index.is_ready, self._readiness, sleep=self._sleep, name="cell_index"
        )
        if not index_ready:
            return self._resolution_failed(location, "cell index not ready")

        try:
            cell_id = self._index.resolve_cell(location.lat, location.lng, self._resolution)
            if not cell_id:
                return self._resolution_failed(location, "no cell for location")
            cache_position = self._find_cache(cell_id)
        except Exception as exc:  # noqa: BLE001 - a failed lookup only drops this fix.
            self._logger.exception("cell_resolution_failed", extra={"lat": location.lat, "lng": location.lng})
            return self._resolution_failed(location, f"{type(exc).__name__}: {exc}")

        if cache_position is not None:
            return self._capture_cache(cache_position, cell_id, location)

        if cell_id in self._captured:
            # Zones restored while the index was down get their polygon on revisit.
            self._ensure_boundary(cell_id)
            self._logger.debug("zone_already_captured", extra={"cell_id": cell_id})
            return CaptureOutcome(kind=CaptureKind.ALREADY_CAPTURED, location=location, cell_id=cell_id)

        return self._capture_zone(cell_id, location)

    def _find_cache(self, cell_id: CellId) -> int | None:
        for position, cache in enumerate(self._caches):
            if cache not in self._cache_cells:
                self._cache_cells[cache] = self._index.resolve_cell(
                    cache.location.lat, cache.location.lng, self._resolution
                )
            if self._cache_cells[cache] == cell_id:
                return position
        return None

    def _capture_cache(self, position: int, cell_id: CellId, location: Coordinate) -> CaptureOutcome:
        cache = self._caches.pop(position)
        self._cache_cells.pop(cache, None)
        self._score += self._cache_bonus
        self._persist()
        self._logger.info(
            "cache_captured",
            extra={"cell_id": cell_id, "bonus": self._cache_bonus, "score": self._score},
        )

        events: list[GameEvent] = [CacheCaptured(bonus=self._cache_bonus, score=self._score)]
        if not self._caches:
            self._replace_caches(location)
        return CaptureOutcome(kind=CaptureKind.CACHE_CAPTURED, location=location, cell_id=cell_id, events=events)

    def _capture_zone(self, cell_id: CellId, location: Coordinate) -> CaptureOutcome:
        try:
            boundary = self._index.boundary_of(cell_id)
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("zone_boundary_failed", extra={"cell_id": cell_id})
            return self._resolution_failed(location, f"{type(exc).__name__}: {exc}")
        if not boundary:
            return self._resolution_failed(location, f"no boundary for cell {cell_id}")

        level_before = self.level()
        self._captured.add(cell_id)
        self._boundaries[cell_id] = tuple(boundary)
        self._score += self._points_per_zone
        self._persist()

        events: list[GameEvent] = [ZoneCaptured(cell_id=cell_id, total_zones=len(self._captured), score=self._score)]
        level_after = self.level()
        if level_after > level_before:
            events.append(LevelUp(new_level=level_after))
            self._logger.info("level_up", extra={"level": level_after})

        self._logger.info(
            "zone_captured",
            extra={"cell_id": cell_id, "total_zones": len(self._captured), "score": self._score},
        )
        return CaptureOutcome(kind=CaptureKind.ZONE_CAPTURED, location=location, cell_id=cell_id, events=events)

    def _resolution_failed(self, location: Coordinate, reason: str) -> CaptureOutcome:
        self._logger.warning("resolution_failed", extra={"lat": location.lat, "lng": location.lng, "reason": reason})
        return CaptureOutcome(
            kind=CaptureKind.RESOLUTION_FAILED,
            location=location,
            events=[ResolutionFailed(location=location, reason=reason)],
        )

    # -- loot --------------------------------------------------------------------

    def _ensure_caches(self) -> None:
        if self._user_location is not None and not self._caches:
            self._replace_caches(self._user_location)

    def _replace_caches(self, center: Coordinate) -> None:
        self._caches = self._spawner.spawn(center)
        self._cache_cells.clear()

    # -- persistence -------------------------------------------------------------

    def _persist(self) -> None:
        snapshot = ProgressSnapshot(zones=tuple(sorted(self._captured)), score=self._score)
        try:
            self._writer.submit(snapshot)
        except Exception:  # noqa: BLE001 - a lost save never fails the capture.
            self._logger.exception(
                "progress_save_enqueue_failed",
                extra={"zone_count": len(snapshot.zones), "score": snapshot.score},
            )

    async def flush(self) -> None:
        """Wait for queued progress saves to reach the store."""
        await self._writer.flush()

    async def close(self) -> None:
        await self._writer.close()
