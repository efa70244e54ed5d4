"""Loot cache placement around a reference point."""

from __future__ import annotations

import logging
import random

from hexclaim.models import Coordinate, LootCache

METERS_PER_DEGREE = 111_000.0


class LootSpawner:
    """Scatters bonus caches at a random distance band from a centre point.

    Each axis gets an independent offset drawn uniformly from
    ``[min_distance_m, max_distance_m]`` and an independent random sign. Caches are
    not checked against captured zones or each other, so overlap is possible.
    """

    def __init__(
        self,
        *,
        count: int = 3,
        min_distance_m: float = 300.0,
        max_distance_m: float = 550.0,
        rng: random.Random | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if min_distance_m > max_distance_m:
            raise ValueError("min_distance_m must not exceed max_distance_m")
        self._count = count
        self._min_degrees = min_distance_m / METERS_PER_DEGREE
        self._max_degrees = max_distance_m / METERS_PER_DEGREE
        self._rng = rng or random.Random()
        self._logger = logger or logging.getLogger("hexclaim.loot")

    @property
    def count(self) -> int:
        return self._count

    def spawn(self, center: Coordinate) -> list[LootCache]:
        caches = [LootCache(location=self._offset(center)) for _ in range(self._count)]
        self._logger.info(
            "loot_caches_spawned",
            extra={"count": len(caches), "center_lat": center.lat, "center_lng": center.lng},
        )
        return caches

    def _offset(self, center: Coordinate) -> Coordinate:
        lat_offset = self._rng.uniform(self._min_degrees, self._max_degrees)
        lng_offset = self._rng.uniform(self._min_degrees, self._max_degrees)
        lat_sign = 1 if self._rng.random() < 0.5 else -1
        lng_sign = 1 if self._rng.random() < 0.5 else -1
        return Coordinate(lat=center.lat + lat_offset * lat_sign, lng=center.lng + lng_offset * lng_sign)
