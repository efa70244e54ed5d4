"""Durable storage of captured zones and score, written in the background."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from hexclaim.models import CellId

ZONES_KEY = "capturedZones"
SCORE_KEY = "userScore"


class ProgressStore(Protocol):
    """Key-value persistence contract for the two persisted game fields."""

    def save_zones(self, zone_ids: list[CellId]) -> None:
        """Replace the stored zone id list."""

    def save_score(self, score: int) -> None:
        """Replace the stored score."""

    def load_zones(self) -> list[CellId]:
        """Return stored zone ids, or an empty list when nothing was saved."""

    def load_score(self) -> int:
        """Return the stored score, or 0 when nothing was saved."""


class InMemoryProgressStore:
    """Process-local store used for demos and tests."""

    def __init__(self, zones: list[CellId] | None = None, score: int = 0) -> None:
        self.zones: list[CellId] = list(zones or [])
        self.score = score

    def save_zones(self, zone_ids: list[CellId]) -> None:
        self.zones = list(zone_ids)

    def save_score(self, score: int) -> None:
        self.score = score

    def load_zones(self) -> list[CellId]:
        return list(self.zones)

    def load_score(self) -> int:
        return self.score


class JsonProgressStore:
    """JSON-file store holding ``capturedZones`` and ``userScore`` keys."""

    def __init__(self, file_path: str | Path) -> None:
        self._path = Path(file_path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def save_zones(self, zone_ids: list[CellId]) -> None:
        payload = self._read()
        payload[ZONES_KEY] = list(zone_ids)
        self._write(payload)

    def save_score(self, score: int) -> None:
        payload = self._read()
        payload[SCORE_KEY] = int(score)
        self._write(payload)

    def load_zones(self) -> list[CellId]:
        zones = self._read().get(ZONES_KEY, [])
        if not isinstance(zones, list):
            raise ValueError(f"{ZONES_KEY} must be a list, got {type(zones).__name__}")
        return [str(zone) for zone in zones]

    def load_score(self) -> int:
        score = self._read().get(SCORE_KEY, 0)
        if isinstance(score, bool) or not isinstance(score, int):
            raise ValueError(f"{SCORE_KEY} must be an integer, got {score!r}")
        return score

    def _read(self) -> dict:
        if not self._path.exists():
            return {}
        text = self._path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError(f"Progress file {self._path} does not contain a JSON object")
        return payload

    def _write(self, payload: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload), encoding="utf-8")
        tmp_path.replace(self._path)


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    zones: tuple[CellId, ...]
    score: int


def load_progress(store: ProgressStore, logger: logging.Logger | None = None) -> ProgressSnapshot:
    """Read both fields, falling back to empty/zero on missing or unreadable data."""
    logger = logger or logging.getLogger("hexclaim.persistence")
    try:
        zones = store.load_zones() or []
    except Exception:  # noqa: BLE001 - unreadable storage starts a fresh game.
        logger.exception("progress_zones_load_failed")
        zones = []
    try:
        score = store.load_score() or 0
    except Exception:  # noqa: BLE001
        logger.exception("progress_score_load_failed")
        score = 0
    if isinstance(score, bool) or not isinstance(score, int):
        logger.warning("progress_score_corrupt", extra={"score": repr(score)})
        score = 0
    elif score < 0:
        logger.warning("progress_score_negative", extra={"score": score})
        score = 0
    if not isinstance(zones, (list, tuple)):
        logger.warning("progress_zones_corrupt", extra={"zones": repr(zones)})
        zones = []
    zone_ids = [zone for zone in zones if isinstance(zone, str) and zone]
    if len(zone_ids) != len(zones):
        logger.warning("progress_zones_corrupt", extra={"dropped": len(zones) - len(zone_ids)})
    return ProgressSnapshot(zones=tuple(dict.fromkeys(zone_ids)), score=score)


class PersistenceWriter:
    """Single-worker queue that saves full progress snapshots in submission order.

    The queue is unbounded so that ``submit`` never fails on a burst of captures
    that does not yield to the worker.
    """

    def __init__(self, store: ProgressStore, *, logger: logging.Logger | None = None) -> None:
        self._store = store
        self._logger = logger or logging.getLogger("hexclaim.persistence")
        self._queue: asyncio.Queue[ProgressSnapshot] = asyncio.Queue()
        self._worker_task: asyncio.Task[None] | None = None
        self.saved_count = 0
        self.failed_count = 0

    def start(self) -> None:
        """Start the worker loop once; must be called from a running event loop."""
        if self._worker_task and not self._worker_task.done():
            return
        self._worker_task = asyncio.create_task(self._worker_loop(), name="persistence-writer")
        self._logger.debug("persistence_writer_started")

    def submit(self, snapshot: ProgressSnapshot) -> None:
        """Enqueue a snapshot without waiting for it to be written."""
        self.start()
        self._queue.put_nowait(snapshot)

    async def flush(self) -> None:
        """Wait until every submitted snapshot has been handled."""
        if self._worker_task is None:
            return
        await self._queue.join()

    async def close(self) -> None:
        if not self._worker_task:
            return
        await self.flush()
        self._worker_task.cancel()
        try:
            await self._worker_task
        except asyncio.CancelledError:
            pass
        finally:
            self._worker_task = None
        self._logger.debug("persistence_writer_stopped")

    async def _worker_loop(self) -> None:
        while True:
            snapshot = await self._queue.get()
            try:
                await asyncio.to_thread(self._write, snapshot)
            finally:
                self._queue.task_done()

    def _write(self, snapshot: ProgressSnapshot) -> None:
        try:
            self._store.save_zones(list(snapshot.zones))
            self._store.save_score(snapshot.score)
        except Exception:  # noqa: BLE001 - in-memory state stays authoritative.
            self.failed_count += 1
            self._logger.exception(
                "progress_save_failed",
                extra={"zone_count": len(snapshot.zones), "score": snapshot.score},
            )
            return
        self.saved_count += 1
        self._logger.debug("progress_saved", extra={"zone_count": len(snapshot.zones), "score": snapshot.score})
