"""CLI-side presentation helpers over engine snapshots and outcomes."""

from __future__ import annotations

from dataclasses import asdict

from hexclaim.events import GameEvent
from hexclaim.models import CaptureOutcome, GameSnapshot


def describe_event(event: GameEvent) -> dict:
    return {"event": type(event).__name__, **_plain(asdict(event))}


def describe_outcome(outcome: CaptureOutcome) -> dict:
    return {
        "outcome": outcome.kind.value,
        "cell_id": outcome.cell_id,
        "location": [outcome.location.lat, outcome.location.lng],
        "events": [describe_event(event) for event in outcome.events],
    }


def describe_snapshot(snapshot: GameSnapshot, *, include_boundaries: bool = False) -> dict:
    summary = {
        "ready": snapshot.ready,
        "zones": len(snapshot.captured_zones),
        "score": snapshot.score,
        "level": snapshot.level,
        "progress_to_next_level": round(snapshot.progress_to_next_level, 2),
        "user_location": (
            [snapshot.user_location.lat, snapshot.user_location.lng] if snapshot.user_location else None
        ),
        "active_caches": [[cache.location.lat, cache.location.lng] for cache in snapshot.active_caches],
        "zones_without_boundary": sorted(snapshot.captured_zones - set(snapshot.zone_boundaries)),
    }
    if include_boundaries:
        summary["zone_boundaries"] = {
            cell_id: [[vertex.lat, vertex.lng] for vertex in boundary]
            for cell_id, boundary in snapshot.zone_boundaries.items()
        }
    return summary


def _plain(payload: dict) -> dict:
    # asdict() turns nested Coordinates into dicts already; flatten them to pairs.
    return {
        key: [value["lat"], value["lng"]] if isinstance(value, dict) and set(value) == {"lat", "lng"} else value
        for key, value in payload.items()
    }
