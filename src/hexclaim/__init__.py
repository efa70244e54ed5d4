"""Location-driven hexagonal territory capture game engine."""

from hexclaim.engine import CaptureEngine
from hexclaim.models import CaptureKind, CaptureOutcome, Coordinate, GameSnapshot, LootCache, RestoredState

__all__ = [
    "CaptureEngine",
    "CaptureKind",
    "CaptureOutcome",
    "Coordinate",
    "GameSnapshot",
    "LootCache",
    "RestoredState",
]

__version__ = "0.1.0"
