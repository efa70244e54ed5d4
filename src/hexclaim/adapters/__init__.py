"""Collaborator boundaries: geospatial cell index and location sources."""

from .cell_index import CellIndex
from .h3_index import CellIndexUnavailableError, H3CellIndex
from .location import (
    LocationPermissionError,
    LocationSource,
    LocationUnavailableError,
    ReplayLocationSource,
    filter_min_distance,
)

__all__ = [
    "CellIndex",
    "CellIndexUnavailableError",
    "H3CellIndex",
    "LocationPermissionError",
    "LocationSource",
    "LocationUnavailableError",
    "ReplayLocationSource",
    "filter_min_distance",
]
