"""Boundary for geospatial cell indexing integrations."""

from typing import Protocol

from hexclaim.models import CellId, Coordinate


class CellIndex(Protocol):
    """Maps coordinates onto discrete grid cells and cells onto polygons."""

    def is_ready(self) -> bool:
        """Return True once the underlying index library can answer queries."""

    def resolve_cell(self, lat: float, lng: float, resolution: int) -> CellId | None:
        """Return the id of the cell containing the coordinate, or None."""

    def boundary_of(self, cell_id: CellId) -> list[Coordinate] | None:
        """Return the cell polygon vertices in order, or None."""
