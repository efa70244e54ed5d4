"""H3 hexagonal grid binding for the cell index boundary.

The ``h3`` module is resolved lazily so the engine can start, report a degraded
restore, and keep polling readiness while the library is unavailable.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from types import ModuleType

from hexclaim.adapters.cell_index import CellIndex
from hexclaim.models import CellId, Coordinate


class CellIndexUnavailableError(RuntimeError):
    """Raised when the h3 library is not importable or lacks the v4 API."""


@dataclass(slots=True)
class H3CellIndex(CellIndex):
    """Cell index backed by the ``h3`` package (v4 function names)."""

    module_name: str = "h3"
    _module: ModuleType | None = field(default=None, init=False, repr=False)

    def is_ready(self) -> bool:
        try:
            self._resolve_module()
        except CellIndexUnavailableError:
            return False
        return True

    def resolve_cell(self, lat: float, lng: float, resolution: int) -> CellId | None:
        module = self._resolve_module()
        cell = module.latlng_to_cell(lat, lng, resolution)
        if not cell:
            return None
        return str(cell)

    def boundary_of(self, cell_id: CellId) -> list[Coordinate] | None:
        module = self._resolve_module()
        vertices = module.cell_to_boundary(cell_id)
        if not vertices:
            return None
        return [Coordinate(lat=float(lat), lng=float(lng)) for lat, lng in vertices]

    def _resolve_module(self) -> ModuleType:
        if self._module is not None:
            return self._module

        try:
            module = importlib.import_module(self.module_name)
        except Exception as exc:  # noqa: BLE001
            raise CellIndexUnavailableError(
                f"Unable to import {self.module_name}. Install it with: pip install h3"
            ) from exc

        for attr in ("latlng_to_cell", "cell_to_boundary"):
            if not callable(getattr(module, attr, None)):
                raise CellIndexUnavailableError(
                    f"Imported {self.module_name} but found no {attr}(); h3>=4 is required."
                )

        self._module = module
        return module
