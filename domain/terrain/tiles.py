"""Read-only terrain tile collection.

A Tiles handle is the terrain data source shared by every concurrent
profile request of a coverage run. Grids are immutable, so the handle needs
no locking and copying it is just copying a tuple reference.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from domain.terrain.errors import PointOutOfBoundsError
from domain.terrain.services import bilinear_interpolate
from domain.terrain.value_objects import BoundingBox, GeoPoint, TerrainGrid


class Tiles:
    """Immutable collection of elevation grids covering an area.

    When grids overlap, the first grid (in construction order) that contains
    a point answers for it.
    """

    __slots__ = ("_grids", "_bounds")

    def __init__(self, grids: Iterable[TerrainGrid]) -> None:
        grids = tuple(grids)
        if not grids:
            raise ValueError("Tiles requires at least one TerrainGrid")
        bounds = grids[0].bounds
        for grid in grids[1:]:
            bounds = bounds.union(grid.bounds)
        self._grids = grids
        self._bounds = bounds

    def __len__(self) -> int:
        return len(self._grids)

    def __iter__(self) -> Iterator[TerrainGrid]:
        return iter(self._grids)

    def __repr__(self) -> str:
        return f"Tiles({len(self._grids)} grids, bounds={self._bounds!r})"

    @property
    def bounds(self) -> BoundingBox:
        """Union of all grid extents (may include uncovered gaps)."""
        return self._bounds

    def covers(self, point: GeoPoint) -> bool:
        return self._find(point.lat, point.lon) is not None

    def sample(self, lat: float, lon: float) -> tuple[float, bool]:
        """Bilinear elevation at (lat, lon) as ``(elevation_m, is_nodata)``."""
        grid = self._find(lat, lon)
        if grid is None:
            raise PointOutOfBoundsError(GeoPoint(lat, lon), self._bounds)
        return bilinear_interpolate(grid, lat, lon)

    def elevation(self, point: GeoPoint) -> float | None:
        """Elevation in meters at ``point``, or None where the DEM has no data."""
        elevation, is_nodata = self.sample(point.lat, point.lon)
        return None if is_nodata else elevation

    def _find(self, lat: float, lon: float) -> TerrainGrid | None:
        for grid in self._grids:
            if grid.bounds.contains(lat, lon):
                return grid
        return None
