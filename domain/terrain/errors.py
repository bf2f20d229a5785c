"""Terrain Bounded Context - Error Hierarchy.

Custom exceptions for terrain operations: DEM loading, tile lookup and
profile construction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from domain.errors import DomainError

if TYPE_CHECKING:
    from domain.terrain.value_objects import BoundingBox, GeoPoint


class TerrainError(DomainError):
    """Base error for terrain operations."""


class InvalidRasterError(TerrainError):
    """File is not a valid raster, wrong format, or corrupted."""


class MissingCRSError(TerrainError):
    """Raster has no CRS defined."""


class InvalidGeotransformError(TerrainError):
    """Raster has invalid or missing geotransform."""


class AllNoDataError(TerrainError):
    """Raster contains 100% NoData pixels - unusable."""


class InvalidBoundsError(TerrainError):
    """Raster bounds are outside valid WGS84 range after reprojection."""


class InsufficientMemoryError(TerrainError):
    """Operation requires more memory than allowed or available."""


class NoTilesFoundError(TerrainError):
    """Tile directory does not exist or holds no GeoTIFF tiles."""


# ---------------------------------------------------------------------------
# Profile / lookup errors
# ---------------------------------------------------------------------------
class PointOutOfBoundsError(TerrainError):
    """Point is not covered by any loaded terrain grid.

    Attributes:
        point: The offending GeoPoint
        bounds: Extent of the loaded terrain (union of all tiles)
    """

    def __init__(self, point: "GeoPoint", bounds: "BoundingBox") -> None:
        self.point = point
        self.bounds = bounds
        super().__init__(
            f"Point ({point.lat:.6f}, {point.lon:.6f}) outside terrain coverage "
            f"[lat: {bounds.min_y:.6f} to {bounds.max_y:.6f}, "
            f"lon: {bounds.min_x:.6f} to {bounds.max_x:.6f}]"
        )


class InvalidProfileError(TerrainError, ValueError):
    """Profile sampling parameters are invalid."""


class NoDataError(TerrainError):
    """Elevation is unavailable (NoData) at a sampled location."""

    def __init__(self, lat: float, lon: float) -> None:
        self.lat = lat
        self.lon = lon
        super().__init__(f"No elevation data at ({lat:.6f}, {lon:.6f})")
