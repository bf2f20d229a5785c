"""Terrain Bounded Context - Domain Services.

Pure domain logic for terrain calculations.
NO I/O operations - DEM loading is implemented by infrastructure adapters
under `src/infrastructure/terrain/geotiff_adapter.py` via domain ports.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pyproj import Geod

from domain.terrain.errors import (
    InvalidProfileError,
    NoDataError,
    PointOutOfBoundsError,
)
from domain.terrain.value_objects import (
    GeoPoint,
    TerrainGrid,
    TerrainProfile,
    line_of_sight,
)

if TYPE_CHECKING:
    from domain.terrain.tiles import Tiles

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
MAX_STEP_M = 90.0  # Default maximum spacing between profile samples
EARTH_RADIUS_M = 6_371_000.0  # Mean earth radius for the curvature bulge

# WGS84 ellipsoid for geodesic calculations (same as GPS, EPSG:4326)
_geod = Geod(ellps="WGS84")


# ---------------------------------------------------------------------------
# Geodesic Distance
# ---------------------------------------------------------------------------
def geodesic_distance(start: GeoPoint, end: GeoPoint) -> float:
    """Calculate geodesic distance between two points in meters.

    Uses WGS84 ellipsoid for millimeter-level precision.

    Args:
        start: Starting geographic point
        end: Ending geographic point

    Returns:
        Distance in meters (always positive)
    """
    _, _, distance = _geod.inv(start.lon, start.lat, end.lon, end.lat)
    return float(abs(distance))


# ---------------------------------------------------------------------------
# Geodesic Path Interpolation
# ---------------------------------------------------------------------------
def interpolate_geodesic_path(
    start: GeoPoint, end: GeoPoint, num_intermediate: int
) -> list[tuple[float, float]]:
    """Interpolate (lat, lon) pairs along the geodesic path.

    Uses pyproj.Geod.npts for true geodesic interpolation (not linear in lat/lon).

    Args:
        start: Starting point
        end: Ending point
        num_intermediate: Number of points BETWEEN start and end

    Returns:
        List of all points: [start, ...intermediate..., end]
    """
    if num_intermediate <= 0:
        return [(start.lat, start.lon), (end.lat, end.lon)]

    # npts returns intermediate points (excludes endpoints) as (lon, lat)
    intermediate = _geod.npts(start.lon, start.lat, end.lon, end.lat, num_intermediate)

    result = [(start.lat, start.lon)]
    result.extend((lat, lon) for lon, lat in intermediate)
    result.append((end.lat, end.lon))
    return result


# ---------------------------------------------------------------------------
# Bilinear Interpolation
# ---------------------------------------------------------------------------
def bilinear_interpolate(
    grid: TerrainGrid, lat: float, lon: float
) -> tuple[float, bool]:
    """Interpolate elevation at an arbitrary location using 4 nearest pixels.

    Returns (elevation, is_nodata).
    If any of the 4 neighbors is NaN, returns (NaN, True).

    Points exactly on grid boundaries use clamped indices, so bilinear
    degrades to linear (on edges) or nearest (on corners).
    """
    # Row 0 = north edge (max_y), so y is inverted
    px = (lon - grid.bounds.min_x) / grid.resolution[0]
    py = (grid.bounds.max_y - lat) / grid.resolution[1]

    height, width = grid.data.shape

    x0 = int(math.floor(px))
    y0 = int(math.floor(py))
    fx = px - x0
    fy = py - y0

    x1 = max(0, min(x0 + 1, width - 1))
    y1 = max(0, min(y0 + 1, height - 1))
    x0 = max(0, min(x0, width - 1))
    y0 = max(0, min(y0, height - 1))

    q11 = float(grid.data[y0, x0])  # top-left
    q21 = float(grid.data[y0, x1])  # top-right
    q12 = float(grid.data[y1, x0])  # bottom-left
    q22 = float(grid.data[y1, x1])  # bottom-right

    if math.isnan(q11) or math.isnan(q21) or math.isnan(q12) or math.isnan(q22):
        return (float("nan"), True)

    elevation = (
        q11 * (1 - fx) * (1 - fy)
        + q21 * fx * (1 - fy)
        + q12 * (1 - fx) * fy
        + q22 * fx * fy
    )

    return (float(elevation), False)


# ---------------------------------------------------------------------------
# Earth Curvature
# ---------------------------------------------------------------------------
def earth_bulge(distance_m: float, total_distance_m: float, radius_m: float) -> float:
    """Height of the earth's surface above the chord at ``distance_m``."""
    return distance_m * (total_distance_m - distance_m) / (2.0 * radius_m)


# ---------------------------------------------------------------------------
# Main Service: build_profile
# ---------------------------------------------------------------------------
def build_profile(
    tiles: "Tiles",
    start: GeoPoint,
    end: GeoPoint,
    max_step_m: float = MAX_STEP_M,
    earth_curve: bool = False,
    earth_radius_m: float = EARTH_RADIUS_M,
) -> TerrainProfile:
    """Sample terrain along the great circle from ``start`` to ``end``.

    The path is split into the fewest equal steps no longer than
    ``max_step_m``. Endpoints closer than one step (``max_step_m``) produce a
    single-sample profile located at ``start``.

    Args:
        tiles: Terrain data source
        start: Transmitter location; ``start.alt`` is its height above ground
        end: Receiver location; ``end.alt`` is its height above ground
        max_step_m: Upper bound on sample spacing
        earth_curve: Raise terrain by the earth bulge relative to the chord
        earth_radius_m: Radius used for the bulge

    Returns:
        TerrainProfile with uniformly spaced samples

    Raises:
        PointOutOfBoundsError: If a sample falls outside every tile
        NoDataError: If a sample hits a NoData region
        InvalidProfileError: If max_step_m or earth_radius_m is not positive

    Example:
        >>> tiles = load_tiles("nasadem/3-arcsecond/srtm/")
        >>> start = GeoPoint(36.1596, -112.306877, 1000)
        >>> end = GeoPoint(36.2, -112.3, 1)
        >>> profile = build_profile(tiles, start, end)
        >>> print(f"{len(profile)} samples over {profile.total_distance_m:.0f}m")
    """
    if max_step_m <= 0:
        raise InvalidProfileError("max_step_m must be positive")
    if earth_radius_m <= 0:
        raise InvalidProfileError("earth_radius_m must be positive")

    for point in (start, end):
        if not tiles.covers(point):
            raise PointOutOfBoundsError(point, tiles.bounds)

    total_distance = geodesic_distance(start, end)

    if total_distance < max_step_m:
        distances = [0.0]
        path_points = [(start.lat, start.lon)]
    else:
        n_steps = int(math.ceil(total_distance / max_step_m))
        step = total_distance / n_steps
        distances = [i * step for i in range(n_steps)] + [total_distance]
        path_points = interpolate_geodesic_path(start, end, n_steps - 1)

    elevations: list[float] = []
    for (lat, lon), distance in zip(path_points, distances):
        elevation, is_nodata = tiles.sample(lat, lon)
        if is_nodata:
            raise NoDataError(lat, lon)
        if earth_curve:
            elevation += earth_bulge(distance, total_distance, earth_radius_m)
        elevations.append(elevation)

    distances_t = tuple(distances)
    return TerrainProfile(
        start=start,
        end=end,
        start_alt=start.alt,
        end_alt=end.alt,
        distances_m=distances_t,
        terrain_elev_m=tuple(elevations),
        great_circle=tuple(path_points),
        los_elev_m=line_of_sight(
            distances_t, elevations[0] + start.alt, elevations[-1] + end.alt
        ),
    )
