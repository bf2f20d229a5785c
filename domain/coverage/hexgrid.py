"""Hexagonal grid primitives backed by the H3 library.

Cells are handled as unsigned 64-bit integers at this boundary so that
CoverageSample ids are plain ints; the H3 string form is only used when
talking to the library.
"""

from __future__ import annotations

import logging
import math

import h3

from domain.coverage.errors import InvalidCoverageRequestError
from domain.terrain.value_objects import GeoPoint

logger = logging.getLogger(__name__)

MIN_RESOLUTION = 0
MAX_RESOLUTION = 15

SQRT_3 = math.sqrt(3.0)


def validate_resolution(resolution: int) -> int:
    """Return ``resolution`` if it is a valid H3 resolution, else raise."""
    if isinstance(resolution, bool) or not isinstance(resolution, int):
        raise InvalidCoverageRequestError(
            f"hex resolution must be an integer, got {resolution!r}"
        )
    if not MIN_RESOLUTION <= resolution <= MAX_RESOLUTION:
        raise InvalidCoverageRequestError(
            f"hex resolution must be in [{MIN_RESOLUTION}, {MAX_RESOLUTION}], "
            f"got {resolution}"
        )
    return resolution


def resolve_cell(point: GeoPoint, resolution: int) -> int:
    """H3 cell containing ``point`` at ``resolution``."""
    return h3.str_to_int(h3.latlng_to_cell(point.lat, point.lon, resolution))


def edge_length_km(resolution: int) -> float:
    """Average hexagon edge length at ``resolution``."""
    return float(h3.average_hexagon_edge_length(resolution, unit="km"))


def ring_count(resolution: int, max_radius_km: float) -> int:
    """Largest ring index whose distance stays within ``max_radius_km``.

    Consecutive rings are about ``edge * sqrt(3)`` apart along their radial
    direction.
    """
    return int(math.floor(max_radius_km / (edge_length_km(resolution) * SQRT_3)))


def ring_cells(cell: int, ring: int) -> list[int]:
    """Cells exactly ``ring`` steps from ``cell``.

    Ring 0 is the cell itself. Near pentagons H3 cannot always walk a ring;
    cells it cannot resolve are omitted rather than failing the ring.
    """
    if ring == 0:
        return [cell]
    origin = h3.int_to_str(cell)
    try:
        members = h3.grid_ring(origin, ring)
    except h3.H3BaseException:
        logger.debug("grid_ring failed at k=%d around %s; using disk difference", ring, origin)
        try:
            members = set(h3.grid_disk(origin, ring)) - set(
                h3.grid_disk(origin, ring - 1)
            )
        except h3.H3BaseException as e:
            logger.warning("Omitting ring %d around %s: %s", ring, origin, e)
            return []
    return [h3.str_to_int(member) for member in members]


def cell_centroid(cell: int) -> tuple[float, float]:
    """Centroid of ``cell`` as (lat, lon) degrees."""
    lat, lon = h3.cell_to_latlng(h3.int_to_str(cell))
    return float(lat), float(lon)
