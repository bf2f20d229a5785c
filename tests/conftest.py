"""Root pytest configuration for all tests.

Domain tests build TerrainGrids directly from numpy arrays (no I/O); only
tests/gis touches real GeoTIFF files, written into tmp_path with rasterio.
"""

from __future__ import annotations

import pytest

from domain.terrain.tiles import Tiles
from domain.terrain.value_objects import GeoPoint
from tests.grid_factories import flat_grid, ridge_grid, rolling_grid


@pytest.fixture
def flat_tiles() -> Tiles:
    return Tiles([flat_grid()])


@pytest.fixture
def ridge_tiles() -> Tiles:
    return Tiles([ridge_grid()])


@pytest.fixture
def rolling_tiles() -> Tiles:
    return Tiles([rolling_grid()])


@pytest.fixture
def transmitter() -> GeoPoint:
    """Transmitter site used across coverage tests, 1000 m above ground."""
    return GeoPoint(36.1596, -112.306877, 1000.0)
