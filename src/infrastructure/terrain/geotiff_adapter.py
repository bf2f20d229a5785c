"""GeoTIFF adapter for TerrainRepository.

Loads DEM tiles (e.g. SRTM/NASADEM exports) with rasterio, normalizes each
to EPSG:4326 float32 with NaN for NoData, and assembles a directory of tiles
into a shareable Tiles handle.

Datasets are only open inside context managers; the returned grids own
their data, so no GDAL handle outlives a load.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any

import numpy as np
import rasterio
from affine import Affine
from numpy.typing import NDArray
from rasterio.crs import CRS
from rasterio.enums import Resampling
from rasterio.errors import RasterioError
from rasterio.transform import array_bounds
from rasterio.warp import calculate_default_transform, reproject

from domain.terrain.errors import (
    AllNoDataError,
    InsufficientMemoryError,
    InvalidBoundsError,
    InvalidGeotransformError,
    InvalidRasterError,
    MissingCRSError,
    NoTilesFoundError,
)
from domain.terrain.repositories import TerrainRepository
from domain.terrain.tiles import Tiles
from domain.terrain.value_objects import BoundingBox, TerrainGrid

logger = logging.getLogger(__name__)

_TARGET_CRS = CRS.from_epsg(4326)
_TILE_SUFFIXES = (".tif", ".tiff")
_NODATA_WARN_PCT = 80.0


class GeoTiffTerrainAdapter:
    """Infrastructure adapter for loading DEM tiles from GeoTIFF files.

    Parameters
    ----------
    max_bytes: int | None
        Optional memory budget for one resulting float32 grid
        (height*width*4). Exceeding it raises InsufficientMemoryError
        before the raster is read.
    """

    def __init__(self, max_bytes: int | None = None) -> None:
        self.max_bytes = max_bytes

    def load_dem(self, file_path: Path | str) -> TerrainGrid:
        """Load one GeoTIFF tile and return a TerrainGrid in EPSG:4326."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(str(path))
        if path.suffix.lower() not in _TILE_SUFFIXES:
            raise InvalidRasterError(f"Unsupported file extension: {path.suffix}")

        try:
            size = path.stat().st_size
        except OSError as e:
            # Only the file name is logged, never the full path
            logger.error(
                "Failed to stat %s (errno=%s, strerror=%s)",
                path.name,
                getattr(e, "errno", "unknown"),
                getattr(e, "strerror", "unknown"),
            )
            raise
        if size == 0:
            raise InvalidRasterError("Empty file")

        try:
            with rasterio.Env():
                with rasterio.open(path) as src:
                    return self._read(src, path.name)
        except PermissionError as e:
            raise PermissionError(path.name) from e
        except RasterioError as e:
            raise InvalidRasterError(f"Corrupted or invalid raster: {e}") from e
        except MemoryError as e:
            raise InsufficientMemoryError("Insufficient memory to load raster") from e

    def _read(self, src: Any, name: str) -> TerrainGrid:
        if src.count != 1:
            raise InvalidRasterError(f"Expected 1 band, got {src.count}")
        if src.crs is None:
            raise MissingCRSError("Raster has no CRS defined")
        transform = _checked_transform(src.transform)
        source_crs = src.crs.to_string()

        if src.crs == _TARGET_CRS:
            self._check_budget(src.width, src.height)
            data = _nodata_to_nan(src.read(1, masked=True, out_dtype="float32"), src.nodata)
        else:
            transform, width, height = calculate_default_transform(
                src.crs, _TARGET_CRS, src.width, src.height, *src.bounds
            )
            self._check_budget(width, height)
            data = np.full((height, width), np.nan, dtype=np.float32)
            reproject(
                source=rasterio.band(src, 1),
                destination=data,
                src_transform=src.transform,
                src_crs=src.crs,
                dst_transform=transform,
                dst_crs=_TARGET_CRS,
                resampling=Resampling.bilinear,
                src_nodata=src.nodata,
                dst_nodata=np.nan,
            )
            logger.info("DEM %s: Reprojected from %s to EPSG:4326", name, source_crs)

        if np.isnan(data).all():
            raise AllNoDataError("Raster contains 100% NoData pixels - unusable")

        height, width = data.shape
        minx, miny, maxx, maxy = array_bounds(height, width, transform)
        try:
            bounds = BoundingBox(min_x=minx, min_y=miny, max_x=maxx, max_y=maxy)
        except ValueError as e:
            raise InvalidBoundsError(str(e)) from e

        nodata_pct = float(np.isnan(data).mean() * 100.0)
        if nodata_pct > _NODATA_WARN_PCT:
            logger.warning("DEM %s: %.1f%% NoData pixels detected", name, nodata_pct)
        logger.debug("DEM %s: Loaded %dx%d grid", name, width, height)

        return TerrainGrid(
            data=data,
            bounds=bounds,
            crs="EPSG:4326",
            resolution=(abs(transform.a), abs(transform.e)),
            source_crs=source_crs,
        )

    def _check_budget(self, width: int, height: int) -> None:
        if self.max_bytes is None:
            return
        est_bytes = int(width) * int(height) * 4
        if est_bytes > self.max_bytes:
            raise InsufficientMemoryError(
                f"Estimated grid size {est_bytes}B exceeds budget {self.max_bytes}B"
            )


def load_tiles(
    tile_dir: Path | str, repository: TerrainRepository | None = None
) -> Tiles:
    """Load every GeoTIFF tile in ``tile_dir`` into one Tiles handle.

    Tiles are loaded in file-name order, which also decides which tile
    answers for overlapping areas.

    Raises:
        NoTilesFoundError: If the directory is missing or has no tiles
    """
    directory = Path(tile_dir)
    if not directory.is_dir():
        raise NoTilesFoundError(f"Tile directory not found: {directory.name}")
    paths = sorted(
        p for p in directory.iterdir() if p.suffix.lower() in _TILE_SUFFIXES
    )
    if not paths:
        raise NoTilesFoundError(f"No GeoTIFF tiles in {directory.name}")

    repository = repository or GeoTiffTerrainAdapter()
    tiles = Tiles(repository.load_dem(p) for p in paths)
    logger.info("Loaded %d terrain tiles from %s", len(tiles), directory.name)
    return tiles


def _checked_transform(transform: Any) -> Affine:
    if not isinstance(transform, Affine):
        raise InvalidGeotransformError("Missing affine transform")
    if any(math.isnan(v) or math.isinf(v) for v in transform[:6]):
        raise InvalidGeotransformError("Invalid (NaN/Inf) transform values")
    if transform.a == 0 or transform.e == 0:
        raise InvalidGeotransformError("Invalid transform scale (zero)")
    return transform


def _nodata_to_nan(data: Any, nodata: float | None) -> NDArray[np.float32]:
    """Replace masked or explicit nodata pixels with NaN, keeping float32."""
    if np.ma.isMaskedArray(data):
        return np.where(np.ma.getmaskarray(data), np.float32(np.nan), data.data).astype(
            np.float32
        )
    if nodata is not None:
        # GeoTIFF nodata is an exact stored value; no tolerance
        return np.where(data == nodata, np.float32(np.nan), data).astype(np.float32)
    return np.asarray(data, dtype=np.float32)
