"""Infrastructure adapters for the terrain bounded context.

Loads DEM tiles from GeoTIFF files into domain TerrainGrids and Tiles.
"""

from .geotiff_adapter import GeoTiffTerrainAdapter, load_tiles

__all__ = ["GeoTiffTerrainAdapter", "load_tiles"]
