"""Terrain Bounded Context.

Responsible for physical geography and spatial calculations:
- Value Objects: GeoPoint, BoundingBox, TerrainGrid, TerrainProfile
- Tiles: shareable read-only terrain data source
- Services: build_profile (great-circle elevation sampling)
"""
