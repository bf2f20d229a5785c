"""Coverage Engine Domain Layer.

This package contains the core logic organized by bounded contexts:
- terrain: Physical geography, elevation tiles, terrain profiles
- coverage: RF propagation loss, path loss curves, hexagonal coverage maps
"""

from domain import coverage, terrain

__all__ = ["coverage", "terrain"]
