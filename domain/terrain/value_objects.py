"""Terrain Bounded Context - Value Objects.

Immutable data structures representing geographic concepts.
All validation occurs at construction time via Pydantic.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, model_validator


class BoundingBox(BaseModel):
    """Geographic extent in EPSG:4326 (Value Object).

    Invariants are enforced at construction time - invalid BoundingBox
    cannot be instantiated.
    """

    min_x: float  # Western boundary (longitude)
    min_y: float  # Southern boundary (latitude)
    max_x: float  # Eastern boundary (longitude)
    max_y: float  # Northern boundary (latitude)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_bounds(self) -> "BoundingBox":
        if not (-180 <= self.min_x <= 180):
            raise ValueError(f"min_x longitude out of range: {self.min_x}")
        if not (-180 <= self.max_x <= 180):
            raise ValueError(f"max_x longitude out of range: {self.max_x}")
        if not (-90 <= self.min_y <= 90):
            raise ValueError(f"min_y latitude out of range: {self.min_y}")
        if not (-90 <= self.max_y <= 90):
            raise ValueError(f"max_y latitude out of range: {self.max_y}")
        if not (self.min_x < self.max_x):
            raise ValueError(
                f"Invalid x ordering: min_x={self.min_x} >= max_x={self.max_x}"
            )
        if not (self.min_y < self.max_y):
            raise ValueError(
                f"Invalid y ordering: min_y={self.min_y} >= max_y={self.max_y}"
            )
        return self

    def contains(self, lat: float, lon: float) -> bool:
        """Inclusive containment test."""
        return self.min_x <= lon <= self.max_x and self.min_y <= lat <= self.max_y

    def union(self, other: "BoundingBox") -> "BoundingBox":
        """Smallest box covering both boxes."""
        return BoundingBox(
            min_x=min(self.min_x, other.min_x),
            min_y=min(self.min_y, other.min_y),
            max_x=max(self.max_x, other.max_x),
            max_y=max(self.max_y, other.max_y),
        )


class TerrainGrid(BaseModel):
    """Immutable elevation grid with geographic metadata (Value Object).

    The data array is made truly immutable (read-only) at construction time,
    so a grid can be read from many worker threads without locking.
    """

    data: NDArray[np.float32]  # 2D float32 array (height x width), read-only
    bounds: BoundingBox  # Geographic extent in EPSG:4326
    crs: str  # Always "EPSG:4326" (system CRS)
    resolution: tuple[float, float]  # (x_res, y_res) absolute values in degrees
    source_crs: str | None = None  # Original CRS before normalization

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_grid(self) -> "TerrainGrid":
        if self.data.ndim != 2:
            raise ValueError(f"Data must be 2D, got {self.data.ndim}D")
        if self.data.shape[0] == 0 or self.data.shape[1] == 0:
            raise ValueError(f"Data cannot be empty: {self.data.shape}")
        if self.data.dtype != np.float32:
            raise ValueError(f"Data must be float32, got {self.data.dtype}")
        if self.crs != "EPSG:4326":
            raise ValueError(f"CRS must be EPSG:4326, got {self.crs}")
        if self.resolution[0] <= 0 or self.resolution[1] <= 0:
            raise ValueError(f"Resolution must be positive: {self.resolution}")
        if np.isnan(self.data).all():
            raise ValueError("Grid contains 100% NoData")

        # Owned, contiguous, frozen copy: never flip flags on the caller's array.
        immutable = np.array(self.data, dtype=np.float32, copy=True, order="C")
        immutable.flags.writeable = False
        object.__setattr__(self, "data", immutable)

        return self


class GeoPoint(BaseModel):
    """Geographic coordinate in WGS84 with an altitude (Value Object).

    ``alt`` is meters above an application-specific reference; for loss
    evaluation it is the antenna height above ground.

    Invariants:
        lat in [-90, 90]
        lon in [-180, 180]
    """

    lat: float = Field(ge=-90, le=90)  # Degrees northing
    lon: float = Field(ge=-180, le=180)  # Degrees easting
    alt: float = 0.0

    model_config = ConfigDict(frozen=True)

    def __init__(self, lat: float, lon: float, alt: float = 0.0, **data) -> None:
        super().__init__(lat=lat, lon=lon, alt=alt, **data)

    def __repr__(self) -> str:
        return f"GeoPoint({self.lat}, {self.lon}, {self.alt})"


class TerrainProfile(BaseModel):
    """Elevation profile along the great circle between two points (Value Object).

    Stored column-wise: index ``i`` of every sequence describes the same
    sample. A profile whose endpoints coincide holds a single sample.

    Invariants:
        all sequences share one length, and that length is >= 1
        distances_m[0] == 0
        distances_m strictly increasing
    """

    start: GeoPoint
    end: GeoPoint
    start_alt: float  # Meters above ground at start
    end_alt: float  # Meters above ground at end
    distances_m: tuple[float, ...]  # Cumulative distance from start
    terrain_elev_m: tuple[float, ...]  # Ground elevation at each sample
    great_circle: tuple[tuple[float, float], ...]  # (lat, lon) of each sample
    los_elev_m: tuple[float, ...]  # Straight line between the two antennas

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_profile(self) -> "TerrainProfile":
        n = len(self.distances_m)
        if n < 1:
            raise ValueError("Profile must have at least one sample")
        lengths = {
            len(self.terrain_elev_m),
            len(self.great_circle),
            len(self.los_elev_m),
        }
        if lengths != {n}:
            raise ValueError(
                f"Profile sequences differ in length: distances={n}, "
                f"terrain={len(self.terrain_elev_m)}, "
                f"great_circle={len(self.great_circle)}, los={len(self.los_elev_m)}"
            )
        if self.distances_m[0] != 0:
            raise ValueError(
                f"First sample must be at distance 0, got {self.distances_m[0]}"
            )
        for i in range(1, n):
            if self.distances_m[i] <= self.distances_m[i - 1]:
                raise ValueError("Samples must be strictly ordered by distance")
        return self

    def __len__(self) -> int:
        return len(self.distances_m)

    @property
    def is_degenerate(self) -> bool:
        """True when the profile has a single sample (zero-length path)."""
        return len(self.distances_m) == 1

    @property
    def step_m(self) -> float:
        """Uniform sample spacing; 0.0 for a degenerate profile."""
        if self.is_degenerate:
            return 0.0
        return self.distances_m[1]

    @property
    def total_distance_m(self) -> float:
        return self.distances_m[-1]

    def truncated(self, end_idx: int) -> "TerrainProfile":
        """Return the prefix profile covering samples ``0..=end_idx``.

        Terminal altitudes are kept; the line of sight is recomputed to end
        at the new last sample.
        """
        if not 0 <= end_idx < len(self):
            raise IndexError(f"end_idx {end_idx} out of range for {len(self)} samples")
        terrain = self.terrain_elev_m[: end_idx + 1]
        lat, lon = self.great_circle[end_idx]
        return TerrainProfile(
            start=self.start,
            end=GeoPoint(lat, lon, self.end_alt),
            start_alt=self.start_alt,
            end_alt=self.end_alt,
            distances_m=self.distances_m[: end_idx + 1],
            terrain_elev_m=terrain,
            great_circle=self.great_circle[: end_idx + 1],
            los_elev_m=line_of_sight(
                self.distances_m[: end_idx + 1],
                terrain[0] + self.start_alt,
                terrain[-1] + self.end_alt,
            ),
        )


def line_of_sight(
    distances_m: tuple[float, ...], start_m: float, end_m: float
) -> tuple[float, ...]:
    """Elevation of the straight line from ``start_m`` to ``end_m`` at each distance."""
    total = distances_m[-1]
    if total == 0:
        return (float(start_m),) * len(distances_m)
    return tuple(
        float(start_m + (end_m - start_m) * d / total) for d in distances_m
    )
