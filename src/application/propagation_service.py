"""Caller-facing propagation service.

Example:
    >>> from application import PropagationService
    >>> from domain.terrain.value_objects import GeoPoint
    >>> from infrastructure.terrain import load_tiles
    >>> service = PropagationService(load_tiles("nasadem/3-arcsecond/srtm/"))
    >>> center = GeoPoint(36.159600, -112.306877, 1000)
    >>> coverage = service.coverage(center, 10, 900e6, 12, 1, rx_threshold_db=None)
    >>> print("h3_id,elev,atten")
    >>> for s in coverage:
    ...     print(f"{s.cell_id:x},{s.terrain_elevation_m:.0f},{-s.attenuation_db:f}")
"""

from __future__ import annotations

from typing import Any

from domain.coverage.propagation import PropagationModel
from domain.coverage.services import (
    DEFAULT_MODEL,
    estimate_coverage,
    path_loss,
    point_to_point_loss,
)
from domain.coverage.value_objects import CoverageSample, LossParameters
from domain.terrain.services import EARTH_RADIUS_M, MAX_STEP_M, build_profile
from domain.terrain.tiles import Tiles
from domain.terrain.value_objects import GeoPoint, TerrainProfile


class PropagationService:
    """Loss and coverage operations over one terrain source.

    The service is immutable; ``with_params`` returns a copy with updated
    loss parameters sharing the same tiles and model.
    """

    def __init__(
        self,
        tiles: Tiles,
        params: LossParameters | None = None,
        model: PropagationModel | None = None,
        max_workers: int | None = None,
    ) -> None:
        self._tiles = tiles
        self._params = params or LossParameters()
        self._model = model or DEFAULT_MODEL
        self._max_workers = max_workers

    @property
    def tiles(self) -> Tiles:
        return self._tiles

    @property
    def params(self) -> LossParameters:
        return self._params

    def with_params(self, **changes: Any) -> "PropagationService":
        """Copy of this service with some LossParameters fields replaced."""
        params = LossParameters.model_validate(
            {**self._params.model_dump(), **changes}
        )
        return PropagationService(self._tiles, params, self._model, self._max_workers)

    def elevation(self, point: GeoPoint) -> float | None:
        """Terrain elevation at ``point``, or None where the DEM has no data."""
        return self._tiles.elevation(point)

    def profile(
        self,
        start: GeoPoint,
        end: GeoPoint,
        earth_curve: bool = False,
        earth_radius_m: float | None = None,
    ) -> TerrainProfile:
        return build_profile(
            self._tiles,
            start,
            end,
            max_step_m=MAX_STEP_M,
            earth_curve=earth_curve,
            earth_radius_m=EARTH_RADIUS_M if earth_radius_m is None else earth_radius_m,
        )

    def point_to_point(self, profile: TerrainProfile, frequency_hz: float) -> float:
        """Signal loss in dB between the ends of ``profile``."""
        return point_to_point_loss(profile, frequency_hz, self._params, self._model)

    def path(self, profile: TerrainProfile, frequency_hz: float) -> list[float]:
        """Signal loss in dB at every sample after the first along ``profile``."""
        return path_loss(
            profile, frequency_hz, self._params, self._model, self._max_workers
        )

    def coverage(
        self,
        center: GeoPoint,
        hex_resolution: int,
        frequency_hz: float,
        max_radius_km: float,
        receiver_alt_m: float,
        rx_threshold_db: float | None = None,
    ) -> list[CoverageSample]:
        """Estimated coverage of a transmitter at ``center`` (unordered)."""
        return estimate_coverage(
            self._tiles,
            center,
            hex_resolution,
            frequency_hz,
            max_radius_km,
            receiver_alt_m,
            self._params,
            rx_threshold_db=rx_threshold_db,
            model=self._model,
            max_workers=self._max_workers,
        )
