"""Coverage Bounded Context - Domain Services.

Orchestrates the propagation model over terrain profiles:

- point_to_point_loss: one model evaluation over a whole profile
- path_loss: loss at every prefix of a profile, order preserved
- estimate_coverage: hex ring expansion around a transmitter

Fan-outs run on a ThreadPoolExecutor. Tiles, LossParameters and the model
are shared read-only by all workers; each worker owns the profile it builds.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import Future, ThreadPoolExecutor, as_completed

from domain.coverage import hexgrid
from domain.coverage.errors import DegenerateProfileError, InvalidCoverageRequestError
from domain.coverage.propagation import PropagationModel, TerrainDiffractionModel
from domain.coverage.value_objects import CoverageSample, LossParameters
from domain.terrain.services import MAX_STEP_M, build_profile
from domain.terrain.tiles import Tiles
from domain.terrain.value_objects import GeoPoint, TerrainProfile

logger = logging.getLogger(__name__)

DEFAULT_MODEL: PropagationModel = TerrainDiffractionModel()


# ---------------------------------------------------------------------------
# Point-to-point
# ---------------------------------------------------------------------------
def point_to_point_loss(
    profile: TerrainProfile,
    frequency_hz: float,
    params: LossParameters,
    model: PropagationModel | None = None,
) -> float:
    """Attenuation in dB between the two ends of ``profile``.

    Raises:
        DegenerateProfileError: If the profile has fewer than 2 samples
        ModelError: If the model rejects its inputs
    """
    if len(profile) < 2:
        raise DegenerateProfileError(
            f"Point-to-point loss needs at least 2 samples, got {len(profile)}"
        )
    return _evaluate(
        model or DEFAULT_MODEL,
        profile.start_alt,
        profile.end_alt,
        profile.distances_m[1],
        profile.terrain_elev_m,
        frequency_hz,
        params,
    )


# ---------------------------------------------------------------------------
# Path loss
# ---------------------------------------------------------------------------
def path_loss(
    profile: TerrainProfile,
    frequency_hz: float,
    params: LossParameters,
    model: PropagationModel | None = None,
    max_workers: int | None = None,
) -> list[float]:
    """Loss at every sample along ``profile``.

    Element ``i`` is the loss as if the path ended at sample ``i + 1``: the
    model sees terrain ``[0..=i+1]`` with the full profile's step size and
    terminal heights. Evaluations run in parallel; the result keeps
    sample order. The first failure aborts the whole call.

    Raises:
        DegenerateProfileError: If the profile has fewer than 2 samples
        ModelError: If any prefix evaluation fails
    """
    if len(profile) < 2:
        raise DegenerateProfileError(
            f"Path loss needs at least 2 samples, got {len(profile)}"
        )
    model = model or DEFAULT_MODEL
    terrain = profile.terrain_elev_m
    step_size_m = profile.distances_m[1]

    def prefix_loss(end_idx: int) -> float:
        return _evaluate(
            model,
            profile.start_alt,
            profile.end_alt,
            step_size_m,
            terrain[: end_idx + 1],
            frequency_hz,
            params,
        )

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(prefix_loss, range(1, len(terrain))))


# ---------------------------------------------------------------------------
# Coverage
# ---------------------------------------------------------------------------
def estimate_coverage(
    tiles: Tiles,
    center: GeoPoint,
    hex_resolution: int,
    frequency_hz: float,
    max_radius_km: float,
    receiver_alt_m: float,
    params: LossParameters,
    rx_threshold_db: float | None = None,
    model: PropagationModel | None = None,
    max_workers: int | None = None,
) -> list[CoverageSample]:
    """Estimate loss from ``center`` to every hex cell within ``max_radius_km``.

    Rings around the transmitter cell are expanded until the ring distance
    exceeds the radius; each ring's cells are evaluated in parallel. The
    result order is unspecified.

    Args:
        tiles: Terrain data source shared by all workers
        center: Transmitter; ``center.alt`` is its height above ground
        hex_resolution: H3 resolution (0-15)
        frequency_hz: Carrier frequency
        max_radius_km: Search radius
        receiver_alt_m: Receiver height above ground at every cell
        params: Environmental parameters for the model
        rx_threshold_db: Keep only cells with attenuation strictly below this
        model: Propagation model (defaults to TerrainDiffractionModel)
        max_workers: Thread pool size (executor default if None)

    Raises:
        InvalidCoverageRequestError: On invalid resolution, frequency or radius
        TerrainError: If a cell's profile cannot be built
        ModelError: If the model rejects a cell's inputs

    Example:
        >>> tiles = load_tiles("nasadem/3-arcsecond/srtm/")
        >>> center = GeoPoint(36.159600, -112.306877, 1000)
        >>> samples = estimate_coverage(
        ...     tiles, center, 10, 900e6, 12, 1, LossParameters()
        ... )
        >>> for s in samples:
        ...     print(f"{s.cell_id:x},{s.terrain_elevation_m:.0f},{-s.attenuation_db:f}")
    """
    hexgrid.validate_resolution(hex_resolution)
    if not (math.isfinite(frequency_hz) and frequency_hz > 0):
        raise InvalidCoverageRequestError(
            f"frequency_hz must be positive, got {frequency_hz}"
        )
    if not (math.isfinite(max_radius_km) and max_radius_km >= 0):
        raise InvalidCoverageRequestError(
            f"max_radius_km must be non-negative, got {max_radius_km}"
        )

    model = model or DEFAULT_MODEL
    center_cell = hexgrid.resolve_cell(center, hex_resolution)
    rings = hexgrid.ring_count(hex_resolution, max_radius_km)
    logger.debug(
        "Coverage from %x: res=%d radius=%.3f km -> %d rings",
        center_cell,
        hex_resolution,
        max_radius_km,
        rings,
    )

    samples: list[CoverageSample] = []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for ring in range(rings + 1):
            cells = hexgrid.ring_cells(center_cell, ring)
            futures = [
                executor.submit(
                    _evaluate_cell,
                    tiles,
                    center,
                    cell,
                    frequency_hz,
                    receiver_alt_m,
                    params,
                    model,
                )
                for cell in cells
            ]
            samples.extend(_collect(futures))
            logger.debug("Ring %d: %d cells evaluated", ring, len(cells))

    evaluated = len(samples)
    if rx_threshold_db is not None:
        samples = [s for s in samples if s.attenuation_db < rx_threshold_db]

    logger.info(
        "Coverage from %x: %d rings, %d cells evaluated, %d kept",
        center_cell,
        rings,
        evaluated,
        len(samples),
    )
    return samples


def _evaluate_cell(
    tiles: Tiles,
    center: GeoPoint,
    cell: int,
    frequency_hz: float,
    receiver_alt_m: float,
    params: LossParameters,
    model: PropagationModel,
) -> CoverageSample:
    lat, lon = hexgrid.cell_centroid(cell)
    profile = build_profile(
        tiles, center, GeoPoint(lat, lon, receiver_alt_m), max_step_m=MAX_STEP_M
    )
    elevation = profile.terrain_elev_m[-1]

    # Zero-length path: nothing to attenuate
    if profile.is_degenerate:
        return CoverageSample(
            cell_id=cell, terrain_elevation_m=elevation, attenuation_db=0.0
        )

    attenuation = _evaluate(
        model,
        center.alt,
        receiver_alt_m,
        profile.distances_m[1],
        profile.terrain_elev_m,
        frequency_hz,
        params,
    )
    return CoverageSample(
        cell_id=cell, terrain_elevation_m=elevation, attenuation_db=attenuation
    )


def _collect(futures: list[Future[CoverageSample]]) -> list[CoverageSample]:
    """Gather results in completion order; cancel the rest on first failure."""
    results: list[CoverageSample] = []
    try:
        for future in as_completed(futures):
            results.append(future.result())
    except Exception:
        for pending in futures:
            pending.cancel()
        raise
    return results


def _evaluate(
    model: PropagationModel,
    start_alt_m: float,
    end_alt_m: float,
    step_size_m: float,
    terrain_elev_m: tuple[float, ...],
    frequency_hz: float,
    params: LossParameters,
) -> float:
    return model.point_to_point(
        start_alt_m,
        end_alt_m,
        step_size_m,
        terrain_elev_m,
        params.climate,
        params.surface_refractivity,
        frequency_hz,
        params.polarization,
        params.ground_epsilon,
        params.ground_sigma,
        params.variability_mode,
        params.time_pct,
        params.location_pct,
        params.situation_pct,
    )
