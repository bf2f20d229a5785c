"""Propagation loss model port and the default terrain-aware model.

The coverage services only depend on the PropagationModel protocol. The
bundled TerrainDiffractionModel combines:

- free-space loss over the path length,
- Deygout multiple knife-edge diffraction (up to three edges) over the
  terrain raised by the effective-earth bulge,
- an incoherent ground-reflection term on line-of-sight paths,
- a statistical margin built from time, location and situation spreads.

It validates inputs the way a Longley-Rice implementation does, raising a
ModelError subclass for anything outside its domain.
"""

from __future__ import annotations

import cmath
import math
from collections.abc import Sequence
from typing import Protocol

import numpy as np
from numpy.typing import NDArray
from scipy.stats import norm

from domain.coverage.errors import (
    InvalidFrequencyError,
    InvalidGroundConstantsError,
    InvalidPathError,
    InvalidPercentileError,
    InvalidRefractivityError,
    InvalidTerminalHeightError,
)
from domain.coverage.value_objects import Climate, ModeVariability, Polarization

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
SPEED_OF_LIGHT_M_S = 299_792_458.0

MIN_FREQUENCY_HZ = 20e6
MAX_FREQUENCY_HZ = 20e9
MIN_REFRACTIVITY = 250.0
MAX_REFRACTIVITY = 400.0
MIN_TERMINAL_HEIGHT_M = 0.5
MAX_TERMINAL_HEIGHT_M = 3000.0

ACTUAL_EARTH_CURVATURE = 157e-9  # 1/m
REFRACTIVITY_SCALE_HEIGHT_M = 9460.0

KNIFE_EDGE_MIN_V = -0.78  # J(v) is taken as 0 dB at or below this
DEYGOUT_DEPTH = 2  # main edge plus one per side

TIME_SPREAD_DISTANCE_M = 50_000.0
SITUATION_SPREAD_DISTANCE_M = 100_000.0

# Long-term fading spread (dB) reached on long paths, per climate
TIME_SPREAD_DB: dict[Climate, float] = {
    Climate.EQUATORIAL: 5.4,
    Climate.CONTINENTAL_SUBTROPICAL: 6.9,
    Climate.MARITIME_SUBTROPICAL: 5.0,
    Climate.DESERT: 9.6,
    Climate.CONTINENTAL_TEMPERATE: 7.8,
    Climate.MARITIME_TEMPERATE_OVER_LAND: 6.4,
    Climate.MARITIME_TEMPERATE_OVER_SEA: 5.8,
}


# ---------------------------------------------------------------------------
# Port
# ---------------------------------------------------------------------------
class PropagationModel(Protocol):
    """Port for point-to-point attenuation over a terrain profile."""

    def point_to_point(
        self,
        start_alt_m: float,
        end_alt_m: float,
        step_size_m: float,
        terrain_elev_m: Sequence[float],
        climate: Climate,
        surface_refractivity: float,
        frequency_hz: float,
        polarization: Polarization,
        ground_epsilon: float,
        ground_sigma: float,
        variability_mode: ModeVariability,
        time_pct: float,
        location_pct: float,
        situation_pct: float,
    ) -> float:
        """Return attenuation in dB or raise a ModelError."""
        ...


# ---------------------------------------------------------------------------
# Loss components
# ---------------------------------------------------------------------------
def free_space_loss_db(distance_m: float, wavelength_m: float) -> float:
    return 20.0 * math.log10(4.0 * math.pi * distance_m / wavelength_m)


def knife_edge_loss_db(v: float) -> float:
    """Single knife-edge diffraction loss J(v) (ITU-R P.526 approximation)."""
    if v <= KNIFE_EDGE_MIN_V:
        return 0.0
    return 6.9 + 20.0 * math.log10(math.sqrt((v - 0.1) ** 2 + 1.0) + v - 0.1)


def effective_curvature(surface_refractivity: float, mean_elevation_m: float) -> float:
    """Effective earth curvature (1/m) for the given surface refractivity.

    Refractivity is first reduced to the mean path elevation.
    """
    n_s = surface_refractivity * math.exp(-mean_elevation_m / REFRACTIVITY_SCALE_HEIGHT_M)
    return ACTUAL_EARTH_CURVATURE * (1.0 - 0.04665 * math.exp(n_s / 179.3))


def deygout_loss_db(
    distances_m: NDArray[np.float64],
    heights_m: NDArray[np.float64],
    tx_m: float,
    rx_m: float,
    wavelength_m: float,
    depth: int = DEYGOUT_DEPTH,
) -> float:
    """Multiple knife-edge diffraction loss by the Deygout construction.

    ``tx_m``/``rx_m`` are absolute antenna elevations at the first and last
    sample.
    """
    return _deygout(
        distances_m, heights_m, 0, len(distances_m) - 1, tx_m, rx_m, wavelength_m, depth
    )


def _deygout(
    d: NDArray[np.float64],
    h: NDArray[np.float64],
    lo: int,
    hi: int,
    h_lo: float,
    h_hi: float,
    wavelength_m: float,
    depth: int,
) -> float:
    if depth <= 0 or hi - lo < 2:
        return 0.0
    idx = np.arange(lo + 1, hi)
    span = d[hi] - d[lo]
    d1 = d[idx] - d[lo]
    d2 = d[hi] - d[idx]
    clearance = h[idx] - (h_lo + (h_hi - h_lo) * d1 / span)
    v = clearance * np.sqrt(2.0 * span / (wavelength_m * d1 * d2))
    k = int(np.argmax(v))
    v_max = float(v[k])
    if v_max <= KNIFE_EDGE_MIN_V:
        return 0.0
    edge = int(idx[k])
    h_edge = float(h[edge])
    return (
        knife_edge_loss_db(v_max)
        + _deygout(d, h, lo, edge, h_lo, h_edge, wavelength_m, depth - 1)
        + _deygout(d, h, edge, hi, h_edge, h_hi, wavelength_m, depth - 1)
    )


def ground_reflection_gain_db(
    distance_m: float,
    tx_agl_m: float,
    rx_agl_m: float,
    wavelength_m: float,
    polarization: Polarization,
    ground_epsilon: float,
    ground_sigma: float,
) -> float:
    """Gain from adding the ground-reflected ray incoherently (0 to 3 dB)."""
    psi = math.atan2(tx_agl_m + rx_agl_m, distance_m)
    eps_c = complex(ground_epsilon, -60.0 * ground_sigma * wavelength_m)
    sin_psi = math.sin(psi)
    root = cmath.sqrt(eps_c - math.cos(psi) ** 2)
    if polarization == Polarization.VERTICAL:
        r = (eps_c * sin_psi - root) / (eps_c * sin_psi + root)
    else:
        r = (sin_psi - root) / (sin_psi + root)
    return 10.0 * math.log10(1.0 + abs(r) ** 2)


def terrain_irregularity_m(
    distances_m: NDArray[np.float64], terrain_m: NDArray[np.float64]
) -> float:
    """Interdecile range of terrain heights about their linear trend."""
    if len(terrain_m) < 3:
        return 0.0
    slope, intercept = np.polyfit(distances_m, terrain_m, 1)
    residual = terrain_m - (slope * distances_m + intercept)
    p10, p90 = np.percentile(residual, [10.0, 90.0])
    return float(p90 - p10)


def variability_margin_db(
    distance_m: float,
    frequency_hz: float,
    irregularity_m: float,
    climate: Climate,
    variability_mode: ModeVariability,
    time_pct: float,
    location_pct: float,
    situation_pct: float,
) -> float:
    """Loss to add to the median for the requested confidence levels."""
    q = (frequency_hz / 1e6 / 47.7) * irregularity_m
    sigma_location = 10.0 * q / (q + 13.0)
    sigma_time = TIME_SPREAD_DB[climate] * (
        1.0 - math.exp(-distance_m / TIME_SPREAD_DISTANCE_M)
    )
    sigma_situation = 5.0 + 3.0 * math.exp(-distance_m / SITUATION_SPREAD_DISTANCE_M)

    percentiles = np.array([time_pct, location_pct, situation_pct]) / 100.0
    z_time, z_location, z_situation = (float(z) for z in norm.ppf(percentiles))

    if variability_mode == ModeVariability.SINGLE_MESSAGE:
        return z_time * math.sqrt(
            sigma_time**2 + sigma_location**2 + sigma_situation**2
        )
    if variability_mode == ModeVariability.BROADCAST:
        return (
            z_time * sigma_time
            + z_location * sigma_location
            + z_situation * sigma_situation
        )
    # Accidental and mobile: time and location together, situation apart
    return z_time * math.hypot(sigma_time, sigma_location) + z_situation * sigma_situation


# ---------------------------------------------------------------------------
# Default model
# ---------------------------------------------------------------------------
class TerrainDiffractionModel:
    """Stateless terrain-aware loss model; safe to share across threads."""

    def point_to_point(
        self,
        start_alt_m: float,
        end_alt_m: float,
        step_size_m: float,
        terrain_elev_m: Sequence[float],
        climate: Climate,
        surface_refractivity: float,
        frequency_hz: float,
        polarization: Polarization,
        ground_epsilon: float,
        ground_sigma: float,
        variability_mode: ModeVariability,
        time_pct: float,
        location_pct: float,
        situation_pct: float,
    ) -> float:
        terrain = np.asarray(terrain_elev_m, dtype=np.float64)
        _validate(
            start_alt_m,
            end_alt_m,
            step_size_m,
            terrain,
            surface_refractivity,
            frequency_hz,
            ground_epsilon,
            ground_sigma,
            time_pct,
            location_pct,
            situation_pct,
        )

        wavelength_m = SPEED_OF_LIGHT_M_S / frequency_hz
        distances = np.arange(len(terrain), dtype=np.float64) * step_size_m
        total_m = float(distances[-1])

        curvature = effective_curvature(surface_refractivity, float(terrain.mean()))
        heights = terrain + distances * (total_m - distances) * curvature / 2.0
        tx_m = float(heights[0]) + start_alt_m
        rx_m = float(heights[-1]) + end_alt_m

        loss_db = free_space_loss_db(total_m, wavelength_m)
        diffraction_db = deygout_loss_db(distances, heights, tx_m, rx_m, wavelength_m)
        if diffraction_db > 0.0:
            loss_db += diffraction_db
        else:
            loss_db -= ground_reflection_gain_db(
                total_m,
                start_alt_m,
                end_alt_m,
                wavelength_m,
                Polarization(polarization),
                ground_epsilon,
                ground_sigma,
            )

        loss_db += variability_margin_db(
            total_m,
            frequency_hz,
            terrain_irregularity_m(distances, terrain),
            Climate(climate),
            ModeVariability(variability_mode),
            time_pct,
            location_pct,
            situation_pct,
        )
        return float(loss_db)


def _validate(
    start_alt_m: float,
    end_alt_m: float,
    step_size_m: float,
    terrain: NDArray[np.float64],
    surface_refractivity: float,
    frequency_hz: float,
    ground_epsilon: float,
    ground_sigma: float,
    time_pct: float,
    location_pct: float,
    situation_pct: float,
) -> None:
    if not MIN_FREQUENCY_HZ <= frequency_hz <= MAX_FREQUENCY_HZ:
        raise InvalidFrequencyError(
            f"Frequency {frequency_hz} Hz outside "
            f"[{MIN_FREQUENCY_HZ:.0f}, {MAX_FREQUENCY_HZ:.0f}] Hz"
        )
    for name, pct in (
        ("time", time_pct),
        ("location", location_pct),
        ("situation", situation_pct),
    ):
        if not 0.0 < pct < 100.0:
            raise InvalidPercentileError(f"{name} percentile must be in (0, 100), got {pct}")
    if not MIN_REFRACTIVITY <= surface_refractivity <= MAX_REFRACTIVITY:
        raise InvalidRefractivityError(
            f"Surface refractivity {surface_refractivity} outside "
            f"[{MIN_REFRACTIVITY}, {MAX_REFRACTIVITY}] N-units"
        )
    if not ground_epsilon >= 1.0:
        raise InvalidGroundConstantsError(
            f"Ground permittivity must be >= 1, got {ground_epsilon}"
        )
    if not ground_sigma > 0.0:
        raise InvalidGroundConstantsError(
            f"Ground conductivity must be positive, got {ground_sigma}"
        )
    for name, height in (("start", start_alt_m), ("end", end_alt_m)):
        if not MIN_TERMINAL_HEIGHT_M <= height <= MAX_TERMINAL_HEIGHT_M:
            raise InvalidTerminalHeightError(
                f"{name} height {height} m outside "
                f"[{MIN_TERMINAL_HEIGHT_M}, {MAX_TERMINAL_HEIGHT_M}] m"
            )
    if len(terrain) < 2:
        raise InvalidPathError(f"Need at least 2 terrain samples, got {len(terrain)}")
    if not np.all(np.isfinite(terrain)):
        raise InvalidPathError("Terrain elevations must be finite")
    if not step_size_m > 0.0 or not math.isfinite(step_size_m):
        raise InvalidPathError(f"Step size must be positive, got {step_size_m}")
