"""Tests for the TerrainDiffractionModel and its loss components."""

from __future__ import annotations

import math

import numpy as np
import pytest

from domain.coverage.errors import (
    InvalidFrequencyError,
    InvalidGroundConstantsError,
    InvalidPathError,
    InvalidPercentileError,
    InvalidRefractivityError,
    InvalidTerminalHeightError,
    ModelError,
)
from domain.coverage.propagation import (
    ACTUAL_EARTH_CURVATURE,
    TerrainDiffractionModel,
    effective_curvature,
    free_space_loss_db,
    ground_reflection_gain_db,
    knife_edge_loss_db,
    terrain_irregularity_m,
    variability_margin_db,
)
from domain.coverage.value_objects import (
    Climate,
    LossParameters,
    ModeVariability,
    Polarization,
)
from domain.errors import DomainError

FREQ_HZ = 900e6
WAVELENGTH_M = 299_792_458.0 / FREQ_HZ


def _loss(terrain, step_m=90.0, start_alt=30.0, end_alt=2.0, **overrides) -> float:
    params = LossParameters().model_copy(update=overrides.pop("params", {}))
    fields = dict(
        climate=params.climate,
        surface_refractivity=params.surface_refractivity,
        frequency_hz=FREQ_HZ,
        polarization=params.polarization,
        ground_epsilon=params.ground_epsilon,
        ground_sigma=params.ground_sigma,
        variability_mode=params.variability_mode,
        time_pct=params.time_pct,
        location_pct=params.location_pct,
        situation_pct=params.situation_pct,
    )
    fields.update(overrides)
    return TerrainDiffractionModel().point_to_point(
        start_alt, end_alt, step_m, terrain, **fields
    )


# ===========================================================================
# Components
# ===========================================================================
def test_free_space_loss_one_km_900mhz():
    assert free_space_loss_db(1000.0, WAVELENGTH_M) == pytest.approx(91.5, abs=0.1)


def test_knife_edge_grazing_is_six_db():
    assert knife_edge_loss_db(0.0) == pytest.approx(6.0, abs=0.1)


def test_knife_edge_zero_when_clear():
    assert knife_edge_loss_db(-0.78) == 0.0
    assert knife_edge_loss_db(-3.0) == 0.0


def test_knife_edge_grows_with_obstruction():
    assert knife_edge_loss_db(2.0) > knife_edge_loss_db(1.0) > knife_edge_loss_db(0.0)


def test_effective_curvature_is_four_thirds_earth():
    k = ACTUAL_EARTH_CURVATURE / effective_curvature(301.0, 0.0)
    assert k == pytest.approx(4 / 3, rel=0.01)


def test_refractivity_decays_with_elevation():
    assert effective_curvature(301.0, 3000.0) > effective_curvature(301.0, 0.0)


@pytest.mark.parametrize("polarization", list(Polarization))
def test_ground_reflection_gain_bounded(polarization):
    gain = ground_reflection_gain_db(
        5000.0, 30.0, 2.0, WAVELENGTH_M, polarization, 15.0, 0.005
    )
    assert 0.0 <= gain <= 10 * math.log10(2.0) + 1e-9


def test_horizontal_reflects_more_than_vertical_at_grazing():
    args = (20_000.0, 10.0, 2.0, WAVELENGTH_M)
    horizontal = ground_reflection_gain_db(*args, Polarization.HORIZONTAL, 15.0, 0.005)
    vertical = ground_reflection_gain_db(*args, Polarization.VERTICAL, 15.0, 0.005)
    assert horizontal > vertical


def test_terrain_irregularity_of_slope_is_zero():
    distances = np.arange(50, dtype=np.float64) * 90.0
    terrain = 100.0 + 0.05 * distances
    assert terrain_irregularity_m(distances, terrain) == pytest.approx(0.0, abs=1e-6)


def test_median_percentiles_have_no_margin():
    for mode in ModeVariability:
        margin = variability_margin_db(
            20_000.0, FREQ_HZ, 50.0, Climate.DESERT, mode, 50.0, 50.0, 50.0
        )
        assert margin == pytest.approx(0.0, abs=1e-9)


def test_broadcast_margin_exceeds_single_message():
    args = (50_000.0, FREQ_HZ, 90.0, Climate.CONTINENTAL_TEMPERATE)
    single = variability_margin_db(*args, ModeVariability.SINGLE_MESSAGE, 90, 90, 90)
    broadcast = variability_margin_db(*args, ModeVariability.BROADCAST, 90, 90, 90)
    assert broadcast > single > 0


# ===========================================================================
# Full model
# ===========================================================================
def test_flat_path_loss_is_finite_and_above_free_space_floor():
    terrain = [500.0] * 50
    loss = _loss(terrain)

    assert math.isfinite(loss)
    assert loss > free_space_loss_db(49 * 90.0, WAVELENGTH_M) - 3.01


def test_model_is_idempotent():
    terrain = list(500.0 + 40.0 * np.sin(np.linspace(0, 6, 80)))
    assert _loss(terrain) == _loss(terrain)


def test_longer_path_loses_more():
    assert _loss([500.0] * 100) > _loss([500.0] * 20)


def test_obstruction_adds_loss():
    flat = [500.0] * 61
    ridge = list(flat)
    ridge[30] = 900.0

    assert _loss(ridge) > _loss(flat) + 10.0


def test_higher_confidence_means_more_loss():
    terrain = list(500.0 + 40.0 * np.sin(np.linspace(0, 6, 80)))
    low = _loss(terrain, params={"time_pct": 50.0, "location_pct": 50.0, "situation_pct": 50.0})
    high = _loss(terrain, params={"time_pct": 99.0, "location_pct": 99.0, "situation_pct": 99.0})
    assert high > low


def test_climate_changes_loss():
    terrain = [500.0] * 400
    desert = _loss(terrain, climate=Climate.DESERT)
    equatorial = _loss(terrain, climate=Climate.EQUATORIAL)
    assert desert != equatorial


# ===========================================================================
# Input validation
# ===========================================================================
@pytest.mark.parametrize("frequency_hz", [1e6, 0.0, -900e6, 30e9, float("nan")])
def test_invalid_frequency(frequency_hz):
    with pytest.raises(InvalidFrequencyError):
        _loss([500.0] * 10, frequency_hz=frequency_hz)


@pytest.mark.parametrize("field", ["time_pct", "location_pct", "situation_pct"])
@pytest.mark.parametrize("value", [0.0, 100.0, -5.0, 150.0])
def test_invalid_percentile(field, value):
    with pytest.raises(InvalidPercentileError):
        _loss([500.0] * 10, **{field: value})


@pytest.mark.parametrize("refractivity", [200.0, 450.0])
def test_invalid_refractivity(refractivity):
    with pytest.raises(InvalidRefractivityError):
        _loss([500.0] * 10, surface_refractivity=refractivity)


@pytest.mark.parametrize(
    "overrides", [{"ground_epsilon": 0.5}, {"ground_sigma": 0.0}, {"ground_sigma": -1.0}]
)
def test_invalid_ground_constants(overrides):
    with pytest.raises(InvalidGroundConstantsError):
        _loss([500.0] * 10, **overrides)


@pytest.mark.parametrize("start_alt,end_alt", [(0.1, 2.0), (30.0, 5000.0)])
def test_invalid_terminal_height(start_alt, end_alt):
    with pytest.raises(InvalidTerminalHeightError):
        _loss([500.0] * 10, start_alt=start_alt, end_alt=end_alt)


@pytest.mark.parametrize(
    "terrain,step_m",
    [([500.0], 90.0), ([500.0, float("nan"), 500.0], 90.0), ([500.0] * 5, 0.0)],
)
def test_invalid_path(terrain, step_m):
    with pytest.raises(InvalidPathError):
        _loss(terrain, step_m=step_m)


def test_model_errors_share_the_domain_root():
    with pytest.raises(ModelError) as exc_info:
        _loss([500.0] * 10, frequency_hz=1.0)
    assert isinstance(exc_info.value, DomainError)
