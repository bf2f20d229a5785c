"""Tests for the H3-backed hex grid helpers."""

from __future__ import annotations

import logging

import h3
import pytest

from domain.coverage import hexgrid
from domain.coverage.errors import InvalidCoverageRequestError
from domain.coverage.value_objects import CoverageSample
from domain.terrain.value_objects import GeoPoint

CENTER = GeoPoint(36.1596, -112.306877)


@pytest.mark.parametrize("resolution", [0, 9, 15])
def test_validate_resolution_accepts_range(resolution):
    assert hexgrid.validate_resolution(resolution) == resolution


@pytest.mark.parametrize("resolution", [-1, 16, 9.0, True, "9"])
def test_validate_resolution_rejects(resolution):
    with pytest.raises(InvalidCoverageRequestError):
        hexgrid.validate_resolution(resolution)


def test_resolve_cell_matches_h3():
    cell = hexgrid.resolve_cell(CENTER, 10)

    assert cell == h3.str_to_int(h3.latlng_to_cell(CENTER.lat, CENTER.lon, 10))
    assert h3.get_resolution(h3.int_to_str(cell)) == 10


def test_centroid_resolves_back_to_cell():
    cell = hexgrid.resolve_cell(CENTER, 9)
    lat, lon = hexgrid.cell_centroid(cell)

    assert hexgrid.resolve_cell(GeoPoint(lat, lon), 9) == cell


def test_ring_zero_is_the_cell():
    cell = hexgrid.resolve_cell(CENTER, 9)
    assert hexgrid.ring_cells(cell, 0) == [cell]


@pytest.mark.parametrize("ring", [1, 2, 5])
def test_ring_has_six_k_cells_at_exact_distance(ring):
    cell = hexgrid.resolve_cell(CENTER, 9)
    origin = h3.int_to_str(cell)

    members = hexgrid.ring_cells(cell, ring)

    assert len(members) == 6 * ring
    assert len(set(members)) == len(members)
    for member in members:
        assert h3.grid_distance(origin, h3.int_to_str(member)) == ring


def test_ring_count_zero_radius():
    assert hexgrid.ring_count(10, 0.0) == 0


def test_ring_count_uses_edge_times_sqrt3():
    edge_km = hexgrid.edge_length_km(9)
    spacing_km = edge_km * hexgrid.SQRT_3

    assert hexgrid.ring_count(9, spacing_km * 3.5) == 3
    assert hexgrid.ring_count(9, spacing_km * 0.99) == 0


def test_ring_count_monotonic_in_radius():
    counts = [hexgrid.ring_count(10, r) for r in (0.5, 1.0, 2.0, 12.0)]
    assert counts == sorted(counts)
    assert counts[-1] > counts[0]


def test_coverage_sample_cell_hex():
    cell = hexgrid.resolve_cell(CENTER, 10)
    sample = CoverageSample(cell_id=cell, terrain_elevation_m=1.0, attenuation_db=2.0)

    assert sample.cell_hex == h3.latlng_to_cell(CENTER.lat, CENTER.lon, 10)


@pytest.mark.parametrize("ring", [1, 2, 3])
def test_ring_around_pentagon_has_five_k_cells(ring):
    pentagon = h3.get_pentagons(9)[0]

    members = hexgrid.ring_cells(h3.str_to_int(pentagon), ring)

    assert len(members) == 5 * ring
    assert len(set(members)) == len(members)
    for member in members:
        assert h3.grid_distance(pentagon, h3.int_to_str(member)) == ring


def test_ring_falls_back_to_disk_difference(monkeypatch):
    cell = hexgrid.resolve_cell(CENTER, 9)
    expected = set(hexgrid.ring_cells(cell, 2))

    def failing_ring(origin, k):
        raise h3.H3BaseException("cannot walk ring")

    monkeypatch.setattr(h3, "grid_ring", failing_ring)

    assert set(hexgrid.ring_cells(cell, 2)) == expected


def test_ring_omitted_when_h3_cannot_resolve(monkeypatch, caplog):
    cell = hexgrid.resolve_cell(CENTER, 9)

    def failing(origin, k):
        raise h3.H3BaseException("pentagon distortion")

    monkeypatch.setattr(h3, "grid_ring", failing)
    monkeypatch.setattr(h3, "grid_disk", failing)

    with caplog.at_level(logging.WARNING, logger="domain.coverage.hexgrid"):
        assert hexgrid.ring_cells(cell, 1) == []

    assert "Omitting ring 1" in caplog.text
    assert hexgrid.ring_cells(cell, 0) == [cell]
