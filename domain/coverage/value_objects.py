"""Coverage Bounded Context - Value Objects.

Environmental parameters shared by every loss evaluation, and the
per-cell result of a coverage estimate.
"""

from __future__ import annotations

from enum import IntEnum

import h3
from pydantic import BaseModel, ConfigDict, Field


class Climate(IntEnum):
    """Radio climate zone."""

    EQUATORIAL = 1
    CONTINENTAL_SUBTROPICAL = 2
    MARITIME_SUBTROPICAL = 3
    DESERT = 4
    CONTINENTAL_TEMPERATE = 5
    MARITIME_TEMPERATE_OVER_LAND = 6
    MARITIME_TEMPERATE_OVER_SEA = 7


class Polarization(IntEnum):
    HORIZONTAL = 0
    VERTICAL = 1


class ModeVariability(IntEnum):
    """How time, location and situation variability are combined."""

    SINGLE_MESSAGE = 0
    ACCIDENTAL = 1
    MOBILE = 2
    BROADCAST = 3


class LossParameters(BaseModel):
    """Immutable environment bundle passed to every loss evaluation.

    Percentiles are not range-checked here; the propagation model rejects
    values it cannot use. Derive variants with ``model_copy(update=...)``.
    """

    climate: Climate = Climate.CONTINENTAL_TEMPERATE
    surface_refractivity: float = 301.0  # N-units
    polarization: Polarization = Polarization.VERTICAL
    ground_epsilon: float = 15.0  # Relative permittivity
    ground_sigma: float = 0.005  # Conductivity, S/m
    variability_mode: ModeVariability = ModeVariability.MOBILE
    time_pct: float = 95.0
    location_pct: float = 95.0
    situation_pct: float = 95.0

    model_config = ConfigDict(frozen=True)


class CoverageSample(BaseModel):
    """Loss estimate for one hex cell (Value Object)."""

    cell_id: int = Field(ge=0, lt=2**64)  # H3 index as unsigned 64-bit integer
    terrain_elevation_m: float  # Ground elevation at the cell centroid
    attenuation_db: float

    model_config = ConfigDict(frozen=True)

    @property
    def cell_hex(self) -> str:
        """H3 index in its usual hexadecimal string form."""
        return h3.int_to_str(self.cell_id)
