"""Coverage Bounded Context - Error Hierarchy.

ModelError covers every input the propagation model refuses. Request-level
validation errors are also ValueErrors so callers validating arguments can
catch them the usual way.
"""

from __future__ import annotations

from domain.errors import DomainError


class ModelError(DomainError):
    """The propagation loss model rejected its inputs."""


class InvalidFrequencyError(ModelError):
    """Frequency outside the model's supported band."""


class InvalidPercentileError(ModelError):
    """A time/location/situation percentile is not strictly inside (0, 100)."""


class InvalidRefractivityError(ModelError):
    """Surface refractivity outside the supported N-unit range."""


class InvalidGroundConstantsError(ModelError):
    """Ground permittivity or conductivity is not physical."""


class InvalidTerminalHeightError(ModelError):
    """Antenna height above ground outside the supported range."""


class InvalidPathError(ModelError):
    """Terrain sequence or step size cannot describe a path."""


class DegenerateProfileError(DomainError, ValueError):
    """Profile has fewer than two samples and cannot be evaluated."""


class InvalidCoverageRequestError(DomainError, ValueError):
    """Coverage request arguments are invalid (resolution, frequency, radius)."""
