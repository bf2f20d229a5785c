"""Application services.

PropagationService binds a terrain source, loss parameters and a model, and
exposes the caller-facing elevation, profile, loss and coverage operations.
"""

from .propagation_service import PropagationService

__all__ = ["PropagationService"]
