"""
Error taxonomy for the decomposition pipeline.

Every failure is raised synchronously to the caller; a deterministic fit
has nothing to retry.
"""

from typing import Optional


class DecompositionError(Exception):
    """Base class for all tick-decomposition errors."""
    pass


class DataError(DecompositionError, ValueError):
    """Raised when the tick series is empty, too short, or malformed."""
    pass


class EstimationError(DecompositionError, RuntimeError):
    """Raised when a sub-model cannot be estimated."""

    def __init__(self, submodel: str, reason: str):
        self.submodel = submodel
        self.reason = reason
        super().__init__(f"{submodel} model: {reason}")


class EvaluationError(DecompositionError, ValueError):
    """Raised when a CDF query has invalid inputs."""

    def __init__(self, message: str, value: Optional[float] = None):
        self.value = value
        super().__init__(message)
