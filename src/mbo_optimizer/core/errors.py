"""
Error taxonomy for the SMBO engine.
"""


class MBOError(Exception):
    """Base class for all optimizer errors."""


class InvalidSpaceError(MBOError):
    """Parameter space has no feasible point (or too few distinct ones)."""


class InvalidControlError(MBOError, ValueError):
    """Run configuration is inconsistent or incomplete."""


class EmptyDesignError(MBOError):
    """No successful initial observation is available to fit a surrogate."""


class EvaluationFailure(MBOError):
    """
    A single objective evaluation failed.

    Never propagated out of a run: the controller records the failure as an
    observation without values.
    """

    def __init__(self, message: str, point=None):
        super().__init__(message)
        self.point = point


class SurrogateFitFailure(MBOError):
    """Surrogate model could not be fitted to the current data."""


class CriterionOptimizationFailure(MBOError):
    """Infill optimization found no feasible candidate with a finite score."""
