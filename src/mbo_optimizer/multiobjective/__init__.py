"""Multi-objective scalarization and Pareto filtering."""

from .parego import ParEGOScalarizer
from .pareto import dominates, non_dominated_indices

__all__ = ["ParEGOScalarizer", "dominates", "non_dominated_indices"]
