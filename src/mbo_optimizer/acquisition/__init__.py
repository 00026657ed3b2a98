"""Infill criteria and their optimization."""

from .criteria import (
    AugmentedExpectedImprovement,
    ConfidenceBound,
    ExpectedImprovement,
    ExpectedQuantileImprovement,
    InfillCriterion,
    MeanResponse,
    available_criteria,
    expected_improvement,
    make_criterion,
    register_criterion,
)
from .optimizer import CriterionOptimizer

__all__ = [
    "InfillCriterion",
    "ConfidenceBound",
    "ExpectedImprovement",
    "ExpectedQuantileImprovement",
    "AugmentedExpectedImprovement",
    "MeanResponse",
    "expected_improvement",
    "make_criterion",
    "register_criterion",
    "available_criteria",
    "CriterionOptimizer",
]
