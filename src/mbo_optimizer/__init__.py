"""
mbo_optimizer: Sequential Model-Based Optimization.

Fits a surrogate to observed (point, value) pairs, optimizes an infill
criterion to propose the next point(s), evaluates them and repeats until
a stop rule triggers. Supports batch proposals (constant liar, qCB) and
multi-objective runs through ParEGO scalarization.
"""

from .acquisition.criteria import InfillCriterion, make_criterion, register_criterion
from .acquisition.optimizer import CriterionOptimizer
from .core.control import (
    FinalSelectionControl,
    InfillControl,
    MBOControl,
    MultiObjectiveControl,
    MultiPointControl,
    TerminationControl,
)
from .core.controller import Result, RunState, SMBOController, optimize
from .core.errors import (
    CriterionOptimizationFailure,
    EmptyDesignError,
    EvaluationFailure,
    InvalidControlError,
    InvalidSpaceError,
    MBOError,
    SurrogateFitFailure,
)
from .core.path import Observation, ObservationSource, OptimizationPath, Point
from .core.termination import TerminationReason
from .design.sampling import generate_design
from .space.parameter_space import CategoricalParameter, NumericParameter, ParameterSpace

__version__ = "0.1.0"

__all__ = [
    "SMBOController",
    "optimize",
    "Result",
    "RunState",
    "MBOControl",
    "TerminationControl",
    "InfillControl",
    "MultiPointControl",
    "MultiObjectiveControl",
    "FinalSelectionControl",
    "TerminationReason",
    "ParameterSpace",
    "NumericParameter",
    "CategoricalParameter",
    "Point",
    "Observation",
    "ObservationSource",
    "OptimizationPath",
    "generate_design",
    "InfillCriterion",
    "make_criterion",
    "register_criterion",
    "CriterionOptimizer",
    "MBOError",
    "InvalidSpaceError",
    "InvalidControlError",
    "EmptyDesignError",
    "EvaluationFailure",
    "SurrogateFitFailure",
    "CriterionOptimizationFailure",
]
