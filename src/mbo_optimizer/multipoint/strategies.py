"""
Multi-point proposal strategies.

Re-optimizing the same criterion on the same fit k times would return the
same optimum k times. The strategies here diversify a batch either by
lying about pending points (constant liar) or by drawing a different
exploration weight per batch member (qCB).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Type

import numpy as np

from ..acquisition.criteria import ConfidenceBound, InfillCriterion
from ..acquisition.optimizer import CriterionOptimizer
from ..core.errors import CriterionOptimizationFailure, SurrogateFitFailure
from ..core.path import PathOverlay, Point
from ..models.base import FittedSurrogate, Surrogate
from ..utils.constants import DEFAULT_CB_LAMBDA, DEFAULT_LIE_VALUE, RANDOM_DISTINCT_TRIES

logger = logging.getLogger(__name__)

LIE_VALUES = ("min", "mean", "max")


@dataclass
class Proposal:
    """A proposed point and the criterion value it was selected with."""

    point: Point
    criterion_value: Optional[float] = None


@dataclass
class ProposalContext:
    """
    Everything a strategy needs to propose one batch.

    `X` and `y` are the encoded training inputs and the (single) modeled
    objective values the current fit was trained on. Strategies must not
    modify them.
    """

    space: "ParameterSpace"  # type: ignore  # noqa: F821
    surrogate: Surrogate
    model: FittedSurrogate
    criterion: InfillCriterion
    optimizer: CriterionOptimizer
    X: np.ndarray
    y: np.ndarray
    minimize: bool
    rng: np.random.Generator

    @property
    def best_value(self) -> float:
        return float(np.min(self.y) if self.minimize else np.max(self.y))


def propose_point(
    context: ProposalContext,
    criterion: InfillCriterion,
    model: FittedSurrogate,
    best_value: Optional[float],
    exclude: Sequence[Point] = ()
) -> Proposal:
    """
    Optimize a criterion, falling back to a random feasible point.

    The fallback is used when the optimizer finds no feasible candidate and
    when the optimum is already part of `exclude` (the batch so far).

    Args:
        context: Proposal context (space, optimizer, rng)
        criterion: Criterion to maximize
        model: Fitted surrogate to score with
        best_value: Best value passed to the criterion
        exclude: Points that must not be proposed again

    Returns:
        Proposal
    """
    try:
        point, score = context.optimizer.argmax(
            criterion, context.space, model, best_value, rng=context.rng
        )
    except CriterionOptimizationFailure as e:
        logger.warning(f"Criterion optimization failed ({e}); using a random feasible point")
        return Proposal(_random_distinct(context, exclude))

    if point in exclude:
        logger.debug(f"Optimum {point} already in batch; replacing with a random point")
        return Proposal(_random_distinct(context, exclude))

    return Proposal(point, score)


def _random_distinct(context: ProposalContext, exclude: Sequence[Point]) -> Point:
    point = context.space.random_point(context.rng)
    for _ in range(RANDOM_DISTINCT_TRIES):
        if point not in exclude:
            return point
        point = context.space.random_point(context.rng)
    if point in exclude:
        logger.warning(
            f"No point outside the current batch found in {RANDOM_DISTINCT_TRIES} random draws; "
            f"proposing duplicate {point}"
        )
    return point


class MultiPointStrategy(ABC):
    """Base class for batch proposal strategies."""

    name = "strategy"

    @abstractmethod
    def propose_batch(self, k: int, context: ProposalContext) -> List[Proposal]:
        """
        Propose k distinct points.

        Args:
            k: Batch size
            context: Current fit and training data

        Returns:
            List of k proposals
        """


class ConstantLiar(MultiPointStrategy):
    """
    Constant liar batch proposal.

    After each pick the point is added to a disposable overlay with a fixed
    lie (min, mean or max of the real observed values) and a temporary
    surrogate is refit, which flattens the criterion around the pick.
    """

    name = "constant_liar"

    def __init__(self, lie_value: str = DEFAULT_LIE_VALUE):
        if lie_value not in LIE_VALUES:
            raise ValueError(f"lie_value must be one of {LIE_VALUES}, got {lie_value}")
        self.lie_value = lie_value

    def lie(self, y: np.ndarray) -> float:
        """Lie imputed for every pending point of a batch."""
        if self.lie_value == "min":
            return float(np.min(y))
        elif self.lie_value == "max":
            return float(np.max(y))
        return float(np.mean(y))

    def propose_batch(self, k, context):
        lie = self.lie(context.y)
        overlay = PathOverlay(context.X, context.y)
        model = context.model
        batch: List[Proposal] = []

        for j in range(k):
            if j > 0:
                try:
                    model = context.surrogate.fit(overlay.X, overlay.y)
                except SurrogateFitFailure as e:
                    logger.warning(f"Temporary refit on lied data failed ({e}); reusing previous fit")

            y = overlay.y
            best_value = float(np.min(y) if context.minimize else np.max(y))
            proposal = propose_point(
                context, context.criterion, model, best_value,
                exclude=[p.point for p in batch],
            )
            batch.append(proposal)
            overlay.append(context.space.encode(proposal.point), lie)

        logger.debug(f"Constant liar ({self.lie_value}={lie:.6g}) proposed {len(batch)} points")
        return batch


class QConfidenceBound(MultiPointStrategy):
    """
    Batch confidence bound.

    Every batch member optimizes CB on the same fit with its own
    exploration weight λ ~ Exponential(scale=cb_lambda).
    """

    name = "qcb"

    def __init__(self, cb_lambda: float = DEFAULT_CB_LAMBDA):
        if cb_lambda <= 0:
            raise ValueError("cb_lambda must be positive")
        self.cb_lambda = cb_lambda

    def propose_batch(self, k, context):
        batch: List[Proposal] = []
        for _ in range(k):
            lam = float(context.rng.exponential(scale=self.cb_lambda))
            criterion = ConfidenceBound(minimize=context.minimize, cb_lambda=lam)
            proposal = propose_point(
                context, criterion, context.model, context.best_value,
                exclude=[p.point for p in batch],
            )
            batch.append(proposal)
        return batch


_STRATEGIES: Dict[str, Type[MultiPointStrategy]] = {
    "constant_liar": ConstantLiar,
    "qcb": QConfidenceBound,
}


def make_multipoint(
    method: str,
    lie_value: str = DEFAULT_LIE_VALUE,
    cb_lambda: float = DEFAULT_CB_LAMBDA
) -> MultiPointStrategy:
    """
    Build a multi-point strategy by name.

    Args:
        method: 'constant_liar' or 'qcb'
        lie_value: Lie aggregator for constant liar
        cb_lambda: Scale of the λ distribution for qCB

    Returns:
        Strategy instance
    """
    if method == "constant_liar":
        return ConstantLiar(lie_value)
    elif method == "qcb":
        return QConfidenceBound(cb_lambda)
    raise ValueError(f"Unknown multi-point method: {method} (available: {', '.join(_STRATEGIES)})")
