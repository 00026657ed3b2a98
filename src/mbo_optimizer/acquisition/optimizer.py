"""
Infill criterion optimization over the parameter space.

The criterion surface is cheap but multi-modal and, with integer or
categorical parameters, piecewise constant, so the default optimizer is a
derivative-free focus search: random sampling in a box around the
incumbent that shrinks every round, restarted several times, followed by
an optional L-BFGS-B polish of the continuous coordinates.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from scipy.optimize import differential_evolution, minimize

from ..core.errors import CriterionOptimizationFailure
from ..core.path import Point
from ..models.base import FittedSurrogate
from ..utils.constants import (
    DE_MAX_ITER,
    DEFAULT_OPTIMIZER,
    FOCUS_MAXIT,
    FOCUS_POINTS,
    FOCUS_RESTARTS,
    FOCUS_SHRINK,
    LOCAL_REFINE_MAXITER,
)
from .criteria import InfillCriterion

logger = logging.getLogger(__name__)

# Objective value handed to scipy for infeasible or non-finite candidates
_INFEASIBLE = 1e12


@dataclass
class _RestartResult:
    point: Point
    unit: np.ndarray
    score: float
    restart: int


class CriterionOptimizer:
    """
    Finds the point maximizing an infill criterion.

    Attributes:
        method: 'focussearch' or 'differential_evolution'
        n_points: Candidates per focus round
        maxit: Focus rounds per restart
        restarts: Independent restarts
        local_refine: Polish continuous coordinates with L-BFGS-B
    """

    def __init__(
        self,
        method: str = DEFAULT_OPTIMIZER,
        n_points: int = FOCUS_POINTS,
        maxit: int = FOCUS_MAXIT,
        restarts: int = FOCUS_RESTARTS,
        local_refine: bool = True
    ):
        if method not in ("focussearch", "differential_evolution"):
            raise ValueError(f"Unknown criterion optimizer: {method}")
        if n_points < 1 or maxit < 1 or restarts < 1:
            raise ValueError("n_points, maxit and restarts must be positive")
        self.method = method
        self.n_points = n_points
        self.maxit = maxit
        self.restarts = restarts
        self.local_refine = local_refine

    def argmax(
        self,
        criterion: InfillCriterion,
        space: "ParameterSpace",  # type: ignore  # noqa: F821
        model: FittedSurrogate,
        best_value: Optional[float],
        rng: Optional[np.random.Generator] = None
    ) -> Tuple[Point, float]:
        """
        Optimize the criterion.

        Args:
            criterion: Infill criterion to maximize
            space: Parameter space
            model: Fitted surrogate passed to the criterion
            best_value: Best observed value passed to the criterion
            rng: Random generator (seeds each restart)

        Returns:
            (best point, criterion value)

        Raises:
            CriterionOptimizationFailure: If no feasible candidate has a
                finite criterion value
        """
        rng = rng if rng is not None else np.random.default_rng()

        if self.method == "differential_evolution":
            return self._optimize_differential_evolution(criterion, space, model, best_value, rng)
        return self._optimize_focus_search(criterion, space, model, best_value, rng)

    def _score_units(
        self,
        U: np.ndarray,
        criterion: InfillCriterion,
        space,
        model: FittedSurrogate,
        best_value: Optional[float]
    ) -> Tuple[List[Point], np.ndarray]:
        """Map unit vectors to points and score them (-inf when infeasible)."""
        points = [space.from_unit(u) for u in U]
        scores = np.full(len(points), -np.inf)

        feasible = [i for i, pt in enumerate(points) if space.is_feasible(pt)]
        if feasible:
            X = space.encode_many([points[i] for i in feasible])
            values = np.asarray(criterion.score(X, model, best_value), dtype=float).reshape(-1)
            values = np.where(np.isfinite(values), values, -np.inf)
            scores[feasible] = values

        return points, scores

    def _optimize_focus_search(self, criterion, space, model, best_value, rng):
        d = space.n_params
        seeds = rng.integers(0, 2**32 - 1, size=self.restarts)
        results: List[_RestartResult] = []

        for restart, seed in enumerate(seeds):
            restart_rng = np.random.default_rng(int(seed))
            lower, upper = np.zeros(d), np.ones(d)
            incumbent: Optional[_RestartResult] = None

            for _ in range(self.maxit):
                U = restart_rng.uniform(lower, upper, size=(self.n_points, d))
                points, scores = self._score_units(U, criterion, space, model, best_value)

                idx = int(np.argmax(scores))
                if np.isfinite(scores[idx]) and (incumbent is None or scores[idx] > incumbent.score):
                    incumbent = _RestartResult(points[idx], U[idx].copy(), float(scores[idx]), restart)

                if incumbent is None:
                    continue

                # Shrink the box around the incumbent, keeping it inside the cube
                width = (upper - lower) * FOCUS_SHRINK
                lower = np.clip(incumbent.unit - width / 2, 0.0, 1.0 - width)
                upper = lower + width

            if incumbent is None:
                continue

            if self.local_refine and space.continuous_mask.any():
                incumbent = self._refine(incumbent, criterion, space, model, best_value)

            results.append(incumbent)

        if not results:
            raise CriterionOptimizationFailure(
                f"No feasible candidate with finite {criterion.name} value "
                f"after {self.restarts} restarts"
            )

        return self._select(results, space, model)

    def _refine(self, start: _RestartResult, criterion, space, model, best_value) -> _RestartResult:
        """L-BFGS-B polish of the continuous unit coordinates."""
        mask = space.continuous_mask
        base = start.unit.copy()

        def negative_score(z):
            u = base.copy()
            u[mask] = z
            _, scores = self._score_units(u[None, :], criterion, space, model, best_value)
            return -scores[0] if np.isfinite(scores[0]) else _INFEASIBLE

        result = minimize(
            negative_score,
            base[mask],
            method="L-BFGS-B",
            bounds=[(0.0, 1.0)] * int(mask.sum()),
            options={"maxiter": LOCAL_REFINE_MAXITER},
        )

        u = base.copy()
        u[mask] = np.clip(result.x, 0.0, 1.0)
        points, scores = self._score_units(u[None, :], criterion, space, model, best_value)
        if np.isfinite(scores[0]) and scores[0] > start.score:
            return _RestartResult(points[0], u, float(scores[0]), start.restart)
        return start

    def _select(self, results: List[_RestartResult], space, model) -> Tuple[Point, float]:
        """
        Pick the winning restart.

        The strictly best score wins; equal scores go to the restart whose
        point has the lowest predicted variance, then to the earliest one.
        """
        top = max(r.score for r in results)
        tied = [r for r in results if r.score == top]
        if len(tied) > 1:
            _, std = model.predict(space.encode_many([r.point for r in tied]))
            order = sorted(range(len(tied)), key=lambda i: (std[i], tied[i].restart))
            winner = tied[order[0]]
        else:
            winner = tied[0]

        logger.debug(f"Criterion optimum {winner.score:.6g} from restart {winner.restart}")
        return winner.point, winner.score

    def _optimize_differential_evolution(self, criterion, space, model, best_value, rng):
        """Optimize using differential evolution (global optimizer)."""
        def negative_score(u):
            _, scores = self._score_units(u[None, :], criterion, space, model, best_value)
            return -scores[0] if np.isfinite(scores[0]) else _INFEASIBLE

        result = differential_evolution(
            negative_score,
            [(0.0, 1.0)] * space.n_params,
            maxiter=DE_MAX_ITER,
            seed=int(rng.integers(0, 2**32 - 1)),
            polish=False,
        )

        points, scores = self._score_units(result.x[None, :], criterion, space, model, best_value)
        if not np.isfinite(scores[0]):
            raise CriterionOptimizationFailure(
                "Differential evolution ended on an infeasible candidate"
            )
        return points[0], float(scores[0])
