"""
Batch evaluation of the objective with a bounded worker pool.

The controller hands over one batch at a time and blocks until every
evaluation has returned; results come back in submission order.
"""

import logging
import math
import time
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from numbers import Real
from typing import Any, Callable, List, Optional, Sequence, Tuple

import numpy as np

from ..core.errors import EvaluationFailure
from ..core.path import Point

logger = logging.getLogger(__name__)

EXECUTORS = ("thread", "process")


@dataclass
class EvaluationOutcome:
    """Result of evaluating one point; `values` is None on failure."""

    point: Point
    values: Optional[Tuple[float, ...]]
    error: Optional[str] = None
    elapsed: float = 0.0

    @property
    def failed(self) -> bool:
        return self.values is None


def coerce_values(raw: Any, n_objectives: int) -> Tuple[float, ...]:
    """
    Convert an objective return value to a tuple of finite floats.

    Raises:
        EvaluationFailure: On a wrong number of values or non-finite values
    """
    if isinstance(raw, Real) or np.ndim(raw) == 0:
        values = (float(raw),)
    else:
        values = tuple(float(v) for v in np.asarray(raw, dtype=float).reshape(-1))

    if len(values) != n_objectives:
        raise EvaluationFailure(
            f"Objective returned {len(values)} values, expected {n_objectives}"
        )
    if not all(math.isfinite(v) for v in values):
        raise EvaluationFailure(f"Objective returned non-finite values {values}")
    return values


def evaluate_point(
    objective: Callable[[Point], Any],
    point: Point,
    n_objectives: int = 1
) -> EvaluationOutcome:
    """
    Evaluate one point, turning any error into a failed outcome.

    Module-level so it can be shipped to worker processes.

    Args:
        objective: Objective callable
        point: Point to evaluate
        n_objectives: Expected number of returned values

    Returns:
        EvaluationOutcome
    """
    start = time.perf_counter()
    try:
        values = coerce_values(objective(point), n_objectives)
    except Exception as e:
        return EvaluationOutcome(
            point, None, error=f"{type(e).__name__}: {e}",
            elapsed=time.perf_counter() - start,
        )
    return EvaluationOutcome(point, values, elapsed=time.perf_counter() - start)


class Evaluator:
    """
    Evaluates batches of points, optionally in parallel.

    Attributes:
        objective: Callable mapping a Point to a float or m floats
        n_objectives: Number of objective values expected
        n_workers: Maximum concurrent evaluations
        executor: 'thread' or 'process'
    """

    def __init__(
        self,
        objective: Callable[[Point], Any],
        n_objectives: int = 1,
        n_workers: int = 1,
        executor: str = "thread"
    ):
        if n_workers < 1:
            raise ValueError("n_workers must be at least 1")
        if executor not in EXECUTORS:
            raise ValueError(f"executor must be one of {EXECUTORS}, got {executor}")
        self.objective = objective
        self.n_objectives = n_objectives
        self.n_workers = n_workers
        self.executor = executor

    def evaluate(self, points: Sequence[Point]) -> List[EvaluationOutcome]:
        """
        Evaluate a batch and wait for all of it.

        Args:
            points: Points to evaluate

        Returns:
            Outcomes in the order of `points`
        """
        points = list(points)
        if not points:
            return []

        if self.n_workers == 1 or len(points) == 1:
            outcomes = [evaluate_point(self.objective, pt, self.n_objectives) for pt in points]
        else:
            outcomes = self._evaluate_pool(points)

        for outcome in outcomes:
            if outcome.failed:
                logger.warning(f"Evaluation failed at {outcome.point}: {outcome.error}")
        return outcomes

    def _evaluate_pool(self, points: List[Point]) -> List[EvaluationOutcome]:
        pool_cls = ThreadPoolExecutor if self.executor == "thread" else ProcessPoolExecutor
        workers = min(self.n_workers, len(points))

        with pool_cls(max_workers=workers) as pool:
            futures = [
                pool.submit(evaluate_point, self.objective, pt, self.n_objectives)
                for pt in points
            ]
            outcomes = []
            for pt, future in zip(points, futures):
                try:
                    outcomes.append(future.result())
                except Exception as e:
                    # Worker-level failures (pickling, crashed process)
                    outcomes.append(EvaluationOutcome(pt, None, error=f"{type(e).__name__}: {e}"))
        return outcomes
