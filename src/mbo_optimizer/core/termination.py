"""
Termination rules.
"""

from enum import Enum
from typing import Optional

from .control import TerminationControl


class TerminationReason(str, Enum):
    """Why a run stopped."""

    ITERATIONS = "iterations"
    MAX_EVALS = "max_evals"
    TIME_BUDGET = "time_budget"
    TARGET_VALUE = "target_value"
    SURROGATE_FAILURE = "surrogate_failure"


def check_termination(
    termination: TerminationControl,
    iterations: int,
    n_proposed: int,
    elapsed: float,
    best_value: Optional[float] = None,
    minimize: bool = True
) -> Optional[TerminationReason]:
    """
    Evaluate the stop rules in order; the first that holds wins.

    Args:
        termination: Stop rules
        iterations: Completed post-design iterations
        n_proposed: Evaluations of proposed points so far
        elapsed: Seconds since the run started
        best_value: Best observed value (single-objective runs)
        minimize: Direction of the objective

    Returns:
        Reason, or None if the run should continue
    """
    if termination.iters is not None and iterations >= termination.iters:
        return TerminationReason.ITERATIONS

    if termination.max_evals is not None and n_proposed >= termination.max_evals:
        return TerminationReason.MAX_EVALS

    if termination.time_budget is not None and elapsed >= termination.time_budget:
        return TerminationReason.TIME_BUDGET

    if termination.target_value is not None and best_value is not None:
        if minimize and best_value <= termination.target_value:
            return TerminationReason.TARGET_VALUE
        if not minimize and best_value >= termination.target_value:
            return TerminationReason.TARGET_VALUE

    return None


def remaining_evals(termination: TerminationControl, n_proposed: int) -> Optional[int]:
    """Proposed evaluations left in the budget, or None if unlimited."""
    if termination.max_evals is None:
        return None
    return max(termination.max_evals - n_proposed, 0)
