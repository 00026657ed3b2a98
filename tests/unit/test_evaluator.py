"""
Unit tests for batch evaluation.
"""

import threading
import time

import pytest

from mbo_optimizer.core.errors import EvaluationFailure
from mbo_optimizer.core.path import Point
from mbo_optimizer.evaluation.evaluator import Evaluator, coerce_values, evaluate_point
from mbo_optimizer.utils.test_functions import bi_objective_line, sphere


def _points(n):
    return [Point({"x1": float(i), "x2": 0.0}) for i in range(n)]


def test_coerce_values():
    """Test conversion of objective return values."""
    assert coerce_values(2, 1) == (2.0,)
    assert coerce_values([1, 2], 2) == (1.0, 2.0)
    with pytest.raises(EvaluationFailure):
        coerce_values([1.0, 2.0], 1)
    with pytest.raises(EvaluationFailure):
        coerce_values(float("nan"), 1)


def test_evaluate_point_records_errors():
    """Test that exceptions become failed outcomes."""
    def broken(point):
        raise RuntimeError("solver diverged")

    outcome = evaluate_point(broken, Point({"x": 1.0}))
    assert outcome.failed
    assert "solver diverged" in outcome.error
    assert outcome.elapsed >= 0.0


def test_sequential_order():
    """Test that results keep submission order."""
    outcomes = Evaluator(sphere).evaluate(_points(4))
    assert [o.values[0] for o in outcomes] == [0.0, 1.0, 4.0, 9.0]


def test_thread_pool_runs_concurrently():
    """Test that a pool evaluates a batch in parallel and waits for all of it."""
    active = []
    peak = []
    lock = threading.Lock()

    def slow(point):
        with lock:
            active.append(1)
            peak.append(len(active))
        time.sleep(0.05)
        with lock:
            active.pop()
        return point["x1"]

    outcomes = Evaluator(slow, n_workers=4).evaluate(_points(4))

    assert [o.values[0] for o in outcomes] == [0.0, 1.0, 2.0, 3.0]
    assert max(peak) > 1
    assert not active


def test_failures_do_not_abort_batch():
    """Test that one failing evaluation leaves the others intact."""
    def sometimes(point):
        if point["x1"] == 1.0:
            raise ValueError("bad point")
        if point["x1"] == 2.0:
            return float("inf")
        return point["x1"]

    outcomes = Evaluator(sometimes, n_workers=2).evaluate(_points(4))
    assert [o.failed for o in outcomes] == [False, True, True, False]
    assert outcomes[3].values == (3.0,)


def test_process_pool():
    """Test evaluation in worker processes with a picklable objective."""
    points = [Point({"x": 0.25}), Point({"x": 0.75})]
    outcomes = Evaluator(bi_objective_line, n_objectives=2, n_workers=2, executor="process").evaluate(points)
    assert outcomes[0].values == (0.25, 0.75)
    assert outcomes[1].values == (0.75, 0.25)


def test_wrong_objective_count():
    """Test that a scalar from a two-objective function is a failure."""
    outcomes = Evaluator(sphere, n_objectives=2).evaluate(_points(1))
    assert outcomes[0].failed


def test_invalid_settings():
    """Test constructor validation."""
    with pytest.raises(ValueError):
        Evaluator(sphere, n_workers=0)
    with pytest.raises(ValueError):
        Evaluator(sphere, executor="mpi")


def test_empty_batch():
    """Test that an empty batch returns immediately."""
    assert Evaluator(sphere).evaluate([]) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
