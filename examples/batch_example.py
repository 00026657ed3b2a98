#!/usr/bin/env python3
"""
Batch proposals on a mixed parameter space.

Tunes a synthetic "training loss" over a log-scale learning rate, an
integer depth, a dropout rate and a categorical kernel. Three points are
proposed per iteration with the constant liar and evaluated in parallel.
"""

import math
import time

from mbo_optimizer import (
    CategoricalParameter,
    MBOControl,
    MultiPointControl,
    NumericParameter,
    ParameterSpace,
    TerminationControl,
    optimize,
)


def training_loss(point):
    """Synthetic validation loss with a short sleep per evaluation."""
    time.sleep(0.05)
    kernel_penalty = {"linear": 0.3, "rbf": 0.0, "poly": 0.15}[point["kernel"]]
    return (
        (math.log10(point["lr"]) + 2.5) ** 2
        + 0.05 * (point["depth"] - 5) ** 2
        + (point["dropout"] - 0.2) ** 2
        + kernel_penalty
    )


def main():
    space = ParameterSpace([
        NumericParameter("lr", 1e-5, 1e-1, log_scale=True),
        NumericParameter("depth", 1, 10, integer=True),
        NumericParameter("dropout", 0.0, 0.6),
        CategoricalParameter("kernel", ("linear", "rbf", "poly")),
    ])

    control = MBOControl(
        termination=TerminationControl(max_evals=30, time_budget=300.0),
        multipoint=MultiPointControl(k=3, method="constant_liar", lie_value="min"),
        surrogate="rf",
        n_workers=3,
        seed=0,
        show_progress=True,
        checkpoint_path="checkpoints/batch_example.pkl",
        checkpoint_every=2,
    )

    result = optimize(training_loss, space, control)

    print(f"\nBest loss: {result.best_value:.4f}")
    print(f"Best configuration: {result.best_point.to_dict()}")
    print(f"Iterations: {result.iterations} ({result.termination_reason.value})")
    result.path.to_csv("checkpoints/batch_example_history.csv")


if __name__ == "__main__":
    main()
