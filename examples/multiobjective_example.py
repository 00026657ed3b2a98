#!/usr/bin/env python3
"""
Multi-objective SMBO with ParEGO.

Approximates the Pareto front of two conflicting objectives and prints
the non-dominated points found.
"""

import numpy as np

from mbo_optimizer import MBOControl, ParameterSpace, SMBOController, TerminationControl


def objectives(point):
    """Schaffer-style pair: both objectives cannot be zero at once."""
    x, y = point["x"], point["y"]
    f1 = x ** 2 + y ** 2
    f2 = (x - 2.0) ** 2 + (y - 1.0) ** 2
    return [f1, f2]


def main():
    space = ParameterSpace.from_bounds({"x": (-1.0, 3.0), "y": (-1.0, 2.0)})

    control = MBOControl.from_dict({
        "termination": {"iters": 25},
        "infill": {"criterion": "ei"},
        "multiobjective": {"n_objectives": 2, "rho": 0.05},
        "design_size": 10,
        "surrogate": "gp",
        "seed": 3,
        "show_progress": True,
    })

    result = SMBOController(objectives, space, control).run()

    order = np.argsort(result.pareto_front[:, 0])
    print(f"\nPareto front: {len(order)} of {len(result.path)} evaluated points")
    print(f"{'f1':>10} {'f2':>10}   point")
    for i in order:
        f1, f2 = result.pareto_front[i]
        print(f"{f1:10.4f} {f2:10.4f}   {result.pareto_set[i]}")


if __name__ == "__main__":
    main()
