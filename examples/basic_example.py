#!/usr/bin/env python3
"""
Basic example of single-objective SMBO.

Minimizes the Branin function with a Gaussian process surrogate and
expected improvement.
"""

from mbo_optimizer import InfillControl, MBOControl, SMBOController, TerminationControl
from mbo_optimizer.utils.test_functions import BRANIN_MINIMUM, branin, branin_space


def main():
    print("="*60)
    print("SMBO - Basic Example")
    print("="*60)

    # 1. Parameter space and objective
    space = branin_space()
    print(f"\n1. Parameters: {space.names}")

    # 2. Configure the run
    print("\n2. Configuring optimizer...")
    control = MBOControl(
        termination=TerminationControl(iters=20),
        infill=InfillControl(criterion="ei"),
        design_size=8,        # Initial LHS samples
        surrogate="gp",
        seed=42,
        show_progress=True,
        verbose=True,
    )

    # 3. Run
    print("\n3. Running optimization...")
    print("-"*60)
    result = SMBOController(branin, space, control).run()

    # 4. Results
    print("\n" + "="*60)
    print("OPTIMIZATION RESULTS")
    print("="*60)
    print(f"Best value: {result.best_value:.6f} (known minimum {BRANIN_MINIMUM:.6f})")
    print(f"Best point: {result.best_point}")
    print(f"Iterations: {result.iterations}")
    print(f"Total evaluations: {result.n_evaluations}")
    print(f"Termination: {result.termination_reason.value}")

    df = result.to_dataframe()
    print("\nLast observations:")
    print(df[["iteration", "source", "x1", "x2", "y"]].tail())


if __name__ == "__main__":
    main()
