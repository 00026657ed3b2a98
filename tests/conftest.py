"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest
import torch

from mbo_optimizer.core.control import InfillControl, MBOControl, TerminationControl
from mbo_optimizer.space.parameter_space import (
    CategoricalParameter,
    NumericParameter,
    ParameterSpace,
)


@pytest.fixture(autouse=True)
def reset_random_seeds():
    """Reset random seeds before each test for reproducibility."""
    np.random.seed(42)
    torch.manual_seed(42)


@pytest.fixture
def sphere_space():
    """Standard 2D box [-5, 5]^2."""
    return ParameterSpace.from_bounds({"x1": (-5.0, 5.0), "x2": (-5.0, 5.0)})


@pytest.fixture
def mixed_space():
    """Space with float, log-scale, integer and categorical parameters."""
    return ParameterSpace([
        NumericParameter("lr", 1e-4, 1e-1, log_scale=True),
        NumericParameter("depth", 1, 8, integer=True),
        NumericParameter("dropout", 0.0, 0.5),
        CategoricalParameter("kernel", ("linear", "rbf", "poly")),
    ])


@pytest.fixture
def fast_control():
    """Small, fast run configuration using the random forest surrogate."""
    def _make(**overrides):
        options = dict(
            termination=TerminationControl(iters=3),
            design_size=5,
            infill=InfillControl(focus_points=200, focus_maxit=3, restarts=2),
            surrogate="rf",
            seed=7,
        )
        options.update(overrides)
        return MBOControl(**options)
    return _make
