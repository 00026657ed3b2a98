"""
ParEGO scalarization of several objectives into one.

Each proposal draws a fresh weight vector, so over the run the single
objective machinery is steered towards different parts of the front.
"""

from typing import Optional, Sequence

import numpy as np

from ..utils.constants import DEFAULT_PAREGO_RHO


class ParEGOScalarizer:
    """
    Augmented Chebyshev scalarization with random weights.

    scalar = max_i(w_i * f_i) + rho * sum_i(w_i * f_i)

    where f_i are the objectives normalized to [0, 1] over the observed
    data, with maximized objectives flipped so the scalar is minimized.

    Attributes:
        n_objectives: Number of objectives
        rho: Augmentation weight (small, positive)
        minimize: Direction per objective
    """

    def __init__(
        self,
        n_objectives: int,
        rho: float = DEFAULT_PAREGO_RHO,
        minimize: Optional[Sequence[bool]] = None
    ):
        if n_objectives < 2:
            raise ValueError("ParEGO needs at least two objectives")
        if rho <= 0:
            raise ValueError("rho must be positive")
        self.n_objectives = n_objectives
        self.rho = rho
        self.minimize = tuple(minimize) if minimize is not None else (True,) * n_objectives
        if len(self.minimize) != n_objectives:
            raise ValueError("minimize must have one entry per objective")

    def draw_weights(self, rng: np.random.Generator) -> np.ndarray:
        """Draw a weight vector uniformly from the simplex."""
        return rng.dirichlet(np.ones(self.n_objectives))

    def normalize(self, Y: np.ndarray) -> np.ndarray:
        """
        Normalize objectives to [0, 1], 0 being best.

        Args:
            Y: Objective values of shape (n, m)

        Returns:
            Normalized values; constant objectives map to 0
        """
        Y = np.atleast_2d(np.asarray(Y, dtype=float))
        signs = np.where(np.asarray(self.minimize), 1.0, -1.0)
        F = Y * signs
        lo = F.min(axis=0)
        span = F.max(axis=0) - lo
        span = np.where(span > 0, span, 1.0)
        return (F - lo) / span

    def scalarize(self, Y: np.ndarray, weights: np.ndarray) -> np.ndarray:
        """
        Scalarize observed objective vectors.

        Args:
            Y: Objective values of shape (n, m)
            weights: Weight vector of shape (m,)

        Returns:
            Scalar values of shape (n,), to be minimized
        """
        weights = np.asarray(weights, dtype=float)
        if weights.shape != (self.n_objectives,):
            raise ValueError(f"Expected {self.n_objectives} weights, got shape {weights.shape}")
        weighted = self.normalize(Y) * weights
        return weighted.max(axis=1) + self.rho * weighted.sum(axis=1)
