"""
Sampling utilities for initial designs and candidate sets.
"""

import logging
import warnings
from typing import List, Optional, Set

import numpy as np
from scipy.stats import qmc

from ..core.errors import InvalidSpaceError
from ..core.path import Point
from ..utils.constants import DEFAULT_DESIGN_METHOD, MAX_DESIGN_RESAMPLE_ROUNDS

logger = logging.getLogger(__name__)


def latin_hypercube_sampling(
    n_params: int,
    n_samples: int,
    seed: Optional[int] = None
) -> np.ndarray:
    """
    Generate Latin Hypercube samples in the unit cube.

    LHS provides better space-filling coverage than random sampling.

    Args:
        n_params: Number of dimensions
        n_samples: Number of samples to generate
        seed: Random seed for reproducibility

    Returns:
        Array of shape (n_samples, n_params) with values in [0, 1)

    Example:
        >>> samples = latin_hypercube_sampling(2, 10, seed=42)
        >>> print(samples.shape)
        (10, 2)
    """
    sampler = qmc.LatinHypercube(d=n_params, seed=seed)
    return sampler.random(n=n_samples)


def sobol_sampling(
    n_params: int,
    n_samples: int,
    seed: Optional[int] = None
) -> np.ndarray:
    """
    Generate scrambled Sobol samples in the unit cube.

    Sobol sequences are balanced only for powers of two; other sizes are
    accepted and the corresponding scipy warning is silenced.

    Args:
        n_params: Number of dimensions
        n_samples: Number of samples to generate
        seed: Random seed for reproducibility

    Returns:
        Array of shape (n_samples, n_params)
    """
    sampler = qmc.Sobol(d=n_params, scramble=True, seed=seed)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        return sampler.random(n=n_samples)


def random_sampling(
    n_params: int,
    n_samples: int,
    seed: Optional[int] = None
) -> np.ndarray:
    """Uniform random samples in the unit cube."""
    rng = np.random.default_rng(seed)
    return rng.uniform(size=(n_samples, n_params))


def generate_candidate_set(
    n_params: int,
    n_candidates: int = 1000,
    method: str = "sobol",
    seed: Optional[int] = None
) -> np.ndarray:
    """
    Generate a unit-cube candidate set.

    Args:
        n_params: Number of dimensions
        n_candidates: Number of candidate points
        method: Sampling method ('sobol', 'lhs', or 'random')
        seed: Random seed

    Returns:
        Candidate points array
    """
    if method == "sobol":
        return sobol_sampling(n_params, n_candidates, seed)
    elif method == "lhs":
        return latin_hypercube_sampling(n_params, n_candidates, seed)
    elif method == "random":
        return random_sampling(n_params, n_candidates, seed)
    else:
        raise ValueError(f"Unknown sampling method: {method}")


def generate_design(
    n: int,
    space: "ParameterSpace",  # type: ignore  # noqa: F821
    method: str = DEFAULT_DESIGN_METHOD,
    seed: Optional[int] = None
) -> List[Point]:
    """
    Generate an initial space-filling design.

    Infeasible and duplicate points (after integer rounding and categorical
    mapping) are dropped and replaced by uniform random draws.

    Args:
        n: Number of design points
        space: Parameter space to sample from
        method: 'lhs' (default), 'sobol' or 'random'
        seed: Random seed

    Returns:
        List of n distinct feasible points

    Raises:
        InvalidSpaceError: If the space has no feasible point or fewer than
            n distinct feasible points could be drawn
        ValueError: If n is negative or the method is unknown
    """
    if n < 0:
        raise ValueError("Design size must be non-negative")

    space.validate()
    if n == 0:
        return []

    design: List[Point] = []
    seen: Set[Point] = set()

    def _absorb(unit_samples: np.ndarray) -> None:
        for u in unit_samples:
            if len(design) >= n:
                return
            point = space.from_unit(u)
            if point in seen or not space.is_feasible(point):
                continue
            seen.add(point)
            design.append(point)

    _absorb(generate_candidate_set(space.n_params, n, method=method, seed=seed))

    rng = np.random.default_rng(seed)
    rounds = 0
    while len(design) < n and rounds < MAX_DESIGN_RESAMPLE_ROUNDS:
        rounds += 1
        _absorb(rng.uniform(size=(max(n, 10) * 10, space.n_params)))

    if not design:
        raise InvalidSpaceError("Parameter space has no feasible point")
    if len(design) < n:
        raise InvalidSpaceError(
            f"Only {len(design)} distinct feasible points found, {n} requested"
        )

    if rounds:
        logger.debug(f"Design needed {rounds} resampling rounds to reach {n} points")

    return design
