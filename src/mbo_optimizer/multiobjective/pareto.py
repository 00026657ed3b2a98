"""
Pareto dominance and non-dominated filtering.
"""

from typing import Sequence

import numpy as np


def _to_min_frame(Y: np.ndarray, minimize: Sequence[bool]) -> np.ndarray:
    signs = np.where(np.asarray(minimize, dtype=bool), 1.0, -1.0)
    return np.asarray(Y, dtype=float) * signs


def dominates(a: np.ndarray, b: np.ndarray, minimize: Sequence[bool]) -> bool:
    """
    Check whether objective vector a dominates b.

    a dominates b iff a is no worse in every objective and strictly better
    in at least one, under each objective's direction.

    Args:
        a: Objective vector of shape (m,)
        b: Objective vector of shape (m,)
        minimize: Direction per objective

    Returns:
        True if a dominates b
    """
    fa = _to_min_frame(np.asarray(a)[None, :], minimize)[0]
    fb = _to_min_frame(np.asarray(b)[None, :], minimize)[0]
    return bool(np.all(fa <= fb) and np.any(fa < fb))


def non_dominated_indices(Y: np.ndarray, minimize: Sequence[bool]) -> np.ndarray:
    """
    Indices of the non-dominated rows of Y.

    Identical rows do not dominate each other, so duplicates on the front
    are all kept.

    Args:
        Y: Objective values of shape (n, m)
        minimize: Direction per objective

    Returns:
        Sorted integer indices into Y
    """
    Y = np.atleast_2d(np.asarray(Y, dtype=float))
    if Y.shape[0] == 0:
        return np.array([], dtype=int)

    F = _to_min_frame(Y, minimize)
    keep = []
    for i in range(F.shape[0]):
        no_worse = np.all(F <= F[i], axis=1)
        better = np.any(F < F[i], axis=1)
        if not np.any(no_worse & better):
            keep.append(i)
    return np.array(keep, dtype=int)
