"""
Random forest surrogate for mixed and categorical-heavy spaces.

Uncertainty is the spread of the per-tree predictions.
"""

import logging
from typing import Optional, Tuple

import numpy as np
from sklearn.ensemble import RandomForestRegressor

from ..core.errors import SurrogateFitFailure
from ..utils.constants import RF_N_ESTIMATORS
from .base import FittedSurrogate, Surrogate

logger = logging.getLogger(__name__)


class ForestFit(FittedSurrogate):
    """Fitted random forest."""

    def __init__(self, forest: RandomForestRegressor, train_X: np.ndarray, train_y: np.ndarray):
        self.forest = forest
        self.train_X = train_X
        self.train_y = train_y

    def predict(self, X: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        X = np.atleast_2d(X)
        per_tree = np.stack([tree.predict(X) for tree in self.forest.estimators_])
        return per_tree.mean(axis=0), per_tree.std(axis=0)


class RandomForestSurrogate(Surrogate):
    """Random forest regression with tree-spread uncertainty."""

    name = "rf"

    def __init__(
        self,
        n_estimators: int = RF_N_ESTIMATORS,
        min_samples_leaf: int = 1,
        random_state: Optional[int] = 0
    ):
        """
        Initialize the forest learner.

        Args:
            n_estimators: Number of trees
            min_samples_leaf: Minimum samples per leaf
            random_state: Seed passed to scikit-learn
        """
        self.n_estimators = n_estimators
        self.min_samples_leaf = min_samples_leaf
        self.random_state = random_state

    def fit(self, X: np.ndarray, y: np.ndarray) -> ForestFit:
        X = np.atleast_2d(np.asarray(X, dtype=float))
        y = np.asarray(y, dtype=float).reshape(-1)

        if X.shape[0] == 0 or X.shape[0] != y.shape[0]:
            raise SurrogateFitFailure(
                f"Cannot fit forest on {X.shape[0]} inputs and {y.shape[0]} targets"
            )

        forest = RandomForestRegressor(
            n_estimators=self.n_estimators,
            min_samples_leaf=self.min_samples_leaf,
            random_state=self.random_state,
        )
        try:
            forest.fit(X, y)
        except ValueError as e:
            raise SurrogateFitFailure(f"Random forest fitting failed: {e}") from e

        logger.debug(f"Random forest fitted on {X.shape[0]} points")
        return ForestFit(forest, X.copy(), y.copy())
