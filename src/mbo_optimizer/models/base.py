"""
Surrogate model contract.

A Surrogate is a learner configuration; `fit` returns a new
FittedSurrogate every time and never mutates a previous fit.
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np


class FittedSurrogate(ABC):
    """Fitted model providing a predictive mean and standard deviation."""

    train_X: np.ndarray
    train_y: np.ndarray

    @abstractmethod
    def predict(self, X: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Predict mean and standard deviation at encoded inputs.

        Args:
            X: Encoded inputs of shape (n, d)

        Returns:
            (mean, std) arrays of shape (n,)
        """

    @property
    def noise_std(self) -> Optional[float]:
        """Estimated observation noise std, if the model learns one."""
        return None


class Surrogate(ABC):
    """Learner producing FittedSurrogate objects."""

    name = "surrogate"

    @abstractmethod
    def fit(self, X: np.ndarray, y: np.ndarray) -> FittedSurrogate:
        """
        Fit a model to encoded inputs and scalar targets.

        Args:
            X: Encoded inputs of shape (n, d)
            y: Targets of shape (n,)

        Returns:
            New fitted model

        Raises:
            SurrogateFitFailure: If the data cannot be fitted
        """
