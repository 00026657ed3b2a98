"""
Gaussian Process surrogate.

Implements the GP surrogate using BoTorch/GPyTorch with a Matérn-5/2 kernel.
"""

import logging
from typing import Optional, Tuple

import numpy as np
import torch
from botorch.fit import fit_gpytorch_mll
from botorch.models import SingleTaskGP
from gpytorch.kernels import MaternKernel, ScaleKernel
from gpytorch.mlls import ExactMarginalLogLikelihood
from gpytorch.priors import GammaPrior

from ..core.errors import SurrogateFitFailure
from ..utils.constants import (
    LENGTHSCALE_PRIOR_CONCENTRATION,
    LENGTHSCALE_PRIOR_RATE,
    MIN_STANDARDIZATION_STD,
    OUTPUTSCALE_PRIOR_CONCENTRATION,
    OUTPUTSCALE_PRIOR_RATE,
)
from .base import FittedSurrogate, Surrogate

logger = logging.getLogger(__name__)


class GPFit(FittedSurrogate):
    """
    Fitted Gaussian Process.

    Inputs are expected in the unit cube (the parameter space encoding);
    targets are standardized internally and predictions are returned on
    the original scale.
    """

    def __init__(
        self,
        model: SingleTaskGP,
        train_X: np.ndarray,
        train_y: np.ndarray,
        y_mean: float,
        y_std: float
    ):
        self.model = model
        self.train_X = train_X
        self.train_y = train_y
        self.y_mean = y_mean
        self.y_std = y_std

    def predict(self, X: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Predict mean and standard deviation at test points.

        Args:
            X: Test inputs of shape (n, d)

        Returns:
            (mean, std) arrays of shape (n,)
        """
        test_X = torch.as_tensor(np.atleast_2d(X), dtype=torch.float64)

        self.model.eval()
        with torch.no_grad():
            posterior = self.model.posterior(test_X)
            mean_standardized = posterior.mean.squeeze(-1)
            variance_standardized = posterior.variance.squeeze(-1).clamp_min(0.0)

        mean = mean_standardized * self.y_std + self.y_mean
        std = torch.sqrt(variance_standardized) * self.y_std

        return mean.numpy(), std.numpy()

    @property
    def noise_std(self) -> Optional[float]:
        noise = self.model.likelihood.noise.detach().reshape(-1)[0].item()
        return float(np.sqrt(noise) * self.y_std)


class GPSurrogate(Surrogate):
    """
    Gaussian Process surrogate for the objective function.

    Uses Matérn-5/2 kernel with ARD (Automatic Relevance Determination)
    for anisotropic length scales, fitted by maximum marginal likelihood.
    """

    name = "gp"

    def __init__(self, nu: float = 2.5):
        """
        Initialize the GP learner.

        Args:
            nu: Smoothness of the Matérn kernel (0.5, 1.5 or 2.5)
        """
        self.nu = nu

    def fit(self, X: np.ndarray, y: np.ndarray) -> GPFit:
        """
        Fit GP model to training data using MLE.

        Args:
            X: Training inputs of shape (n, d), in [0, 1]
            y: Training targets of shape (n,)

        Returns:
            Fitted GP

        Raises:
            SurrogateFitFailure: If the inputs are unusable or MLE fails
        """
        X = np.atleast_2d(np.asarray(X, dtype=float))
        y = np.asarray(y, dtype=float).reshape(-1)

        if X.shape[0] == 0 or X.shape[0] != y.shape[0]:
            raise SurrogateFitFailure(
                f"Cannot fit GP on {X.shape[0]} inputs and {y.shape[0]} targets"
            )
        if not (np.all(np.isfinite(X)) and np.all(np.isfinite(y))):
            raise SurrogateFitFailure("Training data contains non-finite values")

        train_X = torch.tensor(X, dtype=torch.float64)
        train_y = torch.tensor(y, dtype=torch.float64).unsqueeze(-1)

        # Standardize y
        y_mean = float(train_y.mean())
        y_std = float(train_y.std()) if train_y.shape[0] > 1 else 1.0
        if not np.isfinite(y_std) or y_std < MIN_STANDARDIZATION_STD:
            y_std = 1.0
        train_y_standardized = (train_y - y_mean) / y_std

        covar_module = ScaleKernel(
            MaternKernel(
                nu=self.nu,
                ard_num_dims=X.shape[-1],
                lengthscale_prior=GammaPrior(
                    LENGTHSCALE_PRIOR_CONCENTRATION, LENGTHSCALE_PRIOR_RATE
                )
            ),
            outputscale_prior=GammaPrior(
                OUTPUTSCALE_PRIOR_CONCENTRATION, OUTPUTSCALE_PRIOR_RATE
            )
        )

        try:
            model = SingleTaskGP(
                train_X,
                train_y_standardized,
                covar_module=covar_module,
                outcome_transform=None,
            )
            mll = ExactMarginalLogLikelihood(model.likelihood, model)
            fit_gpytorch_mll(mll)
        except Exception as e:
            raise SurrogateFitFailure(f"GP fitting failed: {e}") from e

        model.eval()
        logger.debug(f"GP fitted on {X.shape[0]} points")

        return GPFit(model, X.copy(), y.copy(), y_mean, y_std)
