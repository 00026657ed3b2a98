"""
Infill criteria scoring candidate points.

All criteria return values where larger is better, regardless of whether
the objective is minimized or maximized. Internally every formula works in
the minimization frame: for maximized objectives means and best values are
negated first.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple, Type

import numpy as np
from scipy.stats import norm

from ..models.base import FittedSurrogate
from ..utils.constants import (
    AEI_EFFECTIVE_BEST_C,
    DEFAULT_CB_LAMBDA,
    DEFAULT_EQI_NOISE,
    DEFAULT_EQI_QUANTILE,
    MIN_PREDICTIVE_STD,
)


def expected_improvement(improvement: np.ndarray, std: np.ndarray) -> np.ndarray:
    """
    Closed-form expected improvement of a Gaussian.

    EI = d * Φ(d / σ) + σ * φ(d / σ)

    Args:
        improvement: Expected improvement location d (best - mean, min frame)
        std: Predictive standard deviation σ

    Returns:
        EI values; 0 wherever σ is numerically zero
    """
    improvement = np.asarray(improvement, dtype=float)
    std = np.asarray(std, dtype=float)
    safe_std = np.where(std < MIN_PREDICTIVE_STD, 1.0, std)
    z = improvement / safe_std
    ei = improvement * norm.cdf(z) + safe_std * norm.pdf(z)
    ei = np.where(std < MIN_PREDICTIVE_STD, 0.0, ei)
    return np.clip(np.nan_to_num(ei, nan=0.0), 0.0, None)


class InfillCriterion(ABC):
    """
    Base class for infill criteria.

    Subclasses implement `score`; `from_options` is the hook used by the
    registry to build a criterion from the run configuration.
    """

    name = "criterion"

    def __init__(self, minimize: bool = True):
        self.minimize = minimize

    @classmethod
    def from_options(cls, minimize: bool, options: Dict[str, Any]) -> "InfillCriterion":
        return cls(minimize=minimize)

    @abstractmethod
    def score(
        self,
        X: np.ndarray,
        model: FittedSurrogate,
        best_value: Optional[float]
    ) -> np.ndarray:
        """
        Score encoded candidates.

        Args:
            X: Encoded candidates of shape (n, d)
            model: Fitted surrogate
            best_value: Best observed objective value (original scale)

        Returns:
            Scores of shape (n,), larger is better
        """

    def _frame(self, mean: np.ndarray, best_value: Optional[float]) -> Tuple[np.ndarray, Optional[float]]:
        if self.minimize:
            return mean, best_value
        return -mean, (None if best_value is None else -best_value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(minimize={self.minimize})"


class ConfidenceBound(InfillCriterion):
    """
    Lower/upper confidence bound.

    Minimization: score = -(μ - λσ); maximization: score = μ + λσ.
    Larger λ favors exploration.
    """

    name = "cb"

    def __init__(self, minimize: bool = True, cb_lambda: float = DEFAULT_CB_LAMBDA):
        super().__init__(minimize)
        if cb_lambda < 0:
            raise ValueError("cb_lambda must be non-negative")
        self.cb_lambda = cb_lambda

    @classmethod
    def from_options(cls, minimize, options):
        return cls(minimize=minimize, cb_lambda=options.get("cb_lambda", DEFAULT_CB_LAMBDA))

    def score(self, X, model, best_value):
        mean, std = model.predict(X)
        if self.minimize:
            return -(mean - self.cb_lambda * std)
        return mean + self.cb_lambda * std


class ExpectedImprovement(InfillCriterion):
    """Expected improvement over the best observed value."""

    name = "ei"

    def score(self, X, model, best_value):
        mean, std = model.predict(X)
        frame_mean, frame_best = self._frame(mean, best_value)
        if frame_best is None:
            frame_best = float(np.min(frame_mean))
        return expected_improvement(frame_best - frame_mean, std)


class ExpectedQuantileImprovement(InfillCriterion):
    """
    Expected quantile improvement for noisy objectives.

    The reference is the best β-quantile of the predictive distribution
    over the observed design instead of the raw (noisy) best value.
    The noise level comes from the fitted model when it estimates one,
    otherwise from `eqi_noise`.
    """

    name = "eqi"

    def __init__(
        self,
        minimize: bool = True,
        eqi_quantile: float = DEFAULT_EQI_QUANTILE,
        eqi_noise: float = DEFAULT_EQI_NOISE
    ):
        super().__init__(minimize)
        if not (0.0 < eqi_quantile < 1.0):
            raise ValueError("eqi_quantile must be in (0, 1)")
        self.eqi_quantile = eqi_quantile
        self.eqi_noise = eqi_noise

    @classmethod
    def from_options(cls, minimize, options):
        return cls(
            minimize=minimize,
            eqi_quantile=options.get("eqi_quantile", DEFAULT_EQI_QUANTILE),
            eqi_noise=options.get("eqi_noise", DEFAULT_EQI_NOISE),
        )

    def _noise(self, model: FittedSurrogate) -> float:
        tau = model.noise_std
        return float(self.eqi_noise if tau is None else tau)

    def score(self, X, model, best_value):
        q = norm.ppf(self.eqi_quantile)
        tau = self._noise(model)

        design_mean, design_std = model.predict(model.train_X)
        design_mean, _ = self._frame(design_mean, None)
        q_min = float(np.min(design_mean + q * design_std))

        mean, std = model.predict(X)
        mean, _ = self._frame(mean, None)

        var = std ** 2
        denom = tau ** 2 + var
        shrink = np.where(denom > 0, tau ** 2 * var / np.where(denom > 0, denom, 1.0), 0.0)
        mean_q = mean + q * np.sqrt(shrink)
        std_q = np.where(denom > 0, var / np.sqrt(np.where(denom > 0, denom, 1.0)), 0.0)

        return expected_improvement(q_min - mean_q, std_q)


class AugmentedExpectedImprovement(InfillCriterion):
    """
    Augmented expected improvement.

    EI against the effective best (the observed point minimizing μ + cσ),
    damped by 1 - τ / sqrt(σ² + τ²) so noisy regions are not resampled.
    """

    name = "aei"

    def __init__(
        self,
        minimize: bool = True,
        aei_c: float = AEI_EFFECTIVE_BEST_C,
        eqi_noise: float = DEFAULT_EQI_NOISE
    ):
        super().__init__(minimize)
        self.aei_c = aei_c
        self.eqi_noise = eqi_noise

    @classmethod
    def from_options(cls, minimize, options):
        return cls(
            minimize=minimize,
            aei_c=options.get("aei_c", AEI_EFFECTIVE_BEST_C),
            eqi_noise=options.get("eqi_noise", DEFAULT_EQI_NOISE),
        )

    def score(self, X, model, best_value):
        tau = model.noise_std
        tau = float(self.eqi_noise if tau is None else tau)

        design_mean, design_std = model.predict(model.train_X)
        design_mean, _ = self._frame(design_mean, None)
        effective_best = float(design_mean[np.argmin(design_mean + self.aei_c * design_std)])

        mean, std = model.predict(X)
        mean, _ = self._frame(mean, None)

        ei = expected_improvement(effective_best - mean, std)
        penalty = 1.0 - tau / np.sqrt(np.maximum(std ** 2 + tau ** 2, MIN_PREDICTIVE_STD ** 2))
        return ei * np.clip(penalty, 0.0, 1.0)


class MeanResponse(InfillCriterion):
    """Pure exploitation: the predicted mean."""

    name = "mean"

    def score(self, X, model, best_value):
        mean, _ = model.predict(X)
        return -mean if self.minimize else mean


_CRITERIA: Dict[str, Type[InfillCriterion]] = {
    "cb": ConfidenceBound,
    "ei": ExpectedImprovement,
    "eqi": ExpectedQuantileImprovement,
    "aei": AugmentedExpectedImprovement,
    "mean": MeanResponse,
}


def register_criterion(name: str, criterion_cls: Type[InfillCriterion]) -> None:
    """
    Register a custom infill criterion.

    Args:
        name: Name used in the run configuration
        criterion_cls: InfillCriterion subclass
    """
    if not issubclass(criterion_cls, InfillCriterion):
        raise TypeError("Criterion must subclass InfillCriterion")
    _CRITERIA[name.lower()] = criterion_cls


def available_criteria() -> Tuple[str, ...]:
    return tuple(sorted(_CRITERIA))


def make_criterion(name: str, minimize: bool = True, **options) -> InfillCriterion:
    """
    Build an infill criterion by name.

    Args:
        name: Registered criterion name ('cb', 'ei', 'eqi', 'aei', 'mean', ...)
        minimize: Direction of the modeled objective
        **options: Criterion parameters (cb_lambda, eqi_quantile, ...)

    Returns:
        Criterion instance

    Example:
        >>> crit = make_criterion("cb", cb_lambda=2.0)
    """
    try:
        criterion_cls = _CRITERIA[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown infill criterion: {name} (available: {', '.join(available_criteria())})"
        ) from None
    return criterion_cls.from_options(minimize, options)
