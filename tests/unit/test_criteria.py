"""
Unit tests for infill criteria.
"""

import numpy as np
import pytest
from scipy.stats import norm

from mbo_optimizer.acquisition.criteria import (
    AugmentedExpectedImprovement,
    ConfidenceBound,
    ExpectedImprovement,
    ExpectedQuantileImprovement,
    InfillCriterion,
    MeanResponse,
    available_criteria,
    expected_improvement,
    make_criterion,
    register_criterion,
)
from mbo_optimizer.models.base import FittedSurrogate


class StubModel(FittedSurrogate):
    """Surrogate returning fixed means and standard deviations per row."""

    def __init__(self, mean, std, train_X=None, noise=None):
        self.mean = np.asarray(mean, dtype=float)
        self.std = np.asarray(std, dtype=float)
        self.train_X = train_X if train_X is not None else np.arange(len(self.mean))[:, None]
        self.train_y = self.mean.copy()
        self._noise = noise

    def predict(self, X):
        idx = np.asarray(X, dtype=int).reshape(-1)
        return self.mean[idx], self.std[idx]

    @property
    def noise_std(self):
        return self._noise


def _rows(n):
    return np.arange(n)[:, None]


class TestExpectedImprovementFormula:
    """Tests for the closed-form EI helper."""

    def test_matches_formula(self):
        """Test against d * Phi(d/s) + s * phi(d/s)."""
        d, s = 0.5, 2.0
        expected = d * norm.cdf(d / s) + s * norm.pdf(d / s)
        assert expected_improvement(np.array([d]), np.array([s]))[0] == pytest.approx(expected)

    def test_zero_std(self):
        """Test that EI is 0 when the prediction is certain."""
        ei = expected_improvement(np.array([1.0, -1.0]), np.array([0.0, 0.0]))
        np.testing.assert_array_equal(ei, [0.0, 0.0])

    def test_non_negative(self):
        """Test that EI is never negative."""
        ei = expected_improvement(np.linspace(-10, 10, 21), np.full(21, 0.5))
        assert np.all(ei >= 0)


class TestConfidenceBound:
    """Tests for CB."""

    def test_minimization(self):
        """Test score = -(mean - lambda * std)."""
        model = StubModel([1.0, 2.0], [0.5, 2.0])
        scores = ConfidenceBound(minimize=True, cb_lambda=2.0).score(_rows(2), model, None)
        np.testing.assert_allclose(scores, [0.0, 2.0])

    def test_maximization(self):
        """Test score = mean + lambda * std."""
        model = StubModel([1.0, 2.0], [0.5, 2.0])
        scores = ConfidenceBound(minimize=False, cb_lambda=2.0).score(_rows(2), model, None)
        np.testing.assert_allclose(scores, [2.0, 6.0])

    def test_lambda_controls_exploration(self):
        """Test that a large lambda prefers the uncertain point."""
        model = StubModel([0.0, 1.0], [0.1, 2.0])
        exploit = ConfidenceBound(cb_lambda=0.0).score(_rows(2), model, None)
        explore = ConfidenceBound(cb_lambda=5.0).score(_rows(2), model, None)
        assert np.argmax(exploit) == 0
        assert np.argmax(explore) == 1

    def test_negative_lambda_rejected(self):
        """Test parameter validation."""
        with pytest.raises(ValueError):
            ConfidenceBound(cb_lambda=-1.0)


class TestExpectedImprovement:
    """Tests for EI."""

    def test_prefers_lower_mean_for_minimization(self):
        """Test that at equal std the lower mean scores higher."""
        model = StubModel([0.0, 1.0], [1.0, 1.0])
        scores = ExpectedImprovement(minimize=True).score(_rows(2), model, 0.5)
        assert scores[0] > scores[1]

    def test_maximization_mirrors_minimization(self):
        """Test that maximization equals minimization of the negated problem."""
        model_max = StubModel([0.0, 1.0, 2.0], [0.3, 1.0, 0.2])
        model_min = StubModel([0.0, -1.0, -2.0], [0.3, 1.0, 0.2])
        s_max = ExpectedImprovement(minimize=False).score(_rows(3), model_max, 1.5)
        s_min = ExpectedImprovement(minimize=True).score(_rows(3), model_min, -1.5)
        np.testing.assert_allclose(s_max, s_min)

    def test_zero_std_gives_zero(self):
        """Test the degenerate case."""
        model = StubModel([-5.0], [0.0])
        assert ExpectedImprovement().score(_rows(1), model, 0.0)[0] == 0.0


class TestExpectedQuantileImprovement:
    """Tests for EQI."""

    def test_noise_free_reduces_to_ei_against_design_quantile(self):
        """Test that with zero noise EQI is EI against min(mean + q * std) over the design."""
        train_X = _rows(2)
        model = StubModel([1.0, 2.0, 0.5], [0.2, 0.4, 1.0], train_X=train_X)
        crit = ExpectedQuantileImprovement(eqi_quantile=0.75, eqi_noise=0.0)

        q = norm.ppf(0.75)
        q_min = min(1.0 + q * 0.2, 2.0 + q * 0.4)
        expected = expected_improvement(np.array([q_min - 0.5]), np.array([1.0]))

        scores = crit.score(np.array([[2]]), model, None)
        assert scores[0] == pytest.approx(expected[0])

    def test_model_noise_takes_precedence(self):
        """Test that the fitted noise estimate is used when available."""
        model_a = StubModel([1.0, 0.0], [0.5, 1.0], train_X=_rows(1), noise=0.5)
        model_b = StubModel([1.0, 0.0], [0.5, 1.0], train_X=_rows(1), noise=None)
        crit = ExpectedQuantileImprovement(eqi_noise=0.0)
        a = crit.score(np.array([[1]]), model_a, None)
        b = crit.score(np.array([[1]]), model_b, None)
        assert a[0] != pytest.approx(b[0])

    def test_invalid_quantile(self):
        """Test parameter validation."""
        with pytest.raises(ValueError):
            ExpectedQuantileImprovement(eqi_quantile=1.0)


class TestOtherCriteria:
    """Tests for AEI and mean response."""

    def test_aei_without_noise_equals_ei_against_effective_best(self):
        """Test AEI with tau = 0."""
        model = StubModel([1.0, 3.0, 0.0], [0.1, 0.1, 1.0], train_X=_rows(2), noise=0.0)
        aei = AugmentedExpectedImprovement(aei_c=1.0).score(np.array([[2]]), model, None)
        expected = expected_improvement(np.array([1.0]), np.array([1.0]))
        assert aei[0] == pytest.approx(expected[0])

    def test_aei_noise_penalty(self):
        """Test that noise damps AEI."""
        quiet = StubModel([1.0, 0.0], [0.1, 1.0], train_X=_rows(1), noise=0.0)
        noisy = StubModel([1.0, 0.0], [0.1, 1.0], train_X=_rows(1), noise=1.0)
        crit = AugmentedExpectedImprovement()
        assert crit.score(np.array([[1]]), noisy, None)[0] < crit.score(np.array([[1]]), quiet, None)[0]

    def test_mean_response(self):
        """Test pure exploitation."""
        model = StubModel([1.0, -1.0], [9.0, 0.0])
        np.testing.assert_allclose(MeanResponse(minimize=True).score(_rows(2), model, None), [-1.0, 1.0])
        np.testing.assert_allclose(MeanResponse(minimize=False).score(_rows(2), model, None), [1.0, -1.0])


class TestRegistry:
    """Tests for the criterion registry."""

    def test_builtin_names(self):
        """Test that the built-in criteria are registered."""
        assert {"cb", "ei", "eqi", "aei", "mean"} <= set(available_criteria())

    def test_make_criterion_options(self):
        """Test that options reach the criterion."""
        crit = make_criterion("CB", minimize=False, cb_lambda=3.0)
        assert isinstance(crit, ConfidenceBound)
        assert crit.cb_lambda == 3.0
        assert crit.minimize is False

    def test_unknown_name(self):
        """Test that unknown criteria are rejected."""
        with pytest.raises(ValueError):
            make_criterion("pi")

    def test_register_custom(self):
        """Test the extension point."""
        class NegativeStd(InfillCriterion):
            name = "negstd"

            def score(self, X, model, best_value):
                return -model.predict(X)[1]

        register_criterion("negstd", NegativeStd)
        crit = make_criterion("negstd")
        model = StubModel([0.0, 0.0], [1.0, 2.0])
        np.testing.assert_allclose(crit.score(_rows(2), model, None), [-1.0, -2.0])

    def test_register_rejects_non_criteria(self):
        """Test that only InfillCriterion subclasses are accepted."""
        with pytest.raises(TypeError):
            register_criterion("bad", dict)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
