"""
Unit tests for Pareto filtering and ParEGO scalarization.
"""

import numpy as np
import pytest

from mbo_optimizer.multiobjective.parego import ParEGOScalarizer
from mbo_optimizer.multiobjective.pareto import dominates, non_dominated_indices


class TestPareto:
    """Tests for dominance and the non-dominated filter."""

    def test_dominates(self):
        """Test the dominance relation for minimization."""
        assert dominates([1.0, 1.0], [2.0, 1.0], [True, True])
        assert not dominates([1.0, 1.0], [1.0, 1.0], [True, True])
        assert not dominates([1.0, 3.0], [2.0, 1.0], [True, True])

    def test_dominates_mixed_directions(self):
        """Test that maximized objectives are flipped."""
        assert dominates([1.0, 5.0], [1.0, 4.0], [True, False])
        assert not dominates([1.0, 4.0], [1.0, 5.0], [True, False])

    def test_front(self):
        """Test a small known front."""
        Y = np.array([
            [1.0, 5.0],
            [2.0, 3.0],
            [3.0, 4.0],   # dominated by [2, 3]
            [4.0, 1.0],
            [4.0, 1.0],   # duplicate of a front member
            [5.0, 5.0],   # dominated
        ])
        np.testing.assert_array_equal(non_dominated_indices(Y, [True, True]), [0, 1, 3, 4])

    def test_front_properties_random(self):
        """Test that the front is mutually non-dominated and dominates the rest."""
        rng = np.random.default_rng(0)
        Y = rng.uniform(size=(60, 3))
        minimize = [True, False, True]
        front = set(non_dominated_indices(Y, minimize).tolist())

        for i in front:
            assert not any(dominates(Y[j], Y[i], minimize) for j in range(len(Y)))
        for i in set(range(len(Y))) - front:
            assert any(dominates(Y[j], Y[i], minimize) for j in front)

    def test_empty(self):
        """Test the empty input."""
        assert non_dominated_indices(np.empty((0, 2)), [True, True]).size == 0


class TestParEGO:
    """Tests for the ParEGO scalarizer."""

    def test_weights_on_simplex(self):
        """Test that weights are non-negative and sum to 1."""
        scalarizer = ParEGOScalarizer(3)
        rng = np.random.default_rng(0)
        for _ in range(20):
            w = scalarizer.draw_weights(rng)
            assert w.shape == (3,)
            assert np.all(w >= 0)
            assert w.sum() == pytest.approx(1.0)

    def test_weights_vary(self):
        """Test that weights are re-drawn."""
        scalarizer = ParEGOScalarizer(2)
        rng = np.random.default_rng(1)
        assert not np.allclose(scalarizer.draw_weights(rng), scalarizer.draw_weights(rng))

    def test_normalize(self):
        """Test per-objective scaling to [0, 1] with flipped maximization."""
        scalarizer = ParEGOScalarizer(2, minimize=[True, False])
        Y = np.array([[0.0, 10.0], [5.0, 0.0], [10.0, 5.0]])
        F = scalarizer.normalize(Y)
        np.testing.assert_allclose(F[:, 0], [0.0, 0.5, 1.0])
        np.testing.assert_allclose(F[:, 1], [0.0, 1.0, 0.5])

    def test_constant_objective(self):
        """Test that a constant objective normalizes to 0."""
        scalarizer = ParEGOScalarizer(2)
        F = scalarizer.normalize(np.array([[1.0, 2.0], [3.0, 2.0]]))
        np.testing.assert_allclose(F[:, 1], [0.0, 0.0])

    def test_augmented_chebyshev(self):
        """Test scalar = max(w * f) + rho * sum(w * f)."""
        scalarizer = ParEGOScalarizer(2, rho=0.05)
        Y = np.array([[0.0, 1.0], [1.0, 0.0], [0.5, 0.5]])
        w = np.array([0.25, 0.75])
        s = scalarizer.scalarize(Y, w)
        np.testing.assert_allclose(s, [0.75 + 0.05 * 0.75, 0.25 + 0.05 * 0.25, 0.375 + 0.05 * 0.5])

    def test_pareto_points_scalarize_best_for_some_weight(self):
        """Test that a front point is the minimizer for a matching weight."""
        scalarizer = ParEGOScalarizer(2)
        Y = np.array([[0.0, 1.0], [1.0, 0.0], [0.9, 0.9]])
        assert np.argmin(scalarizer.scalarize(Y, np.array([0.9, 0.1]))) == 0
        assert np.argmin(scalarizer.scalarize(Y, np.array([0.1, 0.9]))) == 1

    def test_validation(self):
        """Test constructor and weight validation."""
        with pytest.raises(ValueError):
            ParEGOScalarizer(1)
        with pytest.raises(ValueError):
            ParEGOScalarizer(2, rho=0.0)
        with pytest.raises(ValueError):
            ParEGOScalarizer(2).scalarize(np.zeros((2, 2)), np.array([1.0]))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
