"""
Unit tests for run configuration and termination rules.
"""

import dataclasses

import pytest

from mbo_optimizer.core.control import (
    FinalSelectionControl,
    InfillControl,
    MBOControl,
    MultiPointControl,
    TerminationControl,
)
from mbo_optimizer.core.errors import InvalidControlError
from mbo_optimizer.core.termination import (
    TerminationReason,
    check_termination,
    remaining_evals,
)


class TestMBOControl:
    """Tests for MBOControl construction and validation."""

    def test_defaults(self):
        """Test the default configuration."""
        control = MBOControl()
        assert control.termination.iters == 10
        assert control.infill.criterion == "ei"
        assert control.multipoint.k == 1
        assert control.minimize == (True,)
        assert control.resolve_design_size(3) == 12

    def test_immutable(self):
        """Test that the configuration cannot be changed after construction."""
        control = MBOControl()
        with pytest.raises(dataclasses.FrozenInstanceError):
            control.seed = 3

    def test_minimize_broadcast(self):
        """Test that a single direction applies to every objective."""
        control = MBOControl(n_objectives=3, minimize=False)
        assert control.minimize == (False, False, False)
        assert control.is_multiobjective

    def test_minimize_length_mismatch(self):
        """Test per-objective directions of the wrong length."""
        with pytest.raises(InvalidControlError):
            MBOControl(n_objectives=2, minimize=(True,))

    @pytest.mark.parametrize("kwargs", [
        {"surrogate": "svm"},
        {"design_method": "grid"},
        {"n_workers": 0},
        {"executor": "mpi"},
        {"design_size": -1},
        {"checkpoint_every": 2},
        {"n_objectives": 0},
    ])
    def test_invalid_top_level(self, kwargs):
        """Test top-level validation."""
        with pytest.raises(InvalidControlError):
            MBOControl(**kwargs)

    def test_invalid_control_is_value_error(self):
        """Test that configuration errors are also ValueErrors."""
        with pytest.raises(ValueError):
            MBOControl(surrogate="svm")

    def test_multiobjective_target_rejected(self):
        """Test that a target value needs a single objective."""
        with pytest.raises(InvalidControlError):
            MBOControl(n_objectives=2, termination=TerminationControl(target_value=0.0))

    @pytest.mark.parametrize("final", [
        FinalSelectionControl(final_evals=3),
        FinalSelectionControl(policy="best_predicted"),
        FinalSelectionControl(policy="last_proposed"),
    ])
    def test_multiobjective_final_selection_rejected(self, final):
        """Test that final selection options need a single objective."""
        with pytest.raises(InvalidControlError, match="Pareto front"):
            MBOControl(n_objectives=2, final=final)

    def test_multiobjective_default_final_selection(self):
        """Test that the default final selection is accepted with several objectives."""
        control = MBOControl(n_objectives=2, final=FinalSelectionControl())
        assert control.final.final_evals == 0

    def test_logging_options(self):
        """Test the verbosity and log file settings."""
        control = MBOControl.from_dict({"verbose": 2, "log_file": "run.log"})
        assert control.verbose == 2
        assert control.log_file == "run.log"
        with pytest.raises(InvalidControlError):
            MBOControl(verbose=-1)

    def test_qcb_needs_positive_lambda(self):
        """Test that qCB cannot draw weights from a zero scale."""
        with pytest.raises(InvalidControlError):
            MBOControl(
                infill=InfillControl(cb_lambda=0.0),
                multipoint=MultiPointControl(k=2, method="qcb"),
            )


class TestSections:
    """Tests for the nested sections."""

    def test_termination_needs_a_rule(self):
        """Test that at least one stop rule is required."""
        with pytest.raises(InvalidControlError):
            TerminationControl()

    def test_infill_validation(self):
        """Test criterion names and parameters."""
        assert InfillControl(criterion="EQI").criterion == "eqi"
        with pytest.raises(InvalidControlError):
            InfillControl(criterion="pi")
        with pytest.raises(InvalidControlError):
            InfillControl(eqi_quantile=1.5)
        with pytest.raises(InvalidControlError):
            InfillControl(optimizer="grid")

    def test_multipoint_validation(self):
        """Test batch settings."""
        with pytest.raises(InvalidControlError):
            MultiPointControl(k=0)
        with pytest.raises(InvalidControlError):
            MultiPointControl(lie_value="median")

    def test_final_validation(self):
        """Test final selection settings."""
        assert FinalSelectionControl(policy="last_proposed").policy == "last_proposed"
        with pytest.raises(InvalidControlError):
            FinalSelectionControl(policy="best_guess")
        with pytest.raises(InvalidControlError):
            FinalSelectionControl(final_evals=-1)


class TestFromDict:
    """Tests for MBOControl.from_dict."""

    def test_nested_options(self):
        """Test the full option surface."""
        control = MBOControl.from_dict({
            "termination": {"iters": 5, "max_evals": 12, "time_budget": 60.0},
            "infill": {"criterion": "cb", "cb_lambda": 2.0},
            "multipoint": {"k": 2, "method": "constant_liar", "lie_value": "max"},
            "multiobjective": {"n_objectives": 2, "method": "parego", "rho": 0.1},
            "minimize": [True, False],
            "seed": 1,
        })

        assert control.termination.max_evals == 12
        assert control.infill.cb_lambda == 2.0
        assert control.multipoint.lie_value == "max"
        assert control.n_objectives == 2
        assert control.multiobjective.rho == 0.1
        assert control.minimize == (True, False)
        assert control.seed == 1

    def test_final_section(self):
        """Test final selection options of a single-objective run."""
        control = MBOControl.from_dict({"final": {"policy": "best_predicted", "final_evals": 3}})
        assert control.final.policy == "best_predicted"
        assert control.final.final_evals == 3

    def test_missing_sections_use_defaults(self):
        """Test that omitted sections keep their defaults."""
        control = MBOControl.from_dict({"design_size": 7})
        assert control.design_size == 7
        assert control.termination.iters == 10

    def test_unknown_keys(self):
        """Test that misspelled options are reported."""
        with pytest.raises(InvalidControlError):
            MBOControl.from_dict({"iterations": 5})
        with pytest.raises(InvalidControlError):
            MBOControl.from_dict({"infill": {"lambda": 2.0}})


class TestTermination:
    """Tests for the stop rules."""

    def test_iterations(self):
        """Test the iteration rule."""
        rules = TerminationControl(iters=5)
        assert check_termination(rules, 4, 4, 0.0) is None
        assert check_termination(rules, 5, 5, 0.0) is TerminationReason.ITERATIONS

    def test_max_evals(self):
        """Test the evaluation budget."""
        rules = TerminationControl(max_evals=12)
        assert check_termination(rules, 5, 10, 0.0) is None
        assert check_termination(rules, 6, 12, 0.0) is TerminationReason.MAX_EVALS
        assert remaining_evals(rules, 11) == 1
        assert remaining_evals(TerminationControl(iters=1), 100) is None

    def test_time_budget(self):
        """Test the time budget."""
        rules = TerminationControl(time_budget=1.0)
        assert check_termination(rules, 0, 0, 0.5) is None
        assert check_termination(rules, 0, 0, 1.5) is TerminationReason.TIME_BUDGET

    def test_target_value(self):
        """Test the target rule in both directions."""
        rules = TerminationControl(target_value=1.0)
        assert check_termination(rules, 0, 0, 0.0, best_value=2.0) is None
        assert check_termination(rules, 0, 0, 0.0, best_value=1.0) is TerminationReason.TARGET_VALUE
        assert check_termination(rules, 0, 0, 0.0, best_value=2.0, minimize=False) is TerminationReason.TARGET_VALUE
        assert check_termination(rules, 0, 0, 0.0, best_value=None) is None

    def test_first_rule_wins(self):
        """Test precedence when several rules hold."""
        rules = TerminationControl(iters=1, max_evals=1)
        assert check_termination(rules, 1, 1, 0.0) is TerminationReason.ITERATIONS


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
