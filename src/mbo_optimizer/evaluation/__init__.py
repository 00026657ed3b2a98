"""Objective evaluation."""

from .evaluator import EvaluationOutcome, Evaluator, coerce_values, evaluate_point

__all__ = ["Evaluator", "EvaluationOutcome", "evaluate_point", "coerce_values"]
