"""Parameter space definition."""

from .parameter_space import CategoricalParameter, NumericParameter, Parameter, ParameterSpace

__all__ = ["NumericParameter", "CategoricalParameter", "Parameter", "ParameterSpace"]
