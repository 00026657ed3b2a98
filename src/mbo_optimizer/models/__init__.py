"""Surrogate models."""

from .base import FittedSurrogate, Surrogate
from .forest import ForestFit, RandomForestSurrogate
from .gp_models import GPFit, GPSurrogate


def make_surrogate(name: str) -> Surrogate:
    """
    Build a surrogate learner by name.

    Args:
        name: 'gp' or 'rf'

    Returns:
        Surrogate instance
    """
    if name == "gp":
        return GPSurrogate()
    elif name == "rf":
        return RandomForestSurrogate()
    else:
        raise ValueError(f"Unknown surrogate: {name}")


__all__ = [
    "FittedSurrogate",
    "Surrogate",
    "GPFit",
    "GPSurrogate",
    "ForestFit",
    "RandomForestSurrogate",
    "make_surrogate",
]
