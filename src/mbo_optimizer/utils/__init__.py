"""Utility functions for the SMBO engine."""

from .logging_config import setup_logger, verbosity_level

__all__ = ["setup_logger", "verbosity_level"]
