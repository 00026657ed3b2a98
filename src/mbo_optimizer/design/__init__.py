"""Initial design generation."""

from .sampling import generate_candidate_set, generate_design, latin_hypercube_sampling, sobol_sampling

__all__ = ["generate_design", "generate_candidate_set", "latin_hypercube_sampling", "sobol_sampling"]
