"""
Configuration constants for the SMBO engine.

This module collects the default values and numerical guards used
throughout the optimizer so they are tuned in a single place.
"""

# Design constants
DEFAULT_ITERS = 10  # Post-design iterations when no stop rule is given
DESIGN_POINTS_PER_PARAM = 4  # Default design size is 4 * n_params
DEFAULT_DESIGN_METHOD = "lhs"
MAX_DESIGN_RESAMPLE_ROUNDS = 20  # Extra draws to replace duplicate/infeasible points
FEASIBILITY_CHECK_SAMPLES = 1000  # Samples used to detect an empty feasible region

# Infill criterion defaults
DEFAULT_CRITERION = "ei"
DEFAULT_CB_LAMBDA = 1.0
DEFAULT_EQI_QUANTILE = 0.75
DEFAULT_EQI_NOISE = 0.0
AEI_EFFECTIVE_BEST_C = 1.0
MIN_PREDICTIVE_STD = 1e-6  # Below this the improvement is treated as 0

# Criterion optimizer defaults (focus search)
DEFAULT_OPTIMIZER = "focussearch"
FOCUS_POINTS = 1000  # Candidates per focus round
FOCUS_MAXIT = 5  # Shrinking rounds per restart
FOCUS_RESTARTS = 3
FOCUS_SHRINK = 0.5  # Fraction of the box width kept per round
LOCAL_REFINE_MAXITER = 50
DE_MAX_ITER = 100  # Maximum iterations for differential evolution

# Multi-point defaults
DEFAULT_MULTIPOINT_METHOD = "constant_liar"
DEFAULT_LIE_VALUE = "min"
RANDOM_DISTINCT_TRIES = 100  # Random draws for a fallback point outside the batch

# Multi-objective defaults
DEFAULT_PAREGO_RHO = 0.05

# Surrogate constants
MIN_STANDARDIZATION_STD = 1e-6  # Minimum std for standardization
LENGTHSCALE_PRIOR_CONCENTRATION = 3.0
LENGTHSCALE_PRIOR_RATE = 6.0
OUTPUTSCALE_PRIOR_CONCENTRATION = 2.0
OUTPUTSCALE_PRIOR_RATE = 0.15
RF_N_ESTIMATORS = 100
DUPLICATE_JITTER_SCALE = 1e-4  # Jitter (unit cube) applied to duplicate inputs on refit

# Final selection
DEFAULT_FINAL_POLICY = "best_observed"
