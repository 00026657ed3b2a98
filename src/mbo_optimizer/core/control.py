"""
Run configuration.

A run is configured once through an immutable MBOControl. Every section is
a frozen dataclass validated on construction, so an invalid combination
fails before the first evaluation.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from ..utils.constants import (
    DEFAULT_CB_LAMBDA,
    DEFAULT_CRITERION,
    DEFAULT_DESIGN_METHOD,
    DEFAULT_EQI_NOISE,
    DEFAULT_EQI_QUANTILE,
    DEFAULT_FINAL_POLICY,
    DEFAULT_ITERS,
    DEFAULT_LIE_VALUE,
    DEFAULT_MULTIPOINT_METHOD,
    DEFAULT_OPTIMIZER,
    DEFAULT_PAREGO_RHO,
    AEI_EFFECTIVE_BEST_C,
    DESIGN_POINTS_PER_PARAM,
    FOCUS_MAXIT,
    FOCUS_POINTS,
    FOCUS_RESTARTS,
)
from .errors import InvalidControlError

FINAL_POLICIES = ("best_observed", "best_predicted", "last_proposed")
DESIGN_METHODS = ("lhs", "sobol", "random")
SURROGATES = ("gp", "rf")


@dataclass(frozen=True)
class TerminationControl:
    """Stop rules; the first one to trigger ends the run."""

    iters: Optional[int] = None
    max_evals: Optional[int] = None
    time_budget: Optional[float] = None
    target_value: Optional[float] = None

    def __post_init__(self):
        if all(v is None for v in (self.iters, self.max_evals, self.time_budget, self.target_value)):
            raise InvalidControlError("At least one termination criterion is required")
        if self.iters is not None and self.iters < 0:
            raise InvalidControlError("iters must be non-negative")
        if self.max_evals is not None and self.max_evals < 0:
            raise InvalidControlError("max_evals must be non-negative")
        if self.time_budget is not None and self.time_budget <= 0:
            raise InvalidControlError("time_budget must be positive")


@dataclass(frozen=True)
class InfillControl:
    """Infill criterion and criterion optimizer settings."""

    criterion: str = DEFAULT_CRITERION
    cb_lambda: float = DEFAULT_CB_LAMBDA
    eqi_quantile: float = DEFAULT_EQI_QUANTILE
    eqi_noise: float = DEFAULT_EQI_NOISE
    aei_c: float = AEI_EFFECTIVE_BEST_C
    optimizer: str = DEFAULT_OPTIMIZER
    focus_points: int = FOCUS_POINTS
    focus_maxit: int = FOCUS_MAXIT
    restarts: int = FOCUS_RESTARTS
    local_refine: bool = True

    def __post_init__(self):
        from ..acquisition.criteria import available_criteria

        object.__setattr__(self, "criterion", self.criterion.lower())
        if self.criterion not in available_criteria():
            raise InvalidControlError(
                f"Unknown infill criterion '{self.criterion}' "
                f"(available: {', '.join(available_criteria())})"
            )
        if self.cb_lambda < 0:
            raise InvalidControlError("cb_lambda must be non-negative")
        if not (0.0 < self.eqi_quantile < 1.0):
            raise InvalidControlError("eqi_quantile must be in (0, 1)")
        if self.eqi_noise < 0:
            raise InvalidControlError("eqi_noise must be non-negative")
        if self.optimizer not in ("focussearch", "differential_evolution"):
            raise InvalidControlError(f"Unknown criterion optimizer '{self.optimizer}'")
        if self.focus_points < 1 or self.focus_maxit < 1 or self.restarts < 1:
            raise InvalidControlError("focus_points, focus_maxit and restarts must be positive")

    def criterion_options(self) -> Dict[str, Any]:
        """Options forwarded to the criterion factory."""
        return {
            "cb_lambda": self.cb_lambda,
            "eqi_quantile": self.eqi_quantile,
            "eqi_noise": self.eqi_noise,
            "aei_c": self.aei_c,
        }


@dataclass(frozen=True)
class MultiPointControl:
    """Batch size and batch proposal method."""

    k: int = 1
    method: str = DEFAULT_MULTIPOINT_METHOD
    lie_value: str = DEFAULT_LIE_VALUE

    def __post_init__(self):
        if self.k < 1:
            raise InvalidControlError("k must be at least 1")
        if self.method not in ("constant_liar", "qcb"):
            raise InvalidControlError(f"Unknown multi-point method '{self.method}'")
        if self.lie_value not in ("min", "mean", "max"):
            raise InvalidControlError(f"lie_value must be min, mean or max, got '{self.lie_value}'")


@dataclass(frozen=True)
class MultiObjectiveControl:
    """Scalarization settings for runs with several objectives."""

    method: str = "parego"
    rho: float = DEFAULT_PAREGO_RHO

    def __post_init__(self):
        if self.method != "parego":
            raise InvalidControlError(f"Unknown multi-objective method '{self.method}'")
        if self.rho <= 0:
            raise InvalidControlError("rho must be positive")


@dataclass(frozen=True)
class FinalSelectionControl:
    """How the reported best point is chosen."""

    policy: str = DEFAULT_FINAL_POLICY
    final_evals: int = 0

    def __post_init__(self):
        if self.policy not in FINAL_POLICIES:
            raise InvalidControlError(
                f"Unknown final policy '{self.policy}' (available: {', '.join(FINAL_POLICIES)})"
            )
        if self.final_evals < 0:
            raise InvalidControlError("final_evals must be non-negative")


_SECTIONS = {
    "termination": TerminationControl,
    "infill": InfillControl,
    "multipoint": MultiPointControl,
    "multiobjective": MultiObjectiveControl,
    "final": FinalSelectionControl,
}


@dataclass(frozen=True)
class MBOControl:
    """
    Immutable configuration of one optimization run.

    Attributes:
        termination: Stop rules
        infill: Criterion and criterion optimizer
        multipoint: Batch proposals
        multiobjective: Scalarization for n_objectives > 1
        final: Final point selection
        n_objectives: Number of objective values returned by the objective
        minimize: Direction, one flag for all objectives or one per objective
        design_size: Initial design size (None: 4 * n_params)
        design_method: 'lhs', 'sobol' or 'random'
        surrogate: 'gp' or 'rf'
        seed: Random seed
        n_workers: Concurrent evaluations per batch
        executor: 'thread' or 'process'
        verbose: Logging verbosity (0: warnings, 1: run progress, 2: per-iteration detail)
        log_file: File that receives the run log in addition to the console
        show_progress: Show a progress bar over iterations
        checkpoint_path: File checkpoints are written to
        checkpoint_every: Iterations between automatic checkpoints (0: off)
    """

    termination: TerminationControl = field(
        default_factory=lambda: TerminationControl(iters=DEFAULT_ITERS)
    )
    infill: InfillControl = field(default_factory=InfillControl)
    multipoint: MultiPointControl = field(default_factory=MultiPointControl)
    multiobjective: MultiObjectiveControl = field(default_factory=MultiObjectiveControl)
    final: FinalSelectionControl = field(default_factory=FinalSelectionControl)
    n_objectives: int = 1
    minimize: Union[bool, Tuple[bool, ...]] = True
    design_size: Optional[int] = None
    design_method: str = DEFAULT_DESIGN_METHOD
    surrogate: str = "gp"
    seed: Optional[int] = None
    n_workers: int = 1
    executor: str = "thread"
    verbose: Union[bool, int] = False
    log_file: Optional[str] = None
    show_progress: bool = False
    checkpoint_path: Optional[str] = None
    checkpoint_every: int = 0

    def __post_init__(self):
        if self.n_objectives < 1:
            raise InvalidControlError("n_objectives must be at least 1")

        if isinstance(self.minimize, bool):
            minimize = (self.minimize,) * self.n_objectives
        else:
            minimize = tuple(bool(m) for m in self.minimize)
        if len(minimize) != self.n_objectives:
            raise InvalidControlError(
                f"minimize has {len(minimize)} entries for {self.n_objectives} objectives"
            )
        object.__setattr__(self, "minimize", minimize)

        if self.design_size is not None and self.design_size < 0:
            raise InvalidControlError("design_size must be non-negative")
        if self.design_method not in DESIGN_METHODS:
            raise InvalidControlError(f"Unknown design method '{self.design_method}'")
        if self.surrogate not in SURROGATES:
            raise InvalidControlError(f"Unknown surrogate '{self.surrogate}'")
        if self.n_workers < 1:
            raise InvalidControlError("n_workers must be at least 1")
        if self.executor not in ("thread", "process"):
            raise InvalidControlError(f"Unknown executor '{self.executor}'")
        if int(self.verbose) < 0:
            raise InvalidControlError("verbose must be non-negative")
        if self.checkpoint_every < 0:
            raise InvalidControlError("checkpoint_every must be non-negative")
        if self.checkpoint_every > 0 and self.checkpoint_path is None:
            raise InvalidControlError("checkpoint_every requires checkpoint_path")
        if self.multipoint.method == "qcb" and self.infill.cb_lambda <= 0:
            raise InvalidControlError("qcb needs a positive cb_lambda")
        if self.n_objectives > 1 and self.target_value_set:
            raise InvalidControlError("target_value is only supported for single-objective runs")
        if self.n_objectives > 1 and (
            self.final.final_evals > 0 or self.final.policy != DEFAULT_FINAL_POLICY
        ):
            raise InvalidControlError(
                "Final selection options are only supported for single-objective runs; "
                "multi-objective runs report the Pareto front"
            )

    @property
    def target_value_set(self) -> bool:
        return self.termination.target_value is not None

    @property
    def is_multiobjective(self) -> bool:
        return self.n_objectives > 1

    def resolve_design_size(self, n_params: int) -> int:
        """Initial design size for a space with n_params parameters."""
        if self.design_size is not None:
            return self.design_size
        return DESIGN_POINTS_PER_PARAM * n_params

    @classmethod
    def from_dict(cls, options: Dict[str, Any]) -> "MBOControl":
        """
        Build a control object from nested option dictionaries.

        Args:
            options: Top-level fields plus the sections 'termination',
                'infill', 'multipoint', 'multiobjective' and 'final'.
                'multiobjective' may also carry 'n_objectives'.

        Returns:
            Validated MBOControl

        Raises:
            InvalidControlError: On unknown keys or invalid values

        Example:
            >>> control = MBOControl.from_dict({
            ...     "termination": {"iters": 10},
            ...     "infill": {"criterion": "cb", "cb_lambda": 2.0},
            ...     "multipoint": {"k": 2},
            ... })
        """
        options = dict(options)
        kwargs: Dict[str, Any] = {}

        mo_options = dict(options.get("multiobjective") or {})
        if "n_objectives" in mo_options:
            kwargs["n_objectives"] = mo_options.pop("n_objectives")
            options["multiobjective"] = mo_options

        for key, section_cls in _SECTIONS.items():
            if key in options:
                kwargs[key] = _build_section(section_cls, key, options.pop(key))

        top_level = {f.name for f in fields(cls)} - set(_SECTIONS)
        unknown = set(options) - top_level
        if unknown:
            raise InvalidControlError(f"Unknown control options: {sorted(unknown)}")
        kwargs.update(options)

        if "minimize" in kwargs and isinstance(kwargs["minimize"], Sequence):
            kwargs["minimize"] = tuple(kwargs["minimize"])

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _build_section(section_cls, key: str, values: Optional[Dict[str, Any]]):
    if isinstance(values, section_cls):
        return values
    values = dict(values or {})
    allowed = {f.name for f in fields(section_cls)}
    unknown = set(values) - allowed
    if unknown:
        raise InvalidControlError(f"Unknown options in '{key}': {sorted(unknown)}")
    return section_cls(**values)
