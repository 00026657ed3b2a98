"""
SMBO controller implementing the complete optimization loop.

The controller evaluates an initial design, then repeatedly proposes
points from the surrogate, evaluates them and refits, until a stop rule
triggers. It can be driven in one call (`run`) or step by step through
`initialize` / `propose` / `update` / `finalize` when evaluations happen
outside the controller.
"""

import logging
import os
import pickle
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import torch
from tqdm import tqdm

from ..acquisition.criteria import InfillCriterion, make_criterion
from ..acquisition.optimizer import CriterionOptimizer
from ..design.sampling import generate_design
from ..evaluation.evaluator import EvaluationOutcome, Evaluator, coerce_values
from ..models import make_surrogate
from ..models.base import FittedSurrogate, Surrogate
from ..multiobjective.parego import ParEGOScalarizer
from ..multiobjective.pareto import non_dominated_indices
from ..multipoint.strategies import (
    MultiPointStrategy,
    Proposal,
    ProposalContext,
    make_multipoint,
    propose_point,
)
from ..utils.constants import DUPLICATE_JITTER_SCALE
from ..utils.logging_config import setup_logger
from .control import MBOControl
from .errors import EmptyDesignError, EvaluationFailure, MBOError, SurrogateFitFailure
from .path import Observation, ObservationSource, OptimizationPath, Point
from .termination import TerminationReason, check_termination, remaining_evals

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """Lifecycle of a run."""

    INITIALIZING = "initializing"
    DESIGN_EVALUATED = "design_evaluated"
    ITERATING = "iterating"
    TERMINATED = "terminated"


@dataclass
class Result:
    """
    Result of an optimization run.

    For multi-objective runs `best_point` and `best_value` are None and the
    outcome is the Pareto front (objective vectors) and Pareto set (points).
    """

    best_point: Optional[Point]
    best_value: Optional[float]
    path: OptimizationPath
    termination_reason: Optional[TerminationReason]
    iterations: int
    state: RunState
    n_evaluations: int
    elapsed: float
    pareto_front: Optional[np.ndarray] = None
    pareto_set: List[Point] = field(default_factory=list)

    def to_dataframe(self):
        """Optimization path as a pandas DataFrame."""
        return self.path.to_dataframe()


def jitter_duplicates(X: np.ndarray, rng: np.random.Generator, scale: float = DUPLICATE_JITTER_SCALE) -> np.ndarray:
    """
    Perturb repeated rows of X so every row is distinct.

    The first occurrence of each row is kept as is.

    Args:
        X: Encoded inputs in [0, 1]
        rng: Random generator
        scale: Standard deviation of the Gaussian jitter

    Returns:
        Jittered copy of X
    """
    X = np.array(X, dtype=float, copy=True)
    _, first_idx = np.unique(X, axis=0, return_index=True)
    duplicate = np.ones(X.shape[0], dtype=bool)
    duplicate[first_idx] = False
    if duplicate.any():
        noise = rng.normal(0.0, scale, size=(int(duplicate.sum()), X.shape[1]))
        X[duplicate] = np.clip(X[duplicate] + noise, 0.0, 1.0)
    return X


class SMBOController:
    """
    Sequential model-based optimization controller.

    Attributes:
        objective: Callable mapping a Point to a float (or m floats)
        space: Parameter space
        control: Run configuration
        path: Append-only optimization history
        state: Current lifecycle state
        iteration: Completed post-design iterations
    """

    def __init__(
        self,
        objective: Callable[[Point], Any],
        space: "ParameterSpace",  # type: ignore  # noqa: F821
        control: Optional[MBOControl] = None,
        surrogate: Optional[Surrogate] = None,
        criterion: Optional[InfillCriterion] = None,
        multipoint: Optional[MultiPointStrategy] = None,
        evaluator: Optional[Evaluator] = None
    ):
        """
        Initialize the controller.

        Args:
            objective: Black-box function to optimize
            space: Parameter space
            control: Run configuration (defaults to MBOControl())
            surrogate: Surrogate learner (default from control.surrogate)
            criterion: Infill criterion (default from control.infill)
            multipoint: Batch strategy (default from control.multipoint)
            evaluator: Batch evaluator (default: worker pool from control)
        """
        self.control = control if control is not None else MBOControl()
        self.objective = objective
        self.space = space

        if self.control.verbose or self.control.log_file:
            setup_logger(self.control.verbose, log_file=self.control.log_file)

        infill = self.control.infill
        self.minimize = self.control.minimize
        # Scalarized multi-objective values are always minimized
        model_minimize = True if self.control.is_multiobjective else self.minimize[0]

        self.surrogate = surrogate if surrogate is not None else make_surrogate(self.control.surrogate)
        self.criterion = criterion if criterion is not None else make_criterion(
            infill.criterion, minimize=model_minimize, **infill.criterion_options()
        )
        self.multipoint = multipoint if multipoint is not None else make_multipoint(
            self.control.multipoint.method,
            lie_value=self.control.multipoint.lie_value,
            cb_lambda=infill.cb_lambda,
        )
        self.evaluator = evaluator if evaluator is not None else Evaluator(
            objective,
            n_objectives=self.control.n_objectives,
            n_workers=self.control.n_workers,
            executor=self.control.executor,
        )
        self.optimizer = CriterionOptimizer(
            method=infill.optimizer,
            n_points=infill.focus_points,
            maxit=infill.focus_maxit,
            restarts=infill.restarts,
            local_refine=infill.local_refine,
        )
        self.scalarizer = None
        if self.control.is_multiobjective:
            self.scalarizer = ParEGOScalarizer(
                self.control.n_objectives,
                rho=self.control.multiobjective.rho,
                minimize=self.minimize,
            )

        self.path = OptimizationPath(space.names, self.control.n_objectives)
        self.state = RunState.INITIALIZING
        self.iteration = 0
        self.n_proposed = 0
        self.termination_reason: Optional[TerminationReason] = None

        self.rng = np.random.default_rng(self.control.seed)
        if self.control.seed is not None:
            torch.manual_seed(self.control.seed)

        self.model: Optional[FittedSurrogate] = None
        self._train_X: Optional[np.ndarray] = None
        self._train_y: Optional[np.ndarray] = None
        self._pending: Dict[Point, Optional[float]] = {}
        self._start_time: Optional[float] = None
        self._elapsed_offset = 0.0
        self._result: Optional[Result] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def elapsed(self) -> float:
        if self._start_time is None:
            return self._elapsed_offset
        return self._elapsed_offset + time.perf_counter() - self._start_time

    def initialize(
        self,
        design: Optional[Sequence[Mapping]] = None,
        observations: Optional[Sequence[Tuple[Mapping, Any]]] = None
    ) -> None:
        """
        Validate the setup, evaluate the initial design and fit the first model.

        Args:
            design: Explicit design points (default: generated from control)
            observations: Already evaluated (point, value) pairs to start from

        Raises:
            InvalidSpaceError: If the space has no feasible point
            EmptyDesignError: If no successful initial observation exists
        """
        if self.state is not RunState.INITIALIZING:
            raise MBOError(f"Cannot initialize a run in state {self.state.value}")

        self._start_time = time.perf_counter()
        self.space.validate()

        if observations:
            self.update(
                [p for p, _ in observations], [v for _, v in observations],
                source=ObservationSource.INITIAL_DESIGN,
            )

        if design is None:
            n_design = self.control.resolve_design_size(self.space.n_params)
            seed = int(self.rng.integers(0, 2**32 - 1))
            points = generate_design(n_design, self.space, method=self.control.design_method, seed=seed)
        else:
            points = [Point(p) for p in design]

        if not points and not observations:
            raise EmptyDesignError("Design size is 0 and no prior observations were given")

        if points:
            logger.info(f"Evaluating initial design of {len(points)} points")
            outcomes = self.evaluator.evaluate(points)
            self._record(outcomes, ObservationSource.INITIAL_DESIGN, iteration=0)

        if not self.path.successful():
            raise EmptyDesignError(
                f"All {len(self.path)} initial evaluations failed; nothing to fit a surrogate on"
            )

        self.state = RunState.DESIGN_EVALUATED
        logger.info(
            f"Initial design evaluated: {len(self.path.successful())} successful, "
            f"{len(self.path.failed())} failed"
        )
        self._log_incumbent()

        if not self.control.is_multiobjective:
            self._refit()

    def should_stop(self) -> bool:
        """
        Check the stop rules and move to TERMINATED if one holds.

        Returns:
            True if the run is over
        """
        if self.state is RunState.TERMINATED:
            return True
        if self.state is RunState.INITIALIZING:
            raise MBOError("Run has not been initialized")

        best = None
        if not self.control.is_multiobjective:
            best_obs = self.path.best(self.minimize[0])
            best = best_obs.value if best_obs is not None else None

        reason = check_termination(
            self.control.termination,
            iterations=self.iteration,
            n_proposed=self.n_proposed,
            elapsed=self.elapsed,
            best_value=best,
            minimize=self.minimize[0],
        )
        if reason is not None:
            self._terminate(reason)
            return True
        return False

    def propose(self) -> List[Point]:
        """
        Propose the next batch of points.

        The batch size is control.multipoint.k, truncated to the remaining
        evaluation budget.

        Returns:
            Points to evaluate next (empty if the run is over)
        """
        if self.state is RunState.INITIALIZING:
            raise MBOError("Run has not been initialized")
        if self.state is RunState.TERMINATED:
            return []

        k = self.control.multipoint.k
        remaining = remaining_evals(self.control.termination, self.n_proposed)
        if remaining is not None:
            k = min(k, remaining)
        if k == 0:
            return []

        self.state = RunState.ITERATING
        try:
            if self.control.is_multiobjective:
                proposals = self._propose_parego(k)
            else:
                proposals = self._propose_single_objective(k)
        except SurrogateFitFailure as e:
            logger.error(f"Surrogate fitting failed twice: {e}")
            self._terminate(TerminationReason.SURROGATE_FAILURE)
            return []

        self._pending = {p.point: p.criterion_value for p in proposals}
        for p in proposals:
            if p.criterion_value is not None:
                logger.debug(f"Iteration {self.iteration + 1}: proposed {p.point} ({p.criterion_value:.6g})")
        return [p.point for p in proposals]

    def update(
        self,
        points: Sequence[Mapping],
        values: Sequence[Any],
        source: ObservationSource = ObservationSource.PROPOSED
    ) -> None:
        """
        Record evaluated points.

        A value of None (or one that is not finite or has the wrong number
        of entries) is recorded as a failed evaluation. Recording proposed
        points completes one iteration and refits the surrogate.

        Args:
            points: Evaluated points
            values: Objective value (or m values) per point
            source: Origin of the observations
        """
        if len(points) != len(values):
            raise ValueError(f"Got {len(points)} points but {len(values)} values")

        outcomes = []
        for point, raw in zip(points, values):
            point = Point(point)
            if raw is None:
                outcomes.append(EvaluationOutcome(point, None, error="No value reported"))
                continue
            try:
                outcomes.append(EvaluationOutcome(point, coerce_values(raw, self.control.n_objectives)))
            except (EvaluationFailure, TypeError, ValueError) as e:
                outcomes.append(EvaluationOutcome(point, None, error=str(e)))

        if source is ObservationSource.PROPOSED:
            self._complete_iteration(outcomes)
        else:
            self._record(outcomes, source, iteration=self.iteration)

    def step(self) -> bool:
        """
        Run one iteration: propose, evaluate, record, refit.

        Returns:
            False once the run is over
        """
        if self.should_stop():
            return False

        points = self.propose()
        if not points:
            return False

        outcomes = self.evaluator.evaluate(points)
        self._complete_iteration(outcomes)
        return self.state is not RunState.TERMINATED

    def run(
        self,
        design: Optional[Sequence[Mapping]] = None,
        observations: Optional[Sequence[Tuple[Mapping, Any]]] = None
    ) -> Result:
        """
        Run the complete optimization.

        Args:
            design: Explicit initial design (default: generated)
            observations: Already evaluated (point, value) pairs

        Returns:
            Result
        """
        if self.state is RunState.INITIALIZING:
            self.initialize(design=design, observations=observations)

        progress = tqdm(
            total=self._expected_iterations(),
            initial=self.iteration,
            desc="SMBO iterations",
            disable=not self.control.show_progress,
        )
        while self.step():
            progress.update(1)
            if not self.control.is_multiobjective:
                best_obs = self.path.best(self.minimize[0])
                if best_obs is not None:
                    progress.set_postfix(best=f"{best_obs.value:.6g}")
        progress.close()

        return self.finalize()

    def finalize(self) -> Result:
        """
        Terminate the run and build the result.

        Applies the final selection policy and, when configured, re-evaluates
        the selected point and reports the mean of those evaluations.

        Returns:
            Result
        """
        if self._result is not None:
            return self._result
        if self.state is RunState.INITIALIZING:
            raise MBOError("Run has not been initialized")

        if self.state is not RunState.TERMINATED:
            self.state = RunState.TERMINATED

        if self.control.is_multiobjective:
            result = self._multiobjective_result()
        else:
            result = self._single_objective_result()

        logger.info(
            f"Run finished after {self.iteration} iterations and {len(self.path)} evaluations "
            f"(reason: {self.termination_reason.value if self.termination_reason else 'finalized'})"
        )
        self._result = result
        return result

    # ------------------------------------------------------------------
    # Checkpointing
    # ------------------------------------------------------------------

    def save_checkpoint(self, filepath: Optional[str] = None) -> None:
        """
        Save the run state.

        Args:
            filepath: Checkpoint file (default: control.checkpoint_path)
        """
        filepath = filepath or self.control.checkpoint_path
        if filepath is None:
            raise ValueError("No checkpoint path given")

        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        checkpoint = {
            'path': self.path,
            'state': self.state,
            'iteration': self.iteration,
            'n_proposed': self.n_proposed,
            'termination_reason': self.termination_reason,
            'elapsed': self.elapsed,
            'random_state': self.rng.bit_generator.state,
            'torch_rng_state': torch.get_rng_state(),
        }

        with open(filepath, 'wb') as f:
            pickle.dump(checkpoint, f)

        logger.info(f"Checkpoint saved: {filepath}")

    def load_checkpoint(self, filepath: str) -> None:
        """
        Load a checkpoint and resume from it.

        The surrogate is refit from the restored path.

        Args:
            filepath: Checkpoint file
        """
        with open(filepath, 'rb') as f:
            checkpoint = pickle.load(f)

        path = checkpoint['path']
        if path.parameter_names != self.space.names:
            raise MBOError(
                f"Checkpoint parameters {path.parameter_names} do not match space {self.space.names}"
            )

        self.path = path
        self.state = checkpoint['state']
        self.iteration = checkpoint['iteration']
        self.n_proposed = checkpoint['n_proposed']
        self.termination_reason = checkpoint['termination_reason']
        self._elapsed_offset = checkpoint['elapsed']
        self._start_time = time.perf_counter()
        self.rng.bit_generator.state = checkpoint['random_state']
        torch.set_rng_state(checkpoint['torch_rng_state'])
        self._result = None
        self.model = None

        logger.info(f"Checkpoint loaded: {filepath} (iteration {self.iteration})")

        if self.state in (RunState.DESIGN_EVALUATED, RunState.ITERATING) and not self.control.is_multiobjective:
            self._refit()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _training_data(self) -> Tuple[np.ndarray, np.ndarray]:
        """Encoded inputs and objective matrix of all successful observations."""
        observations = self.path.successful()
        X = self.space.encode_many([o.point for o in observations])
        Y = np.array([o.values for o in observations], dtype=float)
        return X, Y

    def _fit(self, X: np.ndarray, y: np.ndarray) -> FittedSurrogate:
        """Fit the surrogate, retrying once with jittered duplicate inputs."""
        try:
            return self.surrogate.fit(X, y)
        except SurrogateFitFailure as e:
            logger.warning(f"Surrogate fit failed ({e}); retrying with jittered duplicates")
            return self.surrogate.fit(jitter_duplicates(X, self.rng), y)

    def _refit(self) -> None:
        """Refit the single-objective model; terminate on a second failure."""
        X, Y = self._training_data()
        y = Y[:, 0]
        try:
            self.model = self._fit(X, y)
        except SurrogateFitFailure as e:
            logger.error(f"Surrogate fitting failed twice: {e}")
            self.model = None
            self._terminate(TerminationReason.SURROGATE_FAILURE)
            return
        self._train_X, self._train_y = X, y

    def _propose_single_objective(self, k: int) -> List[Proposal]:
        if self.model is None:
            X, Y = self._training_data()
            self.model = self._fit(X, Y[:, 0])
            self._train_X, self._train_y = X, Y[:, 0]

        context = ProposalContext(
            space=self.space,
            surrogate=self.surrogate,
            model=self.model,
            criterion=self.criterion,
            optimizer=self.optimizer,
            X=self._train_X,
            y=self._train_y,
            minimize=self.minimize[0],
            rng=self.rng,
        )
        return self.multipoint.propose_batch(k, context)

    def _propose_parego(self, k: int) -> List[Proposal]:
        """One fresh weight vector and fit per batch member."""
        X, Y = self._training_data()
        batch: List[Proposal] = []

        for _ in range(k):
            weights = self.scalarizer.draw_weights(self.rng)
            y = self.scalarizer.scalarize(Y, weights)
            model = self._fit(X, y)
            logger.debug(f"ParEGO weights {np.round(weights, 3)}")

            context = ProposalContext(
                space=self.space,
                surrogate=self.surrogate,
                model=model,
                criterion=self.criterion,
                optimizer=self.optimizer,
                X=X,
                y=y,
                minimize=True,
                rng=self.rng,
            )
            batch.append(propose_point(
                context, self.criterion, model, context.best_value,
                exclude=[p.point for p in batch],
            ))

        return batch

    def _complete_iteration(self, outcomes: List[EvaluationOutcome]) -> None:
        self.iteration += 1
        self.n_proposed += len(outcomes)
        self._record(outcomes, ObservationSource.PROPOSED, iteration=self.iteration)
        self._pending = {}
        self._log_incumbent()

        if (
            not self.control.is_multiobjective
            and self.state is not RunState.TERMINATED
            and any(not o.failed for o in outcomes)
        ):
            self._refit()

        every = self.control.checkpoint_every
        if every and self.iteration % every == 0:
            self.save_checkpoint()

    def _record(self, outcomes: Sequence[EvaluationOutcome], source: ObservationSource, iteration: int) -> None:
        for outcome in outcomes:
            self.path.append(Observation(
                point=outcome.point,
                values=outcome.values,
                iteration=iteration,
                source=source,
                error=outcome.error,
                elapsed=outcome.elapsed,
                criterion_value=self._pending.get(outcome.point),
            ))

    def _terminate(self, reason: TerminationReason) -> None:
        if self.state is RunState.TERMINATED:
            return
        self.termination_reason = reason
        self.state = RunState.TERMINATED
        logger.info(f"Terminating: {reason.value}")

    def _log_incumbent(self) -> None:
        if self.control.is_multiobjective:
            return
        best = self.path.best(self.minimize[0])
        if best is not None:
            logger.info(f"Iteration {self.iteration}: best value {best.value:.6g} at {best.point}")

    def _expected_iterations(self) -> Optional[int]:
        termination = self.control.termination
        candidates = []
        if termination.iters is not None:
            candidates.append(termination.iters)
        if termination.max_evals is not None:
            k = self.control.multipoint.k
            candidates.append(-(-termination.max_evals // k))
        return min(candidates) if candidates else None

    def _single_objective_result(self) -> Result:
        minimize = self.minimize[0]
        policy = self.control.final.policy
        selected = self.path.best(minimize)

        if policy == "best_predicted":
            selected = self._best_predicted() or selected
        elif policy == "last_proposed":
            proposed = [
                o for o in self.path.successful(include_final=False)
                if o.source is ObservationSource.PROPOSED
            ]
            if proposed:
                selected = proposed[-1]

        best_point = selected.point if selected is not None else None
        best_value = selected.value if selected is not None else None

        n_final = self.control.final.final_evals
        if best_point is not None and n_final > 0:
            outcomes = self.evaluator.evaluate([best_point] * n_final)
            self._record(outcomes, ObservationSource.FINAL_EVALUATION, iteration=self.iteration)
            values = [o.values[0] for o in outcomes if not o.failed]
            if values:
                best_value = float(np.mean(values))
            else:
                logger.warning("All final re-evaluations failed; reporting the observed value")

        return Result(
            best_point=best_point,
            best_value=best_value,
            path=self.path,
            termination_reason=self.termination_reason,
            iterations=self.iteration,
            state=self.state,
            n_evaluations=len(self.path),
            elapsed=self.elapsed,
        )

    def _best_predicted(self) -> Optional[Observation]:
        """Observed point with the best surrogate mean."""
        if self.model is None:
            logger.warning("No fitted surrogate available; falling back to best observed")
            return None

        candidates = self.path.successful(include_final=False)
        mean, _ = self.model.predict(self.space.encode_many([o.point for o in candidates]))
        idx = int(np.argmin(mean) if self.minimize[0] else np.argmax(mean))
        return candidates[idx]

    def _multiobjective_result(self) -> Result:
        observations = self.path.successful(include_final=False)
        Y = np.array([o.values for o in observations], dtype=float).reshape(-1, self.control.n_objectives)
        idx = non_dominated_indices(Y, self.minimize)

        logger.info(f"Pareto front has {len(idx)} of {len(observations)} successful observations")

        return Result(
            best_point=None,
            best_value=None,
            path=self.path,
            termination_reason=self.termination_reason,
            iterations=self.iteration,
            state=self.state,
            n_evaluations=len(self.path),
            elapsed=self.elapsed,
            pareto_front=Y[idx],
            pareto_set=[observations[i].point for i in idx],
        )


def optimize(
    objective: Callable[[Point], Any],
    space: "ParameterSpace",  # type: ignore  # noqa: F821
    control: Optional[Union[MBOControl, Dict[str, Any]]] = None,
    **kwargs
) -> Result:
    """
    Run SMBO on an objective in one call.

    Args:
        objective: Black-box function to optimize
        space: Parameter space
        control: MBOControl or its dictionary form
        **kwargs: Forwarded to SMBOController

    Returns:
        Result

    Example:
        >>> space = ParameterSpace.from_bounds({"x1": (-5, 5), "x2": (-5, 5)})
        >>> result = optimize(lambda p: p["x1"] ** 2 + p["x2"] ** 2, space,
        ...                   {"termination": {"iters": 5}, "design_size": 5})
    """
    if isinstance(control, dict):
        control = MBOControl.from_dict(control)
    return SMBOController(objective, space, control, **kwargs).run()
