"""
Optimization history: points, observations and the append-only path.

The path is the canonical record of a run. It is only ever appended to;
temporary what-if data (constant-liar lies) goes into a disposable
PathOverlay instead.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd


class Point(Mapping):
    """
    Immutable, hashable mapping from parameter name to value.

    Keys keep their insertion order, which is the order of the parameter
    space the point was created from.
    """

    __slots__ = ("_items", "_lookup")

    def __init__(self, values: Mapping):
        items = tuple((str(k), v) for k, v in dict(values).items())
        object.__setattr__(self, "_items", items)
        object.__setattr__(self, "_lookup", dict(items))

    def __setattr__(self, name, value):
        raise AttributeError("Point is immutable")

    def __getitem__(self, key: str) -> Any:
        return self._lookup[key]

    def __iter__(self) -> Iterator[str]:
        return (k for k, _ in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __hash__(self) -> int:
        return hash(self._items)

    def __eq__(self, other) -> bool:
        if isinstance(other, Point):
            return self._items == other._items
        if isinstance(other, Mapping):
            return self._lookup == dict(other)
        return NotImplemented

    def __reduce__(self):
        return (Point, (self._lookup,))

    def __repr__(self) -> str:
        body = ", ".join(f"{k}={v!r}" for k, v in self._items)
        return f"Point({body})"

    def to_dict(self) -> Dict[str, Any]:
        """Return a mutable copy of the point."""
        return dict(self._items)


class ObservationSource(str, Enum):
    """Where an observation came from."""

    INITIAL_DESIGN = "initial_design"
    PROPOSED = "proposed"
    FINAL_EVALUATION = "final_evaluation"


@dataclass(frozen=True)
class Observation:
    """
    Single evaluated point.

    `values` holds one float per objective, or None when the evaluation
    failed (in which case `error` carries the reason).
    """

    point: Point
    values: Optional[Tuple[float, ...]]
    iteration: int
    source: ObservationSource
    error: Optional[str] = None
    elapsed: float = 0.0
    criterion_value: Optional[float] = None

    @property
    def failed(self) -> bool:
        return self.values is None

    @property
    def value(self) -> Optional[float]:
        """First objective value (the only one for single-objective runs)."""
        if self.values is None:
            return None
        return self.values[0]


class OptimizationPath:
    """
    Append-only ordered sequence of observations.

    Failed observations are retained for auditability but excluded from
    `successful()`, which is what surrogates are trained on.
    """

    def __init__(self, parameter_names: Sequence[str], n_objectives: int = 1):
        """
        Initialize an empty path.

        Args:
            parameter_names: Parameter names, in space order
            n_objectives: Number of objective values per observation
        """
        self.parameter_names = list(parameter_names)
        self.n_objectives = n_objectives
        self._observations: List[Observation] = []

    def append(self, observation: Observation) -> None:
        """
        Append an observation.

        Args:
            observation: Observation to record

        Raises:
            ValueError: If the number of values does not match n_objectives
        """
        if observation.values is not None and len(observation.values) != self.n_objectives:
            raise ValueError(
                f"Expected {self.n_objectives} objective values, "
                f"got {len(observation.values)}"
            )
        self._observations.append(observation)

    @property
    def observations(self) -> Tuple[Observation, ...]:
        return tuple(self._observations)

    def __len__(self) -> int:
        return len(self._observations)

    def __iter__(self) -> Iterator[Observation]:
        return iter(tuple(self._observations))

    def __getitem__(self, idx: int) -> Observation:
        return self._observations[idx]

    def successful(self, include_final: bool = True) -> List[Observation]:
        """Observations with values, optionally without final re-evaluations."""
        return [
            o for o in self._observations
            if not o.failed
            and (include_final or o.source is not ObservationSource.FINAL_EVALUATION)
        ]

    def failed(self) -> List[Observation]:
        """Observations whose evaluation failed."""
        return [o for o in self._observations if o.failed]

    def values_matrix(self, include_final: bool = True) -> np.ndarray:
        """Objective values of successful observations, shape (n, n_objectives)."""
        obs = self.successful(include_final)
        if not obs:
            return np.empty((0, self.n_objectives))
        return np.array([o.values for o in obs], dtype=float)

    def best(self, minimize: bool = True, objective: int = 0) -> Optional[Observation]:
        """
        Best successful observation for one objective.

        Final re-evaluations are ignored; ties keep the earliest observation.

        Args:
            minimize: Direction of the objective
            objective: Objective index

        Returns:
            Best observation or None if nothing succeeded yet
        """
        best_obs = None
        for obs in self.successful(include_final=False):
            value = obs.values[objective]
            if best_obs is None:
                best_obs = obs
            elif minimize and value < best_obs.values[objective]:
                best_obs = obs
            elif not minimize and value > best_obs.values[objective]:
                best_obs = obs
        return best_obs

    def best_value_trace(self, minimize: bool = True) -> np.ndarray:
        """Running best of the first objective over successful observations."""
        values = [o.value for o in self.successful(include_final=False)]
        if not values:
            return np.array([])
        arr = np.array(values, dtype=float)
        return np.minimum.accumulate(arr) if minimize else np.maximum.accumulate(arr)

    def count(self, source: ObservationSource) -> int:
        return sum(1 for o in self._observations if o.source is source)

    def to_dataframe(self) -> pd.DataFrame:
        """Get all observations as a pandas DataFrame."""
        if not self._observations:
            return pd.DataFrame()

        value_cols = (
            ["y"] if self.n_objectives == 1
            else [f"y_{i + 1}" for i in range(self.n_objectives)]
        )

        rows = []
        for obs in self._observations:
            row = {
                "iteration": obs.iteration,
                "source": obs.source.value,
            }
            row.update(obs.point.to_dict())
            for i, col in enumerate(value_cols):
                row[col] = np.nan if obs.failed else obs.values[i]
            row["failed"] = obs.failed
            row["error"] = obs.error
            row["elapsed"] = obs.elapsed
            row["criterion_value"] = obs.criterion_value
            rows.append(row)

        return pd.DataFrame(rows)

    def to_csv(self, filepath: Path) -> None:
        """Save the path to a CSV file."""
        self.to_dataframe().to_csv(filepath, index=False)

    def __repr__(self) -> str:
        return (
            f"OptimizationPath(observations={len(self)}, "
            f"failed={len(self.failed())}, objectives={self.n_objectives})"
        )


class PathOverlay:
    """
    Scoped copy of the training data used while proposing a batch.

    Lied observations are appended here and never reach the real path;
    the overlay is simply dropped once the batch has been proposed.
    """

    def __init__(self, X: np.ndarray, y: np.ndarray):
        self._base_X = np.array(X, dtype=float, copy=True)
        self._base_y = np.array(y, dtype=float, copy=True)
        self._extra_X: List[np.ndarray] = []
        self._extra_y: List[float] = []

    def append(self, x: np.ndarray, y: float) -> None:
        self._extra_X.append(np.asarray(x, dtype=float))
        self._extra_y.append(float(y))

    @property
    def X(self) -> np.ndarray:
        if not self._extra_X:
            return self._base_X
        return np.vstack([self._base_X, np.array(self._extra_X)])

    @property
    def y(self) -> np.ndarray:
        if not self._extra_y:
            return self._base_y
        return np.concatenate([self._base_y, np.array(self._extra_y)])

    @property
    def n_lies(self) -> int:
        return len(self._extra_y)

    def __len__(self) -> int:
        return len(self._base_y) + len(self._extra_y)
