"""
Parameter space definition and encoding.

Every parameter maps to one coordinate of the unit cube, which is where
design generation and infill optimization operate. Surrogates see a
separate encoding: normalized numeric values plus one-hot columns for
categorical parameters.
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..core.errors import InvalidSpaceError
from ..core.path import Point
from ..utils.constants import FEASIBILITY_CHECK_SAMPLES


@dataclass(frozen=True)
class NumericParameter:
    """Continuous or integer parameter with optional log scale."""

    name: str
    lower: float
    upper: float
    log_scale: bool = False
    integer: bool = False

    def from_unit(self, u: float) -> Union[int, float]:
        u = float(np.clip(u, 0.0, 1.0))
        if self.integer and not self.log_scale:
            lo, hi = math.ceil(self.lower), math.floor(self.upper)
            return int(min(lo + math.floor(u * (hi - lo + 1)), hi))

        if self.log_scale:
            log_lo, log_hi = math.log(self.lower), math.log(self.upper)
            value = math.exp(log_lo + u * (log_hi - log_lo))
        else:
            value = self.lower + u * (self.upper - self.lower)
        value = min(max(value, self.lower), self.upper)

        if self.integer:
            value = int(min(max(round(value), math.ceil(self.lower)), math.floor(self.upper)))
        return value

    def to_unit(self, value: float) -> float:
        if self.integer and not self.log_scale:
            lo, hi = math.ceil(self.lower), math.floor(self.upper)
            return (float(value) - lo + 0.5) / (hi - lo + 1)
        if self.upper == self.lower:
            return 0.5
        if self.log_scale:
            log_lo, log_hi = math.log(self.lower), math.log(self.upper)
            return (math.log(value) - log_lo) / (log_hi - log_lo)
        return (float(value) - self.lower) / (self.upper - self.lower)

    def contains(self, value: Any) -> bool:
        if isinstance(value, (bool, str)) or value is None:
            return False
        try:
            v = float(value)
        except (TypeError, ValueError):
            return False
        if not math.isfinite(v):
            return False
        if self.integer and v != round(v):
            return False
        tol = 1e-12 * max(1.0, abs(self.lower), abs(self.upper))
        return self.lower - tol <= v <= self.upper + tol

    @property
    def encoded_width(self) -> int:
        return 1


@dataclass(frozen=True)
class CategoricalParameter:
    """Unordered discrete parameter."""

    name: str
    values: Tuple[Any, ...]

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))

    def from_unit(self, u: float) -> Any:
        k = len(self.values)
        idx = min(int(float(np.clip(u, 0.0, 1.0)) * k), k - 1)
        return self.values[idx]

    def to_unit(self, value: Any) -> float:
        return (self.values.index(value) + 0.5) / len(self.values)

    def contains(self, value: Any) -> bool:
        return value in self.values

    @property
    def encoded_width(self) -> int:
        return len(self.values)


Parameter = Union[NumericParameter, CategoricalParameter]


class ParameterSpace:
    """
    Search space made of numeric and categorical parameters.

    An optional feasibility predicate restricts the space further; points
    rejected by it are never proposed or sampled.
    """

    def __init__(
        self,
        parameters: Sequence[Parameter],
        constraint: Optional[Callable[[Point], bool]] = None
    ):
        """
        Initialize the parameter space.

        Args:
            parameters: Parameter definitions, in the order points are keyed
            constraint: Optional predicate returning True for feasible points
        """
        self.parameters: List[Parameter] = list(parameters)
        self.constraint = constraint

        names = [p.name for p in self.parameters]
        if len(set(names)) != len(names):
            raise InvalidSpaceError(f"Duplicate parameter names: {names}")

    @classmethod
    def from_bounds(cls, bounds: Dict[str, Tuple[float, float]]) -> "ParameterSpace":
        """
        Build a purely continuous space from a name -> (lower, upper) mapping.

        Example:
            >>> space = ParameterSpace.from_bounds({"x1": (-5, 5), "x2": (-5, 5)})
        """
        return cls([NumericParameter(name, lo, hi) for name, (lo, hi) in bounds.items()])

    @property
    def names(self) -> List[str]:
        return [p.name for p in self.parameters]

    @property
    def n_params(self) -> int:
        return len(self.parameters)

    @property
    def encoded_dim(self) -> int:
        return sum(p.encoded_width for p in self.parameters)

    @property
    def continuous_mask(self) -> np.ndarray:
        """Unit coordinates that may be refined by gradient-free local search."""
        return np.array([
            isinstance(p, NumericParameter) and not p.integer
            for p in self.parameters
        ])

    def bounds(self) -> Dict[str, Union[Tuple[float, float], Tuple[Any, ...]]]:
        """Per-parameter constraints: (lower, upper) or the tuple of levels."""
        out = {}
        for p in self.parameters:
            if isinstance(p, NumericParameter):
                out[p.name] = (p.lower, p.upper)
            else:
                out[p.name] = p.values
        return out

    def validate(self) -> None:
        """
        Check that the space contains at least one feasible point.

        Raises:
            InvalidSpaceError: On contradictory bounds, empty categorical
                levels or a predicate that rejects every sampled point
        """
        if not self.parameters:
            raise InvalidSpaceError("Parameter space has no parameters")

        for p in self.parameters:
            if isinstance(p, CategoricalParameter):
                if len(p.values) == 0:
                    raise InvalidSpaceError(f"Categorical parameter '{p.name}' has no levels")
                continue
            if not (math.isfinite(p.lower) and math.isfinite(p.upper)):
                raise InvalidSpaceError(f"Parameter '{p.name}' has non-finite bounds")
            if p.lower > p.upper:
                raise InvalidSpaceError(
                    f"Parameter '{p.name}' has contradictory bounds [{p.lower}, {p.upper}]"
                )
            if p.log_scale and p.lower <= 0:
                raise InvalidSpaceError(
                    f"Log-scale parameter '{p.name}' needs a positive lower bound"
                )
            if p.integer and math.ceil(p.lower) > math.floor(p.upper):
                raise InvalidSpaceError(
                    f"Integer parameter '{p.name}' has no integer in [{p.lower}, {p.upper}]"
                )

        if self.constraint is not None:
            rng = np.random.default_rng(0)
            U = rng.uniform(size=(FEASIBILITY_CHECK_SAMPLES, self.n_params))
            if not any(self.is_feasible(self.from_unit(u)) for u in U):
                raise InvalidSpaceError(
                    f"No feasible point among {FEASIBILITY_CHECK_SAMPLES} samples"
                )

    def from_unit(self, u: np.ndarray) -> Point:
        """Map a unit-cube vector (one coordinate per parameter) to a Point."""
        return Point({p.name: p.from_unit(ui) for p, ui in zip(self.parameters, u)})

    def to_unit(self, point: Point) -> np.ndarray:
        return np.array([p.to_unit(point[p.name]) for p in self.parameters])

    def encode(self, point: Point) -> np.ndarray:
        """
        Encode a point for surrogate training (one-hot for categoricals).

        Args:
            point: Point to encode

        Returns:
            Encoded vector of length encoded_dim, every entry in [0, 1]
        """
        encoded = []
        for p in self.parameters:
            value = point[p.name]
            if isinstance(p, CategoricalParameter):
                encoded.extend(1.0 if value == level else 0.0 for level in p.values)
            else:
                encoded.append(p.to_unit(value))
        return np.array(encoded, dtype=float)

    def encode_many(self, points: Sequence[Point]) -> np.ndarray:
        if not points:
            return np.empty((0, self.encoded_dim))
        return np.vstack([self.encode(pt) for pt in points])

    def is_feasible(self, point: Point) -> bool:
        """True if the point lies in the bounds/levels and passes the predicate."""
        for p in self.parameters:
            if p.name not in point or not p.contains(point[p.name]):
                return False
        if self.constraint is not None and not self.constraint(point):
            return False
        return True

    def sample(self, n: int, method: str = "random", seed: Optional[int] = None) -> List[Point]:
        """
        Draw n distinct feasible points.

        Args:
            n: Number of points
            method: 'lhs', 'sobol' or 'random'
            seed: Random seed

        Returns:
            List of points
        """
        from ..design.sampling import generate_design
        return generate_design(n, self, method=method, seed=seed)

    def random_point(self, rng: np.random.Generator, max_tries: int = FEASIBILITY_CHECK_SAMPLES) -> Point:
        """
        Uniformly random feasible point.

        Raises:
            InvalidSpaceError: If no feasible point is found within max_tries
        """
        for _ in range(max_tries):
            point = self.from_unit(rng.uniform(size=self.n_params))
            if self.is_feasible(point):
                return point
        raise InvalidSpaceError(f"No feasible point found in {max_tries} random draws")

    def __repr__(self) -> str:
        return f"ParameterSpace(params={self.names})"
