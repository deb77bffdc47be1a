"""Run configuration and project-wide defaults."""

from __future__ import annotations

import math
import numbers
import os
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Mapping

from genetica.exceptions import ConfigError


class OptimizationSense(str, Enum):
    """Whether higher or lower fitness is better for a run."""

    MAXIMIZE = "maximize"
    MINIMIZE = "minimize"

    @classmethod
    def parse(cls, value: OptimizationSense | str) -> OptimizationSense:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as exc:
            raise ConfigError(
                f"optimization_sense must be 'maximize' or 'minimize', got {value!r}"
            ) from exc


@dataclass(frozen=True)
class Config:
    """Default values for run parameters."""

    # Population
    POPULATION_SIZE: ClassVar[int] = 50
    ELITISM_COUNT: ClassVar[int] = 1

    # Operators
    CROSSOVER_RATE: ClassVar[float] = 0.9
    MUTATION_RATE: ClassVar[float] = 0.01
    MUTATION_SCALE: ClassVar[float] = 0.1  # Real-vector jitter sigma as fraction of gene range
    TOURNAMENT_SIZE: ClassVar[int] = 2
    SCALING_MULTIPLIER: ClassVar[float] = 2.0  # Expected copies of the best (linear scaling)

    # Strategy choices
    SELECTION: ClassVar[str] = "tournament"
    REPLACEMENT: ClassVar[str] = "generational"
    SCALING: ClassVar[str] = "none"

    # Termination
    MAX_GENERATIONS: ClassVar[int] = 100

    # Reproducibility
    RANDOM_SEED: ClassVar[int] = 42

    SELECTIONS: ClassVar[tuple[str, ...]] = ("roulette", "tournament", "rank", "uniform")
    REPLACEMENTS: ClassVar[tuple[str, ...]] = ("generational", "steady_state")
    SCALINGS: ClassVar[tuple[str, ...]] = ("none", "linear")

    @classmethod
    def available_parallelism(cls) -> int:
        """Number of workers used when none is configured."""
        return max(1, os.cpu_count() or 1)


@dataclass(frozen=True)
class RunConfiguration:
    """Immutable parameters of one evolutionary run.

    Validated once at construction; any invalid value raises
    :class:`~genetica.exceptions.ConfigError` before a run can start.
    """

    population_size: int = Config.POPULATION_SIZE
    crossover_rate: float = Config.CROSSOVER_RATE
    mutation_rate: float = Config.MUTATION_RATE
    optimization_sense: OptimizationSense = OptimizationSense.MAXIMIZE
    max_generations: int = Config.MAX_GENERATIONS
    fitness_goal: float | None = None
    stagnation_limit: int | None = None
    elitism_count: int = Config.ELITISM_COUNT
    random_seed: int = Config.RANDOM_SEED
    worker_count: int | None = None

    selection: str = Config.SELECTION
    tournament_size: int = Config.TOURNAMENT_SIZE
    replacement: str = Config.REPLACEMENT
    steady_state_count: int | None = None
    scaling: str = Config.SCALING
    scaling_multiplier: float = Config.SCALING_MULTIPLIER
    record_diversity: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "optimization_sense", OptimizationSense.parse(self.optimization_sense)
        )
        for name in ("selection", "replacement", "scaling"):
            object.__setattr__(self, name, str(getattr(self, name)).lower())
        self._validate()

    def _validate(self) -> None:
        _require_int("population_size", self.population_size, minimum=1)
        _require_rate("crossover_rate", self.crossover_rate)
        _require_rate("mutation_rate", self.mutation_rate)
        _require_int("max_generations", self.max_generations, minimum=1)
        _require_int("elitism_count", self.elitism_count, minimum=0)
        if self.elitism_count >= self.population_size:
            raise ConfigError(
                f"elitism_count must be < population_size ({self.population_size}), "
                f"got {self.elitism_count}"
            )
        _require_int("random_seed", self.random_seed, minimum=0)
        if self.stagnation_limit is not None:
            _require_int("stagnation_limit", self.stagnation_limit, minimum=1)
        if self.worker_count is not None:
            _require_int("worker_count", self.worker_count, minimum=1)
        if self.fitness_goal is not None and not _is_finite_number(self.fitness_goal):
            raise ConfigError(f"fitness_goal must be a finite number, got {self.fitness_goal!r}")

        if self.selection not in Config.SELECTIONS:
            raise ConfigError(
                f"selection must be one of {Config.SELECTIONS}, got {self.selection!r}"
            )
        _require_int("tournament_size", self.tournament_size, minimum=1)
        if self.replacement not in Config.REPLACEMENTS:
            raise ConfigError(
                f"replacement must be one of {Config.REPLACEMENTS}, got {self.replacement!r}"
            )
        if self.steady_state_count is not None:
            _require_int("steady_state_count", self.steady_state_count, minimum=1)
        if self.replacement == "steady_state":
            batch = self.offspring_batch
            if batch > self.population_size - self.elitism_count:
                raise ConfigError(
                    f"steady_state_count ({batch}) must be <= population_size - "
                    f"elitism_count ({self.population_size - self.elitism_count})"
                )
            if batch >= self.population_size:
                raise ConfigError(
                    f"steady_state_count must be < population_size, got {batch}"
                )
        if self.scaling not in Config.SCALINGS:
            raise ConfigError(f"scaling must be one of {Config.SCALINGS}, got {self.scaling!r}")
        if not _is_finite_number(self.scaling_multiplier) or self.scaling_multiplier <= 1.0:
            raise ConfigError(
                f"scaling_multiplier must be > 1, got {self.scaling_multiplier!r}"
            )

    @property
    def maximize(self) -> bool:
        return self.optimization_sense is OptimizationSense.MAXIMIZE

    @property
    def effective_worker_count(self) -> int:
        return self.worker_count or Config.available_parallelism()

    @property
    def offspring_batch(self) -> int:
        """Offspring bred per generation by steady-state replacement."""
        if self.steady_state_count is not None:
            return self.steady_state_count
        return max(1, self.population_size // 10)

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view, suitable for JSON."""
        data = asdict(self)
        data["optimization_sense"] = self.optimization_sense.value
        return data

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RunConfiguration:
        """Build a configuration from plain data, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown configuration keys: {', '.join(unknown)}")
        return cls(**dict(data))


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(value)


def _require_int(name: str, value: Any, minimum: int | None = None) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if minimum is not None and value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")


def _require_rate(name: str, value: Any) -> None:
    if not _is_finite_number(value) or not 0.0 <= value <= 1.0:
        raise ConfigError(f"{name} must be in [0, 1], got {value!r}")
