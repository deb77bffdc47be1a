"""Parent selection strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

import numpy as np
from loguru import logger
from numpy.random import Generator

from genetica.config import RunConfiguration
from genetica.evolution.fitness import goodness, selection_weights
from genetica.evolution.individual import Individual
from genetica.evolution.population import Population
from genetica.evolution.scaling import FitnessScaling, NoScaling, build_scaling
from genetica.exceptions import ConfigError


class SelectionStrategy(ABC):
    """Chooses parents from an evaluated population.

    ``prepare`` is called once per generation before any ``select`` call;
    strategies that keep no per-generation state ignore it. Ties are always
    broken in favour of the earliest index.
    """

    name: ClassVar[str] = "abstract"

    def prepare(self, population: Population) -> None:
        """Build per-generation state (wheels, ranks)."""

    @abstractmethod
    def select_index(self, population: Population, rng: Generator) -> int:
        """Index of one selected parent."""

    def select(self, population: Population, rng: Generator) -> Individual:
        return population[self.select_index(population, rng)]

    def select_pair(
        self, population: Population, rng: Generator
    ) -> tuple[Individual, Individual]:
        return self.select(population, rng), self.select(population, rng)


class _WheelSelection(SelectionStrategy):
    """Shared cumulative-wheel sampling for weight-based strategies."""

    def __init__(self) -> None:
        self._prepared_for: Population | None = None
        self._cumulative: np.ndarray | None = None

    @abstractmethod
    def weights(self, population: Population) -> np.ndarray:
        """Non-negative weight per individual."""

    def prepare(self, population: Population) -> None:
        weights = self.weights(population)
        total = float(np.sum(weights)) if weights.size else 0.0
        if not np.all(np.isfinite(weights)) or not np.isfinite(total) or total <= 0.0:
            logger.debug(
                "[Selection] {} weights degenerate (total={}), falling back to uniform",
                self.name,
                total,
            )
            self._cumulative = None
        else:
            self._cumulative = np.cumsum(weights)
        self._prepared_for = population

    def select_index(self, population: Population, rng: Generator) -> int:
        if self._prepared_for is not population:
            self.prepare(population)
        if self._cumulative is None:
            return int(rng.integers(population.size))
        total = self._cumulative[-1]
        cutoff = rng.random() * total
        index = int(np.searchsorted(self._cumulative, cutoff, side="right"))
        return min(index, population.size - 1)


class RouletteWheelSelection(_WheelSelection):
    """Fitness-proportionate selection on normalized selection weights."""

    name: ClassVar[str] = "roulette"

    def __init__(self, scaling: FitnessScaling | None = None) -> None:
        super().__init__()
        self.scaling = scaling or NoScaling()

    def weights(self, population: Population) -> np.ndarray:
        raw = selection_weights(population.fitness, population.sense)
        return self.scaling.scale(raw)


class RankSelection(_WheelSelection):
    """Linear ranking: the worst has rank 1, the best rank N, p ∝ rank."""

    name: ClassVar[str] = "rank"

    def weights(self, population: Population) -> np.ndarray:
        n = population.size
        weights = np.empty(n, dtype=np.float64)
        weights[population.ranked_indices()] = np.arange(n, 0, -1, dtype=np.float64)
        return weights


class TournamentSelection(SelectionStrategy):
    """Best of ``k`` individuals drawn uniformly without replacement."""

    name: ClassVar[str] = "tournament"

    def __init__(self, tournament_size: int = 2) -> None:
        if tournament_size < 1:
            raise ConfigError(f"tournament_size must be >= 1, got {tournament_size}")
        self.tournament_size = int(tournament_size)

    def select_index(self, population: Population, rng: Generator) -> int:
        n = population.size
        k = min(self.tournament_size, n)
        candidates = rng.choice(n, size=k, replace=False)
        scores = goodness(population.fitness, population.sense)
        return int(min(candidates, key=lambda i: (-scores[int(i)], int(i))))


class UniformSelection(SelectionStrategy):
    """Every individual equally likely, fitness ignored."""

    name: ClassVar[str] = "uniform"

    def select_index(self, population: Population, rng: Generator) -> int:
        return int(rng.integers(population.size))


def build_selection(config: RunConfiguration) -> SelectionStrategy:
    """Selection strategy named by ``config.selection``."""
    if config.selection == "roulette":
        return RouletteWheelSelection(build_scaling(config.scaling, config.scaling_multiplier))
    if config.selection == "tournament":
        return TournamentSelection(config.tournament_size)
    if config.selection == "rank":
        return RankSelection()
    if config.selection == "uniform":
        return UniformSelection()
    raise ConfigError(f"unknown selection {config.selection!r}")
