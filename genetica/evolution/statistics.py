"""Per-generation snapshots and cumulative run statistics."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from genetica.config import OptimizationSense
from genetica.evolution.fitness import is_better
from genetica.evolution.individual import Individual
from genetica.evolution.population import Population


@dataclass(frozen=True)
class GenerationStats:
    """Immutable snapshot of one generation."""

    generation: int
    best_fitness: float
    mean_fitness: float
    worst_fitness: float
    fitness_variance: float
    best_individual: Individual
    best_ever: Individual
    evaluations: int = 0
    diversity: float | None = None

    @property
    def fitness_std(self) -> float:
        return math.sqrt(self.fitness_variance)

    @classmethod
    def from_population(
        cls,
        generation: int,
        population: Population,
        best_ever: Individual,
        evaluations: int = 0,
        record_diversity: bool = False,
    ) -> GenerationStats:
        best = population.best()
        return cls(
            generation=generation,
            best_fitness=best.fitness,
            mean_fitness=population.mean_fitness(),
            worst_fitness=population.worst().fitness,
            fitness_variance=population.fitness_variance(),
            best_individual=best,
            best_ever=best_ever,
            evaluations=evaluations,
            diversity=population.diversity() if record_diversity else None,
        )

    def as_dict(self) -> dict[str, Any]:
        """Plain-data summary, genomes as lists."""
        return {
            "generation": self.generation,
            "best_fitness": self.best_fitness,
            "mean_fitness": self.mean_fitness,
            "worst_fitness": self.worst_fitness,
            "fitness_variance": self.fitness_variance,
            "fitness_std": self.fitness_std,
            "best_genome": self.best_individual.genome.genes.tolist(),
            "best_ever_fitness": self.best_ever.fitness,
            "evaluations": self.evaluations,
            "diversity": self.diversity,
        }


@dataclass
class RunStatistics:
    """Counters and performance measures accumulated over a run.

    On-line performance is the running mean of generation mean fitness;
    off-line max/min performance the running mean of generation best/worst
    raw fitness.
    """

    sense: OptimizationSense = OptimizationSense.MAXIMIZE
    selections: int = 0
    crossovers: int = 0
    mutations: int = 0
    replacements: int = 0
    evaluations: int = 0
    population_evaluations: int = 0
    best_ever: Individual | None = None
    max_ever: float = -math.inf
    min_ever: float = math.inf
    online_performance: float = 0.0
    offline_max_performance: float = 0.0
    offline_min_performance: float = 0.0
    stagnant_generations: int = 0
    history: list[GenerationStats] = field(default_factory=list)

    @property
    def generations_recorded(self) -> int:
        return len(self.history)

    @property
    def last(self) -> GenerationStats | None:
        return self.history[-1] if self.history else None

    def update_best(self, candidate: Individual) -> bool:
        """Track the best-ever individual; True when ``candidate`` improves it."""
        if self.best_ever is None or is_better(
            candidate.fitness, self.best_ever.fitness, self.sense
        ):
            self.best_ever = candidate
            return True
        return False

    def record(self, stats: GenerationStats, population: Population) -> None:
        """Fold one generation into the running measures."""
        fitness = population.fitness
        high = float(np.max(fitness))
        low = float(np.min(fitness))
        self.max_ever = max(self.max_ever, high)
        self.min_ever = min(self.min_ever, low)

        n = len(self.history) + 1
        self.online_performance += (stats.mean_fitness - self.online_performance) / n
        self.offline_max_performance += (high - self.offline_max_performance) / n
        self.offline_min_performance += (low - self.offline_min_performance) / n
        self.history.append(stats)

    def as_dict(self) -> dict[str, Any]:
        return {
            "selections": self.selections,
            "crossovers": self.crossovers,
            "mutations": self.mutations,
            "replacements": self.replacements,
            "evaluations": self.evaluations,
            "population_evaluations": self.population_evaluations,
            "best_ever_fitness": None if self.best_ever is None else self.best_ever.fitness,
            "max_ever": self.max_ever,
            "min_ever": self.min_ever,
            "online_performance": self.online_performance,
            "offline_max_performance": self.offline_max_performance,
            "offline_min_performance": self.offline_min_performance,
            "generations": self.generations_recorded,
        }
