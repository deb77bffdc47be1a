"""Population container for evolutionary runs."""

from __future__ import annotations

from typing import Iterator, Sequence

import numpy as np

from genetica.config import OptimizationSense
from genetica.evolution.fitness import goodness
from genetica.evolution.genome import Genome
from genetica.evolution.individual import Individual


class Population:
    """Ordered, fixed-size sequence of evaluated individuals.

    Populations are never modified; replacement builds a new one. Ranking
    is stable: among equal fitness the earlier index ranks better.
    """

    def __init__(
        self,
        individuals: Sequence[Individual],
        sense: OptimizationSense = OptimizationSense.MAXIMIZE,
    ) -> None:
        if not individuals:
            raise ValueError("population must not be empty")
        self._individuals = tuple(individuals)
        self.sense = sense
        self._fitness = np.array([ind.fitness for ind in self._individuals], dtype=np.float64)
        self._fitness.flags.writeable = False
        self._ranked: np.ndarray | None = None

    def __len__(self) -> int:
        return len(self._individuals)

    def __iter__(self) -> Iterator[Individual]:
        return iter(self._individuals)

    def __getitem__(self, index: int) -> Individual:
        return self._individuals[index]

    @property
    def size(self) -> int:
        return len(self._individuals)

    @property
    def individuals(self) -> tuple[Individual, ...]:
        return self._individuals

    @property
    def fitness(self) -> np.ndarray:
        return self._fitness

    @property
    def genomes(self) -> list[Genome]:
        return [ind.genome for ind in self._individuals]

    def ranked_indices(self) -> np.ndarray:
        """Indices ordered best first."""
        if self._ranked is None:
            ranked = np.argsort(-goodness(self._fitness, self.sense), kind="stable")
            ranked.flags.writeable = False
            self._ranked = ranked
        return self._ranked

    @property
    def best_index(self) -> int:
        return int(self.ranked_indices()[0])

    @property
    def worst_index(self) -> int:
        return int(self.ranked_indices()[-1])

    def best(self) -> Individual:
        return self._individuals[self.best_index]

    def worst(self) -> Individual:
        return self._individuals[self.worst_index]

    def best_k(self, k: int) -> list[Individual]:
        """Top ``k`` individuals, best first."""
        k = max(0, min(k, self.size))
        return [self._individuals[int(i)] for i in self.ranked_indices()[:k]]

    def worst_indices(self, k: int) -> list[int]:
        """Indices of the ``k`` worst individuals, worst first."""
        k = max(0, min(k, self.size))
        if k == 0:
            return []
        return [int(i) for i in self.ranked_indices()[::-1][:k]]

    def mean_fitness(self) -> float:
        return float(np.mean(self._fitness))

    def fitness_variance(self) -> float:
        return float(np.var(self._fitness))

    def diversity(self) -> float:
        """Average pairwise genome distance."""
        if self.size < 2:
            return 0.0
        genomes = self.genomes
        distances = [
            genomes[i].distance(genomes[j])
            for i in range(len(genomes))
            for j in range(i + 1, len(genomes))
        ]
        return float(np.mean(distances))

    def replaced(self, positions: Sequence[int], newcomers: Sequence[Individual]) -> Population:
        """Copy of this population with ``newcomers`` placed at ``positions``."""
        if len(positions) != len(newcomers):
            raise ValueError("positions and newcomers must match")
        individuals = list(self._individuals)
        for pos, ind in zip(positions, newcomers):
            individuals[pos] = ind
        return Population(individuals, self.sense)

    def __repr__(self) -> str:
        return (
            f"Population(size={self.size}, sense={self.sense.value}, "
            f"best={self.best().fitness:.6g})"
        )
