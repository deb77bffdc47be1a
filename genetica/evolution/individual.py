"""Evaluated individuals."""

from __future__ import annotations

import math
from dataclasses import dataclass

from genetica.evolution.genome import Genome


@dataclass(frozen=True)
class Individual:
    """A genome paired with its fitness.

    Created by evaluation and never mutated; a changed genome yields a new
    ``Individual``. ``generation`` records when the genome was bred.
    """

    genome: Genome
    fitness: float
    generation: int = 0

    def __post_init__(self) -> None:
        fitness = float(self.fitness)
        if not math.isfinite(fitness):
            raise ValueError(f"fitness must be finite, got {self.fitness!r}")
        object.__setattr__(self, "fitness", fitness)

    def __repr__(self) -> str:
        return (
            f"Individual(fitness={self.fitness:.6g}, generation={self.generation}, "
            f"genome={self.genome!r})"
        )
