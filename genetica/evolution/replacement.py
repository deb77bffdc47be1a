"""Replacement strategies merging offspring into the next population."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, Sequence

from genetica.config import RunConfiguration
from genetica.evolution.individual import Individual
from genetica.evolution.population import Population
from genetica.exceptions import ConfigError, EvolutionError


class ReplacementStrategy(ABC):
    """Decides how offspring replace the current population.

    Whatever the strategy, the resulting population has exactly the size of
    the current one.
    """

    name: ClassVar[str] = "abstract"

    @abstractmethod
    def offspring_count(self, population_size: int, elitism: int) -> int:
        """Number of offspring the engine must breed per generation."""

    @abstractmethod
    def merge(
        self, population: Population, offspring: Sequence[Individual], elitism: int
    ) -> Population:
        """Build the next population."""

    def validate(self, population_size: int, elitism: int) -> None:
        """Raise ``ConfigError`` if the strategy cannot work with these sizes."""
        count = self.offspring_count(population_size, elitism)
        if count < 1:
            raise ConfigError(f"{self.name} replacement must breed at least one offspring")

    def replace(
        self, population: Population, offspring: Sequence[Individual], elitism: int
    ) -> Population:
        expected = self.offspring_count(population.size, elitism)
        if len(offspring) != expected:
            raise EvolutionError(
                f"{self.name} replacement expects {expected} offspring, got {len(offspring)}"
            )
        result = self.merge(population, offspring, elitism)
        if result.size != population.size:
            raise EvolutionError(
                f"{self.name} replacement changed population size "
                f"{population.size} -> {result.size}"
            )
        return result


class GenerationalReplacement(ReplacementStrategy):
    """Offspring form the whole next population.

    With elitism ``k`` the top-k current individuals are copied unchanged into
    the slots of the k worst offspring.
    """

    name: ClassVar[str] = "generational"

    def offspring_count(self, population_size: int, elitism: int) -> int:
        return population_size

    def validate(self, population_size: int, elitism: int) -> None:
        super().validate(population_size, elitism)
        if not 0 <= elitism < population_size:
            raise ConfigError(
                f"elitism must be in [0, {population_size}), got {elitism}"
            )

    def merge(
        self, population: Population, offspring: Sequence[Individual], elitism: int
    ) -> Population:
        next_population = Population(offspring, population.sense)
        if elitism <= 0:
            return next_population
        elites = population.best_k(elitism)
        return next_population.replaced(next_population.worst_indices(elitism), elites)


class SteadyStateReplacement(ReplacementStrategy):
    """A small batch of offspring replaces the worst current individuals."""

    name: ClassVar[str] = "steady_state"

    def __init__(self, count: int | None = None) -> None:
        if count is not None and count < 1:
            raise ConfigError(f"steady-state count must be >= 1, got {count}")
        self.count = count

    def offspring_count(self, population_size: int, elitism: int) -> int:
        if self.count is not None:
            return self.count
        return max(1, population_size // 10)

    def validate(self, population_size: int, elitism: int) -> None:
        super().validate(population_size, elitism)
        count = self.offspring_count(population_size, elitism)
        if count >= population_size:
            raise ConfigError(
                f"steady-state count must be < population size {population_size}, got {count}"
            )
        if count > population_size - elitism:
            raise ConfigError(
                f"steady-state count {count} would replace some of the {elitism} elites"
            )

    def merge(
        self, population: Population, offspring: Sequence[Individual], elitism: int
    ) -> Population:
        return population.replaced(population.worst_indices(len(offspring)), offspring)


def build_replacement(config: RunConfiguration) -> ReplacementStrategy:
    """Replacement strategy named by ``config.replacement``."""
    if config.replacement == "generational":
        return GenerationalReplacement()
    if config.replacement == "steady_state":
        return SteadyStateReplacement(config.offspring_batch)
    raise ConfigError(f"unknown replacement {config.replacement!r}")
