"""Genetic operators: crossover and mutation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, ClassVar

import numpy as np
from numpy.random import Generator

from genetica.config import Config
from genetica.evolution.genome import (
    BitStringGenome,
    Genome,
    PermutationGenome,
    RealVectorGenome,
    order_crossover,
    single_point_crossover,
    two_point_crossover,
    uniform_crossover,
)
from genetica.exceptions import IncompatibleGenomeError

GeneKernel = Callable[[np.ndarray, np.ndarray, Generator], tuple[np.ndarray, np.ndarray]]


class CrossoverOperator(ABC):
    """Combines two parent genomes into two offspring genomes."""

    name: ClassVar[str] = "abstract"

    @abstractmethod
    def cross(self, parent1: Genome, parent2: Genome, rng: Generator) -> tuple[Genome, Genome]:
        """Unconditionally recombine ``parent1`` and ``parent2``."""

    def recombine(
        self, parent1: Genome, parent2: Genome, rate: float, rng: Generator
    ) -> tuple[Genome, Genome, bool]:
        """Cross with probability ``rate``; otherwise return parent clones.

        The third element tells whether crossover happened.
        """
        if rng.random() < rate:
            child1, child2 = self.cross(parent1, parent2, rng)
            return child1, child2, True
        return parent1.clone(), parent2.clone(), False


class GenomeCrossover(CrossoverOperator):
    """Uses the encoding's own default crossover."""

    name: ClassVar[str] = "genome"

    def cross(self, parent1: Genome, parent2: Genome, rng: Generator) -> tuple[Genome, Genome]:
        return parent1.crossover(parent2, rng)


class _VectorCrossover(CrossoverOperator):
    """Position-wise crossover, valid for bit-string and real-vector genomes."""

    kernel: ClassVar[GeneKernel]

    def cross(self, parent1: Genome, parent2: Genome, rng: Generator) -> tuple[Genome, Genome]:
        if not isinstance(parent1, (BitStringGenome, RealVectorGenome)):
            raise IncompatibleGenomeError(
                f"{self.name} crossover does not apply to {type(parent1).__name__}"
            )
        parent1.check_compatible(parent2)
        genes1, genes2 = type(self).kernel(parent1.genes, parent2.genes, rng)
        return parent1.with_genes(genes1), parent1.with_genes(genes2)


class SinglePointCrossover(_VectorCrossover):
    name: ClassVar[str] = "single_point"
    kernel = staticmethod(single_point_crossover)


class TwoPointCrossover(_VectorCrossover):
    name: ClassVar[str] = "two_point"
    kernel = staticmethod(two_point_crossover)


class UniformCrossover(_VectorCrossover):
    name: ClassVar[str] = "uniform"
    kernel = staticmethod(uniform_crossover)


class OrderCrossover(CrossoverOperator):
    """Order crossover (OX) preserving permutation validity."""

    name: ClassVar[str] = "order"

    def cross(self, parent1: Genome, parent2: Genome, rng: Generator) -> tuple[Genome, Genome]:
        if not isinstance(parent1, PermutationGenome):
            raise IncompatibleGenomeError(
                f"order crossover requires permutations, got {type(parent1).__name__}"
            )
        parent1.check_compatible(parent2)
        genes1, genes2 = order_crossover(parent1.genes, parent2.genes, rng)
        return parent1.with_genes(genes1), parent1.with_genes(genes2)


class MutationOperator(ABC):
    """Perturbs a genome gene-wise with probability ``rate`` per gene."""

    name: ClassVar[str] = "abstract"

    @abstractmethod
    def mutate(self, genome: Genome, rate: float, rng: Generator) -> Genome:
        """Return the mutated genome; ``genome`` itself is left untouched."""

    def mutate_counted(self, genome: Genome, rate: float, rng: Generator) -> tuple[Genome, int]:
        """Mutate and report how many gene positions changed."""
        mutated = self.mutate(genome, rate, rng)
        return mutated, int(np.count_nonzero(mutated.genes != genome.genes))


class GenomeMutation(MutationOperator):
    """Uses the encoding's own mutation semantics."""

    name: ClassVar[str] = "genome"

    def mutate(self, genome: Genome, rate: float, rng: Generator) -> Genome:
        return genome.mutate(rate, rng)


class BitFlipMutation(MutationOperator):
    name: ClassVar[str] = "bit_flip"

    def mutate(self, genome: Genome, rate: float, rng: Generator) -> Genome:
        if not isinstance(genome, BitStringGenome):
            raise IncompatibleGenomeError(
                f"bit-flip mutation requires bit-strings, got {type(genome).__name__}"
            )
        return genome.mutate(rate, rng)


class GaussianMutation(MutationOperator):
    """Bounded Gaussian jitter with a fixed ``scale`` of each gene's range."""

    name: ClassVar[str] = "gaussian"

    def __init__(self, scale: float = Config.MUTATION_SCALE) -> None:
        if scale <= 0:
            raise ValueError(f"scale must be > 0, got {scale}")
        self.scale = float(scale)

    def mutate(self, genome: Genome, rate: float, rng: Generator) -> Genome:
        if not isinstance(genome, RealVectorGenome):
            raise IncompatibleGenomeError(
                f"gaussian mutation requires real vectors, got {type(genome).__name__}"
            )
        return genome.jitter(rate, self.scale, rng)


class SwapMutation(MutationOperator):
    name: ClassVar[str] = "swap"

    def mutate(self, genome: Genome, rate: float, rng: Generator) -> Genome:
        if not isinstance(genome, PermutationGenome):
            raise IncompatibleGenomeError(
                f"swap mutation requires permutations, got {type(genome).__name__}"
            )
        return genome.mutate(rate, rng)
