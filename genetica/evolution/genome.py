"""Genome encodings and the capability contract operators rely on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from functools import partial
from typing import Callable, ClassVar, Sequence

import numpy as np
from numpy.random import Generator

from genetica.config import Config
from genetica.exceptions import IncompatibleGenomeError

GenomeFactory = Callable[[Generator], "Genome"]


def _frozen(genes: np.ndarray) -> np.ndarray:
    genes.flags.writeable = False
    return genes


class Genome(ABC):
    """Encoded candidate solution.

    Genomes are values: ``crossover`` and ``mutate`` return new genomes and
    never touch ``genes`` in place. The gene array is read-only so a genome
    handed to an evaluation worker cannot change while it is in flight.
    """

    ENCODING: ClassVar[str] = "abstract"

    genes: np.ndarray

    def __len__(self) -> int:
        return int(self.genes.shape[0])

    @classmethod
    @abstractmethod
    def random(cls, rng: Generator, *args, **kwargs) -> Genome:
        """Randomly initialize a genome of this encoding."""

    @abstractmethod
    def with_genes(self, genes: np.ndarray) -> Genome:
        """Return a genome of the same encoding carrying ``genes``."""

    @abstractmethod
    def crossover(self, other: Genome, rng: Generator) -> tuple[Genome, Genome]:
        """Recombine with a genome of the same encoding into two children."""

    @abstractmethod
    def mutate(self, rate: float, rng: Generator) -> Genome:
        """Perturb each gene independently with probability ``rate``."""

    @abstractmethod
    def is_valid(self) -> bool:
        """Whether the genes satisfy the encoding's domain constraints."""

    @abstractmethod
    def distance(self, other: Genome) -> float:
        """Encoding-specific distance, used for population diversity."""

    def clone(self) -> Genome:
        return self.with_genes(self.genes.copy())

    def signature(self) -> tuple:
        """Structural description two compatible genomes must share."""
        return (type(self), len(self))

    def check_compatible(self, other: Genome) -> None:
        """Raise ``IncompatibleGenomeError`` unless ``other`` can mate with us."""
        if not isinstance(other, Genome) or type(other) is not type(self):
            raise IncompatibleGenomeError(
                f"cannot combine {type(self).__name__} with {type(other).__name__}"
            )
        if not _same_signature(self.signature(), other.signature()):
            raise IncompatibleGenomeError(
                f"{type(self).__name__} structures differ: length {len(self)} vs {len(other)}"
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Genome) or type(other) is not type(self):
            return NotImplemented
        return _same_signature(self.signature(), other.signature()) and bool(
            np.array_equal(self.genes, other.genes)
        )

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.genes.tobytes()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.genes.tolist()!r})"


class BitStringGenome(Genome):
    """Fixed-length string of 0/1 genes."""

    ENCODING: ClassVar[str] = "bit_string"

    def __init__(self, genes: Sequence[int] | np.ndarray) -> None:
        arr = np.array(genes, dtype=np.int8)
        if arr.ndim != 1:
            raise ValueError(f"genes must be one-dimensional, got shape {arr.shape}")
        if np.any((arr != 0) & (arr != 1)):
            raise ValueError("bit-string genes must be 0 or 1")
        self.genes = _frozen(arr)

    @classmethod
    def random(cls, rng: Generator, length: int) -> BitStringGenome:
        return cls(rng.integers(0, 2, size=int(length), dtype=np.int8))

    def with_genes(self, genes: np.ndarray) -> BitStringGenome:
        return BitStringGenome(genes)

    def crossover(
        self, other: Genome, rng: Generator
    ) -> tuple[BitStringGenome, BitStringGenome]:
        self.check_compatible(other)
        genes1, genes2 = single_point_crossover(self.genes, other.genes, rng)
        return self.with_genes(genes1), self.with_genes(genes2)

    def mutate(self, rate: float, rng: Generator) -> BitStringGenome:
        mask = rng.random(len(self)) < rate
        return self.with_genes(np.where(mask, 1 - self.genes, self.genes))

    def is_valid(self) -> bool:
        return bool(np.all((self.genes == 0) | (self.genes == 1)))

    def distance(self, other: Genome) -> float:
        self.check_compatible(other)
        return float(np.count_nonzero(self.genes != other.genes))


class RealVectorGenome(Genome):
    """Fixed-length vector of reals, each gene bounded by ``[min, max]``."""

    ENCODING: ClassVar[str] = "real_vector"

    def __init__(
        self,
        genes: Sequence[float] | np.ndarray,
        bounds: tuple[float, float] | Sequence[tuple[float, float]],
        scale: float = Config.MUTATION_SCALE,
    ) -> None:
        arr = np.array(genes, dtype=np.float64)
        if arr.ndim != 1:
            raise ValueError(f"genes must be one-dimensional, got shape {arr.shape}")
        if not np.all(np.isfinite(arr)):
            raise ValueError("real-vector genes must be finite")
        self.lows, self.highs = _normalize_bounds(bounds, arr.shape[0])
        if scale <= 0:
            raise ValueError(f"scale must be > 0, got {scale}")
        self.scale = float(scale)
        self.genes = _frozen(np.clip(arr, self.lows, self.highs))

    @classmethod
    def random(
        cls,
        rng: Generator,
        bounds: tuple[float, float] | Sequence[tuple[float, float]],
        length: int | None = None,
        scale: float = Config.MUTATION_SCALE,
    ) -> RealVectorGenome:
        if length is None:
            length = _length_from_bounds(bounds)
        lows, highs = _normalize_bounds(bounds, int(length))
        return cls(rng.uniform(lows, highs), np.column_stack([lows, highs]), scale=scale)

    @property
    def bound_pairs(self) -> np.ndarray:
        """Per-gene (min, max) rows."""
        return np.column_stack([self.lows, self.highs])

    def with_genes(self, genes: np.ndarray) -> RealVectorGenome:
        return RealVectorGenome(genes, self.bound_pairs, scale=self.scale)

    def signature(self) -> tuple:
        return (type(self), len(self), self.lows, self.highs)

    def crossover(
        self, other: Genome, rng: Generator
    ) -> tuple[RealVectorGenome, RealVectorGenome]:
        self.check_compatible(other)
        genes1, genes2 = uniform_crossover(self.genes, other.genes, rng)
        return self.with_genes(genes1), self.with_genes(genes2)

    def mutate(self, rate: float, rng: Generator) -> RealVectorGenome:
        return self.jitter(rate, self.scale, rng)

    def jitter(self, rate: float, scale: float, rng: Generator) -> RealVectorGenome:
        """Gaussian jitter with sigma ``scale * (max - min)``, clamped to bounds."""
        mask = rng.random(len(self)) < rate
        noise = rng.normal(0.0, 1.0, len(self)) * (self.highs - self.lows) * scale
        genes = np.where(mask, self.genes + noise, self.genes)
        return self.with_genes(np.clip(genes, self.lows, self.highs))

    def is_valid(self) -> bool:
        return bool(
            np.all(np.isfinite(self.genes))
            and np.all(self.genes >= self.lows)
            and np.all(self.genes <= self.highs)
        )

    def distance(self, other: Genome) -> float:
        self.check_compatible(other)
        return float(np.linalg.norm(self.genes - other.genes))


class PermutationGenome(Genome):
    """Ordering of the indices ``0..n-1``, each present exactly once."""

    ENCODING: ClassVar[str] = "permutation"

    def __init__(self, genes: Sequence[int] | np.ndarray) -> None:
        arr = np.array(genes, dtype=np.int64)
        if arr.ndim != 1:
            raise ValueError(f"genes must be one-dimensional, got shape {arr.shape}")
        if not np.array_equal(np.sort(arr), np.arange(arr.shape[0])):
            raise ValueError("permutation genes must contain 0..n-1 exactly once")
        self.genes = _frozen(arr)

    @classmethod
    def random(cls, rng: Generator, length: int) -> PermutationGenome:
        return cls(rng.permutation(int(length)))

    def with_genes(self, genes: np.ndarray) -> PermutationGenome:
        return PermutationGenome(genes)

    def crossover(
        self, other: Genome, rng: Generator
    ) -> tuple[PermutationGenome, PermutationGenome]:
        self.check_compatible(other)
        genes1, genes2 = order_crossover(self.genes, other.genes, rng)
        return self.with_genes(genes1), self.with_genes(genes2)

    def mutate(self, rate: float, rng: Generator) -> PermutationGenome:
        """Swap mutation displacing about ``rate * n`` positions.

        Each position starts a swap with probability ``rate / 2``; a swap
        moves two genes, so the expected number of changed positions matches
        the per-gene law of the other encodings.
        """
        n = len(self)
        genes = self.genes.copy()
        if n < 2:
            return self.with_genes(genes)
        mask = rng.random(n) < rate / 2.0
        for i in np.flatnonzero(mask):
            j = int(rng.integers(n - 1))
            if j >= i:
                j += 1
            genes[i], genes[j] = genes[j], genes[i]
        return self.with_genes(genes)

    def is_valid(self) -> bool:
        return bool(np.array_equal(np.sort(self.genes), np.arange(len(self))))

    def distance(self, other: Genome) -> float:
        self.check_compatible(other)
        return float(np.count_nonzero(self.genes != other.genes))


# ---------------------------------------------------------------------------
# Array-level recombination kernels
# ---------------------------------------------------------------------------


def single_point_crossover(
    genes1: np.ndarray, genes2: np.ndarray, rng: Generator
) -> tuple[np.ndarray, np.ndarray]:
    """Swap tails after one cut drawn from ``[1, n-1]``."""
    n = genes1.shape[0]
    if n < 2:
        return genes1.copy(), genes2.copy()
    cut = int(rng.integers(1, n))
    child1 = np.concatenate([genes1[:cut], genes2[cut:]])
    child2 = np.concatenate([genes2[:cut], genes1[cut:]])
    return child1, child2


def two_point_crossover(
    genes1: np.ndarray, genes2: np.ndarray, rng: Generator
) -> tuple[np.ndarray, np.ndarray]:
    """Swap the segment between two distinct interior cuts."""
    n = genes1.shape[0]
    if n < 3:
        return single_point_crossover(genes1, genes2, rng)
    a, b = sorted(int(c) for c in rng.choice(np.arange(1, n), size=2, replace=False))
    child1 = genes1.copy()
    child2 = genes2.copy()
    child1[a:b] = genes2[a:b]
    child2[a:b] = genes1[a:b]
    return child1, child2


def uniform_crossover(
    genes1: np.ndarray, genes2: np.ndarray, rng: Generator, swap_prob: float = 0.5
) -> tuple[np.ndarray, np.ndarray]:
    """Gene-wise coin flip deciding which parent each child inherits from."""
    mask = rng.random(genes1.shape[0]) < swap_prob
    child1 = np.where(mask, genes2, genes1)
    child2 = np.where(mask, genes1, genes2)
    return child1, child2


def order_crossover(
    genes1: np.ndarray, genes2: np.ndarray, rng: Generator
) -> tuple[np.ndarray, np.ndarray]:
    """OX: keep a slice of one parent, fill the rest in the other's order."""
    n = genes1.shape[0]
    if n < 2:
        return genes1.copy(), genes2.copy()
    a, b = sorted(int(c) for c in rng.choice(n + 1, size=2, replace=False))
    return _order_child(genes1, genes2, a, b), _order_child(genes2, genes1, a, b)


def _order_child(keep: np.ndarray, fill: np.ndarray, a: int, b: int) -> np.ndarray:
    n = keep.shape[0]
    child = np.empty_like(keep)
    child[a:b] = keep[a:b]
    kept = set(keep[a:b].tolist())
    remaining = [g for g in np.roll(fill, -b).tolist() if g not in kept]
    positions = [(b + i) % n for i in range(n - (b - a))]
    child[positions] = remaining
    return child


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def bit_string_factory(length: int) -> GenomeFactory:
    """Factory producing random bit-strings of ``length`` genes."""
    _require_length(length)
    return partial(BitStringGenome.random, length=length)


def real_vector_factory(
    bounds: tuple[float, float] | Sequence[tuple[float, float]],
    length: int | None = None,
    scale: float = Config.MUTATION_SCALE,
) -> GenomeFactory:
    """Factory producing random bounded real vectors."""
    size = _length_from_bounds(bounds) if length is None else length
    _require_length(size)
    _normalize_bounds(bounds, size)
    return partial(RealVectorGenome.random, bounds=bounds, length=size, scale=scale)


def permutation_factory(length: int) -> GenomeFactory:
    """Factory producing random permutations of ``0..length-1``."""
    _require_length(length)
    return partial(PermutationGenome.random, length=length)


def _require_length(length: int) -> None:
    if int(length) <= 0:
        raise ValueError(f"genome length must be > 0, got {length}")


def _normalize_bounds(
    bounds: tuple[float, float] | Sequence[tuple[float, float]] | np.ndarray,
    length: int,
) -> tuple[np.ndarray, np.ndarray]:
    arr = np.asarray(bounds, dtype=np.float64)
    if arr.shape == (2,):
        lows = np.full(length, arr[0])
        highs = np.full(length, arr[1])
    elif arr.shape == (length, 2):
        lows, highs = arr[:, 0].copy(), arr[:, 1].copy()
    else:
        raise ValueError(
            f"bounds must be one (min, max) pair or {length} pairs, got shape {arr.shape}"
        )
    if not (np.all(np.isfinite(lows)) and np.all(np.isfinite(highs))):
        raise ValueError("bounds must be finite")
    if np.any(lows >= highs):
        raise ValueError("each bound must satisfy min < max")
    return _frozen(lows), _frozen(highs)


def _same_signature(sig1: tuple, sig2: tuple) -> bool:
    if len(sig1) != len(sig2):
        return False
    for a, b in zip(sig1, sig2):
        if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
            if not np.array_equal(a, b):
                return False
        elif a != b:
            return False
    return True


def _length_from_bounds(
    bounds: tuple[float, float] | Sequence[tuple[float, float]] | np.ndarray,
) -> int:
    arr = np.asarray(bounds, dtype=np.float64)
    if arr.ndim != 2:
        raise ValueError("length is required when a single (min, max) pair is given")
    return int(arr.shape[0])
