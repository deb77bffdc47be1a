"""Deterministic random sources for a run."""

from __future__ import annotations

import hashlib

import numpy as np
from numpy.random import Generator, SeedSequence

from genetica.evolution.genome import Genome


class RandomContext:
    """Owns the run's random generator without touching global random state.

    The sequential phases (initialization, selection, crossover, mutation)
    share one generator threaded explicitly through the engine.

    Evaluators only ever see a genome, so a noisy evaluator keeps its own
    ``RandomContext(seed)`` and draws from :meth:`genome_stream`: the stream
    depends on the seed and the genes alone, never on the worker that runs
    the evaluation or the order results come back in. Code that knows the
    ``(generation, index)`` position of an individual can use
    :meth:`substream` instead.
    """

    def __init__(self, seed: int) -> None:
        if seed < 0:
            raise ValueError(f"seed must be >= 0, got {seed}")
        self.seed = int(seed)
        self.generator: Generator = np.random.default_rng(SeedSequence(self.seed))

    def reset(self) -> None:
        """Rewind the run generator to its seeded state."""
        self.generator = np.random.default_rng(SeedSequence(self.seed))

    def substream(self, generation: int, index: int) -> Generator:
        """Independent generator for one individual of one generation."""
        sequence = SeedSequence(self.seed, spawn_key=(int(generation), int(index)))
        return np.random.default_rng(sequence)

    def genome_stream(self, genome: Genome) -> Generator:
        """Independent generator keyed by the genome's encoding and genes."""
        digest = hashlib.blake2b(digest_size=8)
        digest.update(genome.ENCODING.encode())
        digest.update(genome.genes.tobytes())
        key = int.from_bytes(digest.digest(), "little")
        return np.random.default_rng(SeedSequence(self.seed, spawn_key=(len(genome), key)))

    def __repr__(self) -> str:
        return f"RandomContext(seed={self.seed})"
