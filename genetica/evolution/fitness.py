"""Fitness evaluator contract and optimization-sense helpers."""

from __future__ import annotations

import math
from typing import Any, Protocol, Sequence

import numpy as np

from genetica.config import OptimizationSense
from genetica.evolution.genome import Genome

WEIGHT_EPSILON = 1e-9


class FitnessEvaluator(Protocol):
    """Pure function scoring one genome.

    Must be safe to call concurrently on distinct genomes and return the
    same score for the same genome within a run.
    """

    def __call__(self, genome: Genome) -> float: ...


def coerce_fitness(value: Any) -> float:
    """Convert an evaluator result to a finite float or raise ``ValueError``."""
    if isinstance(value, bool):
        raise ValueError(f"fitness must be a real number, got {value!r}")
    try:
        fitness = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"fitness must be a real number, got {value!r}") from exc
    if not math.isfinite(fitness):
        raise ValueError(f"fitness must be finite, got {fitness}")
    return fitness


def is_better(a: float, b: float, sense: OptimizationSense) -> bool:
    """Strictly better under ``sense``."""
    if sense is OptimizationSense.MAXIMIZE:
        return a > b
    return a < b


def meets_goal(fitness: float, goal: float, sense: OptimizationSense) -> bool:
    if sense is OptimizationSense.MAXIMIZE:
        return fitness >= goal
    return fitness <= goal


def goodness(fitness: Sequence[float] | np.ndarray, sense: OptimizationSense) -> np.ndarray:
    """Scores oriented so that larger is always better."""
    scores = np.asarray(fitness, dtype=np.float64)
    if sense is OptimizationSense.MINIMIZE:
        return -scores
    return scores


def selection_weights(
    fitness: Sequence[float] | np.ndarray, sense: OptimizationSense
) -> np.ndarray:
    """Non-negative selection weights derived from fitness and sense.

    Scores are negated when minimizing and shifted so that the worst
    individual keeps a small positive weight: ``w = s - min(s) + eps``.
    """
    scores = goodness(fitness, sense)
    if scores.size == 0:
        return scores
    spread = float(scores.max() - scores.min())
    eps = WEIGHT_EPSILON * max(1.0, abs(spread))
    return scores - scores.min() + eps
