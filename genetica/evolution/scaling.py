"""Fitness scaling schemes applied to selection weights."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from genetica.config import Config
from genetica.exceptions import ConfigError


class FitnessScaling(ABC):
    """Maps non-negative selection weights to scaled weights."""

    @abstractmethod
    def scale(self, weights: np.ndarray) -> np.ndarray:
        """Return scaled weights, same shape, all >= 0."""


class NoScaling(FitnessScaling):
    """Weights are used as they are."""

    def scale(self, weights: np.ndarray) -> np.ndarray:
        return np.asarray(weights, dtype=np.float64)


class LinearScaling(FitnessScaling):
    """Goldberg's ``a * w + b`` scaling.

    Keeps the average weight unchanged while giving the best individual
    ``multiplier`` times the average. When that would push the worst weight
    below zero, the line is instead pinned so that the worst maps to zero.
    """

    def __init__(self, multiplier: float = Config.SCALING_MULTIPLIER) -> None:
        if multiplier <= 1.0:
            raise ConfigError(f"multiplier must be > 1, got {multiplier}")
        self.multiplier = float(multiplier)

    def coefficients(self, w_max: float, w_min: float, w_avg: float) -> tuple[float, float]:
        m = self.multiplier
        if w_min > (m * w_avg - w_max) / (m - 1.0):
            delta = w_max - w_avg
            if delta <= 0.0:
                return 1.0, 0.0
            a = (m - 1.0) * w_avg / delta
            b = w_avg * (w_max - m * w_avg) / delta
        else:
            delta = w_avg - w_min
            if delta <= 0.0:
                return 1.0, 0.0
            a = w_avg / delta
            b = -w_min * w_avg / delta
        return a, b

    def scale(self, weights: np.ndarray) -> np.ndarray:
        values = np.asarray(weights, dtype=np.float64)
        if values.size == 0:
            return values
        a, b = self.coefficients(float(values.max()), float(values.min()), float(values.mean()))
        return np.maximum(a * values + b, 0.0)


def build_scaling(name: str, multiplier: float = Config.SCALING_MULTIPLIER) -> FitnessScaling:
    if name == "none":
        return NoScaling()
    if name == "linear":
        return LinearScaling(multiplier)
    raise ConfigError(f"unknown scaling {name!r}")
