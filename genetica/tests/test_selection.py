"""Unit tests for selection strategies and fitness scaling."""

from __future__ import annotations

from collections import Counter

import numpy as np
import pytest
from numpy.random import Generator

from genetica.config import OptimizationSense, RunConfiguration
from genetica.evolution.fitness import coerce_fitness, selection_weights
from genetica.evolution.genome import BitStringGenome
from genetica.evolution.individual import Individual
from genetica.evolution.population import Population
from genetica.evolution.scaling import LinearScaling, NoScaling, build_scaling
from genetica.evolution.selection import (
    RankSelection,
    RouletteWheelSelection,
    TournamentSelection,
    UniformSelection,
    build_selection,
)
from genetica.exceptions import ConfigError


@pytest.fixture
def rng() -> Generator:
    """Seeded random generator."""

    return np.random.default_rng(seed=42)


def make_population(
    fitness: list[float], sense: OptimizationSense = OptimizationSense.MAXIMIZE
) -> Population:
    individuals = [
        Individual(BitStringGenome([i % 2, (i // 2) % 2, (i // 4) % 2]), f)
        for i, f in enumerate(fitness)
    ]
    return Population(individuals, sense)


def frequencies(strategy, population: Population, rng: Generator, draws: int) -> np.ndarray:
    strategy.prepare(population)
    counts = Counter(strategy.select_index(population, rng) for _ in range(draws))
    return np.array([counts[i] for i in range(population.size)], dtype=np.float64) / draws


class TestFitnessHelpers:
    def test_weights_shift_to_positive(self) -> None:
        weights = selection_weights([-3.0, 0.0, 5.0], OptimizationSense.MAXIMIZE)
        assert np.all(weights > 0)
        assert weights[2] > weights[1] > weights[0]

    def test_minimize_negates_then_shifts(self) -> None:
        weights = selection_weights([1.0, 2.0, 4.0], OptimizationSense.MINIMIZE)
        assert weights[0] > weights[1] > weights[2] > 0

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), "abc", None, True])
    def test_coerce_rejects_bad_scores(self, value) -> None:
        with pytest.raises(ValueError):
            coerce_fitness(value)

    def test_coerce_accepts_numpy_scalars(self) -> None:
        assert coerce_fitness(np.float32(1.5)) == 1.5
        assert coerce_fitness(np.int64(3)) == 3.0


class TestRouletteWheel:
    def test_proportionate_frequencies(self, rng: Generator) -> None:
        population = make_population([1.0, 2.0, 3.0, 4.0])
        freq = frequencies(RouletteWheelSelection(), population, rng, 20000)
        expected = selection_weights(population.fitness, population.sense)
        expected = expected / expected.sum()
        assert np.allclose(freq, expected, atol=0.02)

    def test_equal_fitness_is_uniform(self, rng: Generator) -> None:
        population = make_population([5.0] * 4)
        freq = frequencies(RouletteWheelSelection(), population, rng, 20000)
        assert np.allclose(freq, 0.25, atol=0.02)

    def test_minimize_prefers_low_fitness(self, rng: Generator) -> None:
        population = make_population([1.0, 10.0, 20.0], OptimizationSense.MINIMIZE)
        freq = frequencies(RouletteWheelSelection(), population, rng, 10000)
        assert freq[0] > freq[1] > freq[2]

    def test_reprepares_for_new_population(self, rng: Generator) -> None:
        strategy = RouletteWheelSelection()
        strategy.prepare(make_population([1.0, 100.0]))
        other = make_population([100.0, 1.0, 1.0])
        picks = Counter(strategy.select_index(other, rng) for _ in range(2000))
        assert max(picks) < 3
        assert picks[0] > picks[1]


class TestRankSelection:
    def test_probability_proportional_to_rank(self, rng: Generator) -> None:
        population = make_population([10.0, 30.0, 20.0])
        freq = frequencies(RankSelection(), population, rng, 30000)
        assert np.allclose(freq, [1 / 6, 3 / 6, 2 / 6], atol=0.02)

    def test_rank_ignores_magnitude(self, rng: Generator) -> None:
        a = frequencies(RankSelection(), make_population([1.0, 2.0, 3.0]), rng, 20000)
        b = frequencies(RankSelection(), make_population([1.0, 2.0, 1e9]), rng, 20000)
        assert np.allclose(a, b, atol=0.02)


class TestTournament:
    def test_full_tournament_picks_best(self, rng: Generator) -> None:
        population = make_population([3.0, 9.0, 1.0, 4.0])
        strategy = TournamentSelection(tournament_size=4)
        assert all(strategy.select_index(population, rng) == 1 for _ in range(50))

    def test_ties_go_to_lowest_index(self, rng: Generator) -> None:
        population = make_population([7.0, 7.0, 7.0])
        strategy = TournamentSelection(tournament_size=3)
        assert all(strategy.select_index(population, rng) == 0 for _ in range(20))

    def test_size_larger_than_population_is_clamped(self, rng: Generator) -> None:
        population = make_population([1.0, 2.0])
        assert TournamentSelection(tournament_size=10).select_index(population, rng) == 1

    def test_minimize_picks_lowest(self, rng: Generator) -> None:
        population = make_population([3.0, 9.0, 1.0], OptimizationSense.MINIMIZE)
        assert TournamentSelection(3).select_index(population, rng) == 2

    def test_worst_never_wins_binary_tournament(self, rng: Generator) -> None:
        population = make_population([1.0, 2.0, 3.0, 4.0])
        strategy = TournamentSelection(2)
        picks = {strategy.select_index(population, rng) for _ in range(500)}
        assert 0 not in picks

    def test_invalid_size(self) -> None:
        with pytest.raises(ConfigError):
            TournamentSelection(0)


class TestUniformSelection:
    def test_frequencies_flat(self, rng: Generator) -> None:
        population = make_population([1.0, 100.0, 1000.0, 5.0])
        freq = frequencies(UniformSelection(), population, rng, 20000)
        assert np.allclose(freq, 0.25, atol=0.02)


class TestScaling:
    def test_no_scaling_is_identity(self) -> None:
        weights = np.array([1.0, 2.0, 3.0])
        assert np.array_equal(NoScaling().scale(weights), weights)

    def test_linear_scaling_preserves_mean(self) -> None:
        weights = np.array([4.0, 5.0, 6.0, 9.0])
        scaled = LinearScaling(multiplier=2.0).scale(weights)
        assert scaled.mean() == pytest.approx(weights.mean())
        assert scaled.max() == pytest.approx(2.0 * weights.mean())

    def test_linear_scaling_never_negative(self) -> None:
        weights = np.array([1.0, 9.0, 9.0, 10.0])
        scaled = LinearScaling(multiplier=2.0).scale(weights)
        assert np.all(scaled >= 0.0)
        assert scaled[0] == pytest.approx(0.0)
        assert scaled.mean() == pytest.approx(weights.mean())

    def test_linear_scaling_flat_weights_unchanged(self) -> None:
        weights = np.full(5, 2.0)
        assert np.allclose(LinearScaling().scale(weights), weights)

    def test_build_scaling(self) -> None:
        assert isinstance(build_scaling("none"), NoScaling)
        assert isinstance(build_scaling("linear", 1.5), LinearScaling)
        with pytest.raises(ConfigError):
            build_scaling("sigma")


class TestBuildSelection:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("roulette", RouletteWheelSelection),
            ("tournament", TournamentSelection),
            ("rank", RankSelection),
            ("uniform", UniformSelection),
        ],
    )
    def test_builds_configured_strategy(self, name, expected) -> None:
        strategy = build_selection(RunConfiguration(selection=name))
        assert isinstance(strategy, expected)

    def test_roulette_gets_linear_scaling(self) -> None:
        config = RunConfiguration(selection="roulette", scaling="linear", scaling_multiplier=1.8)
        strategy = build_selection(config)
        assert isinstance(strategy.scaling, LinearScaling)
        assert strategy.scaling.multiplier == 1.8
