"""Unit tests for population and run statistics."""

from __future__ import annotations

import math

import numpy as np
import pytest

from genetica.config import OptimizationSense
from genetica.core.rng import RandomContext
from genetica.evolution.genome import BitStringGenome
from genetica.evolution.individual import Individual
from genetica.evolution.population import Population
from genetica.evolution.statistics import GenerationStats, RunStatistics


def make_population(
    fitness: list[float], sense: OptimizationSense = OptimizationSense.MAXIMIZE
) -> Population:
    genomes = [BitStringGenome([(i >> b) & 1 for b in range(4)]) for i in range(len(fitness))]
    return Population([Individual(g, f) for g, f in zip(genomes, fitness)], sense)


class TestIndividual:
    def test_rejects_non_finite_fitness(self) -> None:
        with pytest.raises(ValueError):
            Individual(BitStringGenome([0, 1]), math.nan)

    def test_is_frozen(self) -> None:
        ind = Individual(BitStringGenome([0, 1]), 1.0)
        with pytest.raises(AttributeError):
            ind.fitness = 2.0  # type: ignore[misc]


class TestPopulation:
    def test_empty_population_rejected(self) -> None:
        with pytest.raises(ValueError):
            Population([])

    def test_ranking_is_stable(self) -> None:
        population = make_population([3.0, 5.0, 3.0, 5.0])
        assert population.ranked_indices().tolist() == [1, 3, 0, 2]
        assert population.best_index == 1
        assert population.worst_index == 2

    def test_minimize_ranking(self) -> None:
        population = make_population([3.0, 1.0, 2.0], OptimizationSense.MINIMIZE)
        assert population.best().fitness == 1.0
        assert population.worst().fitness == 3.0
        assert [ind.fitness for ind in population.best_k(2)] == [1.0, 2.0]
        assert population.worst_indices(2) == [0, 2]

    def test_summary_measures(self) -> None:
        population = make_population([1.0, 2.0, 3.0, 6.0])
        assert population.mean_fitness() == pytest.approx(3.0)
        assert population.fitness_variance() == pytest.approx(3.5)

    def test_fitness_is_read_only(self) -> None:
        population = make_population([1.0, 2.0])
        with pytest.raises(ValueError):
            population.fitness[0] = 10.0

    def test_replaced_returns_new_population(self) -> None:
        population = make_population([1.0, 2.0, 3.0])
        newcomer = Individual(BitStringGenome([1, 1, 1, 1]), 9.0, generation=1)
        result = population.replaced([0], [newcomer])
        assert result.fitness.tolist() == [9.0, 2.0, 3.0]
        assert population.fitness.tolist() == [1.0, 2.0, 3.0]

    def test_diversity_is_mean_pairwise_distance(self) -> None:
        genomes = [BitStringGenome([0, 0]), BitStringGenome([1, 1]), BitStringGenome([0, 1])]
        population = Population([Individual(g, 1.0) for g in genomes])
        # Hamming distances: 2, 1, 1
        assert population.diversity() == pytest.approx(4.0 / 3.0)

    def test_single_individual_has_no_diversity(self) -> None:
        assert make_population([1.0]).diversity() == 0.0


class TestStatistics:
    def test_generation_snapshot(self) -> None:
        population = make_population([1.0, 4.0, 7.0])
        stats = GenerationStats.from_population(
            3, population, population.best(), evaluations=3, record_diversity=True
        )
        assert stats.generation == 3
        assert stats.best_fitness == 7.0
        assert stats.worst_fitness == 1.0
        assert stats.mean_fitness == pytest.approx(4.0)
        assert stats.fitness_std == pytest.approx(np.std([1.0, 4.0, 7.0]))
        assert stats.diversity is not None
        summary = stats.as_dict()
        assert summary["best_genome"] == population.best().genome.genes.tolist()

    def test_best_ever_tracking(self) -> None:
        run = RunStatistics(sense=OptimizationSense.MINIMIZE)
        a = Individual(BitStringGenome([0]), 5.0)
        b = Individual(BitStringGenome([1]), 7.0)
        c = Individual(BitStringGenome([1]), 2.0)
        assert run.update_best(a)
        assert not run.update_best(b)
        assert run.update_best(c)
        assert run.best_ever is c

    def test_equal_fitness_is_not_an_improvement(self) -> None:
        run = RunStatistics()
        first = Individual(BitStringGenome([0]), 5.0)
        run.update_best(first)
        assert not run.update_best(Individual(BitStringGenome([1]), 5.0))
        assert run.best_ever is first

    def test_online_and_offline_performance(self) -> None:
        run = RunStatistics()
        for generation, fitness in enumerate(([1.0, 3.0], [2.0, 6.0]), start=1):
            population = make_population(fitness)
            run.update_best(population.best())
            assert run.best_ever is not None
            run.record(
                GenerationStats.from_population(generation, population, run.best_ever),
                population,
            )
        assert run.generations_recorded == 2
        assert run.online_performance == pytest.approx((2.0 + 4.0) / 2)
        assert run.offline_max_performance == pytest.approx((3.0 + 6.0) / 2)
        assert run.offline_min_performance == pytest.approx((1.0 + 2.0) / 2)
        assert run.max_ever == 6.0
        assert run.min_ever == 1.0
        assert run.last is not None and run.last.generation == 2
        assert run.as_dict()["best_ever_fitness"] == 6.0


class TestRandomContext:
    def test_reset_replays_sequence(self) -> None:
        context = RandomContext(11)
        first = context.generator.random(5)
        context.reset()
        assert np.array_equal(context.generator.random(5), first)

    def test_substreams_are_keyed(self) -> None:
        context = RandomContext(11)
        a = context.substream(2, 3).random(4)
        b = context.substream(2, 3).random(4)
        c = context.substream(2, 4).random(4)
        assert np.array_equal(a, b)
        assert not np.array_equal(a, c)

    def test_genome_streams_follow_genes(self) -> None:
        context = RandomContext(11)
        a = context.genome_stream(BitStringGenome([0, 1, 1, 0])).random(4)
        b = RandomContext(11).genome_stream(BitStringGenome([0, 1, 1, 0])).random(4)
        c = context.genome_stream(BitStringGenome([1, 1, 1, 0])).random(4)
        d = RandomContext(12).genome_stream(BitStringGenome([0, 1, 1, 0])).random(4)
        assert np.array_equal(a, b)
        assert not np.array_equal(a, c)
        assert not np.array_equal(a, d)

    def test_negative_seed_rejected(self) -> None:
        with pytest.raises(ValueError):
            RandomContext(-1)
