"""Run a demo problem through the genetic-algorithm engine."""

from __future__ import annotations

import argparse
import sys

import numpy as np
from loguru import logger

from genetica.config import Config, RunConfiguration
from genetica.core.engine import GeneticAlgorithmEngine
from genetica.evolution.genome import (
    bit_string_factory,
    permutation_factory,
    real_vector_factory,
)
from genetica.evolution.statistics import GenerationStats
from genetica.exceptions import EvolutionError


def onemax(genome) -> float:
    return float(np.sum(genome.genes))


def sphere(genome) -> float:
    return float(np.sum(genome.genes**2))


class TourLength:
    """Closed-tour length over fixed random cities."""

    def __init__(self, num_cities: int, seed: int) -> None:
        rng = np.random.default_rng(seed)
        self.cities = rng.random((num_cities, 2))

    def __call__(self, genome) -> float:
        path = self.cities[genome.genes]
        return float(np.sum(np.linalg.norm(path - np.roll(path, -1, axis=0), axis=1)))


def build_problem(args: argparse.Namespace):
    """Genome factory, evaluator and optimization sense for the chosen problem."""
    if args.problem == "onemax":
        return bit_string_factory(args.size), onemax, "maximize", float(args.size)
    if args.problem == "sphere":
        return real_vector_factory((-5.12, 5.12), length=args.size), sphere, "minimize", None
    return permutation_factory(args.size), TourLength(args.size, args.seed), "minimize", None


def print_generation(stats: GenerationStats) -> None:
    print(
        f"Gen {stats.generation:4d} | best={stats.best_fitness:10.4f} "
        f"mean={stats.mean_fitness:10.4f} std={stats.fitness_std:8.4f} "
        f"best_ever={stats.best_ever.fitness:10.4f}"
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a genetic algorithm demo")
    parser.add_argument("problem", choices=["onemax", "sphere", "tsp"])
    parser.add_argument("--size", type=int, default=32, help="Genome length / cities")
    parser.add_argument("--population", type=int, default=Config.POPULATION_SIZE)
    parser.add_argument("--generations", type=int, default=Config.MAX_GENERATIONS)
    parser.add_argument("--seed", type=int, default=Config.RANDOM_SEED)
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument("--selection", choices=Config.SELECTIONS, default=Config.SELECTION)
    parser.add_argument("--replacement", choices=Config.REPLACEMENTS, default=Config.REPLACEMENT)
    parser.add_argument("--scaling", choices=Config.SCALINGS, default=Config.SCALING)
    parser.add_argument("--elitism", type=int, default=Config.ELITISM_COUNT)
    parser.add_argument("--crossover-rate", type=float, default=Config.CROSSOVER_RATE)
    parser.add_argument("--mutation-rate", type=float, default=None)
    parser.add_argument("--stagnation", type=int, default=None)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logger.remove()
    logger.add(
        sys.stderr,
        level=args.log_level.upper(),
        format="{time:HH:mm:ss.SSS} | {level: <8} | {message}",
    )

    factory, evaluator, sense, goal = build_problem(args)
    try:
        config = RunConfiguration(
            population_size=args.population,
            crossover_rate=args.crossover_rate,
            mutation_rate=args.mutation_rate if args.mutation_rate is not None else 1.0 / args.size,
            optimization_sense=sense,
            max_generations=args.generations,
            fitness_goal=goal,
            stagnation_limit=args.stagnation,
            elitism_count=args.elitism,
            random_seed=args.seed,
            worker_count=args.workers,
            selection=args.selection,
            replacement=args.replacement,
            scaling=args.scaling,
        )
        result = GeneticAlgorithmEngine(
            config, factory, evaluator, observer=print_generation
        ).run()
    except EvolutionError as exc:
        logger.error("[Demo] {}", exc)
        sys.exit(1)

    print(f"\nStopped after {result.generations} generations ({result.termination_reason.value})")
    print(f"Best fitness: {result.best.fitness:.6f}")
    print(f"Best genome:  {result.best.genome.genes.tolist()}")
    stats = result.statistics
    print(
        f"Evaluations: {stats.evaluations}  crossovers: {stats.crossovers}  "
        f"mutations: {stats.mutations}  online: {stats.online_performance:.4f}"
    )


if __name__ == "__main__":
    main()
