"""Generational genetic-algorithm engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, cast

from loguru import logger

from genetica.config import RunConfiguration
from genetica.core.rng import RandomContext
from genetica.core.scheduler import ParallelEvaluationScheduler
from genetica.evolution.fitness import meets_goal
from genetica.evolution.genome import Genome, GenomeFactory
from genetica.evolution.individual import Individual
from genetica.evolution.operators import (
    CrossoverOperator,
    GenomeCrossover,
    GenomeMutation,
    MutationOperator,
)
from genetica.evolution.population import Population
from genetica.evolution.replacement import ReplacementStrategy, build_replacement
from genetica.evolution.selection import SelectionStrategy, build_selection
from genetica.evolution.statistics import GenerationStats, RunStatistics
from genetica.exceptions import (
    ConfigError,
    EvaluationFailure,
    EvolutionError,
    IncompatibleGenomeError,
    RunError,
)

Observer = Callable[[GenerationStats], None]


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    EVALUATING = "evaluating"
    SELECTING = "selecting"
    RECOMBINING = "recombining"
    REPLACING = "replacing"
    TERMINATED = "terminated"


class TerminationReason(str, Enum):
    MAX_GENERATIONS = "max_generations"
    FITNESS_GOAL = "fitness_goal"
    STAGNATION = "stagnation"


@dataclass(frozen=True)
class RunResult:
    """Outcome of a completed run."""

    best: Individual
    history: tuple[GenerationStats, ...]
    statistics: RunStatistics
    termination_reason: TerminationReason
    generations: int


class GeneticAlgorithmEngine:
    """Orchestrates evaluate → select → recombine → replace generations.

    The engine owns the population and the run's random source. Fitness
    evaluation is the only parallel phase; everything else runs on the
    calling thread between evaluation barriers, so the population is never
    touched concurrently.

    Strategies left as ``None`` are built from the configuration: the
    configured selection and replacement, the genome's own crossover and
    mutation.
    """

    def __init__(
        self,
        configuration: RunConfiguration,
        genome_factory: GenomeFactory,
        evaluator: Callable[[Genome], Any],
        selection_strategy: SelectionStrategy | None = None,
        crossover_operator: CrossoverOperator | None = None,
        mutation_operator: MutationOperator | None = None,
        replacement_strategy: ReplacementStrategy | None = None,
        observer: Observer | None = None,
        scheduler: ParallelEvaluationScheduler | None = None,
    ) -> None:
        if not isinstance(configuration, RunConfiguration):
            raise ConfigError(
                f"configuration must be a RunConfiguration, got {type(configuration).__name__}"
            )
        if not callable(genome_factory):
            raise ConfigError("genome_factory must be callable")
        if not callable(evaluator):
            raise ConfigError("evaluator must be callable")
        if observer is not None and not callable(observer):
            raise ConfigError("observer must be callable")

        self.config = configuration
        self.genome_factory = genome_factory
        self.evaluator = evaluator
        self.selection = selection_strategy or build_selection(configuration)
        self.crossover = crossover_operator or GenomeCrossover()
        self.mutation = mutation_operator or GenomeMutation()
        self.replacement = replacement_strategy or build_replacement(configuration)
        self.replacement.validate(configuration.population_size, configuration.elitism_count)
        self.observer = observer

        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or ParallelEvaluationScheduler(
            configuration.effective_worker_count
        )
        self.random = RandomContext(configuration.random_seed)

        self.state = EngineState.UNINITIALIZED
        self.population: Population | None = None
        self.generation = 0
        self.statistics = RunStatistics(sense=configuration.optimization_sense)
        self.termination_reason: TerminationReason | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def best(self) -> Individual | None:
        return self.statistics.best_ever

    @property
    def history(self) -> tuple[GenerationStats, ...]:
        return tuple(self.statistics.history)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> Population:
        """Seed and evaluate the initial population."""
        config = self.config
        self.random.reset()
        self.statistics = RunStatistics(sense=config.optimization_sense)
        self.generation = 0
        self.population = None
        self.termination_reason = None
        self.state = EngineState.INITIALIZED

        rng = self.random.generator
        genomes = [self.genome_factory(rng) for _ in range(config.population_size)]
        for genome in genomes:
            if not isinstance(genome, Genome):
                self.state = EngineState.TERMINATED
                raise RunError(
                    f"genome_factory returned {type(genome).__name__}, expected a Genome",
                    phase=EngineState.INITIALIZED,
                    generation=1,
                )

        scores = self._evaluate(genomes, generation=1)
        self.population = Population(
            [Individual(g, s, 0) for g, s in zip(genomes, scores)],
            config.optimization_sense,
        )
        self.statistics.update_best(self.population.best())
        logger.debug(
            "[Engine] Initial population evaluated: best={:.6g} mean={:.6g}",
            self.population.best().fitness,
            self.population.mean_fitness(),
        )
        return self.population

    def step(self) -> int:
        """Run one generation and return its index."""
        if self.state is EngineState.TERMINATED:
            raise EvolutionError("engine has terminated; call initialize() to start over")
        current = self.population if self.population is not None else self.initialize()

        config = self.config
        generation = self.generation + 1
        offspring_genomes = self._breed(current, generation)

        scores = self._evaluate(offspring_genomes, generation)
        offspring = [
            Individual(genome, score, generation)
            for genome, score in zip(offspring_genomes, scores)
        ]

        self.state = EngineState.REPLACING
        population = self.replacement.replace(current, offspring, config.elitism_count)
        self.population = population
        self.generation = generation

        stats = self.statistics
        stats.replacements += sum(1 for ind in population if ind.generation == generation)
        if stats.update_best(population.best()):
            stats.stagnant_generations = 0
        else:
            stats.stagnant_generations += 1

        # update_best has just run, so best_ever is set.
        best_ever = cast(Individual, stats.best_ever)
        snapshot = GenerationStats.from_population(
            generation,
            population,
            best_ever,
            evaluations=len(offspring_genomes),
            record_diversity=config.record_diversity,
        )
        stats.record(snapshot, population)
        logger.debug(
            "[Engine] Generation {}: best={:.6g} mean={:.6g} best_ever={:.6g}",
            generation,
            snapshot.best_fitness,
            snapshot.mean_fitness,
            snapshot.best_ever.fitness,
        )
        self._notify(snapshot)
        return generation

    def done(self) -> bool:
        """Check termination conditions; sets ``termination_reason``."""
        if self.state is EngineState.TERMINATED:
            return True
        config = self.config
        best = self.statistics.best_ever
        reason: TerminationReason | None = None
        if self.generation >= config.max_generations:
            reason = TerminationReason.MAX_GENERATIONS
        elif (
            config.fitness_goal is not None
            and best is not None
            and meets_goal(best.fitness, config.fitness_goal, config.optimization_sense)
        ):
            reason = TerminationReason.FITNESS_GOAL
        elif (
            config.stagnation_limit is not None
            and self.statistics.stagnant_generations >= config.stagnation_limit
        ):
            reason = TerminationReason.STAGNATION

        if reason is None:
            return False
        self.termination_reason = reason
        self.state = EngineState.TERMINATED
        return True

    def run(self) -> RunResult:
        """Evolve until a termination condition holds.

        Raises:
            RunError: the run aborted; ``EvaluationFailure`` when the
                evaluator failed, carrying the generation and genome index.
        """
        config = self.config
        logger.info(
            "[Engine] Starting run: population={} generations<={} sense={} seed={}",
            config.population_size,
            config.max_generations,
            config.optimization_sense.value,
            config.random_seed,
        )
        try:
            self.initialize()
            self.step()
            while not self.done():
                self.step()
        finally:
            if self._owns_scheduler:
                self.scheduler.close()

        best = self.statistics.best_ever
        reason = self.termination_reason
        if best is None or reason is None:
            raise EvolutionError("run ended without a best individual or termination reason")
        logger.info(
            "[Engine] Run finished after {} generations ({}): best={:.6g}",
            self.generation,
            reason.value,
            best.fitness,
        )
        return RunResult(
            best=best,
            history=self.history,
            statistics=self.statistics,
            termination_reason=reason,
            generations=self.generation,
        )

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _breed(self, population: Population, generation: int) -> list[Genome]:
        config = self.config
        rng = self.random.generator
        stats = self.statistics
        count = self.replacement.offspring_count(population.size, config.elitism_count)

        self.state = EngineState.SELECTING
        self.selection.prepare(population)

        offspring: list[Genome] = []
        try:
            while len(offspring) < count:
                self.state = EngineState.SELECTING
                parent1, parent2 = self.selection.select_pair(population, rng)
                stats.selections += 2

                self.state = EngineState.RECOMBINING
                child1, child2, crossed = self.crossover.recombine(
                    parent1.genome, parent2.genome, config.crossover_rate, rng
                )
                if crossed:
                    stats.crossovers += 1
                for child in (child1, child2):
                    if len(offspring) >= count:
                        break
                    mutated, changed = self.mutation.mutate_counted(
                        child, config.mutation_rate, rng
                    )
                    stats.mutations += changed
                    offspring.append(mutated)
        except IncompatibleGenomeError as exc:
            phase = self.state
            self.state = EngineState.TERMINATED
            raise RunError(
                f"recombination failed in generation {generation}: {exc}",
                phase=phase,
                generation=generation,
            ) from exc
        return offspring

    def _evaluate(self, genomes: list[Genome], generation: int) -> list[float]:
        self.state = EngineState.EVALUATING
        try:
            scores = self.scheduler.evaluate_all(genomes, self.evaluator, generation)
        except EvaluationFailure as failure:
            failure.phase = EngineState.EVALUATING
            failure.generation = generation
            self.state = EngineState.TERMINATED
            raise
        self.statistics.evaluations += len(genomes)
        self.statistics.population_evaluations += 1
        return scores

    def _notify(self, snapshot: GenerationStats) -> None:
        if self.observer is None:
            return
        try:
            self.observer(snapshot)
        except Exception as exc:
            self.state = EngineState.TERMINATED
            raise RunError(
                f"observer failed in generation {snapshot.generation}: {exc!r}",
                phase=EngineState.REPLACING,
                generation=snapshot.generation,
            ) from exc
