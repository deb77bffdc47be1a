"""Parallel, order-preserving fitness evaluation."""

from __future__ import annotations

import threading
from concurrent.futures import (
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    as_completed,
)
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from loguru import logger

from genetica.config import Config
from genetica.evolution.fitness import coerce_fitness
from genetica.evolution.genome import Genome
from genetica.exceptions import ConfigError, EvaluationFailure

__all__ = ["ParallelEvaluationScheduler", "ChunkOutcome"]

BACKENDS = ("thread", "process")


@dataclass
class ChunkOutcome:
    """What one worker reports back: scores by index, or its first failure."""

    scores: list[tuple[int, float]] = field(default_factory=list)
    failed_index: int | None = None
    error: BaseException | None = None


def _evaluate_chunk(
    evaluator: Callable[[Genome], Any],
    items: Sequence[tuple[int, Genome]],
    cancel: threading.Event | None = None,
) -> ChunkOutcome:
    outcome = ChunkOutcome()
    for index, genome in items:
        if cancel is not None and cancel.is_set():
            break
        try:
            score = coerce_fitness(evaluator(genome))
        except Exception as exc:
            outcome.failed_index = index
            outcome.error = exc
            break
        outcome.scores.append((index, score))
    return outcome


class ParallelEvaluationScheduler:
    """Fans fitness evaluation out over a bounded worker pool.

    Genomes are split into contiguous, disjoint chunks, one per worker.
    Results come back as ``(index, score)`` pairs and are placed by index, so
    the returned list always matches the input order. The first observed
    failure cancels outstanding work (best effort), discards every partial
    score and is raised as :class:`EvaluationFailure`.

    The executor is created lazily and reused across calls; use the
    scheduler as a context manager or call :meth:`close` to release it.
    """

    def __init__(self, worker_count: int | None = None, backend: str = "thread") -> None:
        if worker_count is not None and worker_count < 1:
            raise ConfigError(f"worker_count must be >= 1, got {worker_count}")
        if backend not in BACKENDS:
            raise ConfigError(f"backend must be one of {BACKENDS}, got {backend!r}")
        self.worker_count = worker_count or Config.available_parallelism()
        self.backend = backend
        self._executor: Executor | None = None
        self._lock = threading.Lock()

    def __enter__(self) -> ParallelEvaluationScheduler:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _get_executor(self) -> Executor:
        with self._lock:
            if self._executor is None:
                if self.backend == "process":
                    self._executor = ProcessPoolExecutor(max_workers=self.worker_count)
                else:
                    self._executor = ThreadPoolExecutor(
                        max_workers=self.worker_count,
                        thread_name_prefix="genetica-eval",
                    )
                logger.debug(
                    "[Scheduler] Created {} pool with {} workers",
                    self.backend,
                    self.worker_count,
                )
            return self._executor

    def close(self) -> None:
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True, cancel_futures=True)
                self._executor = None

    def evaluate_all(
        self,
        genomes: Sequence[Genome],
        evaluator: Callable[[Genome], Any],
        generation: int = 0,
    ) -> list[float]:
        """Scores for ``genomes`` in input order, or raise ``EvaluationFailure``."""
        n = len(genomes)
        if n == 0:
            return []
        workers = min(self.worker_count, n)
        if workers == 1:
            outcome = _evaluate_chunk(evaluator, list(enumerate(genomes)))
            if outcome.error is not None:
                raise self._failure(outcome, generation)
            return [score for _, score in outcome.scores]
        return self._evaluate_parallel(genomes, evaluator, generation, workers)

    def _evaluate_parallel(
        self,
        genomes: Sequence[Genome],
        evaluator: Callable[[Genome], Any],
        generation: int,
        workers: int,
    ) -> list[float]:
        executor = self._get_executor()
        cancel = threading.Event() if self.backend == "thread" else None
        futures: dict[Future, int] = {}
        for start, stop in _partition(len(genomes), workers):
            items = [(i, genomes[i]) for i in range(start, stop)]
            if cancel is None:
                future = executor.submit(_evaluate_chunk, evaluator, items)
            else:
                future = executor.submit(_evaluate_chunk, evaluator, items, cancel)
            futures[future] = start

        results: list[float | None] = [None] * len(genomes)
        for future in as_completed(futures):
            try:
                outcome = future.result()
            except Exception as exc:
                outcome = ChunkOutcome(failed_index=futures[future], error=exc)
            if outcome.error is not None:
                if cancel is not None:
                    cancel.set()
                for pending in futures:
                    pending.cancel()
                raise self._failure(outcome, generation)
            for index, score in outcome.scores:
                results[index] = score

        return [float(score) for score in results]  # type: ignore[arg-type]

    def _failure(self, outcome: ChunkOutcome, generation: int) -> EvaluationFailure:
        error = outcome.error
        logger.error(
            "[Scheduler] Evaluation failed for genome {} of generation {}: {!r}",
            outcome.failed_index,
            generation,
            error,
        )
        failure = EvaluationFailure(
            f"evaluator failed for genome {outcome.failed_index} "
            f"in generation {generation}: {error!r}",
            index=int(outcome.failed_index or 0),
            generation=generation,
        )
        failure.__cause__ = error
        return failure


def _partition(n: int, parts: int) -> list[tuple[int, int]]:
    """Split ``range(n)`` into ``parts`` contiguous, near-equal slices."""
    base, extra = divmod(n, parts)
    bounds = []
    start = 0
    for part in range(parts):
        stop = start + base + (1 if part < extra else 0)
        bounds.append((start, stop))
        start = stop
    return bounds
