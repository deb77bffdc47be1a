"""Exception hierarchy for the evolution engine."""

from __future__ import annotations

from typing import Any


class EvolutionError(Exception):
    """Base for all genetica exceptions."""

    pass


class ConfigError(EvolutionError, ValueError):
    """Invalid run configuration or strategy combination."""

    pass


class IncompatibleGenomeError(EvolutionError, TypeError):
    """Operator applied to genomes of mismatched encodings."""

    pass


class RunError(EvolutionError):
    """Failure on the run path, tagged with the phase it happened in."""

    def __init__(
        self,
        message: str,
        phase: Any = None,
        generation: int | None = None,
    ) -> None:
        super().__init__(message)
        self.phase = phase
        self.generation = generation


class EvaluationFailure(RunError):
    """User evaluator failed for one genome of a generation."""

    def __init__(
        self,
        message: str,
        index: int,
        phase: Any = None,
        generation: int | None = None,
    ) -> None:
        super().__init__(message, phase=phase, generation=generation)
        self.index = index
