from dataclasses import is_dataclass

import pytest

from genetica.config import Config, OptimizationSense, RunConfiguration
from genetica.exceptions import ConfigError, EvolutionError


def test_config_is_dataclass() -> None:
    assert is_dataclass(Config)
    assert is_dataclass(RunConfiguration)


def test_defaults() -> None:
    config = RunConfiguration()
    assert config.population_size == Config.POPULATION_SIZE
    assert config.crossover_rate == Config.CROSSOVER_RATE
    assert config.mutation_rate == Config.MUTATION_RATE
    assert config.optimization_sense is OptimizationSense.MAXIMIZE
    assert config.maximize
    assert config.random_seed == Config.RANDOM_SEED
    assert config.effective_worker_count >= 1


def test_sense_parsed_from_string() -> None:
    config = RunConfiguration(optimization_sense="MINIMIZE")
    assert config.optimization_sense is OptimizationSense.MINIMIZE
    assert not config.maximize


@pytest.mark.parametrize(
    "overrides",
    [
        {"population_size": 0},
        {"crossover_rate": 1.5},
        {"crossover_rate": -0.1},
        {"mutation_rate": float("nan")},
        {"max_generations": 0},
        {"elitism_count": 10, "population_size": 10},
        {"elitism_count": -1},
        {"random_seed": -5},
        {"stagnation_limit": 0},
        {"worker_count": 0},
        {"fitness_goal": float("inf")},
        {"selection": "lottery"},
        {"tournament_size": 0},
        {"replacement": "islands"},
        {"scaling": "sigma"},
        {"scaling_multiplier": 1.0},
        {"optimization_sense": "sideways"},
        {"population_size": True},
        {"population_size": 2.5},
    ],
)
def test_invalid_values_rejected(overrides) -> None:
    with pytest.raises(ConfigError):
        RunConfiguration(**overrides)


def test_config_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        RunConfiguration(crossover_rate=1.5)
    assert issubclass(ConfigError, EvolutionError)


def test_steady_state_batch_defaults_to_tenth() -> None:
    config = RunConfiguration(population_size=40, replacement="steady_state")
    assert config.offspring_batch == 4
    small = RunConfiguration(population_size=5, replacement="steady_state")
    assert small.offspring_batch == 1


def test_steady_state_batch_must_spare_elites() -> None:
    with pytest.raises(ConfigError):
        RunConfiguration(
            population_size=10,
            elitism_count=3,
            replacement="steady_state",
            steady_state_count=8,
        )
    with pytest.raises(ConfigError):
        RunConfiguration(
            population_size=10,
            elitism_count=0,
            replacement="steady_state",
            steady_state_count=10,
        )


def test_mapping_round_trip() -> None:
    config = RunConfiguration(population_size=12, optimization_sense="minimize", fitness_goal=0.5)
    data = config.to_dict()
    assert data["optimization_sense"] == "minimize"
    assert RunConfiguration.from_mapping(data) == config


def test_from_mapping_rejects_unknown_keys() -> None:
    with pytest.raises(ConfigError, match="unknown configuration keys: colour"):
        RunConfiguration.from_mapping({"population_size": 10, "colour": "blue"})


def test_configuration_is_frozen() -> None:
    config = RunConfiguration()
    with pytest.raises(AttributeError):
        config.population_size = 3  # type: ignore[misc]
