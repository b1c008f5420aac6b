import json
from copy import deepcopy
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .agents_rl import constant_learning_rate, harmonic_learning_rate
from .agents_rl.base import LearningRate
from .environment import GRID_ENV_ID


class RLAlgMethod(Enum):
    """Tabular RL agents supported in this project."""

    PASSIVE_ADP = "passive_adp"
    PASSIVE_TD = "passive_td"
    Q_LEARNING = "q_learning"


class LearningRateSchedule(Enum):
    """Learning-rate schedules α(n) for the TD and Q-learning agents."""

    HARMONIC = "harmonic"  # 1 / (n + 1)
    CONSTANT = "constant"  # learning_rate, whatever n


class SerializableConfig:
    """JSON/YAML persistence for configurations exposing `to_dict` and `from_dict`."""

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]):
        raise NotImplementedError

    def save_json(self, filepath: Path | str) -> None:
        """Saves the configuration in JSON format."""
        with open(Path(filepath), "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    def save_yaml(self, filepath: Path | str) -> None:
        """Saves the configuration in YAML format."""
        with open(Path(filepath), "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)

    @classmethod
    def load_json(cls, filepath: Path | str):
        """Loads the configuration from JSON."""
        with open(Path(filepath), "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    @classmethod
    def load_yaml(cls, filepath: Path | str):
        """Loads the configuration from YAML."""
        with open(Path(filepath), "r", encoding="utf-8") as f:
            return cls.from_dict(yaml.safe_load(f))


@dataclass
class RLConfig(SerializableConfig):
    """Configuration for the percept-driven tabular agents."""

    algorithm: RLAlgMethod = RLAlgMethod.Q_LEARNING
    n_training_episodes: int = 1_000
    max_steps: int = 100
    evaluation_sweeps: int = 20  # Bellman backups per step, passive ADP only
    n_e: int = 5  # Q-learning only
    r_plus: float = 2.0  # Q-learning only
    learning_rate_schedule: LearningRateSchedule = LearningRateSchedule.HARMONIC
    learning_rate: float = 0.1  # Only used by the constant schedule
    n_eval_episodes: int = 100
    random_seed: Optional[int] = None

    def __post_init__(self):
        """Validates numeric settings."""
        if self.n_training_episodes < 0:
            raise ValueError("n_training_episodes must be non-negative")
        if self.max_steps <= 0 or self.evaluation_sweeps <= 0:
            raise ValueError("max_steps and evaluation_sweeps must be positive")
        if self.n_e < 0:
            raise ValueError("n_e must be non-negative")

    def to_dict(self) -> Dict[str, Any]:
        """Converts enum fields to their values."""
        config_dict = asdict(self)
        config_dict["algorithm"] = self.algorithm.value
        config_dict["learning_rate_schedule"] = self.learning_rate_schedule.value
        return config_dict

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "RLConfig":
        """Creates an instance, converting serialized values back to enums."""
        config_dict = deepcopy(config_dict)
        if "algorithm" in config_dict:
            config_dict["algorithm"] = RLAlgMethod(config_dict["algorithm"])
        if "learning_rate_schedule" in config_dict:
            config_dict["learning_rate_schedule"] = LearningRateSchedule(
                config_dict["learning_rate_schedule"]
            )
        return cls(**config_dict)

    def get_learning_rate(self) -> LearningRate:
        """Returns the learning-rate schedule α(n) selected by this configuration."""
        if self.learning_rate_schedule == LearningRateSchedule.CONSTANT:
            return constant_learning_rate(self.learning_rate)
        return harmonic_learning_rate


@dataclass
class ExperimentConfig(SerializableConfig):
    """Full configuration for an experiment, including algorithm parameters and environment settings."""

    environment_name: str = GRID_ENV_ID
    env_kwargs: Dict[str, Any] = field(default_factory=dict)
    algorithm: RLConfig = field(default_factory=RLConfig)
    experiments_dir: Path = Path("results")

    def to_dict(self) -> Dict[str, Any]:
        """Converts the full configuration to a dictionary."""
        return {
            "environment_name": self.environment_name,
            "env_kwargs": self.env_kwargs,
            "algorithm": self.algorithm.to_dict(),
            "experiments_dir": str(self.experiments_dir),
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "ExperimentConfig":
        """
        Creates an instance from a dictionary.

        :param config_dict: A dictionary with the structure produced by `to_dict()`
        :return: An instance of `ExperimentConfig`
        """
        config_dict = dict(config_dict)
        if "algorithm" in config_dict:
            algorithm_config = config_dict["algorithm"]
            if not isinstance(algorithm_config, dict):
                raise ValueError("'algorithm' configuration must be a dictionary")

            algorithm_name = algorithm_config.get("algorithm")
            rl_algorithms = {method.value for method in RLAlgMethod}
            if algorithm_name is not None and algorithm_name not in rl_algorithms:
                raise ValueError(
                    f"Unsupported algorithm '{algorithm_name}'. Supported values are: {sorted(rl_algorithms)}"
                )
            config_dict["algorithm"] = RLConfig.from_dict(algorithm_config)
        if "experiments_dir" in config_dict:
            config_dict["experiments_dir"] = Path(config_dict["experiments_dir"])
        if config_dict.get("env_kwargs") is None:
            config_dict["env_kwargs"] = {}
        return cls(**config_dict)
