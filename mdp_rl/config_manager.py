from pathlib import Path
from typing import Any, Dict, List, Optional

from .config_exp import ExperimentConfig

SUPPORTED_FORMATS = ("yaml", "json")


def diff_dicts(
    first: Dict[str, Any], second: Dict[str, Any], prefix: str = ""
) -> Dict[str, Dict[str, Any]]:
    """
    Recursively compares two dictionaries.

    Nested keys are reported with dotted paths, e.g. ``algorithm.n_e``.

    :return: Mapping path -> {"config1": value, "config2": value} for every differing key
    """
    differences = {}
    for key in sorted(set(first) | set(second), key=str):
        path = f"{prefix}.{key}" if prefix else str(key)
        left, right = first.get(key), second.get(key)

        if isinstance(left, dict) and isinstance(right, dict):
            differences.update(diff_dicts(left, right, path))
        elif key not in first or key not in second or left != right:
            differences[path] = {"config1": left, "config2": right}
    return differences


class ConfigManager:
    """Keeps named experiment configurations and stores them on disk."""

    def __init__(self, config_dir: Path | str = Path("configs")):
        """
        :param config_dir: Directory where configurations are saved
        """
        self.config_dir = Path(config_dir)
        self._configs: Dict[str, ExperimentConfig] = {}

    def add_config(self, name: str, config: ExperimentConfig) -> None:
        self._configs[name] = config

    def get_config(self, name: str) -> Optional[ExperimentConfig]:
        return self._configs.get(name)

    def list_configs(self) -> List[str]:
        return list(self._configs)

    def save_config(self, name: str, format: str = "yaml") -> Path:
        """
        Saves a configuration to `config_dir`.

        :param name: Name of the configuration
        :param format: File format ('yaml' or 'json')
        :return: Path to the saved file
        """
        if name not in self._configs:
            raise ValueError(f"Configuration '{name}' not found")
        if format not in SUPPORTED_FORMATS:
            raise ValueError(f"Format '{format}' not supported")

        self.config_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.config_dir / f"{name}.{format}"
        if format == "yaml":
            self._configs[name].save_yaml(filepath)
        else:
            self._configs[name].save_json(filepath)
        return filepath

    def save_all(self, format: str = "yaml") -> List[Path]:
        return [self.save_config(name, format) for name in self._configs]

    def load_config(
        self, filepath: Path | str, name: Optional[str] = None
    ) -> ExperimentConfig:
        """
        Loads a configuration file, registering it under `name` when given.

        :param filepath: Path to a .yaml/.yml or .json file
        :param name: Optional name to add the configuration under
        :return: Loaded `ExperimentConfig` instance
        """
        filepath = Path(filepath)
        if filepath.suffix in (".yaml", ".yml"):
            config = ExperimentConfig.load_yaml(filepath)
        elif filepath.suffix == ".json":
            config = ExperimentConfig.load_json(filepath)
        else:
            raise ValueError(f"File format '{filepath.suffix}' not supported")

        if name is not None:
            self.add_config(name, config)
        return config

    def compare_configs(self, name1: str, name2: str) -> Dict[str, Dict[str, Any]]:
        """Differences between two registered configurations, keyed by dotted path."""
        if name1 not in self._configs or name2 not in self._configs:
            raise ValueError("One or both configurations do not exist")
        return diff_dicts(self._configs[name1].to_dict(), self._configs[name2].to_dict())
