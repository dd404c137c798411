import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from .errors import ConfigError
from .schemas import CRITERION_WEIGHTS, EvaluationConfig

logger = logging.getLogger(__name__)

WEIGHT_TOLERANCE = 1e-6


def _check_boolean_leaves(config: Dict[str, Any], name: str, path: str = "") -> None:
    for key, value in config.items():
        location = f"{path}{key}"
        if isinstance(value, dict):
            _check_boolean_leaves(value, name, f"{location}.")
        elif not isinstance(value, bool):
            raise ConfigError(f"Extraction config '{name}': '{location}' must be a boolean value")


class ConfigLoader:
    """Loads extraction (JSON) and evaluation (YAML) configurations from disk.

    Layout::

        {config_dir}/extraction/{name}.json
        {config_dir}/evaluation/{name}.yaml
    """

    def __init__(self, config_dir: Union[str, Path] = "config"):
        self.config_dir = Path(config_dir)

    @property
    def extraction_dir(self) -> Path:
        return self.config_dir / "extraction"

    @property
    def evaluation_dir(self) -> Path:
        return self.config_dir / "evaluation"

    def load_extraction_config(self, name: str = "default") -> Dict[str, Any]:
        path = self.extraction_dir / f"{name}.json"
        try:
            config = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigError(f"Extraction configuration file '{name}.json' not found") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in extraction configuration file '{name}.json': {e}") from e

        if not isinstance(config, dict):
            raise ConfigError(f"Extraction config '{name}' must be a JSON object")
        _check_boolean_leaves(config, name)
        logger.info(f"📋 Loaded extraction config '{name}'")
        return config

    def load_evaluation_config(self, name: str = "default") -> EvaluationConfig:
        path = self.evaluation_dir / f"{name}.yaml"
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigError(f"Evaluation configuration file '{name}.yaml' not found") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Error loading evaluation configuration '{name}.yaml': {e}") from e

        if not isinstance(raw, dict):
            raise ConfigError(f"Evaluation config '{name}' must be a mapping")
        raw.setdefault("name", name)
        try:
            config = EvaluationConfig.model_validate(raw)
        except PydanticValidationError as e:
            raise ConfigError(f"Evaluation config '{name}' is invalid: {e}") from e

        self._check_criteria(config, name)
        logger.info(f"📋 Loaded evaluation config '{name}' ({config.output_format.report_type})")
        return config

    def _check_criteria(self, config: EvaluationConfig, name: str) -> None:
        configured = [c.name for c in config.evaluation_criteria]
        unknown = sorted(set(configured) - set(CRITERION_WEIGHTS))
        if unknown:
            raise ConfigError(f"Evaluation config '{name}': unknown criteria {', '.join(unknown)}")
        missing = [c for c in CRITERION_WEIGHTS if c not in configured]
        if missing:
            raise ConfigError(f"Evaluation config '{name}': missing criteria {', '.join(missing)}")

        for criterion in config.evaluation_criteria:
            fixed = CRITERION_WEIGHTS[criterion.name]
            if criterion.weight is not None and abs(criterion.weight - fixed) > WEIGHT_TOLERANCE:
                logger.warning(
                    f"⚠️ Evaluation config '{name}': weight {criterion.weight} for '{criterion.name}' "
                    f"ignored, using fixed weight {fixed}"
                )

    def list_extraction_configs(self) -> List[str]:
        return self._list(self.extraction_dir, "*.json")

    def list_evaluation_configs(self) -> List[str]:
        return self._list(self.evaluation_dir, "*.yaml")

    @staticmethod
    def _list(directory: Path, pattern: str) -> List[str]:
        if not directory.is_dir():
            raise ConfigError(f"Configuration directory not found: {directory}")
        return sorted(path.stem for path in directory.glob(pattern))
