"""Configuration loader with YAML parsing and environment variable substitution."""

import yaml
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..errors import ConfigError
from .models import ReachCheckConfig


class ConfigLoader:
    """Load and validate reachcheck configuration."""

    @staticmethod
    def load_from_file(
        config_path: str,
        overrides: Optional[Dict[str, Any]] = None
    ) -> ReachCheckConfig:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file
            overrides: Nested values merged over the file contents
                (e.g. {"target": {"host": "10.0.0.5"}} from the command line)

        Returns:
            ReachCheckConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigError: If YAML parsing fails or the document is not a mapping
            pydantic.ValidationError: If configuration validation fails
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, 'r') as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(raw_config, dict):
            raise ConfigError(f"Configuration root must be a mapping: {config_path}")

        # Substitute environment variables
        raw_config = ConfigLoader._substitute_env_vars(raw_config)

        if overrides:
            raw_config = ConfigLoader._merge(raw_config, overrides)

        # Validate with Pydantic
        return ReachCheckConfig(**raw_config)

    @staticmethod
    def from_dict(raw_config: Dict[str, Any]) -> ReachCheckConfig:
        """
        Build configuration without a file (command-line only runs).

        None values are dropped so model defaults apply.

        Raises:
            pydantic.ValidationError: If configuration validation fails
        """
        raw_config = ConfigLoader._merge({}, raw_config)
        return ReachCheckConfig(**ConfigLoader._substitute_env_vars(raw_config))

    @staticmethod
    def describe_error(error: ValidationError) -> str:
        """Flatten a pydantic error into one line per problem."""
        lines = []
        for item in error.errors():
            location = ".".join(str(part) for part in item.get("loc", ())) or "config"
            lines.append(f"{location}: {item.get('msg')}")
        return "; ".join(lines)

    @staticmethod
    def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge ``overrides`` into a copy of ``base``; None values are ignored."""
        merged = dict(base)
        for key, value in overrides.items():
            if value is None:
                continue
            if isinstance(value, dict):
                current = merged.get(key)
                merged[key] = ConfigLoader._merge(current if isinstance(current, dict) else {}, value)
            else:
                merged[key] = value
        return merged

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """
        Recursively substitute ${ENV_VAR} placeholders with environment values.

        Args:
            obj: Object to process (str, dict, list, or primitive)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, str):
            # Replace ${VAR_NAME} with os.getenv('VAR_NAME')
            pattern = r'\$\{(\w+)\}'
            return re.sub(pattern, lambda m: os.getenv(m.group(1), ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]

        return obj
