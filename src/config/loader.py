"""Configuration loader with YAML parsing and environment variable substitution."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .models import PublisherSystemConfig
from .settings import Settings


# ${VAR_NAME} or ${VAR_NAME:-fallback}
ENV_PATTERN = re.compile(r'\$\{(\w+)(?::-([^}]*))?\}')


class ConfigLoader:
    """Load and validate publisher configuration."""

    @staticmethod
    def load(config_path: Optional[str] = None) -> PublisherSystemConfig:
        """
        Load configuration from a file if given, otherwise from defaults.

        REDIS_URL and AWS_REGION override the file when set.

        Args:
            config_path: Optional path to YAML configuration file

        Returns:
            PublisherSystemConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
            pydantic.ValidationError: If configuration validation fails
        """
        raw_config = ConfigLoader._read_yaml(config_path) if config_path else {}
        return PublisherSystemConfig(**ConfigLoader._apply_env_overrides(raw_config))

    @staticmethod
    def _read_yaml(config_path: str) -> Dict[str, Any]:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        return ConfigLoader._substitute_env_vars(raw_config)

    @staticmethod
    def _apply_env_overrides(raw_config: Dict[str, Any]) -> Dict[str, Any]:
        config = dict(raw_config)
        if os.getenv("REDIS_URL"):
            config["redis"] = {**config.get("redis", {}), "url": Settings().REDIS_URL}
        if os.getenv("AWS_REGION"):
            config["cloudwatch"] = {**config.get("cloudwatch", {}), "region": Settings().AWS_REGION}
        return config

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
            return ENV_PATTERN.sub(lambda m: os.getenv(m.group(1), m.group(2) or ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]

        return obj
