"""Configuration loading with YAML parsing and validation."""

from pathlib import Path
from typing import Any

import pydantic_yaml

from .schema import HealthcheckConfig


def load_config(config_path: Path | str) -> HealthcheckConfig:
    """
    Load and validate healthcheck configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated HealthcheckConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If config is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        yaml_content = f.read()

    # Database names, paths and run settings are all validated here
    return pydantic_yaml.parse_yaml_raw_as(HealthcheckConfig, yaml_content)


def _apply_override(config_dict: dict[str, Any], key: str, value: Any) -> None:
    # "run.max_workers" -> config_dict["run"]["max_workers"]
    *sections, field = key.split(".")
    target = config_dict
    for section in sections:
        if not isinstance(target.get(section), dict):
            raise ValueError(f"Unknown config section in override: {key}")
        target = target[section]
    target[field] = value


def load_config_with_overrides(
    config_path: Path | str,
    overrides: dict[str, Any],
) -> HealthcheckConfig:
    """
    Load config from YAML and apply dictionary overrides.

    Used for run command flags that override config file values. None
    values are ignored so unset flags leave the file's value in place.

    Args:
        config_path: Path to YAML configuration file
        overrides: Values to override, dotted keys for nested fields
                   (e.g. "run.max_workers")

    Returns:
        Validated HealthcheckConfig with overrides applied

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If a dotted key names a section the config does not have
        pydantic.ValidationError: If final config is invalid
    """
    config = load_config(config_path)
    config_dict = config.model_dump()

    for key, value in overrides.items():
        # Unset CLI flags arrive as None
        if value is None:
            continue
        _apply_override(config_dict, key, value)

    # Overridden values go through the same validators as the file
    return HealthcheckConfig.model_validate(config_dict)
