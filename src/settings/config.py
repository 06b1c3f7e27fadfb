"""Configuration loading."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from .config_models import AppConfig


class ConfigError(ValueError):
    """Invalid configuration file or values."""


def find_config() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / "social_capital.yaml",
        Path.home() / ".social_capital" / "config.yaml",
    ]
    for loc in locations:
        if loc.exists():
            return loc
    return None


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load configuration as a validated model; defaults when no file is found."""
    data = {}

    path = config_path or find_config()
    if path and path.exists():
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping, got {type(data).__name__}")

    try:
        return AppConfig.from_dict(data)
    except ValidationError as e:
        raise ConfigError(f"Config validation failed: {e}") from e
