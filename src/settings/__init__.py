"""Configuration, logging and retry settings."""

from .config import ConfigError, find_config, load_config
from .config_models import AppConfig
from .logging_config import setup_logging

__all__ = ["AppConfig", "ConfigError", "find_config", "load_config", "setup_logging"]
