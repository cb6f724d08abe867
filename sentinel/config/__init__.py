"""Configuration package."""

from .config_loader import Config, ConfigError, DEFAULT_SERVICES, load_service_specs

__all__ = [
    'Config',
    'ConfigError',
    'DEFAULT_SERVICES',
    'load_service_specs',
]
