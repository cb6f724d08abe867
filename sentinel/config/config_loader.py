"""Configuration loader for Sentinel."""

import copy
import json
import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List, Tuple

from ..health.status_types import ServiceSpec


logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Configuration error exception."""
    pass


DEFAULT_SERVICES: Tuple[ServiceSpec, ...] = (
    ServiceSpec(name='backend', pm2_name='backend', host='127.0.0.1', port=3000),
    ServiceSpec(name='frontend', pm2_name='front', host='127.0.0.1', port=3001),
)

DEFAULT_CONFIG: Dict[str, Any] = {
    'server': {
        'host': '127.0.0.1',
        'port': 8088,
    },
    'supervisor': {
        'pm2_bin': 'pm2',
        'timeout_seconds': 1.5,
    },
    'probes': {
        'port_timeout_seconds': 1.2,
    },
    'cache': {
        'freshness_window_ms': 5000,
    },
    'logging': {
        'level': 'INFO',
        'log_dir': 'logs',
        'max_file_size_mb': 10,
        'backup_count': 5,
    },
    'services': [],
}


# Environment variable to config key mapping.
# SERVICES and PM2_BIN keep the names used by existing pm2 ecosystem files.
ENV_VAR_MAPPING = {
    # Monitored services (JSON array)
    'SERVICES': ('services', json.loads),

    # Supervisor settings
    'PM2_BIN': ('supervisor', 'pm2_bin', str),
    'SENTINEL_SUPERVISOR_TIMEOUT_SECONDS': ('supervisor', 'timeout_seconds', float),

    # Probe settings
    'SENTINEL_PORT_TIMEOUT_SECONDS': ('probes', 'port_timeout_seconds', float),
    'SENTINEL_CACHE_FRESHNESS_MS': ('cache', 'freshness_window_ms', int),

    # Server settings
    'SENTINEL_HOST': ('server', 'host', str),
    'SENTINEL_PORT': ('server', 'port', int),

    # Logging settings
    'SENTINEL_LOG_LEVEL': ('logging', 'level', lambda x: x.upper()),
}


def get_env_var(env_var: str, convert_type: type) -> Optional[Any]:
    """
    Get environment variable and convert to specified type.

    Args:
        env_var: Environment variable name
        convert_type: Type conversion function (int, float, str, or callable)

    Returns:
        Converted value or None if not set or not convertible
    """
    value = os.environ.get(env_var)
    if value is None:
        return None

    try:
        if callable(convert_type):
            return convert_type(value)
        return value
    except (ValueError, TypeError) as e:
        logger.warning(f"Failed to convert environment variable {env_var}={value}: {e}")
        return None


def apply_env_overrides(config: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """
    Apply environment variable overrides to configuration.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (config with overrides applied, dict mapping config paths to env var names)
    """
    logger.debug("Checking for environment variable overrides...")

    env_overridden_paths = {}

    for env_var, mapping_tuple in ENV_VAR_MAPPING.items():
        value = get_env_var(env_var, mapping_tuple[-1])  # Last element is the convert function

        if value is not None:
            sections = mapping_tuple[:-1]

            current = config
            for section in sections[:-1]:
                if not isinstance(current.get(section), dict):
                    current[section] = {}
                current = current[section]

            current[sections[-1]] = value

            path = '.'.join(sections)
            env_overridden_paths[path] = env_var
            logger.info(f"Environment variable override: {env_var} -> {path}")

    return config, env_overridden_paths


def _parse_service_entry(entry: Any) -> ServiceSpec:
    """Build a ServiceSpec from one configured entry, raising ValueError if invalid."""
    if not isinstance(entry, dict):
        raise ValueError(f"service entry must be an object, got {type(entry).__name__}")

    pm2_name = entry.get('pm2Name') or entry.get('pm2_name') or entry.get('name')
    name = entry.get('name') or pm2_name
    if not isinstance(name, str) or not isinstance(pm2_name, str):
        raise ValueError(f"service entry needs a 'name' or 'pm2Name': {entry}")

    host = entry.get('host', '127.0.0.1')
    if not isinstance(host, str) or not host:
        raise ValueError(f"service '{name}' has invalid host: {host!r}")

    port = entry.get('port')
    if isinstance(port, str) and port.strip().isdecimal():
        port = int(port)
    if isinstance(port, bool) or not isinstance(port, int) or not (0 < port < 65536):
        raise ValueError(f"service '{name}' has invalid port: {port!r}")

    return ServiceSpec(name=name, pm2_name=pm2_name, host=host, port=port)


def load_service_specs(raw: Any) -> Tuple[ServiceSpec, ...]:
    """
    Build the monitored service list, falling back to the built-in default.

    The default (backend on 3000, frontend/front on 3001) is used when raw is
    missing, not a list, empty, contains an invalid entry, or repeats a name.
    Ports given as decimal strings ("8000") are accepted.

    Args:
        raw: Parsed `services` configuration value

    Returns:
        Tuple of ServiceSpec
    """
    if not isinstance(raw, list) or len(raw) == 0:
        if raw not in (None, []):
            logger.warning(f"Service list must be a non-empty JSON array, got {type(raw).__name__}")
        logger.info("Using default service list")
        return DEFAULT_SERVICES

    services: List[ServiceSpec] = []
    try:
        for entry in raw:
            services.append(_parse_service_entry(entry))
    except ValueError as e:
        logger.warning(f"Invalid service list, using default: {e}")
        return DEFAULT_SERVICES

    names = [s.name for s in services]
    if len(set(names)) != len(names):
        logger.warning(f"Duplicate service names in {names}, using default service list")
        return DEFAULT_SERVICES

    return tuple(services)


def _merge_defaults(defaults: Dict[str, Any], loaded: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay loaded values onto a copy of the defaults, one level deep."""
    merged = copy.deepcopy(defaults)
    for key, value in loaded.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


class Config:
    """Configuration for the sentinel process."""

    def __init__(self, config_path: str = None):
        """
        Initialize configuration from YAML file with environment variable overrides.

        A missing file is not an error: defaults plus environment overrides are used.

        Args:
            config_path: Path to the configuration file (defaults to SENTINEL_CONFIG_PATH env var or "config.yaml")
        """
        if config_path is None:
            config_path = os.environ.get('SENTINEL_CONFIG_PATH', 'config.yaml')

        self.config_path = Path(config_path)
        self._config = _merge_defaults(DEFAULT_CONFIG, self._load_config())
        self._config, self._env_overridden_paths = apply_env_overrides(self._config)
        self._validate_config()
        self.services = load_service_specs(self._config.get('services'))

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file, or return an empty mapping if absent."""
        if not self.config_path.exists():
            logger.info(f"Configuration file not found: {self.config_path}, using defaults and environment")
            return {}

        try:
            with open(self.config_path, 'r') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML configuration file: {e}")
            raise ConfigError(f"Error parsing configuration file: {e}")
        except OSError as e:
            logger.error(f"Unable to read configuration file {self.config_path}: {e}")
            raise ConfigError(f"Error loading configuration: {e}")

        if config is None:
            logger.warning("Configuration file is empty, using defaults")
            return {}

        if not isinstance(config, dict):
            raise ConfigError(f"Invalid configuration format: expected dictionary, got {type(config)}")

        logger.info(f"Loaded configuration from {self.config_path}")
        return config

    def _validate_config(self):
        """Validate numeric settings."""
        for section in ('server', 'supervisor', 'probes', 'cache', 'logging'):
            if not isinstance(self._config.get(section), dict):
                raise ConfigError(f"Configuration section '{section}' must be a dictionary")

        try:
            port = int(self.server['port'])
            if not (0 < port < 65536):
                raise ConfigError(f"Invalid server port: {port} (must be between 1 and 65535)")
            self.server['port'] = port

            for section, key in (('supervisor', 'timeout_seconds'),
                                 ('probes', 'port_timeout_seconds'),
                                 ('cache', 'freshness_window_ms')):
                value = float(self._config[section][key])
                if value <= 0:
                    raise ConfigError(f"{section}.{key} must be positive, got: {value}")
        except (ValueError, TypeError) as e:
            raise ConfigError(f"Invalid numeric configuration value: {e}")

    @property
    def server(self) -> Dict[str, Any]:
        """Get server configuration."""
        return self._config['server']

    @property
    def supervisor(self) -> Dict[str, Any]:
        """Get supervisor configuration."""
        return self._config['supervisor']

    @property
    def probes(self) -> Dict[str, Any]:
        """Get probe configuration."""
        return self._config['probes']

    @property
    def cache(self) -> Dict[str, Any]:
        """Get cache configuration."""
        return self._config['cache']

    @property
    def logging_config(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self._config['logging']

    @property
    def freshness_window_seconds(self) -> float:
        """Cache freshness window converted to seconds."""
        return float(self.cache['freshness_window_ms']) / 1000.0

    def is_env_overridden(self, path: str) -> bool:
        """Check whether a dotted config path was set from the environment."""
        return path in self._env_overridden_paths
