"""
nowplaying configuration system.

Priority order (highest to lowest):
1. Command-line arguments
2. Environment variables
3. Configuration file (YAML)
4. Default values
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)


# Valid log levels
VALID_LOG_LEVELS = {"debug", "info", "warning", "error"}

# Artwork edge length bounds, in pixels
MIN_ARTWORK_SIZE = 16
MAX_ARTWORK_SIZE = 2048

# Environment variable mappings
ENV_MAPPINGS = {
    # Queue
    "NOWPLAYING_PLAYLIST": ("queue", "playlist"),
    "NOWPLAYING_SHUFFLE": ("queue", "shuffle"),
    # Artwork
    "NOWPLAYING_ARTWORK_ENABLED": ("artwork", "enabled"),
    "NOWPLAYING_ARTWORK_SIZE": ("artwork", "size"),
    "NOWPLAYING_ARTWORK_TIMEOUT": ("artwork", "timeout"),
    "NOWPLAYING_ARTWORK_CACHE_SIZE": ("artwork", "cache_size"),
    # Logging
    "NOWPLAYING_LOG_LEVEL": ("logging", "level"),
}

_BOOL_ENV = {"NOWPLAYING_SHUFFLE", "NOWPLAYING_ARTWORK_ENABLED"}
_INT_ENV = {"NOWPLAYING_ARTWORK_SIZE", "NOWPLAYING_ARTWORK_CACHE_SIZE"}
_FLOAT_ENV = {"NOWPLAYING_ARTWORK_TIMEOUT"}


class ConfigError(Exception):
    """Configuration error."""

    pass


@dataclass
class QueueConfig:
    """Queue configuration."""

    playlist: str = ""
    shuffle: bool = False


@dataclass
class ArtworkConfig:
    """Cover art configuration."""

    enabled: bool = True
    size: int = 144
    timeout: float = 10.0
    cache_size: int = 50


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class Config:
    """Complete nowplaying configuration."""

    queue: QueueConfig = field(default_factory=QueueConfig)
    artwork: ArtworkConfig = field(default_factory=ArtworkConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def validate_config(config: Config, require_playlist: bool = True) -> None:
    """
    Validate configuration.

    Args:
        config: Configuration to check
        require_playlist: Fail when no playlist path is set

    Raises:
        ConfigError: If configuration is invalid
    """
    errors = []

    # Queue
    if require_playlist and not config.queue.playlist:
        errors.append("Playlist path is required")

    # Artwork
    if not MIN_ARTWORK_SIZE <= config.artwork.size <= MAX_ARTWORK_SIZE:
        errors.append(
            f"Invalid artwork size: {config.artwork.size}. "
            f"Valid range: {MIN_ARTWORK_SIZE}-{MAX_ARTWORK_SIZE}"
        )
    if config.artwork.timeout <= 0:
        errors.append(f"Invalid artwork timeout: {config.artwork.timeout}")
    if config.artwork.cache_size < 1:
        errors.append(f"Invalid artwork cache size: {config.artwork.cache_size}")

    # Logging
    if config.logging.level.lower() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid log level: {config.logging.level}. "
            f"Valid values: {sorted(VALID_LOG_LEVELS)}"
        )

    if errors:
        raise ConfigError("Configuration validation failed:\n  - " + "\n  - ".join(errors))


def load_yaml_config(path: Path) -> dict:
    """
    Load configuration from YAML file.

    Args:
        path: Path to YAML file

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    if not path.exists():
        logger.debug(f"Config file not found: {path}")
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML config: {e}")
    except IOError as e:
        raise ConfigError(f"Error reading config file: {e}")

    if not data:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _set_nested(d: dict, path: tuple, value: Any) -> None:
    """Set a nested dictionary value using a path tuple."""
    for key in path[:-1]:
        d = d.setdefault(key, {})
    d[path[-1]] = value


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("true", "1", "yes", "on")


def load_env_config() -> dict:
    """
    Load configuration from environment variables.

    Returns:
        Configuration dictionary with values from environment
    """
    result: dict = {}

    for env_var, path in ENV_MAPPINGS.items():
        value: Any = os.environ.get(env_var)
        if value is None:
            continue

        if env_var in _BOOL_ENV:
            value = _parse_bool(value)
        elif env_var in _INT_ENV:
            try:
                value = int(value)
            except ValueError:
                logger.warning(f"Invalid integer for {env_var}: {value}")
                continue
        elif env_var in _FLOAT_ENV:
            try:
                value = float(value)
            except ValueError:
                logger.warning(f"Invalid number for {env_var}: {value}")
                continue

        _set_nested(result, path, value)

    return result


def _deep_merge(base: dict, override: dict) -> None:
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def merge_configs(*configs: dict) -> dict:
    """
    Deep merge multiple configuration dictionaries.
    Later configs override earlier ones.
    """
    result: dict = {}
    for config in configs:
        _deep_merge(result, config)
    return result


def dict_to_config(d: dict) -> Config:
    """
    Convert a dictionary to Config dataclass.

    Raises:
        ConfigError: If a value has the wrong type
    """
    config = Config()

    try:
        # Queue
        if "queue" in d:
            q = d["queue"]
            config.queue.playlist = str(q.get("playlist", config.queue.playlist) or "")
            config.queue.shuffle = _parse_bool(q.get("shuffle", config.queue.shuffle))

        # Artwork
        if "artwork" in d:
            a = d["artwork"]
            config.artwork.enabled = _parse_bool(a.get("enabled", config.artwork.enabled))
            config.artwork.size = int(a.get("size", config.artwork.size))
            config.artwork.timeout = float(a.get("timeout", config.artwork.timeout))
            config.artwork.cache_size = int(a.get("cache_size", config.artwork.cache_size))

        # Logging
        if "logging" in d:
            config.logging.level = str(d["logging"].get("level", config.logging.level))
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigError(f"Invalid configuration value: {e}")

    return config


def load_config(
    config_path: Optional[Path] = None,
    cli_args: Optional[dict] = None,
    require_playlist: bool = True,
) -> Config:
    """
    Load configuration from all sources.

    Priority (highest to lowest):
    1. CLI arguments
    2. Environment variables
    3. Config file
    4. Defaults

    Args:
        config_path: Path to YAML config file
        cli_args: Dictionary of CLI arguments
        require_playlist: Fail validation when no playlist is configured

    Returns:
        Merged Config object

    Raises:
        ConfigError: If configuration is invalid
    """
    configs = []

    if config_path:
        file_config = load_yaml_config(config_path)
        if file_config:
            configs.append(file_config)
            logger.debug(f"Loaded config from {config_path}")

    env_config = load_env_config()
    if env_config:
        configs.append(env_config)
        logger.debug("Loaded config from environment variables")

    if cli_args:
        configs.append(cli_args)
        logger.debug("Loaded config from CLI arguments")

    merged = merge_configs(*configs) if configs else {}

    # Convert to Config object (fills in defaults)
    config = dict_to_config(merged)

    validate_config(config, require_playlist=require_playlist)

    return config
