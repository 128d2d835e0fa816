"""
User configuration file handling.

Settings are read from an optional YAML file. Its location is, in order of
precedence, an explicit path, the STARVIEW_CONFIG environment variable, or
`starview.yaml` in the platform config directory. Command line options
override values from the file.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import platformdirs
import yaml

from starview.constants import (
    API_HOST,
    APP_NAME,
    CACHE_FILE_NAME,
    CONFIG_FILE_NAME,
    CONFIG_PATH_ENV_VAR,
    DEFAULT_CONCURRENCY,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
)
from starview.download.config import clamp_float, clamp_int
from starview.enums import DeviceType
from starview.exceptions import ConfigFileError
from starview.log_utils import logger


def get_config_dir() -> str:
    return platformdirs.user_config_dir(APP_NAME)


def get_config_file(path: Optional[Union[str, Path]] = None) -> Path:
    """
    Return the configuration file path to use.

    Parameters:
        path (Optional[Union[str, Path]]): Explicit path, e.g. from `--config`.

    Returns:
        Path: `path` if given, else $STARVIEW_CONFIG if set, else the default
        file in the platform config directory.
    """
    if path:
        return Path(path)
    env_path = os.environ.get(CONFIG_PATH_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path(get_config_dir()) / CONFIG_FILE_NAME


def load_config(path: Optional[Union[str, Path]] = None) -> Optional[Dict[str, Any]]:
    """
    Load the configuration YAML.

    Returns:
        Optional[Dict[str, Any]]: The parsed mapping, an empty mapping for an
        empty file, or None when no configuration file exists.

    Raises:
        ConfigFileError: If the file cannot be read, is not valid YAML, or
            does not contain a mapping.
    """
    config_path = get_config_file(path)
    if not config_path.exists():
        logger.debug(f"No configuration file at {config_path}")
        return None

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(
            f"Could not load configuration from {config_path}", details=str(e)
        ) from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigFileError(
            f"Configuration in {config_path} is not a mapping",
            details=type(config).__name__,
        )
    logger.debug(f"Loaded configuration from {config_path}")
    return config


def _device_type(value: Any, default: Optional[DeviceType]) -> Optional[DeviceType]:
    if value is None:
        return default
    try:
        return DeviceType(str(value).lower())
    except ValueError:
        logger.warning(f"Invalid DEVICE value {value!r}; using default")
        return default


@dataclass
class Settings:
    """Effective settings after merging the configuration file with defaults."""

    cache_path: Path = Path(CACHE_FILE_NAME)
    device_type: Optional[DeviceType] = None
    """None lets each command pick its own default device"""

    concurrency: int = DEFAULT_CONCURRENCY
    retry_count: int = DEFAULT_RETRY_COUNT
    retry_delay: float = DEFAULT_RETRY_DELAY
    api_host: str = API_HOST
    log_level: Optional[str] = None
    log_dir: Optional[Path] = None

    @classmethod
    def from_mapping(cls, config: Optional[Dict[str, Any]]) -> "Settings":
        """
        Build settings from a loaded configuration mapping.

        Unknown keys are ignored. Invalid values are logged and replaced by
        their defaults.
        """
        config = config or {}
        log_dir = config.get("LOG_DIR")
        log_level = config.get("LOG_LEVEL")
        return cls(
            cache_path=Path(os.path.expanduser(str(config.get("CACHE_PATH") or CACHE_FILE_NAME))),
            device_type=_device_type(config.get("DEVICE"), None),
            concurrency=clamp_int(
                "CONCURRENCY", config.get("CONCURRENCY", DEFAULT_CONCURRENCY), DEFAULT_CONCURRENCY, 1
            ),
            retry_count=clamp_int(
                "MAX_DOWNLOAD_RETRIES",
                config.get("MAX_DOWNLOAD_RETRIES", DEFAULT_RETRY_COUNT),
                DEFAULT_RETRY_COUNT,
                0,
            ),
            retry_delay=clamp_float(
                "DOWNLOAD_RETRY_DELAY",
                config.get("DOWNLOAD_RETRY_DELAY", DEFAULT_RETRY_DELAY),
                DEFAULT_RETRY_DELAY,
            ),
            api_host=str(config.get("API_HOST") or API_HOST),
            log_level=str(log_level) if log_level else None,
            log_dir=Path(os.path.expanduser(str(log_dir))) if log_dir else None,
        )


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """Load the configuration file, if any, and return the effective settings."""
    return Settings.from_mapping(load_config(path))
