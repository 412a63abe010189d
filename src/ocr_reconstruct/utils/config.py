"""Configuration loading for the OCR reconstruction library.

Handles loading and merging configuration from YAML files.
Configuration priority: built-in defaults -> default.yaml -> custom config.

Examples
--------
    from ocr_reconstruct.utils.config import load_config, get_config_value

    config = load_config()
    config = load_config("custom_config.yaml")

    thresh = get_config_value(config.to_dict(), 'det.box_thresh', 0.5)
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union
from copy import deepcopy
import logging

from ..config import OCRConfig
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def get_resource_path(filename: str) -> Path:
    """Get path to a resource file in the resources directory."""
    return Path(__file__).parent.parent / "resources" / filename


def load_yaml_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Load and parse a YAML configuration file."""
    file_path = Path(file_path)

    if not file_path.exists():
        raise ConfigurationError(f"Configuration file not found: {file_path}",
                                 "config_path", str(file_path))

    try:
        with open(file_path, 'r', encoding='utf-8') as file:
            content = yaml.safe_load(file)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML file {file_path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read configuration file {file_path}: {e}") from e

    if content is None:
        logger.warning(f"Empty configuration file: {file_path}")
        return {}

    if not isinstance(content, dict):
        raise ConfigurationError(
            f"Configuration file must contain a dictionary, got {type(content).__name__}"
        )

    return content


def merge_configs(base_config: Dict[str, Any],
                  override_config: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two configuration dictionaries, override takes precedence."""
    merged = deepcopy(base_config)

    def _deep_merge(base_dict: Dict[str, Any], override_dict: Dict[str, Any]) -> None:
        for key, value in override_dict.items():
            if (key in base_dict
                    and isinstance(base_dict[key], dict)
                    and isinstance(value, dict)):
                _deep_merge(base_dict[key], value)
            else:
                base_dict[key] = deepcopy(value)

    _deep_merge(merged, override_config)
    return merged


def get_default_config() -> Dict[str, Any]:
    """Built-in defaults as a plain dictionary."""
    return OCRConfig().to_dict()


def get_config_value(config: Dict[str, Any],
                     key_path: str,
                     default: Any = None) -> Any:
    """Get nested configuration value using dot notation (e.g., 'det.engine.use_cuda')."""
    current = config

    for key in key_path.split('.'):
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return default

    return current


def load_config(config_path: Optional[Union[str, Path]] = None) -> OCRConfig:
    """Load and merge configuration from defaults, default.yaml and a custom file."""
    config = get_default_config()

    default_resource = get_resource_path("default.yaml")
    if default_resource.exists():
        config = merge_configs(config, load_yaml_file(default_resource))
        logger.debug("Loaded default.yaml from resources")

    if config_path:
        config = merge_configs(config, load_yaml_file(config_path))
        logger.info(f"Loaded custom configuration from: {config_path}")

    try:
        return OCRConfig.from_dict(config)
    except ConfigurationError as e:
        logger.error(f"Configuration validation failed: {e}")
        raise


__all__ = [
    'load_config',
    'merge_configs',
    'get_default_config',
    'get_resource_path',
    'load_yaml_file',
    'get_config_value'
]
