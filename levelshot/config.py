"""
Configuration management for Levelshot
"""

import yaml
import os
import re
from pathlib import Path
from typing import Dict, Any, Optional, Union
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

PROPERTY_STATUSES = ('NEW', 'DONE', 'ARCHIVE', 'NOT_FOUND')


def _expand_env_vars(obj: Union[Dict, Any]) -> Union[Dict, Any]:
    """
    Recursively expand environment variables in config values.
    Supports ${VAR_NAME} syntax.
    """
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        pattern = r'\$\{([^}]+)\}'
        def replace_var(match):
            var_name = match.group(1)
            return os.getenv(var_name, match.group(0))  # Return original if not found
        return re.sub(pattern, replace_var, obj)
    else:
        return obj


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into a copy of base, recursing into nested dicts"""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file

    Values missing from the file fall back to get_default_config().

    Args:
        config_path: Path to config file. If None, uses default config.yaml

    Returns:
        Configuration dictionary
    """
    config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}. Using defaults.")
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
        logger.info(f"Loaded configuration from {config_path}")
        return _expand_env_vars(_deep_merge(get_default_config(), loaded))
    except Exception as e:
        logger.error(f"Failed to load config from {config_path}: {e}")
        return get_default_config()


def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration values

    Returns:
        Default configuration dictionary
    """
    return {
        'perspective': {
            'vertical_tolerance_deg': 10.0,
            'horizontal_tolerance_deg': 10.0,
            'min_line_length_ratio': 0.20,
            'center_band_ratio': 0.5,
            'use_lsd': True,
            'ransac_iterations': 500,
            'ransac_inlier_threshold_deg': 2.0,
            'min_rotation_deg': 0.3,
            'max_rotation_deg': 15.0,
            'confidence_threshold': 0.5,
            'min_inlier_count': 3,
            'max_angle_stddev_deg': 2.5,
            'min_crop_area_ratio': 0.70,
            'random_seed': None,
            'multi_resolution': False,
        },
        'preprocessing': {
            'target_size': 800,
            'lens_correction': True,
            'bilateral': {
                'diameter': 11,
                'sigma_color': 25.0,
                'sigma_space': 5.0,
            },
            'clahe': {
                'clip_limit': 2.0,
                'tile_grid': 8,
            },
        },
        'backend': {
            'prefer_gpu': True,
            'gpu_device': 0,
        },
        'batch': {
            'max_workers': 4,
            'image_extensions': ['jpg', 'jpeg', 'png', 'bmp', 'gif', 'webp'],
            'preview_max_size': 800,
            'preview_quality': 85,
            'output_quality': 95,
            'include_previews': True,
            'show_progress': True,
        },
        'staging': {
            'root': str(Path.home() / '.levelshot' / 'perspective_temp'),
        },
        'folders': {
            'new': '',
            'done': '',
            'archive': '',
            'not_found': '',
            'images_subfolder': 'INTERNET',
        },
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'file': None,
            'color': True,
        },
    }


def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation

    Args:
        config: Configuration dictionary
        key_path: Dot-separated key path (e.g., 'batch.max_workers')
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    keys = key_path.split('.')
    value = config

    try:
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default


def update_config_value(config: Dict[str, Any], key_path: str, value: Any) -> None:
    """
    Update a nested configuration value using dot notation

    Args:
        config: Configuration dictionary to update
        key_path: Dot-separated key path (e.g., 'batch.max_workers')
        value: New value to set
    """
    keys = key_path.split('.')
    current = config

    for key in keys[:-1]:
        if key not in current:
            current[key] = {}
        current = current[key]

    current[keys[-1]] = value


def get_property_images_dir(config: Dict[str, Any], folder_path: str, status: str) -> Path:
    """
    Resolve the images folder of a property from its status

    Args:
        config: Configuration dictionary
        folder_path: Property folder relative to the status base folder
        status: Property status (NEW, DONE, ARCHIVE or NOT_FOUND)

    Returns:
        <base folder for status>/<folder_path>/<images subfolder>

    Raises:
        ValueError: If the status is unknown or its base folder is not configured
    """
    status_key = status.upper()
    if status_key not in PROPERTY_STATUSES:
        raise ValueError(f"Unknown status: {status}")

    base_folder = get_config_value(config, f'folders.{status_key.lower()}')
    if not base_folder:
        raise ValueError(f"{status_key} folder path not configured")

    subfolder = get_config_value(config, 'folders.images_subfolder', 'INTERNET')
    return Path(base_folder).expanduser() / folder_path / subfolder
