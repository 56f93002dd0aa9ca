"""Application configuration settings."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from platformdirs import user_config_dir, user_data_dir

logger = logging.getLogger(__name__)

APP_NAME = "Kurae"
WINDOW_TITLE = "Kurae · Visor Clínico"

CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / "config.json"
DEFAULT_STORAGE_DIR = Path(user_data_dir(APP_NAME, appauthor=False)) / "annotations"

DEFAULT_CONFIG: Dict[str, Any] = {
    'storage_dir': str(DEFAULT_STORAGE_DIR),
    # Source images are fitted into this box once; the fitted grid is image space.
    'max_image_width': 1200,
    'max_image_height': 800,
    'min_line_length': 5.0,
    'close_radius': 15.0,
    'sample_half_width': 15,
    'zoom_step': 0.25,
    'wheel_factor': 0.001,
    'notification_ms': 3000,
    'remote_timeout': 10,
    'log_level': "INFO",
}


class ConfigError(Exception):
    """Raised when a configuration file cannot be parsed."""


def _coerce(key: str, value: Any) -> Any:
    default = DEFAULT_CONFIG.get(key)
    if default is None or value is None:
        return value
    try:
        if isinstance(default, bool):
            return bool(value)
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return float(value)
        if isinstance(default, str):
            return str(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value for '{key}': {value!r}") from exc
    return value


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Return the defaults merged with the JSON file at ``path`` (or the user config file)."""
    cfg = dict(DEFAULT_CONFIG)
    cfg_path = Path(path).expanduser() if path else CONFIG_PATH
    if not cfg_path.exists():
        if path:
            raise ConfigError(f"Config file not found: {cfg_path}")
        return cfg
    try:
        with open(cfg_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Failed to read configuration: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object")
    for key, value in data.items():
        cfg[key] = _coerce(key, value)
    logger.debug("Loaded configuration from %s", cfg_path)
    return cfg


def save_config(cfg: Dict[str, Any], path: Optional[str] = None) -> Path:
    cfg_path = Path(path).expanduser() if path else CONFIG_PATH
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    with open(cfg_path, 'w', encoding='utf-8') as f:
        json.dump(cfg, f, indent=2)
    return cfg_path
