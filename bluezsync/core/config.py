"""
Core configuration settings for bluezsync.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from bluezsync.bt_ref.constants import ADAPTER_NAME
from bluezsync.core.errors import ConfigError

# Base paths
DATA_DIR = Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local/share")) / "bluezsync"
CACHE_DIR = Path(os.getenv("XDG_CACHE_HOME", Path.home() / ".cache")) / "bluezsync"
CONFIG_DIR = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config")) / "bluezsync"

# Ensure directories exist
for directory in [DATA_DIR, CACHE_DIR, CONFIG_DIR]:
    directory.mkdir(parents=True, exist_ok=True)

# Logging configuration
LOG_DIR = DATA_DIR / "logs"
LOG_DIR.mkdir(exist_ok=True)

# Log types
LOG__GENERAL = "GENERAL"
LOG__DEBUG = "DEBUG"
LOG__SYNC = "SYNC"

# Default adapter
DEFAULT_ADAPTER = ADAPTER_NAME

# Caller-side readiness polling (services resolved etc.)
READINESS_ATTEMPTS = 100
READINESS_DELAY_S = 0.100

# Optional settings file
CONFIG_ENV_VAR = "BLUEZSYNC_CONFIG"
CONFIG_FILE = CONFIG_DIR / "bluezsync.yaml"


@dataclass
class Settings:
    """Runtime settings, optionally overridden by a YAML file."""

    adapter: str = DEFAULT_ADAPTER
    log_level: str = "INFO"
    readiness_attempts: int = READINESS_ATTEMPTS
    readiness_delay: float = READINESS_DELAY_S
    validate_bind: bool = True

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "Settings":
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                continue
            default = getattr(cls, key)
            if isinstance(default, bool) and isinstance(value, str):
                value = value.strip().lower() in ("1", "true", "yes", "on")
            try:
                values[key] = type(default)(value)
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"{key}: {exc}") from exc
        return cls(**values)


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """Load :class:`Settings` from *path*, ``$BLUEZSYNC_CONFIG`` or the default file.

    A missing file yields defaults.  A file that is not a YAML mapping raises
    :class:`bluezsync.core.errors.ConfigError`.
    """
    if path is None:
        path = os.getenv(CONFIG_ENV_VAR) or CONFIG_FILE
    path = Path(path)
    if not path.exists():
        return Settings()

    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path}: {exc}") from exc

    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping, got {type(data).__name__}")
    return Settings.from_mapping(data)
