"""
Configuration Loader for RISA

Reads from config.json and provides a simple interface for accessing settings.
Defaults to sensible values if config.json is missing.

Usage:
    from risa.config import get_config
    config = get_config()
    model = config.get("remote.model")
"""

# ============================================================================
# 1) IMPORTS
# ============================================================================
import copy
import json
import os
import logging
import hashlib
from typing import Any, Optional

from risa.policy import (
    LISTEN_DELAY_SECONDS,
    LISTENING_PROMPT,
    ONBOARDING_BROADCAST_SECONDS,
    REMOTE_TIMEOUT_SECONDS,
    SPEECH_SECONDS_PER_WORD,
    SPEECH_TIMEOUT_SECONDS,
    SWIPE_MAX_DELTA_X,
    SWIPE_MIN_DELTA_Y,
)

# ============================================================================
# 2) MODULE LOGGER
# ============================================================================
logger = logging.getLogger(__name__)

# ============================================================================
# 3) ENVIRONMENT KEYS
# ============================================================================
CONFIG_PATH_ENV = "RISA_CONFIG"
LOG_LEVEL_ENV = "RISA_LOG_LEVEL"
API_KEY_ENV = "RISA_GEMINI_KEY"


# ============================================================================
# 4) CONFIG WRAPPER (DOT-NOTATION ACCESS)
# ============================================================================
class Config:
    """Simple config wrapper with dot-notation access."""

    def __init__(self, data: dict):
        self._data = data
        self._hash = config_hash(self._data)

    # 4.1) Dot-notation getter
    def get(self, key: str, default: Any = None) -> Any:
        """
        Get config value using dot notation.

        Examples:
            config.get("remote.model")
            config.get("gesture.min_delta_y")
            config.get("nonexistent.key", "default_value")
        """
        keys = key.split(".")
        value = self._data

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    # 4.2) Dict-style getter
    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    # 4.3) Config hash
    @property
    def hash(self) -> str:
        return self._hash


# ============================================================================
# 5) DEFAULT CONFIGURATION (FALLBACK)
# ============================================================================
_DEFAULT_CONFIG = {
    "system": {
        "log_level": "INFO",
    },
    "gesture": {
        "min_delta_y": SWIPE_MIN_DELTA_Y,
        "max_delta_x": SWIPE_MAX_DELTA_X,
    },
    "assistant": {
        "prompt": LISTENING_PROMPT,
        "listen_delay_seconds": LISTEN_DELAY_SECONDS,
        "speech_timeout_seconds": SPEECH_TIMEOUT_SECONDS,
        "speech_seconds_per_word": SPEECH_SECONDS_PER_WORD,
        "onboarding_broadcast_seconds": ONBOARDING_BROADCAST_SECONDS,
    },
    "remote": {
        "base_url": "https://generativelanguage.googleapis.com/v1beta",
        "model": "gemini-1.5-flash-latest",
        "timeout_seconds": REMOTE_TIMEOUT_SECONDS,
    },
    "settings": {
        "path": "data/settings.json",
    },
    "apps": [
        {"label": "camera", "package": "com.android.camera"},
        {"label": "chrome", "package": "com.android.chrome"},
        {"label": "settings", "package": "com.android.settings"},
        {"label": "clock", "package": "com.android.deskclock"},
        {"label": "calculator", "package": "com.android.calculator2"},
    ],
}

# ============================================================================
# 6) CONFIG SINGLETON
# ============================================================================
_config_instance: Optional[Config] = None


# ============================================================================
# 7) LOAD / GET CONFIG
# ============================================================================
def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from JSON file.

    Falls back to defaults if file not found or on error. The path defaults
    to $RISA_CONFIG, then ./config.json.
    """
    global _config_instance

    config_path = config_path or os.getenv(CONFIG_PATH_ENV, "config.json")
    config_data = copy.deepcopy(_DEFAULT_CONFIG)

    if os.path.exists(config_path):
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                user_config = json.load(f)
                _merge_dicts(config_data, user_config)
                logger.info(f"[Config] Loaded from {config_path}")
        except Exception as e:
            logger.warning(f"[Config] Failed to load {config_path}: {e}, using defaults")
    else:
        logger.debug(f"[Config] No config file at {config_path}, using defaults")

    env_level = os.getenv(LOG_LEVEL_ENV)
    if env_level:
        config_data["system"]["log_level"] = env_level.upper()

    _config_instance = Config(config_data)
    return _config_instance


def get_config() -> Config:
    """Get current config instance (lazy load if needed)."""
    global _config_instance
    if _config_instance is None:
        load_config()
    return _config_instance


def reset_config() -> None:
    """Drop the cached instance (used in testing)."""
    global _config_instance
    _config_instance = None


# ============================================================================
# 8) HELPERS
# ============================================================================
def config_hash(cfg: dict) -> str:
    return hashlib.sha256(json.dumps(cfg, sort_keys=True).encode()).hexdigest()


def get_config_hash() -> str:
    return get_config().hash


def _merge_dicts(base: dict, override: dict) -> None:
    """
    Deep merge override dict into base dict (modifies base in place).

    Lists are replaced, not merged.
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dicts(base[key], value)
        else:
            base[key] = value
