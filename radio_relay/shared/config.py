"""
Centralized configuration management.

Supported sources:
1) `env.example` (committed, safe placeholders)
2) `env.local` (optional, MUST NOT be committed)
3) System environment variables (highest priority)
"""

import os
from pathlib import Path

from dotenv import dotenv_values
from loguru import logger


class EnvironConfig:
    """
    Singleton configuration class that loads environment variables from env files
    and system environment, providing dictionary-like access with default values.
    """

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(EnvironConfig, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._config = {}
            self._load_config()
            EnvironConfig._initialized = True

    def _load_config(self):
        """
        Load configuration from env files and system environment.

        Priority order (later overrides earlier):
        1. env.example (committed placeholders)
        2. env.local (developer-local, not committed)
        3. System environment variables (highest priority)
        """
        root = Path(__file__).parent.parent.parent

        example_path = root / "env.example"
        if example_path.exists():
            env_values = dotenv_values(example_path)
            self._config.update(env_values)
            logger.info("Loaded environment variables from {}", example_path)

        local_path = root / "env.local"
        if local_path.exists():
            local_values = dotenv_values(local_path)
            self._config.update(local_values)
            logger.info("Loaded and overrode environment variables from {}", local_path)

        # Add system environment variables (highest priority)
        self._config.update(os.environ)

    def __getitem__(self, key):
        """
        Get configuration value by key.

        Raises:
            KeyError: If key not found
        """
        if key not in self._config:
            raise KeyError(f"Configuration key '{key}' not found")

        return self._config[key]

    def get(self, key, default=None):
        """Get configuration value by key with optional default."""
        return self._config.get(key, default)

    def get_bool(self, key, default: bool = False) -> bool:
        value = self._config.get(key)
        if value is None:
            return default
        return str(value).strip().lower() in {"true", "1", "yes", "on"}

    def get_int(self, key, default: int) -> int:
        """
        Get an integer value, falling back to the default on missing or malformed input.
        """
        raw = (self._config.get(key) or "").strip()
        if not raw:
            return default
        try:
            return int(raw)
        except ValueError:
            logger.warning("Invalid {} value '{}', defaulting to {}", key, raw, default)
            return default

    def get_float(self, key, default: float) -> float:
        raw = (self._config.get(key) or "").strip()
        if not raw:
            return default
        try:
            return float(raw)
        except ValueError:
            logger.warning("Invalid {} value '{}', defaulting to {}", key, raw, default)
            return default

    def reload(self):
        """
        Reload configuration from files and environment.
        Useful for testing or when configuration files change.
        """
        self._config.clear()
        self._load_config()
        logger.info("Configuration reloaded")

    def __contains__(self, key):
        """Check if configuration key exists."""
        return key in self._config


# Global configuration instance
config = EnvironConfig()
