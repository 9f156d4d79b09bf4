# src/webanalyzer/core/managers/config_manager.py
import json
import logging
import os
from typing import Any, Dict, Optional

from webanalyzer.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

ENV_PREFIX = "WEBANALYZER__"


class ConfigManager:
    """
    A singleton class to manage the application's configuration.
    It loads settings from a file, applies environment overrides and allows
    for in-memory modifications.

    Overrides use double underscores as separators, e.g.
    WEBANALYZER__SERVER__PORT=9090 sets 'server.port'.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self._config: Dict[str, Any] = {}
        self.reset()
        logger.debug("ConfigManager initialized.")

    def get_all(self) -> Dict[str, Any]:
        """Returns the entire current configuration dictionary."""
        return self._config

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """
        Safely retrieves a nested value from the configuration.
        e.g., 'analyzer.probe_timeout'.
        """
        value = self._config
        for key in key_path.split('.'):
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return default
        return value if value is not None else default

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Sets a nested value in the in-memory configuration, cast to the type
        of the value it replaces.
        """
        keys = key_path.split('.')
        d = self._config
        for key in keys[:-1]:
            d = d.setdefault(key, {})
            if not isinstance(d, dict):
                logger.error("Cannot set value: '%s' is not a dictionary.", key)
                return False

        original_value = d.get(keys[-1])
        if original_value is not None:
            value = self._cast_like(original_value, value, key_path)

        d[keys[-1]] = value
        logger.debug("Configuration updated: %s = %s", key_path, value)
        return True

    @staticmethod
    def _cast_like(original_value: Any, value: Any, key_path: str) -> Any:
        if isinstance(original_value, bool) and isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        try:
            return type(original_value)(value)
        except (ValueError, TypeError):
            logger.warning(
                "Could not cast new value for '%s' to type %s. Storing as string.",
                key_path, type(original_value).__name__
            )
            return value

    def reset(self):
        """Reloads settings.json and re-applies environment overrides."""
        config_path = PathUtils.get_settings_file()
        try:
            if not config_path.exists():
                logger.warning("settings.json not found at %s. Using empty config.", config_path)
                self._config = {}
            else:
                with open(config_path, "r", encoding="utf-8") as f:
                    self._config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load settings.json: %s", e, exc_info=True)
            self._config = {}

        self._apply_env_overrides(os.environ)

    def _apply_env_overrides(self, environ) -> None:
        for name, value in environ.items():
            if not name.startswith(ENV_PREFIX):
                continue
            key_path = ".".join(part.lower() for part in name[len(ENV_PREFIX):].split("__") if part)
            if key_path:
                self.set_nested(key_path, value)
                logger.debug("Environment override applied for '%s'.", key_path)


# The global singleton instance that the entire application will use.
config_manager = ConfigManager()
