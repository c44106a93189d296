"""
Configuration management for the jj VCS core.
"""

import json
import os
from typing import Any, Dict, Optional

import yaml

from ..models.config import Configuration
from ..utils.logging import get_logger

DEFAULT_CONFIG_PATHS = [
    "jj-vcs.yaml",
    "jj-vcs.yml",
    "jj-vcs.json",
    "config/jj-vcs.yaml",
    "config/jj-vcs.yml",
    "config/jj-vcs.json",
]

ENV_OVERRIDES = {
    "JJ_VCS_BINARY": ("binary", str),
    "JJ_VCS_TIMEOUT_MS": ("timeout_ms", int),
}

logger = get_logger("config")


class ConfigurationManager:
    """Manages loading, validation, and reloading of configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file. If None, the default
                locations are searched and built-in defaults are used when
                none exists.
        """
        self.config_path = config_path or self._find_config_file()
        self._config: Optional[Configuration] = None
        self._last_modified: Optional[float] = None

    def _find_config_file(self) -> Optional[str]:
        """Find the configuration file in standard locations."""
        for path in DEFAULT_CONFIG_PATHS:
            if os.path.exists(path):
                return path
        return None

    def load_config(self) -> Configuration:
        """
        Load configuration from file.

        Returns:
            Configuration object with validated settings.

        Raises:
            ValueError: If configuration is invalid or file cannot be parsed.
            FileNotFoundError: If an explicit configuration file doesn't exist.
        """
        if self.config_path is None:
            config = self._apply_env_overrides(Configuration())
            config.validate()
            self._config = config
            logger.debug("No configuration file found, using defaults")
            return config

        if not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        raw_config = self._read_file(self.config_path)
        raw_config = self._expand_env_vars(raw_config)

        config = self._apply_env_overrides(self._parse_config(raw_config))
        config.validate()

        self._config = config
        self._last_modified = os.path.getmtime(self.config_path)
        logger.info("Configuration loaded", extra={"config_path": self.config_path})

        return config

    def _read_file(self, path: str) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.endswith(".json"):
                    raw_config = json.load(f)
                else:
                    raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {e}")

        if raw_config is None:
            return {}
        if not isinstance(raw_config, dict):
            raise ValueError("Configuration file must contain a mapping")
        return raw_config

    def _expand_env_vars(self, obj: Any) -> Any:
        """Recursively expand ${VAR_NAME} references in configuration."""
        if isinstance(obj, dict):
            return {key: self._expand_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [self._expand_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            if obj.startswith("${") and obj.endswith("}"):
                var_name = obj[2:-1]
                env_value = os.getenv(var_name)
                if env_value is None:
                    raise ValueError(f"Environment variable '{var_name}' not found")
                return env_value
            return obj
        else:
            return obj

    def _parse_config(self, raw_config: Dict[str, Any]) -> Configuration:
        """Parse raw configuration dictionary into Configuration object."""
        runner_data = raw_config.get("runner") or {}
        repository_data = raw_config.get("repository") or {}
        logging_data = raw_config.get("logging") or {}

        defaults = Configuration()
        try:
            return Configuration(
                binary=runner_data.get("binary", defaults.binary),
                timeout_ms=self._as_int(
                    runner_data.get("timeout_ms", defaults.timeout_ms), "timeout_ms"
                ),
                log_limit=self._as_int(
                    repository_data.get("log_limit", defaults.log_limit), "log_limit"
                ),
                serialize_operations=repository_data.get(
                    "serialize_operations", defaults.serialize_operations
                ),
                log_level=logging_data.get("level", defaults.log_level),
                log_dir=logging_data.get("dir", defaults.log_dir),
            )
        except AttributeError as e:
            raise ValueError(f"Error parsing configuration: {e}")

    @staticmethod
    def _as_int(value: Any, name: str) -> Any:
        # Values expanded from environment variables arrive as strings.
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                raise ValueError(f"{name} must be an integer, got '{value}'")
        return value

    def _apply_env_overrides(self, config: Configuration) -> Configuration:
        for env_name, (attribute, convert) in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value is None or value == "":
                continue
            try:
                setattr(config, attribute, convert(value))
            except ValueError:
                raise ValueError(f"Invalid value for {env_name}: '{value}'")
        return config

    def get_config(self) -> Configuration:
        """
        Get current configuration, loading if necessary.

        Returns:
            Current configuration object.
        """
        if self._config is None:
            return self.load_config()
        return self._config

    def reload_if_changed(self) -> bool:
        """
        Reload configuration if file has been modified.

        Returns:
            True if configuration was reloaded, False otherwise.
        """
        if self.config_path is None or not os.path.exists(self.config_path):
            return False

        current_modified = os.path.getmtime(self.config_path)

        if self._last_modified is None or current_modified > self._last_modified:
            try:
                self.load_config()
                return True
            except ValueError as e:
                logger.warning(
                    "Configuration reload failed, keeping current settings",
                    extra={"error": str(e)},
                )
                return False

        return False

    def validate_config_file(self, config_path: str) -> bool:
        """
        Validate a configuration file without loading it.

        Raises:
            ValueError: If configuration is invalid with detailed error message.
        """
        if not os.path.exists(config_path):
            raise ValueError(f"Configuration file not found: {config_path}")

        try:
            raw_config = self._read_file(config_path)

            # Missing environment variables are not a validation failure.
            try:
                raw_config = self._expand_env_vars(raw_config)
            except ValueError:
                pass

            self._parse_config(raw_config).validate()
            return True

        except ValueError as e:
            raise ValueError(f"Configuration validation failed: {e}")

    def get_config_template(self) -> Dict[str, Any]:
        """
        Get a template configuration dictionary.

        Returns:
            Dictionary with example configuration structure.
        """
        return {
            "runner": {
                "binary": "jj",
                "timeout_ms": 30000,
            },
            "repository": {
                "log_limit": 20,
                "serialize_operations": False,
            },
            "logging": {
                "level": "INFO",
                "dir": None,
            },
        }
