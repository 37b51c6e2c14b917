"""
Configuration management for Dealbuster.
"""

import json
import os
from typing import Any, Dict, Optional

import yaml

from ..models.config import (
    Configuration,
    LoggingConfig,
    ModeConfig,
    OperatingMode,
    ServerConfig,
)


class ConfigurationManager:
    """Manages loading, validation, and reloading of system configuration."""

    SEARCH_PATHS = [
        "config/config.yaml",
        "config/config.yml",
        "config/config.json",
        "config.yaml",
        "config.yml",
        "config.json",
    ]

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file. If None, the standard
                locations are searched and built-in defaults are used when
                none of them exists.
        """
        self.config_path = config_path or self._find_config_file()
        self._config: Optional[Configuration] = None
        self._last_modified: Optional[float] = None

    def _find_config_file(self) -> Optional[str]:
        """Find the configuration file in standard locations."""
        for path in self.SEARCH_PATHS:
            if os.path.exists(path):
                return path
        return None

    def load_config(self) -> Configuration:
        """
        Load configuration from file.

        Returns:
            Configuration object with validated settings.

        Raises:
            ValueError: If configuration is invalid or file cannot be read.
            FileNotFoundError: If an explicit configuration file doesn't exist.
        """
        if self.config_path is None:
            config = Configuration()
            config.validate()
            self._config = config
            return config

        if not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            raw_config = self._read_file(self.config_path)
            raw_config = self._expand_env_vars(raw_config)
            config = self._parse_config(raw_config)
            config.validate()
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {e}")
        except ValueError as e:
            raise ValueError(f"Error loading configuration: {e}")

        self._config = config
        self._last_modified = os.path.getmtime(self.config_path)
        return config

    def _read_file(self, path: str) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            if path.endswith(".json"):
                raw_config = json.load(f)
            else:
                raw_config = yaml.safe_load(f)

        if raw_config is None:
            return {}
        if not isinstance(raw_config, dict):
            raise ValueError("Configuration root must be a mapping")
        return raw_config

    def _expand_env_vars(self, obj: Any) -> Any:
        """Recursively expand ``${VAR_NAME}`` values from the environment."""
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
                return yaml.safe_load(env_value)
            return obj
        else:
            return obj

    def _parse_config(self, raw_config: Dict[str, Any]) -> Configuration:
        """Parse raw configuration dictionary into Configuration object."""
        engine_data = raw_config.get("engine") or {}
        server_data = raw_config.get("server") or {}
        logging_data = raw_config.get("logging") or {}

        defaults = ModeConfig()
        engine = ModeConfig(
            mode=OperatingMode.parse(engine_data.get("mode", defaults.mode.value)),
            promotion_threshold=engine_data.get(
                "promotion_threshold", defaults.promotion_threshold
            ),
            consensus_threshold=engine_data.get(
                "consensus_threshold", defaults.consensus_threshold
            ),
            promotion_delay_seconds=engine_data.get(
                "promotion_delay_seconds", defaults.promotion_delay_seconds
            ),
        )

        server = ServerConfig(
            host=server_data.get("host", ServerConfig.host),
            port=server_data.get("port", ServerConfig.port),
        )

        logging_config = LoggingConfig(
            level=logging_data.get("level", LoggingConfig.level),
            directory=logging_data.get("directory", LoggingConfig.directory),
        )

        return Configuration(engine=engine, server=server, logging=logging_config)

    def get_config(self) -> Configuration:
        """
        Get current configuration, loading if necessary.
        """
        if self._config is None:
            return self.load_config()
        return self._config

    def reload_if_changed(self) -> bool:
        """
        Reload configuration if file has been modified.

        Only this manager's copy is refreshed. A running ``DealService`` keeps
        the engine settings it was built with; switch modes through
        ``DealService.set_mode`` instead.

        Returns:
            True if configuration was reloaded, False otherwise.
        """
        if self.config_path is None or not os.path.exists(self.config_path):
            return False

        current_modified = os.path.getmtime(self.config_path)
        if self._last_modified is not None and current_modified <= self._last_modified:
            return False

        try:
            self.load_config()
        except (ValueError, FileNotFoundError):
            # Keep serving the last good configuration
            return False
        return True

    def get_config_template(self) -> Dict[str, Any]:
        """
        Get a template configuration dictionary.
        """
        return {
            "engine": {
                "mode": "centralized",
                "promotion_threshold": 5,
                "consensus_threshold": 3,
                "promotion_delay_seconds": 10,
            },
            "server": {"host": "0.0.0.0", "port": 3000},
            "logging": {"level": "INFO", "directory": "logs"},
        }
