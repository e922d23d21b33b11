# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Configuration loading and validation for ninja-deps-query."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = ".ninja_deps_query.yml"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(Exception):
    """Raised when configuration validation fails critically."""

    pass


class Config:
    """Configuration for ninja-deps-query.

    Loads configuration from .ninja_deps_query.yml with validation and defaults.
    """

    # Default configuration values
    DEFAULTS = {
        "deps_file": ".ninja_deps",
        "strict_node_ids": True,
        "dump_sort_mode": "numeric",
        "log_level": "WARNING",
        "log_dir": "",  # Empty disables file logging
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default location.
        """
        if config_path is None:
            config_path = Path.cwd() / DEFAULT_CONFIG_FILENAME

        self.config_path = config_path
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load and validate configuration from file."""
        if not self.config_path.exists():
            logger.info(f"Configuration file not found at {self.config_path}, using defaults")
            self._config = self.DEFAULTS.copy()
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f)

            if loaded_config is None:
                logger.warning("Configuration file is empty, using defaults")
                self._config = self.DEFAULTS.copy()
                return

            if not isinstance(loaded_config, dict):
                logger.warning(
                    f"Configuration file must contain a YAML dictionary, "
                    f"got {type(loaded_config)}, using defaults"
                )
                self._config = self.DEFAULTS.copy()
                return

            # Start with defaults and override with loaded values
            self._config = self.DEFAULTS.copy()
            self._validate_and_merge(loaded_config)

        except yaml.YAMLError as e:
            logger.warning(
                f"Error parsing configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self.DEFAULTS.copy()
        except OSError as e:
            logger.warning(
                f"Error reading configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self.DEFAULTS.copy()

    def _validate_and_merge(self, loaded_config: Dict[str, Any]) -> None:
        """Validate loaded configuration and merge with defaults.

        Invalid parameters are logged as warnings and defaults are used.
        """
        for key, value in loaded_config.items():
            if key not in self.DEFAULTS:
                logger.warning(f"Unknown configuration parameter '{key}', ignoring")
                continue

            # Validate based on parameter type and constraints
            if not self._validate_parameter(key, value):
                logger.warning(
                    f"Invalid value for '{key}': {value}, using default {self.DEFAULTS[key]}"
                )
                continue

            if key == "log_level":
                # Level names are stored upper case
                value = value.upper()
            self._config[key] = value

    def _validate_parameter(self, key: str, value: Any) -> bool:
        """Validate a configuration parameter.

        Returns:
            True if valid, False if invalid
        """
        # Type validation
        expected_type = type(self.DEFAULTS[key])
        if not isinstance(value, expected_type):
            return False

        # Value validation for constrained parameters
        if key == "deps_file":
            return bool(value.strip())
        elif key == "dump_sort_mode":
            return value in ("numeric", "legacy")
        elif key == "log_level":
            return value.upper() in _LOG_LEVELS

        return True

    # Property accessors for all configuration values
    @property
    def deps_file(self) -> str:
        """Deps log read when no -f option is given."""
        value = self._config["deps_file"]
        assert isinstance(value, str)
        return value

    @property
    def strict_node_ids(self) -> bool:
        """Whether undefined node ids in dependency records fail the load."""
        value = self._config["strict_node_ids"]
        assert isinstance(value, bool)
        return value

    @property
    def dump_sort_mode(self) -> str:
        """Owner ordering for dump output: "numeric" or "legacy"."""
        value = self._config["dump_sort_mode"]
        assert isinstance(value, str)
        return value

    @property
    def log_level(self) -> int:
        """Logging level as a logging module constant."""
        value = self._config["log_level"]
        assert isinstance(value, str)
        level = logging.getLevelName(value)
        assert isinstance(level, int)
        return level

    @property
    def log_dir(self) -> Optional[Path]:
        """Directory for JSON log files, or None when file logging is off."""
        value = self._config["log_dir"]
        assert isinstance(value, str)
        return Path(value).expanduser() if value else None


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration, requiring an explicitly named file to exist.

    Raises:
        ConfigurationError: If config_path is given but does not exist.
    """
    if config_path is not None and not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")
    return Config(config_path=config_path)
