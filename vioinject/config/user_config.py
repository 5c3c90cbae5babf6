"""
User configuration management for vioinject.

This module handles user-specific configuration settings with multiple sources:
1. Environment variables (highest precedence)
2. Command-line provided config file
3. Config file in current directory
4. User's XDG config directory
5. Default values (lowest precedence)
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from vioinject.config.models import UserConfigData
from vioinject.core.errors import ConfigError
from vioinject.core.logging import get_logger
from vioinject.models.artifacts import DriverDescriptor


logger = get_logger(__name__)

ENV_PREFIX = "VIOINJECT_"


class UserConfig:
    """
    Manages user-specific configuration for vioinject using Pydantic Settings.

    The configuration is loaded from multiple sources with the following precedence:
    1. Environment variables (highest precedence) - handled by Pydantic Settings
    2. Config files (YAML) - first existing file of the search path
    3. Default values (lowest precedence) - defined in model
    """

    def __init__(self, cli_config_path: str | Path | None = None):
        """
        Initialize the user configuration handler.

        Args:
            cli_config_path: Optional config file path provided via CLI
        """
        self._config_sources: dict[str, str] = {}
        self._main_config_path: Path | None = None
        self._config_paths = self._generate_config_paths(cli_config_path)
        self._load_config()

    @property
    def config(self) -> UserConfigData:
        return self._config

    @property
    def config_path(self) -> Path | None:
        return self._main_config_path

    def _generate_config_paths(self, cli_config_path: str | Path | None) -> list[Path]:
        """Generate a list of config paths to search in order of precedence."""
        config_paths = []

        if cli_config_path:
            cli_path = Path(cli_config_path).expanduser().resolve()
            if not cli_path.exists():
                raise ConfigError(f"Config file not found: {cli_path}")
            config_paths.append(cli_path)

        config_paths.extend(
            [Path.cwd() / "vioinject.yaml", Path.cwd() / ".vioinject.yml"]
        )

        xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
        config_root = (
            Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"
        )
        config_paths.extend(
            [
                config_root / "vioinject" / "config.yaml",
                config_root / "vioinject" / "config.yml",
            ]
        )

        return config_paths

    def _load_config(self) -> None:
        """Load configuration from the first config file found and the environment."""
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Config search paths: %s", [str(p) for p in self._config_paths]
            )

        config_data, found_path = self._search_config_files()

        try:
            self._config = UserConfigData(**config_data)
        except PydanticValidationError as e:
            source = found_path or "environment"
            raise ConfigError(f"Invalid configuration in {source}: {e}") from e

        if found_path:
            logger.debug("Loaded user configuration from %s", found_path)
            self._main_config_path = found_path
            self._track_file_sources(config_data, found_path.name)
        else:
            logger.debug(
                "No user configuration files found. Using defaults with environment variables."
            )

        self._track_env_var_sources()

    def _search_config_files(self) -> tuple[dict[str, Any], Path | None]:
        for path in self._config_paths:
            if not path.is_file():
                continue
            try:
                with path.open(encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Failed to read config file {path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"Config file {path} must contain a mapping")
            return data, path
        return {}, None

    def _track_file_sources(
        self, data: dict[str, Any], filename: str, prefix: str = ""
    ) -> None:
        """Recursively track sources for file-based configuration values."""
        for key, value in data.items():
            current_key = f"{prefix}.{key}" if prefix else key
            if isinstance(value, dict) and key != "language_abbreviations":
                self._track_file_sources(value, filename, current_key)
            else:
                self._config_sources[current_key] = f"file:{filename}"

    def _track_env_var_sources(self) -> None:
        """Track which configuration values came from environment variables."""
        for env_name in os.environ:
            if not env_name.upper().startswith(ENV_PREFIX):
                continue
            config_key = env_name[len(ENV_PREFIX) :].lower().replace("__", ".")
            if config_key.split(".")[0] in UserConfigData.model_fields:
                self._config_sources[config_key] = "environment"

    def get_source(self, key: str) -> str:
        """
        Get the source of a configuration value.

        Returns:
            The source of the configuration value (environment, file:name, default)
        """
        return self._config_sources.get(key, "default")

    def get(self, key: str) -> Any:
        """Get a top-level or dotted configuration value."""
        current: Any = self._config
        for k in key.split("."):
            if not hasattr(current, k):
                raise ValueError(f"Unknown configuration key: {key}")
            current = getattr(current, k)
        return current

    def display_keys(self) -> list[str]:
        """All settings as dotted keys; nested sections are flattened one level."""
        keys = []
        for field_name in UserConfigData.model_fields:
            value = getattr(self._config, field_name)
            if hasattr(type(value), "model_fields"):
                keys.extend(f"{field_name}.{sub}" for sub in type(value).model_fields)
            else:
                keys.append(field_name)
        return keys

    def get_driver_catalog(self) -> list[DriverDescriptor]:
        return [entry.to_descriptor() for entry in self._config.driver_catalog]

    def get_log_level_int(self) -> int:
        """Get the configured log level as a logging module constant."""
        level_map = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return level_map.get(self._config.log_level.upper(), logging.WARNING)


def create_user_config(cli_config_path: str | Path | None = None) -> UserConfig:
    """
    Create a UserConfig instance.

    Args:
        cli_config_path: Optional config file path provided via CLI

    Returns:
        Configured UserConfig instance
    """
    return UserConfig(cli_config_path=cli_config_path)
