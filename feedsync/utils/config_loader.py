"""Configuration loader for the feed synchronization engine."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import ValidationError

from feedsync.errors import ConfigError
from feedsync.models.config import AppConfig

log = structlog.stdlib.get_logger()


class ConfigLoader:
    """Loads and validates application configuration from YAML files and environment variables."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize the ConfigLoader.

        Args:
            config_dir: Directory searched for <APP_ENV>.yaml / default.yaml. When
                omitted, ./config in the working directory is searched first,
                then the config directory of a source checkout.
        """
        self.env_var_pattern = re.compile(r"\$\{([^}]+)\}")
        if config_dir is not None:
            self.config_dirs = [config_dir]
        else:
            self.config_dirs = [
                Path.cwd() / "config",
                Path(__file__).parent.parent.parent / "config",
            ]

    def load_config(self, config_path: Optional[str] = None) -> AppConfig:
        """Load configuration from YAML file with environment variable overrides.

        An explicitly given file must exist. Without one, the default file is
        used when present; otherwise the configuration comes from FEEDSYNC_*
        environment variables and built-in defaults.

        Args:
            config_path: Path to the configuration YAML file

        Returns:
            AppConfig: Validated application configuration

        Raises:
            ConfigError: If configuration file is missing or invalid
        """
        if config_path is None:
            default_path = self._get_default_config_path()
            config_dict: Dict[str, Any] = {}
            if default_path is not None:
                log.info("loading_configuration", config_path=default_path)
                config_dict = self._load_yaml_file(default_path)
            else:
                log.info(
                    "no_configuration_file_using_defaults",
                    config_dirs=[str(d) for d in self.config_dirs],
                )
        else:
            log.info("loading_configuration", config_path=config_path)
            config_dict = self._load_yaml_file(config_path)

        config_dict = self._substitute_env_vars(config_dict)

        try:
            app_config = AppConfig(**config_dict)
        except ValidationError as e:
            log.error("configuration_validation_failed", error=str(e))
            raise ConfigError(f"Configuration validation failed: {e}") from e

        self.validate_config(app_config)
        log.info("configuration_loaded_successfully")
        return app_config

    def _get_default_config_path(self) -> str | None:
        """Get the default configuration file path based on environment.

        Returns:
            Path to the configuration file, or None if no file exists
        """
        env = os.getenv("APP_ENV", "default")

        for config_dir in self.config_dirs:
            for name in (f"{env}.yaml", "default.yaml"):
                config_file = config_dir / name
                if config_file.exists():
                    return str(config_file)

        return None

    def _load_yaml_file(self, config_path: str) -> Dict[str, Any]:
        """Load YAML configuration file.

        Raises:
            ConfigError: If file cannot be read or parsed
        """
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_dict = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigError(f"Configuration file not found: {config_path}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML file {config_path}: {e}")
        except OSError as e:
            raise ConfigError(f"Failed to load configuration file {config_path}: {e}")

        if config_dict is None:
            raise ConfigError(f"Configuration file is empty: {config_path}")
        if not isinstance(config_dict, dict):
            raise ConfigError(f"Configuration file must contain a mapping: {config_path}")

        log.debug("yaml_file_loaded", config_path=config_path)
        return config_dict

    def _substitute_env_vars(self, config: Any) -> Any:
        """Recursively substitute ${VAR_NAME} environment references in configuration."""
        if isinstance(config, dict):
            return {key: self._substitute_env_vars(value) for key, value in config.items()}
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            return self._substitute_env_var_in_string(config)
        else:
            return config

    def _substitute_env_var_in_string(self, value: str) -> str:
        """Substitute environment variables in a string.

        Raises:
            ConfigError: If a referenced environment variable is not set
        """
        for var_name in self.env_var_pattern.findall(value):
            env_value = os.getenv(var_name)
            if env_value is None:
                raise ConfigError(
                    f"Required environment variable not set: {var_name}. "
                    f"Please set {var_name} in your environment."
                )
            value = value.replace(f"${{{var_name}}}", env_value)

        return value

    def validate_config(self, config: AppConfig) -> list[str]:
        """Validate configuration and return any warnings.

        Args:
            config: Application configuration to validate

        Returns:
            List of warning messages (empty if no warnings)
        """
        warnings = []

        if not config.sanitizer.disallowed_fields:
            warnings.append("sanitizer.disallowed_fields is empty; feeds are stored unmodified")

        if config.network.probe_timeout_seconds > config.network.fetch_timeout_seconds:
            warnings.append(
                f"network.probe_timeout_seconds ({config.network.probe_timeout_seconds}) "
                f"exceeds network.fetch_timeout_seconds ({config.network.fetch_timeout_seconds})"
            )

        if config.staleness.freshness_window_hours == 0:
            warnings.append("staleness.freshness_window_hours is 0; every run probes all feeds")

        if warnings:
            log.warning("configuration_validation_warnings", warnings=warnings)

        return warnings
