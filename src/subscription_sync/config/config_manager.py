"""
Configuration management for the subscription sync tool.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass, asdict
import logging

from ..error_handling import ConfigurationError

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass
class GitHubConfig:
    """GitHub API configuration."""
    access_token: Optional[str] = None
    api_base_url: str = "https://api.github.com"
    graphql_url: str = "https://api.github.com/graphql"
    timeout: int = 30
    page_size: int = MAX_PAGE_SIZE


@dataclass
class SyncConfig:
    """What to synchronize and where the manifest lives."""
    organization: str = "exercism"
    manifest_path: str = "subscriptions.json"
    continue_on_error: bool = False


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "WARNING"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_file_size: int = 10  # MB
    backup_count: int = 5
    structured: bool = False


@dataclass
class AppConfig:
    """Complete application configuration."""
    github: GitHubConfig
    sync: SyncConfig
    logging: LoggingConfig

    def to_dict(self, redact: bool = True) -> Dict[str, Any]:
        data = asdict(self)
        if redact and data["github"].get("access_token"):
            data["github"]["access_token"] = "*" * 8
        return data


class ConfigManager:
    """
    Builds the application configuration from several sources.

    Later sources override earlier ones:
    1. Default configuration
    2. YAML configuration file
    3. Environment variables
    4. Command-line overrides passed to ``load_config``
    """

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to a YAML configuration file
        """
        self.config_file = Path(config_file) if config_file else None
        self._env_var_mapping = self._create_env_var_mapping()

    def _create_env_var_mapping(self) -> Dict[str, str]:
        """Create mapping of environment variables to config paths."""
        return {
            # GH_TOKEN is read first so GITHUB_TOKEN wins when both are set
            "GH_TOKEN": "github.access_token",
            "GITHUB_TOKEN": "github.access_token",
            "GITHUB_API_URL": "github.api_base_url",
            "GITHUB_GRAPHQL_URL": "github.graphql_url",
            "GITHUB_TIMEOUT": "github.timeout",
            "GITHUB_PAGE_SIZE": "github.page_size",

            "SUBSCRIPTION_SYNC_ORG": "sync.organization",
            "SUBSCRIPTION_SYNC_MANIFEST": "sync.manifest_path",
            "SUBSCRIPTION_SYNC_CONTINUE_ON_ERROR": "sync.continue_on_error",

            "LOG_LEVEL": "logging.level",
            "LOG_FILE": "logging.file",
            "LOG_FORMAT": "logging.format",
            "LOG_MAX_SIZE": "logging.max_file_size",
            "LOG_BACKUP_COUNT": "logging.backup_count",
        }

    def load_config(self, overrides: Optional[Dict[str, Any]] = None) -> AppConfig:
        """
        Load configuration from all sources.

        Args:
            overrides: Dotted-path overrides, e.g. ``{"sync.organization": "acme"}``.
                ``None`` values are ignored.

        Returns:
            Complete application configuration
        """
        config_dict = self._get_default_config()

        if self.config_file:
            file_config = self._load_config_file(self.config_file)
            config_dict = self._merge_configs(config_dict, file_config)

        env_config = self._load_env_config(config_dict)
        config_dict = self._merge_configs(config_dict, env_config)

        if overrides:
            override_config: Dict[str, Any] = {}
            for path, value in overrides.items():
                if value is not None:
                    self._set_nested_value(override_config, path, value)
            config_dict = self._merge_configs(config_dict, override_config)

        config_dict = self._substitute_env_vars(config_dict)

        self._validate_config(config_dict)

        return self._dict_to_config(config_dict)

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values."""
        return {
            "github": asdict(GitHubConfig()),
            "sync": asdict(SyncConfig()),
            "logging": asdict(LoggingConfig()),
        }

    def _load_config_file(self, config_path: Path) -> Dict[str, Any]:
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to configuration file

        Returns:
            Configuration dictionary

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to load config file {config_path}",
                cause=e
            ) from e

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigurationError(
                f"Config file {config_path} must contain a mapping at the top level"
            )

        for section, values in config.items():
            if values is None:
                config[section] = {}
            elif not isinstance(values, dict):
                raise ConfigurationError(
                    f"Section {section!r} in {config_path} must be a mapping, "
                    f"got {type(values).__name__}",
                    config_section=str(section)
                )

        logger.info(f"Loaded configuration from {config_path}")
        return config

    def _load_env_config(self, defaults: Dict[str, Any]) -> Dict[str, Any]:
        """
        Load configuration from environment variables.

        Args:
            defaults: Current configuration, used to pick the target type

        Returns:
            Configuration dictionary from environment variables
        """
        env_config: Dict[str, Any] = {}

        for env_var, config_path in self._env_var_mapping.items():
            value = os.getenv(env_var)
            if value is None or value == "":
                continue
            section, key = config_path.split('.')
            current = defaults.get(section, {}).get(key)
            self._set_nested_value(
                env_config, config_path, self._convert_env_value(value, current, env_var)
            )

        return env_config

    def _convert_env_value(self, value: str, current: Any, env_var: str) -> Any:
        """
        Convert an environment variable string to the type of the setting.

        Args:
            value: String value from environment variable
            current: Existing value of the setting
            env_var: Variable name, used in error messages

        Returns:
            Converted value
        """
        if isinstance(current, bool):
            lowered = value.lower()
            if lowered in ('true', 'yes', '1', 'on'):
                return True
            if lowered in ('false', 'no', '0', 'off'):
                return False
            raise ConfigurationError(f"{env_var} must be a boolean, got {value!r}")

        if isinstance(current, int):
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(
                    f"{env_var} must be an integer, got {value!r}", cause=e
                ) from e

        return value

    def _set_nested_value(self, config: Dict[str, Any], path: str, value: Any) -> None:
        """
        Set a nested configuration value using dot notation.

        Args:
            config: Configuration dictionary
            path: Dot-separated path (e.g., 'github.access_token')
            value: Value to set
        """
        keys = path.split('.')
        current = config

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def _substitute_env_vars(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Replace ``${VAR}`` string values with the environment variable's value.

        A placeholder whose variable is unset becomes ``None``, so an unset
        token reads as missing rather than as the literal placeholder.
        """
        def substitute_recursive(obj):
            if isinstance(obj, dict):
                return {k: substitute_recursive(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [substitute_recursive(item) for item in obj]
            elif isinstance(obj, str) and obj.startswith('${') and obj.endswith('}'):
                env_var = obj[2:-1]
                value = os.getenv(env_var)
                if value is None:
                    logger.warning(f"Environment variable {env_var} is not set; leaving {obj} empty")
                return value
            else:
                return obj

        return substitute_recursive(config)

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge ``override`` into a copy of ``base``."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """
        Validate configuration values.

        Args:
            config: Configuration dictionary

        Raises:
            ConfigurationError: If configuration is invalid
        """
        known_sections = {"github", "sync", "logging"}
        for section in config:
            if section not in known_sections:
                raise ConfigurationError(
                    f"Unknown configuration section: {section}",
                    config_section=section
                )

        page_size = config.get("github", {}).get("page_size")
        if not isinstance(page_size, int) or isinstance(page_size, bool) \
                or not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ConfigurationError(
                f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {page_size!r}",
                config_section="github",
                config_key="page_size"
            )

        organization = config.get("sync", {}).get("organization")
        if not organization or not str(organization).strip():
            raise ConfigurationError(
                "No organization configured",
                config_section="sync",
                config_key="organization"
            )

        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        log_level = str(config.get("logging", {}).get("level", "WARNING")).upper()
        if log_level not in valid_levels:
            raise ConfigurationError(
                f"Invalid log level: {log_level}. Valid levels: {sorted(valid_levels)}",
                config_section="logging",
                config_key="level"
            )

        if not config.get("github", {}).get("access_token"):
            logger.debug("GitHub access token not configured")

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> AppConfig:
        """Convert a validated configuration dictionary into an ``AppConfig``."""
        try:
            return AppConfig(
                github=GitHubConfig(**config_dict.get("github", {})),
                sync=SyncConfig(**config_dict.get("sync", {})),
                logging=LoggingConfig(**config_dict.get("logging", {}))
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration key: {e}", cause=e) from e

