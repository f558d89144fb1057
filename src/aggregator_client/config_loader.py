"""
ConfigLoader module for loading and validating client configuration files
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

import yaml

from .credentials import Credential, credential_from_config
from .dispatcher import DEFAULT_TIMEOUT
from .paginator import DEFAULT_LIMIT
from .rate_limiter import DEFAULT_MINIMUM_INTERVAL
from .retry import DEFAULT_MAX_RETRIES, retry_with_backoff


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

T = TypeVar("T")


class ConfigurationError(Exception):
    """Raised when configuration is invalid or incomplete"""
    pass


class EnvironmentVariableError(Exception):
    """Raised when required environment variables are missing"""
    pass


@dataclass
class ClientConfig:
    """Configuration data class for the aggregator client"""
    name: str
    base_url: str
    user_agent: str
    authentication: Dict[str, Any]
    rate_limits: Dict[str, Any] = field(default_factory=dict)
    pagination: Dict[str, Any] = field(default_factory=dict)
    retries: Dict[str, Any] = field(default_factory=dict)
    timeouts: Dict[str, Any] = field(default_factory=dict)
    logging: Dict[str, Any] = field(default_factory=dict)

    @property
    def minimum_interval(self) -> float:
        """Seconds between requests, from either rate limit spelling"""
        if 'minimum_interval_seconds' in self.rate_limits:
            return float(self.rate_limits['minimum_interval_seconds'])
        if 'requests_per_second' in self.rate_limits:
            return 1.0 / float(self.rate_limits['requests_per_second'])
        return DEFAULT_MINIMUM_INTERVAL

    @property
    def request_timeout(self) -> float:
        return float(self.timeouts.get('request_seconds', DEFAULT_TIMEOUT))

    @property
    def page_limit(self) -> int:
        return int(self.pagination.get('limit', DEFAULT_LIMIT))

    def retry_policy(self, **overrides: Any) -> Callable[[Callable[..., T]], Callable[..., T]]:
        """
        Retry decorator built from the [retries] section

        max_attempts counts the first call, so 1 disables retrying. Keyword
        overrides (retry_on, sleep) are passed to retry_with_backoff.
        """
        settings = {
            'max_retries': int(self.retries.get('max_attempts', DEFAULT_MAX_RETRIES + 1)) - 1,
            'initial_delay': float(self.retries.get('initial_delay_seconds', 1.0)),
            'max_delay': float(self.retries.get('max_delay_seconds', 60.0)),
            'exponential_base': float(self.retries.get('backoff_factor', 2.0)),
        }
        settings.update(overrides)
        return retry_with_backoff(**settings)


class ConfigLoader:
    """Loads and validates TOML or YAML configuration files"""

    # Required configuration sections and their mandatory keys
    REQUIRED_SECTIONS = {
        'api': ['name', 'base_url', 'user_agent'],
        'authentication': ['type'],
    }

    # Optional sections that default to empty values
    OPTIONAL_SECTIONS = [
        'rate_limits',
        'pagination',
        'retries',
        'timeouts',
        'logging',
    ]

    @staticmethod
    def load_config(config_path: Path) -> ClientConfig:
        """
        Load client configuration from a TOML or YAML file

        Args:
            config_path: Path to a .toml, .yaml or .yml file

        Returns:
            ClientConfig object with all configuration data

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If the syntax is invalid or required configuration is missing
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if config_path.suffix.lower() in ('.yaml', '.yml'):
            config_data = ConfigLoader._load_yaml(config_path)
        else:
            config_data = ConfigLoader._load_toml(config_path)

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration in {config_path} must be a mapping")

        ConfigLoader._validate_required_sections(config_data)
        ConfigLoader._validate_values(config_data)

        return ClientConfig(
            name=config_data['api']['name'],
            base_url=config_data['api']['base_url'],
            user_agent=config_data['api']['user_agent'],
            authentication=config_data['authentication'],
            **{section: config_data.get(section) or {} for section in ConfigLoader.OPTIONAL_SECTIONS}
        )

    @staticmethod
    def _load_toml(config_path: Path) -> Dict[str, Any]:
        try:
            with open(config_path, 'rb') as f:
                return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML syntax in {config_path}: {e}")

    @staticmethod
    def _load_yaml(config_path: Path) -> Dict[str, Any]:
        try:
            with open(config_path, 'r') as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}")

    @staticmethod
    def _validate_required_sections(config_data: Dict[str, Any]) -> None:
        """
        Validate that all required configuration sections and keys are present

        Raises:
            ConfigurationError: If any required section or key is missing
        """
        missing_items = []

        for section_name, required_keys in ConfigLoader.REQUIRED_SECTIONS.items():
            if section_name not in config_data:
                missing_items.append(f"Section [{section_name}]")
            else:
                section_data = config_data[section_name]
                for key in required_keys:
                    if key not in section_data:
                        missing_items.append(f"Key '{key}' in section [{section_name}]")

        if missing_items:
            raise ConfigurationError(
                f"Missing required configuration items: {', '.join(missing_items)}"
            )

    @staticmethod
    def _validate_values(config_data: Dict[str, Any]) -> None:
        if not str(config_data['api']['user_agent']).strip():
            raise ConfigurationError("Key 'user_agent' in section [api] must not be empty")

        rate_limits = config_data.get('rate_limits') or {}
        rps = rate_limits.get('requests_per_second')
        if rps is not None and rps <= 0:
            raise ConfigurationError("Key 'requests_per_second' in section [rate_limits] must be positive")
        interval = rate_limits.get('minimum_interval_seconds')
        if interval is not None and interval < 0:
            raise ConfigurationError("Key 'minimum_interval_seconds' in section [rate_limits] must not be negative")

        retries = config_data.get('retries') or {}
        max_attempts = retries.get('max_attempts')
        if max_attempts is not None and max_attempts < 1:
            raise ConfigurationError("Key 'max_attempts' in section [retries] must be at least 1")
        backoff_factor = retries.get('backoff_factor')
        if backoff_factor is not None and backoff_factor < 1:
            raise ConfigurationError("Key 'backoff_factor' in section [retries] must be at least 1")

    @staticmethod
    def validate_environment_variables(config: ClientConfig) -> bool:
        """
        Validate that all environment variables referenced by [authentication] are set

        Raises:
            EnvironmentVariableError: If any required environment variables are missing
        """
        missing_vars = []

        for key, value in config.authentication.items():
            if key.endswith('_env') and isinstance(value, str):
                if not os.getenv(value):
                    missing_vars.append(value)

        if missing_vars:
            raise EnvironmentVariableError(
                f"Missing required environment variables: {', '.join(missing_vars)}"
            )

        return True

    @staticmethod
    def get_environment_value(env_var_name: str) -> str:
        """
        Get environment variable value with proper error handling

        Raises:
            EnvironmentVariableError: If environment variable is not set
        """
        value = os.getenv(env_var_name)
        if value is None:
            raise EnvironmentVariableError(f"Environment variable '{env_var_name}' is not set")
        return value

    @staticmethod
    def build_credential(config: ClientConfig) -> Credential:
        """Resolve the configured credential from the environment"""
        ConfigLoader.validate_environment_variables(config)
        return credential_from_config(config.authentication, ConfigLoader.get_environment_value)


def configure_logging(config: Optional[ClientConfig] = None, level: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger from the [logging] section

    Recognised keys are 'level' and 'log_file'. Handlers are attached to the
    'aggregator_client' logger only, leaving the root logger to the application.
    """
    settings = config.logging if config else {}
    logger = logging.getLogger('aggregator_client')
    logger.setLevel((level or settings.get('level', 'INFO')).upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers = [logging.StreamHandler()]
    log_file = settings.get('log_file')
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
