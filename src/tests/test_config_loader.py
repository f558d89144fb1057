"""
Test suite for ConfigLoader component
Following TDD approach with AAA pattern and descriptive naming
"""

import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from aggregator_client.config_loader import (
    ClientConfig, ConfigLoader, ConfigurationError, EnvironmentVariableError, configure_logging
)
from aggregator_client.credentials import BasicAuth, BearerToken
from aggregator_client.errors import TransportTimeout


VALID_TOML = """
[api]
name = "aggregator"
base_url = "https://oauth.example.test"
user_agent = "linux:aggregator-client:0.1.0 (by /u/someone)"

[authentication]
type = "basic"
username_env = "AGG_USERNAME"
password_env = "AGG_PASSWORD"

[rate_limits]
requests_per_second = 0.5

[pagination]
limit = 50

[timeouts]
request_seconds = 10
"""

VALID_YAML = """
api:
  name: aggregator
  base_url: https://www.example.test
  user_agent: tests/1.0
authentication:
  type: bearer_token
  token_env: AGG_TOKEN
  expires_at: "2030-01-01T00:00:00+00:00"
rate_limits:
  minimum_interval_seconds: 2
logging:
  level: debug
"""


def write_config(temp_dir, content, suffix='.toml'):
    path = Path(temp_dir) / f"client{suffix}"
    path.write_text(content)
    return path


class TestConfigLoader:
    """Test suite for configuration loading and validation"""

    def test_load_config_with_valid_toml_returns_client_config(self):
        """
        Test that a TOML file is parsed into ClientConfig with derived settings
        """
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            path = write_config(temp_dir, VALID_TOML)

            # Act
            config = ConfigLoader.load_config(path)

            # Assert
            assert isinstance(config, ClientConfig)
            assert config.name == "aggregator"
            assert config.base_url == "https://oauth.example.test"
            assert config.minimum_interval == pytest.approx(2.0)
            assert config.page_limit == 50
            assert config.request_timeout == 10.0
            assert config.retries == {}

    def test_load_config_with_valid_yaml_returns_client_config(self):
        """
        Test that YAML files are accepted by extension
        """
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            path = write_config(temp_dir, VALID_YAML, suffix='.yaml')

            # Act
            config = ConfigLoader.load_config(path)

            # Assert
            assert config.authentication['type'] == "bearer_token"
            assert config.minimum_interval == 2.0
            assert config.logging == {'level': 'debug'}
            assert config.page_limit == 25

    def test_load_config_with_missing_file_raises_file_not_found(self):
        """
        Test that a missing path is reported as such
        """
        # Act & Assert
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load_config(Path("/nonexistent/client.toml"))

    def test_load_config_with_missing_sections_lists_every_missing_item(self):
        """
        Test that all missing sections and keys are reported together
        """
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            path = write_config(temp_dir, '[api]\nname = "aggregator"\n')

            # Act & Assert
            with pytest.raises(ConfigurationError) as exc_info:
                ConfigLoader.load_config(path)

            message = str(exc_info.value)
            assert "Key 'base_url' in section [api]" in message
            assert "Key 'user_agent' in section [api]" in message
            assert "Section [authentication]" in message

    def test_load_config_with_invalid_toml_raises_configuration_error(self):
        """
        Test that syntax errors are wrapped in ConfigurationError
        """
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            path = write_config(temp_dir, "[api\nname = ")

            # Act & Assert
            with pytest.raises(ConfigurationError) as exc_info:
                ConfigLoader.load_config(path)

            assert "Invalid TOML syntax" in str(exc_info.value)

    def test_load_config_with_empty_user_agent_raises_configuration_error(self):
        """
        Test that an identifying user agent is mandatory
        """
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            path = write_config(temp_dir, VALID_TOML.replace(
                'user_agent = "linux:aggregator-client:0.1.0 (by /u/someone)"', 'user_agent = "  "'))

            # Act & Assert
            with pytest.raises(ConfigurationError):
                ConfigLoader.load_config(path)

    def test_load_config_with_zero_rate_raises_configuration_error(self):
        """
        Test that a non-positive request rate is rejected
        """
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            path = write_config(temp_dir, VALID_TOML.replace("requests_per_second = 0.5",
                                                            "requests_per_second = 0"))

            # Act & Assert
            with pytest.raises(ConfigurationError):
                ConfigLoader.load_config(path)

    def test_load_config_with_invalid_max_attempts_raises_configuration_error(self):
        """
        Test that at least one attempt must be configured
        """
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            path = write_config(temp_dir, VALID_TOML + "\n[retries]\nmax_attempts = 0\n")

            # Act & Assert
            with pytest.raises(ConfigurationError) as exc_info:
                ConfigLoader.load_config(path)

            assert "max_attempts" in str(exc_info.value)

    def test_retry_policy_uses_attempts_and_backoff_from_retries_section(self):
        """
        Test that the [retries] section drives the retry decorator
        """
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            path = write_config(temp_dir, VALID_TOML + (
                "\n[retries]\nmax_attempts = 3\nbackoff_factor = 3\ninitial_delay_seconds = 0.5\n"))
            config = ConfigLoader.load_config(path)
            sleep = Mock()
            operation = Mock(side_effect=TransportTimeout("slow"))
            operation.__name__ = "operation"

            # Act
            wrapped = config.retry_policy(sleep=sleep)(operation)
            with pytest.raises(TransportTimeout):
                wrapped()

            # Assert
            assert operation.call_count == 3
            assert [call.args[0] for call in sleep.call_args_list] == [0.5, 1.5]

    def test_retry_policy_with_single_attempt_does_not_retry(self):
        """
        Test that max_attempts of 1 disables retrying
        """
        # Arrange
        config = ClientConfig("a", "https://x.test", "ua", {'type': 'none'}, retries={'max_attempts': 1})
        sleep = Mock()
        operation = Mock(side_effect=TransportTimeout("slow"))
        operation.__name__ = "operation"

        # Act & Assert
        with pytest.raises(TransportTimeout):
            config.retry_policy(sleep=sleep)(operation)()

        assert operation.call_count == 1
        sleep.assert_not_called()

    def test_validate_environment_variables_with_missing_vars_raises_error(self):
        """
        Test that unset credential variables are all named in the error
        """
        # Arrange
        config = ClientConfig("a", "https://x.test", "ua",
                              {'type': 'basic', 'username_env': 'AGG_U', 'password_env': 'AGG_P'})

        # Act & Assert
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(EnvironmentVariableError) as exc_info:
                ConfigLoader.validate_environment_variables(config)

        assert "AGG_U" in str(exc_info.value)
        assert "AGG_P" in str(exc_info.value)

    def test_build_credential_with_basic_auth_reads_environment(self):
        """
        Test that basic credentials are resolved from the environment
        """
        # Arrange
        config = ClientConfig("a", "https://x.test", "ua",
                              {'type': 'basic', 'username_env': 'AGG_U', 'password_env': 'AGG_P'})

        # Act
        with patch.dict(os.environ, {'AGG_U': 'someone', 'AGG_P': 'secret'}):
            credential = ConfigLoader.build_credential(config)

        # Assert
        assert credential == BasicAuth("someone", "secret")
        assert "secret" not in repr(credential)

    def test_build_credential_with_bearer_token_parses_expiry(self):
        """
        Test that bearer tokens carry their configured expiry
        """
        # Arrange
        config = ClientConfig("a", "https://x.test", "ua",
                              {'type': 'bearer_token', 'token_env': 'AGG_T',
                               'expires_at': '2030-01-01T00:00:00+00:00'})

        # Act
        with patch.dict(os.environ, {'AGG_T': 'abc'}):
            credential = ConfigLoader.build_credential(config)

        # Assert
        assert isinstance(credential, BearerToken)
        assert credential.expires_at == datetime.fromisoformat('2030-01-01T00:00:00+00:00')
        assert credential.is_expired() is False

    def test_build_credential_with_none_type_returns_none(self):
        """
        Test that anonymous configuration yields no credential
        """
        # Arrange
        config = ClientConfig("a", "https://x.test", "ua", {'type': 'none'})

        # Act & Assert
        assert ConfigLoader.build_credential(config) is None

    def test_build_credential_with_unknown_type_raises_value_error(self):
        """
        Test that unsupported authentication types are rejected
        """
        # Arrange
        config = ClientConfig("a", "https://x.test", "ua", {'type': 'oauth_magic'})

        # Act & Assert
        with pytest.raises(ValueError):
            ConfigLoader.build_credential(config)


class TestConfigureLogging:
    """Test suite for package logger configuration"""

    def test_configure_logging_with_log_file_adds_file_handler(self):
        """
        Test that a configured log file receives package log records
        """
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            log_file = Path(temp_dir) / "logs" / "client.log"
            config = ClientConfig("a", "https://x.test", "ua", {'type': 'none'},
                                  logging={'level': 'debug', 'log_file': str(log_file)})

            # Act
            logger = configure_logging(config)
            logging.getLogger('aggregator_client.paginator').debug("page fetched")
            for handler in logger.handlers:
                handler.flush()

            # Assert
            assert logger.level == logging.DEBUG
            assert len(logger.handlers) == 2
            assert "page fetched" in log_file.read_text()

            configure_logging(level='warning')

    def test_configure_logging_called_twice_does_not_duplicate_handlers(self):
        """
        Test that reconfiguring replaces the previous handlers
        """
        # Act
        configure_logging(level='info')
        logger = configure_logging(level='warning')

        # Assert
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
