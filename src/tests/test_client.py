"""
Test suite for AggregatorClient wiring
Following TDD approach with AAA pattern and descriptive naming
"""

import os
import tempfile
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from aggregator_client.client import AggregatorClient
from aggregator_client.config_loader import ClientConfig, EnvironmentVariableError
from aggregator_client.credentials import BasicAuth
from aggregator_client.dispatcher import Dispatcher
from aggregator_client.errors import TransportTimeout
from aggregator_client.managers import AccountManager, InboxManager


CONFIG = """
[api]
name = "aggregator"
base_url = "https://oauth.example.test"
user_agent = "tests/1.0"

[authentication]
type = "basic"
username_env = "AGG_USERNAME"
password_env = "AGG_PASSWORD"

[rate_limits]
minimum_interval_seconds = 0.25

[pagination]
limit = 40

[timeouts]
request_seconds = 5
"""


class TestAggregatorClient:
    """Test suite for building clients and sharing the dispatcher"""

    def test_from_config_wires_dispatcher_limiter_and_credential(self):
        """
        Test that configuration values reach the dispatcher and rate limiter
        """
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            path = Path(temp_dir) / "client.toml"
            path.write_text(CONFIG)

            # Act
            with patch.dict(os.environ, {'AGG_USERNAME': 'someone', 'AGG_PASSWORD': 'secret'}):
                client = AggregatorClient.from_config(path)

            # Assert
            assert client.is_authenticated is True
            assert client.credential == BasicAuth("someone", "secret")
            assert client.dispatcher.base_url == "https://oauth.example.test"
            assert client.dispatcher.user_agent == "tests/1.0"
            assert client.dispatcher.timeout == 5.0
            assert client.dispatcher.rate_limiter.minimum_interval == 0.25

    def test_from_config_with_unset_credentials_raises_environment_error(self):
        """
        Test that missing credential variables stop client construction
        """
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            path = Path(temp_dir) / "client.toml"
            path.write_text(CONFIG)

            # Act & Assert
            with patch.dict(os.environ, {}, clear=True):
                with pytest.raises(EnvironmentVariableError):
                    AggregatorClient.from_config(path)

    def test_paginator_defaults_limit_from_config(self):
        """
        Test that paginators use the configured page size unless overridden
        """
        # Arrange
        config = Mock(page_limit=40)
        client = AggregatorClient(Mock(spec=Dispatcher), BasicAuth("u", "p"), config)

        # Act
        default = client.paginator('inbox')
        explicit = client.paginator('inbox', limit=10)

        # Assert
        assert default.limit == 40
        assert explicit.limit == 10
        assert default.credential == BasicAuth("u", "p")

    def test_retrying_applies_configured_retry_policy(self):
        """
        Test that wrapped operations are retried as the [retries] section says
        """
        # Arrange
        config = ClientConfig("a", "https://x.test", "ua", {'type': 'none'},
                              retries={'max_attempts': 2, 'initial_delay_seconds': 0.1})
        client = AggregatorClient(Mock(spec=Dispatcher), config=config)
        sleep = Mock()
        operation = Mock(side_effect=[TransportTimeout("slow"), "page"])
        operation.__name__ = "operation"

        # Act
        result = client.retrying(operation, sleep=sleep)()

        # Assert
        assert result == "page"
        assert operation.call_count == 2
        sleep.assert_called_once_with(0.1)

    def test_managers_share_the_client_dispatcher(self):
        """
        Test that every manager goes through the one dispatcher
        """
        # Arrange
        dispatcher = Mock(spec=Dispatcher)
        client = AggregatorClient(dispatcher)

        # Act
        inbox = client.inbox()
        account = client.account()

        # Assert
        assert isinstance(inbox, InboxManager)
        assert isinstance(account, AccountManager)
        assert inbox.dispatcher is account.dispatcher is dispatcher
        assert client.is_authenticated is False

    def test_context_manager_closes_dispatcher(self):
        """
        Test that leaving the context releases the connection
        """
        # Arrange
        dispatcher = Mock(spec=Dispatcher)

        # Act
        with AggregatorClient(dispatcher):
            pass

        # Assert
        dispatcher.close_connection.assert_called_once()
