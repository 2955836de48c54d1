"""
Unit tests for the configuration module's initialization.

This module contains tests for get_context(), ensuring that it correctly parses
command-line arguments and environment variables to create a configuration context.

The tests follow the Arrange-Act-Assert (AAA) pattern.
"""

import os
from unittest.mock import patch

import pytest

from cache_monitor.config import get_context
from cache_monitor.config.monitoring_context import MonitoringContext


def test_get_context_should_return_context_with_default_values() -> None:
    """
    Tests that get_context returns the defaults when no arguments or environment variables are set.
    """
    # Arrange
    with patch.dict(os.environ, {}, clear=True):
        with patch("cache_monitor.config.uuid4", return_value="mock-uuid"):
            # Act
            context = get_context([])

    # Assert
    assert isinstance(context, MonitoringContext)
    assert context.dsn == ""
    assert context.instance_id == "cache-monitor-mock-uuid"
    assert context.logging_type == "prod"
    assert context.logging_config_file == ""
    assert context.db_pool_size == 5
    assert context.fetch_timeout_ms == 10_000
    assert context.fetch_mode == "direct"
    assert context.proxy_endpoint == "http://localhost:8080/api/check"
    assert context.proxy_host == "localhost"
    assert context.proxy_port == 0
    assert context.urls == ()
    assert context.interval == "smart"
    assert context.snapshot_interval == 60


def test_get_context_should_read_environment_variables() -> None:
    """
    Tests that environment variables are used when no command-line argument is given.
    """
    # Arrange
    environment = {
        "CACHE_MONITOR_DSN": "postgresql://env@localhost/env",
        "CACHE_MONITOR_INSTANCE_ID": "env-instance",
        "CACHE_MONITOR_DB_POOL_SIZE": "7",
        "CACHE_MONITOR_LOGGING_TYPE": "dev",
        "CACHE_MONITOR_FETCH_TIMEOUT": "2500",
        "CACHE_MONITOR_FETCH_MODE": "PROXY",
        "CACHE_MONITOR_PROXY_ENDPOINT": "http://status.local/api/check",
        "CACHE_MONITOR_PROXY_PORT": "8080",
        "CACHE_MONITOR_URLS": "example.com, https://example.org ,",
        "CACHE_MONITOR_INTERVAL": "30000",
        "CACHE_MONITOR_SNAPSHOT_INTERVAL": "15",
    }

    with patch.dict(os.environ, environment, clear=True):
        # Act
        context = get_context([])

    # Assert
    assert context.dsn == "postgresql://env@localhost/env"
    assert context.instance_id == "env-instance"
    assert context.db_pool_size == 7
    assert context.logging_type == "dev"
    assert context.fetch_timeout_ms == 2500
    assert context.fetch_mode == "proxy"
    assert context.proxy_endpoint == "http://status.local/api/check"
    assert context.proxy_port == 8080
    assert context.urls == ("example.com", "https://example.org")
    assert context.interval == "30000"
    assert context.snapshot_interval == 15


def test_get_context_should_prefer_command_line_arguments() -> None:
    """
    Tests that command-line arguments override environment variables.
    """
    # Arrange
    argv = [
        "-dsn", "postgresql://cli@localhost/cli",
        "--instance-id", "cli-instance",
        "--fetch-mode", "direct",
        "-u", "one.example.com",
        "--url", "two.example.com",
        "--interval", "SMART",
        "--proxy-port", "9090",
    ]
    environment = {
        "CACHE_MONITOR_DSN": "postgresql://env@localhost/env",
        "CACHE_MONITOR_FETCH_MODE": "proxy",
        "CACHE_MONITOR_URLS": "env.example.com",
    }

    with patch.dict(os.environ, environment, clear=True):
        # Act
        context = get_context(argv)

    # Assert
    assert context.dsn == "postgresql://cli@localhost/cli"
    assert context.instance_id == "cli-instance"
    assert context.fetch_mode == "direct"
    assert context.urls == ("one.example.com", "two.example.com")
    assert context.interval == "smart"
    assert context.proxy_port == 9090


@pytest.mark.parametrize(
    "argv",
    [
        ["--fetch-mode", "carrier-pigeon"],
        ["--interval", "often"],
        ["--interval", "0"],
        ["--db-pool-size", "many"],
    ],
)
def test_get_context_should_exit_on_invalid_values(argv: list) -> None:
    """
    Tests that invalid option values stop the program with a usage error.
    """
    # Arrange
    with patch.dict(os.environ, {}, clear=True):
        # Act & Assert
        with pytest.raises(SystemExit):
            get_context(argv)
