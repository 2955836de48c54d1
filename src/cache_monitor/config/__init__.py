"""
Configuration module for the cache monitoring system.

This module provides functionality to parse command-line arguments and environment
variables to create a configuration context for the monitoring system. It defines
default values and help text for all configurable parameters.
"""

import argparse
import os
from typing import Any, List, Optional, Sequence
from uuid import uuid4

from cache_monitor.config.constants import (
    DEFAULT_DB_POOL_SIZE,
    DEFAULT_DSN,
    DEFAULT_FETCH_MODE,
    DEFAULT_FETCH_TIMEOUT_MS,
    DEFAULT_INSTANCE_ID_PREFIX,
    DEFAULT_INTERVAL,
    DEFAULT_LOGGING_CONFIG_FILE,
    DEFAULT_LOGGING_TYPE,
    DEFAULT_PROXY_ENDPOINT,
    DEFAULT_PROXY_HOST,
    DEFAULT_PROXY_PORT,
    DEFAULT_SNAPSHOT_INTERVAL,
    DEFAULT_URLS,
    FETCH_MODES,
)
from cache_monitor.config.monitoring_context import MonitoringContext
from cache_monitor.domain import IntervalMode


def _split_urls(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [url.strip() for url in value.split(",") if url.strip()]


def get_context(argv: Optional[Sequence[str]] = None) -> MonitoringContext:
    """
    Parse command-line arguments and environment variables to create a configuration context.

    For each option, the command-line argument wins, then the environment variable,
    and finally the default value.

    Args:
        argv: Arguments to parse instead of sys.argv[1:].

    Returns:
        MonitoringContext: A configuration context object containing all parsed settings.
    """
    parser = argparse.ArgumentParser(
        description="Monitors the caching behaviour of websites through their response headers."
    )

    parser.add_argument(
        "-dsn",
        type=str,
        default=os.getenv("CACHE_MONITOR_DSN", DEFAULT_DSN),
        help="Specifies the DSN (connection string) for the PostgreSQL database.\n"
        "If not provided, the value is read from the CACHE_MONITOR_DSN environment variable.\n"
        "If that is also absent, persistence is disabled.",
    )

    parser.add_argument(
        "-iid",
        "--instance-id",
        type=str,
        default=os.getenv("CACHE_MONITOR_INSTANCE_ID", f"{DEFAULT_INSTANCE_ID_PREFIX}{uuid4()}"),
        help="Specifies the identifier of this monitor instance, used in log records.\n"
        "If not provided, the value is read from the CACHE_MONITOR_INSTANCE_ID environment variable.\n"
        f"If that is also absent, the default value will be {DEFAULT_INSTANCE_ID_PREFIX}uuid4().",
    )

    parser.add_argument(
        "-ps",
        "--db-pool-size",
        type=int,
        default=int(os.getenv("CACHE_MONITOR_DB_POOL_SIZE", DEFAULT_DB_POOL_SIZE)),
        help="Specifies the maximum number of connections in the database connection pool.\n"
        "If not provided, the value is read from the CACHE_MONITOR_DB_POOL_SIZE environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_DB_POOL_SIZE} is used.",
    )

    parser.add_argument(
        "-lt",
        "--logging-type",
        type=str,
        default=os.getenv("CACHE_MONITOR_LOGGING_TYPE", DEFAULT_LOGGING_TYPE),
        help="Specifies the logging configuration type to use.\n"
        "Allowed values: dev, prod, custom (case insensitive).\n"
        "For 'dev' and 'prod', system will use built-in configurations.\n"
        "For 'custom', the --logging-config-file argument is required.",
    )

    parser.add_argument(
        "-lcf",
        "--logging-config-file",
        type=str,
        default=os.getenv("CACHE_MONITOR_LOGGING_CONFIG_FILE", DEFAULT_LOGGING_CONFIG_FILE),
        help="Path to custom logging configuration file.\n"
        "Required when --logging-type is set to 'custom'.",
    )

    parser.add_argument(
        "-ft",
        "--fetch-timeout",
        type=int,
        default=int(os.getenv("CACHE_MONITOR_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT_MS)),
        help="Specifies the timeout of a single header fetch in milliseconds.\n"
        "If not provided, the value is read from the CACHE_MONITOR_FETCH_TIMEOUT environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_FETCH_TIMEOUT_MS} ms is used.",
    )

    parser.add_argument(
        "-fm",
        "--fetch-mode",
        type=str,
        default=os.getenv("CACHE_MONITOR_FETCH_MODE", DEFAULT_FETCH_MODE),
        help="Specifies how headers are fetched: 'direct' or through a status-server 'proxy'.\n"
        "If not provided, the value is read from the CACHE_MONITOR_FETCH_MODE environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_FETCH_MODE} is used.",
    )

    parser.add_argument(
        "-pe",
        "--proxy-endpoint",
        type=str,
        default=os.getenv("CACHE_MONITOR_PROXY_ENDPOINT", DEFAULT_PROXY_ENDPOINT),
        help="Specifies the status-server endpoint used when --fetch-mode is 'proxy'.\n"
        "If not provided, the value is read from the CACHE_MONITOR_PROXY_ENDPOINT environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_PROXY_ENDPOINT} is used.",
    )

    parser.add_argument(
        "-ph",
        "--proxy-host",
        type=str,
        default=os.getenv("CACHE_MONITOR_PROXY_HOST", DEFAULT_PROXY_HOST),
        help="Specifies the host the embedded status-server proxy listens on.\n"
        "If not provided, the value is read from the CACHE_MONITOR_PROXY_HOST environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_PROXY_HOST} is used.",
    )

    parser.add_argument(
        "-pp",
        "--proxy-port",
        type=int,
        default=int(os.getenv("CACHE_MONITOR_PROXY_PORT", DEFAULT_PROXY_PORT)),
        help="Specifies the port of the embedded status-server proxy. 0 disables the server.\n"
        "If not provided, the value is read from the CACHE_MONITOR_PROXY_PORT environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_PROXY_PORT} is used.",
    )

    parser.add_argument(
        "-u",
        "--url",
        dest="urls",
        action="append",
        default=None,
        help="A URL to monitor. May be repeated.\n"
        "If not provided, the comma-separated CACHE_MONITOR_URLS environment variable is used.",
    )

    parser.add_argument(
        "-i",
        "--interval",
        type=str,
        default=os.getenv("CACHE_MONITOR_INTERVAL", DEFAULT_INTERVAL),
        help="Specifies the interval of the sites added from the command line:\n"
        "'smart' or a fixed interval in milliseconds.\n"
        "If not provided, the value is read from the CACHE_MONITOR_INTERVAL environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_INTERVAL} is used.",
    )

    parser.add_argument(
        "-si",
        "--snapshot-interval",
        type=int,
        default=int(os.getenv("CACHE_MONITOR_SNAPSHOT_INTERVAL", DEFAULT_SNAPSHOT_INTERVAL)),
        help="Specifies how often, in seconds, the monitoring state is saved to the database.\n"
        "If not provided, the value is read from the CACHE_MONITOR_SNAPSHOT_INTERVAL environment variable.\n"
        f"If that is also absent, a default value of {DEFAULT_SNAPSHOT_INTERVAL} seconds is used.",
    )

    # Parse the command-line arguments
    args: Any = parser.parse_args(argv)

    fetch_mode = args.fetch_mode.lower()
    if fetch_mode not in FETCH_MODES:
        parser.error(f"Invalid fetch mode: {args.fetch_mode}. Allowed values are: direct, proxy")

    try:
        interval = IntervalMode.parse(args.interval).serialize()
    except ValueError:
        parser.error(f"Invalid interval: {args.interval}. Use 'smart' or a positive integer.")

    urls = args.urls if args.urls else _split_urls(os.getenv("CACHE_MONITOR_URLS", DEFAULT_URLS))

    # Create and return a MonitoringContext with the parsed settings
    return MonitoringContext(
        dsn=args.dsn,
        instance_id=args.instance_id,
        logging_type=args.logging_type,
        logging_config_file=args.logging_config_file,
        db_pool_size=args.db_pool_size,
        fetch_timeout_ms=args.fetch_timeout,
        fetch_mode=fetch_mode,
        proxy_endpoint=args.proxy_endpoint,
        proxy_host=args.proxy_host,
        proxy_port=args.proxy_port,
        urls=tuple(urls),
        interval=str(interval),
        snapshot_interval=args.snapshot_interval,
    )
