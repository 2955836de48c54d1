"""
Configuration context for the cache monitoring system.

This module defines a data structure that holds all configuration parameters
for the monitoring system. It serves as a central point for passing configuration
throughout the application.
"""

from typing import NamedTuple, Tuple


class MonitoringContext(NamedTuple):
    """
    A data structure containing all configuration parameters for the monitoring system.

    Attributes:
        dsn: Database connection string for PostgreSQL; empty to disable persistence.
        instance_id: Unique identifier for this monitor instance.
        logging_type: Type of logging configuration to use (dev, prod, or custom).
        logging_config_file: Path to custom logging configuration file (if logging_type is 'custom').
        db_pool_size: Maximum number of connections in the database connection pool.
        fetch_timeout_ms: Timeout of a single header fetch in milliseconds.
        fetch_mode: 'direct' to request sites directly, 'proxy' to go through a status server.
        proxy_endpoint: Status-server endpoint used in proxy fetch mode.
        proxy_host: Host the embedded status-server proxy listens on.
        proxy_port: Port of the embedded status-server proxy; 0 disables it.
        urls: URLs to monitor in addition to the persisted ones.
        interval: Serialized interval ('smart' or milliseconds) for the configured URLs.
        snapshot_interval: Seconds between two saves of the monitoring state.
    """

    dsn: str
    instance_id: str
    logging_type: str
    logging_config_file: str
    db_pool_size: int
    fetch_timeout_ms: int
    fetch_mode: str
    proxy_endpoint: str
    proxy_host: str
    proxy_port: int
    urls: Tuple[str, ...]
    interval: str
    snapshot_interval: int
