"""
Constants for the cache monitoring system.

This module defines default values for all configurable parameters
of the monitoring system. These constants are used as fallback values
when neither command-line arguments nor environment variables are provided.
"""

# Database configuration defaults (an empty DSN disables persistence)
DEFAULT_DSN = ""
DEFAULT_DB_POOL_SIZE = 5

# Instance configuration defaults
DEFAULT_INSTANCE_ID_PREFIX = "cache-monitor-"

# Fetch configuration defaults
DEFAULT_FETCH_TIMEOUT_MS = 10_000
DEFAULT_FETCH_MODE = "direct"
FETCH_MODES = ("direct", "proxy")
DEFAULT_PROXY_ENDPOINT = "http://localhost:8080/api/check"

# Status-server proxy defaults (port 0 disables the server)
DEFAULT_PROXY_HOST = "localhost"
DEFAULT_PROXY_PORT = 0

# Monitoring defaults
DEFAULT_INTERVAL = "smart"
DEFAULT_URLS = ""
DEFAULT_SNAPSHOT_INTERVAL = 60

# Logging configuration defaults
DEFAULT_LOGGING_TYPE = "prod"
DEFAULT_LOGGING_CONFIG_FILE = ""
