"""
Exception hierarchy for the cache monitoring system.
"""


class CacheMonitorError(Exception):
    """Base class for all errors raised by the cache monitor."""


class TransportError(CacheMonitorError):
    """
    Raised by a header fetcher when a request fails or times out.

    Attributes:
        message: A human-readable description of the failure.
        response_time_ms: Time spent before the failure, in milliseconds.
    """

    def __init__(self, message: str, response_time_ms: int = 0) -> None:
        super().__init__(message)
        self.message: str = message
        self.response_time_ms: int = response_time_ms


class InvalidSiteError(CacheMonitorError, ValueError):
    """Raised when a site cannot be registered with the given configuration."""


class UnknownSiteError(CacheMonitorError, KeyError):
    """Raised when an operation references a site id that is not registered."""

    def __str__(self) -> str:
        return f"Unknown site: {self.args[0]}" if self.args else "Unknown site"
