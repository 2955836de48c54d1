"""
Core interfaces for the cache monitoring system.

This module defines the abstract base classes that form the foundation of the
monitoring engine's architecture. These interfaces establish a clear contract
for implementations and enable a modular, pluggable design.
"""

import abc

from .domain import CacheCheckResult, HeaderResponse, MonitoredSite


class HeaderFetcher(abc.ABC):
    """
    Abstract interface for a component that fetches the response headers of a URL.

    Its responsibility is to encapsulate the network I/O for a single check.
    The engine does not prescribe the transport: a direct HTTP request and a
    server-side proxy both satisfy this contract.
    """

    @abc.abstractmethod
    async def fetch(self, url: str, timeout_ms: int) -> HeaderResponse:
        """
        Fetches the response headers of the given URL.

        Args:
            url: The URL to request, including its scheme.
            timeout_ms: The maximum time the request may take, in milliseconds.

        Returns:
            HeaderResponse: The lower-cased response headers and the response time.

        Raises:
            TransportError: If the request fails or times out. The error carries
                a human-readable message.
        """
        pass


class ResultProcessor(abc.ABC):
    """
    Abstract interface for a component that observes recorded check results.

    This enables a pipeline pattern where multiple processors can act on the
    outcome of a check to perform tasks like persisting data or logging,
    without being part of the engine's scheduling logic.
    """

    @abc.abstractmethod
    async def process(self, site: MonitoredSite, result: CacheCheckResult) -> None:
        """
        Processes or buffers a single recorded check result.

        Args:
            site: The site as updated by the check.
            result: The check result that was recorded.

        Returns:
            None
        """
        pass

    @abc.abstractmethod
    async def flush(self) -> None:
        """
        Forces the persistence of any buffered results.

        This method is intended to be called periodically or during a graceful
        shutdown. For processors that do not buffer data, this method can be a no-op.

        Returns:
            None
        """
        pass
