"""
HTTP header fetcher implementation using the aiohttp library.

This module provides an implementation of the HeaderFetcher interface that
issues HEAD requests directly to the monitored URL. It handles timing and
converts every network failure into a TransportError.
"""

import asyncio
import logging
import time

import aiohttp

from cache_monitor.contracts import HeaderFetcher
from cache_monitor.domain import HeaderResponse
from cache_monitor.errors import TransportError

# Module logger
logger = logging.getLogger(__name__)


def elapsed_ms(start_time: float) -> int:
    """Milliseconds elapsed since a time.perf_counter() reading, rounded."""
    return round((time.perf_counter() - start_time) * 1000)


class AiohttpHeaderFetcher(HeaderFetcher):
    """
    A concrete implementation of HeaderFetcher using the aiohttp library.

    It uses a shared aiohttp ClientSession for all requests and follows redirects,
    so the headers reported are those of the final response.
    """

    def __init__(self, session: aiohttp.ClientSession, raise_for_status: bool = False) -> None:
        """
        Initializes the fetcher with a shared aiohttp ClientSession.

        Args:
            session: An active aiohttp.ClientSession to be used for requests.
            raise_for_status: Whether non-2xx responses count as transport errors.
        """
        self._session: aiohttp.ClientSession = session
        self._raise_for_status: bool = raise_for_status

    async def fetch(self, url: str, timeout_ms: int) -> HeaderResponse:
        """
        Performs a HEAD request to the URL and returns its headers.

        Args:
            url: The URL to request.
            timeout_ms: The total request timeout, in milliseconds.

        Returns:
            HeaderResponse: The lower-cased response headers and the response time.

        Raises:
            TransportError: If the request fails or times out.
        """
        logger.debug(f"Fetching headers for: {url}")
        start_time: float = time.perf_counter()

        try:
            async with self._session.head(
                url,
                allow_redirects=True,
                timeout=aiohttp.ClientTimeout(total=timeout_ms / 1000),
            ) as response:
                if self._raise_for_status:
                    response.raise_for_status()
                headers = {name.lower(): value for name, value in response.headers.items()}

        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Request timed out after {timeout_ms} ms", elapsed_ms(start_time)
            ) from e
        except aiohttp.ClientError as e:
            logger.warning(f"Error fetching {url}: {e}")
            raise TransportError(str(e) or type(e).__name__, elapsed_ms(start_time)) from e

        response_time_ms = elapsed_ms(start_time)
        logger.debug(f"Fetched headers for {url} in {response_time_ms} ms")
        return HeaderResponse(headers=headers, response_time_ms=response_time_ms)
