"""
Header fetcher that goes through the status-server proxy.

The proxy performs the request server-side and answers with a JSON document,
which makes it usable where direct requests are blocked by cross-origin rules.
"""

import asyncio
import logging
import time
from typing import Any, Dict

import aiohttp

from cache_monitor.contracts import HeaderFetcher
from cache_monitor.domain import HeaderResponse
from cache_monitor.errors import TransportError
from cache_monitor.fetcher.aiohttp_fetcher import elapsed_ms

# Module logger
logger = logging.getLogger(__name__)


class ProxyHeaderFetcher(HeaderFetcher):
    """
    Fetches headers by calling 'GET <endpoint>?url=<url>' on the status-server proxy.

    The proxy answers {"headers": {...}, "responseTime": n} on success and
    {"error": "...", "responseTime": n} on transport failure.
    """

    def __init__(self, session: aiohttp.ClientSession, endpoint: str) -> None:
        """
        Args:
            session: An active aiohttp.ClientSession to be used for requests.
            endpoint: The full URL of the proxy's check endpoint.
        """
        self._session: aiohttp.ClientSession = session
        self._endpoint: str = endpoint

    async def fetch(self, url: str, timeout_ms: int) -> HeaderResponse:
        start_time: float = time.perf_counter()

        try:
            async with self._session.get(
                self._endpoint,
                params={"url": url},
                timeout=aiohttp.ClientTimeout(total=timeout_ms / 1000),
            ) as response:
                payload: Dict[str, Any] = await response.json(content_type=None)
                status = response.status

        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Request timed out after {timeout_ms} ms", elapsed_ms(start_time)
            ) from e
        except (aiohttp.ClientError, ValueError) as e:
            logger.warning(f"Error calling header proxy for {url}: {e}")
            raise TransportError(str(e) or type(e).__name__, elapsed_ms(start_time)) from e

        if not isinstance(payload, dict):
            raise TransportError("Malformed answer from header proxy", elapsed_ms(start_time))

        response_time_ms = int(payload.get("responseTime") or elapsed_ms(start_time))

        if status != 200 or "error" in payload:
            message = payload.get("error") or f"Header proxy answered with status {status}"
            raise TransportError(str(message), response_time_ms)

        headers = {
            str(name).lower(): str(value) for name, value in (payload.get("headers") or {}).items()
        }
        return HeaderResponse(headers=headers, response_time_ms=response_time_ms)
