"""
HTTP client configuration module for the cache monitoring system.

This module creates the shared aiohttp client session and the header fetcher
matching the configured fetch mode.
"""

import logging

import aiohttp

from cache_monitor.config.monitoring_context import MonitoringContext
from cache_monitor.contracts import HeaderFetcher
from cache_monitor.fetcher.aiohttp_fetcher import AiohttpHeaderFetcher
from cache_monitor.fetcher.proxy_fetcher import ProxyHeaderFetcher

# Module logger
logger = logging.getLogger(__name__)


def get_http_session(context: MonitoringContext) -> aiohttp.ClientSession:
    """
    Create an HTTP client session.

    Using a shared session is recommended for performance reasons.

    Args:
        context: Configuration context containing HTTP client settings.

    Returns:
        aiohttp.ClientSession: A session shared by every fetch.
    """
    return aiohttp.ClientSession()


def get_header_fetcher(
    context: MonitoringContext, session: aiohttp.ClientSession
) -> HeaderFetcher:
    """
    Create the header fetcher for the configured fetch mode.

    Args:
        context: Configuration context.
        session: The shared HTTP client session.

    Returns:
        HeaderFetcher: A direct fetcher, or one that goes through the status-server proxy.
    """
    if context.fetch_mode == "proxy":
        logger.info(f"Fetching headers through proxy {context.proxy_endpoint}")
        return ProxyHeaderFetcher(session=session, endpoint=context.proxy_endpoint)
    logger.info("Fetching headers directly")
    return AiohttpHeaderFetcher(session=session)
