"""
Start-up and background helpers used by the application entry point.
"""

import asyncio
import logging
from typing import Iterable, Union

from cache_monitor.domain import IntervalMode
from cache_monitor.engine import MonitoringEngine
from cache_monitor.errors import InvalidSiteError
from cache_monitor.persistence.postgres_store import PostgresStateStore
from cache_monitor.validation import normalize_url

# Module logger
logger = logging.getLogger(__name__)


def add_configured_sites(
    engine: MonitoringEngine, urls: Iterable[str], interval: Union[IntervalMode, str, int]
) -> int:
    """
    Adds the configured URLs that are not monitored yet.

    Invalid URLs are logged and skipped.

    Args:
        engine: The monitoring engine, typically after restore().
        urls: The configured URLs, with or without a scheme.
        interval: The interval given to every added site.

    Returns:
        int: The number of sites added.
    """
    known_urls = {site.url for site in engine.sites}
    added = 0
    for url in urls:
        normalized = normalize_url(url)
        if normalized in known_urls:
            logger.debug(f"{normalized} is already monitored")
            continue
        try:
            engine.add_site(url, interval=interval)
        except InvalidSiteError as e:
            logger.error(f"Skipping configured URL {url!r}: {e}")
            continue
        known_urls.add(normalized)
        added += 1
    return added


async def save_periodically(
    engine: MonitoringEngine, store: PostgresStateStore, interval_seconds: float
) -> None:
    """
    Saves the engine state every interval_seconds until cancelled.

    A failed save is logged and retried at the next tick.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await store.save(*engine.snapshot())
        except Exception as e:
            logger.error(f"Could not save the monitoring state: {e}")
