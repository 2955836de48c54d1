"""
Monitoring engine facade.

This module provides the MonitoringEngine class, which owns the collection of
monitored sites, their rolling statistics, one SiteScheduler per site and the
global run/pause state. It exposes the configuration surface used by callers:
add, remove, activate, change interval, refresh and pause/resume.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union
from uuid import uuid4

from cache_monitor.analysis.interval_policy import delay_for
from cache_monitor.config.constants import DEFAULT_FETCH_TIMEOUT_MS
from cache_monitor.contracts import HeaderFetcher, ResultProcessor
from cache_monitor.domain import (
    CacheCheckResult,
    IntervalMode,
    MonitoredSite,
    MonitoringStats,
    SiteState,
)
from cache_monitor.errors import InvalidSiteError, UnknownSiteError
from cache_monitor.scheduler.site_scheduler import SiteScheduler
from cache_monitor.stats.aggregator import empty_stats, record, recompute
from cache_monitor.validation import is_valid_url, normalize_url


def _ms_until(instant: datetime) -> int:
    return round((instant - datetime.now(timezone.utc)).total_seconds() * 1000)


class MonitoringEngine:
    """
    Coordinates the monitoring of all registered sites.

    The site, stats and scheduler mappings are never mutated in place: every
    change replaces the mapping, so readers always see a consistent snapshot
    and a late result can never resurrect a removed site.
    """

    def __init__(
        self,
        fetcher: HeaderFetcher,
        processor: Optional[ResultProcessor] = None,
        fetch_timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS,
        running: bool = True,
    ) -> None:
        """
        Initializes a new MonitoringEngine instance.

        Args:
            fetcher: Component that fetches response headers.
            processor: Optional component notified of every recorded result.
            fetch_timeout_ms: Upper bound for a single fetch, in milliseconds.
            running: Initial run state of the engine.
        """
        self._fetcher: HeaderFetcher = fetcher
        self._processor: Optional[ResultProcessor] = processor
        self._fetch_timeout_ms: int = fetch_timeout_ms
        self._is_running: bool = running
        self._sites: Dict[str, MonitoredSite] = {}
        self._stats: Dict[str, MonitoringStats] = {}
        self._schedulers: Dict[str, SiteScheduler] = {}
        self._logger: logging.Logger = logging.getLogger(__name__)

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def sites(self) -> List[MonitoredSite]:
        return list(self._sites.values())

    @property
    def stats(self) -> Dict[str, MonitoringStats]:
        return dict(self._stats)

    def get_site(self, site_id: str) -> MonitoredSite:
        return self._require(site_id)

    def get_stats(self, site_id: str) -> MonitoringStats:
        self._require(site_id)
        return self._stats.get(site_id) or empty_stats(site_id)

    def site_state(self, site_id: str) -> SiteState:
        self._require(site_id)
        return self._schedulers[site_id].state

    def snapshot(self) -> Tuple[List[MonitoredSite], Dict[str, MonitoringStats]]:
        """Returns the sites and their statistics, as handed to persistence."""
        return list(self._sites.values()), dict(self._stats)

    def restore(
        self, sites: Iterable[MonitoredSite], stats: Mapping[str, MonitoringStats]
    ) -> None:
        """
        Loads persisted sites and statistics.

        Restored sites are registered without being scheduled; call start() afterwards.
        Statistics are recomputed from the restored history.

        Args:
            sites: The persisted sites.
            stats: The persisted statistics keyed by site id.
        """
        for site in sites:
            if site.id in self._sites:
                self._logger.warning(f"Site {site.id} is already registered, skipping restore")
                continue
            site_stats = stats.get(site.id)
            history = site_stats.history if site_stats else ()
            self._register(site, recompute(site.id, history))
        self._logger.info(f"Restored {len(self._sites)} sites")

    def add_site(
        self,
        url: str,
        interval: Union[IntervalMode, str, int] = IntervalMode.smart(),
        is_active: bool = True,
    ) -> str:
        """
        Registers a new site and, if it is active and the engine is running,
        checks it immediately.

        Args:
            url: The URL to monitor. A missing scheme defaults to https.
            interval: Smart or fixed interval, or its serialized form.
            is_active: Whether monitoring starts right away.

        Returns:
            str: The id assigned to the new site.

        Raises:
            InvalidSiteError: If the URL or the interval is invalid.
        """
        normalized = normalize_url(url)
        if not is_valid_url(normalized):
            raise InvalidSiteError(f"Invalid URL: {url}")
        try:
            mode = IntervalMode.parse(interval)
        except ValueError as e:
            raise InvalidSiteError(str(e)) from e

        site = MonitoredSite(id=uuid4().hex, url=normalized, interval=mode, is_active=is_active)
        self._register(site, empty_stats(site.id))
        self._logger.info(f"Added site {site.id} ({site.url}) with interval {mode.serialize()}")

        self._schedule(site)
        return site.id

    def remove_site(self, site_id: str) -> None:
        """
        Removes a site, cancelling its timer and any in-flight check synchronously.

        Raises:
            UnknownSiteError: If the site is not registered.
        """
        self._require(site_id)
        self._schedulers[site_id].stop()

        self._schedulers = {key: value for key, value in self._schedulers.items() if key != site_id}
        self._sites = {key: value for key, value in self._sites.items() if key != site_id}
        self._stats = {key: value for key, value in self._stats.items() if key != site_id}
        self._logger.info(f"Removed site {site_id}")

    def set_active(self, site_id: str, is_active: bool) -> None:
        """
        Activates or deactivates a site.

        Deactivation cancels the timer and any in-flight check before returning.
        Activation schedules the site as resume() would.

        Raises:
            UnknownSiteError: If the site is not registered.
        """
        site = self._require(site_id)._replace(is_active=is_active)
        self._replace_site(site)

        if is_active:
            self._schedule(site)
        else:
            self._schedulers[site_id].stop()
        self._logger.info(f"Site {site_id} {'activated' if is_active else 'deactivated'}")

    toggle_site_active = set_active

    def set_interval(self, site_id: str, interval: Union[IntervalMode, str, int]) -> None:
        """
        Changes the interval mode of a site and re-arms it under the new mode.

        The next check time is recomputed from the last check. If a check is in
        flight, the new mode takes effect when it completes.

        Raises:
            UnknownSiteError: If the site is not registered.
            InvalidSiteError: If the interval is invalid.
        """
        site = self._require(site_id)
        try:
            mode = IntervalMode.parse(interval)
        except ValueError as e:
            raise InvalidSiteError(str(e)) from e

        site = site._replace(interval=mode)
        if site.last_checked is not None:
            delay_ms = delay_for(site, now=site.last_checked)
            next_check = site.last_checked + timedelta(milliseconds=delay_ms)
            site = site._replace(next_check=next_check)
        self._replace_site(site)
        self._logger.info(f"Site {site_id} interval set to {mode.serialize()}")

        scheduler = self._schedulers[site_id]
        if not scheduler.is_checking:
            scheduler.cancel_timer()
            self._schedule(site)

    def check_site(self, site_id: str) -> asyncio.Task:
        """
        Checks a single site immediately, out of band.

        Returns:
            asyncio.Task: The task running the check.

        Raises:
            UnknownSiteError: If the site is not registered.
        """
        self._require(site_id)
        return self._schedulers[site_id].check_now()

    def refresh_all(self) -> List[asyncio.Task]:
        """
        Checks every active site immediately, independent of its armed timer.

        A pending timer is replaced when the manual check completes, so a site
        never ends up with two timers.

        Returns:
            List[asyncio.Task]: One task per active site.
        """
        tasks = [
            self._schedulers[site.id].check_now() for site in self._sites.values() if site.is_active
        ]
        self._logger.info(f"Refreshing {len(tasks)} active sites")
        return tasks

    def start(self) -> None:
        """Schedules every active site, typically after restore()."""
        self._logger.info(f"Starting monitoring engine with {len(self._sites)} sites")
        if self._is_running:
            for site in self._sites.values():
                self._schedule(site)

    def pause(self) -> None:
        """Cancels every pending timer without altering any stored data."""
        self._is_running = False
        for scheduler in self._schedulers.values():
            scheduler.cancel_timer()
        self._logger.info("Monitoring paused")

    def resume(self) -> None:
        """
        Re-arms every active site.

        Sites that were never checked, smart sites without a next check time and
        sites whose next check time already passed are checked immediately.
        """
        self._is_running = True
        for site in self._sites.values():
            self._schedule(site)
        self._logger.info("Monitoring resumed")

    def toggle_monitoring(self, state: Optional[bool] = None) -> bool:
        """
        Pauses or resumes monitoring.

        Args:
            state: The desired run state, or None to flip the current one.

        Returns:
            bool: The new run state.
        """
        running = (not self._is_running) if state is None else state
        if running:
            self.resume()
        else:
            self.pause()
        return running

    async def close(self) -> None:
        """
        Stops every scheduler, waits for cancelled checks to settle and flushes the processor.
        """
        self._logger.info("Closing monitoring engine...")
        self._is_running = False

        pending: List[asyncio.Task] = []
        for scheduler in self._schedulers.values():
            scheduler.stop()
            pending.extend(scheduler.pending_tasks())

        self._logger.info(f"Waiting for {len(pending)} checks to settle...")
        await asyncio.gather(*pending, return_exceptions=True)

        if self._processor is not None:
            self._logger.info("Flushing result processor...")
            await self._processor.flush()
        self._logger.info("Monitoring engine closed")

    def _require(self, site_id: str) -> MonitoredSite:
        site = self._sites.get(site_id)
        if site is None:
            raise UnknownSiteError(site_id)
        return site

    def _register(self, site: MonitoredSite, stats: MonitoringStats) -> None:
        scheduler = SiteScheduler(
            site_id=site.id,
            url=site.url,
            fetcher=self._fetcher,
            on_result=self._handle_result,
            fetch_timeout_ms=self._fetch_timeout_ms,
        )
        self._sites = {**self._sites, site.id: site}
        self._stats = {**self._stats, site.id: stats}
        self._schedulers = {**self._schedulers, site.id: scheduler}

    def _replace_site(self, site: MonitoredSite) -> None:
        self._sites = {**self._sites, site.id: site}

    def _schedule(self, site: MonitoredSite) -> None:
        """
        Arms or checks a site according to its stored timestamps.

        Does nothing when the engine is paused, the site is inactive, or the
        site already has a timer armed or a check in flight.
        """
        if not (self._is_running and site.is_active):
            return

        scheduler = self._schedulers[site.id]
        if scheduler.is_checking or scheduler.is_armed:
            return

        if site.last_checked is None or (site.interval.is_smart and site.next_check is None):
            scheduler.check_now()
            return

        if site.next_check is None:
            scheduler.arm(delay_for(site))
            return

        remaining_ms = _ms_until(site.next_check)
        if remaining_ms <= 0:
            # A next check time in the past means the check is overdue.
            scheduler.check_now()
        else:
            scheduler.arm(remaining_ms)

    async def _handle_result(self, result: CacheCheckResult) -> Optional[int]:
        """
        Records a completed check and returns the delay before the next one.

        Returns None when the site was removed, deactivated or the engine paused.
        """
        site = self._sites.get(result.site_id)
        if site is None:
            self._logger.debug(f"Discarding result for removed site {result.site_id}")
            return None

        site = site._replace(
            last_checked=result.timestamp,
            platform=result.platform,
            cache_expiration=result.cache_expiration,
        )
        delay_ms = delay_for(site, now=result.timestamp)
        site = site._replace(next_check=result.timestamp + timedelta(milliseconds=delay_ms))

        self._sites = {**self._sites, site.id: site}
        self._stats = {
            **self._stats,
            site.id: record(self._stats.get(site.id) or empty_stats(site.id), result),
        }

        if self._processor is not None:
            try:
                await self._processor.process(site, result)
            except Exception as e:
                self._logger.exception(f"Result processor failed for site {site.id}: {e}")

        current = self._sites.get(site.id)
        if current is None or not current.is_active or not self._is_running:
            return None
        return delay_for(current, now=result.timestamp)
