"""
Per-site check scheduling.

Each monitored site owns one SiteScheduler, which holds at most one armed
timer and at most one in-flight check. A check fetches the site's headers,
classifies them and hands the result to the engine, which answers with the
delay before the next check (or None when the site must not be re-armed).
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Set

from cache_monitor.analysis.classifier import classify, relevant_headers
from cache_monitor.analysis.expiration import estimate_expiration
from cache_monitor.config.constants import DEFAULT_FETCH_TIMEOUT_MS
from cache_monitor.contracts import HeaderFetcher
from cache_monitor.domain import CacheCheckResult, CacheVerdict, Platform, SiteState
from cache_monitor.errors import TransportError

# Module logger
logger = logging.getLogger(__name__)

ResultCallback = Callable[[CacheCheckResult], Awaitable[Optional[int]]]


def transport_error_result(site_id: str, message: str, response_time_ms: int) -> CacheCheckResult:
    """Builds the result recorded for a check whose fetch failed."""
    return CacheCheckResult(
        site_id=site_id,
        timestamp=datetime.now(timezone.utc),
        response_time_ms=max(0, response_time_ms),
        headers={},
        platform=Platform.UNKNOWN,
        verdict=CacheVerdict.UNKNOWN,
        is_error=True,
        error_message=message,
    )


def _is_current(task: asyncio.Task) -> bool:
    try:
        return asyncio.current_task() is task
    except RuntimeError:
        return False


class SiteScheduler:
    """
    Owns the timer lifecycle and the checks of a single site.

    States:
    - IDLE: no timer armed and no check in flight
    - ARMED: a timer is pending
    - CHECKING: a header fetch is in flight

    Checks of one site are strictly sequential: a new check is never started
    while the previous one is still in flight. Cancellation is synchronous
    and idempotent.
    """

    def __init__(
        self,
        site_id: str,
        url: str,
        fetcher: HeaderFetcher,
        on_result: ResultCallback,
        fetch_timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS,
    ) -> None:
        """
        Initializes a new SiteScheduler instance.

        Args:
            site_id: The site this scheduler belongs to.
            url: The URL to check.
            fetcher: Component that fetches the response headers.
            on_result: Coroutine that records a result and returns the next
                delay in milliseconds, or None to leave the site idle.
            fetch_timeout_ms: Upper bound for a single fetch, in milliseconds.
        """
        self._site_id: str = site_id
        self._url: str = url
        self._fetcher: HeaderFetcher = fetcher
        self._on_result: ResultCallback = on_result
        self._fetch_timeout_ms: int = fetch_timeout_ms
        self._timer: Optional[asyncio.TimerHandle] = None
        self._check_task: Optional[asyncio.Task] = None
        self._abandoned_tasks: Set[asyncio.Task] = set()
        # Bumped by stop(); results of checks started under an older generation are dropped.
        self._generation: int = 0

    @property
    def site_id(self) -> str:
        return self._site_id

    @property
    def is_armed(self) -> bool:
        return self._timer is not None

    @property
    def is_checking(self) -> bool:
        return self._check_task is not None and not self._check_task.done()

    @property
    def state(self) -> SiteState:
        if self.is_checking:
            return SiteState.CHECKING
        if self.is_armed:
            return SiteState.ARMED
        return SiteState.IDLE

    @property
    def deadline(self) -> Optional[float]:
        """The event loop time at which the armed timer fires, None when idle."""
        return self._timer.when() if self._timer is not None else None

    def arm(self, delay_ms: int) -> None:
        """
        Arms the timer for the next check, replacing any pending timer.

        A non-positive delay fires on the next loop iteration.

        Args:
            delay_ms: Delay before the next check, in milliseconds.
        """
        self.cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(max(0, delay_ms) / 1000, self._fire)
        logger.debug(f"Site {self._site_id} armed for {max(0, delay_ms)} ms")

    def cancel_timer(self) -> None:
        """Cancels the armed timer, if any. Safe to call repeatedly."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def check_now(self) -> asyncio.Task:
        """
        Starts a check immediately, independent of the armed timer.

        If a check is already in flight it is returned instead of starting a new one.

        Returns:
            asyncio.Task: The task running the check.
        """
        if self._check_task is not None and not self._check_task.done():
            return self._check_task

        self._check_task = asyncio.get_running_loop().create_task(
            self._run_check(self._generation), name=f"check-{self._site_id}"
        )
        return self._check_task

    def stop(self) -> None:
        """
        Cancels the timer and any in-flight check.

        Once this method returns, no result of this site is delivered until a
        new check is started.
        """
        self._generation += 1
        self.cancel_timer()
        task = self._check_task
        # A check stopping its own site (from the result callback) ends on its own.
        if task is not None and not task.done() and not _is_current(task):
            task.cancel()
            self._abandoned_tasks.add(task)
            task.add_done_callback(self._abandoned_tasks.discard)
        self._check_task = None

    def pending_tasks(self) -> List[asyncio.Task]:
        """Returns the check tasks, running or being cancelled, that have not finished yet."""
        tasks = [task for task in self._abandoned_tasks if not task.done()]
        if self.is_checking:
            tasks.append(self._check_task)
        return tasks

    def _fire(self) -> None:
        self._timer = None
        if self.is_checking:
            # The running check re-arms the site when it completes.
            logger.debug(f"Timer for site {self._site_id} fired during a check, skipping")
            return
        self.check_now()

    async def _run_check(self, generation: int) -> None:
        result = await self._perform_check()

        if generation != self._generation:
            logger.debug(f"Discarding late result for stopped site {self._site_id}")
            return

        delay_ms = await self._on_result(result)

        if generation != self._generation or delay_ms is None:
            return
        self.arm(delay_ms)

    async def _perform_check(self) -> CacheCheckResult:
        """
        Fetches and classifies the site's headers.

        Transport failures and timeouts are converted into error results, so this
        method only raises on cancellation.
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time()

        try:
            response = await asyncio.wait_for(
                self._fetcher.fetch(self._url, self._fetch_timeout_ms),
                timeout=self._fetch_timeout_ms / 1000,
            )
        except TransportError as e:
            logger.info(f"Check of {self._url} failed: {e.message}")
            return transport_error_result(self._site_id, e.message, e.response_time_ms)
        except asyncio.TimeoutError:
            logger.info(f"Check of {self._url} timed out after {self._fetch_timeout_ms} ms")
            return transport_error_result(
                self._site_id,
                f"Request timed out after {self._fetch_timeout_ms} ms",
                round((loop.time() - start_time) * 1000),
            )
        except Exception as e:
            logger.exception(f"Unexpected error while checking {self._url}")
            return transport_error_result(
                self._site_id,
                str(e) or type(e).__name__,
                round((loop.time() - start_time) * 1000),
            )

        headers = relevant_headers(response.headers)
        classification = classify(headers)
        # The expiration is measured from the check instant itself, so max-age=0
        # reads as already expired.
        checked_at = datetime.now(timezone.utc)
        return CacheCheckResult(
            site_id=self._site_id,
            timestamp=checked_at,
            response_time_ms=max(0, response.response_time_ms),
            headers=headers,
            platform=classification.platform,
            verdict=classification.verdict,
            is_error=classification.is_error,
            error_message=classification.error_message,
            cache_expiration=estimate_expiration(headers, now=checked_at),
        )
