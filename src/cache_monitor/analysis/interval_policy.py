"""
Adaptive ("smart") re-check interval policy.

Sites in smart mode are re-checked more often as their cache expiration
approaches, so that the transition from a cached to a fresh response is
observed shortly after it happens.
"""

from datetime import datetime, timezone
from typing import Optional

from cache_monitor.domain import MonitoredSite

MIN_SMART_INTERVAL_MS = 5_000
MAX_SMART_INTERVAL_MS = 300_000
DEFAULT_SMART_INTERVAL_MS = 30_000
SHORT_EXPIRATION_THRESHOLD_MS = 60_000
MAX_SHORT_INTERVAL_MS = 30_000


def _clamp(value: float, lower: int, upper: int) -> int:
    return int(max(lower, min(value, upper)))


def next_delay(
    expiration: Optional[datetime],
    last_response_time_ms: int = 0,
    now: Optional[datetime] = None,
) -> int:
    """
    Computes the delay before the next check of a smart-mode site.

    - No expiration known, or already expired: DEFAULT_SMART_INTERVAL_MS
    - Less than a minute to expiration: half of the remaining time, within [5s, 30s]
    - Otherwise: a quarter of the remaining time, within [5s, 5min]

    Args:
        expiration: The absolute cache expiration, if known.
        last_response_time_ms: Response time of the last check. Accepted for
            callers that track it; it does not change the delay.
        now: The reference instant, defaults to the current UTC time.

    Returns:
        int: The delay in milliseconds, always within [5000, 300000].
    """
    if expiration is None:
        return DEFAULT_SMART_INTERVAL_MS

    reference = now or datetime.now(timezone.utc)
    remaining_ms = (expiration - reference).total_seconds() * 1000

    if remaining_ms <= 0:
        return DEFAULT_SMART_INTERVAL_MS

    if remaining_ms < SHORT_EXPIRATION_THRESHOLD_MS:
        return _clamp(remaining_ms / 2, MIN_SMART_INTERVAL_MS, MAX_SHORT_INTERVAL_MS)

    return _clamp(remaining_ms / 4, MIN_SMART_INTERVAL_MS, MAX_SMART_INTERVAL_MS)


def delay_for(site: MonitoredSite, now: Optional[datetime] = None) -> int:
    """
    Returns the delay before the next check of a site according to its interval mode.

    Fixed intervals are used verbatim, without clamping.
    """
    if site.interval.is_smart:
        return next_delay(site.cache_expiration, now=now)
    return site.interval.fixed_ms
