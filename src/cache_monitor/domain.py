"""
Domain models for the cache monitoring system.

This module defines the core data structures used throughout the application,
including monitored sites, interval modes, per-check results and the rolling
statistics derived from them. These models serve as the foundation for the
monitoring engine's data flow.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Tuple, Union

SMART_INTERVAL = "smart"


class Platform(str, Enum):
    """
    The caching layer inferred to have served a response.

    Inheriting from 'str' allows enum members to behave like strings,
    making them directly serializable.
    """

    CLOUDFLARE = "cloudflare"
    WORDPRESS = "wordpress"
    NGINX = "nginx"
    VARNISH = "varnish"
    UNKNOWN = "unknown"


class CacheVerdict(str, Enum):
    """
    Classification of a single response's cache behaviour.
    """

    HIT = "hit"
    MISS = "miss"
    EXPIRED = "expired"
    REVALIDATED = "revalidated"
    UNKNOWN = "unknown"


class SiteState(str, Enum):
    """
    Scheduling state of a single site.

    IDLE means no timer is armed, ARMED means a timer is pending and CHECKING
    means a header fetch is in flight.
    """

    IDLE = "idle"
    ARMED = "armed"
    CHECKING = "checking"


class IntervalKind(str, Enum):
    SMART = "smart"
    FIXED = "fixed"


class IntervalMode(NamedTuple):
    """
    How often a site is re-checked.

    A tagged union: either SMART (the delay is derived from the discovered
    cache expiration) or FIXED with a user-chosen number of milliseconds.

    Attributes:
        kind: The interval kind.
        fixed_ms: The fixed interval in milliseconds, None for smart mode.
    """

    kind: IntervalKind
    fixed_ms: Optional[int] = None

    @classmethod
    def smart(cls) -> "IntervalMode":
        return cls(kind=IntervalKind.SMART)

    @classmethod
    def fixed(cls, milliseconds: int) -> "IntervalMode":
        """
        Builds a fixed interval.

        Raises:
            ValueError: If milliseconds is not a positive integer.
        """
        if isinstance(milliseconds, bool) or not isinstance(milliseconds, int) or milliseconds < 1:
            raise ValueError(f"Fixed interval must be a positive integer, got: {milliseconds!r}")
        return cls(kind=IntervalKind.FIXED, fixed_ms=milliseconds)

    @classmethod
    def parse(cls, value: Union[str, int, "IntervalMode"]) -> "IntervalMode":
        """
        Parses the serialized form of an interval: "smart" or a number of milliseconds.

        Args:
            value: "smart", an integer, a numeric string or an IntervalMode.

        Returns:
            IntervalMode: The parsed interval.

        Raises:
            ValueError: If the value is neither "smart" nor a positive integer.
        """
        if isinstance(value, IntervalMode):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            if text == SMART_INTERVAL:
                return cls.smart()
            if not text.isdigit():
                raise ValueError(f"Invalid interval: {value!r}. Expected 'smart' or milliseconds.")
            return cls.fixed(int(text))
        return cls.fixed(value)

    @property
    def is_smart(self) -> bool:
        return self.kind is IntervalKind.SMART

    def serialize(self) -> Union[str, int]:
        """Returns "smart" or the fixed interval in milliseconds."""
        return SMART_INTERVAL if self.is_smart else self.fixed_ms


class MonitoredSite(NamedTuple):
    """
    A single endpoint registered for monitoring.

    Instances are immutable; every change produces a new record via _replace().

    Attributes:
        id: Opaque unique identifier assigned at creation.
        url: The URL to monitor, always including a scheme.
        interval: Smart or fixed re-check interval.
        is_active: Whether the site is currently monitored.
        last_checked: When the last check completed, if ever.
        next_check: When the next scheduled check is due, if known.
        platform: The platform observed on the last check, if any.
        cache_expiration: The cache expiration observed on the last check, if any.
    """

    id: str
    url: str
    interval: IntervalMode
    is_active: bool = True
    last_checked: Optional[datetime] = None
    next_check: Optional[datetime] = None
    platform: Optional[Platform] = None
    cache_expiration: Optional[datetime] = None


class Classification(NamedTuple):
    """
    The cache verdict produced by the header classifier.

    Attributes:
        platform: The detected caching layer.
        verdict: The cache verdict for the response.
        is_error: Whether classification itself failed.
        error_message: A diagnostic message, present iff is_error.
    """

    platform: Platform = Platform.UNKNOWN
    verdict: CacheVerdict = CacheVerdict.UNKNOWN
    is_error: bool = False
    error_message: Optional[str] = None


class HeaderResponse(NamedTuple):
    """
    The outcome of a successful header fetch.

    Attributes:
        headers: Response headers keyed by lower-cased name.
        response_time_ms: How long the request took, in milliseconds.
    """

    headers: Dict[str, str]
    response_time_ms: int


class CacheCheckResult(NamedTuple):
    """
    The result of a single poll of a site. Immutable once produced.

    Attributes:
        site_id: The site that was checked.
        timestamp: When the check completed.
        response_time_ms: Response time in milliseconds (>= 0).
        headers: The cache-relevant subset of the response headers.
        platform: The detected caching layer.
        verdict: The cache verdict.
        is_error: Whether the check failed (transport or classification).
        error_message: The failure description, present iff is_error.
        cache_expiration: The estimated cache expiration, if any.
    """

    site_id: str
    timestamp: datetime
    response_time_ms: int
    headers: Dict[str, str]
    platform: Platform = Platform.UNKNOWN
    verdict: CacheVerdict = CacheVerdict.UNKNOWN
    is_error: bool = False
    error_message: Optional[str] = None
    cache_expiration: Optional[datetime] = None


class MonitoringStats(NamedTuple):
    """
    Rolling statistics for one site, derived from its bounded history.

    Attributes:
        site_id: The site these statistics belong to.
        hit_rate: Percentage of hits in the history.
        miss_rate: 100 - hit_rate, or 0 when the history is empty.
        avg_response_time: Mean response time of entries with a positive response time.
        last_result: The most recent result, None when the history is empty.
        history: Results ordered most recent first.
    """

    site_id: str
    hit_rate: float = 0.0
    miss_rate: float = 0.0
    avg_response_time: float = 0.0
    last_result: Optional[CacheCheckResult] = None
    history: Tuple[CacheCheckResult, ...] = ()


Record = Dict[str, Any]
