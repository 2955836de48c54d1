"""
Cache expiration estimation.

Derives the absolute instant at which a cached response expires, preferring
the max-age directive of Cache-Control over the Expires header.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Mapping, Optional

# Module logger
logger = logging.getLogger(__name__)

_MAX_AGE_PATTERN = re.compile(r"max-age=(\d+)")


def _parse_http_date(value: str) -> Optional[datetime]:
    """
    Parses an HTTP date, falling back to ISO 8601.

    Naive values are interpreted as UTC. Returns None when the value cannot be parsed.
    """
    parsed: Optional[datetime] = None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def estimate_expiration(
    headers: Mapping[str, str], now: Optional[datetime] = None
) -> Optional[datetime]:
    """
    Estimates when the cached response described by the headers expires.

    Order of preference:
    1. max-age=<seconds> in Cache-Control, added to 'now'
    2. The Expires header parsed as a date-time
    3. None

    This function never raises.

    Args:
        headers: Response headers keyed by lower-cased name.
        now: The reference instant, defaults to the current UTC time.

    Returns:
        Optional[datetime]: The timezone-aware expiration instant, or None if unknown.
    """
    try:
        reference = now or datetime.now(timezone.utc)

        cache_control = headers.get("cache-control")
        if cache_control:
            match = _MAX_AGE_PATTERN.search(cache_control)
            if match:
                return reference + timedelta(seconds=int(match.group(1)))

        expires = headers.get("expires")
        if expires:
            return _parse_http_date(expires)
    except Exception as e:
        logger.debug(f"Could not estimate cache expiration: {e}")

    return None
