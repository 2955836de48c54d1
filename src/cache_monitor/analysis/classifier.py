"""
Cache header classification.

This module turns the raw response headers of a single check into a structured
cache verdict: which caching layer served the response and whether it was a
hit, miss, expired or revalidated response. Detection is evaluated top to
bottom and the first matching platform wins.
"""

import logging
from typing import Dict, Mapping, Optional

from cache_monitor.domain import CacheVerdict, Classification, Platform

# Module logger
logger = logging.getLogger(__name__)

RELEVANT_HEADER_NAMES = frozenset(
    [
        # Common cache headers
        "cache-control",
        "etag",
        "age",
        "expires",
        "last-modified",
        "date",
        # CDN specific
        "cf-cache-status",
        "cf-ray",
        "x-cache",
        "x-cache-hits",
        "x-fastcgi-cache",
        "x-varnish",
        "x-served-by",
        # Server identification
        "server",
        "x-powered-by",
        "via",
        "link",
        "x-pingback",
        # Security
        "strict-transport-security",
        "content-security-policy",
        # Content
        "content-type",
        "content-encoding",
        "content-length",
        "transfer-encoding",
        "vary",
    ]
)

_CLOUDFLARE_VERDICTS = {
    "hit": CacheVerdict.HIT,
    "miss": CacheVerdict.MISS,
    "expired": CacheVerdict.EXPIRED,
    "revalidated": CacheVerdict.REVALIDATED,
}


def relevant_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """
    Extracts the cache-related subset of a header mapping.

    Header names are lower-cased so that lookups are case-insensitive.

    Args:
        headers: All response headers.

    Returns:
        Dict[str, str]: Only the headers relevant to cache analysis.
    """
    return {
        name.lower(): value
        for name, value in headers.items()
        if name.lower() in RELEVANT_HEADER_NAMES
    }


def _lower(headers: Mapping[str, str], name: str) -> str:
    return (headers.get(name) or "").lower()


def _x_cache_verdict(headers: Mapping[str, str]) -> Optional[CacheVerdict]:
    x_cache = _lower(headers, "x-cache")
    if "hit" in x_cache:
        return CacheVerdict.HIT
    if "miss" in x_cache:
        return CacheVerdict.MISS
    return None


def _cache_control_verdict(headers: Mapping[str, str]) -> Optional[CacheVerdict]:
    """Applies the generic max-age/age heuristic, None when cache-control is not cacheable."""
    cache_control = _lower(headers, "cache-control")
    if "max-age" in cache_control and "no-cache" not in cache_control:
        return CacheVerdict.HIT if "age" in headers else CacheVerdict.MISS
    return None


def _is_cloudflare(headers: Mapping[str, str]) -> bool:
    return (
        "cf-ray" in headers
        or bool(headers.get("cf-cache-status"))
        or "cloudflare" in _lower(headers, "server")
    )


def _is_wordpress(headers: Mapping[str, str]) -> bool:
    return "wordpress" in _lower(headers, "x-powered-by") or "wp-json" in (
        headers.get("link") or ""
    )


def _is_nginx(headers: Mapping[str, str]) -> bool:
    return "nginx" in _lower(headers, "server") or "nginx" in _lower(headers, "x-powered-by")


def _is_varnish(headers: Mapping[str, str]) -> bool:
    return "x-varnish" in headers or "varnish" in _lower(headers, "via")


def detect_platform(headers: Mapping[str, str]) -> Platform:
    """
    Detects the caching layer that served a response.

    Uses the same precedence as classify(): Cloudflare, WordPress, Nginx, Varnish.

    Args:
        headers: Response headers keyed by lower-cased name.

    Returns:
        Platform: The detected platform, UNKNOWN when no marker matches.
    """
    if _is_cloudflare(headers):
        return Platform.CLOUDFLARE
    if _is_wordpress(headers):
        return Platform.WORDPRESS
    if _is_nginx(headers):
        return Platform.NGINX
    if _is_varnish(headers):
        return Platform.VARNISH
    return Platform.UNKNOWN


def _verdict_for(platform: Platform, headers: Mapping[str, str]) -> CacheVerdict:
    if platform is Platform.CLOUDFLARE:
        return _CLOUDFLARE_VERDICTS.get(_lower(headers, "cf-cache-status"), CacheVerdict.UNKNOWN)

    if platform is Platform.WORDPRESS:
        return (
            _x_cache_verdict(headers)
            or _cache_control_verdict(headers)
            or CacheVerdict.MISS
        )

    if platform is Platform.NGINX:
        verdict = _x_cache_verdict(headers)
        if verdict is not None:
            return verdict
        fastcgi_cache = _lower(headers, "x-fastcgi-cache")
        if fastcgi_cache == "hit":
            return CacheVerdict.HIT
        if fastcgi_cache == "miss":
            return CacheVerdict.MISS
        return CacheVerdict.UNKNOWN

    if platform is Platform.VARNISH:
        return _x_cache_verdict(headers) or CacheVerdict.UNKNOWN

    return _cache_control_verdict(headers) or CacheVerdict.UNKNOWN


def classify(headers: Mapping[str, str]) -> Classification:
    """
    Classifies the cache behaviour of a response from its headers.

    This function never raises. Malformed input is reported as an UNKNOWN
    verdict with the error flag set and a diagnostic message.

    Args:
        headers: Response headers keyed by lower-cased name.

    Returns:
        Classification: The detected platform and cache verdict.
    """
    try:
        platform = detect_platform(headers)
        return Classification(platform=platform, verdict=_verdict_for(platform, headers))
    except Exception as e:
        logger.warning(f"Could not classify cache headers: {e}")
        return Classification(
            platform=Platform.UNKNOWN,
            verdict=CacheVerdict.UNKNOWN,
            is_error=True,
            error_message=str(e) or "Unknown error analyzing headers",
        )
