"""
URL normalization and validation for site registration.
"""

import re
from urllib.parse import urlsplit

ALLOWED_SCHEMES = ("http", "https")

_SCHEME_PREFIX = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


def normalize_url(value: str) -> str:
    """
    Strips the value and prefixes 'https://' when it has no scheme at all.

    An explicit scheme is kept as typed, so 'ftp://host' stays invalid instead
    of becoming a https URL.

    Args:
        value: A URL as typed by a user, e.g. 'example.com'.

    Returns:
        str: The URL including a scheme.
    """
    url = value.strip()
    if not _SCHEME_PREFIX.match(url):
        url = f"https://{url}"
    return url


def is_valid_url(url: str) -> bool:
    """
    Basic URL syntax validation: an http(s) scheme, a host and no whitespace.

    Args:
        url: The URL to validate.

    Returns:
        bool: True if the URL can be monitored.
    """
    if not isinstance(url, str) or not url or any(char.isspace() for char in url):
        return False
    try:
        parts = urlsplit(url)
        # Accessing port validates it
        parts.port
    except ValueError:
        return False
    return parts.scheme.lower() in ALLOWED_SCHEMES and bool(parts.hostname)
