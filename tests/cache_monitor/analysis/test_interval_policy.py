"""
Unit tests for the smart interval policy.
"""

from datetime import datetime, timedelta, timezone

import pytest

from cache_monitor.analysis.interval_policy import (
    DEFAULT_SMART_INTERVAL_MS,
    MAX_SMART_INTERVAL_MS,
    MIN_SMART_INTERVAL_MS,
    delay_for,
    next_delay,
)
from cache_monitor.domain import IntervalMode, MonitoredSite

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "remaining_ms, expected",
    [
        (30_000, 15_000),
        (59_000, 29_500),
        (8_000, MIN_SMART_INTERVAL_MS),
        (60_000, 15_000),
        (600_000, 150_000),
        (3_600_000, MAX_SMART_INTERVAL_MS),
    ],
)
def test_next_delay_should_follow_remaining_time(remaining_ms: int, expected: int) -> None:
    """
    Tests the half/quarter rules and their clamping.
    """
    # Arrange
    expiration = NOW + timedelta(milliseconds=remaining_ms)

    # Act & Assert
    assert next_delay(expiration, now=NOW) == expected


def test_next_delay_should_use_default_without_expiration() -> None:
    """
    Tests that an unknown expiration falls back to the default delay.
    """
    # Act & Assert
    assert next_delay(None, now=NOW) == DEFAULT_SMART_INTERVAL_MS


@pytest.mark.parametrize("offset_ms", [0, -1, -120_000])
def test_next_delay_should_use_default_when_already_expired(offset_ms: int) -> None:
    """
    Tests that an expiration in the past falls back to the default delay.
    """
    # Act & Assert
    assert next_delay(NOW + timedelta(milliseconds=offset_ms), now=NOW) == DEFAULT_SMART_INTERVAL_MS


def test_next_delay_should_ignore_last_response_time() -> None:
    """
    Tests that the response time does not influence the delay.
    """
    # Arrange
    expiration = NOW + timedelta(seconds=40)

    # Act & Assert
    assert next_delay(expiration, 9_000, now=NOW) == next_delay(expiration, 0, now=NOW)


def test_delay_for_should_use_fixed_interval_verbatim() -> None:
    """
    Tests that fixed intervals are neither clamped nor influenced by the expiration.
    """
    # Arrange
    site = MonitoredSite(
        id="s1",
        url="https://example.com",
        interval=IntervalMode.fixed(1_000),
        cache_expiration=NOW + timedelta(hours=1),
    )

    # Act & Assert
    assert delay_for(site, now=NOW) == 1_000


def test_delay_for_should_apply_smart_policy() -> None:
    """
    Tests that smart sites are delayed according to their cache expiration.
    """
    # Arrange
    site = MonitoredSite(
        id="s1",
        url="https://example.com",
        interval=IntervalMode.smart(),
        cache_expiration=NOW + timedelta(seconds=20),
    )

    # Act & Assert
    assert delay_for(site, now=NOW) == 10_000
