"""
Unit tests for the serialization of the monitoring state.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from cache_monitor.domain import (
    CacheCheckResult,
    CacheVerdict,
    IntervalMode,
    MonitoredSite,
    Platform,
)
from cache_monitor.persistence.serialization import (
    dump_state,
    load_state,
    result_from_record,
    site_from_record,
    site_to_record,
)
from cache_monitor.stats.aggregator import recompute

CHECKED_AT = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def site() -> MonitoredSite:
    """
    Creates a checked site with a fixed interval.

    Returns:
        MonitoredSite: The site.
    """
    return MonitoredSite(
        id="s1",
        url="https://example.com",
        interval=IntervalMode.fixed(45_000),
        is_active=False,
        last_checked=CHECKED_AT,
        next_check=CHECKED_AT + timedelta(seconds=45),
        platform=Platform.NGINX,
        cache_expiration=CHECKED_AT + timedelta(minutes=10),
    )


@pytest.fixture
def results() -> list:
    """
    Creates a hit and an error result, most recent first.

    Returns:
        list: The results.
    """
    return [
        CacheCheckResult(
            site_id="s1",
            timestamp=CHECKED_AT,
            response_time_ms=0,
            headers={},
            is_error=True,
            error_message="Connection refused",
        ),
        CacheCheckResult(
            site_id="s1",
            timestamp=CHECKED_AT - timedelta(seconds=45),
            response_time_ms=120,
            headers={"x-fastcgi-cache": "HIT", "server": "nginx"},
            platform=Platform.NGINX,
            verdict=CacheVerdict.HIT,
            cache_expiration=CHECKED_AT + timedelta(minutes=10),
        ),
    ]


def test_site_to_record_should_use_persisted_field_names(site: MonitoredSite) -> None:
    """
    Tests the persisted field names and value formats of a site.
    """
    # Act
    record = site_to_record(site)

    # Assert
    assert record == {
        "id": "s1",
        "url": "https://example.com",
        "interval": 45_000,
        "isActive": False,
        "lastChecked": "2026-10-19T12:00:00+00:00",
        "nextCheck": "2026-10-19T12:00:45+00:00",
        "platform": "nginx",
        "cacheExpiration": "2026-10-19T12:10:00+00:00",
    }


def test_site_from_record_should_apply_defaults() -> None:
    """
    Tests that a minimal record restores an active, smart, never checked site.
    """
    # Act
    site = site_from_record({"id": "s2", "url": "https://example.org"})

    # Assert
    assert site.interval == IntervalMode.smart()
    assert site.is_active is True
    assert site.last_checked is None
    assert site.next_check is None
    assert site.platform is None


def test_site_from_record_should_read_utc_designator_and_naive_timestamps() -> None:
    """
    Tests that 'Z' timestamps and naive timestamps are both restored as UTC.
    """
    # Act
    site = site_from_record(
        {
            "id": "s3",
            "url": "https://example.net",
            "lastChecked": "2026-10-19T12:00:00Z",
            "nextCheck": "2026-10-19T12:00:30",
        }
    )

    # Assert
    assert site.last_checked == CHECKED_AT
    assert site.next_check == CHECKED_AT + timedelta(seconds=30)
    assert site.next_check.tzinfo is not None


def test_result_from_record_should_default_error_message() -> None:
    """
    Tests that an error result always carries a message.
    """
    # Act
    result = result_from_record(
        {"siteId": "s1", "timestamp": "2026-10-19T12:00:00+00:00", "isError": True}
    )

    # Assert
    assert result.is_error is True
    assert result.error_message == "Unknown error"
    assert result.platform == Platform.UNKNOWN
    assert result.verdict == CacheVerdict.UNKNOWN


def test_dump_and_load_state_should_restore_sites_and_statistics(
    site: MonitoredSite, results: list
) -> None:
    """
    Tests that the saved state restores the same sites and statistics.
    """
    # Arrange
    stats = {"s1": recompute("s1", results)}

    # Act
    sites, restored = load_state(dump_state([site], stats))

    # Assert
    assert sites == [site]
    assert restored == stats
    assert restored["s1"].hit_rate == 50
    assert restored["s1"].last_result.error_message == "Connection refused"


def test_load_state_should_recompute_stored_rates(site: MonitoredSite, results: list) -> None:
    """
    Tests that stored rates are ignored in favour of the history.
    """
    # Arrange
    document = json.loads(dump_state([site], {"s1": recompute("s1", results)}))
    document["sites"][0]["stats"]["hitRate"] = 99.0

    # Act
    _, stats = load_state(json.dumps(document))

    # Assert
    assert stats["s1"].hit_rate == 50


def test_load_state_should_accept_bare_list_of_sites() -> None:
    """
    Tests that a bare list of site records is accepted and missing stats start empty.
    """
    # Act
    sites, stats = load_state(json.dumps([{"id": "s1", "url": "https://example.com"}]))

    # Assert
    assert [site.id for site in sites] == ["s1"]
    assert stats["s1"].history == ()


@pytest.mark.parametrize("text", ['{"sites": {}}', "not json", '[{"url": "https://x.com"}]'])
def test_load_state_should_reject_invalid_documents(text: str) -> None:
    """
    Tests that invalid documents raise instead of producing partial state.
    """
    # Act & Assert
    with pytest.raises((ValueError, KeyError)):
        load_state(text)
