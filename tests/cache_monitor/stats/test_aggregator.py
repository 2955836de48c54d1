"""
Unit tests for the bounded statistics aggregator.
"""

from datetime import datetime, timedelta, timezone

import pytest

from cache_monitor.domain import CacheCheckResult, CacheVerdict, Platform
from cache_monitor.stats.aggregator import MAX_HISTORY_SIZE, empty_stats, recompute, record

START = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def make_result(index: int, verdict: CacheVerdict, response_time_ms: int = 100) -> CacheCheckResult:
    return CacheCheckResult(
        site_id="s1",
        timestamp=START + timedelta(seconds=index),
        response_time_ms=response_time_ms,
        headers={},
        platform=Platform.CLOUDFLARE,
        verdict=verdict,
    )


def test_empty_stats_should_have_zero_rates() -> None:
    """
    Tests the statistics of a site without history.
    """
    # Act
    stats = empty_stats("s1")

    # Assert
    assert stats.hit_rate == 0
    assert stats.miss_rate == 0
    assert stats.avg_response_time == 0
    assert stats.last_result is None
    assert stats.history == ()


def test_record_should_prepend_result_and_recompute_rates() -> None:
    """
    Tests that recording keeps the history most recent first and updates all rates.
    """
    # Arrange
    stats = empty_stats("s1")
    results = [
        make_result(0, CacheVerdict.HIT, 100),
        make_result(1, CacheVerdict.MISS, 300),
        make_result(2, CacheVerdict.HIT, 200),
        make_result(3, CacheVerdict.HIT, 0),
    ]

    # Act
    for result in results:
        stats = record(stats, result)

    # Assert
    assert stats.history == tuple(reversed(results))
    assert stats.last_result == results[-1]
    assert stats.hit_rate == 75
    assert stats.miss_rate == 25
    # The zero response time is ignored.
    assert stats.avg_response_time == 200


def test_record_should_count_errors_and_unknown_verdicts_as_misses() -> None:
    """
    Tests that the miss rate is the complement of the hit rate over the whole history.
    """
    # Arrange
    error = make_result(1, CacheVerdict.UNKNOWN, 0)._replace(is_error=True, error_message="boom")
    stats = record(record(empty_stats("s1"), make_result(0, CacheVerdict.HIT)), error)

    # Assert
    assert stats.hit_rate == 50
    assert stats.miss_rate == 50
    assert stats.avg_response_time == 100


def test_record_should_bound_history_to_most_recent_results() -> None:
    """
    Tests that after 150 results only the 100 most recent remain and rates use only those.
    """
    # Arrange
    stats = empty_stats("s1")
    results = [
        make_result(i, CacheVerdict.MISS if i < 50 else CacheVerdict.HIT) for i in range(150)
    ]

    # Act
    for result in results:
        stats = record(stats, result)

    # Assert
    assert len(stats.history) == MAX_HISTORY_SIZE
    assert stats.history[0] == results[-1]
    assert stats.history[-1] == results[50]
    assert stats.hit_rate == 100
    assert stats.miss_rate == 0


@pytest.mark.parametrize("size", [1, 37, MAX_HISTORY_SIZE])
def test_recompute_should_keep_rates_complementary(size: int) -> None:
    """
    Tests that hit and miss rates always add up to 100 for a non-empty history.
    """
    # Arrange
    history = [
        make_result(i, CacheVerdict.HIT if i % 3 == 0 else CacheVerdict.EXPIRED)
        for i in range(size)
    ]

    # Act
    stats = recompute("s1", history)

    # Assert
    assert 0 <= stats.hit_rate <= 100
    assert stats.hit_rate + stats.miss_rate == pytest.approx(100)


def test_record_should_forget_hits_older_than_history() -> None:
    """
    Tests that 50 hits followed by 100 misses leave only misses in the history.
    """
    # Arrange
    stats = empty_stats("s1")

    # Act
    for i in range(150):
        stats = record(stats, make_result(i, CacheVerdict.HIT if i < 50 else CacheVerdict.MISS))

    # Assert
    assert len(stats.history) == MAX_HISTORY_SIZE
    assert stats.hit_rate < 50
    assert stats.hit_rate == 0
