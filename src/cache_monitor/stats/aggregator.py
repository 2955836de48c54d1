"""
Bounded per-site statistics.

Each recorded check is prepended to the site's history, the history is capped
at MAX_HISTORY_SIZE entries and all derived rates are recomputed in full.
Every function here is pure: the same history always yields the same stats.
"""

from typing import Iterable

from cache_monitor.domain import CacheCheckResult, CacheVerdict, MonitoringStats

MAX_HISTORY_SIZE = 100


def empty_stats(site_id: str) -> MonitoringStats:
    return MonitoringStats(site_id=site_id)


def recompute(site_id: str, history: Iterable[CacheCheckResult]) -> MonitoringStats:
    """
    Derives statistics from a history ordered most recent first.

    The history is truncated to MAX_HISTORY_SIZE entries. The hit rate is the
    share of hits over the whole retained history; the miss rate is its
    complement. The average response time only considers entries with a
    positive response time.

    Args:
        site_id: The site the history belongs to.
        history: Check results, most recent first.

    Returns:
        MonitoringStats: The recomputed statistics.
    """
    entries = tuple(history)[:MAX_HISTORY_SIZE]
    if not entries:
        return empty_stats(site_id)

    hits = sum(1 for entry in entries if entry.verdict == CacheVerdict.HIT)
    hit_rate = hits / len(entries) * 100

    timed = [entry.response_time_ms for entry in entries if entry.response_time_ms > 0]
    avg_response_time = sum(timed) / len(timed) if timed else 0.0

    return MonitoringStats(
        site_id=site_id,
        hit_rate=hit_rate,
        miss_rate=100 - hit_rate,
        avg_response_time=avg_response_time,
        last_result=entries[0],
        history=entries,
    )


def record(stats: MonitoringStats, result: CacheCheckResult) -> MonitoringStats:
    """
    Records a new check result and returns the updated statistics.

    Args:
        stats: The current statistics of the site.
        result: The newly completed check.

    Returns:
        MonitoringStats: New statistics with the result at the head of the history.
    """
    return recompute(stats.site_id, (result,) + stats.history)
