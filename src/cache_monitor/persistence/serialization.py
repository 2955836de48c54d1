"""
Serialization of the monitoring state.

The persisted form is one JSON record per site with its statistics history
nested inside. Timestamps are written as ISO 8601 strings and restored as
timezone-aware datetime values; intervals are written as "smart" or as an
integer number of milliseconds.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from cache_monitor.domain import (
    CacheCheckResult,
    CacheVerdict,
    IntervalMode,
    MonitoredSite,
    MonitoringStats,
    Platform,
    Record,
)
from cache_monitor.stats.aggregator import recompute

STATE_VERSION = 1


def _dump_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _load_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def site_to_record(site: MonitoredSite) -> Record:
    return {
        "id": site.id,
        "url": site.url,
        "interval": site.interval.serialize(),
        "isActive": site.is_active,
        "lastChecked": _dump_datetime(site.last_checked),
        "nextCheck": _dump_datetime(site.next_check),
        "platform": site.platform.value if site.platform is not None else None,
        "cacheExpiration": _dump_datetime(site.cache_expiration),
    }


def site_from_record(record: Mapping[str, Any]) -> MonitoredSite:
    """
    Restores a site from its persisted record.

    Raises:
        KeyError: If the record lacks 'id' or 'url'.
        ValueError: If a field has an invalid value.
    """
    platform = record.get("platform")
    return MonitoredSite(
        id=str(record["id"]),
        url=record["url"],
        interval=IntervalMode.parse(record.get("interval", "smart")),
        is_active=bool(record.get("isActive", True)),
        last_checked=_load_datetime(record.get("lastChecked")),
        next_check=_load_datetime(record.get("nextCheck")),
        platform=Platform(platform) if platform else None,
        cache_expiration=_load_datetime(record.get("cacheExpiration")),
    )


def result_to_record(result: CacheCheckResult) -> Record:
    return {
        "siteId": result.site_id,
        "timestamp": _dump_datetime(result.timestamp),
        "responseTime": result.response_time_ms,
        "headers": dict(result.headers),
        "type": result.platform.value,
        "status": result.verdict.value,
        "isError": result.is_error,
        "errorMessage": result.error_message,
        "cacheExpiration": _dump_datetime(result.cache_expiration),
    }


def result_from_record(record: Mapping[str, Any]) -> CacheCheckResult:
    is_error = bool(record.get("isError", False))
    return CacheCheckResult(
        site_id=str(record["siteId"]),
        timestamp=_load_datetime(record["timestamp"]),
        response_time_ms=max(0, int(record.get("responseTime") or 0)),
        headers=dict(record.get("headers") or {}),
        platform=Platform(record.get("type") or Platform.UNKNOWN.value),
        verdict=CacheVerdict(record.get("status") or CacheVerdict.UNKNOWN.value),
        is_error=is_error,
        error_message=(record.get("errorMessage") or "Unknown error") if is_error else None,
        cache_expiration=_load_datetime(record.get("cacheExpiration")),
    )


def stats_to_record(stats: MonitoringStats) -> Record:
    return {
        "siteId": stats.site_id,
        "hitRate": stats.hit_rate,
        "missRate": stats.miss_rate,
        "avgResponseTime": stats.avg_response_time,
        "history": [result_to_record(result) for result in stats.history],
    }


def stats_from_record(site_id: str, record: Mapping[str, Any]) -> MonitoringStats:
    """
    Restores statistics from their persisted record.

    Rates are recomputed from the restored history rather than trusted.
    """
    history = [result_from_record(entry) for entry in record.get("history") or []]
    return recompute(site_id, history)


def site_state_to_record(site: MonitoredSite, stats: Optional[MonitoringStats]) -> Record:
    """Serializes a site with its statistics nested under 'stats'."""
    record = site_to_record(site)
    record["stats"] = stats_to_record(stats) if stats is not None else None
    return record


def site_state_from_record(record: Mapping[str, Any]) -> Tuple[MonitoredSite, MonitoringStats]:
    site = site_from_record(record)
    return site, stats_from_record(site.id, record.get("stats") or {})


def dump_state(sites: Iterable[MonitoredSite], stats: Mapping[str, MonitoringStats]) -> str:
    """
    Serializes the sites and their statistics into a JSON document.

    Args:
        sites: The monitored sites.
        stats: The statistics keyed by site id.

    Returns:
        str: The JSON document.
    """
    records: List[Record] = [site_state_to_record(site, stats.get(site.id)) for site in sites]
    return json.dumps({"version": STATE_VERSION, "sites": records})


def load_state(text: str) -> Tuple[List[MonitoredSite], Dict[str, MonitoringStats]]:
    """
    Restores the sites and their statistics from a JSON document.

    Args:
        text: A document produced by dump_state(), or a bare list of site records.

    Returns:
        Tuple[List[MonitoredSite], Dict[str, MonitoringStats]]: The restored state.

    Raises:
        ValueError: If the document is not valid JSON or has an invalid structure.
    """
    document = json.loads(text)
    records = document.get("sites", []) if isinstance(document, dict) else document
    if not isinstance(records, list):
        raise ValueError("Invalid state document: 'sites' must be a list")

    sites: List[MonitoredSite] = []
    stats: Dict[str, MonitoringStats] = {}
    for record in records:
        site, site_stats = site_state_from_record(record)
        sites.append(site)
        stats[site.id] = site_stats
    return sites, stats
