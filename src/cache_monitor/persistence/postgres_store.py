"""
PostgreSQL-backed store for the monitoring state.

Each monitored site is stored as one row of the 'monitored_sites' table, with
the serialized site and its nested statistics history in a JSONB column.
"""

import json
import logging
from typing import Dict, Iterable, List, Mapping, Tuple

from asyncpg import Pool

from cache_monitor.domain import MonitoredSite, MonitoringStats
from cache_monitor.persistence.serialization import site_state_from_record, site_state_to_record

# Module logger
logger = logging.getLogger(__name__)

SELECT_SITES_QUERY = "SELECT id, record FROM monitored_sites ORDER BY created_at, id"

UPSERT_SITE_QUERY = """
                    INSERT INTO monitored_sites (id, record, created_at, updated_at)
                    VALUES ($1, $2::jsonb, NOW(), NOW())
                    ON CONFLICT (id) DO UPDATE
                        SET record     = EXCLUDED.record,
                            updated_at = NOW();
                    """

DELETE_MISSING_QUERY = "DELETE FROM monitored_sites WHERE NOT (id = ANY($1::text[]))"


class PostgresStateStore:
    """
    Loads and saves the sites and their statistics through an asyncpg pool.
    """

    def __init__(self, pool: Pool) -> None:
        """
        Args:
            pool: A connection pool to the PostgreSQL database.
        """
        self._pool: Pool = pool

    async def load(self) -> Tuple[List[MonitoredSite], Dict[str, MonitoringStats]]:
        """
        Loads every persisted site and its statistics.

        Rows that cannot be decoded are logged and skipped.

        Returns:
            Tuple[List[MonitoredSite], Dict[str, MonitoringStats]]: The restored state.
        """
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(SELECT_SITES_QUERY)

        sites: List[MonitoredSite] = []
        stats: Dict[str, MonitoringStats] = {}
        for row in rows:
            try:
                record = row["record"]
                if isinstance(record, str):
                    record = json.loads(record)
                site, site_stats = site_state_from_record(record)
                sites.append(site)
                stats[site.id] = site_stats
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Skipping unreadable site row {row['id']}: {e}")

        logger.info(f"Loaded {len(sites)} sites from the database.")
        return sites, stats

    async def save(
        self, sites: Iterable[MonitoredSite], stats: Mapping[str, MonitoringStats]
    ) -> None:
        """
        Saves the given state, replacing whatever was stored before.

        Sites no longer present are deleted in the same transaction.
        """
        rows = [
            (site.id, json.dumps(site_state_to_record(site, stats.get(site.id)))) for site in sites
        ]

        async with self._pool.acquire() as conn:
            async with conn.transaction():
                if rows:
                    await conn.executemany(UPSERT_SITE_QUERY, rows)
                await conn.execute(DELETE_MISSING_QUERY, [site_id for site_id, _ in rows])

        logger.debug(f"Saved {len(rows)} sites to the database.")
