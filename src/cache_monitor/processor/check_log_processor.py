import asyncio
import json
import logging
from typing import List

from asyncpg import Pool, exceptions

from cache_monitor.contracts import ResultProcessor
from cache_monitor.domain import CacheCheckResult, MonitoredSite

# Module logger
logger = logging.getLogger(__name__)


class CheckLogPersistenceProcessor(ResultProcessor):
    """
    Persists every recorded check to the append-only 'cache_check_log' table in batches.

    The processor buffers results in memory and writes them with a single
    executemany() when the buffer is full or when flush() is called. Database
    errors are logged; the affected batch is lost but monitoring continues.
    """

    def __init__(self, pool: Pool, max_buffer_size: int = 50) -> None:
        """
        Initializes the processor.

        Args:
            pool: The asyncpg connection pool.
            max_buffer_size: The maximum number of results to buffer in memory
                before a flush is automatically triggered.
        """
        self._pool: Pool = pool
        self._max_buffer_size: int = max_buffer_size

        # The buffer stores tuples ready for insertion.
        self._buffer: List[tuple] = []
        self._lock = asyncio.Lock()
        self._insert_sql = """
            INSERT INTO cache_check_log (
                checked_at, site_id, site_url, platform, verdict,
                response_time_ms, is_error, error_message, headers
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9::jsonb);
        """

    def _transform_result(self, site: MonitoredSite, result: CacheCheckResult) -> tuple:
        """
        Transforms a result into a tuple matching the 'cache_check_log' table schema.
        """
        return (
            result.timestamp,
            result.site_id,
            site.url,
            result.platform.value,
            result.verdict.value,
            result.response_time_ms,
            result.is_error,
            result.error_message,
            json.dumps(result.headers),
        )

    async def process(self, site: MonitoredSite, result: CacheCheckResult) -> None:
        """
        Transforms and adds a result to the internal buffer. If the buffer
        reaches the maximum size, it triggers a flush to the database.
        """
        record_to_insert = self._transform_result(site, result)

        async with self._lock:
            self._buffer.append(record_to_insert)
            should_flush = len(self._buffer) >= self._max_buffer_size

        if should_flush:
            logger.info(f"Check log buffer limit of {self._max_buffer_size} reached. Flushing.")
            await self.flush()

    async def flush(self) -> None:
        """
        Persists all currently buffered checks to the database in a single batch.
        This method is safe to call even if the buffer is empty.
        """
        async with self._lock:
            if not self._buffer:
                return

            records_to_insert = list(self._buffer)
            self._buffer.clear()

        logger.info(f"Flushing {len(records_to_insert)} checks to the database.")

        try:
            async with self._pool.acquire(timeout=10.0) as conn:
                async with conn.transaction():
                    await conn.executemany(self._insert_sql, records_to_insert)

            logger.debug(f"Successfully flushed {len(records_to_insert)} checks.")
        except asyncio.TimeoutError:
            logger.error(f"Timeout during DB flush. {len(records_to_insert)} checks may be lost.")
        except exceptions.PostgresError as e:
            logger.error(
                f"Database error during batch flush of checks: {e}. "
                f"{len(records_to_insert)} checks may be lost."
            )
        except Exception as e:
            logger.error(
                f"An unexpected error occurred during check log flush: {e}. "
                f"{len(records_to_insert)} checks may be lost."
            )
