"""
Database configuration module for the cache monitoring system.

This module provides functionality to create and validate a connection pool
to the PostgreSQL database using the asyncpg library. It ensures that the
database is accessible before returning the connection pool.
"""

import logging
from typing import Optional

import asyncpg

from cache_monitor.config.monitoring_context import MonitoringContext

# Module logger
logger = logging.getLogger(__name__)


async def initiate_db_pool(context: MonitoringContext) -> Optional[asyncpg.pool.Pool]:
    """
    Create and validate a connection pool to the PostgreSQL database.

    Args:
        context: Configuration context containing database connection parameters.

    Returns:
        Optional[asyncpg.pool.Pool]: A validated connection pool, or None when no DSN
            is configured and persistence is disabled.

    Raises:
        Exception: If the database connection cannot be established.
    """
    if not context.dsn:
        logger.info("No DSN configured, persistence is disabled.")
        return None

    pool: asyncpg.pool.Pool = await asyncpg.create_pool(
        dsn=context.dsn, max_size=context.db_pool_size
    )

    try:
        # Validate the connection by executing a simple query
        async with pool.acquire() as connection:
            await connection.fetchval("SELECT 1")
        logger.info("Database connection pool successfully created.")
        return pool
    except Exception as e:
        logger.error(f"Error: Could not connect to the database. {e}")
        await pool.close()
        raise
