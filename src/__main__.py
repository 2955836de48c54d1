"""
Main entry point for the cache monitoring application.

This module initializes and runs the cache monitoring system. It sets up logging,
creates the database and HTTP connections, restores the persisted state, starts
the monitoring engine and handles graceful shutdown when the application is terminated.
"""

import asyncio
import logging
from typing import List, Optional

import aiohttp
import asyncpg
from aiohttp import web

from cache_monitor.config import MonitoringContext, get_context
from cache_monitor.config.db_config import initiate_db_pool
from cache_monitor.config.http_config import get_header_fetcher, get_http_session
from cache_monitor.config.logging_config import configure_logging
from cache_monitor.contracts import ResultProcessor
from cache_monitor.engine import MonitoringEngine
from cache_monitor.fetcher.aiohttp_fetcher import AiohttpHeaderFetcher
from cache_monitor.lifecycle import add_configured_sites, save_periodically
from cache_monitor.persistence.postgres_store import PostgresStateStore
from cache_monitor.processor.check_log_processor import CheckLogPersistenceProcessor
from cache_monitor.processor.delegating_processor import DelegatingResultProcessor
from cache_monitor.processor.logging_processor import LoggingProcessor
from cache_monitor.proxy.server import create_app, start_proxy_server


async def main(context: MonitoringContext) -> None:
    """
    Set up and run the cache monitoring application.

    This function initializes all components of the monitoring system:
    1. Creates an HTTP session and the header fetcher
    2. Establishes the database connection pool when a DSN is configured
    3. Restores the persisted sites and starts the monitoring engine
    4. Optionally serves the status-server proxy
    5. Saves the state periodically and once more on shutdown

    Args:
        context: Configuration context containing all application settings.
    """
    logger: logging.Logger = logging.getLogger(__name__)
    logger.info("Starting application...")

    http_session: aiohttp.ClientSession = get_http_session(context)
    logger.info("configured: http_session")

    db_pool: Optional[asyncpg.pool.Pool] = None
    engine: Optional[MonitoringEngine] = None
    store: Optional[PostgresStateStore] = None
    proxy_runner: Optional[web.AppRunner] = None
    snapshot_task: Optional[asyncio.Task] = None

    try:
        db_pool = await initiate_db_pool(context)

        processors: List[ResultProcessor] = [LoggingProcessor()]
        if db_pool is not None:
            store = PostgresStateStore(db_pool)
            processors.append(CheckLogPersistenceProcessor(pool=db_pool))

        engine = MonitoringEngine(
            fetcher=get_header_fetcher(context, http_session),
            processor=DelegatingResultProcessor(processors),
            fetch_timeout_ms=context.fetch_timeout_ms,
        )

        if store is not None:
            engine.restore(*await store.load())
        add_configured_sites(engine, context.urls, context.interval)
        engine.start()

        if context.proxy_port:
            # The proxy always fetches directly, whatever the engine's fetch mode.
            app = create_app(AiohttpHeaderFetcher(session=http_session), context.fetch_timeout_ms)
            proxy_runner = await start_proxy_server(app, context.proxy_host, context.proxy_port)

        if store is not None:
            snapshot_task = asyncio.create_task(
                save_periodically(engine, store, context.snapshot_interval)
            )

        logger.info("Engine started. Monitoring until interrupted...")
        await asyncio.Event().wait()

    except asyncio.CancelledError:
        logger.info("Application shutdown requested.")
    finally:
        # Ensure all resources are properly closed during shutdown
        logger.info("Shutting down resources...")
        if snapshot_task:
            snapshot_task.cancel()
            await asyncio.gather(snapshot_task, return_exceptions=True)
        if proxy_runner:
            await proxy_runner.cleanup()
        if engine:
            await engine.close()
            if store:
                await store.save(*engine.snapshot())
        await http_session.close()
        if db_pool:
            await db_pool.close()
        logger.info("Shutdown complete.")


if __name__ == "__main__":
    try:
        # Parse command-line arguments and environment variables
        cache_monitor_context: MonitoringContext = get_context()

        # Configure logging based on the context
        configure_logging(cache_monitor_context)

        # Run the main application
        asyncio.run(main(cache_monitor_context))
    except KeyboardInterrupt:
        logging.info("Shutdown initiated by user (Ctrl+C).")
