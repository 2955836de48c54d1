"""
Unit tests for the PostgresStateStore class.

The tests follow the Arrange-Act-Assert (AAA) pattern and mock the asyncpg pool.
"""

import json
from typing import Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from cache_monitor.domain import IntervalMode, MonitoredSite
from cache_monitor.persistence.postgres_store import (
    DELETE_MISSING_QUERY,
    UPSERT_SITE_QUERY,
    PostgresStateStore,
)
from cache_monitor.stats.aggregator import empty_stats


@pytest_asyncio.fixture
async def mock_pool() -> Tuple[MagicMock, AsyncMock]:
    """
    Creates a mock asyncpg pool with a single connection.

    Returns:
        Tuple[MagicMock, AsyncMock]: The pool and its connection.
    """
    pool = MagicMock()
    connection = AsyncMock()
    connection.transaction = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = connection
    return pool, connection


@pytest.mark.asyncio
async def test_load_should_decode_rows_and_skip_unreadable_ones(
    mock_pool: Tuple[MagicMock, AsyncMock],
) -> None:
    """
    Tests that JSON text and decoded records are both restored and broken rows skipped.
    """
    # Arrange
    pool, connection = mock_pool
    connection.fetch.return_value = [
        {"id": "s1", "record": json.dumps({"id": "s1", "url": "https://one.example.com"})},
        {"id": "s2", "record": {"id": "s2", "url": "https://two.example.com", "interval": 5000}},
        {"id": "s3", "record": {"url": "https://broken.example.com"}},
    ]
    store = PostgresStateStore(pool)

    # Act
    sites, stats = await store.load()

    # Assert
    assert [site.id for site in sites] == ["s1", "s2"]
    assert sites[1].interval == IntervalMode.fixed(5000)
    assert set(stats) == {"s1", "s2"}


@pytest.mark.asyncio
async def test_save_should_upsert_sites_and_delete_missing_ones(
    mock_pool: Tuple[MagicMock, AsyncMock],
) -> None:
    """
    Tests that saving upserts every site in one batch and deletes the others.
    """
    # Arrange
    pool, connection = mock_pool
    site = MonitoredSite(id="s1", url="https://example.com", interval=IntervalMode.smart())
    store = PostgresStateStore(pool)

    # Act
    await store.save([site], {"s1": empty_stats("s1")})

    # Assert
    connection.transaction.assert_called_once()
    query, rows = connection.executemany.await_args.args
    assert query == UPSERT_SITE_QUERY
    assert rows[0][0] == "s1"
    assert json.loads(rows[0][1])["url"] == "https://example.com"
    connection.execute.assert_awaited_once_with(DELETE_MISSING_QUERY, ["s1"])


@pytest.mark.asyncio
async def test_save_should_delete_everything_when_no_site_remains(
    mock_pool: Tuple[MagicMock, AsyncMock],
) -> None:
    """
    Tests that saving an empty state clears the table without an empty batch insert.
    """
    # Arrange
    pool, connection = mock_pool
    store = PostgresStateStore(pool)

    # Act
    await store.save([], {})

    # Assert
    connection.executemany.assert_not_awaited()
    connection.execute.assert_awaited_once_with(DELETE_MISSING_QUERY, [])
