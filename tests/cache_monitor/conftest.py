"""
Shared fixtures for the cache monitor tests.
"""

import asyncio
from typing import Callable, Dict, List, Optional

import pytest

from cache_monitor.config.monitoring_context import MonitoringContext
from cache_monitor.contracts import HeaderFetcher
from cache_monitor.domain import HeaderResponse

CLOUDFLARE_HIT_HEADERS: Dict[str, str] = {
    "cf-cache-status": "HIT",
    "cf-ray": "8c1d2e3f4a5b6c7d-MXP",
    "cache-control": "public, max-age=3600",
    "age": "120",
    "x-request-id": "not-relevant",
}


class FakeHeaderFetcher(HeaderFetcher):
    """
    In-memory HeaderFetcher.

    Every call is recorded. When 'gate' is set, fetches block until the gate
    is opened; when 'error' is set, fetches raise it instead of answering.
    """

    def __init__(self) -> None:
        self.headers: Dict[str, str] = dict(CLOUDFLARE_HIT_HEADERS)
        self.response_time_ms: int = 12
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[str] = []
        self.completed: int = 0

    def hold(self) -> None:
        self.gate = asyncio.Event()

    def release(self) -> None:
        if self.gate is not None:
            self.gate.set()

    async def fetch(self, url: str, timeout_ms: int) -> HeaderResponse:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        self.completed += 1
        if self.error is not None:
            raise self.error
        return HeaderResponse(headers=dict(self.headers), response_time_ms=self.response_time_ms)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Polls the predicate until it holds, failing the test after 'timeout' seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def fake_fetcher() -> FakeHeaderFetcher:
    """
    Creates a fetcher answering with Cloudflare HIT headers.

    Returns:
        FakeHeaderFetcher: The fake fetcher.
    """
    return FakeHeaderFetcher()


@pytest.fixture
def until() -> Callable:
    """
    Exposes wait_until() to the tests.

    Returns:
        Callable: The polling helper.
    """
    return wait_until


@pytest.fixture
def monitoring_context() -> MonitoringContext:
    """
    Creates a MonitoringContext with test values; use _replace() to vary it.

    Returns:
        MonitoringContext: The context.
    """
    return MonitoringContext(
        dsn="postgresql://localhost/test",
        instance_id="test-instance",
        logging_type="dev",
        logging_config_file="",
        db_pool_size=10,
        fetch_timeout_ms=10_000,
        fetch_mode="direct",
        proxy_endpoint="http://localhost:8080/api/check",
        proxy_host="localhost",
        proxy_port=0,
        urls=(),
        interval="smart",
        snapshot_interval=60,
    )
