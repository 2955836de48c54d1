"""
Delegating result processor implementation.

This module provides a composite implementation of the ResultProcessor interface
that delegates processing to multiple child processors concurrently. It ensures
that failures in one processor don't affect the others.
"""

import asyncio
import logging
from typing import List

from cache_monitor.contracts import ResultProcessor
from cache_monitor.domain import CacheCheckResult, MonitoredSite

# Module logger
logger = logging.getLogger(__name__)


class DelegatingResultProcessor(ResultProcessor):
    """
    A concrete implementation of ResultProcessor that follows the Composite pattern.

    This class holds a list of other ResultProcessor instances and delegates the
    'process' and 'flush' calls to each of them concurrently. If one processor
    fails, the others are still executed and the failure is only logged.
    """

    def __init__(self, processors: List[ResultProcessor]) -> None:
        """
        Initializes the delegator with a list of processors to delegate to.

        Args:
            processors: A list of objects that adhere to the ResultProcessor interface.
                These will be called concurrently when processing a result.
        """
        self._processors: List[ResultProcessor] = processors

    async def _process_with_one(
        self, processor: ResultProcessor, site: MonitoredSite, result: CacheCheckResult
    ) -> None:
        """
        Runs a single processor, logging instead of propagating its failures.
        """
        try:
            await processor.process(site, result)
        except Exception as e:
            logger.exception(
                f"Processor '{type(processor).__name__}' failed for site {site.url} with error: {e}",
            )

    async def _flush_one(self, processor: ResultProcessor) -> None:
        try:
            await processor.flush()
        except Exception as e:
            logger.exception(f"Processor '{type(processor).__name__}' failed to flush: {e}")

    async def process(self, site: MonitoredSite, result: CacheCheckResult) -> None:
        """
        Processes a single result by delegating to all child processors.

        Args:
            site: The site as updated by the check.
            result: The check result to be processed by all child processors.

        Returns:
            None
        """
        if not self._processors:
            return

        tasks = [self._process_with_one(processor, site, result) for processor in self._processors]
        await asyncio.gather(*tasks)

    async def flush(self) -> None:
        """Flushes every child processor concurrently."""
        if not self._processors:
            return
        await asyncio.gather(*(self._flush_one(processor) for processor in self._processors))
