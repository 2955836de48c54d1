"""
Result processor that reports every recorded check through the logging system.
"""

import logging

from cache_monitor.contracts import ResultProcessor
from cache_monitor.domain import CacheCheckResult, MonitoredSite

# Module logger
logger = logging.getLogger(__name__)


class LoggingProcessor(ResultProcessor):
    """
    Logs each verdict at INFO and each failed check at WARNING.
    """

    async def process(self, site: MonitoredSite, result: CacheCheckResult) -> None:
        if result.is_error:
            logger.warning(
                f"Check of {site.url} failed after {result.response_time_ms} ms: "
                f"{result.error_message}"
            )
            return

        next_check = site.next_check.isoformat() if site.next_check else "-"
        logger.info(
            f"{site.url}: {result.verdict.value} ({result.platform.value}) "
            f"in {result.response_time_ms} ms, next check at {next_check}"
        )

    async def flush(self) -> None:
        # Nothing is buffered.
        pass
