"""
SentinelAI Refresh Controller
Polling cadence and on-demand refresh for the threat aggregator
"""

import asyncio
import contextlib
import logging

from .aggregator import ThreatAggregator
from .models import Threat

logger = logging.getLogger(__name__)

REFRESH_INTERVAL_SECONDS = 5 * 60


class RefreshController:
    """
    Owns the background polling task for one region.

    Usage:
        async with RefreshController(aggregator) as controller:
            await controller.start("TX")
            ...
            await controller.refresh()
    """

    def __init__(
        self,
        aggregator: ThreatAggregator,
        interval_seconds: float = REFRESH_INTERVAL_SECONDS,
    ):
        self.aggregator = aggregator
        self.interval_seconds = interval_seconds
        self.region_code: str | None = None
        self._task: asyncio.Task | None = None
        self._cycle: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def __aenter__(self) -> "RefreshController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self, region_code: str) -> tuple[list[Threat], str | None]:
        """Activate for a region: clear selection, fetch now, then poll"""
        await self.stop()
        self.region_code = region_code
        self.aggregator.clear_selection()
        result = await self.refresh()
        self._task = asyncio.create_task(self._poll_loop())
        return result

    async def change_region(self, region_code: str) -> tuple[list[Threat], str | None]:
        return await self.start(region_code)

    async def stop(self) -> None:
        """Cancel polling and any cycle still running for the current region"""
        for task in (self._task, self._cycle):
            if task is None:
                continue
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._task = None
        self._cycle = None

    async def refresh(self) -> tuple[list[Threat], str | None]:
        """Run one aggregation cycle now; ignored while another is in flight"""
        if self.region_code is None:
            return self.aggregator.threats, self.aggregator.error
        if self._cycle is not None and not self._cycle.done():
            logger.debug(f"Refresh for {self.region_code} already in flight, skipping")
            return self.aggregator.threats, self.aggregator.error

        cycle = asyncio.create_task(self.aggregator.refresh(self.region_code))
        self._cycle = cycle
        try:
            return await cycle
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            # Superseded by stop() or a region change
            logger.debug("Refresh cycle cancelled before it finished")
            return self.aggregator.threats, self.aggregator.error
        finally:
            if self._cycle is cycle:
                self._cycle = None

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.refresh()
