"""
SentinelAI Threat Aggregator

Fetches every feed concurrently, merges and ranks the results, and owns
the current threat selection.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime

import aiohttp

from .feed_fetcher import FeedAdapter, default_adapters
from .models import SEVERITY_RANK, Threat

logger = logging.getLogger(__name__)

FETCH_ERROR_MESSAGE = "Failed to fetch threat data. Please try again."

SelectionListener = Callable[[Threat | None], None]


def rank_threats(threats: list[Threat]) -> list[Threat]:
    """Most severe first; equal severity ordered newest first.

    Threats whose effective time can't be read sort as the oldest.
    """

    def sort_key(threat: Threat) -> tuple[int, float]:
        timestamp = threat.effective_timestamp
        if timestamp is None:
            return (SEVERITY_RANK[threat.severity], float("inf"))
        return (SEVERITY_RANK[threat.severity], -timestamp)

    return sorted(threats, key=sort_key)


class ThreatAggregator:
    """Merged, ranked view over all feed adapters"""

    def __init__(self, adapters: list[FeedAdapter] | None = None):
        self.adapters = adapters if adapters is not None else default_adapters()
        self.threats: list[Threat] = []
        self.error: str | None = None
        self.loading = False
        self.last_updated: datetime | None = None
        self._selected: Threat | None = None
        self._listeners: list[SelectionListener] = []

    # =========================================================================
    # Selection
    # =========================================================================

    @property
    def selected_threat(self) -> Threat | None:
        return self._selected

    def add_selection_listener(self, listener: SelectionListener) -> None:
        self._listeners.append(listener)

    def select_threat(self, threat: Threat | None) -> None:
        if threat is self._selected:
            return
        self._selected = threat
        for listener in self._listeners:
            listener(threat)

    def clear_selection(self) -> None:
        self.select_threat(None)

    # =========================================================================
    # Aggregation
    # =========================================================================

    async def _gather(self, region_code: str) -> tuple[list[Threat], bool]:
        """Run every adapter; returns (merged threats, whether any adapter blew up)"""
        async with aiohttp.ClientSession() as session:
            results = await asyncio.gather(
                *(adapter.fetch(session, region_code) for adapter in self.adapters),
                return_exceptions=True,
            )

        merged: list[Threat] = []
        failed = False
        for adapter, result in zip(self.adapters, results):
            if isinstance(result, BaseException):
                logger.error(f"Unexpected error from {adapter.source.value} adapter: {result!r}")
                failed = True
                continue
            merged.extend(result)
        return merged, failed

    async def refresh(self, region_code: str) -> tuple[list[Threat], str | None]:
        """Run one aggregation cycle for a region.

        Returns the ranked threats and a user-facing error message (or None).
        Partial data is kept even when an error is reported; if the cycle
        fails outright the previous threat list is left in place.
        """
        self.loading = True
        self.error = None

        try:
            merged, failed = await self._gather(region_code)
            self.threats = rank_threats(merged)
            self.last_updated = datetime.now(UTC)
            if failed:
                self.error = FETCH_ERROR_MESSAGE
        except Exception:
            logger.exception(f"Threat aggregation failed for {region_code}")
            self.error = FETCH_ERROR_MESSAGE
        finally:
            self.loading = False

        threats = self.threats
        if threats and self._selected is None:
            self.select_threat(threats[0])

        logger.info(
            f"Aggregated {len(threats)} threats for {region_code}"
            + (f" (error: {self.error})" if self.error else "")
        )
        return threats, self.error
