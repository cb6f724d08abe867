"""Single-slot, time-expiring cache in front of the health aggregator."""

import asyncio
import logging
import time
from typing import Callable, Iterable, Optional

from .aggregator import HealthAggregator
from .status_types import AggregatedStatus, ServiceSpec

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_WINDOW = 5.0


class StatusCache:
    """
    Cache the last aggregated status for a short freshness window.

    Repeated polls inside the window reuse the stored verdict instead of
    re-probing. Concurrent callers that miss together share one refresh.
    """

    def __init__(self, aggregator: HealthAggregator, services: Iterable[ServiceSpec],
                 freshness_window: float = DEFAULT_FRESHNESS_WINDOW,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize status cache.

        Args:
            aggregator: Aggregator used to compute fresh results
            services: Monitored services (read-only)
            freshness_window: Maximum age of a cached result in seconds (default: 5.0)
            clock: Monotonic time source; must match the aggregator's clock
        """
        self.aggregator = aggregator
        self.services = tuple(services)
        self.freshness_window = freshness_window
        self._clock = clock
        self._entry: Optional[AggregatedStatus] = None
        self._refresh_lock = asyncio.Lock()

    @property
    def entry(self) -> Optional[AggregatedStatus]:
        """Last computed status, or None before the first query."""
        return self._entry

    def _is_fresh(self, entry: Optional[AggregatedStatus]) -> bool:
        return entry is not None and self._clock() - entry.computed_at < self.freshness_window

    async def get_status(self) -> bool:
        """
        Return the overall health verdict, probing only if the cache is stale.

        Freshness is measured from the entry's computed_at, which marks the
        end of its probe cycle.

        Returns:
            True if every monitored service is healthy
        """
        entry = self._entry
        if self._is_fresh(entry):
            return entry.overall

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited
            entry = self._entry
            if self._is_fresh(entry):
                return entry.overall

            status = await self.aggregator.compute_status(self.services)
            self._log_transition(entry, status)
            self._entry = status
            return status.overall

    def _log_transition(self, previous: Optional[AggregatedStatus], current: AggregatedStatus):
        if previous is not None and previous.overall == current.overall:
            logger.debug(f"Health status unchanged: ok={current.overall}")
            return

        if current.overall:
            logger.info(f"All {len(current.results)} service(s) healthy")
        else:
            logger.warning(f"Unhealthy service(s): {', '.join(current.unhealthy_services)}")
