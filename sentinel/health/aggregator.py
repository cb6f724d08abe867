"""Combine pm2 status and port reachability into one health verdict."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Iterable, Optional, Set

from .port_probe import probe_port, DEFAULT_PORT_TIMEOUT
from .status_types import AggregatedStatus, ProbeResult, ServiceSpec
from .supervisor import fetch_online_processes, DEFAULT_PM2_BIN, DEFAULT_SUPERVISOR_TIMEOUT

logger = logging.getLogger(__name__)

PortProber = Callable[[str, int, float], Awaitable[bool]]
SupervisorSource = Callable[[str, float], Awaitable[Set[str]]]


class HealthAggregator:
    """
    Run one probe cycle across all monitored services.

    The aggregator holds no state between cycles; caching is the caller's
    concern (see StatusCache).
    """

    def __init__(self, pm2_bin: str = DEFAULT_PM2_BIN,
                 port_timeout: float = DEFAULT_PORT_TIMEOUT,
                 supervisor_timeout: float = DEFAULT_SUPERVISOR_TIMEOUT,
                 port_prober: Optional[PortProber] = None,
                 supervisor_source: Optional[SupervisorSource] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize health aggregator.

        Args:
            pm2_bin: pm2 executable name or path
            port_timeout: Timeout for each TCP connect attempt in seconds
            supervisor_timeout: Timeout for the pm2 query in seconds
            port_prober: Override for the TCP probe (default: probe_port)
            supervisor_source: Override for the pm2 query (default: fetch_online_processes)
            clock: Monotonic time source used to stamp results
        """
        self.pm2_bin = pm2_bin
        self.port_timeout = port_timeout
        self.supervisor_timeout = supervisor_timeout
        self._port_prober = port_prober or probe_port
        self._supervisor_source = supervisor_source or fetch_online_processes
        self._clock = clock

    async def compute_status(self, services: Iterable[ServiceSpec]) -> AggregatedStatus:
        """
        Probe every service concurrently and fold the results.

        One pm2 query and one port probe per service are launched together
        and all are awaited before folding, so the cycle takes roughly as
        long as the slowest probe.

        computed_at is read from the clock after every probe has settled, so
        a slow cycle (up to the supervisor timeout) is cached for the full
        freshness window from when it finished, not from when it started.

        Args:
            services: Services to check

        Returns:
            AggregatedStatus for this cycle
        """
        services = tuple(services)

        outcomes = await asyncio.gather(
            self._supervisor_source(self.pm2_bin, self.supervisor_timeout),
            *[self._port_prober(s.host, s.port, self.port_timeout) for s in services],
            return_exceptions=True
        )

        online = outcomes[0]
        if isinstance(online, BaseException):
            logger.error(f"pm2 status query raised: {type(online).__name__}: {online}")
            online = set()

        results = []
        for service, reachable in zip(services, outcomes[1:]):
            if isinstance(reachable, BaseException):
                logger.error(f"Port probe for '{service.name}' raised: "
                             f"{type(reachable).__name__}: {reachable}")
                reachable = False

            result = ProbeResult(
                service=service,
                supervisor_online=service.pm2_name in online,
                port_reachable=reachable is True
            )
            if not result.healthy:
                logger.debug(f"Service '{service.name}' unhealthy: "
                             f"pm2_online={result.supervisor_online}, "
                             f"port_reachable={result.port_reachable} ({service.host}:{service.port})")
            results.append(result)

        # all() of an empty list is True: no services means healthy
        overall = all(r.healthy for r in results)

        return AggregatedStatus(
            overall=overall,
            computed_at=self._clock(),
            results=tuple(results)
        )
