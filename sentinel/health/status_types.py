"""Data types for service health aggregation."""

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class ServiceSpec:
    """A monitored service: pm2 process name plus the TCP endpoint it serves."""
    name: str
    pm2_name: str
    host: str
    port: int


@dataclass(frozen=True)
class ProbeResult:
    """Signals observed for one service within a single aggregation cycle."""
    service: ServiceSpec
    supervisor_online: bool
    port_reachable: bool

    @property
    def healthy(self) -> bool:
        """Per-service verdict: both signals must be true."""
        return self.supervisor_online and self.port_reachable


@dataclass(frozen=True)
class AggregatedStatus:
    """
    Result of one aggregation cycle.

    overall is the AND over every per-service verdict. An empty service
    list aggregates to True (vacuous success).
    """
    overall: bool
    computed_at: float
    results: Tuple[ProbeResult, ...] = field(default_factory=tuple)

    @property
    def unhealthy_services(self) -> Tuple[str, ...]:
        """Logical names of services whose verdict is False."""
        return tuple(r.service.name for r in self.results if not r.healthy)
