"""Pytest fixtures and configuration for testing the sentinel."""

import asyncio
import sys
from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from sentinel.health.aggregator import HealthAggregator
from sentinel.health.status_types import ServiceSpec


# ============================================================================
# Fakes
# ============================================================================

class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeProbes:
    """Scripted pm2 and port outcomes with call counters."""

    def __init__(self, online: Iterable[str] = (), reachable: Optional[Dict[int, bool]] = None,
                 delay: float = 0.0):
        self.online = set(online)
        self.reachable = dict(reachable or {})
        self.delay = delay
        self.supervisor_calls = 0
        self.port_calls = []

    async def supervisor_source(self, pm2_bin: str, timeout: float):
        self.supervisor_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return set(self.online)

    async def port_prober(self, host: str, port: int, timeout: float):
        self.port_calls.append((host, port))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.reachable.get(port, False)


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def backend_service():
    """Backend service on port 3000."""
    return ServiceSpec(name='backend', pm2_name='backend', host='127.0.0.1', port=3000)


@pytest.fixture
def frontend_service():
    """Frontend service registered in pm2 as 'front' on port 3001."""
    return ServiceSpec(name='frontend', pm2_name='front', host='127.0.0.1', port=3001)


@pytest.fixture
def services(backend_service, frontend_service):
    """The default two-service deployment."""
    return (backend_service, frontend_service)


# ============================================================================
# Aggregation Fixtures
# ============================================================================

@pytest.fixture
def clock():
    """A fake clock shared by aggregator and cache."""
    return FakeClock()


@pytest.fixture
def fake_probes():
    """FakeProbes factory for tests that script their own outcomes."""
    return FakeProbes


@pytest.fixture
def healthy_probes():
    """Probes reporting both default services online and reachable."""
    return FakeProbes(online={'backend', 'front'}, reachable={3000: True, 3001: True})


@pytest.fixture
def make_aggregator(clock):
    """Factory building an aggregator wired to the given fake probes."""
    def _make(probes: FakeProbes, **kwargs) -> HealthAggregator:
        return HealthAggregator(
            port_prober=probes.port_prober,
            supervisor_source=probes.supervisor_source,
            clock=clock,
            **kwargs
        )
    return _make
