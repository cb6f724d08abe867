#!/usr/bin/env python3
"""Tests for the single-slot health status cache."""

import asyncio

import pytest

from sentinel.health.aggregator import HealthAggregator
from sentinel.health.status_cache import StatusCache


class TestStatusCache:
    """Test freshness window, refresh and coalescing behavior."""

    @pytest.mark.asyncio
    async def test_first_call_computes(self, make_aggregator, healthy_probes, services, clock):
        """The cache starts empty and the first query probes."""
        cache = StatusCache(make_aggregator(healthy_probes), services, clock=clock)
        assert cache.entry is None

        assert await cache.get_status() is True
        assert healthy_probes.supervisor_calls == 1
        assert cache.entry is not None

    @pytest.mark.asyncio
    async def test_calls_within_window_reuse_cached_status(self, make_aggregator, healthy_probes, services, clock):
        """Three or more queries inside 5s trigger only one probe cycle."""
        cache = StatusCache(make_aggregator(healthy_probes), services, clock=clock)

        first = await cache.get_status()
        first_entry = cache.entry
        for _ in range(3):
            clock.advance(1.0)
            assert await cache.get_status() == first

        assert healthy_probes.supervisor_calls == 1
        assert len(healthy_probes.port_calls) == 2
        assert cache.entry is first_entry

    @pytest.mark.asyncio
    async def test_expired_entry_triggers_exactly_one_refresh(self, make_aggregator, healthy_probes, services, clock):
        """After the window elapses, the next call runs one new cycle and restamps the entry."""
        cache = StatusCache(make_aggregator(healthy_probes), services, clock=clock)
        await cache.get_status()
        first_stamp = cache.entry.computed_at

        clock.advance(5.0)
        await cache.get_status()
        await cache.get_status()

        assert healthy_probes.supervisor_calls == 2
        assert cache.entry.computed_at == first_stamp + 5.0

    @pytest.mark.asyncio
    async def test_slow_cycle_is_stamped_when_it_finishes(self, services, clock):
        """A cycle that takes 1.5s is fresh for the full window measured from its end."""
        async def slow_supervisor(pm2_bin, timeout):
            clock.advance(1.5)
            return {'backend', 'front'}

        async def prober(host, port, timeout):
            return True

        aggregator = HealthAggregator(port_prober=prober, supervisor_source=slow_supervisor, clock=clock)
        cache = StatusCache(aggregator, services, clock=clock)
        started = clock()

        await cache.get_status()

        assert cache.entry.computed_at == started + 1.5
        clock.advance(4.9)
        entry = cache.entry
        await cache.get_status()
        assert cache.entry is entry

    @pytest.mark.asyncio
    async def test_entry_just_inside_window_is_fresh(self, make_aggregator, healthy_probes, services, clock):
        """An entry 4.999s old is still served from cache."""
        cache = StatusCache(make_aggregator(healthy_probes), services, clock=clock)
        await cache.get_status()

        clock.advance(4.999)
        await cache.get_status()

        assert healthy_probes.supervisor_calls == 1

    @pytest.mark.asyncio
    async def test_refresh_picks_up_changed_state(self, make_aggregator, fake_probes, services, clock):
        """A stale healthy verdict is replaced by a fresh unhealthy one."""
        probes = fake_probes(online={'backend', 'front'}, reachable={3000: True, 3001: True})
        cache = StatusCache(make_aggregator(probes), services, clock=clock)
        assert await cache.get_status() is True

        probes.online.discard('backend')
        clock.advance(1.0)
        assert await cache.get_status() is True  # still cached

        clock.advance(5.0)
        assert await cache.get_status() is False

    @pytest.mark.asyncio
    async def test_custom_freshness_window(self, make_aggregator, healthy_probes, services, clock):
        """The window is configurable."""
        cache = StatusCache(make_aggregator(healthy_probes), services,
                            freshness_window=0.5, clock=clock)
        await cache.get_status()

        clock.advance(0.6)
        await cache.get_status()

        assert healthy_probes.supervisor_calls == 2

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_cycle(self, make_aggregator, fake_probes, services, clock):
        """Callers arriving during an in-flight refresh wait for it instead of probing again."""
        probes = fake_probes(online={'backend', 'front'}, reachable={3000: True, 3001: True}, delay=0.05)
        cache = StatusCache(make_aggregator(probes), services, clock=clock)

        results = await asyncio.gather(*[cache.get_status() for _ in range(5)])

        assert results == [True] * 5
        assert probes.supervisor_calls == 1

    @pytest.mark.asyncio
    async def test_instances_are_isolated(self, make_aggregator, fake_probes, services, clock):
        """Each cache owns its own slot."""
        healthy = fake_probes(online={'backend', 'front'}, reachable={3000: True, 3001: True})
        failing = fake_probes()

        healthy_cache = StatusCache(make_aggregator(healthy), services, clock=clock)
        failing_cache = StatusCache(make_aggregator(failing), services, clock=clock)

        assert await healthy_cache.get_status() is True
        assert await failing_cache.get_status() is False
        assert healthy_cache.entry is not failing_cache.entry

    @pytest.mark.asyncio
    async def test_empty_service_list_cached_as_healthy(self, make_aggregator, fake_probes, clock):
        """Documented policy: an empty service list reports healthy."""
        probes = fake_probes()
        cache = StatusCache(make_aggregator(probes), [], clock=clock)

        assert await cache.get_status() is True
