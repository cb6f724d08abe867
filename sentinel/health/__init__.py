"""Health probing, aggregation and HTTP exposure package."""

from .aggregator import HealthAggregator
from .health_server import SentinelServer
from .port_probe import probe_port
from .startup_checks import run_startup_checks
from .status_cache import StatusCache
from .status_types import AggregatedStatus, ProbeResult, ServiceSpec
from .supervisor import fetch_online_processes, parse_process_list

__all__ = [
    'AggregatedStatus',
    'HealthAggregator',
    'ProbeResult',
    'SentinelServer',
    'ServiceSpec',
    'StatusCache',
    'fetch_online_processes',
    'parse_process_list',
    'probe_port',
    'run_startup_checks',
]
