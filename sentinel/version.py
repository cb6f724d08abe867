"""Version information for Sentinel."""

__version__ = "1.0.0"
__version_info__ = (1, 0, 0)

# Release notes for this version
RELEASE_NOTES = """
Sentinel v1.0.0

Health aggregation probe for pm2-managed services, polled by maintenance
pages and load balancers.

Key Features:
- Combines pm2 process status with TCP port reachability per service
- Concurrent probe fan-out with bounded timeouts
- 5-second single-slot result cache with coalesced refreshes
- /health (status code) and /health-pixel (image probe) endpoints with CORS
- Configuration via YAML and environment variables
"""
