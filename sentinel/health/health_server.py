"""HTTP server exposing the aggregated health verdict."""

import base64
import json
import logging
from functools import partial
from typing import Optional
from aiohttp import web

from .status_cache import StatusCache

logger = logging.getLogger(__name__)

# 1x1 transparent GIF
PIXEL_GIF = base64.b64decode('R0lGODlhAQABAPAAAP///wAAACH5BAAAAAAALAAAAAABAAEAAAICRAEAOw==')

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET,HEAD,OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type',
    'Access-Control-Max-Age': '300',
}

NO_CACHE_HEADERS = {
    'Cache-Control': 'no-store, no-cache, must-revalidate, proxy-revalidate',
    'Pragma': 'no-cache',
    'Expires': '0',
}

_compact_dumps = partial(json.dumps, separators=(',', ':'))


class SentinelServer:
    """HTTP server providing the /health and /health-pixel probes."""

    def __init__(self, status_cache: StatusCache, host: str = '127.0.0.1', port: int = 8088):
        """
        Initialize sentinel server.

        Args:
            status_cache: Cache supplying the aggregated verdict
            host: Host to bind to (default: 127.0.0.1)
            port: Port to bind to (default: 8088)
        """
        self.status_cache = status_cache
        self.host = host
        self.port = port
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None

        # Prefix matching is done in dispatch, so take every path and method
        self.app.router.add_route('*', '/{tail:.*}', self.dispatch)

        logger.info(f"Sentinel server initialized on {host}:{port}")

    async def dispatch(self, request: web.Request) -> web.Response:
        """Route by path prefix. /health-pixel must be tested before /health."""
        path = request.path
        if path.startswith('/health-pixel'):
            return await self.handle_pixel(request)
        if path.startswith('/health'):
            return await self.handle_health(request)

        logger.debug(f"No route for {request.method} {path} -> 404")
        return web.Response(status=404)

    async def _is_healthy(self) -> bool:
        """Read the cached verdict; any unexpected error counts as unhealthy."""
        try:
            return await self.status_cache.get_status()
        except Exception as e:
            logger.error(f"Error computing health status: {type(e).__name__}: {e}", exc_info=True)
            return False

    async def handle_health(self, request: web.Request) -> web.Response:
        """
        Status-code health endpoint.

        Returns 204 when all services are healthy, 403 with {"ok":false}
        otherwise. OPTIONS is answered immediately for CORS preflight.

        Args:
            request: HTTP request

        Returns:
            Response carrying CORS and no-cache headers
        """
        headers = {**CORS_HEADERS, **NO_CACHE_HEADERS}

        if request.method == 'OPTIONS':
            return web.Response(status=204, headers=headers)

        if await self._is_healthy():
            logger.debug(f"Health check request: {request.method} {request.path} -> 204")
            return web.Response(status=204, headers=headers)

        logger.debug(f"Health check request: {request.method} {request.path} -> 403")
        return web.json_response({'ok': False}, status=403, headers=headers, dumps=_compact_dumps)

    async def handle_pixel(self, request: web.Request) -> web.Response:
        """
        Image-probe health endpoint for <img> polling.

        Returns 200 with a 1x1 GIF when healthy, 503 with no body otherwise.
        No CORS headers: image loads do not need them.

        Args:
            request: HTTP request

        Returns:
            GIF response or bare 503
        """
        if await self._is_healthy():
            logger.debug(f"Pixel check request: {request.path} -> 200")
            return web.Response(
                status=200,
                body=PIXEL_GIF,
                content_type='image/gif',
                headers=NO_CACHE_HEADERS
            )

        logger.debug(f"Pixel check request: {request.path} -> 503")
        return web.Response(status=503)

    async def start(self):
        """Start the sentinel server."""
        try:
            self.runner = web.AppRunner(self.app)
            await self.runner.setup()
            self.site = web.TCPSite(self.runner, self.host, self.port)
            await self.site.start()
            logger.info(f"Sentinel server started on http://{self.host}:{self.port}")
            logger.info(f"  - Status probe: http://{self.host}:{self.port}/health")
            logger.info(f"  - Image probe:  http://{self.host}:{self.port}/health-pixel")
        except Exception as e:
            logger.error(f"Failed to start sentinel server: {e}")
            raise

    async def stop(self):
        """Stop the sentinel server."""
        try:
            if self.site:
                await self.site.stop()
            if self.runner:
                await self.runner.cleanup()
            logger.info("Sentinel server stopped")
        except Exception as e:
            logger.error(f"Error stopping sentinel server: {e}")
