"""TCP port reachability probe."""

import asyncio
import logging

logger = logging.getLogger(__name__)

DEFAULT_PORT_TIMEOUT = 1.2


async def probe_port(host: str, port: int, timeout: float = DEFAULT_PORT_TIMEOUT) -> bool:
    """
    Attempt a single TCP connection to host:port.

    Args:
        host: Host name or IP address
        port: TCP port
        timeout: Seconds to wait for the connect (default: 1.2)

    Returns:
        True if the connection was accepted, False on refusal, error or timeout.
        Never raises.
    """
    writer = None
    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port),
            timeout=timeout
        )
        logger.debug(f"Port probe {host}:{port} -> reachable")
        return True

    except asyncio.TimeoutError:
        logger.debug(f"Port probe {host}:{port} -> timed out after {timeout}s")
        return False

    except OSError as e:
        logger.debug(f"Port probe {host}:{port} -> {type(e).__name__}: {e}")
        return False

    except Exception as e:
        # Bad host/port values surface as ValueError/OverflowError from getaddrinfo
        logger.warning(f"Port probe {host}:{port} failed unexpectedly: {type(e).__name__}: {e}")
        return False

    finally:
        if writer is not None:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass
