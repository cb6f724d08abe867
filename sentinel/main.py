"""Main entry point for the Sentinel health aggregation probe."""

import asyncio
import logging
import signal
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import Config, ConfigError
from .health import HealthAggregator, SentinelServer, StatusCache, run_startup_checks
from .version import __version__


def setup_logging(config: Config):
    """Set up console and rotating file logging."""
    log_config = config.logging_config
    log_level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)

    log_dir = Path(log_config.get('log_dir', 'logs'))
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(log_level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    max_bytes = log_config.get('max_file_size_mb', 10) * 1024 * 1024
    backup_count = log_config.get('backup_count', 5)

    file_handler = RotatingFileHandler(
        log_dir / 'sentinel.log',
        maxBytes=max_bytes,
        backupCount=backup_count
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # aiohttp logs every request at INFO; keep it out of the probe log
    logging.getLogger('aiohttp.access').setLevel(logging.WARNING)

    logging.info("Logging initialized")


def build_server(config: Config) -> SentinelServer:
    """Wire aggregator, cache and HTTP server from configuration."""
    aggregator = HealthAggregator(
        pm2_bin=config.supervisor['pm2_bin'],
        port_timeout=float(config.probes['port_timeout_seconds']),
        supervisor_timeout=float(config.supervisor['timeout_seconds'])
    )
    status_cache = StatusCache(
        aggregator,
        config.services,
        freshness_window=config.freshness_window_seconds
    )
    return SentinelServer(
        status_cache,
        host=config.server['host'],
        port=config.server['port']
    )


async def main():
    """Main entry point for the application."""
    try:
        config = Config()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    if not run_startup_checks(config):
        print("\nERROR: Critical startup checks failed. Exiting.", file=sys.stderr)
        sys.exit(1)

    setup_logging(config)
    logger = logging.getLogger(__name__)
    logger.info("=" * 60)
    logger.info(f"Sentinel v{__version__}")
    logger.info("=" * 60)

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_event.set)

    server = build_server(config)
    try:
        await server.start()
        await shutdown_event.wait()
        logger.info("Shutdown signal received")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        await server.stop()
        logger.info("Shutdown complete")


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
