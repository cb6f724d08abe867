"""pm2 process status source."""

import asyncio
import json
import logging
from typing import Any, Set, Union

logger = logging.getLogger(__name__)

DEFAULT_PM2_BIN = 'pm2'
DEFAULT_SUPERVISOR_TIMEOUT = 1.5
ONLINE_STATUS = 'online'


def parse_process_list(raw: Union[bytes, str]) -> Set[str]:
    """
    Reduce `pm2 jlist` output to the set of process names in the online state.

    Args:
        raw: JSON array emitted by `pm2 jlist`

    Returns:
        Names whose pm2_env.status is exactly "online". Empty set if the
        payload is not a JSON array.
    """
    if isinstance(raw, bytes):
        raw = raw.decode('utf-8', errors='replace')

    try:
        processes = json.loads(raw)
    except ValueError as e:
        logger.warning(f"pm2 output is not valid JSON: {e}")
        return set()

    if not isinstance(processes, list):
        logger.warning(f"pm2 output must be a JSON array, got {type(processes).__name__}")
        return set()

    online = set()
    for entry in processes:
        if not isinstance(entry, dict):
            continue
        pm2_env = entry.get('pm2_env')
        if not isinstance(pm2_env, dict):
            pm2_env = {}

        name = entry.get('name') or pm2_env.get('name')
        status = pm2_env.get('status')
        if isinstance(name, str) and name and status == ONLINE_STATUS:
            online.add(name)

    return online


async def _terminate(proc: Any):
    """Kill and reap a child process that outlived its timeout or caller."""
    try:
        proc.kill()
    except ProcessLookupError:
        pass
    await proc.wait()


async def fetch_online_processes(pm2_bin: str = DEFAULT_PM2_BIN,
                                 timeout: float = DEFAULT_SUPERVISOR_TIMEOUT) -> Set[str]:
    """
    Query pm2 for the names of all processes currently online.

    Any failure (spawn error, timeout, non-zero exit, malformed output)
    yields an empty set: unknown supervisor state counts as nothing online.

    Args:
        pm2_bin: pm2 executable name or path
        timeout: Seconds to wait for `pm2 jlist` (default: 1.5)

    Returns:
        Set of online process names
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            pm2_bin, 'jlist', '--silent',
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to run '{pm2_bin} jlist': {type(e).__name__}: {e}")
        return set()

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"'{pm2_bin} jlist' timed out after {timeout}s")
        await _terminate(proc)
        return set()
    except asyncio.CancelledError:
        logger.debug(f"'{pm2_bin} jlist' cancelled, killing pid {proc.pid}")
        await _terminate(proc)
        raise

    if proc.returncode != 0:
        detail = stderr.decode('utf-8', errors='replace').strip()[:200]
        logger.warning(f"'{pm2_bin} jlist' exited with code {proc.returncode}: {detail}")
        return set()

    online = parse_process_list(stdout)
    logger.debug(f"pm2 reports {len(online)} online process(es): {sorted(online)}")
    return online
