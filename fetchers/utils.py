"""Shared helpers for source adapters.

Contains the HTTP defaults, subprocess runner and Apple timestamp
conversions used by more than one adapter.
"""

import asyncio
import logging
import ssl
from datetime import datetime, timezone

import aiohttp
import certifi

logger = logging.getLogger(__name__)

USER_AGENT = "PersonalLM/0.1 (personal data aggregator)"

# Seconds between 1970-01-01 and 2001-01-01 (Core Data reference date)
APPLE_EPOCH_OFFSET = 978307200

# Averages above this are nanoseconds rather than seconds
NANOSECOND_THRESHOLD = 100_000


def create_ssl_context() -> ssl.SSLContext:
    """SSL context verifying certificates against the certifi bundle."""
    return ssl.create_default_context(cafile=certifi.where())


def http_session(timeout: int) -> aiohttp.ClientSession:
    """Client session with the adapter defaults (timeout, UA, certifi)."""
    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=timeout),
        headers={"User-Agent": USER_AGENT},
        connector=aiohttp.TCPConnector(ssl=create_ssl_context()),
    )


async def get_json(session: aiohttp.ClientSession, url: str, **params) -> object:
    """GET a URL and decode JSON.

    Raises:
        aiohttp.ClientResponseError: On non-2xx status
    """
    async with session.get(url, params=params or None) as resp:
        resp.raise_for_status()
        return await resp.json(content_type=None)


async def run_command(
    args: list[str],
    timeout: float,
    stdin: str | None = None,
) -> str:
    """Run a local command and return its stripped stdout.

    The process is killed when it exceeds ``timeout``.

    Raises:
        FileNotFoundError: If the executable is missing
        asyncio.TimeoutError: If the command does not finish in time
        RuntimeError: If the command exits non-zero
    """
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(stdin.encode("utf-8") if stdin is not None else None),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise
    if proc.returncode != 0:
        raise RuntimeError(
            f"{args[0]} exited {proc.returncode}: {stderr.decode('utf-8', 'replace').strip()}"
        )
    return stdout.decode("utf-8", "replace").strip()


async def run_applescript(script: str, timeout: float) -> str:
    """Run an AppleScript by piping it to ``osascript`` on stdin."""
    return await run_command(["osascript"], timeout=timeout, stdin=script)


def is_nanoseconds(avg_value: float | None) -> bool:
    """Guess whether Apple timestamps in a table are nanoseconds."""
    if avg_value is None:
        return False
    return avg_value > NANOSECOND_THRESHOLD


def to_apple_timestamp(moment: datetime) -> int:
    """Seconds since the Apple epoch for an aware or local datetime."""
    return int(moment.timestamp()) - APPLE_EPOCH_OFFSET


def apple_to_datetime(value: int, nanoseconds: bool) -> datetime:
    """Convert an Apple epoch timestamp to a local naive datetime."""
    seconds = value // 1_000_000_000 if nanoseconds else value
    utc = datetime.fromtimestamp(seconds + APPLE_EPOCH_OFFSET, tz=timezone.utc)
    return utc.astimezone().replace(tzinfo=None)
