"""Today's calendar events via the icalBuddy CLI.

Install with ``brew install ical-buddy``. icalBuddy answers instantly, so
the command timeout is short.
"""

import asyncio
import logging
import re

from config import Config
from fetchers.utils import run_command

logger = logging.getLogger(__name__)

DELIMITER = " || "
_NEWLINES = re.compile(r"\n+")

ICALBUDDY_ARGS = [
    "icalBuddy",
    "--includeCalNames",
    "--noRelativeDates",
    "--timeFormat", "%H:%M",
    "eventsToday",
]


def format_events(output: str) -> str:
    raw = output.strip()
    if not raw:
        return ""
    return "Calendar: " + _NEWLINES.sub(DELIMITER, raw)


async def fetch_calendar(config: Config) -> str:
    try:
        output = await run_command(ICALBUDDY_ARGS, timeout=config.command_timeout_seconds)
    except FileNotFoundError:
        logger.warning("icalBuddy not installed; calendar skipped")
        return ""
    except asyncio.TimeoutError:
        logger.warning("icalBuddy timed out after %.1fs", config.command_timeout_seconds)
        return ""
    except (OSError, RuntimeError) as e:
        logger.warning("icalBuddy failed | error=%s", e)
        return ""
    return format_events(output)
