"""Unread count and recent subjects from Apple Mail via AppleScript.

Requires Automation permission for the terminal running the aggregator.
"""

import asyncio
import logging
import re

from config import Config
from fetchers.utils import run_applescript

logger = logging.getLogger(__name__)

SUBJECT_DELIMITER = " || "
RESULT_DELIMITER = "##"

MAIL_SCRIPT = f"""
tell application "Mail"
  set unreadCount to unread count of inbox
  set recentSubs to ""
  try
    set recentMessages to items 1 thru 5 of (get messages of inbox)
    repeat with m in recentMessages
      set recentSubs to recentSubs & (subject of m) & "{SUBJECT_DELIMITER}"
    end repeat
  end try
  return (unreadCount as string) & "{RESULT_DELIMITER}" & recentSubs
end tell
"""

_TRAILING_DELIMITER = re.compile(rf"\s*{re.escape(SUBJECT_DELIMITER.strip())}\s*$")


def parse_mail_output(output: str) -> str:
    """Parse ``"<unread>##subj1 || subj2 || "`` into a one-line summary."""
    if not output:
        return ""
    unread, _, subjects = output.partition(RESULT_DELIMITER)
    try:
        count = int(unread.strip())
    except ValueError:
        logger.warning("Unexpected Mail output | output=%s", output[:80])
        return ""
    text = f"Mail: {count} unread"
    subjects = _TRAILING_DELIMITER.sub("", subjects).strip()
    if subjects:
        text += f". Recent subjects: {subjects}"
    return text


async def fetch_mail(config: Config) -> str:
    try:
        output = await run_applescript(MAIL_SCRIPT, timeout=config.command_timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning("Mail script timed out after %.1fs", config.command_timeout_seconds)
        return ""
    except (OSError, RuntimeError) as e:
        logger.warning("Mail fetch failed (check Automation permissions) | error=%s", e)
        return ""
    return parse_mail_output(output)
