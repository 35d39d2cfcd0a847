"""Recent iMessage conversations from the Messages ``chat.db``.

The database is opened read-only. Full Disk Access is required for the
process reading ``~/Library/Messages/chat.db``.
"""

import logging
import sqlite3
from contextlib import closing
from datetime import datetime, timedelta

from config import Config
from fetchers.utils import apple_to_datetime, is_nanoseconds, to_apple_timestamp

logger = logging.getLogger(__name__)

LOOKBACK = timedelta(days=14)
MAX_ROWS_PER_CHAT = 20

_SCALE_SQL = "SELECT AVG(date) FROM (SELECT date FROM message ORDER BY ROWID DESC LIMIT 10)"

_MESSAGES_SQL = """
    SELECT c.chat_identifier, m.text, m.is_from_me, m.date
    FROM chat AS c
    JOIN chat_message_join AS cmj ON cmj.chat_id = c.ROWID
    JOIN message AS m ON m.ROWID = cmj.message_id
    WHERE c.chat_identifier IN ({placeholders})
      AND m.date > ?
    ORDER BY m.date DESC
    LIMIT ?
"""


def format_messages(rows: list[tuple[str, str | None, int, int]], nanoseconds: bool) -> str:
    """Group rows (newest first) into one block per chat."""
    grouped: dict[str, list[str]] = {}
    for chat, text, from_me, stamp in rows:
        lines = grouped.setdefault(chat, [])
        if len(lines) >= MAX_ROWS_PER_CHAT:
            continue
        when = apple_to_datetime(stamp, nanoseconds).strftime("%d/%m/%Y, %H:%M:%S")
        direction = "→" if from_me else "←"
        lines.append(f"* {when} {direction} {text or '[(attachment or empty)]'}")
    return "\n\n".join(f"iMessage ({chat}):\n" + "\n".join(lines) for chat, lines in grouped.items())


def fetch_imessage(config: Config) -> str:
    chats = config.imessage_chats
    if not chats or not config.imessage_db_path or not config.imessage_db_path.exists():
        return ""
    uri = f"file:{config.imessage_db_path}?mode=ro"
    try:
        with closing(sqlite3.connect(uri, uri=True)) as db:
            (avg_date,) = db.execute(_SCALE_SQL).fetchone()
            nanos = is_nanoseconds(avg_date)
            since = to_apple_timestamp(datetime.now() - LOOKBACK)
            if nanos:
                since *= 1_000_000_000
            sql = _MESSAGES_SQL.format(placeholders=",".join("?" * len(chats)))
            rows = db.execute(sql, (*chats, since, MAX_ROWS_PER_CHAT * len(chats))).fetchall()
    except sqlite3.Error as e:
        logger.warning("iMessage query failed | db=%s error=%s", config.imessage_db_path, e)
        return ""
    return format_messages(rows, nanos)
