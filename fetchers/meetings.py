"""Meeting transcripts from a local SQLite database.

Expected schema: a ``transcripts`` table with ``datetime`` and ``content``
columns. ``datetime`` may hold a unix timestamp or an SQLite date string.
"""

import logging
import sqlite3
from contextlib import closing

from config import Config

logger = logging.getLogger(__name__)

MAX_TRANSCRIPTS = 10

RECENT_TRANSCRIPTS_SQL = f"""
    SELECT content FROM transcripts
    WHERE datetime(datetime, 'unixepoch') > datetime('now', '-1 day')
       OR datetime > datetime('now', '-1 day')
    ORDER BY datetime DESC
    LIMIT {MAX_TRANSCRIPTS}
"""


def fetch_meetings(config: Config) -> str:
    """Transcripts from the last 24 hours, newest first."""
    if not config.transcripts_db_path or not config.transcripts_db_path.exists():
        return ""
    uri = f"file:{config.transcripts_db_path}?mode=ro"
    try:
        with closing(sqlite3.connect(uri, uri=True)) as db:
            rows = db.execute(RECENT_TRANSCRIPTS_SQL).fetchall()
    except sqlite3.Error as e:
        logger.warning("Transcripts query failed | db=%s error=%s", config.transcripts_db_path, e)
        return ""

    texts = [row[0] for row in rows if row[0]]
    if not texts:
        return ""
    return "Meeting Transcripts:\n" + "\n\n---\n\n".join(texts)
