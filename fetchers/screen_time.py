"""Top apps by focus time from the Screen Time (knowledgeC) store."""

import logging
import sqlite3
from contextlib import closing
from datetime import datetime, timedelta

from config import Config
from fetchers.utils import is_nanoseconds, to_apple_timestamp

logger = logging.getLogger(__name__)

TOP_APPS = 5

_SCALE_SQL = """
    SELECT AVG(ZENDDATE - ZSTARTDATE) FROM ZOBJECT
    WHERE ZSTREAMNAME = '/app/inFocus'
"""

_USAGE_SQL = """
    SELECT ZVALUESTRING AS app, SUM((ZENDDATE - ZSTARTDATE) / ?) AS seconds
    FROM ZOBJECT
    WHERE ZSTREAMNAME = '/app/inFocus' AND ZSTARTDATE > ?
    GROUP BY ZVALUESTRING
    ORDER BY seconds DESC
    LIMIT ?
"""


def format_usage(rows: list[tuple[str, float]]) -> str:
    if not rows:
        return ""
    apps = [f"{app}: {round((seconds or 0) / 60)} min" for app, seconds in rows]
    return f"Screen Time (last 24h): {', '.join(apps)}"


def fetch_screen_time(config: Config) -> str:
    if not config.screen_time_db_path or not config.screen_time_db_path.exists():
        return ""
    uri = f"file:{config.screen_time_db_path}?mode=ro"
    try:
        with closing(sqlite3.connect(uri, uri=True)) as db:
            (avg_duration,) = db.execute(_SCALE_SQL).fetchone()
            nanos = is_nanoseconds(avg_duration)
            since = to_apple_timestamp(datetime.now() - timedelta(days=1))
            divisor = 1_000_000_000 if nanos else 1
            if nanos:
                since *= 1_000_000_000
            rows = db.execute(_USAGE_SQL, (divisor, since, TOP_APPS)).fetchall()
    except sqlite3.Error as e:
        logger.warning("Screen Time query failed | db=%s error=%s", config.screen_time_db_path, e)
        return ""
    return format_usage(rows)
