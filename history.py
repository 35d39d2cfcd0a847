"""Previous-day history for prompt continuity.

Continuity is derived from disk, never stored separately: yesterday's CSV
supplies the last summary and yesterday's snapshot supplies the raw
context. Reading history is best-effort; a missing or unreadable artifact
yields None for that field and never raises.
"""

import csv
import logging
from datetime import date, timedelta
from pathlib import Path

import brotli
from pydantic import ValidationError

from models.cycle import PreviousDay
from partition import csv_path, read_snapshot, snapshot_path

logger = logging.getLogger(__name__)

_HEADER = ["timestamp", "summary"]


def previous_day(today: date) -> date:
    """Calendar day before ``today`` (crosses month and year boundaries)."""
    return today - timedelta(days=1)


def last_summary(path: Path) -> str | None:
    """Final field of the last data row of a daily CSV.

    Returns None when the file is absent or holds only the header.
    """
    if not path.exists():
        return None
    with open(path, encoding="utf-8", newline="") as f:
        rows = [row for row in csv.reader(f) if row]
    if not rows or rows[-1] == _HEADER:
        return None
    return rows[-1][-1]


def load_previous(base_dir: Path, today: date | None = None) -> PreviousDay:
    """Load yesterday's summary and context relative to ``today``.

    Args:
        base_dir: Output directory holding the daily partitions
        today: Reference day (defaults to the current local date)

    Returns:
        PreviousDay with summary/context, each None if unavailable
    """
    yesterday = previous_day(today or date.today())

    summary = None
    path = csv_path(base_dir, yesterday)
    try:
        summary = last_summary(path)
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        logger.warning("Previous summary unreadable | file=%s error=%s", path, e)

    context = None
    snap = snapshot_path(base_dir, yesterday)
    if snap.exists():
        try:
            context = read_snapshot(snap).joined_context()
        except (OSError, brotli.error, ValidationError) as e:
            logger.warning(
                "Previous context unreadable | file=%s error=%s type=%s",
                snap, e, type(e).__name__,
            )

    logger.debug(
        "History loaded | day=%s summary=%s context=%s",
        yesterday.isoformat(), summary is not None, context is not None,
    )
    return PreviousDay(summary=summary, context=context)
