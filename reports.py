"""Markdown artifacts for the companion website.

Each cycle writes one markdown file under the web content directory:

    <web-content-dir>/<YYYY>/<MM>/<DD>-<N>.md

N is the 1-based sequence number of the cycle within the day. It is
derived from the files already on disk, never from an in-memory counter,
so numbering continues correctly after a restart.
"""

import json
import logging
import re
from datetime import date, datetime
from pathlib import Path

from errors import PersistenceError

logger = logging.getLogger(__name__)


def report_dir(web_dir: Path, day: date) -> Path:
    return Path(web_dir) / f"{day.year:04d}" / f"{day.month:02d}"


def _day_pattern(day: date) -> re.Pattern[str]:
    return re.compile(rf"^{day.day:02d}-(\d+)\.md$")


def list_reports(web_dir: Path, day: date) -> list[Path]:
    """Markdown files already written for a day, in sequence order."""
    directory = report_dir(web_dir, day)
    if not directory.is_dir():
        return []
    pattern = _day_pattern(day)
    matches = []
    for path in directory.iterdir():
        m = pattern.match(path.name)
        if m and path.is_file():
            matches.append((int(m.group(1)), path))
    return [path for _, path in sorted(matches)]


def next_index(web_dir: Path, day: date) -> int:
    """Sequence number for the day's next markdown file.

    Creates the month directory if absent, then counts the day's existing
    files and returns count + 1.

    Raises:
        PersistenceError: If the directory cannot be created or listed
    """
    directory = report_dir(web_dir, day)
    try:
        directory.mkdir(parents=True, exist_ok=True)
        return len(list_reports(web_dir, day)) + 1
    except OSError as e:
        raise PersistenceError(f"Cannot list reports in {directory}: {e}", path=directory) from e


def report_title(day: date, index: int) -> str:
    """Human title, e.g. ``Tuesday 5 March 2024 #2``."""
    return f"{day:%A} {day.day} {day:%B %Y} #{index}"


def render_report(
    moment: datetime,
    index: int,
    title: str,
    summary: str,
    context_file: str | None = None,
) -> str:
    """Render front-matter plus the summary body (kept verbatim)."""
    lines = [
        "---",
        f"date: {moment.isoformat(timespec='seconds')}",
        f"index: {index}",
        f"title: {json.dumps(title, ensure_ascii=False)}",
    ]
    if context_file:
        lines.append(f"contextFile: {json.dumps(context_file)}")
    lines.extend(["---", "", summary])
    return "\n".join(lines)


def write_report(
    web_dir: Path,
    moment: datetime,
    index: int,
    title: str,
    summary: str,
    context_file: str | None = None,
) -> Path:
    """Write the cycle's markdown file ``<DD>-<index>.md``.

    Raises:
        PersistenceError: If the file cannot be written
    """
    day = moment.date()
    path = report_dir(web_dir, day) / f"{day.day:02d}-{index}.md"
    if path.exists():
        # A gap in the day's numbering (a deleted file) makes count + 1 collide
        logger.warning("Report already exists, overwriting | file=%s", path.name)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            render_report(moment, index, title, summary, context_file),
            encoding="utf-8",
        )
    except OSError as e:
        raise PersistenceError(f"Cannot write report {path}: {e}", path=path) from e
    logger.info("Report saved | file=%s", path.name)
    return path
