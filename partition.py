"""Daily partition writer.

Every calendar day (local time) owns a directory ``<output>/<YYYY>/<MM>/``
holding two artifacts named after the day:

    <DD>.csv      Append-only log, header "timestamp","summary", one row per cycle
    <DD>.ctx.br   Brotli-compressed JSON of the latest cycle's raw sections

The CSV header is written lazily and exactly once; the snapshot is replaced
in full on every cycle. Writes assume a single writer process: there is no
file locking.
"""

import logging
import os
import re
from datetime import date, datetime
from pathlib import Path

import brotli

from errors import PersistenceError
from models.cycle import ContextSnapshot, FetcherResult

logger = logging.getLogger(__name__)

CSV_HEADER = '"timestamp","summary"\n'
SNAPSHOT_SUFFIX = ".ctx.br"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Runs at most once per cycle, so favour ratio over speed
BROTLI_QUALITY = 11

_LINE_BREAKS = re.compile(r"\r\n|\r|\n")


def format_timestamp(moment: datetime) -> str:
    """Format a local naive datetime as ``YYYY-MM-DD HH:MM:SS``."""
    return moment.strftime(TIMESTAMP_FORMAT)


def partition_dir(base_dir: Path, day: date) -> Path:
    """Directory holding a day's artifacts: ``<base>/<YYYY>/<MM>``."""
    return Path(base_dir) / f"{day.year:04d}" / f"{day.month:02d}"


def csv_path(base_dir: Path, day: date) -> Path:
    return partition_dir(base_dir, day) / f"{day.day:02d}.csv"


def snapshot_path(base_dir: Path, day: date) -> Path:
    return partition_dir(base_dir, day) / f"{day.day:02d}{SNAPSHOT_SUFFIX}"


def escape_csv_field(text: str) -> str:
    """Escape text for a double-quoted CSV field.

    Double quotes are doubled and every line break (CR, LF or CRLF) becomes
    a single space, so each row stays on one physical line.

    Example:
        >>> escape_csv_field('He said "hi"\\nBye')
        'He said ""hi"" Bye'
    """
    return _LINE_BREAKS.sub(" ", text.replace('"', '""'))


def ensure_partition(day: date, base_dir: Path) -> Path:
    """Create the day's directory and CSV header if missing.

    Safe to call any number of times; a non-empty CSV is never touched.

    Returns:
        Path of the day's CSV file

    Raises:
        PersistenceError: If the directory or header cannot be written
    """
    path = csv_path(base_dir, day)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # An empty file is what a failed header write leaves behind
        if not path.exists() or path.stat().st_size == 0:
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(CSV_HEADER)
            logger.info("Partition created | csv=%s", path)
    except OSError as e:
        raise PersistenceError(f"Cannot initialise partition {path}: {e}", path=path) from e
    return path


def append_row(day: date, base_dir: Path, timestamp: str, summary: str) -> Path:
    """Append one ``"timestamp","summary"`` row to the day's CSV.

    The header is written first if this is the day's first row.

    Raises:
        PersistenceError: If the row cannot be appended
    """
    path = ensure_partition(day, base_dir)
    line = f'"{timestamp}","{escape_csv_field(summary)}"\n'
    try:
        with open(path, "a", encoding="utf-8", newline="") as f:
            f.write(line)
    except OSError as e:
        raise PersistenceError(f"Cannot append to {path}: {e}", path=path) from e
    logger.debug("CSV row appended | file=%s chars=%d", path.name, len(summary))
    return path


def encode_snapshot(snapshot: ContextSnapshot) -> bytes:
    """Serialise a snapshot to compact JSON and compress it."""
    return brotli.compress(
        snapshot.model_dump_json().encode("utf-8"),
        quality=BROTLI_QUALITY,
    )


def decode_snapshot(data: bytes) -> ContextSnapshot:
    """Inverse of encode_snapshot.

    Raises:
        brotli.error: If the data is not valid Brotli
        pydantic.ValidationError: If the JSON does not match ContextSnapshot
    """
    return ContextSnapshot.model_validate_json(brotli.decompress(data))


def write_snapshot(
    day: date,
    base_dir: Path,
    timestamp: str,
    sections: list[FetcherResult],
) -> Path:
    """Replace the day's snapshot with this cycle's raw sections.

    The file is written beside the target and renamed over it, so a failed
    write leaves the previous snapshot intact.

    Raises:
        PersistenceError: If the snapshot cannot be written
    """
    path = snapshot_path(base_dir, day)
    tmp = path.with_name(path.name + ".tmp")
    data = encode_snapshot(ContextSnapshot(timestamp=timestamp, sections=sections))
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_bytes(data)
        os.replace(tmp, path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise PersistenceError(f"Cannot write snapshot {path}: {e}", path=path) from e
    logger.debug("Snapshot written | file=%s bytes=%d sections=%d", path.name, len(data), len(sections))
    return path


def read_snapshot(path: Path) -> ContextSnapshot:
    """Read and decode a snapshot file (errors propagate)."""
    return decode_snapshot(Path(path).read_bytes())


def count_rows(path: Path) -> int:
    """Number of data rows in a daily CSV (header excluded)."""
    if not path.exists():
        return 0
    with open(path, encoding="utf-8") as f:
        lines = [line for line in f if line.strip()]
    return max(0, len(lines) - 1)
