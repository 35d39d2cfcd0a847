"""Daily health metrics from Health Auto Export JSON files."""

import json
import logging
from datetime import date
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from config import Config
from models.sources import HealthRecord

logger = logging.getLogger(__name__)

_RECORDS = TypeAdapter(HealthRecord | list[HealthRecord])


def export_path(health_dir: Path, day: date) -> Path:
    return Path(health_dir) / f"HealthAutoExport-{day:%Y-%m-%d}.json"


def format_health(raw: object) -> str:
    """Render the latest record's metrics, or "" if it has none.

    Raises:
        ValidationError: If the payload is not a record or list of records
    """
    data = _RECORDS.validate_python(raw)
    if isinstance(data, list):
        if not data:
            return ""
        data = data[-1]
    parts = []
    for label, value in (("steps", data.steps), ("calories", data.calories), ("heartRate", data.heartRate)):
        if value is not None:
            parts.append(f"{label}: {value:g}")
    return f"Health Data: {', '.join(parts)}" if parts else ""


def fetch_health(config: Config) -> str:
    """Read today's export from HEALTH_DATA_DIR."""
    if not config.health_data_dir:
        return ""
    path = export_path(config.health_data_dir, date.today())
    try:
        return format_health(json.loads(path.read_text(encoding="utf-8")))
    except FileNotFoundError:
        logger.info("No health export for today | file=%s", path.name)
    except ValidationError as e:
        logger.warning("Health export invalid | file=%s errors=%d", path.name, e.error_count())
    except (OSError, ValueError) as e:
        logger.warning("Health export unreadable | file=%s error=%s", path.name, e)
    return ""
