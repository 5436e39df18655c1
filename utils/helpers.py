"""Helper utility functions."""

from datetime import date, datetime
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

from config.settings import settings

DAY_KEY_FORMAT = "%Y-%m-%d"


def today(tz: Optional[str] = None) -> date:
    """Return the current calendar day in the configured time zone."""
    return datetime.now(ZoneInfo(tz or settings.default_tz)).date()


def day_key(day: date) -> str:
    """Format a calendar day as its canonical YYYY-MM-DD key."""
    return day.strftime(DAY_KEY_FORMAT)


def parse_day_key(value: str) -> date:
    """Parse a YYYY-MM-DD key, raising ValueError for anything else."""
    parsed = datetime.strptime(value, DAY_KEY_FORMAT).date()
    # strptime tolerates unpadded fields such as "2024-1-5".
    if day_key(parsed) != value:
        raise ValueError(f"Malformed day key: {value!r}")
    return parsed


def serialize_document(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Expose a MongoDB document's ``_id`` as ``id`` and drop the owner field."""
    if not document:
        return None
    data = {k: v for k, v in document.items() if k not in ("_id", "user_id")}
    data["id"] = str(document["_id"])
    return data
