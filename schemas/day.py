"""Validated calendar-day type used for every day key."""

from datetime import date, datetime
from typing import Annotated, Any

from pydantic import BeforeValidator, PlainSerializer

from utils.helpers import day_key, parse_day_key


def _coerce_day(value: Any) -> date:
    """Accept a ``date`` or a canonical YYYY-MM-DD string, nothing else."""
    if isinstance(value, datetime):
        raise ValueError("Expected a calendar day, got a timestamp")
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_day_key(value)
    raise ValueError(f"Expected a YYYY-MM-DD day key, got {type(value).__name__}")


DayKey = Annotated[
    date,
    BeforeValidator(_coerce_day),
    PlainSerializer(day_key, return_type=str, when_used="json"),
]
