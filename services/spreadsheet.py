"""Calorie log import from and export to Excel workbooks."""

import io
import zipfile
from datetime import date, datetime
from numbers import Number
from typing import Any, Dict, Iterable, List, Optional

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from schemas.calorie import CalorieEntry, CalorieEntryCreate
from services import metrics
from utils.helpers import day_key, today
from utils.logger import setup_logger

logger = setup_logger(__name__)

# Tried in order; the first that parses wins.
DAY_FORMATS = ["%Y-%m-%d", "%d-%b-%y", "%d-%b", "%m/%d/%Y", "%m/%d/%y"]

EXPORT_SHEET = "CalorieData"
EXPORT_COLUMNS = ["No.", "Day", "Target", "Exercise", "Intake", "Net", "Plus/Minus", "Gained"]
EXPORT_FILENAME = "CalorieTrackerExport.xlsx"


class SpreadsheetImportError(Exception):
    """The uploaded workbook could not be read; nothing was imported."""


def parse_day(value: Any, fallback: date) -> date:
    """Day from a cell value, or ``fallback`` when it cannot be read."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        for fmt in DAY_FORMATS:
            if "%y" not in fmt.lower():
                # Formats without a year refer to the fallback's year, so 29-Feb parses in leap years.
                candidate, fmt = f"{text} {fallback.year}", f"{fmt} %Y"
            else:
                candidate = text
            try:
                return datetime.strptime(candidate, fmt).date()
            except ValueError:
                continue
    return fallback


def parse_number(value: Any) -> Optional[int]:
    """Numeric cells become integers; anything else is absent."""
    if isinstance(value, bool) or not isinstance(value, Number):
        return None
    return int(round(value))


def rows_to_entries(rows: Iterable[Dict[str, Any]], fallback_day: date) -> List[CalorieEntryCreate]:
    entries = []
    for row in rows:
        day_value = row.get("Day")
        if day_value is None:
            day_value = row.get("day")
        entries.append(CalorieEntryCreate(
            day=parse_day(day_value, fallback_day),
            target=parse_number(row.get("Target")),
            exercise=parse_number(row.get("Exercise")),
            intake=parse_number(row.get("Intake")),
        ))
    return entries


def read_sheet_rows(content: bytes) -> List[Dict[str, Any]]:
    """First worksheet as dicts keyed by the header row; blank rows skipped."""
    workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return []
        keys = [str(h).strip() if h is not None else None for h in header]
        records = []
        for values in rows:
            if all(v is None or (isinstance(v, str) and not v.strip()) for v in values):
                continue
            records.append({k: v for k, v in zip(keys, values) if k is not None and v is not None})
        return records
    finally:
        workbook.close()


def parse_calorie_workbook(content: bytes, fallback_day: Optional[date] = None) -> List[CalorieEntryCreate]:
    """Calorie entries from an uploaded workbook.

    Any failure aborts the whole import; there is no partial result.
    """
    fallback_day = fallback_day or today()
    try:
        return rows_to_entries(read_sheet_rows(content), fallback_day)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError, IndexError) as e:
        # openpyxl surfaces corrupt zips and bad XML as any of these
        logger.error(f"Failed to import file: {e}", exc_info=True)
        raise SpreadsheetImportError(f"Could not read workbook: {e}") from e


def build_calorie_workbook(entries: Iterable[CalorieEntry], maintenance_calories: int) -> bytes:
    """Export the calorie log, with derived columns, as an .xlsx file."""
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = EXPORT_SHEET
    sheet.append(EXPORT_COLUMNS)
    for index, row in enumerate(metrics.calorie_rows(entries, maintenance_calories), start=1):
        sheet.append([
            index,
            day_key(row.day),
            row.target,
            row.exercise,
            row.intake,
            row.net,
            row.plus_minus,
            row.gained,
        ])
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
