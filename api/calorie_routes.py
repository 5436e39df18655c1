"""Calorie log routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from api.dependencies import get_app_session
from config.settings import settings
from schemas.calorie import CalorieEntryCreate, CalorieEntryUpdate, CalorieRow, CalorieTrendPoint, NewCalorieRow
from services import metrics
from services.app_data import AppDataSession
from services.spreadsheet import (
    EXPORT_FILENAME,
    SpreadsheetImportError,
    build_calorie_workbook,
    parse_calorie_workbook,
)
from utils.helpers import today
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(prefix="/api/v1/calories", tags=["calories"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("", response_model=List[CalorieRow])
async def list_calorie_entries(session: AppDataSession = Depends(get_app_session)):
    """Every calorie entry with net, plus/minus and gained."""
    state = session.state
    return metrics.calorie_rows(state.calorie_data, state.maintenance_calories)


@router.post("", status_code=202)
async def add_calorie_entry(
    payload: Optional[NewCalorieRow] = None,
    session: AppDataSession = Depends(get_app_session),
):
    """Add a row for today (or the given day) with the default target."""
    payload = payload or NewCalorieRow()
    entry = CalorieEntryCreate(
        day=payload.day or today(),
        target=payload.target if payload.target is not None else settings.default_calorie_target,
    )
    entry_id = await session.add_calorie_entry(entry)
    return {"id": entry_id}


@router.patch("/{entry_id}", status_code=202)
async def update_calorie_entry(
    entry_id: str,
    payload: CalorieEntryUpdate,
    session: AppDataSession = Depends(get_app_session),
):
    """Merge the sent fields into one entry. Unknown ids are ignored."""
    await session.update_calorie_entry(entry_id, payload)
    return {"id": entry_id}


@router.delete("/{entry_id}", status_code=202)
async def delete_calorie_entry(entry_id: str, session: AppDataSession = Depends(get_app_session)):
    await session.delete_calorie_entry(entry_id)
    return {"id": entry_id}


@router.delete("", status_code=202)
async def clear_calorie_entries(session: AppDataSession = Depends(get_app_session)):
    """Delete the whole calorie log."""
    await session.clear_all_calorie_data()
    return {"cleared": True}


@router.post("/import", status_code=202)
async def import_calorie_entries(
    file: UploadFile = File(..., description="Excel workbook with Day, Target, Exercise, Intake columns"),
    session: AppDataSession = Depends(get_app_session),
):
    """Replace the calorie log with the rows of an uploaded workbook."""
    content = await file.read()
    try:
        entries = parse_calorie_workbook(content)
    except SpreadsheetImportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await session.import_calorie_data(entries)
    return {"imported": len(entries)}


@router.get("/export")
async def export_calorie_entries(session: AppDataSession = Depends(get_app_session)):
    """Download the calorie log as an Excel workbook."""
    state = session.state
    content = build_calorie_workbook(state.calorie_data, state.maintenance_calories)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.get("/trend", response_model=List[CalorieTrendPoint])
async def calorie_trend(session: AppDataSession = Depends(get_app_session)):
    """Plus/minus by day, oldest first."""
    return metrics.calorie_trend(session.state.calorie_data)
