"""Weight log routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_app_session
from schemas.weight import WeightEntry, WeightEntryCreate, WeightTrendPoint
from services import metrics
from services.app_data import AppDataSession

router = APIRouter(prefix="/api/v1/weights", tags=["weights"])


@router.get("", response_model=List[WeightEntry])
async def list_weight_entries(session: AppDataSession = Depends(get_app_session)):
    """Weight entries, most recent first."""
    return sorted(session.state.weight_data, key=lambda e: e.date, reverse=True)


@router.post("", status_code=202)
async def add_weight_entry(payload: WeightEntryCreate, session: AppDataSession = Depends(get_app_session)):
    entry_id = await session.save_weight_entry(payload)
    return {"id": entry_id}


@router.delete("/{entry_id}", status_code=202)
async def delete_weight_entry(entry_id: str, session: AppDataSession = Depends(get_app_session)):
    await session.delete_weight_entry(entry_id)
    return {"id": entry_id}


@router.get("/trend", response_model=List[WeightTrendPoint])
async def weight_trend(
    limit: Optional[int] = Query(None, ge=1),
    session: AppDataSession = Depends(get_app_session),
):
    return metrics.weight_trend(session.state.weight_data, limit=limit)
