"""Workout and step logging routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_app_session
from schemas.workout import ConsistencyCalendar, StepsPoint, WorkoutDataPayload, WorkoutDayLog
from services import metrics
from services.app_data import AppDataSession
from services.workouts import apply_workout_day
from utils.helpers import parse_day_key, today

router = APIRouter(prefix="/api/v1/workouts", tags=["workouts"])


def resolve_month(year: Optional[int], month: Optional[int]):
    """Default to the current month."""
    current = today()
    return year or current.year, month or current.month


@router.get("", response_model=WorkoutDataPayload)
async def get_workout_data(session: AppDataSession = Depends(get_app_session)):
    return WorkoutDataPayload(data=session.state.workout_data)


@router.put("", status_code=202)
async def save_workout_data(payload: WorkoutDataPayload, session: AppDataSession = Depends(get_app_session)):
    """Replace the whole workout map; days left out are removed."""
    await session.save_workout_data(payload.data)
    return {"days": len(payload.data)}


@router.put("/{day}", status_code=202)
async def log_workout_day(day: str, payload: WorkoutDayLog, session: AppDataSession = Depends(get_app_session)):
    """Log one day; an empty type with no steps clears the day."""
    try:
        parsed = parse_day_key(day)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid day key: {day}")
    data = apply_workout_day(session.state.workout_data, parsed, payload.type, payload.steps)
    await session.save_workout_data(data)
    return {"day": day, "logged": parsed in data}


@router.get("/steps", response_model=List[StepsPoint])
async def monthly_steps(
    year: Optional[int] = Query(None, ge=1, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    session: AppDataSession = Depends(get_app_session),
):
    year, month = resolve_month(year, month)
    return metrics.monthly_steps(session.state.workout_data, year, month)


@router.get("/consistency", response_model=ConsistencyCalendar)
async def consistency(
    year: Optional[int] = Query(None, ge=1, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    session: AppDataSession = Depends(get_app_session),
):
    """Month calendar with the consistency score."""
    year, month = resolve_month(year, month)
    return metrics.consistency_calendar(session.state.workout_data, year, month, today=today())
