"""Dashboard summary route."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_app_session
from config.settings import settings
from schemas.dashboard import DashboardSummary
from services import metrics
from services.app_data import AppDataSession
from utils.helpers import day_key, today

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardSummary)
async def get_dashboard(
    year: Optional[int] = Query(None, ge=1, le=9999, description="Consistency calendar year"),
    month: Optional[int] = Query(None, ge=1, le=12, description="Consistency calendar month"),
    session: AppDataSession = Depends(get_app_session),
):
    """Today's stats, progress, charts and the month's consistency."""
    state = session.state
    current = today()

    calorie_entry = metrics.find_calorie_entry(state.calorie_data, current)
    workout_entry = state.workout_data.get(current)
    calorie_intake = calorie_entry.intake if calorie_entry and calorie_entry.intake is not None else 0
    calorie_target = (
        calorie_entry.target if calorie_entry and calorie_entry.target is not None
        else state.maintenance_calories
    )

    return DashboardSummary(
        today=day_key(current),
        calorie_entry=calorie_entry,
        calorie_intake=calorie_intake,
        calorie_target=calorie_target,
        calorie_progress=metrics.calorie_progress(state.calorie_data, current, state.maintenance_calories),
        workout_entry=workout_entry,
        steps=(workout_entry.steps or 0) if workout_entry else 0,
        step_goal=state.step_goal,
        step_progress=metrics.step_progress(state.workout_data, current, state.step_goal),
        latest_weight=metrics.latest_weight(state.weight_data),
        weight_goal=state.weight_goal,
        weight_chart=metrics.weight_trend(state.weight_data, limit=settings.weight_chart_points),
        calorie_chart=metrics.calorie_trend(state.calorie_data),
        consistency=metrics.consistency_calendar(
            state.workout_data, year or current.year, month or current.month, today=current
        ),
    )
