"""Dashboard summary schema."""

from typing import List, Optional

from pydantic import BaseModel

from schemas.calorie import CalorieEntry, CalorieTrendPoint
from schemas.weight import WeightEntry, WeightTrendPoint
from schemas.workout import ConsistencyCalendar, WorkoutEntry


class DashboardSummary(BaseModel):
    """Everything the dashboard page shows for one day."""
    today: str
    calorie_entry: Optional[CalorieEntry] = None
    calorie_intake: int
    calorie_target: int
    calorie_progress: float
    workout_entry: Optional[WorkoutEntry] = None
    steps: int
    step_goal: int
    step_progress: float
    latest_weight: Optional[WeightEntry] = None
    weight_goal: int
    weight_chart: List[WeightTrendPoint]
    calorie_chart: List[CalorieTrendPoint]
    consistency: ConsistencyCalendar
