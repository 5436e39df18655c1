"""Workout data schemas."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from schemas.day import DayKey
from schemas.enums import WorkoutType


class WorkoutEntry(BaseModel):
    """What was logged for a single day."""
    type: WorkoutType = Field(WorkoutType.NONE, description="Workout split, empty for none")
    steps: Optional[int] = Field(None, ge=0, description="Steps walked that day")

    @property
    def is_logged(self) -> bool:
        """A day counts as logged when it has a workout type or any steps."""
        return self.type != WorkoutType.NONE or (self.steps or 0) > 0


# Day key -> entry. Always stored and saved as one complete mapping.
WorkoutData = Dict[DayKey, WorkoutEntry]


class WorkoutDataPayload(BaseModel):
    """Body of a full workout map save."""
    data: WorkoutData = Field(default_factory=dict)


class WorkoutDayLog(BaseModel):
    """Body of a single-day workout log."""
    type: WorkoutType = WorkoutType.NONE
    steps: Optional[int] = Field(None, ge=0)


class StepsPoint(BaseModel):
    date: DayKey
    steps: int


class CalendarDay(BaseModel):
    date: DayKey
    entry: Optional[WorkoutEntry] = None
    logged: bool = False
    is_today: bool = False


class ConsistencyCalendar(BaseModel):
    """A month of workout logging, laid out for a Monday-first calendar."""
    year: int
    month: int
    leading_blank_days: int
    days: List[CalendarDay]
    logged_days: int
    total_days: int
    score: int
