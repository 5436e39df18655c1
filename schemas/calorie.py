"""Calorie entry schemas."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from schemas.day import DayKey


class CalorieEntryBase(BaseModel):
    """Fields of one day's calorie log as stored remotely."""
    day: DayKey = Field(..., description="Calendar day (YYYY-MM-DD)")
    target: Optional[int] = Field(None, description="Calorie target for the day")
    exercise: Optional[int] = Field(None, description="Calories burned through exercise")
    intake: Optional[int] = Field(None, description="Calories eaten")


class CalorieEntryCreate(CalorieEntryBase):
    """Calorie entry without an identity; the store assigns one."""


class CalorieEntry(CalorieEntryBase):
    """Calorie entry tagged with its store-assigned identity."""
    id: str = Field(..., description="Store-assigned identifier")


class CalorieEntryUpdate(BaseModel):
    """Partial update; only fields explicitly sent are merged."""
    day: Optional[DayKey] = None
    target: Optional[int] = None
    exercise: Optional[int] = None
    intake: Optional[int] = None

    @field_validator("day")
    @classmethod
    def day_not_null(cls, value):
        if value is None:
            raise ValueError("day cannot be cleared")
        return value


class NewCalorieRow(BaseModel):
    """Optional body of the quick "add row" action."""
    day: Optional[DayKey] = None
    target: Optional[int] = None


class CalorieRow(CalorieEntry):
    """Calorie entry with the values derived for display."""
    net: int
    plus_minus: int
    gained: int


class CalorieTrendPoint(BaseModel):
    date: DayKey
    plus_minus: int
    day_of_week: str
