"""In-memory mirror of one signed-in user's data."""

from typing import List

from pydantic import BaseModel, Field

from schemas.calorie import CalorieEntry
from schemas.user_settings import (
    DEFAULT_MAINTENANCE_CALORIES,
    DEFAULT_STEP_GOAL,
    DEFAULT_WEIGHT_GOAL,
    UserSettings,
)
from schemas.weight import WeightEntry
from schemas.workout import WorkoutData


class AppData(BaseModel):
    """Union of the four per-user data streams."""
    calorie_data: List[CalorieEntry] = Field(default_factory=list)
    workout_data: WorkoutData = Field(default_factory=dict)
    weight_data: List[WeightEntry] = Field(default_factory=list)
    maintenance_calories: int = DEFAULT_MAINTENANCE_CALORIES
    step_goal: int = DEFAULT_STEP_GOAL
    weight_goal: int = DEFAULT_WEIGHT_GOAL

    @property
    def settings(self) -> UserSettings:
        return UserSettings(
            maintenance_calories=self.maintenance_calories,
            step_goal=self.step_goal,
            weight_goal=self.weight_goal,
        )
