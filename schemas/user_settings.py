"""Per-user settings document schema."""

from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_MAINTENANCE_CALORIES = 2000
DEFAULT_STEP_GOAL = 10000
DEFAULT_WEIGHT_GOAL = 165

SETTINGS_FIELDS = ("maintenance_calories", "step_goal", "weight_goal")


class UserSettings(BaseModel):
    """Settings document; every write carries all three fields."""
    maintenance_calories: int = Field(DEFAULT_MAINTENANCE_CALORIES, description="Daily maintenance calories")
    step_goal: int = Field(DEFAULT_STEP_GOAL, description="Daily step goal")
    weight_goal: int = Field(DEFAULT_WEIGHT_GOAL, description="Goal body weight")


class UserSettingsUpdate(BaseModel):
    maintenance_calories: Optional[int] = None
    step_goal: Optional[int] = None
    weight_goal: Optional[int] = None
