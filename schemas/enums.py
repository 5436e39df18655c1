"""Enums for collection fields."""

from enum import Enum


class WorkoutType(str, Enum):
    """Workout split logged for a day; ``NONE`` means nothing was trained."""
    PUSH = "Push"
    PULL = "Pull"
    LEGS = "Legs"
    REST = "Rest"
    NONE = ""
