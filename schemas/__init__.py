"""Request, response and document schemas."""

from schemas.enums import WorkoutType
from schemas.day import DayKey
from schemas.calorie import (
    CalorieEntry,
    CalorieEntryBase,
    CalorieEntryCreate,
    CalorieEntryUpdate,
    CalorieRow,
    CalorieTrendPoint,
    NewCalorieRow,
)
from schemas.workout import (
    CalendarDay,
    ConsistencyCalendar,
    StepsPoint,
    WorkoutData,
    WorkoutDataPayload,
    WorkoutDayLog,
    WorkoutEntry,
)
from schemas.weight import WeightEntry, WeightEntryCreate, WeightTrendPoint
from schemas.user_settings import UserSettings, UserSettingsUpdate
from schemas.app_data import AppData
from schemas.auth import AuthResponse, Credentials, SignUpRequest, UserPublic
from schemas.dashboard import DashboardSummary
from schemas.websocket import WebSocketResponse

__all__ = [
    "WorkoutType",
    "DayKey",
    "CalorieEntry",
    "CalorieEntryBase",
    "CalorieEntryCreate",
    "CalorieEntryUpdate",
    "CalorieRow",
    "CalorieTrendPoint",
    "NewCalorieRow",
    "CalendarDay",
    "ConsistencyCalendar",
    "StepsPoint",
    "WorkoutData",
    "WorkoutDataPayload",
    "WorkoutDayLog",
    "WorkoutEntry",
    "WeightEntry",
    "WeightEntryCreate",
    "WeightTrendPoint",
    "UserSettings",
    "UserSettingsUpdate",
    "AppData",
    "AuthResponse",
    "Credentials",
    "SignUpRequest",
    "UserPublic",
    "DashboardSummary",
    "WebSocketResponse",
]
