"""Building complete workout maps for a save."""

from datetime import date
from typing import Dict, Mapping, Optional

from schemas.enums import WorkoutType
from schemas.workout import WorkoutEntry


def apply_workout_day(data: Mapping[date, WorkoutEntry], day: date,
                      workout_type: WorkoutType = WorkoutType.NONE,
                      steps: Optional[int] = None) -> Dict[date, WorkoutEntry]:
    """Return a copy of ``data`` with ``day`` logged.

    A day with no workout type and no positive step count is dropped from the
    map instead of being stored empty.
    """
    updated = dict(data)
    if workout_type == WorkoutType.NONE and (steps is None or steps <= 0):
        updated.pop(day, None)
    else:
        updated[day] = WorkoutEntry(type=workout_type, steps=steps)
    return dict(sorted(updated.items()))


def workout_data_to_document(data: Mapping[date, WorkoutEntry]) -> Dict[str, Dict]:
    """Serialise a workout map into the stored ``data`` field."""
    return {
        day.isoformat(): {"type": entry.type.value, "steps": entry.steps}
        for day, entry in sorted(data.items())
    }
