"""Values derived from raw entries for display.

Everything here is a pure function of its arguments and is recomputed on
every read. Absent calorie fields count as 0.
"""

import calendar
from datetime import date
from typing import Iterable, List, Mapping, Optional, Sequence

from schemas.calorie import CalorieEntry, CalorieEntryBase, CalorieRow, CalorieTrendPoint
from schemas.weight import WeightEntry, WeightTrendPoint
from schemas.workout import CalendarDay, ConsistencyCalendar, StepsPoint, WorkoutEntry


def net(entry: CalorieEntryBase) -> int:
    """Intake minus exercise."""
    return (entry.intake or 0) - (entry.exercise or 0)


def plus_minus(entry: CalorieEntryBase) -> int:
    """Target minus net; positive means the day came in under target."""
    return (entry.target or 0) - net(entry)


def gained(entry: CalorieEntryBase, maintenance_calories: int) -> int:
    """Surplus (positive) or deficit (negative) against maintenance."""
    return net(entry) - maintenance_calories


def calorie_rows(entries: Iterable[CalorieEntry], maintenance_calories: int) -> List[CalorieRow]:
    return [
        CalorieRow(
            **entry.model_dump(),
            net=net(entry),
            plus_minus=plus_minus(entry),
            gained=gained(entry, maintenance_calories),
        )
        for entry in entries
    ]


def find_calorie_entry(entries: Iterable[CalorieEntry], day: date) -> Optional[CalorieEntry]:
    """First entry logged for ``day``; duplicates are possible and ignored."""
    return next((e for e in entries if e.day == day), None)


def calorie_progress(entries: Sequence[CalorieEntry], day: date, maintenance_calories: int) -> float:
    """Intake as a percentage of the day's target.

    Without an entry for the day, maintenance stands in as the target.
    """
    entry = find_calorie_entry(entries, day)
    intake = entry.intake if entry and entry.intake is not None else 0
    target = entry.target if entry and entry.target is not None else maintenance_calories
    return intake / target * 100 if target > 0 else 0.0


def step_progress(workout_data: Mapping[date, WorkoutEntry], day: date, step_goal: int) -> float:
    entry = workout_data.get(day)
    steps = entry.steps if entry and entry.steps is not None else 0
    return steps / step_goal * 100 if step_goal > 0 else 0.0


def days_in_month(year: int, month: int) -> List[date]:
    return [date(year, month, d) for d in range(1, calendar.monthrange(year, month)[1] + 1)]


def logged_days(workout_data: Mapping[date, WorkoutEntry], year: int, month: int) -> int:
    return sum(
        1 for day in days_in_month(year, month)
        if day in workout_data and workout_data[day].is_logged
    )


def consistency_score(workout_data: Mapping[date, WorkoutEntry], year: int, month: int) -> int:
    """Percentage of the month's days with a workout type or steps, rounded."""
    total = len(days_in_month(year, month))
    if total == 0:
        return 0
    # Half-up rounding; round() would send 12.5 to 12.
    return int(100 * logged_days(workout_data, year, month) / total + 0.5)


def consistency_calendar(workout_data: Mapping[date, WorkoutEntry], year: int, month: int,
                         today: Optional[date] = None) -> ConsistencyCalendar:
    """A month of days for a Monday-first calendar grid."""
    days = []
    for day in days_in_month(year, month):
        entry = workout_data.get(day)
        days.append(CalendarDay(
            date=day,
            entry=entry,
            logged=bool(entry and entry.is_logged),
            is_today=day == today,
        ))
    logged = sum(1 for d in days if d.logged)
    return ConsistencyCalendar(
        year=year,
        month=month,
        leading_blank_days=date(year, month, 1).weekday(),
        days=days,
        logged_days=logged,
        total_days=len(days),
        score=consistency_score(workout_data, year, month),
    )


def latest_weight(entries: Iterable[WeightEntry]) -> Optional[WeightEntry]:
    return max(entries, key=lambda e: e.date, default=None)


def calorie_trend(entries: Iterable[CalorieEntry]) -> List[CalorieTrendPoint]:
    """Plus/minus per entry, oldest first."""
    points = [
        CalorieTrendPoint(date=e.day, plus_minus=plus_minus(e), day_of_week=e.day.strftime("%a"))
        for e in entries
    ]
    return sorted(points, key=lambda p: p.date)


def weight_trend(entries: Iterable[WeightEntry], limit: Optional[int] = None) -> List[WeightTrendPoint]:
    """Weight by date, oldest first; ``limit`` keeps only the most recent points."""
    points = sorted((WeightTrendPoint(date=e.date, weight=e.weight) for e in entries), key=lambda p: p.date)
    if limit is not None:
        points = points[-limit:] if limit > 0 else []
    return points


def monthly_steps(workout_data: Mapping[date, WorkoutEntry], year: int, month: int) -> List[StepsPoint]:
    """Steps for the days of the month that have an entry, oldest first."""
    return sorted(
        (
            StepsPoint(date=day, steps=entry.steps or 0)
            for day, entry in workout_data.items()
            if day.year == year and day.month == month
        ),
        key=lambda p: p.date,
    )
