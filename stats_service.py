from __future__ import annotations
import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional

from algorithms import DistanceConverter, DistanceUnit, MathTools
from db import SessionRepository
from models import CompletedExercise, Session
from settings_schema import SettingsSchema


class DateRange(str, Enum):
    ALL = "all"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"


def _aware(dt: datetime.datetime) -> datetime.datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=datetime.timezone.utc)
    return dt


def start_of_week(now: datetime.datetime, first_weekday: int = 0) -> datetime.datetime:
    """Midnight of the most recent ``first_weekday`` (0 = Monday) on or before ``now``."""
    now = _aware(now)
    offset = (now.weekday() - first_weekday) % 7
    day = now.date() - datetime.timedelta(days=offset)
    return datetime.datetime.combine(day, datetime.time.min, tzinfo=now.tzinfo)


def start_of_month(now: datetime.datetime) -> datetime.datetime:
    now = _aware(now)
    return datetime.datetime.combine(
        now.date().replace(day=1), datetime.time.min, tzinfo=now.tzinfo
    )


def filter_sessions(
    sessions: Iterable[Session],
    date_range: DateRange,
    now: Optional[datetime.datetime] = None,
    first_weekday: int = 0,
) -> List[Session]:
    sessions = list(sessions)
    if date_range is DateRange.ALL:
        return sessions
    now = _aware(now or datetime.datetime.now(datetime.timezone.utc))
    if date_range is DateRange.THIS_WEEK:
        start = start_of_week(now, first_weekday)
    else:
        start = start_of_month(now)
    return [s for s in sessions if _aware(s.date) >= start]


def _exercises(sessions: Iterable[Session]) -> Iterable[CompletedExercise]:
    for session in sessions:
        for module in session.completed_modules:
            if module.skipped:
                continue
            yield from module.completed_exercises


def total_completed_sets(sessions: Iterable[Session]) -> int:
    return sum(s.total_sets_completed for s in sessions)


def total_volume(sessions: Iterable[Session]) -> float:
    return sum(e.total_volume for e in _exercises(sessions))


def total_duration(sessions: Iterable[Session]) -> int:
    """Summed session duration in minutes; sessions without one count as zero."""
    return sum(s.duration or 0 for s in sessions)


def total_distance(sessions: Iterable[Session], unit: DistanceUnit = DistanceUnit.METERS) -> float:
    total = 0.0
    for exercise in _exercises(sessions):
        for s in exercise.completed_sets:
            if s.distance is not None:
                total += DistanceConverter.convert(s.distance, exercise.distance_unit, unit)
    return round(total, 4)


def workouts_this_week(
    sessions: Iterable[Session],
    now: Optional[datetime.datetime] = None,
    first_weekday: int = 0,
) -> int:
    return len(filter_sessions(sessions, DateRange.THIS_WEEK, now, first_weekday))


def current_streak(sessions: Iterable[Session], today: Optional[datetime.date] = None) -> int:
    """Consecutive training days ending today, or yesterday if today is empty."""
    days = {_aware(s.date).date() for s in sessions}
    day = today or datetime.datetime.now(datetime.timezone.utc).date()
    if day not in days:
        day -= datetime.timedelta(days=1)
    streak = 0
    while day in days:
        streak += 1
        day -= datetime.timedelta(days=1)
    return streak


def weekly_volume_trend(
    sessions: Iterable[Session],
    weeks: int = 8,
    now: Optional[datetime.datetime] = None,
    first_weekday: int = 0,
) -> List[Dict[str, float]]:
    """Volume per week for the last ``weeks`` weeks, oldest first."""
    sessions = list(sessions)
    now = _aware(now or datetime.datetime.now(datetime.timezone.utc))
    current = start_of_week(now, first_weekday)
    result = []
    for back in range(weeks - 1, -1, -1):
        start = current - datetime.timedelta(weeks=back)
        end = start + datetime.timedelta(weeks=1)
        in_week = [s for s in sessions if start <= _aware(s.date) < end]
        result.append(
            {
                "week_start": start.date().isoformat(),
                "volume": round(total_volume(in_week), 2),
                "workouts": len(in_week),
            }
        )
    return result


def exercise_summary(sessions: Iterable[Session]) -> List[Dict[str, float]]:
    stats: Dict[str, Dict[str, float]] = {}
    for exercise in _exercises(sessions):
        item = stats.setdefault(exercise.name, {"volume": 0.0, "sets": 0, "max_1rm": 0.0})
        for s in exercise.completed_sets:
            item["sets"] += 1
            if s.weight is None or s.reps is None:
                continue
            item["volume"] += s.weight * s.reps
            if s.reps > 0:
                est = MathTools.epley_1rm(s.weight, s.reps)
                if est > item["max_1rm"]:
                    item["max_1rm"] = est
    result = []
    for name, data in stats.items():
        result.append(
            {
                "exercise": name,
                "sets": int(data["sets"]),
                "volume": round(data["volume"], 2),
                "max_1rm": round(data["max_1rm"], 2),
            }
        )
    return sorted(result, key=lambda x: x["exercise"])


class StatisticsService:
    """Compute workout statistics over stored sessions."""

    def __init__(
        self,
        session_repo: SessionRepository,
        settings: SettingsSchema | None = None,
    ) -> None:
        self.sessions = session_repo
        self.settings = settings or SettingsSchema()

    def _load(self, date_range: DateRange = DateRange.ALL, now=None) -> List[Session]:
        return filter_sessions(
            self.sessions.load_sessions(), date_range, now, self.settings.first_weekday
        )

    def overview(
        self, date_range: DateRange = DateRange.ALL, now: Optional[datetime.datetime] = None
    ) -> Dict[str, float]:
        sessions = self._load(date_range, now)
        return {
            "workouts": len(sessions),
            "sets": total_completed_sets(sessions),
            "volume": round(total_volume(sessions), 2),
            "duration": total_duration(sessions),
            "distance": total_distance(sessions, self.settings.distance_unit),
        }

    def workouts_this_week(self, now: Optional[datetime.datetime] = None) -> int:
        return len(self._load(DateRange.THIS_WEEK, now))

    def current_streak(self, today: Optional[datetime.date] = None) -> int:
        return current_streak(self.sessions.load_sessions(), today)

    def weekly_volume_trend(
        self, weeks: int = 8, now: Optional[datetime.datetime] = None
    ) -> List[Dict[str, float]]:
        return weekly_volume_trend(
            self.sessions.load_sessions(), weeks, now, self.settings.first_weekday
        )

    def exercise_summary(
        self, date_range: DateRange = DateRange.ALL, now: Optional[datetime.datetime] = None
    ) -> List[Dict[str, float]]:
        return exercise_summary(self._load(date_range, now))
