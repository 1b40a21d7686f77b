import datetime
import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
import stats_service as stats
from algorithms import DistanceUnit
from db import SessionRepository
from models import (
    CompletedExercise,
    CompletedModule,
    CompletedSetGroup,
    ExerciseType,
    Session,
    SetData,
)
from settings_schema import SettingsSchema
from stats_service import DateRange, StatisticsService

UTC = datetime.timezone.utc
# Wednesday
NOW = datetime.datetime(2024, 5, 15, 12, 0, tzinfo=UTC)


def lift_session(day: datetime.datetime, weight: float = 100, reps: int = 5, sets: int = 3) -> Session:
    exercise = CompletedExercise(
        name="Squat",
        completed_set_groups=[CompletedSetGroup(sets=[
            SetData(set_number=i + 1, weight=weight, reps=reps, completed=True) for i in range(sets)
        ])],
    )
    return Session(
        workout_name="Legs",
        date=day,
        duration=45,
        completed_modules=[CompletedModule(module_name="Main", completed_exercises=[exercise])],
    )


def run_session(day: datetime.datetime, miles: float) -> Session:
    exercise = CompletedExercise(
        name="Run",
        exercise_type=ExerciseType.CARDIO,
        distance_unit=DistanceUnit.MILES,
        completed_set_groups=[CompletedSetGroup(sets=[
            SetData(set_number=1, distance=miles, duration=1800, completed=True)
        ])],
    )
    return Session(
        workout_name="Run",
        date=day,
        completed_modules=[CompletedModule(module_name="Cardio", completed_exercises=[exercise])],
    )


def days_ago(n: int) -> datetime.datetime:
    return NOW - datetime.timedelta(days=n)


class FilterTestCase(unittest.TestCase):
    def test_week_and_month(self) -> None:
        sessions = [lift_session(days_ago(n)) for n in (0, 2, 3, 10, 20)]
        # Monday 13 May starts the week; Sunday 12 May is last week.
        self.assertEqual(len(stats.filter_sessions(sessions, DateRange.THIS_WEEK, NOW)), 2)
        self.assertEqual(len(stats.filter_sessions(sessions, DateRange.THIS_MONTH, NOW)), 4)
        self.assertEqual(len(stats.filter_sessions(sessions, DateRange.ALL, NOW)), 5)

    def test_sunday_week_start(self) -> None:
        sessions = [lift_session(days_ago(3))]
        self.assertEqual(stats.workouts_this_week(sessions, NOW, first_weekday=6), 1)
        self.assertEqual(stats.workouts_this_week(sessions, NOW, first_weekday=0), 0)

    def test_naive_dates_treated_as_utc(self) -> None:
        naive = lift_session(datetime.datetime(2024, 5, 14, 8, 0))
        self.assertEqual(len(stats.filter_sessions([naive], DateRange.THIS_WEEK, NOW)), 1)


class TotalsTestCase(unittest.TestCase):
    def test_sets_volume_duration_distance(self) -> None:
        sessions = [lift_session(days_ago(0)), lift_session(days_ago(1), weight=50, sets=2),
                    run_session(days_ago(2), 3.0)]
        self.assertEqual(stats.total_completed_sets(sessions), 6)
        self.assertEqual(stats.total_volume(sessions), 3 * 500 + 2 * 250)
        self.assertEqual(stats.total_duration(sessions), 90)
        self.assertAlmostEqual(stats.total_distance(sessions, DistanceUnit.MILES), 3.0)
        self.assertAlmostEqual(stats.total_distance(sessions, DistanceUnit.KILOMETERS), 4.828, places=3)

    def test_streak(self) -> None:
        today = NOW.date()
        sessions = [lift_session(days_ago(n)) for n in (1, 2, 3, 5)]
        self.assertEqual(stats.current_streak(sessions, today), 3)
        self.assertEqual(stats.current_streak(sessions + [lift_session(NOW)], today), 4)
        self.assertEqual(stats.current_streak([lift_session(days_ago(4))], today), 0)

    def test_weekly_trend_oldest_first(self) -> None:
        sessions = [lift_session(days_ago(0)), lift_session(days_ago(7), weight=200)]
        trend = stats.weekly_volume_trend(sessions, weeks=3, now=NOW)
        self.assertEqual([w["week_start"] for w in trend], ["2024-04-29", "2024-05-06", "2024-05-13"])
        self.assertEqual([w["volume"] for w in trend], [0.0, 3000.0, 1500.0])

    def test_exercise_summary(self) -> None:
        summary = stats.exercise_summary([lift_session(NOW), run_session(NOW, 2.0)])
        self.assertEqual([row["exercise"] for row in summary], ["Run", "Squat"])
        squat = summary[1]
        self.assertEqual(squat["sets"], 3)
        self.assertEqual(squat["volume"], 1500.0)
        self.assertAlmostEqual(squat["max_1rm"], round(100 * (1 + 0.0333 * 5), 2))


class StatisticsServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_stats.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        self.repo = SessionRepository(self.db_path)
        for session in (lift_session(days_ago(0)), lift_session(days_ago(1)), lift_session(days_ago(30))):
            self.repo.save(session)
        self.service = StatisticsService(self.repo, SettingsSchema(distance_unit="miles"))

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def test_overview(self) -> None:
        overview = self.service.overview(DateRange.THIS_WEEK, NOW)
        self.assertEqual(overview["workouts"], 2)
        self.assertEqual(overview["sets"], 6)
        self.assertEqual(overview["volume"], 3000.0)
        self.assertEqual(overview["duration"], 90)
        self.assertEqual(self.service.workouts_this_week(NOW), 2)
        self.assertEqual(self.service.current_streak(NOW.date()), 2)
        self.assertEqual(len(self.service.weekly_volume_trend(4, NOW)), 4)
        self.assertEqual(self.service.exercise_summary(DateRange.ALL)[0]["sets"], 9)


if __name__ == "__main__":
    unittest.main()
