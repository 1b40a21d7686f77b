import os
import random
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from collections import Counter

import module_service as ms
from algorithms import DistanceUnit
from db import SessionRepository
from equipment_service import ImplementLibrary
from models import (
    AMRAPMode,
    CompletedExercise,
    CompletedModule,
    CompletedSetGroup,
    ExerciseInstance,
    ExerciseType,
    IntervalMode,
    Module,
    Session,
    SetData,
    SetGroup,
    Side,
)
from resolver_service import ExerciseResolver
from session_service import (
    SessionService,
    WarningKind,
    add_set,
    remove_last_set,
    validation_warnings,
)
from set_group_service import build_measurable_targets, SetGroupContext


def unilateral_group() -> CompletedSetGroup:
    return CompletedSetGroup(
        is_unilateral=True,
        sets=[
            SetData(set_number=1, side=Side.LEFT, reps=10, weight=30, completed=True),
            SetData(set_number=1, side=Side.RIGHT, reps=9, weight=30, completed=True),
        ],
    )


def session_with(exercise: CompletedExercise) -> Session:
    return Session(
        workout_name="Test",
        completed_modules=[CompletedModule(module_name="Main", completed_exercises=[exercise])],
    )


class SetAddRemoveTestCase(unittest.TestCase):
    def assertPaired(self, group: CompletedSetGroup) -> None:
        counts = Counter(s.set_number for s in group.sets)
        self.assertTrue(all(c == 2 for c in counts.values()))
        for number in counts:
            sides = {s.side for s in group.sets if s.set_number == number}
            self.assertEqual(sides, {Side.LEFT, Side.RIGHT})
        self.assertEqual(group.logical_set_count, len(counts))

    def test_unilateral_pairing_holds(self) -> None:
        rng = random.Random(3)
        group = unilateral_group()
        for _ in range(40):
            group = add_set(group) if rng.random() < 0.5 else remove_last_set(group)
            self.assertPaired(group)
            self.assertGreaterEqual(group.logical_set_count, 1)

    def test_add_set_copies_matching_side(self) -> None:
        group = add_set(unilateral_group())
        self.assertEqual(group.logical_set_count, 2)
        self.assertEqual(len(group.sets), 4)
        left, right = group.sets[2], group.sets[3]
        self.assertEqual((left.set_number, left.side, left.reps), (2, Side.LEFT, 10))
        self.assertEqual((right.set_number, right.side, right.reps), (2, Side.RIGHT, 9))
        self.assertFalse(left.completed)
        self.assertNotEqual(left.id, group.sets[0].id)

    def test_bilateral_add_and_remove(self) -> None:
        group = CompletedSetGroup(sets=[SetData(set_number=1, reps=5, completed=True)])
        group = add_set(add_set(group))
        self.assertEqual([s.set_number for s in group.sets], [1, 2, 3])
        self.assertTrue(all(s.side is None for s in group.sets))
        group = remove_last_set(group)
        self.assertEqual(group.logical_set_count, 2)

    def test_remove_floor(self) -> None:
        group = unilateral_group()
        self.assertIs(remove_last_set(group), group)
        self.assertEqual(remove_last_set(group).logical_set_count, 1)

    def test_empty_group_gets_first_set(self) -> None:
        group = add_set(CompletedSetGroup(is_unilateral=True))
        self.assertEqual([(s.set_number, s.side) for s in group.sets], [(1, Side.LEFT), (1, Side.RIGHT)])


class CompleteModuleTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.resolver = ExerciseResolver()
        self.implements = ImplementLibrary()
        self.service = SessionService(implements=self.implements)

    def test_expands_set_groups(self) -> None:
        row = ExerciseInstance.from_template(self.resolver.find_template("Dumbbell Row")).model_copy(
            update={"set_groups": [SetGroup(sets=3, target_reps=10, target_weight=50, rest_period=60)]}
        )
        intervals = ExerciseInstance(
            name="Bike Sprints", exercise_type=ExerciseType.CARDIO,
            set_groups=[SetGroup(sets=6, mode=IntervalMode(work_duration=20, interval_rest_duration=40))],
        )
        amrap = ExerciseInstance(
            name="Pull-Up", set_groups=[SetGroup(sets=2, mode=AMRAPMode(), target_reps=8, target_weight=10)]
        )
        module = Module(name="Main")
        for instance in (row, intervals, amrap):
            module = ms.add_exercise(module, instance)

        completed = self.service.complete_module(module, self.resolver)
        self.assertEqual(completed.module_id, module.id)
        row_ex, interval_ex, amrap_ex = completed.completed_exercises

        group = row_ex.completed_set_groups[0]
        self.assertTrue(group.is_unilateral)
        self.assertEqual(len(group.sets), 6)
        self.assertEqual(group.logical_set_count, 3)
        self.assertTrue(all(not s.completed and s.reps == 10 and s.weight == 50 for s in group.sets))

        rounds = interval_ex.completed_set_groups[0]
        self.assertEqual(len(rounds.sets), 6)
        self.assertTrue(all(s.duration == 20 for s in rounds.sets))
        self.assertTrue(rounds.is_interval)

        amrap_sets = amrap_ex.completed_set_groups[0].sets
        self.assertTrue(all(s.reps is None and s.weight == 10 for s in amrap_sets))

    def test_measurable_values_keyed_by_implement(self) -> None:
        band = self.implements.find_by_name("Band")
        targets = build_measurable_targets(
            SetGroupContext(implements=[band]), {("Band", "Color"): "Red"}
        )
        instance = ExerciseInstance(
            name="Band Pull", implement_ids=frozenset({band.id}),
            set_groups=[SetGroup(sets=1, implement_measurables=targets)],
        )
        group = self.service.complete_set_group(self.resolver.resolve(instance), instance.set_groups[0])
        values = group.sets[0].implement_measurable_values
        self.assertEqual(values["Band_Color"].string_value, "Red")

    def test_create_and_skip(self) -> None:
        modules = [Module(name="A"), Module(name="B")]
        session = self.service.create_session("Day 1", modules, self.resolver)
        self.assertEqual([m.module_name for m in session.completed_modules], ["A", "B"])
        skipped = SessionService.skip_module(session, 1)
        self.assertTrue(skipped.completed_modules[1].skipped)
        self.assertIs(SessionService.skip_module(session, 5), session)

    def test_without_repository(self) -> None:
        session = self.service.create_session("Day 1", [Module(name="A")], self.resolver)
        self.service.save(session)
        self.service.delete(session)
        self.assertEqual(self.service.load_sessions(), [])

    def test_with_repository(self) -> None:
        db_path = "test_session_service.db"
        if os.path.exists(db_path):
            os.remove(db_path)
        try:
            service = SessionService(SessionRepository(db_path), self.implements)
            session = service.create_session("Day 1", [Module(name="A")], self.resolver)
            service.save(session)
            self.assertEqual(service.load_sessions(), [session])
            service.delete(session)
            self.assertEqual(service.load_sessions(), [])
        finally:
            if os.path.exists(db_path):
                os.remove(db_path)


class SessionTotalsTestCase(unittest.TestCase):
    def test_totals_exclude_skipped_modules(self) -> None:
        done = CompletedExercise(
            name="Squat",
            completed_set_groups=[CompletedSetGroup(sets=[
                SetData(set_number=1, reps=5, weight=200, completed=True),
                SetData(set_number=2, reps=5, weight=None, completed=True),
                SetData(set_number=3, reps=5, weight=220, completed=False),
            ])],
        )
        session = Session(
            workout_name="Legs",
            completed_modules=[
                CompletedModule(module_name="Main", completed_exercises=[done]),
                CompletedModule(module_name="Extra", completed_exercises=[done], skipped=True),
            ],
        )
        self.assertEqual(session.total_sets_completed, 2)
        self.assertEqual(session.total_exercises_completed, 1)
        self.assertEqual(done.total_volume, 1000)
        self.assertEqual(done.top_set.weight, 200)


class ValidationTestCase(unittest.TestCase):
    def warnings_for(self, exercise_type, unit=DistanceUnit.METERS, **set_fields):
        exercise = CompletedExercise(
            name="Run",
            exercise_type=exercise_type,
            distance_unit=unit,
            completed_set_groups=[CompletedSetGroup(sets=[SetData(set_number=1, **set_fields)])],
        )
        return [w.kind for w in validation_warnings(session_with(exercise))]

    def test_unit_mismatch(self) -> None:
        self.assertIn(
            WarningKind.UNIT_MISMATCH,
            self.warnings_for(ExerciseType.CARDIO, DistanceUnit.MILES, distance=45, completed=True),
        )
        self.assertNotIn(
            WarningKind.UNIT_MISMATCH,
            self.warnings_for(ExerciseType.CARDIO, DistanceUnit.KILOMETERS, distance=45, completed=True),
        )
        self.assertIn(
            WarningKind.UNIT_MISMATCH,
            self.warnings_for(ExerciseType.CARDIO, DistanceUnit.KILOMETERS, distance=60, completed=True),
        )

    def test_no_data(self) -> None:
        self.assertEqual(self.warnings_for(ExerciseType.STRENGTH, completed=True), [WarningKind.NO_DATA])
        self.assertEqual(self.warnings_for(ExerciseType.STRENGTH, completed=False), [])

    def test_rpe_range(self) -> None:
        kinds = self.warnings_for(ExerciseType.STRENGTH, reps=5, rpe=12, completed=True)
        self.assertEqual(kinds, [WarningKind.RPE_RANGE])

    def test_missing_data_per_type(self) -> None:
        cases = [
            (ExerciseType.STRENGTH, {"weight": 100}),
            (ExerciseType.CARDIO, {"avg_heart_rate": 150}),
            (ExerciseType.ISOMETRIC, {"rpe": 7}),
            (ExerciseType.EXPLOSIVE, {"height": 24}),
            (ExerciseType.MOBILITY, {"rpe": 3}),
            (ExerciseType.RECOVERY, {"temperature": 180}),
        ]
        for kind, fields in cases:
            self.assertEqual(
                self.warnings_for(kind, completed=True, **fields), [WarningKind.MISSING_DATA], kind
            )
        self.assertEqual(self.warnings_for(ExerciseType.CARDIO, completed=True, distance=3), [])

    def test_warning_location_and_message(self) -> None:
        exercise = CompletedExercise(
            name="Lunge",
            completed_set_groups=[unilateral_group().model_copy(update={"sets": [
                SetData(set_number=1, side=Side.LEFT, reps=8, completed=True),
                SetData(set_number=1, side=Side.RIGHT, completed=True),
            ]})],
        )
        (warning,) = validation_warnings(session_with(exercise))
        self.assertEqual((warning.module_index, warning.exercise_index, warning.group_index,
                          warning.set_index), (0, 0, 0, 1))
        self.assertIn("Lunge set 1 (R)", warning.message)


if __name__ == "__main__":
    unittest.main()
