import logging
import uuid
from typing import Iterable, List, Optional

from algorithms import DistanceUnit
from db import CustomExerciseRepository
from equipment_service import builtin_implement_id
from models import (
    CardioMetric,
    ExerciseTemplate,
    ExerciseType,
    MobilityTracking,
    MuscleGroup,
    SetGroup,
)

log = logging.getLogger("exercise_library")

TEMPLATE_NAMESPACE = uuid.UUID("0b7d6c55-2f0e-4d6a-8e54-93a1c4f7e2d8")

M = MuscleGroup


def _builtin(
    name: str,
    primary: Iterable[MuscleGroup],
    secondary: Iterable[MuscleGroup] = (),
    implements: Iterable[str] = (),
    exercise_type: ExerciseType = ExerciseType.STRENGTH,
    **extra,
) -> ExerciseTemplate:
    return ExerciseTemplate(
        id=uuid.uuid5(TEMPLATE_NAMESPACE, name.lower()),
        name=name,
        exercise_type=exercise_type,
        primary_muscles=list(primary),
        secondary_muscles=list(secondary),
        implement_ids=frozenset(builtin_implement_id(i) for i in implements),
        **extra,
    )


BUILTIN_TEMPLATES = (
    # Chest
    _builtin("Bench Press", [M.CHEST], [M.SHOULDERS, M.TRICEPS], ["Barbell"],
             default_set_groups=[SetGroup(sets=3, target_reps=10, rest_period=120)]),
    _builtin("Incline Bench Press", [M.CHEST], [M.SHOULDERS, M.TRICEPS], ["Barbell"]),
    _builtin("Dumbbell Fly", [M.CHEST], [], ["Dumbbell"]),
    _builtin("Push-Up", [M.CHEST], [M.TRICEPS, M.SHOULDERS], ["Bodyweight"], is_bodyweight=True),
    _builtin("Cable Crossover", [M.CHEST], [], ["Cable"]),
    # Back
    _builtin("Deadlift", [M.BACK, M.HAMSTRINGS, M.GLUTES], [M.FOREARMS, M.CORE], ["Barbell"]),
    _builtin("Barbell Row", [M.BACK], [M.BICEPS, M.FOREARMS], ["Barbell"]),
    _builtin("Pull-Up", [M.BACK], [M.BICEPS, M.FOREARMS], ["Bodyweight"], is_bodyweight=True),
    _builtin("Lat Pulldown", [M.BACK], [M.BICEPS], ["Cable"]),
    _builtin("Dumbbell Row", [M.BACK], [M.BICEPS], ["Dumbbell"], is_unilateral=True),
    _builtin("Face Pull", [M.SHOULDERS, M.BACK], [], ["Cable"]),
    # Shoulders
    _builtin("Overhead Press", [M.SHOULDERS], [M.TRICEPS], ["Barbell"]),
    _builtin("Lateral Raise", [M.SHOULDERS], [], ["Dumbbell"]),
    _builtin("Banded Pull-Apart", [M.SHOULDERS, M.BACK], [], ["Band"]),
    # Arms
    _builtin("Barbell Curl", [M.BICEPS], [M.FOREARMS], ["Barbell"]),
    _builtin("Hammer Curl", [M.BICEPS, M.FOREARMS], [], ["Dumbbell"]),
    _builtin("Tricep Pushdown", [M.TRICEPS], [], ["Cable"]),
    _builtin("Skull Crusher", [M.TRICEPS], [], ["Barbell"]),
    # Legs
    _builtin("Back Squat", [M.QUADS, M.GLUTES], [M.HAMSTRINGS, M.CORE], ["Barbell"]),
    _builtin("Romanian Deadlift", [M.HAMSTRINGS, M.GLUTES], [M.BACK], ["Barbell"]),
    _builtin("Leg Press", [M.QUADS, M.GLUTES], [], ["Machine"]),
    _builtin("Bulgarian Split Squat", [M.QUADS, M.GLUTES], [M.HAMSTRINGS], ["Dumbbell"],
             is_unilateral=True),
    _builtin("Goblet Squat", [M.QUADS, M.GLUTES], [M.CORE], ["Kettlebell"]),
    _builtin("Calf Raise", [M.CALVES], [], ["Machine"]),
    _builtin("Hip Thrust", [M.GLUTES], [M.HAMSTRINGS], ["Barbell"]),
    # Core
    _builtin("Plank", [M.CORE], [M.SHOULDERS], exercise_type=ExerciseType.ISOMETRIC),
    _builtin("Side Plank", [M.CORE], [], exercise_type=ExerciseType.ISOMETRIC, is_unilateral=True),
    _builtin("Hanging Leg Raise", [M.CORE], [M.FOREARMS], ["Bodyweight"], is_bodyweight=True),
    _builtin("Dead Bug", [M.CORE], []),
    # Explosive
    _builtin("Box Jump", [M.QUADS, M.GLUTES], [M.CALVES], ["Box"],
             exercise_type=ExerciseType.EXPLOSIVE),
    _builtin("Kettlebell Swing", [M.GLUTES, M.HAMSTRINGS], [M.CORE], ["Kettlebell"],
             exercise_type=ExerciseType.EXPLOSIVE),
    # Cardio
    _builtin("Treadmill Run", [M.QUADS, M.HAMSTRINGS, M.CALVES], [M.GLUTES, M.CORE],
             exercise_type=ExerciseType.CARDIO, cardio_metric=CardioMetric.BOTH,
             distance_unit=DistanceUnit.MILES),
    _builtin("Cycling", [M.QUADS], [M.HAMSTRINGS, M.CALVES], exercise_type=ExerciseType.CARDIO),
    _builtin("Rowing", [M.BACK, M.QUADS], [M.BICEPS, M.CORE], exercise_type=ExerciseType.CARDIO,
             cardio_metric=CardioMetric.DISTANCE),
    _builtin("Sled Push", [M.QUADS, M.GLUTES], [M.CALVES], exercise_type=ExerciseType.CARDIO,
             cardio_metric=CardioMetric.DISTANCE, distance_unit=DistanceUnit.YARDS),
    # Mobility and recovery
    _builtin("Hip 90/90", [M.GLUTES], [], exercise_type=ExerciseType.MOBILITY,
             mobility_tracking=MobilityTracking.REPS),
    _builtin("Couch Stretch", [M.QUADS], [], exercise_type=ExerciseType.MOBILITY,
             mobility_tracking=MobilityTracking.DURATION, is_unilateral=True),
    _builtin("Foam Rolling", [], [], exercise_type=ExerciseType.RECOVERY),
    _builtin("Sauna", [], [], exercise_type=ExerciseType.RECOVERY),
)


class CustomExerciseLibrary:
    """User-created exercise templates persisted through ``CustomExerciseRepository``."""

    def __init__(self, repo: CustomExerciseRepository) -> None:
        self.repo = repo
        self.exercises: List[ExerciseTemplate] = []
        self.load_exercises()

    def load_exercises(self) -> None:
        self.exercises = self.repo.load_templates()

    def contains_name(self, name: str) -> bool:
        key = name.strip().lower()
        return any(t.name.lower() == key for t in self.exercises)

    def add_exercise(
        self,
        name: str,
        exercise_type: ExerciseType,
        primary: Iterable[MuscleGroup] = (),
        secondary: Iterable[MuscleGroup] = (),
        implement_ids: Iterable[uuid.UUID] = (),
        **extra,
    ) -> Optional[ExerciseTemplate]:
        """Create and persist a template.

        Returns ``None`` when the trimmed name is empty or already present
        (case-insensitive).
        """
        trimmed = name.strip()
        if not trimmed:
            log.warning("cannot add custom exercise with empty name")
            return None
        if self.contains_name(trimmed):
            log.warning("custom exercise %r already exists", trimmed)
            return None
        template = ExerciseTemplate(
            name=trimmed,
            exercise_type=exercise_type,
            primary_muscles=list(primary),
            secondary_muscles=list(secondary),
            implement_ids=frozenset(implement_ids),
            is_custom=True,
            **extra,
        )
        self.repo.save(template)
        self.load_exercises()
        log.info("added custom exercise %s", trimmed)
        return template

    def update_exercise(self, template: ExerciseTemplate) -> bool:
        if not any(t.id == template.id for t in self.exercises):
            return False
        name = template.name.strip()
        clash = any(
            t.id != template.id and t.name.lower() == name.lower() for t in self.exercises
        )
        if not name or clash:
            log.warning("rejected rename of custom exercise to %r", name)
            return False
        self.repo.save(template.model_copy(update={"name": name, "is_custom": True}))
        self.load_exercises()
        log.info("updated custom exercise %s", template.name)
        return True

    def delete_exercise(self, template: ExerciseTemplate) -> bool:
        if not any(t.id == template.id for t in self.exercises):
            return False
        self.repo.delete(template)
        self.load_exercises()
        log.info("deleted custom exercise %s", template.name)
        return True
