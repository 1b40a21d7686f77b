import datetime
import logging
import uuid
from collections import Counter
from typing import Iterable, List, Optional, Set, Tuple

from db import ModuleRepository
from models import ExerciseInstance, Module, ModuleType, ResolvedExercise
from resolver_service import ExerciseResolver

log = logging.getLogger("modules")


def _finalize(module: Module, exercises: List[ExerciseInstance]) -> Module:
    """Renumber ``order``, dissolve single-member supersets and bump ``updated_at``."""
    counts = Counter(e.superset_group_id for e in exercises if e.superset_group_id)
    result = []
    for index, exercise in enumerate(exercises):
        update = {}
        if exercise.order != index:
            update["order"] = index
        if exercise.superset_group_id is not None and counts[exercise.superset_group_id] < 2:
            update["superset_group_id"] = None
        result.append(exercise.model_copy(update=update) if update else exercise)
    return module.model_copy(
        update={
            "exercises": result,
            "updated_at": datetime.datetime.now(datetime.timezone.utc),
        }
    )


def add_exercise(
    module: Module, instance: ExerciseInstance, index: Optional[int] = None
) -> Module:
    exercises = list(module.exercises)
    if index is None or not 0 <= index <= len(exercises):
        exercises.append(instance)
    else:
        exercises.insert(index, instance)
    return _finalize(module, exercises)


def remove_exercise(module: Module, index: int) -> Module:
    if not 0 <= index < len(module.exercises):
        log.debug("remove_exercise: index %d out of range", index)
        return module
    exercises = list(module.exercises)
    del exercises[index]
    return _finalize(module, exercises)


def move_exercise(module: Module, source: int, destination: int) -> Module:
    count = len(module.exercises)
    if not (0 <= source < count and 0 <= destination < count) or source == destination:
        return module
    exercises = list(module.exercises)
    exercises.insert(destination, exercises.pop(source))
    return _finalize(module, exercises)


def update_exercise(module: Module, instance: ExerciseInstance) -> Module:
    """Replace the exercise with ``instance.id``; unknown ids are ignored."""
    exercises = list(module.exercises)
    for index, existing in enumerate(exercises):
        if existing.id == instance.id:
            exercises[index] = instance.model_copy(
                update={"updated_at": datetime.datetime.now(datetime.timezone.utc)}
            )
            return _finalize(module, exercises)
    log.debug("update_exercise: unknown id %s", instance.id)
    return module


def create_superset(module: Module, exercise_ids: Iterable[uuid.UUID]) -> Module:
    """Link the named exercises under a fresh superset id.

    Needs at least two distinct ids present in the module; anything less is
    a no-op.
    """
    present = {e.id for e in module.exercises}
    ids: Set[uuid.UUID] = {i for i in exercise_ids if i in present}
    if len(ids) < 2:
        log.debug("create_superset ignored: %d usable ids", len(ids))
        return module
    group_id = uuid.uuid4()
    exercises = [
        e.model_copy(update={"superset_group_id": group_id}) if e.id in ids else e
        for e in module.exercises
    ]
    return _finalize(module, exercises)


def break_superset_group(module: Module, superset_id: uuid.UUID) -> Module:
    if not any(e.superset_group_id == superset_id for e in module.exercises):
        return module
    exercises = [
        e.model_copy(update={"superset_group_id": None})
        if e.superset_group_id == superset_id
        else e
        for e in module.exercises
    ]
    return _finalize(module, exercises)


def break_superset(module: Module, exercise_id: uuid.UUID) -> Module:
    """Take a single exercise out of its superset."""
    exercises = list(module.exercises)
    for index, exercise in enumerate(exercises):
        if exercise.id == exercise_id and exercise.superset_group_id is not None:
            exercises[index] = exercise.model_copy(update={"superset_group_id": None})
            return _finalize(module, exercises)
    return module


def superset_groups(module: Module) -> List[List[ExerciseInstance]]:
    """Exercises grouped by superset id, in order of first appearance."""
    groups = []
    seen = set()
    for exercise in module.exercises:
        group_id = exercise.superset_group_id
        if group_id is None or group_id in seen:
            continue
        seen.add(group_id)
        groups.append([e for e in module.exercises if e.superset_group_id == group_id])
    return groups


def orphaned_superset_ids(exercises: Iterable[ExerciseInstance]) -> Set[uuid.UUID]:
    counts = Counter(e.superset_group_id for e in exercises if e.superset_group_id)
    return {group_id for group_id, count in counts.items() if count < 2}


def superset_position(module: Module, exercise_id: uuid.UUID) -> Optional[Tuple[int, int]]:
    """1-based ``(position, size)`` of an exercise inside its superset."""
    for group in superset_groups(module):
        ids = [e.id for e in group]
        if exercise_id in ids:
            return ids.index(exercise_id) + 1, len(ids)
    return None


def resolved_exercises_grouped(
    module: Module, resolver: ExerciseResolver
) -> List[List[ResolvedExercise]]:
    return resolver.resolve_grouped(module.exercises)


class ModuleService:
    """Creates modules and forwards them to ``ModuleRepository``."""

    def __init__(self, repo: ModuleRepository) -> None:
        self.repo = repo

    def create(
        self, name: str, module_type: ModuleType = ModuleType.STRENGTH, **extra
    ) -> Module:
        module = Module(name=name.strip(), type=module_type, **extra)
        self.save(module)
        return module

    def save(self, module: Module) -> None:
        self.repo.save(module)
        log.info("saved module %s", module.name)

    def delete(self, module: Module) -> None:
        self.repo.delete(module)
        log.info("deleted module %s", module.name)

    def load_modules(self) -> List[Module]:
        return self.repo.load_modules()
