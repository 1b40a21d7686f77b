from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Literal, Optional, Sequence
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from exercise_library import BUILTIN_TEMPLATES, CustomExerciseLibrary
from models import ExerciseInstance, ExerciseTemplate, ExerciseType, ResolvedExercise

log = logging.getLogger("resolver")

TEMPLATE = "template"
INSTANCE_FALLBACK = "instance-fallback"


class Resolution(BaseModel):
    """Result of resolving an instance, tagged with where its data came from."""

    model_config = ConfigDict(frozen=True)

    source: Literal["template", "instance-fallback"]
    exercise: ResolvedExercise


class ExerciseResolver:
    """Merges exercise instances with built-in and custom templates."""

    def __init__(
        self,
        custom_library: Optional[CustomExerciseLibrary] = None,
        builtin: Sequence[ExerciseTemplate] = BUILTIN_TEMPLATES,
    ) -> None:
        self.custom_library = custom_library
        self._builtin = tuple(builtin)
        self._cache: Dict[UUID, ExerciseTemplate] = {}
        self.refresh_cache()

    def refresh_cache(self) -> None:
        """Rebuild the id lookup; call after the custom catalog changes."""
        cache: Dict[UUID, ExerciseTemplate] = {t.id: t for t in self._builtin}
        if self.custom_library is not None:
            for template in self.custom_library.exercises:
                cache.setdefault(template.id, template)
        self._cache = cache
        log.debug("template cache rebuilt with %d entries", len(cache))

    def get_template(self, template_id: Optional[UUID]) -> Optional[ExerciseTemplate]:
        if template_id is None:
            return None
        return self._cache.get(template_id)

    # --- catalog views ---

    @property
    def all_exercises(self) -> List[ExerciseTemplate]:
        return list(self._cache.values())

    @property
    def built_in_exercises(self) -> List[ExerciseTemplate]:
        return [t for t in self._cache.values() if not t.is_custom]

    @property
    def custom_exercises(self) -> List[ExerciseTemplate]:
        return [t for t in self._cache.values() if t.is_custom]

    def find_template(self, name: str) -> Optional[ExerciseTemplate]:
        """Case-insensitive exact name match, built-in entries first."""
        key = name.strip().lower()
        for template in self._cache.values():
            if template.name.lower() == key:
                return template
        return None

    def search(self, query: str) -> List[ExerciseTemplate]:
        query = query.strip().lower()
        matches = [t for t in self._cache.values() if query in t.name.lower()]
        return sorted(matches, key=lambda t: t.name.lower())

    def exercises_for_type(self, exercise_type: ExerciseType) -> List[ExerciseTemplate]:
        matches = [t for t in self._cache.values() if t.exercise_type is exercise_type]
        return sorted(matches, key=lambda t: t.name.lower())

    # --- resolution ---

    def resolve_with_source(self, instance: ExerciseInstance) -> Resolution:
        template = self.get_template(instance.template_id)
        if template is None:
            if instance.template_id is not None:
                log.debug("template %s for %r not found", instance.template_id, instance.name)
            return Resolution(source=INSTANCE_FALLBACK, exercise=_merge(instance, None))
        return Resolution(source=TEMPLATE, exercise=_merge(instance, template))

    def resolve(self, instance: ExerciseInstance) -> ResolvedExercise:
        return self.resolve_with_source(instance).exercise

    def resolve_many(self, instances: Iterable[ExerciseInstance]) -> List[ResolvedExercise]:
        return [self.resolve(i) for i in instances]

    def resolve_grouped(
        self, instances: Sequence[ExerciseInstance]
    ) -> List[List[ResolvedExercise]]:
        """Group instances by superset in order of first appearance.

        Instances without a superset form singleton groups.
        """
        groups: List[List[ResolvedExercise]] = []
        seen: set = set()
        for instance in instances:
            if instance.id in seen:
                continue
            if instance.superset_group_id is None:
                members = [instance]
            else:
                members = [
                    i for i in instances if i.superset_group_id == instance.superset_group_id
                ]
            seen.update(m.id for m in members)
            groups.append(self.resolve_many(members))
        return groups

    def find_orphans(self, instances: Iterable[ExerciseInstance]) -> List[ExerciseInstance]:
        return [
            i
            for i in instances
            if i.template_id is not None and i.template_id not in self._cache
        ]


def _merge(
    instance: ExerciseInstance, template: Optional[ExerciseTemplate]
) -> ResolvedExercise:
    def pick(field: str, empty):
        value = getattr(instance, field)
        if value is not None:
            return value
        if template is not None:
            return getattr(template, field)
        return empty

    return ResolvedExercise(
        id=instance.id,
        template_id=instance.template_id,
        name=instance.name,
        exercise_type=instance.exercise_type,
        cardio_metric=instance.cardio_metric,
        mobility_tracking=instance.mobility_tracking,
        distance_unit=instance.distance_unit,
        is_bodyweight=instance.is_bodyweight,
        is_unilateral=pick("is_unilateral", False),
        primary_muscles=list(pick("primary_muscles", [])),
        secondary_muscles=list(pick("secondary_muscles", [])),
        implement_ids=frozenset(pick("implement_ids", frozenset())),
        set_groups=list(instance.set_groups),
        order=instance.order,
        superset_group_id=instance.superset_group_id,
        notes=instance.notes,
        is_orphan=instance.template_id is not None and template is None,
    )
