import logging
from typing import Iterable, Optional
from uuid import UUID

from exercise_library import CustomExerciseLibrary
from models import ExerciseTemplate, ExerciseType, MuscleGroup
from resolver_service import ExerciseResolver

log = logging.getLogger("catalog")


class CatalogService:
    """Sole mutator of the custom exercise catalog."""

    def __init__(self, library: CustomExerciseLibrary, resolver: ExerciseResolver) -> None:
        self.library = library
        self.resolver = resolver

    def add_exercise(
        self,
        name: str,
        exercise_type: ExerciseType,
        primary: Iterable[MuscleGroup] = (),
        secondary: Iterable[MuscleGroup] = (),
        implement_ids: Iterable[UUID] = (),
        **extra,
    ) -> Optional[ExerciseTemplate]:
        if self.resolver.find_template(name) is not None:
            log.warning("exercise %r already exists", name.strip())
            return None
        template = self.library.add_exercise(
            name, exercise_type, primary, secondary, implement_ids, **extra
        )
        if template is not None:
            self.resolver.refresh_cache()
        return template

    def update_exercise(self, template: ExerciseTemplate) -> bool:
        existing = self.resolver.find_template(template.name)
        if existing is not None and existing.id != template.id:
            log.warning("cannot rename to %r, name is taken", template.name.strip())
            return False
        changed = self.library.update_exercise(template)
        if changed:
            self.resolver.refresh_cache()
        return changed

    def delete_exercise(self, template: ExerciseTemplate) -> bool:
        changed = self.library.delete_exercise(template)
        if changed:
            self.resolver.refresh_cache()
        return changed
