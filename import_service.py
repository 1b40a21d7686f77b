import logging
from typing import Iterable, Optional

from algorithms import WeightConverter, WeightUnit
from db import SessionRepository
from models import Session, SetData
from settings_schema import SettingsSchema

log = logging.getLogger("import")


def _converted_set(s: SetData, source: WeightUnit, target: WeightUnit) -> SetData:
    if s.weight is None:
        return s
    return s.model_copy(update={"weight": WeightConverter.convert(s.weight, source, target)})


def convert_weights(session: Session, source: WeightUnit, target: WeightUnit) -> Session:
    """Copy of ``session`` with every logged weight expressed in ``target``."""
    if source == target:
        return session
    modules = []
    for module in session.completed_modules:
        exercises = []
        for exercise in module.completed_exercises:
            groups = [
                group.model_copy(
                    update={"sets": [_converted_set(s, source, target) for s in group.sets]}
                )
                for group in exercise.completed_set_groups
            ]
            exercises.append(exercise.model_copy(update={"completed_set_groups": groups}))
        modules.append(module.model_copy(update={"completed_exercises": exercises}))
    return session.model_copy(update={"completed_modules": modules})


class ImportService:
    """Stores sessions produced by an external importer."""

    def __init__(
        self, session_repo: SessionRepository, settings: Optional[SettingsSchema] = None
    ) -> None:
        self.sessions = session_repo
        self.settings = settings or SettingsSchema()

    def import_sessions(
        self, sessions: Iterable[Session], source_unit: Optional[WeightUnit] = None
    ) -> int:
        """Save each session in the order given and return how many were saved.

        Weights logged in ``source_unit`` are converted to the configured
        weight unit first.
        """
        target = self.settings.weight_unit
        count = 0
        for session in sessions:
            if source_unit is not None:
                session = convert_weights(session, source_unit, target)
            if not session.is_imported:
                session = session.model_copy(update={"is_imported": True})
            self.sessions.save(session)
            count += 1
        log.info("imported %d sessions", count)
        return count
