"""Editing surface for a completed session with a bounded undo history."""
from __future__ import annotations

import datetime
import logging
from collections import deque
from typing import Callable, Deque, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from db import SessionRepository
from models import CompletedModule, CompletedSetGroup, Session, SetData
from session_service import ValidationWarning, add_set, remove_last_set, validation_warnings
from settings_schema import SettingsSchema
from tools import InputParser

log = logging.getLogger("session_editor")

INT_SET_FIELDS = {
    "reps", "rpe", "duration", "hold_time", "intensity",
    "temperature", "avg_heart_rate", "rest_after",
}
FLOAT_SET_FIELDS = {"weight", "distance", "height", "pace"}
EDITABLE_SET_FIELDS = INT_SET_FIELDS | FLOAT_SET_FIELDS | {"completed"}


def _edited_set(current: SetData, fields: dict) -> SetData:
    """Apply ``fields`` to ``current`` with validation.

    Unknown names are dropped. A metric value that does not validate is
    stored as ``None``; an invalid ``completed`` flag leaves the flag as is.
    """
    data = current.model_dump()
    for name, value in fields.items():
        if name not in EDITABLE_SET_FIELDS:
            log.debug("ignoring unknown set field %r", name)
            continue
        try:
            data[name] = getattr(SetData.model_validate({**data, name: value}), name)
        except ValidationError:
            if name != "completed":
                data[name] = None
    return SetData.model_validate(data)


class SessionSnapshot(BaseModel):
    """Editable state of a session: its scalars plus the whole module tree."""

    model_config = ConfigDict(frozen=True)

    workout_name: str
    date: datetime.datetime
    duration: Optional[int] = None
    overall_feeling: Optional[int] = None
    notes: Optional[str] = None
    completed_modules: List[CompletedModule]

    @classmethod
    def of(cls, session: Session) -> "SessionSnapshot":
        return cls(
            workout_name=session.workout_name,
            date=session.date,
            duration=session.duration,
            overall_feeling=session.overall_feeling,
            notes=session.notes,
            completed_modules=session.completed_modules,
        )

    def apply_to(self, session: Session) -> Session:
        return session.model_copy(update=dict(self))


class SessionEditor:
    def __init__(
        self,
        session: Session,
        repo: Optional[SessionRepository] = None,
        settings: Optional[SettingsSchema] = None,
        history_limit: Optional[int] = None,
    ) -> None:
        self.repo = repo
        self.settings = settings or SettingsSchema()
        self._original = session
        self._session = session
        limit = history_limit if history_limit is not None else self.settings.undo_history_limit
        self._history: Deque[SessionSnapshot] = deque(maxlen=max(1, limit))

    @property
    def session(self) -> Session:
        return self._session

    @property
    def original(self) -> Session:
        return self._original

    @property
    def undo_depth(self) -> int:
        return len(self._history)

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    @property
    def has_changes(self) -> bool:
        return SessionSnapshot.of(self._session) != SessionSnapshot.of(self._original)

    @property
    def history_limit(self) -> int:
        return self._history.maxlen

    def is_editable(self, now: Optional[datetime.datetime] = None) -> bool:
        return self._original.is_editable(now, self.settings.edit_window_days)

    @property
    def validation_warnings(self) -> List[ValidationWarning]:
        return validation_warnings(self._session)

    def _apply(self, updated: Optional[Session]) -> bool:
        if updated is None:
            return False
        before = SessionSnapshot.of(self._session)
        if SessionSnapshot.of(updated) == before:
            return False
        if not self._history or self._history[-1] != before:
            self._history.append(before)
        self._session = updated
        return True

    # --- session scalars ---

    def set_workout_name(self, name: str) -> bool:
        name = name.strip()
        if not name:
            return False
        return self._apply(self._session.model_copy(update={"workout_name": name}))

    def set_date(self, date: datetime.datetime) -> bool:
        return self._apply(self._session.model_copy(update={"date": date}))

    def set_duration(self, minutes: Optional[int]) -> bool:
        if minutes is not None and minutes < 0:
            minutes = None
        return self._apply(self._session.model_copy(update={"duration": minutes}))

    def set_overall_feeling(self, feeling: Optional[int]) -> bool:
        if feeling is not None and not 1 <= feeling <= 10:
            feeling = None
        return self._apply(self._session.model_copy(update={"overall_feeling": feeling}))

    def set_notes(self, notes: Optional[str]) -> bool:
        return self._apply(
            self._session.model_copy(update={"notes": InputParser.parse_text(notes)})
        )

    # --- nested edits ---

    def _map_group(
        self,
        module_index: int,
        exercise_index: int,
        group_index: int,
        change: Callable[[CompletedSetGroup], Optional[CompletedSetGroup]],
    ) -> Optional[Session]:
        modules = list(self._session.completed_modules)
        if not 0 <= module_index < len(modules):
            return None
        module = modules[module_index]
        exercises = list(module.completed_exercises)
        if not 0 <= exercise_index < len(exercises):
            return None
        exercise = exercises[exercise_index]
        groups = list(exercise.completed_set_groups)
        if not 0 <= group_index < len(groups):
            return None
        group = change(groups[group_index])
        if group is None:
            return None
        groups[group_index] = group
        exercises[exercise_index] = exercise.model_copy(update={"completed_set_groups": groups})
        modules[module_index] = module.model_copy(update={"completed_exercises": exercises})
        return self._session.model_copy(update={"completed_modules": modules})

    def update_set(
        self, module_index: int, exercise_index: int, group_index: int, set_index: int, **fields
    ) -> bool:
        """Overwrite metric fields on one set; stale paths are ignored."""

        def change(group: CompletedSetGroup) -> Optional[CompletedSetGroup]:
            if not 0 <= set_index < len(group.sets):
                return None
            sets = list(group.sets)
            sets[set_index] = _edited_set(sets[set_index], fields)
            return group.model_copy(update={"sets": sets})

        return self._apply(self._map_group(module_index, exercise_index, group_index, change))

    def update_set_from_text(
        self,
        module_index: int,
        exercise_index: int,
        group_index: int,
        set_index: int,
        field: str,
        text: Optional[str],
    ) -> bool:
        """Like ``update_set`` for form input; unparsable text clears the field."""
        if field in INT_SET_FIELDS:
            value = InputParser.parse_int(text)
        elif field in FLOAT_SET_FIELDS:
            value = InputParser.parse_float(text)
        else:
            return False
        return self.update_set(
            module_index, exercise_index, group_index, set_index, **{field: value}
        )

    def toggle_set_completed(
        self, module_index: int, exercise_index: int, group_index: int, set_index: int
    ) -> bool:
        def change(group: CompletedSetGroup) -> Optional[CompletedSetGroup]:
            if not 0 <= set_index < len(group.sets):
                return None
            sets = list(group.sets)
            current = sets[set_index]
            sets[set_index] = current.model_copy(update={"completed": not current.completed})
            return group.model_copy(update={"sets": sets})

        return self._apply(self._map_group(module_index, exercise_index, group_index, change))

    def add_set(self, module_index: int, exercise_index: int, group_index: int) -> bool:
        return self._apply(self._map_group(module_index, exercise_index, group_index, add_set))

    def remove_last_set(self, module_index: int, exercise_index: int, group_index: int) -> bool:
        return self._apply(
            self._map_group(module_index, exercise_index, group_index, remove_last_set)
        )

    def set_module_skipped(self, module_index: int, skipped: bool) -> bool:
        modules = list(self._session.completed_modules)
        if not 0 <= module_index < len(modules):
            return False
        modules[module_index] = modules[module_index].model_copy(update={"skipped": skipped})
        return self._apply(self._session.model_copy(update={"completed_modules": modules}))

    # --- history ---

    def undo_last_change(self) -> bool:
        if not self._history:
            return False
        self._session = self._history.pop().apply_to(self._session)
        log.debug("undo, %d steps left", len(self._history))
        return True

    def revert_all_changes(self) -> None:
        self._session = SessionSnapshot.of(self._original).apply_to(self._session)
        self._history.clear()
        log.debug("reverted session %s", self._session.id)

    def save_changes(self) -> Session:
        """Persist the working copy; the history is left untouched."""
        if self.repo is not None:
            self.repo.save(self._session)
        log.info("saved edits to session %s", self._session.id)
        return self._session
