import datetime
import logging
import uuid
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

from db import SessionRepository
from equipment_service import ImplementLibrary
from models import (
    AMRAPMode,
    CompletedExercise,
    CompletedModule,
    CompletedSetGroup,
    ExerciseType,
    IntervalMode,
    MeasurableValue,
    Module,
    ResolvedExercise,
    Session,
    SetData,
    SetGroup,
    Side,
)
from resolver_service import ExerciseResolver

log = logging.getLogger("sessions")


# --- set add/remove ---------------------------------------------------------


def add_set(group: CompletedSetGroup) -> CompletedSetGroup:
    """Append the next logical set, one entry per side for unilateral groups."""
    numbers = group.logical_set_numbers
    number = (numbers[-1] if numbers else 0) + 1
    last = group.sets[-1] if group.sets else None

    def seeded(side: Optional[Side]) -> SetData:
        source = next((s for s in reversed(group.sets) if side and s.side is side), last)
        if source is None:
            return SetData(set_number=number, side=side)
        return source.model_copy(
            update={"id": uuid.uuid4(), "set_number": number, "side": side, "completed": False}
        )

    if group.is_unilateral:
        new = [seeded(Side.LEFT), seeded(Side.RIGHT)]
    else:
        new = [seeded(None)]
    return group.model_copy(update={"sets": list(group.sets) + new})


def remove_last_set(group: CompletedSetGroup) -> CompletedSetGroup:
    """Drop every entry of the highest set number; keeps at least one logical set."""
    if group.logical_set_count <= 1:
        return group
    highest = group.logical_set_numbers[-1]
    return group.model_copy(update={"sets": [s for s in group.sets if s.set_number != highest]})


# --- completion -------------------------------------------------------------


def _prefilled(
    number: int, side: Optional[Side], set_group: SetGroup, measurables: dict
) -> SetData:
    mode = set_group.mode
    data = dict(
        set_number=number,
        side=side,
        weight=set_group.target_weight,
        rpe=None,
        rest_after=set_group.rest_period,
        implement_measurable_values=dict(measurables),
    )
    if isinstance(mode, IntervalMode):
        data.update(duration=mode.work_duration, rest_after=mode.interval_rest_duration)
    elif not isinstance(mode, AMRAPMode):
        data.update(
            reps=set_group.target_reps,
            duration=set_group.target_duration,
            distance=set_group.target_distance,
            hold_time=set_group.target_hold_time,
        )
    return SetData(**data)


class SessionService:
    """Turns modules into sessions and forwards them to ``SessionRepository``."""

    def __init__(
        self,
        repo: Optional[SessionRepository] = None,
        implements: Optional[ImplementLibrary] = None,
    ) -> None:
        self.repo = repo
        self.implements = implements or ImplementLibrary()

    def _measurable_values(self, set_group: SetGroup) -> dict:
        values = {}
        for target in set_group.implement_measurables:
            implement = self.implements.get_implement(target.implement_id)
            prefix = implement.name if implement else str(target.implement_id)
            values[f"{prefix}_{target.measurable_name}"] = MeasurableValue(
                numeric_value=target.target_value,
                string_value=target.target_string_value,
            )
        return values

    def complete_set_group(
        self, exercise: ResolvedExercise, set_group: SetGroup
    ) -> CompletedSetGroup:
        measurables = self._measurable_values(set_group)
        sides = (Side.LEFT, Side.RIGHT) if exercise.is_unilateral else (None,)
        sets = [
            _prefilled(number, side, set_group, measurables)
            for number in range(1, max(1, set_group.sets) + 1)
            for side in sides
        ]
        return CompletedSetGroup(
            set_group_id=set_group.id,
            rest_period=set_group.rest_period,
            sets=sets,
            mode=set_group.mode,
            is_unilateral=exercise.is_unilateral,
            track_rpe=set_group.track_rpe,
            implement_measurables=list(set_group.implement_measurables),
        )

    def complete_exercise(self, exercise: ResolvedExercise) -> CompletedExercise:
        return CompletedExercise(
            exercise_id=exercise.id,
            name=exercise.name,
            exercise_type=exercise.exercise_type,
            cardio_metric=exercise.cardio_metric,
            mobility_tracking=exercise.mobility_tracking,
            distance_unit=exercise.distance_unit,
            is_bodyweight=exercise.is_bodyweight,
            implement_ids=exercise.implement_ids,
            primary_muscles=list(exercise.primary_muscles),
            secondary_muscles=list(exercise.secondary_muscles),
            superset_group_id=exercise.superset_group_id,
            completed_set_groups=[
                self.complete_set_group(exercise, g) for g in exercise.set_groups
            ],
            notes=exercise.notes,
        )

    def complete_module(self, module: Module, resolver: ExerciseResolver) -> CompletedModule:
        return CompletedModule(
            module_id=module.id,
            module_name=module.name,
            module_type=module.type,
            completed_exercises=[
                self.complete_exercise(e) for e in resolver.resolve_many(module.exercises)
            ],
            notes=module.notes,
        )

    def create_session(
        self,
        workout_name: str,
        modules: Iterable[Module],
        resolver: ExerciseResolver,
        workout_id: Optional[uuid.UUID] = None,
        date: Optional[datetime.datetime] = None,
        duration: Optional[int] = None,
    ) -> Session:
        extra = {"date": date} if date is not None else {}
        return Session(
            workout_id=workout_id,
            workout_name=workout_name,
            duration=duration,
            completed_modules=[self.complete_module(m, resolver) for m in modules],
            **extra,
        )

    @staticmethod
    def skip_module(session: Session, index: int, skipped: bool = True) -> Session:
        if not 0 <= index < len(session.completed_modules):
            return session
        modules = list(session.completed_modules)
        modules[index] = modules[index].model_copy(update={"skipped": skipped})
        return session.model_copy(update={"completed_modules": modules})

    def save(self, session: Session) -> None:
        if self.repo is None:
            log.debug("no repository, session %s not saved", session.id)
            return
        self.repo.save(session)
        log.info("saved session %s (%s)", session.id, session.workout_name)

    def delete(self, session: Session) -> None:
        if self.repo is None:
            return
        self.repo.delete(session)
        log.info("deleted session %s", session.id)

    def load_sessions(self) -> List[Session]:
        if self.repo is None:
            return []
        return self.repo.load_sessions()


# --- validation -------------------------------------------------------------


class WarningKind(str, Enum):
    NO_DATA = "no_data"
    RPE_RANGE = "rpe_range"
    MISSING_DATA = "missing_data"
    UNIT_MISMATCH = "unit_mismatch"


class ValidationWarning(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: WarningKind
    message: str
    module_index: int
    exercise_index: int
    group_index: int
    set_index: int


def _missing_data(exercise: CompletedExercise, s: SetData) -> Optional[str]:
    kind = exercise.exercise_type
    if kind in (ExerciseType.STRENGTH, ExerciseType.EXPLOSIVE) and s.reps is None:
        return "completed without reps"
    if kind is ExerciseType.CARDIO and s.duration is None and s.distance is None:
        return "completed without time or distance"
    if kind is ExerciseType.ISOMETRIC and s.hold_time is None:
        return "completed without hold time"
    if kind is ExerciseType.MOBILITY and s.reps is None and s.duration is None:
        return "completed without reps or duration"
    if kind is ExerciseType.RECOVERY and s.duration is None:
        return "completed without duration"
    return None


def _set_label(exercise: CompletedExercise, s: SetData) -> str:
    side = f" ({s.side.abbreviation})" if s.side else ""
    return f"{exercise.name} set {s.set_number}{side}"


def validation_warnings(session: Session) -> List[ValidationWarning]:
    """Advisory warnings in tree order; they never block saving."""
    warnings = []
    for mi, module in enumerate(session.completed_modules):
        for ei, exercise in enumerate(module.completed_exercises):
            threshold = exercise.distance_unit.mismatch_threshold
            for gi, group in enumerate(exercise.completed_set_groups):
                for si, s in enumerate(group.sets):
                    def warn(kind: WarningKind, message: str) -> None:
                        warnings.append(
                            ValidationWarning(
                                kind=kind,
                                message=f"{_set_label(exercise, s)}: {message}",
                                module_index=mi,
                                exercise_index=ei,
                                group_index=gi,
                                set_index=si,
                            )
                        )

                    if s.completed and not s.has_metric_data:
                        warn(WarningKind.NO_DATA, "marked complete but has no data")
                    elif s.completed:
                        missing = _missing_data(exercise, s)
                        if missing:
                            warn(WarningKind.MISSING_DATA, missing)
                    if s.rpe is not None and not 1 <= s.rpe <= 10:
                        warn(WarningKind.RPE_RANGE, f"RPE {s.rpe} is outside 1-10")
                    if s.distance is not None and s.distance > threshold:
                        warn(
                            WarningKind.UNIT_MISMATCH,
                            f"{s.distance:g} {exercise.distance_unit.abbreviation} "
                            "looks too large, check the distance unit",
                        )
    return warnings
