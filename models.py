"""Value types for templates, modules, set groups and completed sessions.

Every model is frozen. Use ``model_copy(update=...)`` to derive a changed
copy; nothing in the core mutates a model in place.
"""
from __future__ import annotations

import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from algorithms import DistanceUnit, MathTools
from tools import Formatter


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# --- enumerations -----------------------------------------------------------


class ExerciseType(str, Enum):
    STRENGTH = "strength"
    CARDIO = "cardio"
    ISOMETRIC = "isometric"
    EXPLOSIVE = "explosive"
    MOBILITY = "mobility"
    RECOVERY = "recovery"


class CardioMetric(str, Enum):
    TIME = "time"
    DISTANCE = "distance"
    BOTH = "both"

    @property
    def tracks_time(self) -> bool:
        return self is not CardioMetric.DISTANCE

    @property
    def tracks_distance(self) -> bool:
        return self is not CardioMetric.TIME


class MobilityTracking(str, Enum):
    REPS = "reps"
    DURATION = "duration"
    BOTH = "both"

    @property
    def tracks_reps(self) -> bool:
        return self is not MobilityTracking.DURATION

    @property
    def tracks_duration(self) -> bool:
        return self is not MobilityTracking.REPS


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"

    @property
    def abbreviation(self) -> str:
        return "L" if self is Side.LEFT else "R"


class ModuleType(str, Enum):
    WARMUP = "warmup"
    PREHAB = "prehab"
    EXPLOSIVE = "explosive"
    STRENGTH = "strength"
    CARDIO_LONG = "cardio_long"
    CARDIO_SPEED = "cardio_speed"
    RECOVERY = "recovery"


class MuscleGroup(str, Enum):
    CHEST = "chest"
    BACK = "back"
    SHOULDERS = "shoulders"
    BICEPS = "biceps"
    TRICEPS = "triceps"
    FOREARMS = "forearms"
    QUADS = "quads"
    HAMSTRINGS = "hamstrings"
    GLUTES = "glutes"
    CALVES = "calves"
    CORE = "core"


class MetricType(str, Enum):
    WEIGHT = "weight"
    REPS = "reps"
    DURATION = "duration"
    DISTANCE = "distance"
    PACE = "pace"
    HOLD_TIME = "hold_time"
    HEIGHT = "height"
    RPE = "rpe"


# --- equipment --------------------------------------------------------------


class Measurable(FrozenModel):
    name: str
    unit: str = ""
    is_string_based: bool = False


class ImplementInfo(FrozenModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    measurables: List[Measurable] = Field(default_factory=list)
    is_custom: bool = False


class MeasurableValue(FrozenModel):
    numeric_value: Optional[float] = None
    string_value: Optional[str] = None


class ImplementMeasurableTarget(FrozenModel):
    implement_id: UUID
    measurable_name: str
    unit: str = ""
    is_string_based: bool = False
    target_value: Optional[float] = None
    target_string_value: Optional[str] = None


# --- set groups -------------------------------------------------------------


class NormalMode(FrozenModel):
    kind: Literal["normal"] = "normal"


class IntervalMode(FrozenModel):
    kind: Literal["interval"] = "interval"
    work_duration: int = 30
    interval_rest_duration: int = 30


class AMRAPMode(FrozenModel):
    kind: Literal["amrap"] = "amrap"
    time_limit: Optional[int] = None


SetGroupMode = Union[NormalMode, IntervalMode, AMRAPMode]


class _ModeAccessors:
    """Read-only views over a ``mode`` field shared by prescribed and logged groups."""

    @property
    def is_interval(self) -> bool:
        return isinstance(self.mode, IntervalMode)

    @property
    def is_amrap(self) -> bool:
        return isinstance(self.mode, AMRAPMode)

    @property
    def work_duration(self) -> Optional[int]:
        return self.mode.work_duration if isinstance(self.mode, IntervalMode) else None

    @property
    def interval_rest_duration(self) -> Optional[int]:
        if isinstance(self.mode, IntervalMode):
            return self.mode.interval_rest_duration
        return None

    @property
    def amrap_time_limit(self) -> Optional[int]:
        return self.mode.time_limit if isinstance(self.mode, AMRAPMode) else None


class SetGroup(_ModeAccessors, FrozenModel):
    """A block of sets sharing one target prescription.

    Target fields are ``None`` when not tracked; zero is a real value.
    """

    id: UUID = Field(default_factory=uuid4)
    sets: int = 1
    mode: SetGroupMode = Field(default_factory=NormalMode, discriminator="kind")
    target_reps: Optional[int] = None
    target_weight: Optional[float] = None
    target_rpe: Optional[int] = None
    track_rpe: bool = True
    target_duration: Optional[int] = None
    target_distance: Optional[float] = None
    target_distance_unit: Optional[DistanceUnit] = None
    target_hold_time: Optional[int] = None
    rest_period: Optional[int] = None
    implement_measurables: List[ImplementMeasurableTarget] = Field(default_factory=list)
    notes: Optional[str] = None


# --- templates and instances ------------------------------------------------


class ExerciseTemplate(FrozenModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    exercise_type: ExerciseType = ExerciseType.STRENGTH
    cardio_metric: CardioMetric = CardioMetric.TIME
    mobility_tracking: MobilityTracking = MobilityTracking.REPS
    distance_unit: DistanceUnit = DistanceUnit.METERS
    primary_muscles: List[MuscleGroup] = Field(default_factory=list)
    secondary_muscles: List[MuscleGroup] = Field(default_factory=list)
    implement_ids: FrozenSet[UUID] = frozenset()
    is_unilateral: bool = False
    is_bodyweight: bool = False
    is_custom: bool = False
    default_set_groups: List[SetGroup] = Field(default_factory=list)
    default_notes: Optional[str] = None

    @property
    def all_muscles(self) -> List[MuscleGroup]:
        seen: List[MuscleGroup] = []
        for muscle in self.primary_muscles + self.secondary_muscles:
            if muscle not in seen:
                seen.append(muscle)
        return seen


class ExerciseInstance(FrozenModel):
    """A template placed into a module.

    ``primary_muscles``, ``secondary_muscles``, ``implement_ids`` and
    ``is_unilateral`` are ``None`` when the instance records no override
    of its template.
    """

    id: UUID = Field(default_factory=uuid4)
    template_id: Optional[UUID] = None
    name: str
    exercise_type: ExerciseType = ExerciseType.STRENGTH
    cardio_metric: CardioMetric = CardioMetric.TIME
    mobility_tracking: MobilityTracking = MobilityTracking.REPS
    distance_unit: DistanceUnit = DistanceUnit.METERS
    is_bodyweight: bool = False
    is_unilateral: Optional[bool] = None
    primary_muscles: Optional[List[MuscleGroup]] = None
    secondary_muscles: Optional[List[MuscleGroup]] = None
    implement_ids: Optional[FrozenSet[UUID]] = None
    set_groups: List[SetGroup] = Field(default_factory=list)
    order: int = 0
    superset_group_id: Optional[UUID] = None
    notes: Optional[str] = None
    created_at: datetime.datetime = Field(default_factory=_now)
    updated_at: datetime.datetime = Field(default_factory=_now)

    @property
    def is_in_superset(self) -> bool:
        return self.superset_group_id is not None

    @property
    def total_sets(self) -> int:
        return sum(group.sets for group in self.set_groups)

    @classmethod
    def from_template(cls, template: ExerciseTemplate, order: int = 0) -> "ExerciseInstance":
        """Seed a new instance with a copy of the template's data."""
        return cls(
            template_id=template.id,
            name=template.name,
            exercise_type=template.exercise_type,
            cardio_metric=template.cardio_metric,
            mobility_tracking=template.mobility_tracking,
            distance_unit=template.distance_unit,
            is_bodyweight=template.is_bodyweight,
            is_unilateral=template.is_unilateral,
            primary_muscles=list(template.primary_muscles),
            secondary_muscles=list(template.secondary_muscles),
            implement_ids=template.implement_ids,
            set_groups=[g.model_copy(update={"id": uuid4()}) for g in template.default_set_groups],
            order=order,
            notes=template.default_notes,
        )


class ResolvedExercise(FrozenModel):
    """Read-only merge of an instance with its template, built on demand."""

    id: UUID
    template_id: Optional[UUID] = None
    name: str
    exercise_type: ExerciseType
    cardio_metric: CardioMetric
    mobility_tracking: MobilityTracking
    distance_unit: DistanceUnit
    is_bodyweight: bool
    is_unilateral: bool
    primary_muscles: List[MuscleGroup]
    secondary_muscles: List[MuscleGroup]
    implement_ids: FrozenSet[UUID]
    set_groups: List[SetGroup]
    order: int
    superset_group_id: Optional[UUID] = None
    notes: Optional[str] = None
    is_orphan: bool = False

    @property
    def total_sets(self) -> int:
        return sum(group.sets for group in self.set_groups)

    @property
    def tracks_time(self) -> bool:
        return self.exercise_type is ExerciseType.CARDIO and self.cardio_metric.tracks_time

    @property
    def tracks_distance(self) -> bool:
        return self.exercise_type is ExerciseType.CARDIO and self.cardio_metric.tracks_distance

    @property
    def tracking_metrics(self) -> List[MetricType]:
        return list(DEFAULT_METRICS[self.exercise_type])

    @property
    def formatted_set_scheme(self) -> str:
        """Compact scheme across all groups, e.g. "3×8 + 3×10"."""
        distance_based = (
            self.exercise_type is ExerciseType.CARDIO
            and self.cardio_metric is CardioMetric.DISTANCE
        )
        parts = []
        for group in self.set_groups:
            if group.target_reps is not None:
                parts.append(f"{group.sets}×{group.target_reps}")
            elif group.target_distance is not None and distance_based:
                unit = group.target_distance_unit or self.distance_unit
                parts.append(
                    f"{group.sets}×{Formatter.format_distance(group.target_distance, unit, spaced=False)}"
                )
            elif group.target_duration is not None:
                parts.append(f"{group.sets}×{Formatter.format_duration_verbose(group.target_duration)}")
            elif group.target_hold_time is not None:
                parts.append(
                    f"{group.sets}×{Formatter.format_duration_verbose(group.target_hold_time)} hold"
                )
            else:
                parts.append(f"{group.sets} sets")
        return " + ".join(parts)


DEFAULT_METRICS = {
    ExerciseType.STRENGTH: (MetricType.WEIGHT, MetricType.REPS, MetricType.RPE),
    ExerciseType.CARDIO: (MetricType.DURATION, MetricType.DISTANCE, MetricType.PACE),
    ExerciseType.MOBILITY: (MetricType.REPS, MetricType.DURATION),
    ExerciseType.ISOMETRIC: (MetricType.HOLD_TIME, MetricType.RPE),
    ExerciseType.EXPLOSIVE: (MetricType.REPS, MetricType.HEIGHT),
    ExerciseType.RECOVERY: (MetricType.DURATION,),
}


class Module(FrozenModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    type: ModuleType = ModuleType.STRENGTH
    exercises: List[ExerciseInstance] = Field(default_factory=list)
    notes: Optional[str] = None
    estimated_duration: Optional[int] = None
    created_at: datetime.datetime = Field(default_factory=_now)
    updated_at: datetime.datetime = Field(default_factory=_now)


# --- completed sessions -----------------------------------------------------


METRIC_FIELDS = (
    "weight",
    "reps",
    "rpe",
    "duration",
    "distance",
    "hold_time",
    "intensity",
    "height",
    "temperature",
    "pace",
    "avg_heart_rate",
)


class SetData(FrozenModel):
    id: UUID = Field(default_factory=uuid4)
    set_number: int
    side: Optional[Side] = None
    completed: bool = False
    weight: Optional[float] = None
    reps: Optional[int] = None
    rpe: Optional[int] = None
    duration: Optional[int] = None
    distance: Optional[float] = None
    hold_time: Optional[int] = None
    intensity: Optional[int] = None
    height: Optional[float] = None
    temperature: Optional[int] = None
    pace: Optional[float] = None
    avg_heart_rate: Optional[int] = None
    rest_after: Optional[int] = None
    implement_measurable_values: Dict[str, MeasurableValue] = Field(default_factory=dict)

    @property
    def has_metric_data(self) -> bool:
        if any(getattr(self, name) is not None for name in METRIC_FIELDS):
            return True
        return any(
            v.numeric_value is not None or v.string_value
            for v in self.implement_measurable_values.values()
        )


class CompletedSetGroup(_ModeAccessors, FrozenModel):
    id: UUID = Field(default_factory=uuid4)
    set_group_id: Optional[UUID] = None
    rest_period: Optional[int] = None
    sets: List[SetData] = Field(default_factory=list)
    mode: SetGroupMode = Field(default_factory=NormalMode, discriminator="kind")
    is_unilateral: bool = False
    track_rpe: bool = True
    implement_measurables: List[ImplementMeasurableTarget] = Field(default_factory=list)

    @property
    def logical_set_numbers(self) -> List[int]:
        return sorted({s.set_number for s in self.sets})

    @property
    def logical_set_count(self) -> int:
        return len(self.logical_set_numbers)

    @property
    def completed_count(self) -> int:
        return sum(1 for s in self.sets if s.completed)


class CompletedExercise(FrozenModel):
    id: UUID = Field(default_factory=uuid4)
    exercise_id: Optional[UUID] = None
    name: str
    exercise_type: ExerciseType = ExerciseType.STRENGTH
    cardio_metric: CardioMetric = CardioMetric.TIME
    mobility_tracking: MobilityTracking = MobilityTracking.REPS
    distance_unit: DistanceUnit = DistanceUnit.METERS
    is_bodyweight: bool = False
    implement_ids: FrozenSet[UUID] = frozenset()
    primary_muscles: List[MuscleGroup] = Field(default_factory=list)
    secondary_muscles: List[MuscleGroup] = Field(default_factory=list)
    superset_group_id: Optional[UUID] = None
    completed_set_groups: List[CompletedSetGroup] = Field(default_factory=list)
    notes: Optional[str] = None

    @property
    def completed_sets(self) -> List[SetData]:
        return [s for g in self.completed_set_groups for s in g.sets if s.completed]

    @property
    def total_volume(self) -> float:
        return MathTools.volume((s.reps, s.weight) for s in self.completed_sets)

    @property
    def top_set(self) -> Optional[SetData]:
        done = self.completed_sets
        if not done:
            return None
        return max(done, key=lambda s: s.weight or 0.0)


class CompletedModule(FrozenModel):
    id: UUID = Field(default_factory=uuid4)
    module_id: Optional[UUID] = None
    module_name: str
    module_type: ModuleType = ModuleType.STRENGTH
    completed_exercises: List[CompletedExercise] = Field(default_factory=list)
    skipped: bool = False
    notes: Optional[str] = None


class Session(FrozenModel):
    id: UUID = Field(default_factory=uuid4)
    workout_id: Optional[UUID] = None
    workout_name: str
    date: datetime.datetime = Field(default_factory=_now)
    duration: Optional[int] = None
    overall_feeling: Optional[int] = None
    notes: Optional[str] = None
    completed_modules: List[CompletedModule] = Field(default_factory=list)
    is_imported: bool = False
    created_at: datetime.datetime = Field(default_factory=_now)

    @property
    def total_exercises_completed(self) -> int:
        return sum(len(m.completed_exercises) for m in self.completed_modules if not m.skipped)

    @property
    def total_sets_completed(self) -> int:
        return sum(
            g.completed_count
            for m in self.completed_modules
            if not m.skipped
            for e in m.completed_exercises
            for g in e.completed_set_groups
        )

    def is_editable(self, now: Optional[datetime.datetime] = None, window_days: int = 30) -> bool:
        """Whether the session still falls inside the caller's edit window."""
        now = now or _now()
        created = self.created_at
        if created.tzinfo is None and now.tzinfo is not None:
            created = created.replace(tzinfo=datetime.timezone.utc)
        return (now - created).days <= window_days
