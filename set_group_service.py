"""Target-field applicability, save normalisation and formatting for set groups."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Literal, Mapping, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from algorithms import DistanceUnit, MathTools, WeightUnit
from equipment_service import ImplementLibrary
from models import (
    AMRAPMode,
    CardioMetric,
    ExerciseType,
    ImplementInfo,
    ImplementMeasurableTarget,
    IntervalMode,
    MobilityTracking,
    NormalMode,
    ResolvedExercise,
    SetGroup,
    SetGroupMode,
)
from settings_schema import SettingsSchema
from tools import Formatter, InputParser

log = logging.getLogger("set_groups")

AMRAP_TIME_LIMIT_OPTIONS = (None, 30, 45, 60, 90, 120, 180)

WEIGHT_MEASURABLE_NAMES = {"weight", "added weight", "load"}

RPE_MIN, RPE_MAX = 1, 10


class TargetField(str, Enum):
    REPS = "reps"
    LOAD = "load"
    RPE = "rpe"
    DURATION = "duration"
    DISTANCE = "distance"
    HOLD_TIME = "hold_time"
    REST = "rest"
    WORK_DURATION = "work_duration"
    INTERVAL_REST = "interval_rest"
    AMRAP_TIME_LIMIT = "amrap_time_limit"
    IMPLEMENT_MEASURABLES = "implement_measurables"


class LoadField(str, Enum):
    """What the single weight-like strength input holds."""

    IMPLEMENT_STRING = "implement_string"
    ADDED_WEIGHT = "added_weight"
    BOX_HEIGHT = "box_height"
    WEIGHT = "weight"

    @property
    def uses_target_weight(self) -> bool:
        return self in (LoadField.WEIGHT, LoadField.ADDED_WEIGHT)


class SetGroupContext(BaseModel):
    """Exercise attributes that decide which targets a set group can carry."""

    model_config = ConfigDict(frozen=True)

    exercise_type: ExerciseType = ExerciseType.STRENGTH
    cardio_metric: CardioMetric = CardioMetric.TIME
    mobility_tracking: MobilityTracking = MobilityTracking.REPS
    distance_unit: DistanceUnit = DistanceUnit.METERS
    is_bodyweight: bool = False
    implements: List[ImplementInfo] = Field(default_factory=list)
    weight_unit: WeightUnit = WeightUnit.LBS


class MeasurableField(BaseModel):
    model_config = ConfigDict(frozen=True)

    implement_id: UUID
    implement_name: str
    measurable_name: str
    unit: str = ""
    is_string_based: bool = False

    @property
    def key(self) -> Tuple[str, str]:
        return (self.implement_name, self.measurable_name)


def load_field(context: SetGroupContext) -> LoadField:
    if any(m.is_string_based for imp in context.implements for m in imp.measurables):
        return LoadField.IMPLEMENT_STRING
    if context.is_bodyweight:
        return LoadField.ADDED_WEIGHT
    if any("box" in imp.name.lower() for imp in context.implements):
        return LoadField.BOX_HEIGHT
    return LoadField.WEIGHT


def applicable_fields(
    context: SetGroupContext, mode: SetGroupMode, track_rpe: bool = True
) -> Tuple[TargetField, ...]:
    """Ordered target fields editable for ``context`` in ``mode``."""
    if isinstance(mode, IntervalMode):
        return (
            TargetField.WORK_DURATION,
            TargetField.INTERVAL_REST,
            TargetField.IMPLEMENT_MEASURABLES,
        )
    if isinstance(mode, AMRAPMode):
        fields = [TargetField.AMRAP_TIME_LIMIT, TargetField.REST]
        if context.exercise_type is ExerciseType.STRENGTH and load_field(context).uses_target_weight:
            fields.append(TargetField.LOAD)
        fields.append(TargetField.IMPLEMENT_MEASURABLES)
        return tuple(fields)

    kind = context.exercise_type
    fields: List[TargetField] = []
    if kind is ExerciseType.STRENGTH:
        fields += [TargetField.REPS, TargetField.LOAD]
        if track_rpe:
            fields.append(TargetField.RPE)
    elif kind is ExerciseType.CARDIO:
        if context.cardio_metric.tracks_time:
            fields.append(TargetField.DURATION)
        if context.cardio_metric.tracks_distance:
            fields.append(TargetField.DISTANCE)
    elif kind is ExerciseType.ISOMETRIC:
        fields.append(TargetField.HOLD_TIME)
    elif kind is ExerciseType.EXPLOSIVE:
        fields.append(TargetField.REPS)
    elif kind is ExerciseType.MOBILITY:
        if context.mobility_tracking.tracks_reps:
            fields.append(TargetField.REPS)
        if context.mobility_tracking.tracks_duration:
            fields.append(TargetField.DURATION)
    elif kind is ExerciseType.RECOVERY:
        fields.append(TargetField.DURATION)
    fields += [TargetField.REST, TargetField.IMPLEMENT_MEASURABLES]
    return tuple(fields)


def measurable_fields(context: SetGroupContext) -> List[MeasurableField]:
    """Distinct ``(implement, measurable)`` inputs offered for the context's equipment."""
    preferred = context.weight_unit.value
    result: Dict[Tuple[str, str], MeasurableField] = {}
    for implement in context.implements:
        for measurable in implement.measurables:
            if context.is_bodyweight and measurable.name.lower() in WEIGHT_MEASURABLE_NAMES:
                continue
            field = MeasurableField(
                implement_id=implement.id,
                implement_name=implement.name,
                measurable_name=measurable.name,
                unit=measurable.unit,
                is_string_based=measurable.is_string_based,
            )
            existing = result.get(field.key)
            if existing is None or (existing.unit != preferred and field.unit == preferred):
                result[field.key] = field
    return list(result.values())


def build_measurable_targets(
    context: SetGroupContext, values: Mapping[Tuple[str, str], Optional[str]]
) -> List[ImplementMeasurableTarget]:
    """Turn free-text input keyed by ``(implement, measurable)`` into typed targets.

    Blank entries and numbers that do not parse are dropped.
    """
    targets = []
    for field in measurable_fields(context):
        text = values.get(field.key)
        if field.is_string_based:
            value = InputParser.parse_text(text)
            if value is None:
                continue
            targets.append(
                ImplementMeasurableTarget(
                    implement_id=field.implement_id,
                    measurable_name=field.measurable_name,
                    unit=field.unit,
                    is_string_based=True,
                    target_string_value=value,
                )
            )
        else:
            number = InputParser.parse_float(text)
            if number is None:
                continue
            targets.append(
                ImplementMeasurableTarget(
                    implement_id=field.implement_id,
                    measurable_name=field.measurable_name,
                    unit=field.unit,
                    target_value=number,
                )
            )
    return targets


def measurable_inputs(
    set_group: SetGroup, context: SetGroupContext
) -> Dict[Tuple[str, str], str]:
    """Inverse of ``build_measurable_targets`` for pre-filling an edit form."""
    names = {imp.id: imp.name for imp in context.implements}
    inputs = {}
    for target in set_group.implement_measurables:
        implement_name = names.get(target.implement_id)
        if implement_name is None:
            continue
        if target.is_string_based:
            text = target.target_string_value or ""
        elif target.target_value is not None:
            text = Formatter.format_weight(target.target_value)
        else:
            text = ""
        inputs[(implement_name, target.measurable_name)] = text
    return inputs


def _bounded_rpe(rpe: Optional[int]) -> Optional[int]:
    if rpe is None:
        return None
    return int(MathTools.clamp(rpe, RPE_MIN, RPE_MAX))


def _has_value(target: ImplementMeasurableTarget) -> bool:
    if target.is_string_based:
        return InputParser.parse_text(target.target_string_value) is not None
    return target.target_value is not None


def save(set_group: SetGroup, context: SetGroupContext) -> SetGroup:
    """Return a copy of ``set_group`` with every inapplicable target cleared."""
    mode = set_group.mode
    if isinstance(mode, AMRAPMode) and mode.time_limit is not None and mode.time_limit <= 0:
        mode = AMRAPMode(time_limit=None)
    fields = applicable_fields(context, mode, set_group.track_rpe)

    def keep(field: TargetField, value):
        return value if field in fields else None

    distance = keep(TargetField.DISTANCE, set_group.target_distance)
    distance_unit = None
    if distance is not None:
        distance_unit = set_group.target_distance_unit or context.distance_unit

    weight = keep(TargetField.LOAD, set_group.target_weight)
    if not load_field(context).uses_target_weight:
        weight = None

    measurables = []
    if TargetField.IMPLEMENT_MEASURABLES in fields:
        measurables = [t for t in set_group.implement_measurables if _has_value(t)]

    return set_group.model_copy(
        update={
            "sets": max(1, set_group.sets),
            "mode": mode,
            "target_reps": keep(TargetField.REPS, set_group.target_reps),
            "target_weight": weight,
            "target_rpe": _bounded_rpe(keep(TargetField.RPE, set_group.target_rpe)),
            "target_duration": keep(TargetField.DURATION, set_group.target_duration),
            "target_distance": distance,
            "target_distance_unit": distance_unit,
            "target_hold_time": keep(TargetField.HOLD_TIME, set_group.target_hold_time),
            "rest_period": keep(TargetField.REST, set_group.rest_period),
            "implement_measurables": measurables,
            "notes": InputParser.parse_text(set_group.notes),
        }
    )


def interval_total_duration(set_group: SetGroup) -> Optional[int]:
    mode = set_group.mode
    if not isinstance(mode, IntervalMode):
        return None
    rounds = max(1, set_group.sets)
    return mode.work_duration * rounds + mode.interval_rest_duration * max(0, rounds - 1)


def _format_measurable(target: ImplementMeasurableTarget) -> Optional[str]:
    if target.is_string_based:
        if not target.target_string_value:
            return None
        return f"{target.measurable_name}: {target.target_string_value}"
    if target.target_value is None:
        return None
    unit = f" {target.unit}" if target.unit else ""
    return f"{target.measurable_name}: {Formatter.format_weight(target.target_value)}{unit}"


def formatted_target(
    set_group: SetGroup,
    weight_unit: WeightUnit = WeightUnit.LBS,
    is_bodyweight: bool = False,
) -> str:
    """Single-line description such as "3×10 @ 135 lb" or "4 rounds: 30s/30s"."""
    mode = set_group.mode
    unit = weight_unit.abbreviation
    if isinstance(mode, IntervalMode):
        return (
            f"{set_group.sets} rounds: "
            f"{Formatter.format_rest(mode.work_duration)}/"
            f"{Formatter.format_rest(mode.interval_rest_duration)}"
        )

    if isinstance(mode, AMRAPMode):
        text = f"AMRAP ×{set_group.sets}"
        if mode.time_limit:
            limit = mode.time_limit
            cap = f"{limit // 60}m" if limit >= 60 and limit % 60 == 0 else f"{limit}s"
            text += f", {cap} cap"
        if set_group.target_weight is not None:
            text += f" @ {Formatter.format_weight(set_group.target_weight)} {unit}"
        return text

    amounts = []
    if set_group.target_reps is not None:
        amounts.append(str(set_group.target_reps))
    if set_group.target_duration is not None:
        amounts.append(Formatter.format_duration_verbose(set_group.target_duration))
    if set_group.target_hold_time is not None:
        amounts.append(f"{Formatter.format_duration_verbose(set_group.target_hold_time)} hold")
    if set_group.target_distance is not None:
        amounts.append(
            Formatter.format_distance(
                set_group.target_distance,
                set_group.target_distance_unit or DistanceUnit.METERS,
            )
        )
    if amounts:
        text = f"{set_group.sets}×{' / '.join(amounts)}"
    else:
        text = f"{set_group.sets} sets"

    if set_group.target_weight is not None:
        weight = f"{Formatter.format_weight(set_group.target_weight)} {unit}"
        text += f" @ BW + {weight}" if is_bodyweight else f" @ {weight}"
    if set_group.track_rpe and set_group.target_rpe is not None:
        text += f" RPE {set_group.target_rpe}"
    extras = [m for m in map(_format_measurable, set_group.implement_measurables) if m]
    if extras:
        text += f" ({', '.join(extras)})"
    return text


def formatted_rest(set_group: SetGroup) -> Optional[str]:
    rest = set_group.interval_rest_duration if set_group.is_interval else set_group.rest_period
    if rest is None:
        return None
    return Formatter.format_rest(rest)


class SetGroupService:
    """Builds set-group contexts from resolved exercises and applies settings defaults."""

    def __init__(
        self,
        implements: Optional[ImplementLibrary] = None,
        settings: Optional[SettingsSchema] = None,
    ) -> None:
        self.implements = implements or ImplementLibrary()
        self.settings = settings or SettingsSchema()

    def context_for(self, exercise: ResolvedExercise) -> SetGroupContext:
        implements = []
        for implement_id in exercise.implement_ids:
            implement = self.implements.get_implement(implement_id)
            if implement is not None:
                implements.append(implement)
        implements.sort(key=lambda i: i.name.lower())
        return SetGroupContext(
            exercise_type=exercise.exercise_type,
            cardio_metric=exercise.cardio_metric,
            mobility_tracking=exercise.mobility_tracking,
            distance_unit=exercise.distance_unit,
            is_bodyweight=exercise.is_bodyweight,
            implements=implements,
            weight_unit=self.settings.weight_unit,
        )

    def new_set_group(self, context: SetGroupContext, sets: int = 3) -> SetGroup:
        unit = None
        if TargetField.DISTANCE in applicable_fields(context, NormalMode()):
            unit = context.distance_unit
        return SetGroup(
            sets=max(1, sets),
            rest_period=self.settings.default_rest_period,
            target_distance_unit=unit,
        )

    def make_mode(self, kind: Literal["normal", "interval", "amrap"]) -> SetGroupMode:
        if kind == "interval":
            return IntervalMode(
                work_duration=self.settings.default_work_duration,
                interval_rest_duration=self.settings.default_interval_rest,
            )
        if kind == "amrap":
            return AMRAPMode()
        return NormalMode()

    def switch_mode(self, set_group: SetGroup, kind: str) -> SetGroup:
        if set_group.mode.kind == kind:
            return set_group
        return set_group.model_copy(update={"mode": self.make_mode(kind)})

    def save(self, set_group: SetGroup, exercise: ResolvedExercise) -> SetGroup:
        saved = save(set_group, self.context_for(exercise))
        log.debug("saved set group %s for %s", saved.id, exercise.name)
        return saved

    def formatted_target(self, set_group: SetGroup, exercise: ResolvedExercise) -> str:
        return formatted_target(set_group, self.settings.weight_unit, exercise.is_bodyweight)
