from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from algorithms import DistanceUnit, WeightUnit
from config import YamlConfig


class SettingsSchema(BaseModel):
    weight_unit: WeightUnit = WeightUnit.LBS
    distance_unit: DistanceUnit = DistanceUnit.METERS
    undo_history_limit: int = Field(default=120, ge=1)
    week_start: Literal[
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"
    ] = "monday"
    default_rest_period: int = Field(default=90, ge=0)
    default_work_duration: int = Field(default=30, ge=1)
    default_interval_rest: int = Field(default=30, ge=0)
    edit_window_days: int = Field(default=30, ge=0)
    database_path: str = "workout.db"

    @property
    def first_weekday(self) -> int:
        """``datetime.weekday()`` index of the configured week start."""
        return WEEKDAYS.index(self.week_start)


WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def validate_settings(data: dict) -> SettingsSchema:
    try:
        return SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))


def load_settings(path: str = "settings.yaml") -> SettingsSchema:
    return validate_settings(YamlConfig(path).load())
