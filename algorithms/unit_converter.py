from __future__ import annotations
from enum import Enum


class WeightUnit(str, Enum):
    LBS = "lbs"
    KG = "kg"

    @property
    def abbreviation(self) -> str:
        return "lb" if self is WeightUnit.LBS else "kg"


class DistanceUnit(str, Enum):
    YARDS = "yards"
    METERS = "meters"
    MILES = "miles"
    KILOMETERS = "kilometers"

    @property
    def abbreviation(self) -> str:
        return _DISTANCE_ABBREVIATIONS[self]

    @property
    def meters_per_unit(self) -> float:
        return _METERS_PER_UNIT[self]

    @property
    def mismatch_threshold(self) -> float:
        """Largest plausible single-set distance before a unit mix-up is suspected."""
        return _MISMATCH_THRESHOLDS[self]


_DISTANCE_ABBREVIATIONS = {
    DistanceUnit.YARDS: "yd",
    DistanceUnit.METERS: "m",
    DistanceUnit.MILES: "mi",
    DistanceUnit.KILOMETERS: "km",
}

_METERS_PER_UNIT = {
    DistanceUnit.YARDS: 0.9144,
    DistanceUnit.METERS: 1.0,
    DistanceUnit.MILES: 1609.344,
    DistanceUnit.KILOMETERS: 1000.0,
}

_MISMATCH_THRESHOLDS = {
    DistanceUnit.YARDS: 55_000.0,
    DistanceUnit.METERS: 50_000.0,
    DistanceUnit.MILES: 30.0,
    DistanceUnit.KILOMETERS: 50.0,
}


class WeightConverter:
    """Utility for converting between kg and lb."""

    KG_TO_LB = 2.20462

    @staticmethod
    def kg_to_lb(kg: float) -> float:
        return round(kg * WeightConverter.KG_TO_LB, 2)

    @staticmethod
    def lb_to_kg(lb: float) -> float:
        return round(lb / WeightConverter.KG_TO_LB, 2)

    @staticmethod
    def convert(value: float, source: WeightUnit, target: WeightUnit) -> float:
        if source == target:
            return value
        if source is WeightUnit.KG:
            return WeightConverter.kg_to_lb(value)
        return WeightConverter.lb_to_kg(value)


class DistanceConverter:
    """Utility for converting distances between supported units."""

    @staticmethod
    def convert(value: float, source: DistanceUnit, target: DistanceUnit) -> float:
        if source == target:
            return value
        meters = value * source.meters_per_unit
        return round(meters / target.meters_per_unit, 4)
