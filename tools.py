import math
from typing import Optional

from algorithms import DistanceConverter, DistanceUnit, MathTools, WeightConverter, WeightUnit


class Formatter:
    """Render numeric workout values as short human-readable strings."""

    @staticmethod
    def format_weight(weight: float) -> str:
        """Drop the decimal for whole numbers (135.0 -> "135", 137.5 -> "137.5")."""
        if weight == math.floor(weight):
            return str(int(weight))
        return f"{weight:.1f}"

    @staticmethod
    def format_distance_value(distance: float) -> str:
        if distance == math.floor(distance):
            return str(int(distance))
        return f"{distance:.2f}".rstrip("0").rstrip(".")

    @staticmethod
    def format_distance(distance: float, unit: DistanceUnit, spaced: bool = True) -> str:
        sep = " " if spaced else ""
        return f"{Formatter.format_distance_value(distance)}{sep}{unit.abbreviation}"

    @staticmethod
    def format_rest(seconds: int) -> str:
        """Format a rest or interval period as "Xm Ys", "Xm" or "Xs"."""
        if seconds < 60:
            return f"{seconds}s"
        mins, secs = divmod(seconds, 60)
        if secs:
            return f"{mins}m {secs}s"
        return f"{mins}m"

    @staticmethod
    def format_duration_verbose(seconds: int) -> str:
        """45 -> "45s", 120 -> "2 min", 150 -> "2m 30s"."""
        if seconds >= 60:
            mins, secs = divmod(seconds, 60)
            if secs:
                return f"{mins}m {secs}s"
            return f"{mins} min"
        return f"{seconds}s"


class InputParser:
    """Convert free-text form input into optional typed values.

    Anything that does not parse is treated as a cleared field and
    returned as ``None``; no exception ever escapes.
    """

    @staticmethod
    def parse_text(text: Optional[str]) -> Optional[str]:
        if text is None:
            return None
        stripped = text.strip()
        return stripped or None

    @staticmethod
    def parse_float(text: Optional[str]) -> Optional[float]:
        stripped = InputParser.parse_text(text)
        if stripped is None:
            return None
        try:
            value = float(stripped.replace(",", "."))
        except ValueError:
            return None
        if math.isnan(value) or math.isinf(value):
            return None
        return value

    @staticmethod
    def parse_int(text: Optional[str]) -> Optional[int]:
        stripped = InputParser.parse_text(text)
        if stripped is None:
            return None
        try:
            return int(stripped)
        except ValueError:
            value = InputParser.parse_float(stripped)
        if value is None or not value.is_integer():
            return None
        return int(value)


__all__ = [
    "DistanceConverter",
    "DistanceUnit",
    "Formatter",
    "InputParser",
    "MathTools",
    "WeightConverter",
    "WeightUnit",
]
