from .math_tools import MathTools
from .unit_converter import DistanceConverter, DistanceUnit, WeightConverter, WeightUnit

__all__ = ["MathTools", "DistanceConverter", "DistanceUnit", "WeightConverter", "WeightUnit"]
