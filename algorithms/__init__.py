from .math_tools import MathTools, estimate_one_rep_max
from .date_tools import DateTools
from .weight_converter import WeightConverter

__all__ = ["MathTools", "DateTools", "WeightConverter", "estimate_one_rep_max"]
