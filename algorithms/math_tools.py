from typing import Iterable
import numpy as np


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    BRZYCKI_NUMERATOR: float = 36.0
    BRZYCKI_BASE: float = 37.0
    MAX_ESTIMATE_REPS: int = 12

    @staticmethod
    def clamp(value: float, min_value: float, max_value: float) -> float:
        """Clamp ``value`` to the inclusive range [min_value, max_value]."""
        if min_value > max_value:
            raise ValueError("min_value must not exceed max_value")
        return max(min_value, min(value, max_value))

    @classmethod
    def brzycki_1rm(cls, weight: float, reps: int) -> float:
        """Return the estimated one-rep max using the Brzycki formula.

        Reps above ``MAX_ESTIMATE_REPS`` are capped before the formula is
        applied, so high-rep sets are never extrapolated further.
        """
        if reps < 0:
            raise ValueError("reps must be non-negative")
        capped = min(reps, cls.MAX_ESTIMATE_REPS)
        denominator = cls.BRZYCKI_BASE - capped
        if denominator <= 0:
            return weight
        return weight * cls.BRZYCKI_NUMERATOR / denominator

    @staticmethod
    def volume(sets: list[tuple[int, float]]) -> float:
        """Compute training volume as the sum of reps times weight."""
        vol = 0.0
        for reps, weight in sets:
            vol += reps * weight
        return vol

    @staticmethod
    def mean(values: Iterable[float]) -> float:
        """Return the arithmetic mean of ``values`` or 0.0 when empty."""
        data = list(values)
        if not data:
            return 0.0
        return float(np.mean(np.array(data, dtype=float)))

    @staticmethod
    def saturate(count: float, cap: float) -> float:
        """Return ``count / cap`` limited to the range [0, 1]."""
        if cap <= 0:
            raise ValueError("cap must be positive")
        return MathTools.clamp(count / cap, 0.0, 1.0)


def estimate_one_rep_max(weight: float, reps: int) -> float:
    """Return the Brzycki estimated one-rep max for ``weight`` x ``reps``."""
    return MathTools.brzycki_1rm(weight, reps)
