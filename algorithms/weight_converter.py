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
    def format_volume(kg: float, unit: str = "kg") -> str:
        """Return a compact volume label such as ``5.0k kg`` in ``unit``."""
        if unit not in ("kg", "lb"):
            raise ValueError("unit must be 'kg' or 'lb'")
        value = WeightConverter.kg_to_lb(kg) if unit == "lb" else kg
        if value >= 1000:
            return f"{value / 1000:.1f}k {unit}"
        return f"{round(value)} {unit}"
