from typing import Literal

from pydantic import BaseModel, Field, ValidationError


class SettingsSchema(BaseModel):
    weight_unit: Literal["kg", "lb"] = "kg"
    cache_ttl_seconds: float = Field(300.0, gt=0)
    calibration_workouts: int = Field(4, ge=1)
    include_current_day_in_pr_baseline: bool = False
    db_path: str = "workout.db"


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
