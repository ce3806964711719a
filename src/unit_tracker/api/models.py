"""Request models for the HTTP API."""

from datetime import date

from pydantic import BaseModel, Field

from unit_tracker.domain.units import MeasureType
from unit_tracker.domain.workouts import WorkoutType


class AddFoodEntryRequest(BaseModel):
    """Body for logging a food bank item into a meal."""

    food_id: int
    meal_category: str
    quantity: float = Field(default=1.0, gt=0)
    measure_type: MeasureType = MeasureType.UNIT
    day: date | None = None


class AddWorkoutLogRequest(BaseModel):
    """Body for recording a workout."""

    workout_type: WorkoutType
    amount: float = Field(gt=0)
    log_date: date
