"""Domain models for workout logging."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from uuid import UUID


class WorkoutType(StrEnum):
    """Workout kinds tracked per week."""

    STRENGTH = "strength"
    CARDIO = "cardio"


@dataclass(frozen=True)
class WorkoutLogEntry:
    """One recorded workout.

    ``workout_type`` and ``amount`` hold the raw stored values; they are
    validated when the week is aggregated.
    """

    id: UUID
    user_id: UUID
    log_date: date
    workout_type: str
    amount: object
    created_at: datetime | None = None


@dataclass(frozen=True)
class WeekWindow:
    """Inclusive Sunday-to-Saturday window around a reference instant."""

    start: datetime
    end: datetime

    @property
    def start_date(self) -> str:
        """Return the first day as YYYY-MM-DD."""
        return self.start.date().isoformat()

    @property
    def end_date(self) -> str:
        """Return the last day as YYYY-MM-DD."""
        return self.end.date().isoformat()

    def contains(self, moment: datetime) -> bool:
        """Return True when the instant falls inside the window."""
        return self.start <= moment <= self.end


@dataclass(frozen=True)
class WorkoutSummary:
    """Week totals split by workout type."""

    strength_total: float
    cardio_total: float
    strength_entries: list[WorkoutLogEntry]
    cardio_entries: list[WorkoutLogEntry]


@dataclass(frozen=True)
class WeeklyWorkouts:
    """Weekly view served to the consumer."""

    window: WeekWindow
    workout_logs: list[WorkoutLogEntry]
    strength_logs: list[WorkoutLogEntry]
    cardio_logs: list[WorkoutLogEntry]
    total_strength_workouts: float
    total_cardio_minutes: float
    is_loading: bool
    is_adding_log: bool
    error: Exception | None = None
