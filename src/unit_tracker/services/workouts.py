"""Weekly workout view and aggregation."""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Protocol
from uuid import UUID
from zoneinfo import ZoneInfo

from unit_tracker.domain.errors import DataIntegrityError
from unit_tracker.domain.workouts import (
    WeeklyWorkouts,
    WeekWindow,
    WorkoutLogEntry,
    WorkoutSummary,
    WorkoutType,
)
from unit_tracker.services.query_cache import QueryCache, QueryKey, query_key

WORKOUT_LOGS_QUERY = "workoutLogs"
ADD_WORKOUT_MUTATION = "addWorkoutLog"
DELETE_WORKOUT_MUTATION = "deleteWorkoutLog"
DAYS_PER_WEEK = 7

_logger = logging.getLogger(__name__)


class WorkoutLogRepository(Protocol):
    """Store interface for workout logs."""

    def fetch_workout_logs(
        self, user_id: UUID, start: str, end: str
    ) -> list[WorkoutLogEntry]:
        """Return logs with start <= log_date <= end, newest date first."""

    def insert_workout_log(
        self, user_id: UUID, log_date: str, workout_type: WorkoutType, amount: float
    ) -> WorkoutLogEntry:
        """Insert a workout log and return the stored row."""

    def delete_workout_log(self, log_id: UUID) -> None:
        """Delete a workout log."""


def current_week_window(now: datetime) -> WeekWindow:
    """Return the Sunday-to-Saturday week containing ``now``."""
    days_since_sunday = (now.weekday() + 1) % DAYS_PER_WEEK
    start = (now - timedelta(days=days_since_sunday)).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    end = (start + timedelta(days=DAYS_PER_WEEK - 1)).replace(
        hour=23, minute=59, second=59, microsecond=999000
    )
    return WeekWindow(start=start, end=end)


def aggregate_workouts(entries: list[WorkoutLogEntry]) -> WorkoutSummary:
    """Split entries by workout type and total the amounts.

    Raises DataIntegrityError for an unknown type or a non-numeric amount.
    """
    partitions: dict[WorkoutType, list[WorkoutLogEntry]] = {
        WorkoutType.STRENGTH: [],
        WorkoutType.CARDIO: [],
    }
    totals = {WorkoutType.STRENGTH: 0.0, WorkoutType.CARDIO: 0.0}
    for entry in entries:
        workout_type = _parse_workout_type(entry)
        partitions[workout_type].append(entry)
        totals[workout_type] += _parse_amount(entry)
    return WorkoutSummary(
        strength_total=totals[WorkoutType.STRENGTH],
        cardio_total=totals[WorkoutType.CARDIO],
        strength_entries=partitions[WorkoutType.STRENGTH],
        cardio_entries=partitions[WorkoutType.CARDIO],
    )


def _parse_workout_type(entry: WorkoutLogEntry) -> WorkoutType:
    try:
        return WorkoutType(entry.workout_type)
    except ValueError as exc:
        raise DataIntegrityError(
            f"Workout log {entry.id} has unknown type {entry.workout_type!r}"
        ) from exc


def _parse_amount(entry: WorkoutLogEntry) -> float:
    value = entry.amount
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        raise DataIntegrityError(
            f"Workout log {entry.id} has non-numeric amount {value!r}"
        )
    try:
        amount = float(value)
    except ValueError as exc:
        raise DataIntegrityError(
            f"Workout log {entry.id} has non-numeric amount {value!r}"
        ) from exc
    if not math.isfinite(amount):
        raise DataIntegrityError(
            f"Workout log {entry.id} has non-finite amount {value!r}"
        )
    return amount


@dataclass
class WorkoutLogService:
    """Serves the current week's workouts through the query cache."""

    repository: WorkoutLogRepository
    cache: QueryCache
    timezone_name: str = "UTC"

    async def get_weekly_workouts(
        self, user_id: UUID, now: datetime | None = None, wait: bool = True
    ) -> WeeklyWorkouts:
        """Return this week's workout logs and per-type totals."""
        window = current_week_window(now or self.now())
        key = workout_logs_key(user_id, window.start_date)

        async def fetch() -> list[WorkoutLogEntry]:
            _logger.info(
                "Fetching workout logs for week %s to %s",
                window.start_date,
                window.end_date,
            )
            logs = self.repository.fetch_workout_logs(
                user_id, window.start_date, window.end_date
            )
            _logger.info("Loaded %s workout logs", len(logs))
            return logs

        state = await self.cache.query(key, fetch, wait=wait)
        logs = state.data if state.has_data else []
        summary = aggregate_workouts(logs)
        return WeeklyWorkouts(
            window=window,
            workout_logs=logs,
            strength_logs=summary.strength_entries,
            cardio_logs=summary.cardio_entries,
            total_strength_workouts=summary.strength_total,
            total_cardio_minutes=summary.cardio_total,
            is_loading=state.is_loading,
            is_adding_log=self.is_adding_log(user_id),
            error=state.error,
        )

    async def add_workout_log(
        self,
        user_id: UUID,
        workout_type: WorkoutType | str,
        amount: float,
        log_date: date,
    ) -> WorkoutLogEntry:
        """Record a workout and refresh the user's weekly view."""
        try:
            resolved_type = WorkoutType(workout_type)
        except ValueError as exc:
            raise DataIntegrityError(f"Unknown workout type {workout_type!r}") from exc

        async def insert() -> WorkoutLogEntry:
            _logger.info(
                "Adding workout log: %s %s %s", resolved_type.value, amount, log_date
            )
            return self.repository.insert_workout_log(
                user_id, log_date.isoformat(), resolved_type, amount
            )

        return await self.cache.mutate(
            insert,
            [query_key(WORKOUT_LOGS_QUERY, user_id)],
            name=_adding_mutation(user_id),
        )

    async def delete_workout_log(self, user_id: UUID, log_id: UUID) -> None:
        """Delete a workout and refresh the user's weekly view."""

        async def delete() -> None:
            _logger.info("Deleting workout log %s", log_id)
            self.repository.delete_workout_log(log_id)

        await self.cache.mutate(
            delete,
            [query_key(WORKOUT_LOGS_QUERY, user_id)],
            name=DELETE_WORKOUT_MUTATION,
        )

    def is_adding_log(self, user_id: UUID) -> bool:
        """Return True while a workout is being added for the user."""
        return self.cache.is_mutating(_adding_mutation(user_id))

    def now(self) -> datetime:
        """Return the current time in the configured timezone."""
        return datetime.now(tz=ZoneInfo(self.timezone_name))


def workout_logs_key(user_id: UUID, week_start: str) -> QueryKey:
    """Return the cache key for a user's workouts in the week starting on a date."""
    return query_key(WORKOUT_LOGS_QUERY, user_id, week_start)


def _adding_mutation(user_id: UUID) -> str:
    return f"{ADD_WORKOUT_MUTATION}:{user_id}"
