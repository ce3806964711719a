"""Supabase repository for workout logs."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from unit_tracker.adapters.supabase_support import execute, parse_date, parse_datetime
from unit_tracker.domain.errors import StoreError
from unit_tracker.domain.workouts import WorkoutLogEntry, WorkoutType
from unit_tracker.services.workouts import WorkoutLogRepository


@dataclass
class SupabaseWorkoutLogRepository(WorkoutLogRepository):
    """Supabase implementation for workout logs."""

    client: Client

    def fetch_workout_logs(
        self, user_id: UUID, start: str, end: str
    ) -> list[WorkoutLogEntry]:
        """Return workout logs within the inclusive date range."""
        rows = execute(
            self.client.table("workout_logs")
            .select("*")
            .eq("user_id", str(user_id))
            .gte("log_date", start)
            .lte("log_date", end)
            .order("log_date", desc=True),
            "fetch workout logs",
        )
        return [_parse_row(row) for row in rows]

    def insert_workout_log(
        self, user_id: UUID, log_date: str, workout_type: WorkoutType, amount: float
    ) -> WorkoutLogEntry:
        """Insert a workout log row and return it."""
        rows = execute(
            self.client.table("workout_logs").insert(
                {
                    "user_id": str(user_id),
                    "log_date": log_date,
                    "workout_type": workout_type.value,
                    "amount": amount,
                }
            ),
            "insert workout log",
        )
        if not rows:
            raise StoreError("Failed to insert workout log")
        return _parse_row(rows[0])

    def delete_workout_log(self, log_id: UUID) -> None:
        """Delete a workout log row."""
        execute(
            self.client.table("workout_logs").delete().eq("id", str(log_id)),
            "delete workout log",
        )


def _parse_row(row: dict[str, object]) -> WorkoutLogEntry:
    return WorkoutLogEntry(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        log_date=parse_date(row["log_date"]),
        workout_type=str(row.get("workout_type", "")),
        amount=row.get("amount"),
        created_at=parse_datetime(row.get("created_at")),
    )
