"""Supabase repository for daily logs and food entries."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from unit_tracker.adapters.supabase_support import (
    execute,
    optional_float,
    parse_datetime,
)
from unit_tracker.domain.errors import StoreError
from unit_tracker.domain.meals import FoodReference, LoggedFoodEntry
from unit_tracker.services.meals import DailyLogRepository

_ITEM_COLUMNS = "*, food_item:food_bank!daily_items_food_id_fkey(*)"


@dataclass
class SupabaseDailyLogRepository(DailyLogRepository):
    """Supabase implementation for daily logs."""

    client: Client

    def fetch_daily_log_id(self, user_id: UUID, day: str) -> UUID | None:
        """Return the daily log id for a user and date."""
        rows = execute(
            self.client.table("daily_logs")
            .select("id")
            .eq("user_id", str(user_id))
            .eq("date", day)
            .limit(1),
            "fetch daily log",
        )
        if not rows:
            return None
        return UUID(rows[0]["id"])

    def create_daily_log(self, user_id: UUID, day: str) -> UUID:
        """Create a daily log row and return its id."""
        rows = execute(
            self.client.table("daily_logs").insert(
                {"user_id": str(user_id), "date": day}
            ),
            "create daily log",
        )
        if not rows:
            raise StoreError("Failed to create daily log")
        return UUID(rows[0]["id"])

    def fetch_daily_items(self, daily_log_id: UUID) -> list[LoggedFoodEntry]:
        """Return entries for a daily log, oldest first, joined with food bank."""
        rows = execute(
            self.client.table("daily_items")
            .select(_ITEM_COLUMNS)
            .eq("daily_log_id", str(daily_log_id))
            .order("created_at", desc=False),
            "fetch daily items",
        )
        return [_parse_item(row) for row in rows]

    def get_food_reference(self, food_id: int) -> FoodReference | None:
        """Return a food bank row by id."""
        rows = execute(
            self.client.table("food_bank").select("*").eq("id", food_id).limit(1),
            "fetch food",
        )
        if not rows:
            return None
        return _parse_food(rows[0])

    def insert_daily_item(
        self, daily_log_id: UUID, payload: dict[str, object]
    ) -> LoggedFoodEntry:
        """Insert a daily item row and return it."""
        rows = execute(
            self.client.table("daily_items").insert(
                {"daily_log_id": str(daily_log_id), **payload}
            ),
            "insert daily item",
        )
        if not rows:
            raise StoreError("Failed to insert daily item")
        return _parse_item(rows[0])

    def delete_daily_item(self, item_id: UUID) -> None:
        """Delete a daily item row."""
        execute(
            self.client.table("daily_items").delete().eq("id", str(item_id)),
            "delete daily item",
        )


def _parse_item(row: dict[str, object]) -> LoggedFoodEntry:
    food_row = row.get("food_item")
    food_id = row.get("food_id")
    return LoggedFoodEntry(
        id=UUID(str(row["id"])),
        daily_log_id=UUID(str(row["daily_log_id"])),
        food_id=int(food_id) if food_id is not None else None,
        meal_category=str(row.get("meal_category") or ""),
        measure_type=str(row.get("measure_type") or "unit"),
        quantity=float(row.get("quantity") or 0.0),
        grams=float(row.get("grams") or 0.0),
        kcal=optional_float(row.get("kcal")),
        protein_units=optional_float(row.get("protein_units")),
        carb_units=optional_float(row.get("carb_units")),
        fat_units=optional_float(row.get("fat_units")),
        veg_units=optional_float(row.get("veg_units")),
        fruit_units=optional_float(row.get("fruit_units")),
        created_at=parse_datetime(row.get("created_at")),
        food=_parse_food(food_row) if isinstance(food_row, dict) else None,
    )


def _parse_food(row: dict[str, object]) -> FoodReference:
    # food_bank keeps the historical column spellings.
    return FoodReference(
        id=int(row["id"]),
        name=str(row.get("name", "")),
        category=row.get("category"),
        calories_per_unit=float(row.get("caloreis_per_unit") or 0.0),
        protein_units=float(row.get("protien_units") or 0.0),
        carb_units=float(row.get("carb_units") or 0.0),
        fat_units=float(row.get("fats_units") or 0.0),
        veg_units=float(row.get("veg_units") or 0.0),
        fruit_units=float(row.get("fruit_units") or 0.0),
        grams_per_single_item=optional_float(row.get("grams_per_single_item")),
        grams_per_cup=optional_float(row.get("grams_per_cup")),
        grams_per_tbsp=optional_float(row.get("grams_per_tbsp")),
    )
