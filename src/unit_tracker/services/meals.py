"""Daily meals view and meal-category aggregation."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol
from uuid import UUID
from zoneinfo import ZoneInfo

from unit_tracker.domain.errors import FoodNotFoundError, UnknownMealCategoryError
from unit_tracker.domain.meals import (
    DailyMeals,
    FoodReference,
    LoggedFoodEntry,
    MealCategory,
    MealSummary,
    UnmatchedCategoryPolicy,
)
from unit_tracker.domain.units import MeasureType
from unit_tracker.services.query_cache import QueryCache, QueryKey, query_key
from unit_tracker.services.units import convert_to_grams, servings_for

DAILY_ITEMS_QUERY = "dailyItems"
ADD_FOOD_MUTATION = "addFoodEntry"
DELETE_FOOD_MUTATION = "deleteFoodEntry"

_logger = logging.getLogger(__name__)


class DailyLogRepository(Protocol):
    """Store interface for daily logs and their food entries."""

    def fetch_daily_log_id(self, user_id: UUID, day: str) -> UUID | None:
        """Return the daily log id for a date, or None when none exists."""

    def create_daily_log(self, user_id: UUID, day: str) -> UUID:
        """Create an empty daily log and return its id."""

    def fetch_daily_items(self, daily_log_id: UUID) -> list[LoggedFoodEntry]:
        """Return entries of a daily log by creation time ascending."""

    def get_food_reference(self, food_id: int) -> FoodReference | None:
        """Return a food bank row by id."""

    def insert_daily_item(
        self, daily_log_id: UUID, payload: dict[str, object]
    ) -> LoggedFoodEntry:
        """Insert a food entry into a daily log."""

    def delete_daily_item(self, item_id: UUID) -> None:
        """Delete a food entry."""


def aggregate_meals(
    entries: list[LoggedFoodEntry],
    policy: UnmatchedCategoryPolicy = UnmatchedCategoryPolicy.DROP,
) -> list[MealSummary]:
    """Group entries into the four meal slots and total each slot.

    Entries must arrive in creation order; each slot keeps that order.
    """
    buckets: dict[MealCategory, list[LoggedFoodEntry]] = {
        category: [] for category in MealCategory
    }
    for entry in entries:
        category = MealCategory.parse(entry.meal_category)
        if category is None:
            if policy is UnmatchedCategoryPolicy.RAISE:
                raise UnknownMealCategoryError(entry.meal_category)
            _logger.debug(
                "Dropping entry %s with unknown meal category %r",
                entry.id,
                entry.meal_category,
            )
            continue
        buckets[category].append(entry)
    return [_summarize(category, items) for category, items in buckets.items()]


def _summarize(category: MealCategory, items: list[LoggedFoodEntry]) -> MealSummary:
    return MealSummary(
        category=category,
        meal_type=category.label,
        items=items,
        total_calories=sum(item.kcal or 0 for item in items),
        total_protein=sum(item.protein_units or 0 for item in items),
        total_carbs=sum(item.carb_units or 0 for item in items),
        total_fats=sum(item.fat_units or 0 for item in items),
        total_veg=sum(item.veg_units or 0 for item in items),
        total_fruit=sum(item.fruit_units or 0 for item in items),
    )


@dataclass
class DailyMealsService:
    """Serves today's meals through the query cache."""

    repository: DailyLogRepository
    cache: QueryCache
    timezone_name: str = "UTC"
    policy: UnmatchedCategoryPolicy = UnmatchedCategoryPolicy.DROP

    async def get_daily_meals(
        self, user_id: UUID, day: date | None = None, wait: bool = True
    ) -> DailyMeals:
        """Return the four meal summaries for a day (today by default).

        With ``wait=False`` a missing or stale day is fetched in the background
        and the result reports ``is_loading`` over whatever is cached.
        """
        day_str = (day or self.today()).isoformat()
        key = daily_items_key(user_id, day_str)

        async def fetch() -> list[LoggedFoodEntry]:
            _logger.info("Fetching daily items for %s user_id=%s", day_str, user_id)
            log_id = self.repository.fetch_daily_log_id(user_id, day_str)
            if log_id is None:
                _logger.info("No daily log found for %s", day_str)
                return []
            items = self.repository.fetch_daily_items(log_id)
            _logger.info("Loaded %s daily items", len(items))
            return items

        state = await self.cache.query(key, fetch, wait=wait)
        entries = state.data if state.has_data else []
        return DailyMeals(
            day=day_str,
            meals=aggregate_meals(entries, self.policy),
            is_loading=state.is_loading,
            error=state.error,
        )

    async def add_food_entry(  # noqa: PLR0913
        self,
        user_id: UUID,
        food_id: int,
        meal_category: str,
        quantity: float,
        measure_type: MeasureType = MeasureType.UNIT,
        day: date | None = None,
    ) -> LoggedFoodEntry:
        """Log a food bank item into a meal, creating the daily log if needed."""
        category = MealCategory.parse(meal_category)
        if category is None:
            raise UnknownMealCategoryError(meal_category)
        day_str = (day or self.today()).isoformat()

        async def insert() -> LoggedFoodEntry:
            food = self.repository.get_food_reference(food_id)
            if food is None:
                raise FoodNotFoundError(food_id)
            log_id = self.repository.fetch_daily_log_id(user_id, day_str)
            if log_id is None:
                _logger.info("Creating daily log for %s", day_str)
                log_id = self.repository.create_daily_log(user_id, day_str)
            payload = _entry_payload(food, category, measure_type, quantity)
            _logger.info(
                "Adding food %s x%s to %s", food.name, quantity, category.value
            )
            return self.repository.insert_daily_item(log_id, payload)

        return await self.cache.mutate(
            insert,
            [query_key(DAILY_ITEMS_QUERY, user_id)],
            name=ADD_FOOD_MUTATION,
        )

    async def delete_food_entry(self, user_id: UUID, item_id: UUID) -> None:
        """Delete a logged food entry."""

        async def delete() -> None:
            _logger.info("Deleting daily item %s", item_id)
            self.repository.delete_daily_item(item_id)

        await self.cache.mutate(
            delete,
            [query_key(DAILY_ITEMS_QUERY, user_id)],
            name=DELETE_FOOD_MUTATION,
        )

    def today(self) -> date:
        """Return the current date in the configured timezone."""
        return datetime.now(tz=ZoneInfo(self.timezone_name)).date()


def daily_items_key(user_id: UUID, day: str) -> QueryKey:
    """Return the cache key for a user's food entries on a date."""
    return query_key(DAILY_ITEMS_QUERY, user_id, day)


def _entry_payload(
    food: FoodReference,
    category: MealCategory,
    measure_type: MeasureType,
    quantity: float,
) -> dict[str, object]:
    servings = servings_for(food, measure_type, quantity)
    if measure_type is MeasureType.UNIT:
        grams = (food.grams_per_single_item or 0.0) * quantity
    else:
        grams = convert_to_grams(food.conversions, measure_type, quantity)
    return {
        "food_id": food.id,
        "meal_category": category.label,
        "measure_type": measure_type.value,
        "quantity": quantity,
        "grams": grams,
        "kcal": food.calories_per_unit * servings,
        "protein_units": food.protein_units * servings,
        "carb_units": food.carb_units * servings,
        "fat_units": food.fat_units * servings,
        "veg_units": food.veg_units * servings,
        "fruit_units": food.fruit_units * servings,
    }
