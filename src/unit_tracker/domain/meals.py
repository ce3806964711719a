"""Domain models for daily food logging."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from unit_tracker.domain.units import FoodConversions


class MealCategory(StrEnum):
    """The four daily meal slots, in display order."""

    BREAKFAST = "breakfast"
    SNACK = "snack"
    LUNCH = "lunch"
    DINNER = "dinner"

    @property
    def label(self) -> str:
        """Return the label the store keeps for this meal."""
        return _LABELS[self]

    @classmethod
    def parse(cls, raw: object) -> "MealCategory | None":
        """Convert a raw storage label into a meal category.

        Accepts the stored locale label or the enum value, matched exactly.
        Returns None for anything else so callers decide how to treat
        unmatched rows.
        """
        if not isinstance(raw, str):
            return None
        for category, label in _LABELS.items():
            if raw in (label, category.value):
                return category
        return None


_LABELS = {
    MealCategory.BREAKFAST: "ארוחת בוקר",
    MealCategory.SNACK: "ארוחת ביניים",
    MealCategory.LUNCH: "ארוחת צהריים",
    MealCategory.DINNER: "ארוחת ערב",
}


class UnmatchedCategoryPolicy(StrEnum):
    """What meal aggregation does with an entry of unknown category."""

    DROP = "drop"
    RAISE = "raise"


@dataclass(frozen=True)
class FoodReference:
    """Food bank row joined onto logged entries."""

    id: int
    name: str
    category: str | None
    calories_per_unit: float
    protein_units: float
    carb_units: float
    fat_units: float
    veg_units: float
    fruit_units: float
    grams_per_single_item: float | None = None
    grams_per_cup: float | None = None
    grams_per_tbsp: float | None = None

    @property
    def conversions(self) -> FoodConversions:
        """Return gram conversions for this food."""
        return FoodConversions(
            grams_per_unit=self.grams_per_single_item,
            grams_per_cup=self.grams_per_cup,
            grams_per_tbsp=self.grams_per_tbsp,
        )


@dataclass(frozen=True)
class LoggedFoodEntry:
    """One food consumption event in a daily log."""

    id: UUID
    daily_log_id: UUID
    food_id: int | None
    meal_category: str
    measure_type: str
    quantity: float
    grams: float
    kcal: float | None
    protein_units: float | None
    carb_units: float | None
    fat_units: float | None
    veg_units: float | None
    fruit_units: float | None
    created_at: datetime | None = None
    food: FoodReference | None = None


@dataclass(frozen=True)
class MealSummary:
    """Entries and totals for one meal slot."""

    category: MealCategory
    meal_type: str
    items: list[LoggedFoodEntry]
    total_calories: float
    total_protein: float
    total_carbs: float
    total_fats: float
    total_veg: float
    total_fruit: float


@dataclass(frozen=True)
class DailyMeals:
    """Daily view served to the consumer."""

    day: str
    meals: list[MealSummary]
    is_loading: bool
    error: Exception | None = None
