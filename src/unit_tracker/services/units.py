"""Calorie-to-unit conversion helpers."""

import math

from unit_tracker.domain.meals import FoodReference
from unit_tracker.domain.units import (
    UNIT_CALORIES,
    FoodCategory,
    FoodConversions,
    MeasureType,
)

DEFAULT_GRAMS_PER_SERVING = 100.0


def round_to_half(value: float) -> float:
    """Round to the nearest 0.5, halves rounding up."""
    return math.floor(value * 2 + 0.5) / 2


def units_for(calories: float, category: FoodCategory | str) -> float:
    """Return the half-unit count for calories of a food category.

    Raises ValueError for a category outside FoodCategory.
    """
    calories_per_unit = UNIT_CALORIES[FoodCategory(category)]
    return round_to_half(calories / calories_per_unit)


def convert_to_grams(
    conversions: FoodConversions, measure_type: MeasureType, quantity: float
) -> float:
    """Convert a quantity in the given measure to grams."""
    if measure_type is MeasureType.GRAMS:
        return quantity
    per_measure = {
        MeasureType.UNIT: conversions.grams_per_unit,
        MeasureType.CUP: conversions.grams_per_cup,
        MeasureType.TBSP: conversions.grams_per_tbsp,
        MeasureType.TSP: conversions.grams_per_tsp,
    }[measure_type]
    return (per_measure or 0.0) * quantity


def calculate_calories(kcal_per_100g: float, grams: float) -> float:
    """Return calories for a gram weight of a per-100g food."""
    return kcal_per_100g / 100 * grams


def servings_for(
    food: FoodReference, measure_type: MeasureType, quantity: float
) -> float:
    """Return how many food bank servings a logged quantity represents."""
    if measure_type is MeasureType.UNIT:
        return quantity
    grams = convert_to_grams(food.conversions, measure_type, quantity)
    grams_per_serving = food.grams_per_single_item or DEFAULT_GRAMS_PER_SERVING
    return grams / grams_per_serving
