"""Unit conversion domain models."""

from dataclasses import dataclass
from enum import StrEnum


class FoodCategory(StrEnum):
    """Food categories with a fixed calories-per-unit constant."""

    PROTEIN = "protein"
    CARB = "carb"
    FAT = "fat"
    VEGETABLE = "vegetable"
    FRUIT = "fruit"


UNIT_CALORIES: dict[FoodCategory, int] = {
    FoodCategory.PROTEIN: 200,
    FoodCategory.CARB: 120,
    FoodCategory.FAT: 120,
    FoodCategory.VEGETABLE: 35,
    FoodCategory.FRUIT: 85,
}


class MeasureType(StrEnum):
    """How a logged quantity was measured."""

    GRAMS = "grams"
    UNIT = "unit"
    CUP = "cup"
    TBSP = "tbsp"
    TSP = "tsp"


@dataclass(frozen=True)
class FoodConversions:
    """Gram weights for the non-gram measures of a food."""

    grams_per_unit: float | None = None
    grams_per_cup: float | None = None
    grams_per_tbsp: float | None = None
    grams_per_tsp: float | None = None
